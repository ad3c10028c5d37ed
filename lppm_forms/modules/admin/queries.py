"""Allow-listed reads and status updates for the admin panel.

Client-supplied table names only ever select an entry of `ADMIN_MODELS`;
they are never placed into SQL text.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from lppm_forms.core.errors import InvalidRelation, InvalidStatus, RecordNotFound
from lppm_forms.db.models.member import Member
from lppm_forms.db.models.submission import SUBMISSION_MODELS, SubmissionStatus

ADMIN_MODELS: dict[str, type] = {Member.__tablename__: Member, **SUBMISSION_MODELS}

SEARCH_COLUMNS: dict[str, tuple[str, ...]] = {Member.__tablename__: ("nama", "nidn")}
DEFAULT_SEARCH_COLUMNS = ("email", "nama_ketua")

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
PUBLIC_LIMIT = 200
PUBLIC_MAX_LIMIT = 1000


def list_tables() -> list[str]:
    return list(ADMIN_MODELS)


def resolve_table(name: str) -> type:
    model = ADMIN_MODELS.get(name)
    if model is None:
        raise InvalidRelation()
    return model


def resolve_submission_table(name: str) -> type:
    model = SUBMISSION_MODELS.get(name)
    if model is None:
        raise InvalidRelation()
    return model


def clamp_page(page: int | None, limit: int | None) -> tuple[int, int]:
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or DEFAULT_LIMIT), 1), MAX_LIMIT)
    return page, limit


def _escape_like(s: str) -> str:
    return s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_clause(model: type, search: str | None):
    search = (search or "").strip()
    if not search:
        return None
    cols = SEARCH_COLUMNS.get(model.__tablename__, DEFAULT_SEARCH_COLUMNS)
    pattern = f"%{_escape_like(search)}%"
    return or_(*(getattr(model, c).ilike(pattern, escape="\\") for c in cols))


def list_rows(db: Session, model: type, page: int, limit: int, search: str | None = None) -> dict[str, Any]:
    """Newest first. `hasMore` is true whenever the page came back full."""
    page, limit = clamp_page(page, limit)
    stmt = select(model)
    clause = _search_clause(model, search)
    if clause is not None:
        stmt = stmt.where(clause)
    stmt = stmt.order_by(model.id.desc()).limit(limit).offset((page - 1) * limit)
    rows = db.scalars(stmt).all()
    return {"data": [r.as_dict() for r in rows], "page": page, "limit": limit, "hasMore": len(rows) == limit}


def count_rows(db: Session, model: type, search: str | None = None) -> int:
    stmt = select(func.count()).select_from(model)
    clause = _search_clause(model, search)
    if clause is not None:
        stmt = stmt.where(clause)
    return int(db.scalar(stmt) or 0)


def public_rows(db: Session, model: type, limit: int | None = None) -> list[dict[str, Any]]:
    limit = min(max(int(limit or PUBLIC_LIMIT), 1), PUBLIC_MAX_LIMIT)
    rows = db.scalars(select(model).order_by(model.id.desc()).limit(limit)).all()
    return [r.as_dict() for r in rows]


def parse_status(value: str | None) -> SubmissionStatus:
    try:
        return SubmissionStatus((value or "").strip())
    except ValueError:
        raise InvalidStatus(
            f"Status harus salah satu dari: {', '.join(s.value for s in SubmissionStatus)}"
        ) from None


def update_status(db: Session, model: type, record_id: int, status: SubmissionStatus) -> dict[str, Any]:
    record = db.get(model, record_id)
    if record is None:
        raise RecordNotFound()
    record.status = status.value
    db.commit()
    db.refresh(record)
    return record.as_dict()


def members_of(db: Session, model: type, record_id: int) -> list[dict[str, Any]]:
    if db.get(model, record_id) is None:
        raise RecordNotFound()
    rows = db.scalars(
        select(Member)
        .where(Member.surat_type == model.__tablename__, Member.surat_id == record_id)
        .order_by(Member.id)
    ).all()
    return [r.as_dict() for r in rows]
