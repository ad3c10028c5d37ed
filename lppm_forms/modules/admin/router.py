from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from lppm_forms.auth.deps import get_current_admin
from lppm_forms.db.session import get_db
from lppm_forms.modules.admin import queries as q
from lppm_forms.modules.forms.registry import FormRegistry, get_registry
from lppm_forms.utils.badges import invalidate_unread, unread_counts

logger = logging.getLogger("lppm_forms.admin")

router = APIRouter(prefix="/api/admin", tags=["admin"])


class StatusIn(BaseModel):
    status: str = ""


# Table dependencies are declared before `get_current_admin` so an unknown
# table is rejected with 400 whether or not a token was sent.
def admin_table(table: str) -> type:
    return q.resolve_table(table)


def submission_table(table: str) -> type:
    return q.resolve_submission_table(table)


@router.get("/all-tables")
def all_tables(admin: str = Depends(get_current_admin)):
    return {"tables": q.list_tables()}


@router.get("/unread-counts")
def unread(
    admin: str = Depends(get_current_admin),
    db: Session = Depends(get_db),
    registry: FormRegistry = Depends(get_registry),
):
    return {"counts": unread_counts(db, registry.relations())}


@router.get("/{table}")
def list_rows(
    model: type = Depends(admin_table),
    admin: str = Depends(get_current_admin),
    page: int = 1,
    limit: int = q.DEFAULT_LIMIT,
    search: str = "",
    db: Session = Depends(get_db),
):
    return q.list_rows(db, model, page, limit, search)


@router.get("/{table}/count")
def count_rows(
    model: type = Depends(admin_table),
    admin: str = Depends(get_current_admin),
    search: str = "",
    db: Session = Depends(get_db),
):
    return {"total": q.count_rows(db, model, search)}


@router.get("/{table}/{record_id}/members")
def members(
    record_id: int,
    model: type = Depends(submission_table),
    admin: str = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return {"data": q.members_of(db, model, record_id)}


@router.post("/{table}/{record_id}/status")
def update_status(
    record_id: int,
    body: StatusIn,
    model: type = Depends(submission_table),
    admin: str = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    status = q.parse_status(body.status)
    row = q.update_status(db, model, record_id, status)
    invalidate_unread(model.__tablename__)
    logger.info("%s set %s #%s to %s", admin, model.__tablename__, record_id, status.value)
    return row
