from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lppm_forms.db.session import get_db
from lppm_forms.modules.admin import queries as q

router = APIRouter(prefix="/api", tags=["records"])


@router.get("/{relation}")
def list_relation(
    relation: str,
    limit: int = Query(q.PUBLIC_LIMIT, ge=1, le=q.PUBLIC_MAX_LIMIT),
    db: Session = Depends(get_db),
):
    """Public read of one allow-listed relation, newest first."""
    model = q.resolve_table(relation)
    return q.public_rows(db, model, limit)
