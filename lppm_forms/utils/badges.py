from __future__ import annotations

import logging
from typing import Iterable

import redis
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lppm_forms.core.redis import get_redis
from lppm_forms.db.models.submission import SUBMISSION_MODELS, SubmissionStatus

logger = logging.getLogger("lppm_forms.badges")

_BADGE_TTL_SECONDS = 15  # small TTL to reduce DB load while keeping near-realtime UX


def _key(relation: str) -> str:
    return f"unread:{relation}"


def get_unread_count(db: Session, relation: str) -> int:
    """Unread (`belum_dibaca`) submissions of one relation (cached with Redis TTL if available)."""
    r = get_redis()
    if r is not None:
        try:
            v = r.get(_key(relation))
            if v is not None:
                return int(v)
        except redis.RedisError as exc:
            logger.debug("badge cache read failed: %s", exc)

    model = SUBMISSION_MODELS[relation]
    cnt = db.scalar(
        select(func.count()).select_from(model).where(model.status == SubmissionStatus.BELUM_DIBACA.value)
    )

    if r is not None:
        try:
            r.setex(_key(relation), _BADGE_TTL_SECONDS, int(cnt or 0))
        except redis.RedisError as exc:
            logger.debug("badge cache write failed: %s", exc)
    return int(cnt or 0)


def unread_counts(db: Session, relations: Iterable[str]) -> dict[str, int]:
    return {rel: get_unread_count(db, rel) for rel in relations}


def invalidate_unread(relation: str) -> None:
    r = get_redis()
    if r is None:
        return
    try:
        r.delete(_key(relation))
    except redis.RedisError as exc:
        logger.debug("badge cache invalidation failed: %s", exc)
