from __future__ import annotations

import logging
import os
import time
import subprocess
from sqlalchemy import create_engine, inspect, select, text
from sqlalchemy.exc import OperationalError

from lppm_forms.core.config import settings

logger = logging.getLogger("lppm_forms.migrate")


def wait_for_db(engine, timeout_s: int = 60) -> None:
    """Wait until the database is accepting connections."""
    start = time.time()
    delay = 1.0

    while True:
        try:
            with engine.begin() as conn:
                conn.execute(text("SELECT 1"))
            return
        except OperationalError as e:
            if time.time() - start > timeout_s:
                raise
            logger.info("Database not ready (%s), retrying in %.1fs", e.orig, delay)
            time.sleep(delay)
            delay = min(delay * 1.5, 5.0)


def run(cmd: list[str]) -> int:
    p = subprocess.run(cmd, check=False)
    return p.returncode


def seed_admin() -> bool:
    """Create the bootstrap admin once. Returns True when a row was added."""
    from sqlalchemy.orm import Session
    from lppm_forms.db.session import SessionLocal
    from lppm_forms.db.models.admin import Admin
    from lppm_forms.core.security import hash_password

    if not settings.DEFAULT_ADMIN_PASSWORD:
        logger.warning("AUTO_CREATE_ADMIN is set but DEFAULT_ADMIN_PASSWORD is empty, skipping")
        return False

    db: Session = SessionLocal()
    try:
        exists = db.scalar(select(Admin).where(Admin.username == settings.DEFAULT_ADMIN_USERNAME))
        if exists:
            return False
        db.add(
            Admin(
                username=settings.DEFAULT_ADMIN_USERNAME,
                password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
            )
        )
        db.commit()
        logger.info("Created admin %r", settings.DEFAULT_ADMIN_USERNAME)
        return True
    finally:
        db.close()


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    engine = create_engine(settings.DATABASE_URL, future=True, pool_pre_ping=True)

    # Wait for DB readiness (important in docker-compose)
    wait_for_db(engine, timeout_s=int(os.getenv("DB_WAIT_TIMEOUT", "90")))

    tables = set(inspect(engine).get_table_names())

    # Run alembic
    if "alembic_version" not in tables and "admin" in tables:
        # Existing schema without alembic tracking: stamp head
        rc = run(["alembic", "stamp", "head"])
    else:
        rc = run(["alembic", "upgrade", "head"])
    if rc != 0:
        # Don't stamp on failure; fail fast so schema doesn't drift from alembic_version.
        return rc

    # Seed default admin once (idempotent)
    if settings.AUTO_CREATE_ADMIN:
        seed_admin()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
