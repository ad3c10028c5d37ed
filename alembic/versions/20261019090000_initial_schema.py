"""initial schema: admin, anggota_surat and the five form tables

Revision ID: 20261019090000
Revises:
Create Date: 2026-10-19T09:00:00Z
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019090000"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # lppm_forms.db.models imports every model file
    from lppm_forms.db.base import Base
    import lppm_forms.db.models  # noqa: F401

    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    # Submissions are never deleted; write an explicit migration for destructive rollback.
    pass
