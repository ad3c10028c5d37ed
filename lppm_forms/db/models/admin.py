from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column
from lppm_forms.db.base import Base

class Admin(Base):
    """Admin panel account (provisioned out of band, see scripts/migrate.py)."""

    __tablename__ = "admin"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(80), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
