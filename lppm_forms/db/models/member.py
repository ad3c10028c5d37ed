from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String, DateTime, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from lppm_forms.db.base import Base


class Member(Base):
    """Anggota (co-author / participant) listed on a submission.

    The parent is identified by (surat_type, surat_id): surat_type is the
    relation name of one of the submission tables, so there is no real foreign
    key and no cascading delete.
    """

    __tablename__ = "anggota_surat"
    __table_args__ = (Index("ix_anggota_surat_parent", "surat_type", "surat_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    surat_type: Mapped[str] = mapped_column(String(64))
    surat_id: Mapped[int] = mapped_column(Integer)

    nama: Mapped[str] = mapped_column(String(255), default="")
    nidn: Mapped[str] = mapped_column(String(64), default="")
    # SINTA id (optional)
    idsintaanggota: Mapped[str] = mapped_column(String(64), default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
