from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Integer, String, Text, DateTime, text
from sqlalchemy.orm import Mapped, mapped_column

from lppm_forms.db.base import Base


class SubmissionStatus(str, enum.Enum):
    BELUM_DIBACA = "belum_dibaca"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubmissionMixin:
    """Columns shared by every form relation.

    Form values are stored as the submitted strings; formatting happens when
    the document is rendered.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    email: Mapped[str] = mapped_column(String(255), default="")
    nama_ketua: Mapped[str] = mapped_column(String(255), default="")
    nidn: Mapped[str] = mapped_column(String(64), default="")
    jabatan: Mapped[str] = mapped_column(String(120), default="")
    tanggal: Mapped[str] = mapped_column(String(40), default="")

    # Review state (admin panel)
    status: Mapped[str] = mapped_column(String(20), default=SubmissionStatus.BELUM_DIBACA.value, index=True)

    # Generated document + user supplied reference file
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    pdf_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class HalamanPengesahan(SubmissionMixin, Base):
    __tablename__ = "halaman_pengesahan"

    nama: Mapped[str] = mapped_column(String(255), default="")
    puslitbang: Mapped[str] = mapped_column(String(255), default="")
    fakultas: Mapped[str] = mapped_column(String(255), default="")
    prodi: Mapped[str] = mapped_column(String(255), default="")
    nomor_hp: Mapped[str] = mapped_column(String(40), default="")
    judul: Mapped[str] = mapped_column(Text, default="")
    nama_institusi: Mapped[str] = mapped_column(String(255), default="")
    alamat: Mapped[str] = mapped_column(Text, default="")
    penanggung_jawab: Mapped[str] = mapped_column(String(255), default="")
    tahun_pelaksana: Mapped[str] = mapped_column(String(40), default="")
    biaya_tahun: Mapped[str] = mapped_column(String(40), default="")
    biaya_keseluruhan: Mapped[str] = mapped_column(String(40), default="")
    nama_dekan: Mapped[str] = mapped_column(String(255), default="")
    nip_dekan: Mapped[str] = mapped_column(String(64), default="")
    nama_peneliti: Mapped[str] = mapped_column(String(255), default="")
    nip_ketua: Mapped[str] = mapped_column(String(64), default="")


class SuratTugasBuku(SubmissionMixin, Base):
    __tablename__ = "surat_tugas_buku"

    judul: Mapped[str] = mapped_column(Text, default="")
    jenis_buku: Mapped[str] = mapped_column(String(120), default="")
    penerbit_buku: Mapped[str] = mapped_column(String(255), default="")


class SuratTugasHKI(SubmissionMixin, Base):
    __tablename__ = "surat_tugas_hki"

    judul_ciptaan: Mapped[str] = mapped_column(Text, default="")
    jenis_hki: Mapped[str] = mapped_column(String(120), default="")
    tanggal_permohonan: Mapped[str] = mapped_column(String(40), default="")


class SuratTugasPenelitian(SubmissionMixin, Base):
    __tablename__ = "surat_tugas_penelitian"

    fakultas: Mapped[str] = mapped_column(String(255), default="")
    prodi: Mapped[str] = mapped_column(String(255), default="")
    judul: Mapped[str] = mapped_column(Text, default="")
    tanggal_pengajuan: Mapped[str] = mapped_column(String(40), default="")


class SuratTugasPKM(SubmissionMixin, Base):
    __tablename__ = "surat_tugas_pkm"

    fakultas: Mapped[str] = mapped_column(String(255), default="")
    prodi: Mapped[str] = mapped_column(String(255), default="")
    judul: Mapped[str] = mapped_column(Text, default="")
    tanggal_pengajuan: Mapped[str] = mapped_column(String(40), default="")


# Fixed allow-list of submission relations -> ORM model
SUBMISSION_MODELS: dict[str, type[SubmissionMixin]] = {
    m.__tablename__: m
    for m in (HalamanPengesahan, SuratTugasBuku, SuratTugasHKI, SuratTugasPenelitian, SuratTugasPKM)
}

# Columns the pipeline never takes from client input
SYSTEM_COLUMNS = frozenset({"id", "status", "file_url", "pdf_url", "created_at"})


def writable_columns(model: type) -> list[str]:
    """Form columns of `model` that may be filled from a submission."""
    return [c.key for c in model.__mapper__.column_attrs if c.key not in SYSTEM_COLUMNS]
