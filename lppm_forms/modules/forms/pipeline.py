"""One incoming form: validate -> render -> persist -> upload -> (convert).

The order is fixed: nothing is written to the database before the document
renders, and uploads happen only after the submission and its members are
committed. An upload failure therefore leaves a saved record without
`file_url`; the error carries the record id and `persisted=True`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lppm_forms.core.config import settings
from lppm_forms.core.errors import ConversionError, MissingFields, StorageError, UploadTooLarge
from lppm_forms.db.models.member import Member
from lppm_forms.db.models.submission import SubmissionStatus, writable_columns
from lppm_forms.modules.forms.mapper import get_field, pick
from lppm_forms.modules.forms.registry import FormRegistry, FormTypeConfig
from lppm_forms.utils.badges import invalidate_unread
from lppm_forms.utils.docx_render import DOCX_MIME, DocxRenderer
from lppm_forms.utils.mailer import Attachment
from lppm_forms.utils.pdf_convert import PDF_MIME, Converter
from lppm_forms.utils.storage import Storage, safe_object_name

logger = logging.getLogger("lppm_forms.pipeline")


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class SubmissionResult:
    id: int
    config: FormTypeConfig
    email: str
    nama_ketua: str
    file_url: str
    pdf_url: str | None
    members: list[dict[str, Any]] = field(default_factory=list)
    attachment: Attachment | None = None

    def to_response(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": "Formulir berhasil dikirim",
            "id": self.id,
            "fileUrl": self.file_url,
            "pdfUrl": self.pdf_url,
            "members": self.members,
        }


def parse_members(raw: Any) -> list[dict[str, str]]:
    """Member list from the serialized `anggota` field.

    Accepts a JSON array string or an already-decoded list. Anything that is
    not a list of objects yields `[]`; entries without both a name and an
    NIDN are dropped.
    """
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.info("Ignoring malformed anggota payload")
            return []
    if not isinstance(raw, list):
        return []

    out = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        name = pick(entry, ("name", "nama"))
        nidn = pick(entry, ("nidn",))
        name = "" if name is None else str(name).strip()
        nidn = "" if nidn is None else str(nidn).strip()
        if not name or not nidn:
            continue
        sinta = pick(entry, ("idsintaAnggota", "idsintaanggota", "idsinta"))
        out.append({"name": name, "nidn": nidn, "idsintaAnggota": "" if sinta is None else str(sinta).strip()})
    return out


def missing_fields(fields: Mapping[str, Any], required: Sequence[str]) -> list[str]:
    return [name for name in required if not get_field(fields, name)]


def _member_dict(m: Member) -> dict[str, Any]:
    return {"id": m.id, "nama": m.nama, "nidn": m.nidn, "idsintaanggota": m.idsintaanggota}


class SubmissionPipeline:
    def __init__(
        self,
        db: Session,
        registry: FormRegistry,
        renderer: DocxRenderer,
        storage: Storage,
        converter: Converter | None = None,
    ):
        self.db = db
        self.registry = registry
        self.renderer = renderer
        self.storage = storage
        self.converter = converter

    def run(
        self,
        form_type: str,
        fields: Mapping[str, Any],
        reference: IncomingFile | None = None,
    ) -> SubmissionResult:
        cfg = self.registry.lookup(form_type)

        missing = missing_fields(fields, cfg.required_fields)
        if missing:
            raise MissingFields(missing)
        if reference is not None and len(reference.content) > settings.MAX_UPLOAD_MB * 1024 * 1024:
            raise UploadTooLarge(f"File melebihi batas {settings.MAX_UPLOAD_MB} MB")

        members = parse_members(fields.get("anggota"))
        placeholders = cfg.mapper(fields, members)
        document = self.renderer.render(cfg.template, placeholders)

        record_id, saved_members = self._persist(cfg, fields, members)
        nama_ketua = get_field(fields, "nama_ketua")
        logger.info("Saved %s #%s (%d anggota)", cfg.relation, record_id, len(saved_members))

        docx_name = safe_object_name(nama_ketua, ".docx")
        try:
            file_url, pdf_url = self._upload(record_id, docx_name, document, nama_ketua, reference)
        except StorageError as exc:
            logger.exception("Upload failed for %s #%s", cfg.relation, record_id)
            raise StorageError(
                "Data tersimpan, tetapi dokumen gagal diunggah",
                id=record_id,
                persisted=True,
            ) from exc

        self._store_urls(cfg, record_id, file_url, pdf_url)

        return SubmissionResult(
            id=record_id,
            config=cfg,
            email=get_field(fields, "email"),
            nama_ketua=nama_ketua,
            file_url=file_url,
            pdf_url=pdf_url,
            members=saved_members,
            attachment=self._attachment(docx_name, document),
        )

    def _persist(
        self, cfg: FormTypeConfig, fields: Mapping[str, Any], members: list[dict[str, str]]
    ) -> tuple[int, list[dict[str, Any]]]:
        model = cfg.model
        values = {}
        for col in writable_columns(model):
            v = get_field(fields, col)
            if v:
                values[col] = v
        record = model(**values, status=SubmissionStatus.BELUM_DIBACA.value)
        try:
            self.db.add(record)
            self.db.flush()
            for m in members:
                self.db.add(
                    Member(
                        surat_type=cfg.relation,
                        surat_id=record.id,
                        nama=m["name"],
                        nidn=m["nidn"],
                        idsintaanggota=m["idsintaAnggota"],
                    )
                )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        invalidate_unread(cfg.relation)

        rows = self.db.scalars(
            select(Member)
            .where(Member.surat_type == cfg.relation, Member.surat_id == record.id)
            .order_by(Member.id)
        ).all()
        return record.id, [_member_dict(m) for m in rows]

    def _upload(
        self,
        record_id: int,
        docx_name: str,
        document: bytes,
        nama_ketua: str,
        reference: IncomingFile | None,
    ) -> tuple[str, str | None]:
        file_url = self.storage.upload(settings.DOCUMENTS_BUCKET, docx_name, document, DOCX_MIME)
        pdf_url = None
        if reference is not None and reference.content:
            original = PurePath(reference.filename or "lampiran.pdf")
            ref_name = safe_object_name(f"{nama_ketua}_{original.stem}", original.suffix or ".pdf")
            pdf_url = self.storage.upload(settings.UPLOADS_BUCKET, ref_name, reference.content, reference.content_type)
        return file_url, pdf_url

    def _store_urls(self, cfg: FormTypeConfig, record_id: int, file_url: str, pdf_url: str | None) -> None:
        record = self.db.get(cfg.model, record_id)
        record.file_url = file_url
        record.pdf_url = pdf_url
        self.db.commit()

    def _attachment(self, docx_name: str, document: bytes) -> Attachment:
        """Notification attachment: the PDF rendition when available, else the DOCX."""
        if self.converter is not None:
            try:
                pdf = self.converter(document, docx_name)
                return Attachment(str(PurePath(docx_name).with_suffix(".pdf")), pdf, PDF_MIME)
            except ConversionError as exc:
                logger.warning("PDF conversion failed for %s, attaching DOCX: %s", docx_name, exc)
        return Attachment(docx_name, document, DOCX_MIME)
