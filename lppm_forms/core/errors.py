"""Application errors raised below the HTTP layer.

Routers and the submission pipeline raise these; `lppm_forms.main` turns them
into JSON responses. 4xx details are shown to the client as-is, 5xx details
are replaced by a generic message and the cause is logged server-side.
"""

from __future__ import annotations

from typing import Any, Sequence

from fastapi import HTTPException


class AppError(Exception):
    status_code: int = 500
    detail: str = "Terjadi kesalahan pada server"

    def __init__(self, detail: str | None = None, **extra: Any):
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail
        self.extra = extra

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.detail, **self.extra}


# ---- client errors ----


class InvalidFormType(AppError):
    status_code = 400
    detail = "Form type tidak valid"


class MissingFields(AppError):
    status_code = 400

    def __init__(self, fields: Sequence[str]):
        self.fields = list(fields)
        super().__init__(f"Field wajib belum diisi: {', '.join(self.fields)}", missing=self.fields)


class InvalidRelation(AppError):
    status_code = 400
    detail = "Table tidak valid"


class InvalidStatus(AppError):
    status_code = 400
    detail = "Status tidak valid"


class UploadTooLarge(AppError):
    status_code = 400
    detail = "File terlalu besar"


class MalformedBody(AppError):
    status_code = 400
    detail = "Format data tidak valid"


class RecordNotFound(AppError):
    status_code = 404
    detail = "Data tidak ditemukan"


# ---- server errors ----


class TemplateNotFound(AppError):
    detail = "Template dokumen tidak ditemukan"


class RenderError(AppError):
    detail = "Gagal membuat dokumen"


class StorageError(AppError):
    detail = "Gagal mengunggah dokumen"


class ConversionError(AppError):
    detail = "Gagal mengonversi dokumen ke PDF"


def require(condition: bool, msg: str = "Akses ditolak", status_code: int = 403) -> None:
    """Small helper used across routers.

    Defaults to 403 (permission denied). For validation errors or not-found cases,
    pass `status_code=400/404`.
    """
    if not condition:
        raise HTTPException(status_code=status_code, detail=msg)
