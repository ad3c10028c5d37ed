"""Object storage for generated documents and reference uploads.

Two buckets are used: `DOCUMENTS_BUCKET` for rendered letters and
`UPLOADS_BUCKET` for files attached by the submitter. The `local` backend
writes under `UPLOAD_DIR/<bucket>/` and is served by the app at `/uploads`.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from lppm_forms.core.config import settings
from lppm_forms.core.errors import StorageError

logger = logging.getLogger("lppm_forms.storage")

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_object_name(stem: str, ext: str, now: datetime | None = None) -> str:
    """`<stem>_<timestamp><ext>` with unsafe characters replaced by `_`."""
    now = now or datetime.now(timezone.utc)
    clean = _UNSAFE.sub("_", (stem or "").strip()).strip("_") or "dokumen"
    ext = ext if ext.startswith(".") else f".{ext}"
    return f"{clean}_{int(now.timestamp() * 1000)}{ext}"


class Storage(Protocol):
    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Store `data` and return its public URL."""
        ...


class LocalStorage:
    def __init__(self, root: str | Path, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        path = self.root / bucket / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Gagal menyimpan {bucket}/{key}") from exc
        logger.info("Stored %s/%s (%d bytes)", bucket, key, len(data))
        return f"{self.base_url}/uploads/{quote(bucket)}/{quote(key)}"


class S3Storage:
    """S3-compatible bucket storage (AWS, MinIO, Supabase storage)."""

    def __init__(self, client=None, public_url: str = ""):
        self.client = client or self._make_client()
        self.public_url = (public_url or settings.S3_PUBLIC_URL or settings.S3_ENDPOINT_URL).rstrip("/")

    @staticmethod
    def _make_client():
        return boto3.client(
            "s3",
            region_name=settings.S3_REGION or None,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            endpoint_url=settings.S3_ENDPOINT_URL.rstrip("/") or None,
        )

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        try:
            self.client.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Gagal mengunggah {bucket}/{key}") from exc
        logger.info("Uploaded s3://%s/%s (%d bytes)", bucket, key, len(data))
        if self.public_url:
            return f"{self.public_url}/{quote(bucket)}/{quote(key)}"
        return f"https://{bucket}.s3.amazonaws.com/{quote(key)}"


def get_storage() -> Storage:
    if settings.STORAGE_BACKEND == "s3":
        return S3Storage()
    return LocalStorage(settings.UPLOAD_DIR, settings.PUBLIC_BASE_URL)
