"""
Test configuration and fixtures.

Provides:
- Environment for Settings (throwaway SQLite database, local storage and
  generated DOCX templates under a temp dir, Redis disabled)
- Table cleanup after each test
- Fake mailer capturing messages
- Admin token minting for authenticated tests
"""
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest

_TMP = Path(tempfile.mkdtemp(prefix="lppm_forms_tests_"))

# Settings are read at import time: configure before importing the app
os.environ.update(
    {
        "SECRET_KEY": "test-secret-key",
        "DATABASE_URL": f"sqlite:///{_TMP / 'test.db'}",
        "REDIS_URL": "",
        "TEMPLATE_DIR": str(_TMP / "templates"),
        "STORAGE_BACKEND": "local",
        "UPLOAD_DIR": str(_TMP / "uploads"),
        "PUBLIC_BASE_URL": "http://testserver",
        "PDF_CONVERTER": "none",
        "OPS_MAILBOX": "ops@example.test",
        "SMTP_USER": "",
        "SMTP_PASSWORD": "",
        "AUTO_CREATE_ADMIN": "false",
    }
)

from fastapi.testclient import TestClient  # noqa: E402

from lppm_forms.core.config import settings  # noqa: E402
from lppm_forms.core.errors import StorageError  # noqa: E402
from lppm_forms.core.security import sign_token  # noqa: E402
from lppm_forms.db.base import Base  # noqa: E402
from lppm_forms.db.session import SessionLocal, engine  # noqa: E402
from lppm_forms.main import app  # noqa: E402
from lppm_forms.scripts.build_templates import write_templates  # noqa: E402
from lppm_forms.utils.mailer import get_mailer  # noqa: E402


VALID_FIELDS = {
    "HalamanPengesahan": {
        "email": "budi@untag.ac.id",
        "nama_ketua": "Budi Santoso",
        "nidn": "1122334455",
        "jabatan": "Lektor",
        "fakultas": "Teknik",
        "prodi": "Informatika",
        "judul": "Sistem Informasi Desa",
        "biaya_tahun": "15000000",
        "tanggal": "2024-03-05",
    },
    "SuratTugasBuku": {
        "email": "budi@untag.ac.id",
        "nama_ketua": "Budi Santoso",
        "nidn": "1122334455",
        "jabatan": "Lektor",
        "judul": "Pemrograman Dasar",
        "jenis_buku": "Buku Ajar",
        "penerbit_buku": "Untag Press",
        "tanggal": "2024-03-05",
    },
    "SuratTugasHKI": {
        "email": "budi@untag.ac.id",
        "nama_ketua": "Budi Santoso",
        "nidn": "1122334455",
        "jabatan": "Lektor",
        "judul_ciptaan": "Aplikasi Absensi",
        "jenis_hki": "Program Komputer",
        "tanggal_permohonan": "2024-01-15",
        "tanggal": "2024-03-05",
    },
    "SuratTugasPenelitian": {
        "email": "budi@untag.ac.id",
        "nama_ketua": "Budi Santoso",
        "nidn": "1122334455",
        "fakultas": "Teknik",
        "prodi": "Informatika",
        "judul": "Analisis Banjir Samarinda",
        "tanggal_pengajuan": "2023-07-01",
        "tanggal": "2024-03-05",
    },
    "SuratTugasPKM": {
        "email": "budi@untag.ac.id",
        "nama_ketua": "Budi Santoso",
        "nidn": "1122334455",
        "fakultas": "Ekonomi",
        "prodi": "Manajemen",
        "judul": "Pelatihan UMKM",
        "tanggal_pengajuan": "2023-07-01",
        "tanggal": "2024-03-05",
    },
}


class FakeMailer:
    is_configured = True

    def __init__(self):
        self.sent = []

    async def send(self, to, subject, body, attachments=()):
        self.sent.append(SimpleNamespace(to=to, subject=subject, body=body, attachments=list(attachments)))
        return True


class SpyStorage:
    """Records uploads instead of storing them."""

    def __init__(self):
        self.calls = []

    def upload(self, bucket, key, data, content_type):
        self.calls.append(SimpleNamespace(bucket=bucket, key=key, data=data, content_type=content_type))
        return f"mem://{bucket}/{key}"


class FailingStorage:
    def upload(self, bucket, key, data, content_type):
        raise StorageError(f"bucket {bucket} unavailable")


# =============================================================================
# Database / templates
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def _schema_and_templates():
    Base.metadata.create_all(bind=engine)
    write_templates(settings.TEMPLATE_DIR, overwrite=True)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    app.dependency_overrides.clear()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def mailer():
    fake = FakeMailer()
    app.dependency_overrides[get_mailer] = lambda: fake
    return fake


@pytest.fixture
def client(mailer):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {sign_token({'username': 'admin'})}"}


@pytest.fixture
def form_fields():
    def _make(form_type: str, **overrides):
        fields = dict(VALID_FIELDS[form_type])
        fields.update(overrides)
        return fields

    return _make


@pytest.fixture
def spy_storage():
    return SpyStorage()


@pytest.fixture
def failing_storage():
    return FailingStorage()
