import json
from urllib.parse import urlparse

import pytest
from sqlalchemy import func, select

from lppm_forms.core.config import settings
from lppm_forms.db.models import Member, SuratTugasBuku
from lppm_forms.main import app
from lppm_forms.modules.forms.registry import build_registry
from lppm_forms.utils.docx_render import DOCX_MIME
from lppm_forms.utils.notify import CONFIRMATION_SUBJECT
from lppm_forms.utils.storage import get_storage

FORM_TYPES = ["HalamanPengesahan", "SuratTugasBuku", "SuratTugasHKI", "SuratTugasPenelitian", "SuratTugasPKM"]


@pytest.mark.parametrize("form_type", FORM_TYPES)
def test_submit_every_form_type(client, db, mailer, form_fields, form_type):
    members = [{"name": "Ani", "nidn": "111"}, {"name": "Citra", "nidn": "222"}]
    resp = client.post(f"/api/submit/{form_type}", data=form_fields(form_type, anggota=json.dumps(members)))

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert isinstance(body["id"], int)
    assert body["pdfUrl"] is None
    assert [m["nama"] for m in body["members"]] == ["Ani", "Citra"]
    assert body["fileUrl"].startswith(f"http://testserver/uploads/{settings.DOCUMENTS_BUCKET}/Budi_Santoso_")

    # Generated document is served back from the local backend
    doc = client.get(urlparse(body["fileUrl"]).path)
    assert doc.status_code == 200
    assert doc.content[:2] == b"PK"

    record = db.get(build_registry().lookup(form_type).model, body["id"])
    assert record.status == "belum_dibaca"


def test_notifications_sent_after_submit(client, mailer, form_fields):
    resp = client.post("/api/submit/SuratTugasHKI", data=form_fields("SuratTugasHKI"))
    assert resp.status_code == 200

    confirmation, ops = mailer.sent
    assert confirmation.to == "budi@untag.ac.id"
    assert confirmation.subject == CONFIRMATION_SUBJECT
    assert confirmation.attachments == []

    assert ops.to == "ops@example.test"
    assert ops.subject == "Surat Tugas HKI Baru dari Budi Santoso"
    (attachment,) = ops.attachments
    assert attachment.mime_type == DOCX_MIME
    assert attachment.filename.endswith(".docx")


def test_forms_alias_route(client, form_fields):
    resp = client.post("/api/forms/SuratTugasPKM", data=form_fields("SuratTugasPKM"))
    assert resp.status_code == 200
    assert resp.json()["success"] is True


def test_reference_pdf_upload(client, db, form_fields):
    resp = client.post(
        "/api/submit/SuratTugasBuku",
        data=form_fields("SuratTugasBuku"),
        files={"pdfFile": ("lampiran.pdf", b"%PDF-1.4 lampiran", "application/pdf")},
    )
    assert resp.status_code == 200, resp.text
    pdf_url = resp.json()["pdfUrl"]
    assert pdf_url.startswith(f"http://testserver/uploads/{settings.UPLOADS_BUCKET}/")
    assert client.get(urlparse(pdf_url).path).content == b"%PDF-1.4 lampiran"


def test_missing_required_field(client, db, mailer, form_fields):
    fields = form_fields("SuratTugasBuku")
    fields.pop("judul")
    resp = client.post("/api/submit/SuratTugasBuku", data=fields)

    assert resp.status_code == 400
    body = resp.json()
    assert body["missing"] == ["judul"]
    assert "judul" in body["detail"]
    assert db.scalar(select(func.count()).select_from(SuratTugasBuku)) == 0
    assert mailer.sent == []


def test_unknown_form_type_touches_no_storage(client, spy_storage, form_fields):
    app.dependency_overrides[get_storage] = lambda: spy_storage
    resp = client.post("/api/submit/SuratCinta", data=form_fields("SuratTugasBuku"))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Form type tidak valid"
    assert spy_storage.calls == []


def test_malformed_members_are_ignored(client, db, form_fields):
    resp = client.post("/api/submit/SuratTugasBuku", data=form_fields("SuratTugasBuku", anggota="[{oops"))
    assert resp.status_code == 200
    assert resp.json()["members"] == []
    assert db.scalar(select(func.count()).select_from(Member)) == 0


def test_upload_failure_returns_persisted_id(client, db, mailer, failing_storage, form_fields):
    app.dependency_overrides[get_storage] = lambda: failing_storage
    resp = client.post("/api/submit/SuratTugasBuku", data=form_fields("SuratTugasBuku"))

    assert resp.status_code == 500
    body = resp.json()
    assert body["persisted"] is True
    assert db.get(SuratTugasBuku, body["id"]) is not None
    assert mailer.sent == []


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "app": settings.APP_NAME}


def test_malformed_json_body(client, db, mailer):
    resp = client.post(
        "/api/submit/SuratTugasBuku",
        content=b'{"email": "a@b", ',
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Format data tidak valid"
    assert db.scalar(select(func.count()).select_from(SuratTugasBuku)) == 0
    assert mailer.sent == []


def test_json_body_is_accepted(client, form_fields):
    resp = client.post("/api/submit/SuratTugasPKM", json=form_fields("SuratTugasPKM"))
    assert resp.status_code == 200
    assert resp.json()["success"] is True
