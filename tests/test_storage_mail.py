import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError

from lppm_forms.core.errors import StorageError
from lppm_forms.utils.mailer import Attachment, Mailer
from lppm_forms.utils.notify import CONFIRMATION_SUBJECT, send_submission_notifications
from lppm_forms.utils.storage import LocalStorage, S3Storage, safe_object_name

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_safe_object_name():
    assert safe_object_name("Budi Santoso, M.Kom", ".docx", NOW) == "Budi_Santoso_M.Kom_1704067200000.docx"
    assert safe_object_name("a/b\\c", "pdf", NOW) == "a_b_c_1704067200000.pdf"
    assert safe_object_name("  ", ".docx", NOW) == "dokumen_1704067200000.docx"


def test_local_storage(tmp_path):
    storage = LocalStorage(tmp_path, "http://files.test/")
    url = storage.upload("surat-tugas-files", "Budi Santoso.docx", b"data", "application/octet-stream")
    assert url == "http://files.test/uploads/surat-tugas-files/Budi%20Santoso.docx"
    assert (tmp_path / "surat-tugas-files" / "Budi Santoso.docx").read_bytes() == b"data"


def test_local_storage_write_failure(tmp_path):
    blocker = tmp_path / "bucket"
    blocker.write_text("not a directory")
    with pytest.raises(StorageError):
        LocalStorage(tmp_path, "http://files.test").upload("bucket", "x.docx", b"data", "application/octet-stream")


class FakeS3:
    def __init__(self, fail=False):
        self.fail = fail
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType):
        if self.fail:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self.objects[(Bucket, Key)] = (Body, ContentType)


def test_s3_storage():
    client = FakeS3()
    storage = S3Storage(client, public_url="https://proj.supabase.test/storage/v1/object/public/")
    url = storage.upload("uploads", "a b.pdf", b"%PDF", "application/pdf")
    assert url == "https://proj.supabase.test/storage/v1/object/public/uploads/a%20b.pdf"
    assert client.objects[("uploads", "a b.pdf")] == (b"%PDF", "application/pdf")


def test_s3_storage_failure():
    with pytest.raises(StorageError):
        S3Storage(FakeS3(fail=True), public_url="https://s3.test").upload("uploads", "a.pdf", b"x", "application/pdf")


def test_build_message_with_attachment():
    mailer = Mailer(host="smtp.test", port=465, user="u", password="p", use_tls=True)
    msg = mailer.build_message(
        "ops@example.test",
        "Surat Tugas Buku Baru dari Budi",
        "Form baru",
        [Attachment("surat.docx", b"PK\x03\x04", "application/vnd.openxmlformats-officedocument.wordprocessingml.document")],
    )
    assert msg["To"] == "ops@example.test"
    assert msg["Subject"] == "Surat Tugas Buku Baru dari Budi"
    (part,) = list(msg.iter_attachments())
    assert part.get_filename() == "surat.docx"
    assert part.get_content() == b"PK\x03\x04"


def test_unconfigured_mailer_skips_send():
    mailer = Mailer(host="smtp.test", user="", password="")
    assert mailer.is_configured is False
    assert asyncio.run(mailer.send("a@b.test", "s", "b")) is False


class RecordingMailer:
    def __init__(self, fail_first=False):
        self.fail_first = fail_first
        self.sent = []

    async def send(self, to, subject, body, attachments=()):
        if self.fail_first and not self.sent:
            self.sent.append(None)
            raise OSError("smtp down")
        self.sent.append(SimpleNamespace(to=to, subject=subject, body=body, attachments=list(attachments)))
        return True


def test_notifications():
    mailer = RecordingMailer()
    attachment = Attachment("surat.pdf", b"%PDF", "application/pdf")
    asyncio.run(
        send_submission_notifications(
            mailer, submitter_email="budi@untag.ac.id", nama_ketua="Budi", subject="Surat Tugas PKM", attachment=attachment
        )
    )
    confirmation, ops = mailer.sent
    assert (confirmation.to, confirmation.subject) == ("budi@untag.ac.id", CONFIRMATION_SUBJECT)
    assert ops.subject == "Surat Tugas PKM Baru dari Budi"
    assert "budi@untag.ac.id" in ops.body
    assert ops.attachments == [attachment]


def test_notification_failures_are_logged_not_raised(caplog):
    mailer = RecordingMailer(fail_first=True)
    asyncio.run(
        send_submission_notifications(
            mailer, submitter_email="budi@untag.ac.id", nama_ketua="Budi", subject="Surat Tugas PKM", attachment=None
        )
    )
    assert mailer.sent[1].subject == "Surat Tugas PKM Baru dari Budi"
    assert "Confirmation mail" in caplog.text
