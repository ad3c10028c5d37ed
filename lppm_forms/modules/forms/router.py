from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from lppm_forms.core.errors import MalformedBody
from lppm_forms.db.session import get_db
from lppm_forms.modules.forms.pipeline import IncomingFile, SubmissionPipeline
from lppm_forms.modules.forms.registry import FormRegistry, get_registry
from lppm_forms.utils.docx_render import DocxRenderer, get_renderer
from lppm_forms.utils.mailer import Mailer, get_mailer
from lppm_forms.utils.notify import send_submission_notifications
from lppm_forms.utils.pdf_convert import Converter, get_converter
from lppm_forms.utils.storage import Storage, get_storage

router = APIRouter(prefix="/api", tags=["forms"])

# Multipart field names accepted for the reference file
_FILE_FIELDS = ("pdfFile", "file")


async def _read_submission(request: Request) -> tuple[dict[str, Any], IncomingFile | None]:
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError as exc:
            raise MalformedBody() from exc
        return (body if isinstance(body, dict) else {}), None

    form = await request.form()
    fields: dict[str, Any] = {}
    reference = None
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key in _FILE_FIELDS and reference is None and value.filename:
                reference = IncomingFile(
                    filename=value.filename,
                    content=await value.read(),
                    content_type=value.content_type or "application/octet-stream",
                )
            continue
        fields.setdefault(key, value)
    return fields, reference


@router.post("/submit/{form_type}")
@router.post("/forms/{form_type}")
async def submit(
    form_type: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    registry: FormRegistry = Depends(get_registry),
    renderer: DocxRenderer = Depends(get_renderer),
    storage: Storage = Depends(get_storage),
    converter: Converter | None = Depends(get_converter),
    mailer: Mailer = Depends(get_mailer),
):
    # Reject unknown types before reading the body
    registry.lookup(form_type)

    fields, reference = await _read_submission(request)
    pipeline = SubmissionPipeline(db, registry, renderer, storage, converter)
    result = await run_in_threadpool(pipeline.run, form_type, fields, reference)

    background_tasks.add_task(
        send_submission_notifications,
        mailer,
        submitter_email=result.email,
        nama_ketua=result.nama_ketua,
        subject=result.config.subject,
        attachment=result.attachment,
    )
    return result.to_response()
