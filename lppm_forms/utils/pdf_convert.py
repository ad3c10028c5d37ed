"""DOCX -> PDF conversion for the notification attachment.

Two converters are available (selected with `PDF_CONVERTER`):

* ``cloudconvert``: CloudConvert job (import/upload -> convert -> export/url),
  polled until it reaches a terminal state or the timeout expires;
* ``local``: text-only rendition built from the DOCX paragraphs and tables with
  ReportLab. Good enough for a preview copy; layout is not preserved.

Both raise `ConversionError`; callers fall back to the DOCX attachment.
"""

from __future__ import annotations

import io
import logging
import time
from typing import Callable
from xml.sax.saxutils import escape as xml_escape

import httpx
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.table import Table as DocxTable
from docx.text.paragraph import Paragraph as DocxParagraph
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from lppm_forms.core.config import settings
from lppm_forms.core.errors import ConversionError

logger = logging.getLogger("lppm_forms.pdf")

PDF_MIME = "application/pdf"

Converter = Callable[[bytes, str], bytes]

_TERMINAL = ("finished", "error")


class CloudConvertClient:
    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.cloudconvert.com/v2",
        timeout_s: float = 60,
        poll_interval_s: float = 1.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=httpx.Timeout(30.0, connect=10.0),
            transport=self._transport,
        )

    def _storage_client(self) -> httpx.Client:
        # Pre-signed upload/download URLs: no API credentials
        return httpx.Client(timeout=httpx.Timeout(60.0, connect=10.0), follow_redirects=True, transport=self._transport)

    def convert(self, docx: bytes, filename: str) -> bytes:
        if not self.api_key:
            raise ConversionError("CLOUDCONVERT_API_KEY belum diatur")
        try:
            with self._client() as client:
                job = self._create_job(client)
                self._upload(job, docx, filename)
                finished = self._wait(client, job["id"])
                return self._download(finished)
        except httpx.HTTPError as exc:
            raise ConversionError(f"CloudConvert tidak dapat dihubungi: {exc}") from exc

    def _create_job(self, client: httpx.Client) -> dict:
        resp = client.post(
            f"{self.api_url}/jobs",
            json={
                "tasks": {
                    "upload": {"operation": "import/upload"},
                    "convert": {
                        "operation": "convert",
                        "input": "upload",
                        "input_format": "docx",
                        "output_format": "pdf",
                    },
                    "export": {"operation": "export/url", "input": "convert"},
                }
            },
        )
        resp.raise_for_status()
        return resp.json()["data"]

    def _upload(self, job: dict, docx: bytes, filename: str) -> None:
        task = next((t for t in job.get("tasks", []) if t.get("name") == "upload"), None)
        form = ((task or {}).get("result") or {}).get("form")
        if not form:
            raise ConversionError("Upload task tidak ditemukan")
        with self._storage_client() as storage:
            resp = storage.post(form["url"], data=form.get("parameters") or {}, files={"file": (filename, docx)})
        resp.raise_for_status()

    def _wait(self, client: httpx.Client, job_id: str) -> dict:
        deadline = time.monotonic() + self.timeout_s
        while True:
            resp = client.get(f"{self.api_url}/jobs/{job_id}")
            resp.raise_for_status()
            job = resp.json()["data"]
            if job.get("status") in _TERMINAL:
                if job["status"] == "error":
                    raise ConversionError(f"CloudConvert job {job_id} gagal")
                return job
            if time.monotonic() >= deadline:
                raise ConversionError(f"CloudConvert job {job_id} melewati batas waktu {self.timeout_s}s")
            time.sleep(self.poll_interval_s)

    def _download(self, job: dict) -> bytes:
        export = next(
            (
                t
                for t in job.get("tasks", [])
                if t.get("operation") == "export/url" and t.get("status") == "finished"
            ),
            None,
        )
        files = ((export or {}).get("result") or {}).get("files") or []
        if not files or not files[0].get("url"):
            raise ConversionError("Export task gagal atau tidak ada file")
        with self._storage_client() as storage:
            resp = storage.get(files[0]["url"])
        resp.raise_for_status()
        return resp.content


# ---- local rendition ----

_ALIGN = {
    WD_ALIGN_PARAGRAPH.CENTER: TA_CENTER,
    WD_ALIGN_PARAGRAPH.RIGHT: TA_RIGHT,
    WD_ALIGN_PARAGRAPH.JUSTIFY: TA_JUSTIFY,
}


def _markup(p: DocxParagraph) -> str:
    parts = []
    for run in p.runs:
        t = xml_escape(run.text or "").replace("\n", "<br/>")
        if not t:
            continue
        if run.bold:
            t = f"<b>{t}</b>"
        if run.italic:
            t = f"<i>{t}</i>"
        if run.underline:
            t = f"<u>{t}</u>"
        parts.append(t)
    return "".join(parts)


def docx_to_pdf_local(docx: bytes, filename: str = "") -> bytes:
    try:
        document = Document(io.BytesIO(docx))
    except Exception as exc:  # python-docx raises several unrelated types for bad packages
        raise ConversionError("Dokumen tidak dapat dibaca") from exc

    styles = getSampleStyleSheet()
    base = ParagraphStyle(
        name="Letter",
        parent=styles["Normal"],
        fontName="Times-Roman",
        fontSize=12,
        leading=16,
        alignment=TA_LEFT,
    )
    cell_style = ParagraphStyle(name="Cell", parent=base, fontSize=10, leading=13)

    def _para(p: DocxParagraph, style: ParagraphStyle) -> Paragraph:
        align = _ALIGN.get(p.alignment, style.alignment)
        st = style if align == style.alignment else ParagraphStyle(name=f"{style.name}-{align}", parent=style, alignment=align)
        return Paragraph(_markup(p) or "&nbsp;", st)

    frame_width = A4[0] - 30 * mm
    story = []
    for block in document.iter_inner_content():
        if isinstance(block, DocxParagraph):
            story.append(_para(block, base))
            continue
        if isinstance(block, DocxTable):
            data = [
                [[_para(p, cell_style) for p in cell.paragraphs] for cell in row.cells]
                for row in block.rows
            ]
            if not data:
                continue
            ncols = max(len(r) for r in data)
            data = [r + [""] * (ncols - len(r)) for r in data]
            t = Table(data, colWidths=[frame_width / ncols] * ncols, hAlign="LEFT")
            t.setStyle(
                TableStyle(
                    [
                        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#333333")),
                        ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ]
                )
            )
            story.extend([t, Spacer(1, 4 * mm)])

    buf = io.BytesIO()
    pdf = SimpleDocTemplate(
        buf,
        pagesize=A4,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        title=filename,
    )
    try:
        pdf.build(story or [Spacer(1, 1)])
    except Exception as exc:  # ReportLab layout errors (e.g. a cell taller than a page)
        raise ConversionError("Gagal menyusun PDF") from exc
    return buf.getvalue()


def get_converter() -> Converter | None:
    """Configured converter, or None when conversion is disabled."""
    kind = (settings.PDF_CONVERTER or "none").strip().lower()
    if kind == "cloudconvert":
        client = CloudConvertClient(
            settings.CLOUDCONVERT_API_KEY,
            settings.CLOUDCONVERT_API_URL,
            timeout_s=settings.PDF_CONVERT_TIMEOUT_SECONDS,
        )
        return client.convert
    if kind == "local":
        return docx_to_pdf_local
    if kind != "none":
        logger.warning("Unknown PDF_CONVERTER %r, conversion disabled", settings.PDF_CONVERTER)
    return None
