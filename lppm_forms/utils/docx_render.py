"""DOCX template rendering.

Templates are ordinary Word documents with `<<Placeholder>>` markers. A member
list is repeated with a loop section:

* row loop: a table row containing `<<#anggota>>` ... `<</anggota>>` (both tags
  may sit in the same row, or open in one row and close in a later one);
* paragraph loop: paragraphs between a paragraph that only holds
  `<<#anggota>>` and one that only holds `<</anggota>>`.

Inside a loop the current item's keys (`<<name>>`, `<<nidn>>`, `<<nomor>>`)
shadow the document placeholders. Expressions are evaluated with Jinja2, so
unknown names render empty and malformed markers fail the whole render.
"""

from __future__ import annotations

import io
import logging
import re
from copy import deepcopy
from pathlib import Path
from typing import Any, Iterable, Mapping
from zipfile import BadZipFile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.table import Table, _Row
from docx.text.paragraph import Paragraph
from jinja2 import Environment, TemplateError

from lppm_forms.core.config import settings
from lppm_forms.core.errors import RenderError, TemplateNotFound

logger = logging.getLogger("lppm_forms.docx")

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_LOOP_OPEN = re.compile(r"<<\s*#\s*(\w+)\s*>>")
_LOOP_CLOSE = re.compile(r"<<\s*/\s*(\w+)\s*>>")

# Only `<<...>>` is markup; `{%`, `{#` and `{{` in letter text pass through.
_env = Environment(
    variable_start_string="<<",
    variable_end_string=">>",
    block_start_string="<<%",
    block_end_string="%>>",
    comment_start_string="<<!",
    comment_end_string="!>>",
    autoescape=False,
    keep_trailing_newline=True,
)


def _loop_tags(name: str) -> re.Pattern[str]:
    return re.compile(r"<<\s*[#/]\s*" + re.escape(name) + r"\s*>>")


def _set_text(paragraph: Paragraph, text: str) -> None:
    """Replace paragraph text, keeping the formatting of the first run."""
    runs = paragraph.runs
    if not runs:
        paragraph.add_run(text)
        return
    runs[0].text = text
    for r in runs[1:]:
        r.text = ""


def _render_paragraph(paragraph: Paragraph, ctx: Mapping[str, Any]) -> None:
    text = paragraph.text
    if "<<" not in text:
        return
    try:
        rendered = _env.from_string(text).render(ctx)
    except TemplateError as exc:
        raise RenderError(f"Placeholder tidak valid: {text!r}") from exc
    _set_text(paragraph, rendered)


def _loop_items(ctx: Mapping[str, Any], name: str) -> list[dict[str, Any]]:
    items = ctx.get(name)
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise RenderError(f"Loop <<#{name}>> membutuhkan daftar")
    out = []
    for item in items:
        scope = dict(ctx)
        if isinstance(item, Mapping):
            scope.update(item)
        else:
            scope["item"] = item
        out.append(scope)
    return out


def _find_close(texts: list[str], start: int, name: str) -> int:
    """Index of the item closing the loop opened at `start` (nesting aware)."""
    depth = 0
    for i in range(start, len(texts)):
        depth += sum(1 for m in _LOOP_OPEN.finditer(texts[i]) if m.group(1) == name)
        depth -= sum(1 for m in _LOOP_CLOSE.finditer(texts[i]) if m.group(1) == name)
        if depth <= 0:
            return i
    raise RenderError(f"Loop <<#{name}>> tidak ditutup")


def _wrap(element, parent):
    return Table(element, parent) if element.tag.endswith("}tbl") else Paragraph(element, parent)


def _render_items(items: list, ctx: Mapping[str, Any]) -> None:
    texts = [it.text if isinstance(it, Paragraph) else "" for it in items]
    i = 0
    while i < len(items):
        item = items[i]
        if isinstance(item, Table):
            _render_table(item, ctx)
            i += 1
            continue

        opened = _LOOP_OPEN.fullmatch(item.text.strip())
        if not opened:
            _render_paragraph(item, ctx)
            i += 1
            continue

        name = opened.group(1)
        j = _find_close(texts, i, name)
        if _LOOP_CLOSE.fullmatch(texts[j].strip()) is None:
            raise RenderError(f"Penutup <</{name}>> harus berada di paragraf tersendiri")
        body = items[i + 1 : j]
        anchor = items[j]._element
        for scope in _loop_items(ctx, name):
            copies = []
            for el in body:
                new_el = deepcopy(el._element)
                anchor.addprevious(new_el)
                copies.append(_wrap(new_el, el._parent))
            _render_items(copies, scope)
        for el in (items[i], *body, items[j]):
            el._element.getparent().remove(el._element)
        i = j + 1


def _row_text(row: _Row) -> str:
    return "\n".join(p.text for cell in _unique_cells(row) for p in cell.paragraphs)


def _unique_cells(row: _Row) -> Iterable:
    seen: set[int] = set()
    for cell in row.cells:
        key = id(cell._tc)
        if key in seen:
            continue
        seen.add(key)
        yield cell


def _render_row(row: _Row, ctx: Mapping[str, Any], strip: re.Pattern[str] | None = None) -> None:
    for cell in _unique_cells(row):
        if strip is not None:
            for p in cell.paragraphs:
                if strip.search(p.text):
                    _set_text(p, strip.sub("", p.text))
        _render_items(list(cell.iter_inner_content()), ctx)


def _render_table(table: Table, ctx: Mapping[str, Any]) -> None:
    rows = list(table.rows)
    texts = [_row_text(r) for r in rows]
    i = 0
    while i < len(rows):
        opened = _LOOP_OPEN.search(texts[i])
        if not opened:
            _render_row(rows[i], ctx)
            i += 1
            continue

        name = opened.group(1)
        j = _find_close(texts, i, name)
        body = rows[i : j + 1]
        anchor = rows[i]._tr
        strip = _loop_tags(name)
        for scope in _loop_items(ctx, name):
            new_trs = [deepcopy(r._tr) for r in body]
            for tr in new_trs:
                anchor.addprevious(tr)
            for tr in new_trs:
                _render_row(_Row(tr, table), scope, strip)
        for r in body:
            r._tr.getparent().remove(r._tr)
        i = j + 1


def _header_footer_parts(document) -> Iterable:
    for section in document.sections:
        for part in (
            section.header,
            section.footer,
            section.first_page_header,
            section.first_page_footer,
            section.even_page_header,
            section.even_page_footer,
        ):
            if not part.is_linked_to_previous:
                yield part


class DocxRenderer:
    def __init__(self, template_dir: str | Path):
        self.template_dir = Path(template_dir)

    def template_path(self, name: str) -> Path:
        base = self.template_dir.resolve()
        path = (base / name).resolve()
        if Path(name).name != name or path.parent != base or not path.is_file():
            raise TemplateNotFound(f"Template tidak ditemukan: {name}")
        return path

    def render(self, template: str, placeholders: Mapping[str, Any]) -> bytes:
        path = self.template_path(template)
        try:
            document = Document(str(path))
        except (PackageNotFoundError, BadZipFile, KeyError, ValueError) as exc:
            raise RenderError(f"Template rusak: {template}") from exc

        _render_items(list(document.iter_inner_content()), placeholders)
        for part in _header_footer_parts(document):
            _render_items(list(part.iter_inner_content()), placeholders)

        buf = io.BytesIO()
        document.save(buf)
        logger.debug("Rendered %s (%d bytes)", template, buf.tell())
        return buf.getvalue()


def get_renderer() -> DocxRenderer:
    return DocxRenderer(settings.TEMPLATE_DIR)
