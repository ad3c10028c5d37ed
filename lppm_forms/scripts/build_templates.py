"""Write starter DOCX templates for every registered form type.

    python -m lppm_forms.scripts.build_templates [target_dir] [--force]

The generated letters are plain but complete: every placeholder of the form
type appears once and the member list is a repeating section. Replace them
with the office's letterhead versions in production.
"""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from lppm_forms.core.config import settings
from lppm_forms.modules.forms import mapper as m
from lppm_forms.modules.forms.registry import DEFAULT_FORMS

logger = logging.getLogger("lppm_forms.templates")

FIELDS = {
    "HalamanPengesahan": m.HALAMAN_PENGESAHAN_FIELDS,
    "SuratTugasBuku": m.SURAT_TUGAS_BUKU_FIELDS,
    "SuratTugasHKI": m.SURAT_TUGAS_HKI_FIELDS,
    "SuratTugasPenelitian": m.SURAT_TUGAS_KEGIATAN_FIELDS,
    "SuratTugasPKM": m.SURAT_TUGAS_KEGIATAN_FIELDS,
}

# Approval pages list members as paragraphs, task letters as a table
PARAGRAPH_LOOP = {"HalamanPengesahan"}

# Shown at the bottom of the letter instead of in the field table
_SIGNATURE = {"Tanggal"}


def label(placeholder: str) -> str:
    """`NamaKetua` -> `Nama Ketua`, `No_Tanggal_Permohonan` -> `No Tanggal Permohonan`."""
    words = re.sub(r"(?<=[a-z])(?=[A-Z])", " ", placeholder.replace("_", " "))
    return " ".join(w[:1].upper() + w[1:] for w in words.split())


def build_document(title: str, placeholders: list[str], paragraph_loop: bool = False):
    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Times New Roman"
    style.font.size = Pt(12)

    heading = doc.add_paragraph()
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = heading.add_run(title.upper())
    run.bold = True

    fields = doc.add_table(rows=0, cols=2)
    for name in placeholders:
        if name in _SIGNATURE:
            continue
        cells = fields.add_row().cells
        cells[0].text = label(name)
        cells[1].text = f": <<{name}>>"

    doc.add_paragraph("Anggota:")
    if paragraph_loop:
        doc.add_paragraph("<<#anggota>>")
        doc.add_paragraph("<<nomor>> <<name>> (NIDN <<nidn>>)")
        doc.add_paragraph("<</anggota>>")
    else:
        members = doc.add_table(rows=1, cols=3)
        members.style = "Table Grid"
        for cell, text in zip(members.rows[0].cells, ("No", "Nama", "NIDN")):
            cell.text = text
        row = members.add_row().cells
        row[0].text = "<<#anggota>><<nomor>>"
        row[1].text = "<<name>>"
        row[2].text = "<<nidn>><</anggota>>"

    closing = doc.add_paragraph("Samarinda, <<Tanggal>>")
    closing.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    doc.sections[0].footer.paragraphs[0].text = "LPPM <<NamaKetua>>"
    return doc


def write_templates(target_dir: str | Path, overwrite: bool = False) -> list[Path]:
    target = Path(target_dir)
    target.mkdir(parents=True, exist_ok=True)
    written = []
    for cfg in DEFAULT_FORMS:
        path = target / cfg.template
        if path.exists() and not overwrite:
            logger.info("Keeping existing %s", path)
            continue
        placeholders = [p for p, _, _ in FIELDS[cfg.key]]
        doc = build_document(cfg.subject, placeholders, paragraph_loop=cfg.key in PARAGRAPH_LOOP)
        doc.save(str(path))
        written.append(path)
    return written


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = sys.argv[1:] if argv is None else argv
    force = "--force" in args
    positional = [a for a in args if not a.startswith("--")]
    target = positional[0] if positional else settings.TEMPLATE_DIR
    for path in write_templates(target, overwrite=force):
        print(path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
