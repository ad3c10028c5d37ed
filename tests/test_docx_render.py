import io

import pytest
from docx import Document

from lppm_forms.core.config import settings
from lppm_forms.core.errors import RenderError, TemplateNotFound
from lppm_forms.modules.forms import mapper as m
from lppm_forms.utils.docx_render import DocxRenderer


def all_text(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    parts = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells)
    for section in doc.sections:
        parts.extend(p.text for p in section.footer.paragraphs)
    return "\n".join(parts)


@pytest.fixture
def renderer():
    return DocxRenderer(settings.TEMPLATE_DIR)


def save(doc, path):
    doc.save(str(path))
    return path.name


def test_row_loop_repeats_members(renderer):
    placeholders = m.map_surat_tugas_buku(
        {"nama_ketua": "Budi", "judul": "Pemrograman", "tanggal": "2024-03-05"},
        [{"name": "Ani", "nidn": "111"}, {"name": "Citra", "nidn": "222"}],
    )
    doc = Document(io.BytesIO(renderer.render("Surat Tugas Buku.docx", placeholders)))

    members = doc.tables[1]
    rows = [[c.text for c in r.cells] for r in members.rows]
    assert rows == [["No", "Nama", "NIDN"], ["1", "Ani", "111"], ["2", "Citra", "222"]]


def test_placeholders_headers_and_footers_are_rendered(renderer):
    placeholders = m.map_surat_tugas_buku({"nama_ketua": "Budi", "tanggal": "2024-03-05"}, [])
    text = all_text(renderer.render("Surat Tugas Buku.docx", placeholders))
    assert "Samarinda, 5 Maret 2024" in text
    assert "LPPM Budi" in text
    assert "<<" not in text and ">>" not in text


def test_empty_member_list_removes_loop_row(renderer):
    placeholders = m.map_surat_tugas_pkm({"nama_ketua": "Budi"}, [])
    doc = Document(io.BytesIO(renderer.render("Surat Tugas PKM.docx", placeholders)))
    assert len(doc.tables[1].rows) == 1


def test_paragraph_loop(renderer):
    placeholders = m.map_halaman_pengesahan({"nama_ketua": "Budi"}, [{"name": "Ani", "nidn": "111"}])
    text = all_text(renderer.render("Halaman Pengesahan.docx", placeholders))
    assert "Ani (NIDN 111)" in text
    assert "anggota" not in text.replace("Anggota:", "")


def test_unknown_placeholder_renders_empty(tmp_path):
    doc = Document()
    doc.add_paragraph("Halo <<Siapa>>!")
    name = save(doc, tmp_path / "sapa.docx")
    out = DocxRenderer(tmp_path).render(name, {})
    assert "Halo !" in all_text(out)


def test_missing_template(renderer):
    with pytest.raises(TemplateNotFound):
        renderer.render("Tidak Ada.docx", {})


def test_template_path_traversal_rejected(tmp_path):
    (tmp_path / "inner").mkdir()
    save(Document(), tmp_path / "outside.docx")
    with pytest.raises(TemplateNotFound):
        DocxRenderer(tmp_path / "inner").template_path("../outside.docx")


def test_unclosed_loop(tmp_path):
    doc = Document()
    doc.add_paragraph("<<#anggota>>")
    doc.add_paragraph("<<name>>")
    name = save(doc, tmp_path / "rusak.docx")
    with pytest.raises(RenderError):
        DocxRenderer(tmp_path).render(name, {"anggota": [{"name": "Ani"}]})


def test_malformed_expression(tmp_path):
    doc = Document()
    doc.add_paragraph("Nama: <<NamaKetua")
    name = save(doc, tmp_path / "rusak.docx")
    with pytest.raises(RenderError):
        DocxRenderer(tmp_path).render(name, {"NamaKetua": "Budi"})


def test_unreadable_docx(tmp_path):
    (tmp_path / "bukan.docx").write_bytes(b"not a zip file")
    with pytest.raises(RenderError):
        DocxRenderer(tmp_path).render("bukan.docx", {})


def test_literal_braces_are_kept(tmp_path):
    doc = Document()
    doc.add_paragraph("Nomor surat {#}/LPPM untuk <<Judul>>")
    doc.add_paragraph("Kode {% 12 %} dan {{ x }} oleh <<NamaKetua>>")
    name = save(doc, tmp_path / "nomor.docx")
    text = all_text(DocxRenderer(tmp_path).render(name, {"Judul": "Buku", "NamaKetua": "Budi"}))
    assert "Nomor surat {#}/LPPM untuk Buku" in text
    assert "Kode {% 12 %} dan {{ x }} oleh Budi" in text
