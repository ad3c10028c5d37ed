"""Submission record -> template placeholders.

Every mapper is pure and total: missing or unparseable source values map to
an empty string, never to an exception.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

from lppm_forms.utils.locale_id import format_currency, format_date_long, format_year

Placeholders = dict[str, Any]
Mapper = Callable[[Mapping[str, Any], Sequence[Mapping[str, Any]]], Placeholders]

# kind -> formatter applied to the first non-empty source value
_FORMATTERS: dict[str, Callable[[Any], str]] = {
    "text": lambda v: str(v).strip(),
    "date": format_date_long,
    "year": format_year,
    "currency": format_currency,
}


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def source_keys(*keys: str) -> tuple[str, ...]:
    """Expand source keys with their camelCase spelling, keeping order."""
    out: list[str] = []
    for k in keys:
        for variant in (k, camel(k)):
            if variant not in out:
                out.append(variant)
    return tuple(out)


def pick(record: Mapping[str, Any], keys: Sequence[str]) -> Any:
    """First non-empty value among `keys` (None when all are empty)."""
    for k in keys:
        v = record.get(k)
        if v is None:
            continue
        if isinstance(v, str) and not v.strip():
            continue
        return v
    return None


def get_field(record: Mapping[str, Any], name: str) -> str:
    """Submitted value of a form field (snake_case or camelCase), trimmed."""
    v = pick(record, source_keys(name))
    return "" if v is None else str(v).strip()


def number_members(members: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Member list for the repeating section.

    `nomor` is the 1-based position, shown only when there is more than one
    member.
    """
    many = len(members) > 1
    out = []
    for i, m in enumerate(members):
        name = pick(m, ("name", "nama"))
        nidn = pick(m, ("nidn",))
        out.append(
            {
                "name": "" if name is None else str(name).strip(),
                "nidn": "" if nidn is None else str(nidn).strip(),
                "nomor": i + 1 if many else "",
            }
        )
    return out


def make_mapper(fields: Sequence[tuple[str, str, tuple[str, ...]]]) -> Mapper:
    """Build a mapper from (placeholder, kind, source keys) specs."""
    specs = [(placeholder, _FORMATTERS[kind], source_keys(*keys)) for placeholder, kind, keys in fields]

    def _map(record: Mapping[str, Any], members: Sequence[Mapping[str, Any]]) -> Placeholders:
        out: Placeholders = {}
        for placeholder, fmt, keys in specs:
            v = pick(record, keys)
            out[placeholder] = "" if v is None else fmt(v)
        out["anggota"] = number_members(members or [])
        return out

    return _map


# ---- placeholders per template ----

HALAMAN_PENGESAHAN_FIELDS = (
    ("Email", "text", ("email",)),
    ("Puslitbang", "text", ("puslitbang",)),
    ("NamaKetua", "text", ("nama_ketua", "nama")),
    ("NIDN", "text", ("nidn",)),
    ("JabatanFungsional", "text", ("jabatan", "jabatan_fungsional")),
    ("Fakultas", "text", ("fakultas",)),
    ("Prodi", "text", ("prodi",)),
    ("NomorHP", "text", ("nomor_hp",)),
    ("Judul", "text", ("judul",)),
    ("NamaInstitusi", "text", ("nama_institusi",)),
    ("AlamatInstitusi", "text", ("alamat", "alamat_institusi")),
    ("PenanggungJawab", "text", ("penanggung_jawab",)),
    ("TahunPelaksana", "text", ("tahun_pelaksana",)),
    ("BiayaTahun", "currency", ("biaya_tahun",)),
    ("BiayaKeseluruhan", "currency", ("biaya_keseluruhan",)),
    ("Tanggal", "date", ("tanggal",)),
    ("NamaDekan", "text", ("nama_dekan",)),
    ("NipDekan", "text", ("nip_dekan",)),
    ("NamaPeneliti", "text", ("nama_peneliti",)),
    ("NipKetua", "text", ("nip_ketua",)),
)

SURAT_TUGAS_BUKU_FIELDS = (
    ("NamaKetua", "text", ("nama_ketua",)),
    ("NIDN", "text", ("nidn",)),
    ("JabatanFungsional", "text", ("jabatan", "jabatan_fungsional")),
    ("Judul", "text", ("judul",)),
    ("JenisBuku", "text", ("jenis_buku",)),
    ("PenerbitBuku", "text", ("penerbit_buku",)),
    ("Tanggal", "date", ("tanggal",)),
)

SURAT_TUGAS_HKI_FIELDS = (
    ("NamaKetua", "text", ("nama_ketua",)),
    ("NIDN", "text", ("nidn",)),
    ("JabatanFungsional", "text", ("jabatan", "jabatan_fungsional")),
    ("judulCiptaan", "text", ("judul_ciptaan",)),
    ("JenisHakCipta", "text", ("jenis_hki",)),
    ("No_Tanggal_Permohonan", "date", ("tanggal_permohonan",)),
    ("Tanggal", "date", ("tanggal",)),
)

# Research and community service letters share one layout
SURAT_TUGAS_KEGIATAN_FIELDS = (
    ("TahunPengajuan", "year", ("tanggal_pengajuan",)),
    ("NamaKetua", "text", ("nama_ketua",)),
    ("NIDN", "text", ("nidn",)),
    ("JabatanFungsional", "text", ("jabatan", "jabatan_fungsional")),
    ("Fakultas", "text", ("fakultas",)),
    ("Prodi", "text", ("prodi",)),
    ("Judul", "text", ("judul",)),
    ("Tanggal", "date", ("tanggal",)),
)

map_halaman_pengesahan = make_mapper(HALAMAN_PENGESAHAN_FIELDS)
map_surat_tugas_buku = make_mapper(SURAT_TUGAS_BUKU_FIELDS)
map_surat_tugas_hki = make_mapper(SURAT_TUGAS_HKI_FIELDS)
map_surat_tugas_penelitian = make_mapper(SURAT_TUGAS_KEGIATAN_FIELDS)
map_surat_tugas_pkm = make_mapper(SURAT_TUGAS_KEGIATAN_FIELDS)
