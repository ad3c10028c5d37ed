"""Form registry: form-type key -> target relation, template and mapping.

The registry is built once at start-up and stored on `app.state.registry`;
handlers receive it through the `get_registry` dependency so tests can swap in
another one.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator

from fastapi import Request

from lppm_forms.core.errors import InvalidFormType
from lppm_forms.db.models.submission import SUBMISSION_MODELS
from lppm_forms.modules.forms import mapper as m


@dataclass(frozen=True, slots=True)
class FormTypeConfig:
    key: str
    relation: str
    required_fields: tuple[str, ...]
    mapper: m.Mapper
    template: str
    subject: str

    @property
    def model(self) -> type:
        return SUBMISSION_MODELS[self.relation]


class FormRegistry:
    def __init__(self, configs: Iterable[FormTypeConfig]):
        by_key: dict[str, FormTypeConfig] = {}
        by_relation: dict[str, FormTypeConfig] = {}
        for cfg in configs:
            if cfg.key in by_key:
                raise ValueError(f"duplicate form type: {cfg.key}")
            if cfg.relation not in SUBMISSION_MODELS:
                raise ValueError(f"unknown relation for {cfg.key}: {cfg.relation}")
            if cfg.relation in by_relation:
                raise ValueError(f"relation {cfg.relation} registered twice")
            by_key[cfg.key] = cfg
            by_relation[cfg.relation] = cfg
        self._by_key = MappingProxyType(by_key)
        self._by_relation = MappingProxyType(by_relation)

    def lookup(self, key: str) -> FormTypeConfig:
        cfg = self._by_key.get(key)
        if cfg is None:
            raise InvalidFormType()
        return cfg

    def by_relation(self, relation: str) -> FormTypeConfig | None:
        return self._by_relation.get(relation)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._by_key)

    def relations(self) -> tuple[str, ...]:
        return tuple(self._by_relation)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __iter__(self) -> Iterator[FormTypeConfig]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)


DEFAULT_FORMS: tuple[FormTypeConfig, ...] = (
    FormTypeConfig(
        key="HalamanPengesahan",
        relation="halaman_pengesahan",
        required_fields=("email", "nama_ketua", "nidn", "fakultas", "prodi", "judul", "tanggal"),
        mapper=m.map_halaman_pengesahan,
        template="Halaman Pengesahan.docx",
        subject="Halaman Pengesahan",
    ),
    FormTypeConfig(
        key="SuratTugasBuku",
        relation="surat_tugas_buku",
        required_fields=("email", "nama_ketua", "nidn", "judul", "jenis_buku", "penerbit_buku", "tanggal"),
        mapper=m.map_surat_tugas_buku,
        template="Surat Tugas Buku.docx",
        subject="Surat Tugas Buku",
    ),
    FormTypeConfig(
        key="SuratTugasHKI",
        relation="surat_tugas_hki",
        required_fields=(
            "email",
            "nama_ketua",
            "nidn",
            "judul_ciptaan",
            "jenis_hki",
            "tanggal_permohonan",
            "jabatan",
        ),
        mapper=m.map_surat_tugas_hki,
        template="Surat Tugas HKI.docx",
        subject="Surat Tugas HKI",
    ),
    FormTypeConfig(
        key="SuratTugasPenelitian",
        relation="surat_tugas_penelitian",
        required_fields=("email", "nama_ketua", "nidn", "judul", "tanggal"),
        mapper=m.map_surat_tugas_penelitian,
        template="Surat Tugas Penelitian.docx",
        subject="Surat Tugas Penelitian",
    ),
    FormTypeConfig(
        key="SuratTugasPKM",
        relation="surat_tugas_pkm",
        required_fields=("email", "nama_ketua", "nidn", "judul", "tanggal"),
        mapper=m.map_surat_tugas_pkm,
        template="Surat Tugas PKM.docx",
        subject="Surat Tugas PKM",
    ),
)


def build_registry(configs: Iterable[FormTypeConfig] = DEFAULT_FORMS) -> FormRegistry:
    return FormRegistry(configs)


def get_registry(request: Request) -> FormRegistry:
    return request.app.state.registry
