import dataclasses

import pytest

from lppm_forms.core.errors import InvalidFormType
from lppm_forms.db.models import SuratTugasHKI
from lppm_forms.modules.forms import mapper as m
from lppm_forms.modules.forms.registry import DEFAULT_FORMS, FormRegistry, FormTypeConfig, build_registry


def test_default_registry():
    registry = build_registry()
    assert len(registry) == 5
    assert registry.keys() == (
        "HalamanPengesahan",
        "SuratTugasBuku",
        "SuratTugasHKI",
        "SuratTugasPenelitian",
        "SuratTugasPKM",
    )
    assert registry.relations() == (
        "halaman_pengesahan",
        "surat_tugas_buku",
        "surat_tugas_hki",
        "surat_tugas_penelitian",
        "surat_tugas_pkm",
    )


def test_lookup():
    cfg = build_registry().lookup("SuratTugasHKI")
    assert cfg.relation == "surat_tugas_hki"
    assert cfg.template == "Surat Tugas HKI.docx"
    assert cfg.subject == "Surat Tugas HKI"
    assert cfg.model is SuratTugasHKI
    assert "jabatan" in cfg.required_fields


def test_unknown_form_type():
    registry = build_registry()
    with pytest.raises(InvalidFormType):
        registry.lookup("SuratCinta")
    assert "SuratCinta" not in registry
    assert registry.by_relation("admin") is None


def test_configs_are_immutable():
    cfg = build_registry().lookup("SuratTugasBuku")
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.template = "other.docx"


def test_rejects_duplicate_keys():
    with pytest.raises(ValueError):
        FormRegistry([DEFAULT_FORMS[0], DEFAULT_FORMS[0]])


def test_rejects_unknown_relation():
    bad = FormTypeConfig("X", "users", ("email",), m.map_surat_tugas_buku, "x.docx", "X")
    with pytest.raises(ValueError):
        FormRegistry([bad])
