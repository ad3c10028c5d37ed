# Import all models so SQLAlchemy metadata is fully populated on startup.
from lppm_forms.db.models.admin import Admin
from lppm_forms.db.models.member import Member
from lppm_forms.db.models.submission import (
    HalamanPengesahan,
    SuratTugasBuku,
    SuratTugasHKI,
    SuratTugasPenelitian,
    SuratTugasPKM,
    SubmissionStatus,
    SUBMISSION_MODELS,
)


__all__ = [
    "Admin",
    "Member",
    "HalamanPengesahan",
    "SuratTugasBuku",
    "SuratTugasHKI",
    "SuratTugasPenelitian",
    "SuratTugasPKM",
    "SubmissionStatus",
    "SUBMISSION_MODELS",
]
