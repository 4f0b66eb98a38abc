"""
common_types.py

This module contains common enums and constants shared by the cache, refresh
and reporting modules.
"""

from enum import Enum


class DatasetKind(Enum):
    """The two raw datasets mirrored from the external spreadsheet."""
    REGISTRANTS = "registrants"
    SUBMISSIONS = "submissions"

    @property
    def cache_name(self) -> str:
        """Logical cache file name holding this raw dataset."""
        return f"all-{self.value}-data.json"


class DerivedDataset(Enum):
    """Datasets computed from the raw datasets on every refresh."""
    REGISTRATIONS = "registrations"
    ENROLLMENTS = "enrollments"
    CERTIFICATES = "certificates"

    @property
    def cache_name(self) -> str:
        return f"{self.value}.json"


class RefreshStatus(Enum):
    """Caller-visible outcome of a refresh cycle."""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class EnrollmentMode(Enum):
    """
    Which date decides whether an enrollment falls inside a report range.

    TOU_COMPLETION uses the Submitted date of enrolled registrants,
    REGISTRATION_DATE uses the Invited date of the cross-referenced registrant.
    """
    TOU_COMPLETION = "tou_completion"
    REGISTRATION_DATE = "registration_date"

    @classmethod
    def from_request(cls, value: str) -> "EnrollmentMode":
        """Map request values (including the legacy by-tou/by-registration) to a mode."""
        aliases = {
            "by-tou": cls.TOU_COMPLETION,
            "tou": cls.TOU_COMPLETION,
            "by-registration": cls.REGISTRATION_DATE,
            "registration": cls.REGISTRATION_DATE,
        }
        if value in aliases:
            return aliases[value]
        return cls(value)


class ReportMode(Enum):
    """Registrations report grouping."""
    DATE = "date"
    COHORT = "cohort"


YES = "Yes"  # Sentinel stored in the Enrolled/Certificate/Completed columns
ALL_COHORTS = "ALL"

RAW_DATASET_NAMES = [kind.cache_name for kind in DatasetKind]
DERIVED_DATASET_NAMES = [derived.cache_name for derived in DerivedDataset]
ALL_CACHE_NAMES = RAW_DATASET_NAMES + DERIVED_DATASET_NAMES
