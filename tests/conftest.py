"""
Shared fixtures: temporary cache roots, tenants, a fake sheets client and a
controllable clock.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# Add the project root to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cache_manager.cache_operations import CacheManager  # noqa: E402
from exceptions import ServiceUnavailable  # noqa: E402
from refresh_locks import LocalRefreshLock  # noqa: E402
from refresh_service import RefreshCoordinator  # noqa: E402
from storage_providers.local_provider import LocalStorageProvider  # noqa: E402
from tenants import tenant_from_dict  # noqa: E402


def make_row(**values):
    """Positional 17-column row built from column names, e.g. make_row(ORGANIZATION="Acme")."""
    from sheet_columns import REGISTRANTS
    row = [""] * 17
    for name, value in values.items():
        row[REGISTRANTS[name]] = value
    return row


def tenant_config(**overrides):
    config = {
        "display_name": "Test Enterprise",
        "api_key": "test-key",
        "start_date": "01-01-25",
        "google_sheets": {
            "registrants": {"workbook_id": "wb-reg", "sheet_name": "Registrants", "start_row": 2},
            "submissions": {"workbook_id": "wb-sub", "sheet_name": "Filtered", "start_row": 2},
        },
        "organizations": ["Acme", "Beta College"],
        "groups": {"North": ["Acme"], "South": ["Beta College"]},
    }
    config.update(overrides)
    return config


class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime(2025, 6, 20, 17, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


class FakeSheetsClient:
    """Returns canned rows per sheet name, or raises the configured error."""

    def __init__(self, sheets=None):
        self.sheets = sheets or {}
        self.errors = {}
        self.calls = []

    def fetch(self, workbook_id, sheet_name, start_row, api_key, tenant=None):
        self.calls.append((tenant, sheet_name))
        if sheet_name in self.errors:
            raise self.errors[sheet_name]
        return [list(row) for row in self.sheets.get(sheet_name, [])]

    def fail(self, sheet_name, error=None):
        self.errors[sheet_name] = error or ServiceUnavailable("HTTP 503")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield tmp_dir


@pytest.fixture
def provider(temp_dir):
    provider = LocalStorageProvider()
    provider.initialize({"base_path": os.path.join(temp_dir, "cache")})
    return provider


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(provider, clock):
    return CacheManager(provider, clock=clock)


@pytest.fixture
def tenant():
    return tenant_from_dict("tst", tenant_config())


@pytest.fixture
def other_tenant():
    return tenant_from_dict("oth", tenant_config(api_key="other-key", groups={}))


@pytest.fixture
def registrant_rows():
    return [
        make_row(INVITED="06-02-25", ENROLLED="Yes", COHORT="06", YEAR="25", FIRST="Ann", LAST="Lee",
                 EMAIL="ann@acme.org", ORGANIZATION="Acme", CERTIFICATE="Yes", ISSUED="06-15-25",
                 SUBMITTED="06-05-25"),
        make_row(INVITED="05-20-25", ENROLLED="Yes", COHORT="05", YEAR="25", FIRST="Bob", LAST="Ng",
                 EMAIL="bob@beta.edu", ORGANIZATION="Beta College", CERTIFICATE="", ISSUED="",
                 SUBMITTED="05-22-25"),
        make_row(INVITED="04-01-25", ENROLLED="", COHORT="04", YEAR="25", FIRST="Cy", LAST="Ortiz",
                 EMAIL="cy@acme.org", ORGANIZATION="Acme"),
    ]


@pytest.fixture
def submission_rows():
    return [
        make_row(COHORT="06", YEAR="25", FIRST="Ann", LAST="Lee", ORGANIZATION="Acme", SUBMITTED="06-05-25"),
        make_row(COHORT="05", YEAR="25", FIRST="Bob", LAST="Ng", ORGANIZATION="Beta College", SUBMITTED="05-22-25"),
        make_row(COHORT="02", YEAR="25", FIRST="Dee", LAST="Park", ORGANIZATION="Acme", SUBMITTED="02-10-25"),
    ]


@pytest.fixture
def sheets_client(registrant_rows, submission_rows):
    return FakeSheetsClient({"Registrants": registrant_rows, "Filtered": submission_rows})


@pytest.fixture
def coordinator(cache, sheets_client, temp_dir):
    lock = LocalRefreshLock(os.path.join(temp_dir, "cache"), wait_seconds=5)
    return RefreshCoordinator(cache, sheets_client, lock, default_ttl=3600)
