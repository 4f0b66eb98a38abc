"""
Tenant configuration.

A tenant (enterprise) is an isolated namespace with its own cache directory,
API key, sheet coordinates and start-date floor. Tenant identity is resolved
once per request through TenantRegistry.get() and the resulting TenantContext
is passed explicitly to every cache, refresh and report call.

Example tenants.json:
    {
      "csu": {
        "display_name": "California State University",
        "api_key": "...",
        "start_date": "05-06-24",
        "google_sheets": {
          "registrants": {"workbook_id": "...", "sheet_name": "Registrants", "start_row": 2},
          "submissions": {"workbook_id": "...", "sheet_name": "Filtered", "start_row": 2}
        },
        "organizations": ["Chico", "Fresno"],
        "groups": {"North": ["Chico"]}
      }
    }
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from common_types import DatasetKind
from exceptions import ConfigurationError, TenantNotFoundError
from input_validator import parse_mmddyy, validate_tenant_code

logger = logging.getLogger("tenants")


@dataclass(frozen=True)
class SheetCoordinates:
    workbook_id: str
    sheet_name: str
    start_row: int = 1


@dataclass(frozen=True)
class TenantContext:
    """Everything the core needs to know about one tenant."""
    code: str
    api_key: str
    registrants_sheet: SheetCoordinates
    submissions_sheet: SheetCoordinates
    start_date: str
    display_name: str = ""
    cache_ttl: Optional[int] = None
    demo: bool = False
    organizations: List[str] = field(default_factory=list)
    groups: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def has_groups(self) -> bool:
        return bool(self.groups)

    def sheet_for(self, kind: DatasetKind) -> SheetCoordinates:
        if kind is DatasetKind.REGISTRANTS:
            return self.registrants_sheet
        return self.submissions_sheet


def _parse_sheet(code: str, kind: str, raw: Any) -> SheetCoordinates:
    if not isinstance(raw, dict) or not raw.get("workbook_id") or not raw.get("sheet_name"):
        raise ConfigurationError(f"Tenant {code}: google_sheets.{kind} needs workbook_id and sheet_name")
    try:
        start_row = int(raw.get("start_row", 1))
    except (TypeError, ValueError):
        raise ConfigurationError(f"Tenant {code}: google_sheets.{kind}.start_row must be an integer")
    return SheetCoordinates(str(raw["workbook_id"]), str(raw["sheet_name"]), max(start_row, 1))


def tenant_from_dict(code: str, raw: Dict[str, Any]) -> TenantContext:
    """Build a TenantContext from one tenants.json entry."""
    validate_tenant_code(code)
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Tenant {code}: configuration must be an object")

    sheets = raw.get("google_sheets", {})
    start_date = raw.get("start_date", "")
    if parse_mmddyy(start_date) is None:
        raise ConfigurationError(f"Tenant {code}: start_date must be MM-DD-YY, got {start_date!r}")

    cache_ttl = raw.get("cache_ttl")
    if cache_ttl is not None:
        try:
            cache_ttl = int(cache_ttl)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Tenant {code}: cache_ttl must be an integer number of seconds")
        if cache_ttl < 0:
            raise ConfigurationError(f"Tenant {code}: cache_ttl must not be negative")

    groups = raw.get("groups") or {}
    if not isinstance(groups, dict) or not all(isinstance(v, list) for v in groups.values()):
        raise ConfigurationError(f"Tenant {code}: groups must map group names to organization lists")

    return TenantContext(
        code=code,
        api_key=raw.get("api_key", "") or "",
        registrants_sheet=_parse_sheet(code, "registrants", sheets.get("registrants")),
        submissions_sheet=_parse_sheet(code, "submissions", sheets.get("submissions")),
        start_date=start_date,
        display_name=raw.get("display_name", code.upper()),
        cache_ttl=cache_ttl,
        demo=bool(raw.get("demo", code == "demo")),
        organizations=list(raw.get("organizations", [])),
        groups={group: list(orgs) for group, orgs in groups.items()},
    )


class TenantRegistry:
    """Lookup of configured tenants by code."""

    def __init__(self, tenants: Dict[str, TenantContext]):
        self._tenants = dict(tenants)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TenantRegistry":
        if not isinstance(raw, dict):
            raise ConfigurationError("Tenants configuration must be a JSON object")
        return cls({code: tenant_from_dict(code, entry) for code, entry in raw.items()})

    @classmethod
    def from_file(cls, path: str) -> "TenantRegistry":
        if not os.path.exists(path):
            raise ConfigurationError(f"Tenants file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in tenants file {path}: {str(e)}")
        registry = cls.from_dict(raw)
        logger.info(f"Loaded {len(registry.codes())} tenants from {path}")
        return registry

    def codes(self) -> List[str]:
        return sorted(self._tenants)

    def get(self, code: str) -> TenantContext:
        """
        Resolve a tenant code.

        Raises:
            InvalidTenantError: If the code is malformed.
            TenantNotFoundError: If no tenant is configured under the code.
        """
        validate_tenant_code(code)
        tenant = self._tenants.get(code)
        if tenant is None:
            raise TenantNotFoundError(f"Unknown tenant: {code}")
        return tenant
