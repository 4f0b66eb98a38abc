"""
Demo data transformation.

Demo tenants mirror a real spreadsheet, so personally identifying columns are
relabelled wherever raw rows enter the system:

- LAST: every non-empty value becomes "Demo"
- EMAIL: the part before "@" becomes "demo"
- ORGANIZATION: a " Demo" suffix is appended (once)

The transform is idempotent, so applying it at refresh time and again on
every cache read yields identical rows.
"""

import logging
from typing import Any, List

from common_types import DatasetKind
from sheet_columns import column_index

logger = logging.getLogger("demo_transform")

DEMO_LAST_NAME = "Demo"
DEMO_EMAIL_USER = "demo"
DEMO_ORGANIZATION_SUFFIX = " Demo"


def should_transform(tenant) -> bool:
    """True when rows for this tenant must be relabelled."""
    return bool(getattr(tenant, "demo", False))


def transform_row(row: List[Any], kind: DatasetKind) -> List[Any]:
    """Return a relabelled copy of one positional row."""
    last_idx = column_index(kind, "LAST")
    email_idx = column_index(kind, "EMAIL")
    org_idx = column_index(kind, "ORGANIZATION")

    row = list(row)
    if last_idx < len(row) and row[last_idx]:
        row[last_idx] = DEMO_LAST_NAME

    if email_idx < len(row) and row[email_idx]:
        email = str(row[email_idx]).strip()
        if "@" in email:
            row[email_idx] = f"{DEMO_EMAIL_USER}@{email.split('@', 1)[1]}"

    if org_idx < len(row) and row[org_idx]:
        org_name = str(row[org_idx]).strip()
        if not org_name.endswith(DEMO_ORGANIZATION_SUFFIX):
            row[org_idx] = org_name + DEMO_ORGANIZATION_SUFFIX
    return row


def transform_rows(rows: List[Any], kind: DatasetKind, tenant) -> List[Any]:
    """Apply the demo relabelling to every row if the tenant requires it."""
    if not should_transform(tenant):
        return rows
    transformed = [transform_row(row, kind) if isinstance(row, (list, tuple)) else row for row in rows]
    logger.debug(f"Applied demo transformation to {len(transformed)} {kind.value} rows",
                 extra={"tenant": getattr(tenant, "code", None)})
    return transformed
