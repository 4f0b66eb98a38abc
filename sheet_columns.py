"""
sheet_columns.py

Single source of truth for the positional layout of the spreadsheet rows and
the decode/encode step between positional rows (as cached on disk) and named
records (as used by the report processors).

Column layout (zero-based index -> Google Sheets column):
    0  DAYS_TO_CLOSE  A        9  ORGANIZATION  J
    1  INVITED        B       10  CERTIFICATE   K
    2  ENROLLED       C       11  ISSUED        L
    3  COHORT         D       12  CLOSING_DATE  M
    4  YEAR           E       13  COMPLETED     N
    5  FIRST          F       14  ID            O
    6  LAST           G       15  SUBMITTED     P
    7  EMAIL          H       16  STATUS        Q
    8  ROLE           I

The submissions sheet currently shares the registrants layout but is kept
separate so either sheet can change independently.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from common_types import DatasetKind

logger = logging.getLogger("sheet_columns")

Record = Dict[str, str]

REGISTRANTS: Dict[str, int] = {
    "DAYS_TO_CLOSE": 0,
    "INVITED": 1,
    "ENROLLED": 2,
    "COHORT": 3,
    "YEAR": 4,
    "FIRST": 5,
    "LAST": 6,
    "EMAIL": 7,
    "ROLE": 8,
    "ORGANIZATION": 9,
    "CERTIFICATE": 10,
    "ISSUED": 11,
    "CLOSING_DATE": 12,
    "COMPLETED": 13,
    "ID": 14,
    "SUBMITTED": 15,
    "STATUS": 16,
}

SUBMISSIONS: Dict[str, int] = dict(REGISTRANTS)

_SCHEMAS = {
    DatasetKind.REGISTRANTS: REGISTRANTS,
    DatasetKind.SUBMISSIONS: SUBMISSIONS,
}


def column_index(kind: DatasetKind, name: str) -> int:
    """
    Return the zero-based index of a logical column.

    Raises:
        KeyError: If the column is not part of the dataset's schema.
    """
    try:
        return _SCHEMAS[kind][name]
    except KeyError:
        raise KeyError(f"Unknown column {name!r} for {kind.value} data")


def field_name(column: str) -> str:
    """Record key for a logical column name (ORGANIZATION -> organization)."""
    return column.lower()


def cell(row: List[Any], index: int) -> str:
    """Positional cell as a string; missing trailing cells read as ''."""
    if index < len(row) and row[index] is not None:
        return str(row[index])
    return ""


def decode_row(row: Any, kind: DatasetKind) -> Optional[Record]:
    """
    Decode one positional row into a named record.

    The Sheets API drops trailing empty cells, so short rows are padded with ''.
    Returns None for rows that are not lists of scalar values or are entirely
    empty; callers skip those.
    """
    if not isinstance(row, (list, tuple)):
        return None
    if any(isinstance(value, (list, tuple, dict)) for value in row):
        return None
    if not any(str(value).strip() for value in row if value is not None):
        return None
    return {field_name(name): cell(row, index) for name, index in _SCHEMAS[kind].items()}


def decode_rows(rows: Iterable[Any], kind: DatasetKind) -> List[Record]:
    """Decode positional rows, skipping malformed ones."""
    records = []
    skipped = 0
    for row in rows:
        record = decode_row(row, kind)
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.debug(f"Skipped {skipped} malformed {kind.value} rows during decode")
    return records


def encode_record(record: Record, kind: DatasetKind) -> List[str]:
    """Encode a named record back into a positional row of schema width."""
    schema = _SCHEMAS[kind]
    row = [""] * (max(schema.values()) + 1)
    for name, index in schema.items():
        row[index] = str(record.get(field_name(name), ""))
    return row
