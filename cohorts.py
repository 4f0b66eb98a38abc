"""
Cohort-key utilities.

A cohort is a month+year bucket written "MM-YY". Two different sets of keys
are used and must not be mixed up:

- calendar_cohort_keys(): every month between two dates, empty months included.
- data_cohort_keys(): only the months that actually occur in a set of records.

The "All cohorts" registrations report lists data_cohort_keys() so it never
shows a cohort group with no rows.
"""

from datetime import date
from typing import Iterable, List, Optional, Union

from input_validator import validate_date
from sheet_columns import Record

MONTH_LABELS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']

DateLike = Union[date, str]


def _as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return validate_date(value)


def _to_int(value) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def make_cohort_key(month: int, year: int) -> str:
    """Two-digit month and two-digit year, e.g. (8, 25) -> '08-25'."""
    return '%02d-%02d' % (month, year % 100)


def cohort_key(record: Record) -> Optional[str]:
    """Cohort key of a record from its COHORT (month) and YEAR columns; None if either is not a number."""
    month = _to_int(record.get("cohort"))
    year = _to_int(record.get("year"))
    if month is None or year is None:
        return None
    return make_cohort_key(month, year)


def calendar_cohort_keys(start: DateLike, end: DateLike) -> List[str]:
    """Every MM-YY key from the month of start through the month of end, inclusive."""
    start_date = _as_date(start)
    end_date = _as_date(end)
    keys = []
    year, month = start_date.year, start_date.month
    while (year, month) <= (end_date.year, end_date.month):
        keys.append(make_cohort_key(month, year))
        month += 1
        if month > 12:
            month = 1
            year += 1
    return keys


def _sort_key(key: str):
    month, year = key.split('-')
    return int(year), int(month)


def data_cohort_keys(records: Iterable[Record], start: Optional[DateLike] = None,
                     end: Optional[DateLike] = None) -> List[str]:
    """
    Cohort keys present in the records, oldest first.

    When a range is given only keys inside its calendar span are kept.
    """
    allowed = set(calendar_cohort_keys(start, end)) if start is not None and end is not None else None
    keys = set()
    for record in records:
        key = cohort_key(record)
        if key is None:
            continue
        if allowed is not None and key not in allowed:
            continue
        keys.add(key)
    return sorted(keys, key=_sort_key)


def format_cohort_label(key: str) -> str:
    """'08-25' -> 'Aug 25'. Unrecognised keys are returned unchanged."""
    parts = key.split('-')
    if len(parts) != 2 or _to_int(parts[0]) is None:
        return key
    index = max(1, min(12, int(parts[0]))) - 1
    return f"{MONTH_LABELS[index]} {parts[1]}"

