"""
Data Processor

Pure functions that turn cached records into report views. Every function
works on decoded records (dicts keyed by lowercase column name, see
sheet_columns.py) and returns new lists; nothing here touches the cache.

Date columns hold MM-DD-YY strings. A record whose date does not parse is left
out of a date filter; it never raises. Structural problems with the inputs
(a required dataset missing entirely) raise MissingDatasetError.

Columns used:
- INVITED      registration (invitation) date
- ENROLLED     enrollment status / date
- COHORT, YEAR cohort month and two-digit year
- ORGANIZATION organization name used for roll-ups
- CERTIFICATE  certificate status
- ISSUED       certificate issue date
- SUBMITTED    TOU completion / submission date
"""

import functools
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Union

from common_types import YES, EnrollmentMode
from exceptions import MissingDatasetError
from input_validator import parse_mmddyy, validate_date
from sheet_columns import Record

logger = logging.getLogger("data_processor")

# Applied in order; only the first matching rule is used.
ABBREVIATION_RULES = [
    ('Community College District', 'CCD'),
    ('Junior College District', 'JCD'),
    ('Community College', 'CC'),
    ('Continuing Education', 'Cont Ed'),
]

DateLike = Union[date, str]


def _as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return validate_date(value)


def _field(record: Record, name: str) -> str:
    value = record.get(name.lower(), "")
    return "" if value is None else str(value)


def _valid_records(records: Optional[Iterable[Any]]) -> List[Record]:
    """Drop anything that is not a decoded record."""
    if records is None:
        return []
    return [record for record in records if isinstance(record, dict)]


def in_range(value: str, start: DateLike, end: DateLike) -> bool:
    """True if value parses as MM-DD-YY and start <= value <= end."""
    parsed = parse_mmddyy(value)
    if parsed is None:
        return False
    return _as_date(start) <= parsed <= _as_date(end)


def filter_by_date_range(records: Iterable[Record], date_field: str, start: DateLike, end: DateLike) -> List[Record]:
    """
    Keep records whose date_field lies in [start, end].

    Args:
        records: Decoded records.
        date_field: Column name, e.g. "SUBMITTED" or "submitted".
        start: Inclusive lower bound (date or MM-DD-YY).
        end: Inclusive upper bound (date or MM-DD-YY).

    Returns:
        Matching records in their original order.
    """
    start_date = _as_date(start)
    end_date = _as_date(end)
    result = []
    for record in _valid_records(records):
        parsed = parse_mmddyy(_field(record, date_field))
        if parsed is not None and start_date <= parsed <= end_date:
            result.append(record)
    return result


# Derived datasets

def derive_registrations(submissions: Iterable[Record]) -> List[Record]:
    """Every submission is a registration."""
    return _valid_records(submissions)


def derive_enrollments(registrants: Iterable[Record]) -> List[Record]:
    return [record for record in _valid_records(registrants) if _field(record, "enrolled") == YES]


def derive_certificates(registrants: Iterable[Record]) -> List[Record]:
    return [record for record in _valid_records(registrants) if _field(record, "certificate") == YES]


# Date-range views

def process_registrations_data(submissions: Iterable[Record], start: DateLike, end: DateLike) -> List[Record]:
    """Registrations whose Submitted date falls in the range."""
    return filter_by_date_range(submissions, "submitted", start, end)


def process_invitations_data(registrants: Iterable[Record], start: DateLike, end: DateLike) -> Dict[str, List[Record]]:
    """
    Invitation-based view of the registrants sheet.

    Returns:
        Dict with 'invitations' (Invited in range), 'enrollments' (Invited in
        range and enrolled) and 'certificates' (certificate issued in range).
    """
    invitations, enrollments, certificates = [], [], []
    for record in _valid_records(registrants):
        invited_in_range = in_range(_field(record, "invited"), start, end)
        if invited_in_range:
            invitations.append(record)
            if _field(record, "enrolled") == YES:
                enrollments.append(record)
        if _field(record, "certificate") == YES and in_range(_field(record, "issued"), start, end):
            certificates.append(record)
    return {
        "invitations": invitations,
        "enrollments": enrollments,
        "certificates": certificates,
    }


def process_enrollments_data(enrollments: Optional[Iterable[Record]], start: DateLike, end: DateLike,
                             registrants: Optional[Iterable[Record]] = None,
                             mode: EnrollmentMode = EnrollmentMode.TOU_COMPLETION) -> Dict[str, Any]:
    """
    Enrollments inside a date range under one of two semantics.

    TOU_COMPLETION: enrolled records whose Submitted (TOU completion) date is
    in range. The enrollments dataset is used when given, otherwise it is
    derived from the registrants.

    REGISTRATION_DATE: registrant records whose Invited date is in range and
    whose Enrolled flag is set. Needs the registrants dataset.

    Returns:
        {"data": [records]}

    Raises:
        MissingDatasetError: If the dataset the mode depends on is None.
    """
    mode = EnrollmentMode(mode)
    if mode is EnrollmentMode.REGISTRATION_DATE:
        if registrants is None:
            raise MissingDatasetError("Registrants data is required for registration_date enrollments")
        enrolled = derive_enrollments(registrants)
        rows = filter_by_date_range(enrolled, "invited", start, end)
    else:
        if enrollments is None:
            if registrants is None:
                raise MissingDatasetError("Enrollments or registrants data is required for tou_completion enrollments")
            enrollments = derive_enrollments(registrants)
        rows = filter_by_date_range(derive_enrollments(enrollments), "submitted", start, end)
    logger.debug(f"Processed {len(rows)} enrollments in {mode.value} mode")
    return {"data": rows}


def has_issued_date(record: Record) -> bool:
    """True if ISSUED holds a real MM-DD-YY calendar date."""
    return parse_mmddyy(_field(record, "issued")) is not None


def filter_certificates(records: Iterable[Record], start: Optional[DateLike] = None,
                        end: Optional[DateLike] = None) -> List[Record]:
    """
    Certificate earners, optionally restricted to an Issued date range.

    Without a range every record with Certificate = Yes is returned, whether
    or not it has an Issued date. With a range the Issued date must parse and
    fall inside it.
    """
    certified = derive_certificates(records)
    if start is None and end is None:
        return certified
    if start is None or end is None:
        raise ValueError("filter_certificates needs both start and end, or neither")
    return [record for record in certified if has_issued_date(record)
            and in_range(_field(record, "issued"), start, end)]


# Sorting

def _issued_date(record: Record):
    return parse_mmddyy(_field(record, "issued"))


def sort_certificates(records: Iterable[Record]) -> List[Record]:
    """
    Two-group certificate order.

    Records without a valid Issued date come first, by organization, last
    name, first name. Records with one follow, newest Issued first, then year
    desc, cohort desc, last name, first name.
    """
    records = _valid_records(records)
    no_issued = [record for record in records if not has_issued_date(record)]
    with_issued = [record for record in records if has_issued_date(record)]

    no_issued.sort(key=lambda r: (_field(r, "organization"), _field(r, "last"), _field(r, "first")))

    # stable passes, least significant key first
    with_issued.sort(key=lambda r: (_field(r, "last"), _field(r, "first")))
    with_issued.sort(key=lambda r: _field(r, "cohort"), reverse=True)
    with_issued.sort(key=lambda r: _field(r, "year"), reverse=True)
    with_issued.sort(key=_issued_date, reverse=True)

    return no_issued + with_issued


def _int_or(value: str, default: int = -1) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def sort_registrations_by_cohort(records: Iterable[Record]) -> List[Record]:
    """Year desc, cohort month desc, Submitted date desc. Missing values sort last."""
    def key(record):
        submitted = parse_mmddyy(_field(record, "submitted"))
        return (
            -_int_or(_field(record, "year")),
            -_int_or(_field(record, "cohort")),
            -(submitted.toordinal() if submitted else -1),
        )
    return sorted(_valid_records(records), key=key)


def _compare_enrollees(a: Record, b: Record, date_field: str) -> int:
    date_a = parse_mmddyy(_field(a, date_field))
    date_b = parse_mmddyy(_field(b, date_field))
    if date_a and date_b and date_a != date_b:
        return -1 if date_a > date_b else 1
    last_a, last_b = _field(a, "last"), _field(b, "last")
    return (last_a > last_b) - (last_a < last_b)


def sort_enrollees(records: Iterable[Record], date_field: str = "enrolled") -> List[Record]:
    """
    Enrolled date desc, then last name asc.

    Records whose dates do not both parse compare as ties on the date and fall
    through to the last-name comparison.
    """
    comparator = functools.partial(_compare_enrollees, date_field=date_field)
    return sorted(_valid_records(records), key=functools.cmp_to_key(comparator))


# Roll-ups

def abbreviate_organization_name(name: str) -> str:
    """Shorten an organization name with the first matching rule, e.g. 'Foothill Community College' -> 'Foothill CC'."""
    for pattern, abbreviation in ABBREVIATION_RULES:
        if pattern in name:
            return name.replace(pattern, abbreviation)
    return name


def count_by_organization(records: Iterable[Record]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for record in _valid_records(records):
        organization = _field(record, "organization")
        if organization == "":
            continue
        counts[organization] = counts.get(organization, 0) + 1
    return counts


def process_organization_data(registrations: Iterable[Record], enrollments: Iterable[Record],
                              certificates: Iterable[Record],
                              organizations: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
    """
    Per-organization counts of registrations, enrollments and certificates.

    Every configured organization and every organization seen in any of the
    three inputs is listed, even with all-zero counts. Output is sorted by
    organization name.
    """
    reg_counts = count_by_organization(registrations)
    enr_counts = count_by_organization(enrollments)
    cert_counts = count_by_organization(certificates)

    names = {name for name in (organizations or []) if name}
    names.update(reg_counts, enr_counts, cert_counts)

    return [
        {
            "organization": name,
            "organization_display": abbreviate_organization_name(name),
            "registrations": reg_counts.get(name, 0),
            "enrollments": enr_counts.get(name, 0),
            "certificates": cert_counts.get(name, 0),
        }
        for name in sorted(names)
    ]


def _organization_to_group(groups: Dict[str, List[str]]) -> Dict[str, str]:
    lookup = {}
    for group, organizations in groups.items():
        for organization in organizations:
            lookup[organization] = group
    return lookup


def roll_up_counts(organization_counts: Dict[str, int], groups: Dict[str, List[str]]) -> Dict[str, int]:
    """Sum organization-level counts into their groups; unmapped organizations are ignored."""
    lookup = _organization_to_group(groups)
    totals: Dict[str, int] = {}
    for organization, count in organization_counts.items():
        group = lookup.get(organization)
        if organization == "" or group is None:
            continue
        totals[group] = totals.get(group, 0) + count
    return totals


def process_groups_data(reg_counts: Dict[str, int], enr_counts: Dict[str, int], cert_counts: Dict[str, int],
                        groups: Dict[str, List[str]]) -> List[Dict[str, Any]]:
    """
    Roll organization-level counts up to the tenant's groups.

    Args:
        reg_counts, enr_counts, cert_counts: organization -> count
        groups: group -> [organization], in display order

    Returns:
        One row per configured group, in the order of the groups map.
    """
    reg_totals = roll_up_counts(reg_counts, groups)
    enr_totals = roll_up_counts(enr_counts, groups)
    cert_totals = roll_up_counts(cert_counts, groups)
    return [
        {
            "group": group,
            "registrations": reg_totals.get(group, 0),
            "enrollments": enr_totals.get(group, 0),
            "certificates": cert_totals.get(group, 0),
        }
        for group in groups
    ]


def process_systemwide_data(registrations: List[Record], enrollments: List[Record], certificates: List[Record],
                            mode: EnrollmentMode) -> Dict[str, Any]:
    return {
        "registrations_count": len(registrations),
        "enrollments_count": len(enrollments),
        "certificates_count": len(certificates),
        "enrollment_mode": EnrollmentMode(mode).value,
    }


def process_all_tables(registrations: List[Record], enrollments: List[Record], certificates: List[Record],
                       mode: EnrollmentMode, organizations: Optional[Iterable[str]] = None,
                       groups: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
    """Systemwide, organization and group tables computed from one set of filtered records."""
    result = {
        "systemwide": process_systemwide_data(registrations, enrollments, certificates, mode),
        "organizations": process_organization_data(registrations, enrollments, certificates, organizations),
        "groups": [],
    }
    if groups:
        result["groups"] = process_groups_data(
            count_by_organization(registrations),
            count_by_organization(enrollments),
            count_by_organization(certificates),
            groups,
        )
    logger.debug(f"Processed tables: {len(result['organizations'])} organizations, {len(result['groups'])} groups")
    return result
