"""
Request-boundary validation.

Everything here raises ValidationError (or InvalidTenantError) before any
cache or refresh machinery is touched. Nothing is silently coerced into a
default range.
"""

import re
from datetime import date, datetime
from typing import Optional, Tuple

from common_types import ALL_COHORTS, EnrollmentMode, ReportMode
from exceptions import InvalidTenantError, ValidationError

DATE_FORMAT = "%m-%d-%y"
MMDDYY_PATTERN = re.compile(r"^\d{2}-\d{2}-\d{2}$")
COHORT_PATTERN = re.compile(r"^\d{2}-\d{2}$")
TENANT_CODE_PATTERN = re.compile(r"^[a-z]{3,4}$")


def parse_mmddyy(value) -> Optional[date]:
    """Parse an MM-DD-YY string; returns None when it is not a real calendar date."""
    if not isinstance(value, str) or not MMDDYY_PATTERN.match(value):
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def format_mmddyy(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def validate_date(value: str, label: str = "date") -> date:
    """Validate one MM-DD-YY date and return it parsed."""
    if not isinstance(value, str) or not MMDDYY_PATTERN.match(value.strip()):
        raise ValidationError(f"Invalid or missing {label}. Use MM-DD-YY.")
    parsed = parse_mmddyy(value.strip())
    if parsed is None:
        raise ValidationError(f"Invalid {label} provided: {value}")
    return parsed


def validate_date_range(start: str, end: str) -> Tuple[date, date]:
    """Validate an inclusive MM-DD-YY range; start must not be after end."""
    start_date = validate_date(start, "start date")
    end_date = validate_date(end, "end date")
    if start_date > end_date:
        raise ValidationError("Start date must be before end date")
    return start_date, end_date


def validate_cohort(value: str) -> str:
    """Validate a cohort selector: 'ALL' or an MM-YY key with a real month."""
    if value == ALL_COHORTS:
        return value
    if not isinstance(value, str) or not COHORT_PATTERN.match(value):
        raise ValidationError("Cohort must be ALL or MM-YY")
    if not 1 <= int(value[:2]) <= 12:
        raise ValidationError(f"Invalid cohort month: {value}")
    return value


def validate_report_mode(value: str) -> ReportMode:
    try:
        return ReportMode(value)
    except ValueError:
        raise ValidationError("Mode must be: " + ", ".join(mode.value for mode in ReportMode))


def validate_enrollment_mode(value: str) -> EnrollmentMode:
    try:
        return EnrollmentMode.from_request(value)
    except ValueError:
        raise ValidationError(
            "Enrollment mode must be: " + ", ".join(mode.value for mode in EnrollmentMode))


def validate_tenant_code(code: str) -> str:
    if not isinstance(code, str) or not TENANT_CODE_PATTERN.match(code):
        raise InvalidTenantError("Tenant code must be 3-4 lowercase letters")
    return code
