"""
Reports service.

One core, build_report(), assembles every report view from the tenant's cache
and returns a typed ReportResult. Two thin adapters sit on top of it:

- api.py serializes the result into the HTTP response,
- get_report_data() hands the plain dict to internal callers (CLI, other
  services) without going through HTTP.

Report kinds:
    registrations  submissions by Submitted date, or by cohort (ALL or MM-YY)
    enrollees      enrollments by TOU completion or by registration date
    certificates   certificate earners by Issued date
    summary        systemwide counts plus optional organization / group tables
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from cohorts import cohort_key, data_cohort_keys, format_cohort_label
from common_types import ALL_COHORTS, DatasetKind, DerivedDataset, EnrollmentMode, RefreshStatus, ReportMode
from data_processor import (
    filter_certificates, process_all_tables, process_enrollments_data, process_registrations_data,
    sort_certificates, sort_enrollees, sort_registrations_by_cohort,
)
from exceptions import MissingDatasetError, ValidationError
from input_validator import (
    format_mmddyy, parse_mmddyy, validate_cohort, validate_date_range, validate_enrollment_mode,
    validate_report_mode,
)
from refresh_service import RefreshCoordinator, RefreshResult
from sheet_columns import Record

logger = logging.getLogger("reports_service")

REPORT_KINDS = ("registrations", "enrollees", "certificates", "summary")


@dataclass
class ReportParams:
    """Validated report request."""
    report: str
    start: date
    end: date
    mode: ReportMode = ReportMode.DATE
    cohort: Optional[str] = None
    enrollment_mode: EnrollmentMode = EnrollmentMode.TOU_COMPLETION
    organization_data: bool = False
    groups_data: bool = False

    @classmethod
    def from_request(cls, report: str, start_date: str, end_date: str, mode: str = "date",
                     cohort: Optional[str] = None, enrollment_mode: str = "tou_completion",
                     organization_data: bool = False, groups_data: bool = False) -> "ReportParams":
        """
        Validate raw request values.

        Raises:
            ValidationError: On an unknown report, a bad date range, mode or cohort.
        """
        if report not in REPORT_KINDS:
            raise ValidationError("Report must be: " + ", ".join(REPORT_KINDS))
        start, end = validate_date_range(start_date, end_date)
        report_mode = validate_report_mode(mode)
        if report_mode is ReportMode.COHORT:
            if not cohort:
                raise ValidationError("Cohort is required when mode is cohort")
            cohort = validate_cohort(cohort)
        elif cohort:
            cohort = validate_cohort(cohort)
        return cls(
            report=report,
            start=start,
            end=end,
            mode=report_mode,
            cohort=cohort,
            enrollment_mode=validate_enrollment_mode(enrollment_mode),
            organization_data=bool(organization_data),
            groups_data=bool(groups_data),
        )

    @property
    def range_label(self) -> str:
        return f"{format_mmddyy(self.start)} - {format_mmddyy(self.end)}"


@dataclass
class ReportResult:
    report: str
    caption: str
    start_date: str
    end_date: str
    rows: List[Record] = field(default_factory=list)
    cohorts: List[str] = field(default_factory=list)
    systemwide: Optional[Dict[str, Any]] = None
    organizations: Optional[List[Dict[str, Any]]] = None
    groups: Optional[List[Dict[str, Any]]] = None
    timestamp: Optional[str] = None
    refresh: Optional[RefreshResult] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "report": self.report,
            "caption": self.caption,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "count": len(self.rows),
            "rows": self.rows,
            "timestamp": self.timestamp,
        }
        if self.cohorts:
            body["cohorts"] = [{"key": key, "label": format_cohort_label(key)} for key in self.cohorts]
        if self.systemwide is not None:
            body["systemwide"] = self.systemwide
        if self.organizations is not None:
            body["organization_data"] = self.organizations
        if self.groups is not None:
            body["groups_data"] = self.groups
        if self.refresh is not None:
            body["refresh"] = self.refresh.to_dict()
        return body


class ReportsService:
    """Builds report views for a tenant on top of a RefreshCoordinator."""

    def __init__(self, coordinator: RefreshCoordinator):
        self.coordinator = coordinator

    def today(self) -> date:
        now = self.coordinator.cache.clock()
        return now.astimezone(ZoneInfo(self.coordinator.tz_name)).date()

    def is_all_range(self, tenant, params: ReportParams) -> bool:
        """The 'All' preset: tenant start date through today."""
        return params.start == parse_mmddyy(tenant.start_date) and params.end == self.today()

    def _require(self, records: Optional[List[Record]], name: str, refresh: RefreshResult) -> List[Record]:
        if records is None:
            message = refresh.message if refresh.status is RefreshStatus.ERROR else f"{name} data is not cached"
            raise MissingDatasetError(message)
        return records

    def build_report(self, tenant, params: ReportParams, ttl: Optional[int] = None) -> ReportResult:
        """
        Make sure the tenant's cache is fresh, then compute the requested view.

        A failed refresh does not fail the report while cached data exists; the
        refresh outcome travels with the result instead.

        Raises:
            MissingDatasetError: If a dataset the report needs was never cached.
            RefreshInProgress: If another refresh holds the tenant lock too long.
        """
        refresh = self.coordinator.ensure_fresh(tenant, ttl)
        if refresh.status is not RefreshStatus.SUCCESS:
            logger.warning(f"Serving report after refresh {refresh.status.value}: {refresh.message}",
                           extra={"tenant": tenant.code, "report": params.report})

        builders = {
            "registrations": self._registrations,
            "enrollees": self._enrollees,
            "certificates": self._certificates,
            "summary": self._summary,
        }
        result = builders[params.report](tenant, params, refresh)
        result.timestamp = self.coordinator.display_timestamp(tenant)
        result.refresh = refresh
        logger.info(f"Built {params.report} report with {len(result.rows)} rows",
                    extra={"tenant": tenant.code, "report": params.report})
        return result

    def _new_result(self, params: ReportParams, caption: str) -> ReportResult:
        return ReportResult(
            report=params.report,
            caption=f"{caption} | {params.range_label}",
            start_date=format_mmddyy(params.start),
            end_date=format_mmddyy(params.end),
        )

    def _registrations(self, tenant, params: ReportParams, refresh: RefreshResult) -> ReportResult:
        submissions = self._require(self.coordinator.load_raw(tenant, DatasetKind.SUBMISSIONS), "Submissions", refresh)

        if params.mode is ReportMode.COHORT:
            if params.cohort == ALL_COHORTS:
                keys = data_cohort_keys(submissions, params.start, params.end)
                selected = set(keys)
                result = self._new_result(params, "Registrations for All Cohorts")
                result.cohorts = keys
            else:
                selected = {params.cohort}
                result = self._new_result(params, f"Registrations for {format_cohort_label(params.cohort)} Cohort")
                result.cohorts = [params.cohort]
            rows = [record for record in submissions if cohort_key(record) in selected]
            result.rows = sort_registrations_by_cohort(rows)
            return result

        result = self._new_result(params, "Registrations by Date")
        if self.is_all_range(tenant, params):
            result.rows = list(submissions)
        else:
            result.rows = process_registrations_data(submissions, params.start, params.end)
        return result

    def _enrollments(self, tenant, params: ReportParams, refresh: RefreshResult) -> List[Record]:
        registrants = self.coordinator.load_raw(tenant, DatasetKind.REGISTRANTS)
        enrollments = self.coordinator.load_derived(tenant, DerivedDataset.ENROLLMENTS)
        if registrants is None and enrollments is None:
            self._require(None, "Registrants", refresh)
        return process_enrollments_data(enrollments, params.start, params.end, registrants,
                                        params.enrollment_mode)["data"]

    def _enrollees(self, tenant, params: ReportParams, refresh: RefreshResult) -> ReportResult:
        if params.enrollment_mode is EnrollmentMode.REGISTRATION_DATE:
            caption = "Enrollees by Registration Date"
        else:
            caption = "Enrollees by TOU Completion Date"
        result = self._new_result(params, caption)
        result.rows = sort_enrollees(self._enrollments(tenant, params, refresh))
        return result

    def _certificate_rows(self, tenant, params: ReportParams, refresh: RefreshResult) -> List[Record]:
        registrants = self._require(self.coordinator.load_raw(tenant, DatasetKind.REGISTRANTS), "Registrants", refresh)
        if self.is_all_range(tenant, params):
            return filter_certificates(registrants)
        return filter_certificates(registrants, params.start, params.end)

    def _certificates(self, tenant, params: ReportParams, refresh: RefreshResult) -> ReportResult:
        result = self._new_result(params, "Certificates Earned")
        result.rows = sort_certificates(self._certificate_rows(tenant, params, refresh))
        return result

    def _summary(self, tenant, params: ReportParams, refresh: RefreshResult) -> ReportResult:
        submissions = self._require(self.coordinator.load_raw(tenant, DatasetKind.SUBMISSIONS), "Submissions", refresh)
        registrations = process_registrations_data(submissions, params.start, params.end)
        enrollments = self._enrollments(tenant, params, refresh)
        certificates = self._certificate_rows(tenant, params, refresh)

        tables = process_all_tables(
            registrations, enrollments, certificates, params.enrollment_mode,
            organizations=tenant.organizations,
            groups=tenant.groups if params.groups_data else None,
        )
        result = self._new_result(params, "Summary")
        result.systemwide = tables["systemwide"]
        if params.organization_data:
            result.organizations = tables["organizations"]
        if params.groups_data and tenant.has_groups:
            result.groups = tables["groups"]
        return result

    def registrations_report(self, tenant, start_date: str, end_date: str, mode: str = "date",
                             cohort: Optional[str] = None) -> ReportResult:
        params = ReportParams.from_request("registrations", start_date, end_date, mode=mode, cohort=cohort)
        return self.build_report(tenant, params)

    def enrollees_report(self, tenant, start_date: str, end_date: str,
                         enrollment_mode: str = "tou_completion") -> ReportResult:
        params = ReportParams.from_request("enrollees", start_date, end_date, enrollment_mode=enrollment_mode)
        return self.build_report(tenant, params)

    def certificates_report(self, tenant, start_date: str, end_date: str) -> ReportResult:
        params = ReportParams.from_request("certificates", start_date, end_date)
        return self.build_report(tenant, params)


def get_report_data(service: ReportsService, tenant, params: ReportParams) -> Dict[str, Any]:
    """Internal adapter: the report as a plain dict, for callers inside the process."""
    return service.build_report(tenant, params).to_dict()
