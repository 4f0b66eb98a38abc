"""
Tests for the report data processing functions.
"""

from datetime import date

import pytest

from common_types import EnrollmentMode
from data_processor import (
    abbreviate_organization_name, count_by_organization, derive_certificates,
    derive_enrollments, filter_by_date_range, filter_certificates, process_all_tables,
    process_enrollments_data, process_groups_data, process_invitations_data,
    process_organization_data, process_registrations_data, process_systemwide_data,
    sort_certificates, sort_enrollees, sort_registrations_by_cohort,
)
from exceptions import MissingDatasetError


def rec(**fields):
    record = {name: "" for name in (
        "invited", "enrolled", "cohort", "year", "first", "last", "email", "organization",
        "certificate", "issued", "submitted")}
    record.update(fields)
    return record


class TestDateFilter:
    def test_boundaries_are_inclusive(self):
        rows = [
            rec(first="before", submitted="05-31-25"),
            rec(first="start", submitted="06-01-25"),
            rec(first="end", submitted="06-30-25"),
            rec(first="after", submitted="07-01-25"),
        ]
        result = filter_by_date_range(rows, "SUBMITTED", "06-01-25", "06-30-25")
        assert [r["first"] for r in result] == ["start", "end"]

    def test_unparsable_dates_are_excluded(self):
        rows = [rec(submitted=""), rec(submitted="2025-06-01"), rec(submitted="13-45-25"), rec(submitted="06-10-25")]
        result = filter_by_date_range(rows, "submitted", date(2025, 6, 1), date(2025, 6, 30))
        assert result == [rows[3]]

    def test_non_record_rows_are_skipped(self):
        rows = ["junk", None, rec(submitted="06-10-25")]
        assert len(filter_by_date_range(rows, "submitted", "06-01-25", "06-30-25")) == 1


class TestDerivedDatasets:
    def test_enrollments_and_certificates_use_yes_sentinel(self):
        rows = [rec(enrolled="Yes", certificate="Yes"), rec(enrolled="yes"), rec(enrolled="No", certificate="")]
        assert derive_enrollments(rows) == [rows[0]]
        assert derive_certificates(rows) == [rows[0]]

    def test_registrations_filter_on_submitted(self):
        rows = [rec(submitted="06-10-25", invited="01-01-24"), rec(submitted="01-10-25", invited="06-10-25")]
        assert process_registrations_data(rows, "06-01-25", "06-30-25") == [rows[0]]

    def test_invitations_view(self):
        rows = [
            rec(invited="06-02-25", enrolled="Yes", certificate="Yes", issued="06-20-25"),
            rec(invited="06-03-25"),
            rec(invited="01-03-25", certificate="Yes", issued="06-21-25"),
        ]
        view = process_invitations_data(rows, "06-01-25", "06-30-25")
        assert len(view["invitations"]) == 2
        assert view["enrollments"] == [rows[0]]
        assert view["certificates"] == [rows[0], rows[2]]


class TestEnrollments:
    def setup_method(self):
        self.registrants = [
            rec(last="A", enrolled="Yes", invited="05-15-25", submitted="06-05-25"),
            rec(last="B", enrolled="Yes", invited="06-10-25", submitted="07-02-25"),
            rec(last="C", enrolled="", invited="06-11-25", submitted="06-12-25"),
        ]

    def test_tou_completion_uses_submitted(self):
        result = process_enrollments_data(None, "06-01-25", "06-30-25", self.registrants, EnrollmentMode.TOU_COMPLETION)
        assert [r["last"] for r in result["data"]] == ["A"]

    def test_tou_completion_prefers_enrollments_dataset(self):
        enrollments = [self.registrants[1]]
        result = process_enrollments_data(enrollments, "07-01-25", "07-31-25", self.registrants, "tou_completion")
        assert [r["last"] for r in result["data"]] == ["B"]

    def test_registration_date_uses_invited_and_enrolled(self):
        result = process_enrollments_data(None, "06-01-25", "06-30-25", self.registrants, EnrollmentMode.REGISTRATION_DATE)
        assert [r["last"] for r in result["data"]] == ["B"]

    def test_registration_date_requires_registrants(self):
        with pytest.raises(MissingDatasetError):
            process_enrollments_data([], "06-01-25", "06-30-25", None, EnrollmentMode.REGISTRATION_DATE)

    def test_tou_completion_requires_some_dataset(self):
        with pytest.raises(MissingDatasetError):
            process_enrollments_data(None, "06-01-25", "06-30-25", None, EnrollmentMode.TOU_COMPLETION)


class TestCertificates:
    def test_sort_law(self):
        rows = [
            rec(organization="Z", certificate="Yes", issued=""),
            rec(organization="A", certificate="Yes", issued=""),
            rec(organization="B", certificate="Yes", issued="06-01-25"),
            rec(organization="C", certificate="Yes", issued="05-01-25"),
        ]
        result = sort_certificates(filter_certificates(rows))
        assert [r["organization"] for r in result] == ["A", "Z", "B", "C"]

    def test_range_requires_issued_date(self):
        rows = [
            rec(first="no-issued", certificate="Yes"),
            rec(first="in", certificate="Yes", issued="06-15-25"),
            rec(first="out", certificate="Yes", issued="07-15-25"),
            rec(first="not-certified", certificate="", issued="06-15-25"),
        ]
        assert [r["first"] for r in filter_certificates(rows, "06-01-25", "06-30-25")] == ["in"]
        assert [r["first"] for r in filter_certificates(rows)] == ["no-issued", "in", "out"]

    def test_impossible_issued_date_sorts_with_missing_dates(self):
        rows = [
            rec(organization="B", certificate="Yes", issued="06-01-25"),
            rec(organization="Z", certificate="Yes", issued="13-45-25"),
            rec(organization="A", certificate="Yes", issued=""),
        ]
        result = sort_certificates(rows)
        assert [r["organization"] for r in result] == ["A", "Z", "B"]
        assert filter_certificates(rows, "01-01-25", "12-31-25") == [rows[0]]

    def test_half_open_range_is_rejected(self):
        with pytest.raises(ValueError):
            filter_certificates([], "06-01-25", None)

    def test_issued_ties_break_on_year_cohort_then_name(self):
        rows = [
            rec(last="Young", first="B", year="24", cohort="10", issued="06-01-25"),
            rec(last="Adams", first="Z", year="25", cohort="01", issued="06-01-25"),
            rec(last="Adams", first="A", year="25", cohort="01", issued="06-01-25"),
            rec(last="Brown", first="A", year="25", cohort="03", issued="06-01-25"),
            rec(last="Early", first="A", year="25", cohort="12", issued="12-31-24"),
        ]
        result = sort_certificates(rows)
        assert [(r["last"], r["first"]) for r in result] == [
            ("Brown", "A"), ("Adams", "A"), ("Adams", "Z"), ("Young", "B"), ("Early", "A"),
        ]


class TestSorting:
    def test_registrations_by_cohort(self):
        rows = [
            rec(first="old", year="24", cohort="12", submitted="12-01-24"),
            rec(first="jun-early", year="25", cohort="06", submitted="06-01-25"),
            rec(first="jun-late", year="25", cohort="06", submitted="06-20-25"),
            rec(first="may", year="25", cohort="05", submitted="05-03-25"),
            rec(first="missing", year="", cohort="", submitted=""),
        ]
        result = sort_registrations_by_cohort(rows)
        assert [r["first"] for r in result] == ["jun-late", "jun-early", "may", "old", "missing"]

    def test_enrollees_date_desc_then_last_name(self):
        rows = [
            rec(last="Smith", enrolled="06-01-25"),
            rec(last="Adams", enrolled="06-01-25"),
            rec(last="Jones", enrolled="06-15-25"),
        ]
        assert [r["last"] for r in sort_enrollees(rows)] == ["Jones", "Adams", "Smith"]

    def test_enrollees_without_dates_sort_by_last_name(self):
        rows = [rec(last="Smith", enrolled="Yes"), rec(last="Adams", enrolled="Yes")]
        assert [r["last"] for r in sort_enrollees(rows)] == ["Adams", "Smith"]


class TestRollUps:
    def test_abbreviation_applies_first_matching_rule_only(self):
        assert abbreviate_organization_name("Foothill-De Anza Community College District") == "Foothill-De Anza CCD"
        assert abbreviate_organization_name("Foothill Community College") == "Foothill CC"
        assert abbreviate_organization_name("Acme Continuing Education") == "Acme Cont Ed"
        assert abbreviate_organization_name("Chico State") == "Chico State"

    def test_organization_data_includes_configured_and_seen(self):
        registrations = [rec(organization="Beta"), rec(organization="Acme"), rec(organization="")]
        enrollments = [rec(organization="Gamma")]
        certificates = []
        result = process_organization_data(registrations, enrollments, certificates, ["Delta Community College"])
        assert [r["organization"] for r in result] == ["Acme", "Beta", "Delta Community College", "Gamma"]
        delta = result[2]
        assert delta == {
            "organization": "Delta Community College",
            "organization_display": "Delta CC",
            "registrations": 0,
            "enrollments": 0,
            "certificates": 0,
        }
        assert result[3]["enrollments"] == 1

    def test_groups_follow_map_order_and_skip_unmapped(self):
        groups = {"South": ["Beta"], "North": ["Acme", "Gamma"]}
        reg = count_by_organization([rec(organization="Acme"), rec(organization="Gamma"), rec(organization="Zeta")])
        enr = count_by_organization([rec(organization="Beta")])
        result = process_groups_data(reg, enr, {}, groups)
        assert result == [
            {"group": "South", "registrations": 0, "enrollments": 1, "certificates": 0},
            {"group": "North", "registrations": 2, "enrollments": 0, "certificates": 0},
        ]

    def test_systemwide(self):
        result = process_systemwide_data([rec()], [], [rec(), rec()], EnrollmentMode.REGISTRATION_DATE)
        assert result == {
            "registrations_count": 1,
            "enrollments_count": 0,
            "certificates_count": 2,
            "enrollment_mode": "registration_date",
        }

    def test_all_tables(self):
        tables = process_all_tables([rec(organization="Acme")], [], [], EnrollmentMode.TOU_COMPLETION,
                                    organizations=["Acme"], groups={"North": ["Acme"]})
        assert tables["systemwide"]["registrations_count"] == 1
        assert tables["organizations"][0]["registrations"] == 1
        assert tables["groups"] == [{"group": "North", "registrations": 1, "enrollments": 0, "certificates": 0}]
