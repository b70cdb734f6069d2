from __future__ import annotations

from datetime import date, timedelta

import pytest

from safer_scraper.config import AUTH_LENIENT, AUTH_STRICT, ScraperConfig
from safer_scraper.eligibility import (
    EligibilityFilter,
    Reason,
    check_authorized,
    check_fleet,
    check_not_found,
    check_recency,
    parse_form_date,
    parse_power_units,
)
from safer_scraper.extractor import SnapshotPage

TODAY = date(2026, 10, 17)


def page(html):
    return SnapshotPage(html)


def days_ago(n):
    return (TODAY - timedelta(days=n)).strftime("%m/%d/%Y")


class TestNotFound:
    def test_not_found_marker_rejects(self, not_found_html) -> None:
        verdict = check_not_found(page(not_found_html))
        assert verdict.reason is Reason.NOT_FOUND

    def test_inactive_marker_rejects(self, inactive_html) -> None:
        assert check_not_found(page(inactive_html)).reason is Reason.NOT_FOUND

    def test_not_found_wins_over_everything_else(self, make_snapshot) -> None:
        html = make_snapshot(power_units="0", form_date="", extra="<p>RECORD NOT FOUND</p>")
        chain = EligibilityFilter.from_config(
            ScraperConfig.for_profile("contact", check_recency=True), today=TODAY)
        verdict = chain.evaluate(html)
        assert not verdict.accepted
        assert verdict.reason is Reason.NOT_FOUND

    def test_regular_snapshot_passes(self, make_snapshot) -> None:
        assert check_not_found(page(make_snapshot())) is None


class TestAuthorized:
    def test_not_authorized_rejected_by_both_policies(self, make_snapshot) -> None:
        snapshot = page(make_snapshot(status="NOT AUTHORIZED"))
        for policy in (AUTH_STRICT, AUTH_LENIENT):
            assert check_authorized(policy)(snapshot).reason is Reason.NOT_AUTHORIZED

    def test_authorized_passes_both_policies(self, make_snapshot) -> None:
        snapshot = page(make_snapshot())
        assert check_authorized(AUTH_STRICT)(snapshot) is None
        assert check_authorized(AUTH_LENIENT)(snapshot) is None

    @pytest.mark.parametrize("status", ["", "OUT-OF-SERVICE"])
    def test_empty_or_unrecognized_status_depends_on_policy(self, make_snapshot, status: str) -> None:
        snapshot = page(make_snapshot(status=status))
        assert check_authorized(AUTH_STRICT)(snapshot).reason is Reason.NOT_AUTHORIZED
        assert check_authorized(AUTH_LENIENT)(snapshot) is None

    def test_unknown_policy(self) -> None:
        with pytest.raises(ValueError):
            check_authorized("sometimes")


class TestRecency:
    def test_boundary_is_inclusive(self, make_snapshot) -> None:
        check = check_recency(180, today=TODAY)
        assert check(page(make_snapshot(form_date=days_ago(180)))) is None
        assert check(page(make_snapshot(form_date=days_ago(181)))).reason is Reason.STALE

    def test_future_dates_use_absolute_difference(self, make_snapshot) -> None:
        check = check_recency(30, today=TODAY)
        future = (TODAY + timedelta(days=31)).strftime("%m/%d/%Y")
        assert check(page(make_snapshot(form_date=future))).reason is Reason.STALE

    @pytest.mark.parametrize("raw", ["", "N/A", "not a date"])
    def test_missing_or_unparseable_date(self, make_snapshot, raw: str) -> None:
        check = check_recency(180, today=TODAY)
        assert check(page(make_snapshot(form_date=raw))).reason is Reason.MISSING_DATE

    def test_today_may_be_callable(self, make_snapshot) -> None:
        check = check_recency(0, today=lambda: TODAY)
        assert check(page(make_snapshot(form_date=days_ago(0)))) is None

    def test_parse_form_date(self) -> None:
        assert parse_form_date("01/15/2026") == date(2026, 1, 15)
        assert parse_form_date("") is None


class TestFleet:
    def test_zero_power_units_rejected(self, make_snapshot) -> None:
        assert check_fleet(page(make_snapshot(power_units="0"))).reason is Reason.EMPTY_FLEET

    @pytest.mark.parametrize("units", ["1", "5", "1,024"])
    def test_non_zero_accepted(self, make_snapshot, units: str) -> None:
        assert check_fleet(page(make_snapshot(power_units=units))) is None

    def test_missing_value_is_not_rejected(self, make_snapshot) -> None:
        assert check_fleet(page(make_snapshot(power_units=""))) is None

    def test_parse_power_units(self) -> None:
        assert parse_power_units("1,024") == 1024
        assert parse_power_units("") is None


class TestFilterChain:
    def test_first_failing_check_decides(self, make_snapshot) -> None:
        html = make_snapshot(status="NOT AUTHORIZED", power_units="0")
        chain = EligibilityFilter.from_config(ScraperConfig.for_profile("contact"))
        assert chain.evaluate(html).reason is Reason.NOT_AUTHORIZED

    def test_checks_are_independently_toggleable(self, make_snapshot) -> None:
        html = make_snapshot(power_units="0", form_date=days_ago(400))
        base = ScraperConfig.for_profile("recent")

        stale = EligibilityFilter.from_config(base, today=TODAY).evaluate(html)
        assert stale.reason is Reason.STALE

        no_recency = base.with_overrides(check_recency=False, check_fleet=True)
        assert EligibilityFilter.from_config(no_recency, today=TODAY).evaluate(html).reason is Reason.EMPTY_FLEET

        nothing = base.with_overrides(check_recency=False, check_fleet=False)
        assert EligibilityFilter.from_config(nothing, today=TODAY).evaluate(html).accepted

    def test_accepted_verdict(self, make_snapshot) -> None:
        chain = EligibilityFilter.from_config(ScraperConfig.for_profile("recent"), today=TODAY)
        verdict = chain.evaluate(make_snapshot(form_date=days_ago(10)))
        assert verdict.accepted
        assert verdict.reason is Reason.ACCEPTED
