"""
Unit tests for the Period Calendar.

Tests cover:
- Month and quarter mapping of period indexes
- Bucketing policies (calendar match, cumulative up to a cutoff, any year)
- "All" periods and malformed dates
- On-or-before-cutoff checks and month ends
- Period labels
"""
import pytest
from datetime import date, datetime

from report_engine.core.error_taxonomy import PeriodPolicyError
from report_engine.core.period_calendar import (
    BucketMode,
    BucketPolicy,
    PeriodCalendar,
    PeriodIndex,
    bucket,
    is_on_or_before,
    month_end,
    parse_date,
    quarter_months,
)


@pytest.fixture
def as_of_june():
    """Calendar for 2024 as of June."""
    return PeriodCalendar("2024", BucketPolicy.cumulative_up_to(6))


class TestPeriodIndex:
    """Tests for month and quarter slots."""

    @pytest.mark.parametrize("month,quarter", [
        (1, 1), (3, 1), (4, 2), (6, 2), (7, 3), (9, 3), (10, 4), (12, 4),
    ])
    def test_quarter_of_month(self, month, quarter):
        """Jan-Mar is Q1, Oct-Dec is Q4."""
        assert PeriodIndex(month).quarter == quarter

    def test_keys_and_label(self):
        period = PeriodIndex(5)
        assert period.zero_based == 4
        assert period.month_key == "m5"
        assert period.quarter_key == "q2"
        assert period.label == "May"

    def test_quarter_months(self):
        assert quarter_months(1) == (1, 2, 3)
        assert quarter_months(4) == (10, 11, 12)

    def test_quarter_months_out_of_range(self):
        with pytest.raises(ValueError):
            quarter_months(5)


class TestParseDate:
    """Tests for tolerant date parsing."""

    def test_day_and_month_forms(self):
        assert parse_date("2024-03-15") == date(2024, 3, 15)
        assert parse_date("2024-05") == date(2024, 5, 1)

    def test_iso_datetime(self):
        assert parse_date("2024-05-10T08:00:00Z") == date(2024, 5, 10)

    def test_date_objects_pass_through(self):
        assert parse_date(date(2024, 1, 2)) == date(2024, 1, 2)
        assert parse_date(datetime(2024, 1, 2, 9, 30)) == date(2024, 1, 2)

    @pytest.mark.parametrize("value", [None, "", "   ", "not-a-date", "2024-13-01", 20240101])
    def test_invalid_values_are_none(self, value):
        """Malformed dates never raise."""
        assert parse_date(value) is None


class TestBucket:
    """Tests for placing dates into periods."""

    def test_calendar_match(self):
        period = bucket("2024-03-15", "2024")
        assert period == PeriodIndex(3)
        assert period.quarter == 1

    def test_calendar_match_other_year(self):
        assert bucket("2023-03-15", "2024") is None

    def test_integer_target_year(self):
        assert bucket("2024-11-30", 2024) == PeriodIndex(11)

    def test_cumulative_cutoff(self):
        policy = BucketPolicy.cumulative_up_to(6)
        assert bucket("2024-06-30", "2024", policy) == PeriodIndex(6)
        assert bucket("2024-07-01", "2024", policy) is None
        assert bucket("2023-01-01", "2024", policy) is None

    def test_any_year_ignores_year(self):
        policy = BucketPolicy.any_year()
        assert bucket("2023-03-15", "2024", policy) == PeriodIndex(3)
        assert bucket("2023-03-15", "All", policy) == PeriodIndex(3)

    @pytest.mark.parametrize("policy", [
        BucketPolicy.calendar_match(),
        BucketPolicy.cumulative_up_to(12),
    ])
    def test_all_periods_yield_nothing(self, policy):
        """Without a target year, calendar-bound policies bucket nothing."""
        assert bucket("2024-03-15", "All", policy) is None
        assert bucket("2024-03-15", None, policy) is None

    def test_malformed_date(self):
        assert bucket("15/03/2024", "2024") is None
        assert bucket(None, "2024") is None


class TestBucketPolicy:
    """Tests for policy validation."""

    def test_defaults(self):
        policy = BucketPolicy()
        assert policy.mode == BucketMode.CALENDAR_MATCH
        assert policy.cutoff_month == 12

    @pytest.mark.parametrize("cutoff", [0, 13, -1])
    def test_invalid_cutoff_raises(self, cutoff):
        with pytest.raises(PeriodPolicyError):
            BucketPolicy.cumulative_up_to(cutoff)

    def test_policy_error_is_value_error(self):
        with pytest.raises(ValueError):
            BucketPolicy(BucketMode.CUMULATIVE_UP_TO, 0)


class TestCutoff:
    """Tests for on-or-before checks."""

    def test_month_end(self):
        assert month_end(2024, 2) == date(2024, 2, 29)
        assert month_end(2023, 2) == date(2023, 2, 28)
        assert month_end(2024, 12) == date(2024, 12, 31)

    def test_on_or_before(self):
        assert is_on_or_before("2024-06-30", "2024", 6)
        assert not is_on_or_before("2024-07-01", "2024", 6)

    def test_earlier_years_count(self):
        assert is_on_or_before("2022-12-01", "2024", 1)

    def test_missing_date_is_not_done(self):
        assert not is_on_or_before(None, "2024", 12)
        assert not is_on_or_before("garbage", "2024", 12)

    def test_all_periods_accepts_any_valid_date(self):
        assert is_on_or_before("2030-01-01", "All", 1)


class TestPeriodCalendar:
    """Tests for the per-run calendar."""

    def test_bucket_uses_policy(self, as_of_june):
        assert as_of_june.bucket("2024-03-15") == PeriodIndex(3)
        assert as_of_june.bucket("2024-09-01") is None

    def test_cutoff_check(self, as_of_june):
        assert as_of_june.cutoff_month == 6
        assert as_of_june.is_on_or_before_cutoff("2024-06-15")
        assert not as_of_june.is_on_or_before_cutoff("2024-08-15")

    def test_period_labels(self, as_of_june):
        assert as_of_june.period_label() == "As of June 2024"
        assert PeriodCalendar("2024").period_label() == "2024"
        assert PeriodCalendar("All").period_label() == "All periods"

    def test_all_periods(self):
        cal = PeriodCalendar("All")
        assert cal.is_all_periods
        assert cal.target_year is None
        assert cal.bucket("2024-03-15") is None
