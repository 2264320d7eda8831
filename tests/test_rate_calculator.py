"""
Unit tests for the Rate Calculator.

Tests cover:
- Guarded percentages (never NaN or Infinity)
- Variance and accomplishment summaries
- Obligation and disbursement rates
- Derived period rollups
"""
import math

import pytest

from report_engine.data.period_counter import PeriodCounter
from report_engine.tools.rate_calculator import RateCalculator, get_rate_calculator


@pytest.fixture
def calc():
    return RateCalculator()


class TestPhysicalRates:
    """Tests for target vs actual calculations."""

    def test_percentage(self, calc):
        assert calc.percentage(actual=5, target=10) == 50.0

    @pytest.mark.parametrize("target", [0, 0.0, -4, None])
    def test_percentage_without_target(self, calc, target):
        assert calc.percentage(actual=3, target=target) == 0.0

    @pytest.mark.parametrize("actual,target", [
        (float("inf"), 1),
        (1, float("nan")),
        (float("nan"), 2),
    ])
    def test_never_nan_or_infinite(self, calc, actual, target):
        result = calc.percentage(actual, target)
        assert math.isfinite(result)
        assert result == 0.0

    def test_variance(self, calc):
        assert calc.variance(10, 4) == 6
        assert calc.variance(2, 5) == -3

    def test_accomplishment(self, calc):
        summary = calc.accomplishment(target=10, actual=4)
        assert summary.variance == 6
        assert summary.percentage == 40.0
        assert summary.to_dict()["target"] == 10


class TestFinancialRates:
    """Tests for obligation and disbursement rates."""

    def test_obligation_rate(self, calc):
        assert calc.obligation_rate(50, 200) == 25.0
        assert calc.obligation_rate(50, 0) == 0.0

    def test_disbursement_rate(self, calc):
        assert calc.disbursement_rate(30, 60) == 50.0
        assert calc.disbursement_rate(0, 0) == 0.0

    def test_financial_summary(self, calc):
        summary = calc.financial(allotment=100, obligation=60, disbursement=30)
        assert summary.unutilized == 40
        assert summary.unpaid == 30
        assert summary.obligation_rate == 60.0
        assert summary.disbursement_rate == 50.0

    def test_financial_summary_no_allotment(self, calc):
        summary = calc.financial(0, 0, 0)
        assert summary.obligation_rate == 0.0
        assert summary.disbursement_rate == 0.0


class TestDerivedRollups:
    """Tests for semestral and year-end rollups."""

    def test_rollups(self, calc):
        counter = PeriodCounter(tuple(float(m) for m in range(1, 13)))
        rollups = calc.derived_rollups(counter)
        assert rollups.semestral == 21
        assert rollups.as_of_september == 45
        assert rollups.year_end_excluding_december == 66
        assert rollups.total == 78

    def test_rollups_of_empty_counter(self, calc):
        assert calc.derived_rollups(PeriodCounter()).to_dict() == {
            "semestral": 0,
            "as_of_september": 0,
            "year_end_excluding_december": 0,
            "total": 0,
        }


class TestSingleton:
    def test_same_instance(self):
        assert get_rate_calculator() is get_rate_calculator()
