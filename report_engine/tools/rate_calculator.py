"""
Rate Calculation Tools

All derived metrics are computed here by deterministic code.

Every division is guarded: a zero (or negative) denominator yields 0, and
no result is ever NaN or Infinity. A zero rate is told apart from "no
data" by the denominator itself, which callers always have.

Derived period rollups are computed once per node from its already
rolled-up counter, never re-summed from leaves:
    semestral                  = q1 + q2
    as_of_september            = semestral + q3
    year_end_excluding_december = total - m12
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict

from report_engine.data.period_counter import PeriodCounter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DerivedRollups:
    """Period rollups derived from one counter."""
    semestral: float
    as_of_september: float
    year_end_excluding_december: float
    total: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "semestral": self.semestral,
            "as_of_september": self.as_of_september,
            "year_end_excluding_december": self.year_end_excluding_december,
            "total": self.total,
        }


@dataclass(frozen=True)
class AccomplishmentSummary:
    """Target vs actual with variance and percentage."""
    target: float
    actual: float
    variance: float
    percentage: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "target": self.target,
            "actual": self.actual,
            "variance": self.variance,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class FinancialSummary:
    """Allotment, obligation and disbursement with their rates."""
    allotment: float
    obligation: float
    disbursement: float
    unutilized: float
    unpaid: float
    obligation_rate: float
    disbursement_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allotment": self.allotment,
            "obligation": self.obligation,
            "disbursement": self.disbursement,
            "unutilized": self.unutilized,
            "unpaid": self.unpaid,
            "obligation_rate": self.obligation_rate,
            "disbursement_rate": self.disbursement_rate,
        }


class RateCalculator:
    """
    Deterministic rate and variance calculations.

    Usage:
        calc = get_rate_calculator()
        calc.percentage(actual=3, target=0)    # 0.0
        calc.obligation_rate(50, 200)          # 25.0
    """

    @staticmethod
    def _safe_divide(numerator: float, denominator: float) -> float:
        """Safe division: 0 for a non-positive denominator or a non-finite result."""
        if not denominator or denominator <= 0:
            return 0.0
        result = numerator / denominator
        if not math.isfinite(result):
            logger.debug(f"Non-finite ratio {numerator}/{denominator} treated as 0")
            return 0.0
        return result

    # ==================== PHYSICAL ====================

    @staticmethod
    def variance(target: float, actual: float) -> float:
        """Target minus actual; positive means behind target."""
        return target - actual

    def percentage(self, actual: float, target: float) -> float:
        """Actual as a percentage of target."""
        return self._safe_divide(actual, target) * 100

    def accomplishment(self, target: float, actual: float) -> AccomplishmentSummary:
        return AccomplishmentSummary(
            target=target,
            actual=actual,
            variance=self.variance(target, actual),
            percentage=self.percentage(actual, target),
        )

    # ==================== FINANCIAL ====================

    def obligation_rate(self, obligation: float, cost: float) -> float:
        """Obligations as a percentage of cost (allotment)."""
        return self._safe_divide(obligation, cost) * 100

    def disbursement_rate(self, disbursement: float, obligation: float) -> float:
        """Disbursements as a percentage of obligations."""
        return self._safe_divide(disbursement, obligation) * 100

    def financial(self, allotment: float, obligation: float, disbursement: float) -> FinancialSummary:
        return FinancialSummary(
            allotment=allotment,
            obligation=obligation,
            disbursement=disbursement,
            unutilized=allotment - obligation,
            unpaid=obligation - disbursement,
            obligation_rate=self.obligation_rate(obligation, allotment),
            disbursement_rate=self.disbursement_rate(disbursement, obligation),
        )

    # ==================== PERIOD ROLLUPS ====================

    @staticmethod
    def derived_rollups(counter: PeriodCounter) -> DerivedRollups:
        """Semestral, as-of-September and year-end-excluding-December values."""
        q1, q2, q3, _ = counter.quarters
        semestral = q1 + q2
        total = counter.total
        return DerivedRollups(
            semestral=semestral,
            as_of_september=semestral + q3,
            year_end_excluding_december=total - counter.month(12),
            total=total,
        )


# Singleton calculator instance
_calculator = RateCalculator()

def get_rate_calculator() -> RateCalculator:
    """Get the rate calculator instance."""
    return _calculator
