"""
Period Counters

Fixed-shape month/quarter/annual accumulators.

Key Concepts:
- Only the 12 month slots are stored; quarters and the annual total are
  derived, so quarter[q] == sum of its months and total == sum of the
  quarters hold by construction, before and after any rollup.
- Counters are immutable. Adding two counters returns a new one.
- A BarItem pairs a target and an actual counter.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from report_engine.core.period_calendar import PeriodIndex, quarter_months

MONTHS = 12
_ZERO_MONTHS: Tuple[float, ...] = (0.0,) * MONTHS


@dataclass(frozen=True)
class PeriodCounter:
    """Twelve month slots with derived quarter and total views."""
    months: Tuple[float, ...] = _ZERO_MONTHS

    def __post_init__(self):
        if len(self.months) != MONTHS:
            raise ValueError(f"PeriodCounter needs {MONTHS} month slots, got {len(self.months)}")

    @classmethod
    def zero(cls) -> "PeriodCounter":
        return cls()

    @classmethod
    def single(cls, period: Optional[PeriodIndex], value: float) -> "PeriodCounter":
        """Counter holding one value in one month; zero when out of scope."""
        if period is None or not value:
            return cls()
        months = list(_ZERO_MONTHS)
        months[period.zero_based] = float(value)
        return cls(tuple(months))

    def month(self, month: int) -> float:
        """Value of a one-based month slot."""
        return self.months[month - 1]

    def quarter(self, quarter: int) -> float:
        return sum(self.months[m - 1] for m in quarter_months(quarter))

    @property
    def quarters(self) -> Tuple[float, float, float, float]:
        return (self.quarter(1), self.quarter(2), self.quarter(3), self.quarter(4))

    @property
    def total(self) -> float:
        return sum(self.quarters)

    def cumulative(self, through_month: int) -> float:
        """Sum of months 1..through_month."""
        return sum(self.months[:through_month])

    @property
    def is_zero(self) -> bool:
        return not any(self.months)

    def __add__(self, other: "PeriodCounter") -> "PeriodCounter":
        if not isinstance(other, PeriodCounter):
            return NotImplemented
        return PeriodCounter(tuple(a + b for a, b in zip(self.months, other.months)))

    def to_dict(self) -> Dict[str, float]:
        result: Dict[str, float] = {f"m{i}": self.months[i - 1] for i in range(1, MONTHS + 1)}
        result.update({f"q{q}": self.quarter(q) for q in range(1, 5)})
        result["total"] = self.total
        return result


@dataclass(frozen=True)
class BarItem:
    """Parallel target and actual counters."""
    target: PeriodCounter = PeriodCounter()
    actual: PeriodCounter = PeriodCounter()

    def __add__(self, other: "BarItem") -> "BarItem":
        if not isinstance(other, BarItem):
            return NotImplemented
        return BarItem(self.target + other.target, self.actual + other.actual)

    def to_dict(self) -> Dict[str, Any]:
        return {"target": self.target.to_dict(), "actual": self.actual.to_dict()}
