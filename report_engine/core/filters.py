"""
Report filters: selected year, operating unit, fund type and tier.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from report_engine.core.period_calendar import ALL_PERIODS, parse_target_year
from report_engine.core.records import ProgramRecord

ALL = "All"


@dataclass(frozen=True)
class ReportFilters:
    """
    Filter selection for one report run. "All" disables a filter.

    The year doubles as the target year for period bucketing; records are
    additionally restricted to that funding year for reports that ask.
    """
    year: str = ALL_PERIODS
    operating_unit: str = ALL
    fund_type: str = ALL
    tier: str = ALL

    @property
    def target_year(self) -> Optional[int]:
        return parse_target_year(self.year)

    @property
    def is_all_periods(self) -> bool:
        return self.target_year is None

    def matches(
        self,
        record: ProgramRecord,
        by_fund_year: bool = True,
        by_fund_type: bool = True,
    ) -> bool:
        """True if the record passes every active filter."""
        if self.operating_unit != ALL and record.operating_unit != self.operating_unit:
            return False
        if self.tier != ALL and record.tier != self.tier:
            return False
        if by_fund_type and self.fund_type != ALL and record.fund_type != self.fund_type:
            return False
        if by_fund_year and self.target_year is not None and record.funding_year != self.target_year:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "operating_unit": self.operating_unit,
            "fund_type": self.fund_type,
            "tier": self.tier,
        }
