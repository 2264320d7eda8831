"""
Period Calendar Module

Buckets record dates into calendar periods for monthly and quarterly reports.

Key Concepts:
- Period Index: a month slot 1-12 plus its quarter 1-4
- Quarter = floor(zero_based_month / 3) + 1, so Jan-Mar is Q1
- Bucketing policy decides which dates are in scope for a target year:
    CALENDAR_MATCH    date year must equal the target year
    CUMULATIVE_UP_TO  target year and month <= cutoff ("as of" reports)
    ANY_YEAR          month of the date whatever its year (plan reports
                      whose records were year-filtered upstream)
- "All" periods: no target year. Calendar-bound policies yield no period,
  so monthly detail is zero while annual trees are still built.
- A missing or malformed date is never an error. It is simply out of scope.
"""
import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple, Union

from report_engine.core.error_taxonomy import PeriodPolicyError

logger = logging.getLogger(__name__)

ALL_PERIODS = "All"

MONTH_LABELS: Tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

QUARTER_LABELS: Tuple[str, ...] = (
    "1st Quarter", "2nd Quarter", "3rd Quarter", "4th Quarter",
)

DateLike = Union[str, date, datetime, None]


class BucketMode(Enum):
    """Which dates count toward a target year."""
    CALENDAR_MATCH = "calendar_match"
    CUMULATIVE_UP_TO = "cumulative_up_to"
    ANY_YEAR = "any_year"


@dataclass(frozen=True)
class BucketPolicy:
    """A bucketing mode plus the cutoff month it applies (1-12)."""
    mode: BucketMode = BucketMode.CALENDAR_MATCH
    cutoff_month: int = 12

    def __post_init__(self):
        if not isinstance(self.cutoff_month, int) or not 1 <= self.cutoff_month <= 12:
            raise PeriodPolicyError(
                f"Cutoff month must be 1-12, got {self.cutoff_month!r}",
                mode=self.mode.value,
            )

    @classmethod
    def calendar_match(cls) -> "BucketPolicy":
        return cls(BucketMode.CALENDAR_MATCH)

    @classmethod
    def cumulative_up_to(cls, cutoff_month: int) -> "BucketPolicy":
        return cls(BucketMode.CUMULATIVE_UP_TO, cutoff_month)

    @classmethod
    def any_year(cls) -> "BucketPolicy":
        return cls(BucketMode.ANY_YEAR)


@dataclass(frozen=True)
class PeriodIndex:
    """A month slot (1-12) and the quarter containing it."""
    month: int

    @property
    def zero_based(self) -> int:
        return self.month - 1

    @property
    def quarter(self) -> int:
        return self.zero_based // 3 + 1

    @property
    def month_key(self) -> str:
        return f"m{self.month}"

    @property
    def quarter_key(self) -> str:
        return f"q{self.quarter}"

    @property
    def label(self) -> str:
        return MONTH_LABELS[self.zero_based]


def quarter_months(quarter: int) -> Tuple[int, int, int]:
    """One-based months belonging to a quarter."""
    if not 1 <= quarter <= 4:
        raise ValueError(f"Quarter must be 1-4, got {quarter}")
    first = (quarter - 1) * 3 + 1
    return (first, first + 1, first + 2)


def parse_date(value: DateLike) -> Optional[date]:
    """
    Parse an optional record date.

    Accepts date/datetime objects and strings in YYYY-MM-DD, YYYY-MM or
    ISO datetime form. Anything else returns None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        logger.debug(f"Ignoring non-string date value: {value!r}")
        return None

    text = value.strip()
    if not text:
        return None

    for fmt in ("%Y-%m-%d", "%Y-%m"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        logger.debug(f"Unparsable date: {value!r}")
        return None


def parse_target_year(year: Union[str, int, None]) -> Optional[int]:
    """Target year as an int, or None for "All" and unparsable values."""
    if year is None or year == ALL_PERIODS:
        return None
    if isinstance(year, int):
        return year
    try:
        return int(str(year).strip())
    except ValueError:
        logger.debug(f"Unparsable target year: {year!r}")
        return None


def bucket(
    date_value: DateLike,
    target_year: Union[str, int, None],
    policy: BucketPolicy = BucketPolicy(),
) -> Optional[PeriodIndex]:
    """
    Place a date into a period slot for a target year.

    Args:
        date_value: Record date (string or date), may be missing
        target_year: Selected year, or "All"
        policy: Which dates count toward the target year

    Returns:
        PeriodIndex, or None when the date is out of scope
    """
    parsed = parse_date(date_value)
    if parsed is None:
        return None

    if policy.mode == BucketMode.ANY_YEAR:
        return PeriodIndex(parsed.month)

    year = parse_target_year(target_year)
    if year is None or parsed.year != year:
        return None

    if policy.mode == BucketMode.CUMULATIVE_UP_TO and parsed.month > policy.cutoff_month:
        return None

    return PeriodIndex(parsed.month)


def month_end(year: int, month: int) -> date:
    """Last calendar day of a month."""
    return date(year, month, calendar.monthrange(year, month)[1])


def is_on_or_before(
    date_value: DateLike,
    target_year: Union[str, int, None],
    cutoff_month: int,
) -> bool:
    """
    True when a date falls on or before the end of the cutoff month.

    Used for "accomplished as of" tests where earlier years also count.
    With no target year every valid date qualifies.
    """
    parsed = parse_date(date_value)
    if parsed is None:
        return False
    year = parse_target_year(target_year)
    if year is None:
        return True
    return parsed <= month_end(year, cutoff_month)


class PeriodCalendar:
    """
    Period context for a single report run.

    Usage:
        cal = PeriodCalendar("2024", BucketPolicy.cumulative_up_to(6))
        period = cal.bucket("2024-03-15")   # PeriodIndex(month=3)
        cal.bucket("2024-09-01")            # None (after cutoff)
    """

    def __init__(self, target_year: Union[str, int, None], policy: BucketPolicy = None):
        self.target_year = parse_target_year(target_year)
        self.policy = policy or BucketPolicy.calendar_match()

    @property
    def is_all_periods(self) -> bool:
        return self.target_year is None

    @property
    def cutoff_month(self) -> int:
        return self.policy.cutoff_month

    def bucket(self, date_value: DateLike) -> Optional[PeriodIndex]:
        return bucket(date_value, self.target_year, self.policy)

    def is_on_or_before_cutoff(self, date_value: DateLike) -> bool:
        return is_on_or_before(date_value, self.target_year, self.policy.cutoff_month)

    def period_label(self) -> str:
        """Human label such as "As of June 2024" or "All periods"."""
        if self.is_all_periods:
            return "All periods"
        if self.policy.mode == BucketMode.CUMULATIVE_UP_TO:
            return f"As of {calendar.month_name[self.cutoff_month]} {self.target_year}"
        return str(self.target_year)
