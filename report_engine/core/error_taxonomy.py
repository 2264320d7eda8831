"""
Error Taxonomy for the Report Engine

Two kinds of failure exist and they are handled differently:
- Data-quality issues (bad dates, unknown components, unknown object codes,
  zero denominators) never raise. They resolve to a neutral value and are
  recorded as DataQualityIssue entries on the report result.
- Programmer errors (an unknown report name, a malformed column spec, an
  invalid bucketing policy) raise a ReportEngineError subclass.
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Systematic classification of failure modes."""
    # Data quality (never raised)
    UNCLASSIFIABLE_RECORD = auto()
    UNKNOWN_OBJECT_CODE = auto()
    MIXED_UNITS = auto()

    # Programmer errors (raised)
    UNKNOWN_REPORT = auto()
    INVALID_COLUMN_SPEC = auto()
    INVALID_PERIOD_POLICY = auto()
    CONFIGURATION_ERROR = auto()


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Default severity per data-quality category
CATEGORY_SEVERITY: Dict[ErrorCategory, ErrorSeverity] = {
    ErrorCategory.UNCLASSIFIABLE_RECORD: ErrorSeverity.HIGH,
    ErrorCategory.UNKNOWN_OBJECT_CODE: ErrorSeverity.MEDIUM,
    ErrorCategory.MIXED_UNITS: ErrorSeverity.MEDIUM,
}


@dataclass(frozen=True)
class DataQualityIssue:
    """
    An observable, non-fatal problem found while building a report.

    Dropped records are reported here instead of vanishing from totals
    unnoticed.
    """
    category: ErrorCategory
    message: str
    record_kind: Optional[str] = None
    record_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def severity(self) -> ErrorSeverity:
        return CATEGORY_SEVERITY.get(self.category, ErrorSeverity.MEDIUM)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.name,
            "severity": self.severity.value,
            "message": self.message,
            "record_kind": self.record_kind,
            "record_id": self.record_id,
            "details": dict(self.details),
        }


class ReportEngineError(Exception):
    """Base class for programmer errors raised by the engine."""

    category: ErrorCategory = ErrorCategory.CONFIGURATION_ERROR

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.name,
            "message": self.message,
            "context": self.context,
        }


class UnknownReportError(ReportEngineError):
    """Raised when a report name is not registered."""
    category = ErrorCategory.UNKNOWN_REPORT


class ColumnSpecError(ReportEngineError):
    """Raised when a column spec cannot be laid out."""
    category = ErrorCategory.INVALID_COLUMN_SPEC


class PeriodPolicyError(ReportEngineError, ValueError):
    """Raised for a bucketing policy with an out-of-range cutoff."""
    category = ErrorCategory.INVALID_PERIOD_POLICY


def log_issue(issue: DataQualityIssue) -> None:
    """Log a data-quality issue at a level matching its severity."""
    if issue.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
        logger.warning(f"[{issue.category.name}] {issue.message}")
    elif issue.severity == ErrorSeverity.MEDIUM:
        logger.info(f"[{issue.category.name}] {issue.message}")
    else:
        logger.debug(f"[{issue.category.name}] {issue.message}")
