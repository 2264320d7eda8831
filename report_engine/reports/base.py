"""
Report Definition Base

A report is one small configuration object over the shared engine:
which records it reads, how they are classified, which measures each
record contributes and which column layout renders the result.

Key Concepts:
- ReportDefinition: per-report hooks (consumes, classifier, leaf_items,
  columns) plus filter and bucketing settings.
- ReportContext: per-run state handed to every hook. It holds the
  filters, the period calendar, the object-code reference and the
  run's code layout, and collects data-quality issues.
- Leaf items are produced per record as (HierarchyPath, Item) pairs; the
  engine merges them by name and rolls them up.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from report_engine.core.classifier import (
    Component,
    HierarchyPath,
    ProgramClassifier,
    package_sort_key,
)
from report_engine.core.code_resolver import CodeLayout, CodeReference, ResolvedCode
from report_engine.core.data_context import DataContext
from report_engine.core.error_taxonomy import DataQualityIssue, ErrorCategory, log_issue
from report_engine.core.filters import ReportFilters
from report_engine.core.period_calendar import MONTH_LABELS, QUARTER_LABELS, BucketPolicy, PeriodCalendar
from report_engine.core.records import (
    ExpenseLine,
    IpoRecord,
    OfficeRequirement,
    ProgramRecord,
    StaffingRequirement,
)
from report_engine.data.hierarchy import Item
from report_engine.data.period_counter import PeriodCounter
from report_engine.tools.matrix_builder import Column, ColumnGroup, ColumnNode, ColumnSpec, NumberFormat
from report_engine.tools.rate_calculator import RateCalculator, get_rate_calculator

logger = logging.getLogger(__name__)

LeafItems = Iterator[Tuple[HierarchyPath, Item]]


# ==================== RUN CONTEXT ====================

@dataclass
class ReportContext:
    """State shared by the hooks of one report run."""
    report_name: str
    filters: ReportFilters
    calendar: PeriodCalendar
    codes: CodeReference
    layout: CodeLayout
    data: DataContext
    ipo_index: Dict[str, IpoRecord] = field(default_factory=dict)
    calculator: RateCalculator = field(default_factory=get_rate_calculator)
    issues: List[DataQualityIssue] = field(default_factory=list)
    # Group name -> sort key, filled by reports whose group order is data-driven
    sort_hints: Dict[str, Any] = field(default_factory=dict)

    def report_issue(
        self,
        category: ErrorCategory,
        message: str,
        record: Optional[ProgramRecord] = None,
        **details: Any,
    ) -> DataQualityIssue:
        issue = DataQualityIssue(
            category=category,
            message=message,
            record_kind=record.kind.value if record is not None else None,
            record_id=record.record_id if record is not None else None,
            details=details,
        )
        self.issues.append(issue)
        log_issue(issue)
        return issue

    def default_particular_for(self, record: ProgramRecord) -> str:
        if isinstance(record, StaffingRequirement):
            return self.data.default_particular("staffing")
        if isinstance(record, OfficeRequirement):
            return self.data.default_particular("office")
        return self.data.default_particular("default")

    def resolve_code(self, record: ProgramRecord, line: ExpenseLine) -> ResolvedCode:
        """
        Resolve an expense line's object code and register it in the layout.

        Codes missing from the reference resolve to the declared object type
        (or MOOE) and are reported once per run.
        """
        resolved = self.codes.resolve(
            line.uacs_code,
            declared_type=line.object_type,
            declared_particular=line.expense_particular,
            default_particular=self.default_particular_for(record),
        )
        if self.layout.ensure(resolved) and not resolved.in_reference:
            self.report_issue(
                ErrorCategory.UNKNOWN_OBJECT_CODE,
                f"Object code {resolved.code} not in reference; "
                f"filed under {resolved.object_type.value} / {resolved.particular}",
                record,
                code=resolved.code,
            )
        return resolved


# ==================== DEFINITION ====================

class ReportDefinition:
    """
    Base class for report definitions.

    Subclasses set the class attributes and override leaf_items() and
    columns(); the remaining hooks have program-hierarchy defaults.
    """

    name: str = ""
    title: str = ""
    # Reports that are meaningless without an explicit year
    requires_year: bool = False
    filter_by_fund_year: bool = True
    filter_by_fund_type: bool = True

    def policy(self, cutoff_month: int) -> BucketPolicy:
        return BucketPolicy.calendar_match()

    def consumes(self, record: ProgramRecord) -> bool:
        return True

    def classifier(self, ctx: ReportContext):
        return ProgramClassifier()

    def seed_groups(self, ctx: ReportContext) -> Sequence[Tuple[str, Sequence[str]]]:
        """Components in display order; Program Management carries its fixed packages."""
        return [
            (name, ctx.data.program_management_packages if name == Component.PROGRAM_MANAGEMENT.value else [])
            for name in ctx.data.components
        ]

    def group_sort(self, ctx: ReportContext) -> Optional[Callable[[str], Any]]:
        return None

    def package_sort(self, ctx: ReportContext) -> Callable[[str], Optional[Callable[[str], Any]]]:
        def for_group(group: str) -> Optional[Callable[[str], Any]]:
            if group == Component.PRODUCTION_AND_LIVELIHOOD.value:
                return package_sort_key(ctx.data.pinned_packages(group))
            return None
        return for_group

    def item_sort(self, ctx: ReportContext) -> Optional[Callable[[Item], Any]]:
        return None

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        raise NotImplementedError

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# ==================== COLUMN HELPERS ====================

def month_quarter_columns(
    counter_of: Callable[[Item], PeriodCounter],
    number_format: NumberFormat = NumberFormat.COUNT,
    after_quarter: Optional[Dict[int, Column]] = None,
) -> List[ColumnNode]:
    """
    Quarter groups of three months plus a quarter total.

    Args:
        counter_of: Picks the counter to display from a row's item
        number_format: Format of every value column
        after_quarter: Extra single columns placed after a given quarter
    """
    after_quarter = after_quarter or {}
    nodes: List[ColumnNode] = []
    for quarter in range(1, 5):
        first = (quarter - 1) * 3 + 1
        children = tuple(
            Column(MONTH_LABELS[m - 1], lambda item, m=m: counter_of(item).month(m), number_format)
            for m in range(first, first + 3)
        ) + (Column("Total", lambda item, q=quarter: counter_of(item).quarter(q), number_format),)
        nodes.append(ColumnGroup(QUARTER_LABELS[quarter - 1], children))
        if quarter in after_quarter:
            nodes.append(after_quarter[quarter])
    return nodes


def quarter_columns(
    counter_of: Callable[[Item], PeriodCounter],
    number_format: NumberFormat = NumberFormat.COUNT,
    total_label: str = "Total",
) -> Tuple[Column, ...]:
    """Q1-Q4 plus total of one counter."""
    return tuple(
        Column(f"Q{q}", lambda item, q=q: counter_of(item).quarter(q), number_format)
        for q in range(1, 5)
    ) + (Column(total_label, lambda item: counter_of(item).total, number_format),)
