"""
Report Engine

Runs one report definition over a record snapshot:

    filter -> classify -> leaf items -> merge by name -> roll up -> matrix

Key Concepts:
- A run is a pure function of (records, filters, code reference, cutoff).
  Records are read once from an immutable RecordSet snapshot and every
  result structure is freshly built.
- Data-quality problems never raise. Dropped records, unknown object codes
  and mixed units are returned on the result as DataQualityIssue entries.
- The tree is kept on the result so interactive consumers can re-render
  the matrix with any expansion set without re-aggregating.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Mapping, Optional, Union

from report_engine.core.code_resolver import CodeLayout, CodeReference
from report_engine.core.data_context import DataContext, get_data_context
from report_engine.core.error_taxonomy import DataQualityIssue, ErrorCategory
from report_engine.core.filters import ReportFilters
from report_engine.core.normalizer import MAX_DISPLAYED_UNITS
from report_engine.core.period_calendar import PeriodCalendar
from report_engine.core.records import ProgramRecord, RecordSet
from report_engine.data.aggregator import TreeBuilder
from report_engine.data.hierarchy import ReportTree
from report_engine.reports.base import ReportContext, ReportDefinition
from report_engine.reports.registry import get_report_definition
from report_engine.tools.excel_output import suggested_file_name
from report_engine.tools.matrix_builder import ALL_EXPANDED, ColumnSpec, MatrixBuilder, MatrixGrid
from report_engine.tools.rate_calculator import RateCalculator, get_rate_calculator

logger = logging.getLogger(__name__)

CodeTable = Mapping[str, Mapping[str, Mapping[str, str]]]


@dataclass
class ReportResult:
    """Everything a report run produces."""
    report_name: str
    title: str
    filters: ReportFilters
    period_label: str
    tree: ReportTree
    spec: ColumnSpec
    grid: MatrixGrid
    file_name: str
    issues: List[DataQualityIssue] = field(default_factory=list)
    dropped: List[ProgramRecord] = field(default_factory=list)
    # Year-dependent report run with "All": monthly detail is zero
    year_gated: bool = False
    no_data_label: str = ""

    def matrix(self, expanded: Collection[str] = frozenset()) -> MatrixGrid:
        """Render the same tree with another expansion set."""
        return MatrixBuilder(self.no_data_label).build(self.tree, self.spec, expanded)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_name": self.report_name,
            "title": self.title,
            "filters": self.filters.to_dict(),
            "period_label": self.period_label,
            "file_name": self.file_name,
            "year_gated": self.year_gated,
            "tree": self.tree.to_dict(),
            "issues": [i.to_dict() for i in self.issues],
            "dropped_count": len(self.dropped),
        }


class ReportEngine:
    """
    Generic classify/bucket/aggregate engine behind every report.

    Usage:
        engine = ReportEngine()
        result = engine.run("BAR1", records, ReportFilters(year="2024"))
        result.grid.to_aoa()                        # export view
        result.matrix({"Production and Livelihood"})  # interactive view
    """

    def __init__(
        self,
        data_context: Optional[DataContext] = None,
        calculator: Optional[RateCalculator] = None,
    ):
        self.data = data_context or get_data_context()
        self.calculator = calculator or get_rate_calculator()

    def run(
        self,
        report_name: str,
        records: Union[RecordSet, Mapping[str, Any]],
        filters: Optional[ReportFilters] = None,
        code_table: Union[CodeReference, CodeTable, None] = None,
        cutoff_month: Optional[int] = None,
        expanded: Collection[str] = ALL_EXPANDED,
    ) -> ReportResult:
        """
        Build one report.

        Args:
            report_name: Registered report name, e.g. "BAR1"
            records: RecordSet snapshot, or a raw payload of record arrays
            filters: Year / operating unit / fund type / tier selection
            code_table: Object-code reference {objectType: {particular: {code: description}}}
            cutoff_month: "As of" month for cumulative reports (config default when None)
            expanded: Expansion set for the returned grid (full expansion by default)

        Returns:
            ReportResult with the tree, the grid and any data-quality issues

        Raises:
            UnknownReportError: If report_name is not registered
        """
        definition = get_report_definition(report_name)
        filters = filters or ReportFilters()
        if not isinstance(records, RecordSet):
            records = RecordSet.from_dict(records)
        codes = code_table if isinstance(code_table, CodeReference) else CodeReference(code_table)
        if cutoff_month is None:
            from config.settings import get_config
            cutoff_month = get_config().period.default_cutoff_month

        ctx = ReportContext(
            report_name=definition.name,
            filters=filters,
            calendar=PeriodCalendar(filters.year, definition.policy(cutoff_month)),
            codes=codes,
            layout=CodeLayout(codes),
            data=self.data,
            ipo_index=records.ipo_index(),
            calculator=self.calculator,
        )

        year_gated = definition.requires_year and filters.is_all_periods
        if year_gated:
            logger.info(f"{definition.name} needs an explicit year; monthly detail will be zero")

        tree, dropped = self.build_tree(definition, records, ctx)
        self._check_units(tree, ctx)

        spec = definition.columns(ctx)
        no_data_label = self.data.label("no_data")
        grid = MatrixBuilder(no_data_label).build(tree, spec, expanded)

        logger.info(
            f"{definition.name} built: {len(tree.groups)} groups, {len(grid.body)} rows, "
            f"{len(dropped)} dropped, {len(ctx.issues)} issues"
        )
        return ReportResult(
            report_name=definition.name,
            title=definition.title,
            filters=filters,
            period_label=ctx.calendar.period_label(),
            tree=tree,
            spec=spec,
            grid=grid,
            file_name=suggested_file_name(definition.name, filters.year, filters.operating_unit),
            issues=ctx.issues,
            dropped=dropped,
            year_gated=year_gated,
            no_data_label=no_data_label,
        )

    def build_tree(self, definition: ReportDefinition, records: RecordSet, ctx: ReportContext):
        """
        Filter, classify and aggregate records into a tree.

        Returns:
            (ReportTree, list of dropped records)
        """
        classifier = definition.classifier(ctx)
        builder = TreeBuilder(
            seed_groups=definition.seed_groups(ctx),
            group_sort=definition.group_sort(ctx),
            package_sort=definition.package_sort(ctx),
            item_sort=definition.item_sort(ctx),
            grand_total_name=self.data.label("grand_total"),
        )
        dropped: List[ProgramRecord] = []
        skipped = 0

        for record in records.iter_records():
            if not definition.consumes(record):
                continue
            if not ctx.filters.matches(record, definition.filter_by_fund_year, definition.filter_by_fund_type):
                skipped += 1
                continue

            classification = classifier.classify(record)
            if classification.dropped:
                if not classification.excluded:
                    dropped.append(record)
                    ctx.report_issue(
                        ErrorCategory.UNCLASSIFIABLE_RECORD,
                        f"Dropped {record.kind.value} {record.record_id or record.name!r}: {classification.reason}",
                        record,
                    )
                continue

            for path, item in definition.leaf_items(record, classification.path, ctx):
                builder.add(path, item)

        logger.debug(f"{definition.name}: {skipped} records outside filters")
        return builder.build(), dropped

    @staticmethod
    def _check_units(tree: ReportTree, ctx: ReportContext) -> None:
        for item in tree.leaves():
            if len(item.units) > MAX_DISPLAYED_UNITS:
                ctx.report_issue(
                    ErrorCategory.MIXED_UNITS,
                    f"{item.name!r} merges {len(item.units)} units: {', '.join(sorted(item.units))}",
                    units=sorted(item.units),
                )


# Singleton instance
_engine: Optional[ReportEngine] = None

def get_report_engine() -> ReportEngine:
    """Get the report engine instance."""
    global _engine
    if _engine is None:
        _engine = ReportEngine()
    return _engine

def reset_report_engine():
    """Reset the engine (e.g. after reloading the data dictionary)."""
    global _engine
    _engine = None
