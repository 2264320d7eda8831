"""
Program Reports

Reports over the Component -> Package program hierarchy:

    BAR1      physical targets by month with semestral and year-end rollups
    BED1      financial plan: cost and obligations by quarter
    BED2      physical targets by month
    BED3      disbursement program by month
    WFP       work and financial plan: physical and financial quarters, MOOE / CO
    BP_FORMS  amounts per budget object code, grouped by object type and particular

Each record becomes one leaf item named by its indicator; records with the
same indicator under the same package merge into one row.
"""
import logging
from typing import Callable

from report_engine.core.classifier import HierarchyPath
from report_engine.core.code_resolver import ObjectType
from report_engine.core.period_calendar import BucketPolicy
from report_engine.core.records import OtherExpense, ProgramRecord
from report_engine.data.hierarchy import Item
from report_engine.data.period_counter import PeriodCounter
from report_engine.reports.base import (
    LeafItems,
    ReportContext,
    ReportDefinition,
    month_quarter_columns,
    quarter_columns,
)
from report_engine.tools.matrix_builder import Column, ColumnGroup, ColumnSpec, NumberFormat

logger = logging.getLogger(__name__)

CURRENCY = NumberFormat.CURRENCY


def _counter_of(key: str) -> Callable[[Item], PeriodCounter]:
    return lambda item: item.counter(key)


def _dated(ctx: ReportContext, date_value, value: float) -> PeriodCounter:
    """Counter with one value in the period of date_value (zero when out of scope)."""
    return PeriodCounter.single(ctx.calendar.bucket(date_value), value)


# ==================== PHYSICAL ====================

class Bar1Report(ReportDefinition):
    """Physical targets by target date, one per record (units for office items)."""

    name = "BAR1"
    title = "BAR No. 1 - Physical Report of Operations"
    requires_year = True

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        target = _dated(ctx, record.target_date, record.physical_count)
        yield path, Item(record.indicator, counters={"target": target}, record_count=1)

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        calc = ctx.calculator
        target = _counter_of("target")
        rollups = {
            2: Column("Semestral Total", lambda item: calc.derived_rollups(target(item)).semestral),
            3: Column("As of September", lambda item: calc.derived_rollups(target(item)).as_of_september),
            4: Column(
                "Year End (As of Nov)",
                lambda item: calc.derived_rollups(target(item)).year_end_excluding_december,
            ),
        }
        nodes = month_quarter_columns(target, after_quarter=rollups)
        nodes.append(Column("Grand Total", lambda item: target(item).total))
        return ColumnSpec(nodes, ctx.data.label("indicator_column"))


class Bed2Report(ReportDefinition):
    """Monthly physical targets. Other expenses carry no physical target."""

    name = "BED2"
    title = "BED No. 2 - Monthly Physical Plan"
    requires_year = True

    def consumes(self, record: ProgramRecord) -> bool:
        return not isinstance(record, OtherExpense)

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        target = _dated(ctx, record.target_date, record.physical_count)
        yield path, Item(record.indicator, counters={"target": target}, record_count=1)

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        target = _counter_of("target")
        nodes = month_quarter_columns(target)
        nodes.append(Column("Grand Total", lambda item: target(item).total))
        return ColumnSpec(nodes, ctx.data.label("indicator_column"))


# ==================== FINANCIAL ====================

class Bed1Report(ReportDefinition):
    """
    Financial plan.

    Total cost is annual and independent of the year selection; the
    quarterly release and the current-year obligation columns need a year.
    """

    name = "BED1"
    title = "BED No. 1 - Financial Plan"
    requires_year = True

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        obligation = PeriodCounter()
        actual_obligation = PeriodCounter()
        for line in record.expense_lines():
            obligation += _dated(ctx, line.obligation_date, line.cost)
            actual_obligation += _dated(ctx, line.actual_obligation_date, line.actual_obligation_amount)
        yield path, Item(
            record.indicator,
            counters={"obligation": obligation, "actual_obligation": actual_obligation},
            amounts={"cost": record.total_cost},
            record_count=1,
        )

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        obligation = _counter_of("obligation")
        actual = _counter_of("actual_obligation")
        return ColumnSpec([
            Column("Total Cost", lambda item: item.amount("cost"), CURRENCY),
            ColumnGroup("Current Year Obligation", (
                Column("Actual (Jan-Sept)", lambda item: actual(item).cumulative(9), CURRENCY),
                Column("Estimate (Oct-Dec)", lambda item: obligation(item).quarter(4), CURRENCY),
                Column(
                    "Total",
                    lambda item: actual(item).cumulative(9) + obligation(item).quarter(4),
                    CURRENCY,
                ),
            )),
            Column("Total Target", lambda item: obligation(item).total, CURRENCY),
            ColumnGroup("Comprehensive Release", quarter_columns(obligation, CURRENCY, "Subtotal")),
        ], ctx.data.label("indicator_column"))


class Bed3Report(ReportDefinition):
    """Monthly disbursement program by disbursement date of each expense line."""

    name = "BED3"
    title = "BED No. 3 - Monthly Disbursement Program"
    requires_year = True

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        disbursement = PeriodCounter()
        for line in record.expense_lines():
            disbursement += _dated(ctx, line.disbursement_date, line.cost)
        yield path, Item(record.indicator, counters={"disbursement": disbursement}, record_count=1)

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        disbursement = _counter_of("disbursement")
        nodes = month_quarter_columns(disbursement, CURRENCY)
        nodes.append(Column("Grand Total", lambda item: disbursement(item).total, CURRENCY))
        return ColumnSpec(nodes, ctx.data.label("indicator_column"))


class WfpReport(ReportDefinition):
    """
    Work and Financial Plan.

    Records are already restricted to the funding year, so dates bucket by
    month whatever their calendar year.
    """

    name = "WFP"
    title = "Work and Financial Plan"

    def policy(self, cutoff_month: int) -> BucketPolicy:
        return BucketPolicy.any_year()

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        count = 0.0 if isinstance(record, OtherExpense) else record.physical_count
        financial = PeriodCounter()
        split = {ObjectType.MOOE.value: 0.0, ObjectType.CO.value: 0.0}
        for line in record.expense_lines():
            financial += _dated(ctx, line.obligation_date, line.cost)
            split[ctx.resolve_code(record, line).object_type.value] += line.cost

        yield path, Item(
            record.indicator,
            counters={
                "physical": _dated(ctx, record.target_date, count),
                "financial": financial,
            },
            amounts={
                "physical_total": count,
                "mooe": split[ObjectType.MOOE.value],
                "co": split[ObjectType.CO.value],
                "cost": record.total_cost,
            },
            record_count=1,
        )

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        return ColumnSpec([
            ColumnGroup("Total Target", (
                Column("Physical", lambda item: item.amount("physical_total")),
                Column("MOOE (PHP)", lambda item: item.amount("mooe"), CURRENCY),
                Column("CO (PHP)", lambda item: item.amount("co"), CURRENCY),
                Column("Total (PHP)", lambda item: item.amount("cost"), CURRENCY),
            )),
            ColumnGroup("Quarterly Physical Target", quarter_columns(_counter_of("physical"))),
            ColumnGroup(
                "Quarterly Financial Target (PHP)",
                quarter_columns(_counter_of("financial"), CURRENCY),
            ),
        ], ctx.data.label("indicator_column"))


# ==================== OBJECT CODES ====================

class BpFormsReport(ReportDefinition):
    """
    Budget proposal pivot by object code.

    Columns follow the code reference (object type -> particular ->
    description -> code); codes used by records but missing from the
    reference are appended under their resolved type and particular.
    """

    name = "BP_FORMS"
    title = "Budget Proposal Forms"

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        code_amounts = {}
        split = {ObjectType.MOOE.value: 0.0, ObjectType.CO.value: 0.0}
        for line in record.expense_lines():
            resolved = ctx.resolve_code(record, line)
            if resolved.code:
                code_amounts[resolved.code] = code_amounts.get(resolved.code, 0.0) + line.cost
            split[resolved.object_type.value] += line.cost

        yield path, Item(
            record.indicator,
            amounts={"mooe": split[ObjectType.MOOE.value], "co": split[ObjectType.CO.value]},
            code_amounts=code_amounts,
            record_count=1,
        )

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        nodes = []
        for object_type in ObjectType:
            particulars = tuple(
                ColumnGroup(particular, tuple(
                    ColumnGroup(
                        ctx.layout.description(code) or code,
                        (Column(code, lambda item, c=code: item.code_amount(c), CURRENCY),),
                    )
                    for code in codes
                ))
                for particular, codes in ctx.layout.groups(object_type)
            )
            if particulars:
                nodes.append(ColumnGroup(object_type.value, particulars))

        nodes.append(ColumnGroup("Totals", (
            Column("MOOE", lambda item: item.amount("mooe"), CURRENCY),
            Column("CO", lambda item: item.amount("co"), CURRENCY),
            Column("Grand Total", lambda item: item.amount("mooe") + item.amount("co"), CURRENCY),
        )))
        return ColumnSpec(nodes, ctx.data.label("indicator_column"))
