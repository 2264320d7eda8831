"""
Accomplishment Reports

    MONTHLY        cumulative physical target vs actual as of a cutoff month
    FINANCIAL      allotment, obligation and disbursement by fund year and type
    INTERVENTIONS  subproject interventions by item type, in normalized units

Key Concepts:
- "As of" tests: a target is due when its date falls in the target year on
  or before the cutoff month; an actual counts when its date is on or
  before the end of the cutoff month (earlier years included).
- Distinct counts (IPOs, ancestral domains) are carried as key sets so a
  summary row counts each key once however many rows mention it.
- Rates are computed per row from that row's rolled-up amounts, never
  summed.
"""
import logging
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple

from report_engine.core.classifier import (
    UNSPECIFIED_PACKAGE,
    Classification,
    HierarchyPath,
    ProgramClassifier,
    natural_key,
)
from report_engine.core.normalizer import normalize_name, normalize_quantity, summarize_units
from report_engine.core.period_calendar import BucketPolicy
from report_engine.core.records import (
    OfficeRequirement,
    OtherExpense,
    ProgramRecord,
    StaffingRequirement,
    Subproject,
)
from report_engine.data.hierarchy import Item
from report_engine.reports.base import LeafItems, ReportContext, ReportDefinition
from report_engine.tools.matrix_builder import Column, ColumnGroup, ColumnSpec, NumberFormat

logger = logging.getLogger(__name__)

SUBPROJECT_PROVISIONS = "Subproject Provisions"
NUMBER_OF_IPOS = "Number of IPOs"
NUMBER_OF_ANCESTRAL_DOMAINS = "Number of Ancestral Domains"
COMPLETED = "completed"

CURRENT = "Current"
CONTINUING = "Continuing"


def _flagged(key: str, due: bool, done: bool) -> Dict[str, FrozenSet[str]]:
    distinct = {}
    if due:
        distinct["target"] = frozenset({key})
    if done:
        distinct["actual"] = frozenset({key})
    return distinct


def _unit_of(record: ProgramRecord) -> str:
    if isinstance(record, StaffingRequirement):
        return "Pax"
    if isinstance(record, OfficeRequirement):
        return "Unit"
    return "Number"


# ==================== MONTHLY ====================

class MonthlyReport(ReportDefinition):
    """
    Physical accomplishment as of a cutoff month.

    Subprojects roll into one "Subproject Provisions" package under their
    component: a row per package type plus distinct IPO and ancestral
    domain rows. A subproject is accomplished only once completed.
    """

    name = "MONTHLY"
    title = "Monthly Accomplishment Report"
    requires_year = True

    pinned_items: Tuple[str, ...] = (NUMBER_OF_ANCESTRAL_DOMAINS, NUMBER_OF_IPOS)

    def policy(self, cutoff_month: int) -> BucketPolicy:
        return BucketPolicy.cumulative_up_to(cutoff_month)

    def consumes(self, record: ProgramRecord) -> bool:
        return not isinstance(record, OtherExpense)

    def item_sort(self, ctx: ReportContext) -> Optional[Callable[[Item], Any]]:
        pinned = self.pinned_items

        def key(item: Item) -> tuple:
            if item.name in pinned:
                return (0, pinned.index(item.name), [])
            return (1, 0, natural_key(item.name))

        return key

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        due = ctx.calendar.bucket(record.target_date) is not None
        done = ctx.calendar.is_on_or_before_cutoff(record.completion_date)

        if not isinstance(record, Subproject):
            count = record.physical_count
            yield path, Item(
                record.indicator,
                amounts={"target": count if due else 0.0, "actual": count if done else 0.0},
                units=frozenset({_unit_of(record)}),
                record_count=1,
            )
            return

        done = done and (record.status or "").strip().lower() == COMPLETED
        provisions = HierarchyPath(path.group, SUBPROJECT_PROVISIONS)
        yield provisions, Item(
            record.package_type or UNSPECIFIED_PACKAGE,
            amounts={"target": 1.0 if due else 0.0, "actual": 1.0 if done else 0.0},
            units=frozenset({"Project"}),
            record_count=1,
        )
        if not record.ipo_name:
            return
        yield provisions, Item(
            NUMBER_OF_IPOS,
            distinct=_flagged(f"ipo:{record.ipo_name}", due, done),
            units=frozenset({"Number"}),
        )
        ipo = ctx.ipo_index.get(record.ipo_name)
        if ipo is not None and ipo.ancestral_domain_no:
            yield provisions, Item(
                NUMBER_OF_ANCESTRAL_DOMAINS,
                distinct=_flagged(f"ad:{ipo.ancestral_domain_no}", due, done),
                units=frozenset({"Number"}),
            )

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        calc = ctx.calculator

        def summary(item: Item):
            return calc.accomplishment(
                item.amount("target") + item.distinct_count("target"),
                item.amount("actual") + item.distinct_count("actual"),
            )

        return ColumnSpec([
            Column("Unit of Measure", lambda item: summarize_units(item.units), NumberFormat.TEXT, leaf_only=True),
            ColumnGroup(f"Physical Accomplishment ({ctx.calendar.period_label()})", (
                Column("Target", lambda item: summary(item).target),
                Column("Actual", lambda item: summary(item).actual),
                Column("Variance", lambda item: summary(item).variance),
                Column("% Accomplishment", lambda item: summary(item).percentage, NumberFormat.PERCENT),
            )),
        ], ctx.data.label("indicator_column"))


# ==================== FINANCIAL ====================

def fund_label(year: int, fund_type: Optional[str], target_year: Optional[int]) -> str:
    """
    Row label for a fund year and type relative to the selected year.

    The selected year's current funds read "Current Year (2024)", the
    prior year's continuing funds "Continuing (2023)"; other combinations
    show the year with the fund type in brackets unless it is Current.
    """
    fund_type = fund_type or CURRENT
    if year == target_year:
        return f"Current Year ({year})" if fund_type == CURRENT else f"{fund_type} ({year})"
    if target_year is not None and year == target_year - 1 and fund_type == CONTINUING:
        return f"Continuing ({year})"
    return str(year) if fund_type == CURRENT else f"{year} ({fund_type})"


def fund_sort_key(year: int, fund_type: Optional[str]) -> tuple:
    """Newest year first; within a year Continuing, then Current, then the rest."""
    fund_type = fund_type or CURRENT
    rank = {CONTINUING: 0, CURRENT: 1}.get(fund_type, 2)
    return (-year, rank, fund_type)


class FundClassifier:
    """Fund year/type -> Component classifier for the financial report."""

    def __init__(self, ctx: ReportContext):
        self.ctx = ctx
        self.program = ProgramClassifier()

    def classify(self, record: ProgramRecord) -> Classification:
        if record.funding_year is None:
            return Classification.drop("No funding year")
        program = self.program.classify(record)
        if program.dropped:
            return program
        label = fund_label(record.funding_year, record.fund_type, self.ctx.calendar.target_year)
        self.ctx.sort_hints[label] = fund_sort_key(record.funding_year, record.fund_type)
        return Classification.to(label, program.path.group)


class FinancialReport(ReportDefinition):
    """
    Financial accomplishment by fund year and fund type.

    Covers every funding year (prior-year continuing funds included), so
    only the operating unit and tier filters apply. Obligations and
    disbursements count when dated on or before the end of the cutoff month.
    """

    name = "FINANCIAL"
    title = "Financial Accomplishment"
    requires_year = True
    filter_by_fund_year = False
    filter_by_fund_type = False

    def policy(self, cutoff_month: int) -> BucketPolicy:
        return BucketPolicy.cumulative_up_to(cutoff_month)

    def classifier(self, ctx: ReportContext):
        return FundClassifier(ctx)

    def seed_groups(self, ctx: ReportContext):
        return []

    def group_sort(self, ctx: ReportContext) -> Optional[Callable[[str], Any]]:
        return lambda name: ctx.sort_hints.get(name, (0, 0, name))

    def package_sort(self, ctx: ReportContext):
        order = ctx.data.components

        def by_component(name: str) -> tuple:
            return (order.index(name), "") if name in order else (len(order), name)

        return lambda group: by_component

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        obligation = 0.0
        disbursement = 0.0
        for line in record.expense_lines():
            if ctx.calendar.is_on_or_before_cutoff(line.actual_obligation_date):
                obligation += line.actual_obligation_amount
            if ctx.calendar.is_on_or_before_cutoff(line.actual_disbursement_date):
                disbursement += line.actual_disbursement_amount
        yield path, Item(
            record.indicator,
            amounts={
                "allotment": record.total_cost,
                "obligation": obligation,
                "disbursement": disbursement,
            },
            record_count=1,
        )

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        calc = ctx.calculator
        currency = NumberFormat.CURRENCY

        def summary(item: Item):
            return calc.financial(item.amount("allotment"), item.amount("obligation"), item.amount("disbursement"))

        return ColumnSpec([
            Column("Allotment", lambda item: summary(item).allotment, currency),
            Column("Obligation", lambda item: summary(item).obligation, currency),
            Column("Disbursement", lambda item: summary(item).disbursement, currency),
            Column("Unutilized", lambda item: summary(item).unutilized, currency),
            Column("Unpaid", lambda item: summary(item).unpaid, currency),
            ColumnGroup("Utilization Rate", (
                Column("Obligation", lambda item: summary(item).obligation_rate, NumberFormat.PERCENT),
                Column("Disbursement", lambda item: summary(item).disbursement_rate, NumberFormat.PERCENT),
            )),
        ], "Fund Year / Component / Program/Activity/Project")


# ==================== INTERVENTIONS ====================

class InterventionsReport(ReportDefinition):
    """
    Subproject interventions by item type and particular.

    Each subproject detail line is one contribution. Particulars merge on
    their normalized name and quantities are converted to normalized units
    (grams to kilograms).
    """

    name = "INTERVENTIONS"
    title = "Agricultural Interventions"

    def consumes(self, record: ProgramRecord) -> bool:
        return isinstance(record, Subproject)

    def seed_groups(self, ctx: ReportContext):
        return []

    def group_sort(self, ctx: ReportContext) -> Optional[Callable[[str], Any]]:
        return natural_key

    def item_sort(self, ctx: ReportContext) -> Optional[Callable[[Item], Any]]:
        return lambda item: natural_key(item.name)

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        unspecified = ctx.data.label("unspecified")
        for line in record.expense_lines():
            target = normalize_quantity(line.number_of_units, line.unit_of_measure)
            actual = normalize_quantity(line.actual_number_of_units, line.unit_of_measure)
            yield HierarchyPath(line.item_type or unspecified), Item(
                normalize_name(line.particulars) or unspecified,
                amounts={"target": target.qty, "actual": actual.qty},
                units=frozenset({target.unit}),
                record_count=1,
            )

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        calc = ctx.calculator
        return ColumnSpec([
            Column("Unit", lambda item: summarize_units(item.units), NumberFormat.TEXT, leaf_only=True),
            Column("Target Qty", lambda item: item.amount("target")),
            Column("Actual Delivered", lambda item: item.amount("actual")),
            Column(
                "Delivery Rate",
                lambda item: calc.accomplishment(item.amount("target"), item.amount("actual")).percentage,
                NumberFormat.PERCENT,
            ),
        ], "Item Type / Particulars")
