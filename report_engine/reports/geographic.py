"""
Geographic Report (PICS)

Region -> Province -> Performance Indicator pivot of subprojects and
activities, with participant counts and tier splits.

Key Concepts:
- Region comes from the operating unit; province from the last part of the
  free-text location. Excluded regions and Program Management activities
  stay out of the pivot.
- Indicators: "<package type> Subprojects provided",
  "<component> Trainings conducted", "<activity name> conducted" and
  "Ancestral Domains covered".
- Total Group counts distinct IPOs. Ancestral domains are counted once per
  domain number at every level, per tier as well.
"""
import logging
from typing import Any, Callable, Dict, FrozenSet, Optional

from report_engine.core.classifier import GeographicClassifier, HierarchyPath, natural_key
from report_engine.core.records import Activity, ProgramRecord, Subproject, Training
from report_engine.data.hierarchy import Item
from report_engine.reports.base import LeafItems, ReportContext, ReportDefinition
from report_engine.tools.matrix_builder import Column, ColumnGroup, ColumnSpec, NumberFormat

logger = logging.getLogger(__name__)

ANCESTRAL_DOMAINS_COVERED = "Ancestral Domains covered"
UNIT_OF_MEASURE = "number"

# Tier value on records -> measure prefix
TIERS: Dict[str, str] = {"Tier 1": "t1", "Tier 2": "t2"}


def _keyed(prefixes, key: str, value) -> Dict[str, Any]:
    """Same value under "<key>" and "<prefix>_<key>" for each tier prefix."""
    result = {key: value}
    for prefix in prefixes:
        result[f"{prefix}_{key}"] = value
    return result


class PicsReport(ReportDefinition):
    """Physical indicators by region and province."""

    name = "PICS"
    title = "Physical Indicators by Region and Province"

    def classifier(self, ctx: ReportContext) -> GeographicClassifier:
        return GeographicClassifier(
            ctx.data.region_map,
            ctx.data.excluded_regions,
            ctx.data.label("unmapped_region"),
        )

    def consumes(self, record: ProgramRecord) -> bool:
        return isinstance(record, (Subproject, Activity))

    def seed_groups(self, ctx: ReportContext):
        return []

    def group_sort(self, ctx: ReportContext) -> Optional[Callable[[str], Any]]:
        return natural_key

    def package_sort(self, ctx: ReportContext):
        return lambda group: natural_key

    def item_sort(self, ctx: ReportContext):
        return lambda item: natural_key(item.name)

    def leaf_items(self, record: ProgramRecord, path: HierarchyPath, ctx: ReportContext) -> LeafItems:
        tier = TIERS.get(record.tier or "")
        prefixes = [tier] if tier else []

        if isinstance(record, Subproject):
            amounts = _keyed(prefixes, "target", 1.0)
            distinct: Dict[str, FrozenSet[str]] = {}
            if record.ipo_name:
                distinct = _keyed(prefixes, "ipo", frozenset({record.ipo_name}))
            yield path, Item(
                f"{record.package_type or ctx.data.label('unspecified')} Subprojects provided",
                amounts=amounts,
                distinct=distinct,
                record_count=1,
            )
            ipo = ctx.ipo_index.get(record.ipo_name or "")
            if ipo is not None and ipo.ancestral_domain_no:
                yield path, Item(
                    ANCESTRAL_DOMAINS_COVERED,
                    distinct=_keyed(prefixes, "ad", frozenset({ipo.ancestral_domain_no})),
                )
            return

        if isinstance(record, Training):
            indicator = f"{record.component or ctx.data.label('unspecified')} Trainings conducted"
        else:
            indicator = f"{record.name} conducted"

        amounts = {}
        for key, value in (
            ("target", 1.0),
            ("male", record.participants_male),
            ("female", record.participants_female),
            ("participants", record.participants),
        ):
            amounts.update(_keyed(prefixes, key, value))
        distinct = {}
        if record.participating_ipos:
            distinct = _keyed(prefixes, "ipo", frozenset(record.participating_ipos))
        yield path, Item(indicator, amounts=amounts, distinct=distinct, record_count=1)

    @staticmethod
    def _measure_columns(prefix: str, label: str):
        key = (lambda name: f"{prefix}_{name}") if prefix else (lambda name: name)
        return (
            Column(f"{label} Target", lambda item: item.amount(key("target")) + item.distinct_count(key("ad"))),
            Column(f"{label} Group", lambda item: item.distinct_count(key("ipo"))),
            Column(f"{label} Male", lambda item: item.amount(key("male"))),
            Column(f"{label} Female", lambda item: item.amount(key("female"))),
            Column(f"{label} Unidentified", lambda item: item.amount(key("unidentified"))),
            Column(f"{label} Participants", lambda item: item.amount(key("participants"))),
        )

    def columns(self, ctx: ReportContext) -> ColumnSpec:
        return ColumnSpec([
            Column("Unit of Measure", lambda item: UNIT_OF_MEASURE, NumberFormat.TEXT, leaf_only=True),
            ColumnGroup("All Tiers", self._measure_columns("", "Total")),
            ColumnGroup("Tier 1", self._measure_columns("t1", "Total")),
            ColumnGroup("Tier 2", self._measure_columns("t2", "Total")),
        ], "Region / Province / Performance Indicator")
