"""
Report Hierarchy

Immutable Group -> Package -> Item tree produced by every report.

Key Concepts:
- Item: leaf row with named period counters, named scalar amounts,
  per-object-code amounts, distinct-key sets and normalized units.
- Aggregate: an explicit fold, reduce(Item.combine, items, Item(name)).
  Every numeric field is summed (never averaged); distinct sets and units
  are unioned, so a distinct count at any level counts unique keys.
- Summaries are recomputed from children when the tree is built:
    package.summary = aggregate(package.items)
    group.summary   = aggregate(group.items + package summaries)
    grand_total     = aggregate(every leaf in the tree)
  so grand_total equals the sum over groups, packages and items.
"""
import logging
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

from report_engine.core.classifier import package_key
from report_engine.data.period_counter import BarItem, PeriodCounter

logger = logging.getLogger(__name__)


def _sum_maps(left: Mapping[str, Any], right: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(left)
    for key, value in right.items():
        merged[key] = merged[key] + value if key in merged else value
    return merged


def _union_maps(
    left: Mapping[str, FrozenSet[str]], right: Mapping[str, FrozenSet[str]]
) -> Dict[str, FrozenSet[str]]:
    merged = dict(left)
    for key, value in right.items():
        merged[key] = merged[key] | value if key in merged else frozenset(value)
    return merged


@dataclass(frozen=True, eq=False)
class Item:
    """
    A leaf (or summary) row of a report.

    Attributes:
        name: Indicator name, already normalized where the report asks
        counters: Named PeriodCounters, e.g. "target", "actual", "obligation"
        amounts: Named scalar measures, e.g. "mooe", "co", "male"
        code_amounts: Amount per object-use code
        distinct: Named sets of keys counted once, e.g. IPO names
        units: Normalized units merged under this item
        record_count: Number of source contributions folded in
    """
    name: str
    counters: Mapping[str, PeriodCounter] = field(default_factory=dict)
    amounts: Mapping[str, float] = field(default_factory=dict)
    code_amounts: Mapping[str, float] = field(default_factory=dict)
    distinct: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
    units: FrozenSet[str] = frozenset()
    record_count: int = 0

    def counter(self, key: str) -> PeriodCounter:
        return self.counters.get(key) or PeriodCounter()

    def amount(self, key: str) -> float:
        return self.amounts.get(key, 0.0)

    def code_amount(self, code: str) -> float:
        return self.code_amounts.get(code, 0.0)

    def distinct_count(self, key: str) -> int:
        return len(self.distinct.get(key, frozenset()))

    def bar(self) -> BarItem:
        return BarItem(self.counter("target"), self.counter("actual"))

    def combine(self, other: "Item") -> "Item":
        """Fold another item into a new one carrying this item's name."""
        return Item(
            name=self.name,
            counters=_sum_maps(self.counters, other.counters),
            amounts=_sum_maps(self.amounts, other.amounts),
            code_amounts=_sum_maps(self.code_amounts, other.code_amounts),
            distinct=_union_maps(self.distinct, other.distinct),
            units=self.units | other.units,
            record_count=self.record_count + other.record_count,
        )

    def renamed(self, name: str) -> "Item":
        return Item(name, self.counters, self.amounts, self.code_amounts,
                    self.distinct, self.units, self.record_count)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return (
            self.name == other.name
            and dict(self.counters) == dict(other.counters)
            and dict(self.amounts) == dict(other.amounts)
            and dict(self.code_amounts) == dict(other.code_amounts)
            and dict(self.distinct) == dict(other.distinct)
            and self.units == other.units
            and self.record_count == other.record_count
        )

    __hash__ = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "counters": {k: c.to_dict() for k, c in self.counters.items()},
            "amounts": dict(self.amounts),
            "code_amounts": dict(self.code_amounts),
            "distinct_counts": {k: len(v) for k, v in self.distinct.items()},
            "units": sorted(self.units),
            "record_count": self.record_count,
        }


def aggregate(items: Iterable[Item], name: str = "") -> Item:
    """Sum a collection of items into one summary item."""
    return reduce(Item.combine, items, Item(name))


@dataclass(frozen=True)
class PackageNode:
    """Second-level node: a named package within a group."""
    group: str
    name: str
    items: Tuple[Item, ...] = ()
    summary: Item = field(default_factory=lambda: Item(""))

    @classmethod
    def build(cls, group: str, name: str, items: Iterable[Item]) -> "PackageNode":
        items = tuple(items)
        return cls(group, name, items, aggregate(items, name))

    @property
    def key(self) -> str:
        return package_key(self.group, self.name)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "summary": self.summary.to_dict(),
            "items": [i.to_dict() for i in self.items],
        }


@dataclass(frozen=True)
class GroupNode:
    """Top-level node: a component (or region) with direct items and packages."""
    name: str
    items: Tuple[Item, ...] = ()
    packages: Tuple[PackageNode, ...] = ()
    summary: Item = field(default_factory=lambda: Item(""))

    @classmethod
    def build(cls, name: str, items: Iterable[Item], packages: Iterable[PackageNode]) -> "GroupNode":
        items = tuple(items)
        packages = tuple(packages)
        summary = aggregate(list(items) + [p.summary for p in packages], name)
        return cls(name, items, packages, summary)

    @property
    def key(self) -> str:
        return self.name

    def leaves(self) -> Iterator[Item]:
        yield from self.items
        for package in self.packages:
            yield from package.items

    @property
    def is_empty(self) -> bool:
        return not any(True for _ in self.leaves())

    def package(self, name: str) -> Optional[PackageNode]:
        for package in self.packages:
            if package.name == name:
                return package
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "summary": self.summary.to_dict(),
            "items": [i.to_dict() for i in self.items],
            "packages": [p.to_dict() for p in self.packages],
        }


@dataclass(frozen=True)
class ReportTree:
    """The full hierarchy plus its grand total."""
    groups: Tuple[GroupNode, ...] = ()
    grand_total: Item = field(default_factory=lambda: Item(""))

    @classmethod
    def build(cls, groups: Iterable[GroupNode], grand_total_name: str = "GRAND TOTAL") -> "ReportTree":
        groups = tuple(groups)
        leaves = [leaf for group in groups for leaf in group.leaves()]
        return cls(groups, aggregate(leaves, grand_total_name))

    def leaves(self) -> Iterator[Item]:
        for group in self.groups:
            yield from group.leaves()

    def group(self, name: str) -> Optional[GroupNode]:
        for group in self.groups:
            if group.name == name:
                return group
        return None

    def node_keys(self) -> List[str]:
        """Every expandable node key, in display order."""
        keys: List[str] = []
        for group in self.groups:
            keys.append(group.key)
            keys.extend(p.key for p in group.packages)
        return keys

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groups": [g.to_dict() for g in self.groups],
            "grand_total": self.grand_total.to_dict(),
        }
