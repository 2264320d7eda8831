"""
Tree Builder

Accumulates classified leaf items into a ReportTree.

Key Concepts:
- Merge by name: adding an item whose normalized name already exists under
  the same group/package folds it into the existing item (lookup-or-create),
  so an indicator never appears twice in one package. The row keeps the
  first spelling seen.
- Seeded groups and packages exist (and render) even with no records.
- Packages are created lazily the first time a path names them.
- build() derives every summary from the collected leaves; nothing is
  accumulated incrementally across builds.
"""
import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from report_engine.core.classifier import HierarchyPath
from report_engine.core.normalizer import normalize_name
from report_engine.data.hierarchy import GroupNode, Item, PackageNode, ReportTree

logger = logging.getLogger(__name__)

# group name -> sort key for its package names (None keeps insertion order)
PackageSort = Callable[[str], Optional[Callable[[str], Any]]]


class _GroupSlot:
    """Mutable per-build collection for one group."""

    def __init__(self, packages: Sequence[str] = ()):
        self.items: "OrderedDict[str, Item]" = OrderedDict()
        self.packages: "OrderedDict[str, OrderedDict[str, Item]]" = OrderedDict(
            (name, OrderedDict()) for name in packages
        )


def _merge_into(bucket: "OrderedDict[str, Item]", item: Item) -> None:
    key = normalize_name(item.name)
    existing = bucket.get(key)
    if existing is not None:
        bucket[key] = existing.combine(item)
    elif item.name != item.name.strip():
        bucket[key] = item.renamed(item.name.strip())
    else:
        bucket[key] = item


class TreeBuilder:
    """
    Collect items by hierarchy path and build the immutable tree.

    Usage:
        builder = TreeBuilder(seed_groups=[("Social Preparation", [])])
        builder.add(HierarchyPath("Social Preparation"), Item("Orientation", amounts={"target": 1}))
        tree = builder.build()
    """

    def __init__(
        self,
        seed_groups: Sequence[Tuple[str, Sequence[str]]] = (),
        group_sort: Optional[Callable[[str], Any]] = None,
        package_sort: Optional[PackageSort] = None,
        item_sort: Optional[Callable[[Item], Any]] = None,
        grand_total_name: str = "GRAND TOTAL",
    ):
        """
        Args:
            seed_groups: (group, packages) always present, in display order
            group_sort: Sort key for group names; None keeps seed/insertion order
            package_sort: Returns the package sort key for a group, or None
            item_sort: Sort key for leaf items; None keeps insertion order
            grand_total_name: Name of the grand total item
        """
        self._groups: "OrderedDict[str, _GroupSlot]" = OrderedDict(
            (name, _GroupSlot(packages)) for name, packages in seed_groups
        )
        self.group_sort = group_sort
        self.package_sort = package_sort
        self.item_sort = item_sort
        self.grand_total_name = grand_total_name
        self.added = 0

    def add(self, path: HierarchyPath, item: Item) -> None:
        """Merge an item into the node at path, creating the node if needed."""
        slot = self._groups.get(path.group)
        if slot is None:
            slot = self._groups[path.group] = _GroupSlot()
            logger.debug(f"Created group: {path.group}")

        if path.package is None:
            _merge_into(slot.items, item)
        else:
            bucket = slot.packages.get(path.package)
            if bucket is None:
                bucket = slot.packages[path.package] = OrderedDict()
                logger.debug(f"Created package: {path.group} / {path.package}")
            _merge_into(bucket, item)
        self.added += 1

    def _ordered_items(self, bucket: Dict[str, Item]) -> List[Item]:
        items = list(bucket.values())
        if self.item_sort is not None:
            items.sort(key=self.item_sort)
        return items

    def build(self) -> ReportTree:
        """Build the tree, recomputing every summary from its children."""
        group_names = list(self._groups.keys())
        if self.group_sort is not None:
            group_names.sort(key=self.group_sort)

        groups: List[GroupNode] = []
        for group_name in group_names:
            slot = self._groups[group_name]
            package_names = list(slot.packages.keys())
            sort_key = self.package_sort(group_name) if self.package_sort else None
            if sort_key is not None:
                package_names.sort(key=sort_key)

            packages = [
                PackageNode.build(group_name, name, self._ordered_items(slot.packages[name]))
                for name in package_names
            ]
            groups.append(GroupNode.build(group_name, self._ordered_items(slot.items), packages))

        tree = ReportTree.build(groups, self.grand_total_name)
        logger.debug(
            f"Built tree: {len(groups)} groups, {sum(1 for _ in tree.leaves())} leaves "
            f"from {self.added} contributions"
        )
        return tree
