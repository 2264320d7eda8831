"""
Data layer module for period counters, the report hierarchy and tree building.
"""
from report_engine.data.period_counter import (
    BarItem,
    PeriodCounter,
)
from report_engine.data.hierarchy import (
    Item,
    PackageNode,
    GroupNode,
    ReportTree,
    aggregate,
)
from report_engine.data.aggregator import (
    TreeBuilder,
)

__all__ = [
    # Period counters
    "BarItem",
    "PeriodCounter",
    # Hierarchy
    "Item",
    "PackageNode",
    "GroupNode",
    "ReportTree",
    "aggregate",
    # Tree building
    "TreeBuilder",
]
