"""
Record Classification

Maps each program record to a path in the two-level report hierarchy.

Key Concepts:
- Group: top-level node. For program reports this is a Component from a
  closed set; geographic reports use the region instead.
- Package: optional second level, created lazily the first time a record
  names it (a subproject package type, "Trainings", "Staff Requirements").
- Dropped: a record that maps to no group. It is excluded from every total
  and surfaced as a data-quality issue, never raised.

Routing for program reports:
    Subproject            -> Production and Livelihood / <package type>
    Training              -> Production and Livelihood / Trainings
                             Program Management / Trainings
                             Social Preparation, Marketing and Enterprise (direct)
    OtherActivity         -> Program Management / Activities
                             Production and Livelihood / Activities
                             Social Preparation, Marketing and Enterprise (direct)
    StaffingRequirement   -> Program Management / Staff Requirements
    OfficeRequirement     -> Program Management / Office Requirements
    OtherExpense          -> Program Management / Office Requirements
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from report_engine.core.records import (
    Activity,
    OfficeRequirement,
    OtherActivity,
    OtherExpense,
    ProgramRecord,
    StaffingRequirement,
    Subproject,
    Training,
)

logger = logging.getLogger(__name__)


class Component(Enum):
    """Closed set of top-level program areas, in display order."""
    SOCIAL_PREPARATION = "Social Preparation"
    PRODUCTION_AND_LIVELIHOOD = "Production and Livelihood"
    MARKETING_AND_ENTERPRISE = "Marketing and Enterprise"
    PROGRAM_MANAGEMENT = "Program Management"

    @classmethod
    def parse(cls, tag: Optional[str]) -> Optional["Component"]:
        """Direct tag lookup; None for absent or unknown tags."""
        if not tag:
            return None
        try:
            return cls(tag.strip())
        except ValueError:
            return None


# Fixed Program Management packages, in display order
TRAININGS = "Trainings"
STAFF_REQUIREMENTS = "Staff Requirements"
OFFICE_REQUIREMENTS = "Office Requirements"
ACTIVITIES = "Activities"
PROGRAM_MANAGEMENT_PACKAGES: Tuple[str, ...] = (
    TRAININGS, STAFF_REQUIREMENTS, OFFICE_REQUIREMENTS, ACTIVITIES,
)

UNSPECIFIED_PACKAGE = "Unspecified Package"
UNSPECIFIED_PROVINCE = "Unspecified"


@dataclass(frozen=True)
class HierarchyPath:
    """Where a record lands: a group and an optional package within it."""
    group: str
    package: Optional[str] = None

    @property
    def group_key(self) -> str:
        return self.group

    @property
    def key(self) -> str:
        """Expansion key of the deepest node on the path."""
        if self.package is None:
            return self.group
        return package_key(self.group, self.package)


def package_key(group: str, package: str) -> str:
    return f"{group} / {package}"


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one record."""
    path: Optional[HierarchyPath]
    reason: Optional[str] = None
    # Intentionally out of the report (not a data-quality problem)
    excluded: bool = False

    @property
    def dropped(self) -> bool:
        return self.path is None

    @classmethod
    def to(cls, group: Union[Component, str], package: Optional[str] = None) -> "Classification":
        name = group.value if isinstance(group, Component) else group
        return cls(HierarchyPath(name, package))

    @classmethod
    def drop(cls, reason: str) -> "Classification":
        return cls(None, reason)

    @classmethod
    def exclude(cls, reason: str) -> "Classification":
        return cls(None, reason, excluded=True)


class ProgramClassifier:
    """
    Component -> Package classifier for program reports.

    Usage:
        classifier = ProgramClassifier()
        result = classifier.classify(training)
        if not result.dropped:
            print(result.path.group, result.path.package)
    """

    def classify(self, record: ProgramRecord) -> Classification:
        if isinstance(record, Subproject):
            return Classification.to(
                Component.PRODUCTION_AND_LIVELIHOOD,
                record.package_type or UNSPECIFIED_PACKAGE,
            )
        if isinstance(record, Training):
            return self._classify_activity(record, TRAININGS)
        if isinstance(record, OtherActivity):
            return self._classify_activity(record, ACTIVITIES)
        if isinstance(record, StaffingRequirement):
            return Classification.to(Component.PROGRAM_MANAGEMENT, STAFF_REQUIREMENTS)
        if isinstance(record, (OfficeRequirement, OtherExpense)):
            return Classification.to(Component.PROGRAM_MANAGEMENT, OFFICE_REQUIREMENTS)
        return Classification.drop(f"Unsupported record type: {type(record).__name__}")

    @staticmethod
    def _classify_activity(record: Activity, package: str) -> Classification:
        component = Component.parse(record.component)
        if component is None:
            return Classification.drop(f"Unknown component: {record.component!r}")
        if component in (Component.PRODUCTION_AND_LIVELIHOOD, Component.PROGRAM_MANAGEMENT):
            return Classification.to(component, package)
        return Classification.to(component)


def parse_province(location: Optional[str]) -> str:
    """
    Province part of a free-text location.

    Locations read "Municipality, Province" or
    "Barangay, ..., Municipality, Province"; anything without a comma has
    no recognizable province.
    """
    if not location:
        return UNSPECIFIED_PROVINCE
    parts = [p.strip() for p in location.split(",")]
    if len(parts) < 2 or not parts[-1]:
        return UNSPECIFIED_PROVINCE
    return parts[-1]


class GeographicClassifier:
    """
    Region -> Province classifier for geographic pivots.

    Region comes from the record's operating unit; records whose region
    is excluded (and Program Management activities) are dropped.
    """

    def __init__(
        self,
        region_map: dict,
        excluded_regions: Iterable[str] = (),
        unmapped_label: str = "Unmapped Region",
    ):
        self.region_map = dict(region_map)
        self.excluded_regions = frozenset(excluded_regions)
        self.unmapped_label = unmapped_label

    def region_for(self, operating_unit: Optional[str]) -> str:
        return self.region_map.get(operating_unit or "", self.unmapped_label)

    def classify(self, record: ProgramRecord) -> Classification:
        if isinstance(record, Activity):
            if Component.parse(record.component) == Component.PROGRAM_MANAGEMENT:
                return Classification.exclude("Program Management activities are not geographic")
            location = record.location
        elif isinstance(record, Subproject):
            location = record.location
        else:
            return Classification.exclude(f"{type(record).__name__} has no geographic location")

        region = self.region_for(record.operating_unit)
        if region in self.excluded_regions:
            return Classification.exclude(f"Region excluded from geographic report: {region}")
        return Classification.to(region, parse_province(location))


# ==================== DISPLAY ORDER ====================

def natural_key(text: str) -> List[Union[str, int]]:
    """Numeric-aware sort key: "Package 2" sorts before "Package 10"."""
    parts = re.split(r"(\d+)", text or "")
    return [int(p) if i % 2 else p.lower() for i, p in enumerate(parts)]


def package_sort_key(pinned: Sequence[str] = ()) -> Callable[[str], tuple]:
    """Sort key putting pinned packages first (in given order), then natural order."""
    pinned = tuple(pinned)

    def key(name: str) -> tuple:
        if name in pinned:
            return (0, pinned.index(name), [])
        return (1, 0, natural_key(name))

    return key

