"""
Unit tests for record classification.

Tests cover:
- Component -> Package routing for every record kind
- Dropped records (unknown or missing component)
- Province parsing and the geographic classifier
- Display order keys
"""
import pytest

from report_engine.core.classifier import (
    ACTIVITIES,
    OFFICE_REQUIREMENTS,
    STAFF_REQUIREMENTS,
    TRAININGS,
    UNSPECIFIED_PACKAGE,
    UNSPECIFIED_PROVINCE,
    Component,
    GeographicClassifier,
    HierarchyPath,
    ProgramClassifier,
    natural_key,
    package_sort_key,
    parse_province,
)
from report_engine.core.records import (
    OfficeRequirement,
    OtherActivity,
    OtherExpense,
    StaffingRequirement,
    Subproject,
    Training,
)

PL = Component.PRODUCTION_AND_LIVELIHOOD.value
PM = Component.PROGRAM_MANAGEMENT.value
SP = Component.SOCIAL_PREPARATION.value
ME = Component.MARKETING_AND_ENTERPRISE.value


@pytest.fixture
def classifier():
    return ProgramClassifier()


@pytest.fixture
def geographic():
    """Geographic classifier with one mapped region and NCR excluded."""
    return GeographicClassifier(
        {"RPMO 4A": "Region IV-A (CALABARZON)", "NPMO": "National Capital Region (NCR)"},
        excluded_regions=["National Capital Region (NCR)"],
    )


class TestComponent:
    """Tests for component tag lookup."""

    def test_parse_known(self):
        assert Component.parse(" Social Preparation ") == Component.SOCIAL_PREPARATION

    @pytest.mark.parametrize("tag", [None, "", "Research", "social preparation"])
    def test_parse_unknown(self, tag):
        assert Component.parse(tag) is None


class TestProgramClassifier:
    """Tests for program hierarchy routing."""

    def test_subproject_goes_to_its_package(self, classifier):
        result = classifier.classify(Subproject(record_id="SP-1", package_type="Package 2"))
        assert result.path == HierarchyPath(PL, "Package 2")
        assert not result.dropped

    def test_subproject_without_package(self, classifier):
        result = classifier.classify(Subproject(record_id="SP-1"))
        assert result.path == HierarchyPath(PL, UNSPECIFIED_PACKAGE)

    @pytest.mark.parametrize("component,expected", [
        (PL, HierarchyPath(PL, TRAININGS)),
        (PM, HierarchyPath(PM, TRAININGS)),
        (SP, HierarchyPath(SP)),
        (ME, HierarchyPath(ME)),
    ])
    def test_training_routing(self, classifier, component, expected):
        assert classifier.classify(Training(component=component)).path == expected

    @pytest.mark.parametrize("component,expected", [
        (PM, HierarchyPath(PM, ACTIVITIES)),
        (PL, HierarchyPath(PL, ACTIVITIES)),
        (ME, HierarchyPath(ME)),
    ])
    def test_other_activity_routing(self, classifier, component, expected):
        assert classifier.classify(OtherActivity(component=component)).path == expected

    def test_program_management_items(self, classifier):
        assert classifier.classify(StaffingRequirement()).path == HierarchyPath(PM, STAFF_REQUIREMENTS)
        assert classifier.classify(OfficeRequirement()).path == HierarchyPath(PM, OFFICE_REQUIREMENTS)
        assert classifier.classify(OtherExpense()).path == HierarchyPath(PM, OFFICE_REQUIREMENTS)

    @pytest.mark.parametrize("component", [None, "Research"])
    def test_unknown_component_is_dropped(self, classifier, component):
        """Unknown tags drop the record as a data-quality issue, not an exclusion."""
        result = classifier.classify(Training(record_id="TR-9", component=component))
        assert result.dropped
        assert not result.excluded
        assert "Unknown component" in result.reason


class TestHierarchyPath:
    """Tests for node keys."""

    def test_keys(self):
        assert HierarchyPath(SP).key == SP
        assert HierarchyPath(PL, "Package 1").key == "Production and Livelihood / Package 1"
        assert HierarchyPath(PL, "Package 1").group_key == PL


class TestParseProvince:
    """Tests for province extraction from free-text locations."""

    @pytest.mark.parametrize("location,province", [
        ("Brgy. Malaya, Pililla, Rizal", "Rizal"),
        ("Tanay,Rizal", "Rizal"),
        ("Rizal", UNSPECIFIED_PROVINCE),
        ("Tanay, ", UNSPECIFIED_PROVINCE),
        (None, UNSPECIFIED_PROVINCE),
    ])
    def test_parse(self, location, province):
        assert parse_province(location) == province


class TestGeographicClassifier:
    """Tests for Region -> Province routing."""

    def test_subproject(self, geographic):
        record = Subproject(operating_unit="RPMO 4A", location="Brgy. Malaya, Pililla, Rizal")
        assert geographic.classify(record).path == HierarchyPath("Region IV-A (CALABARZON)", "Rizal")

    def test_excluded_region(self, geographic):
        result = geographic.classify(Subproject(operating_unit="NPMO", location="Quezon City, Metro Manila"))
        assert result.dropped
        assert result.excluded

    def test_unmapped_operating_unit(self, geographic):
        result = geographic.classify(Training(component=SP, operating_unit="RPMO 99", location="Tanay, Rizal"))
        assert result.path == HierarchyPath("Unmapped Region", "Rizal")

    def test_program_management_activity_excluded(self, geographic):
        result = geographic.classify(Training(component=PM, operating_unit="RPMO 4A"))
        assert result.excluded

    def test_records_without_location_excluded(self, geographic):
        assert geographic.classify(StaffingRequirement(operating_unit="RPMO 4A")).excluded


class TestDisplayOrder:
    """Tests for numeric-aware ordering."""

    def test_natural_key(self):
        names = ["Package 10", "Package 2", "Package 1"]
        assert sorted(names, key=natural_key) == ["Package 1", "Package 2", "Package 10"]

    def test_pinned_packages_first(self):
        key = package_sort_key([TRAININGS])
        names = ["Package 10", TRAININGS, "Package 2"]
        assert sorted(names, key=key) == [TRAININGS, "Package 2", "Package 10"]
