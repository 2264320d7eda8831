"""
Unit tests for period counters, the report hierarchy and tree building.

Tests cover:
- Quarter and total invariants of period counters
- Item folding (sums, distinct unions, units)
- Merge by name under one package
- Summaries at every level and the grand total
- Seeded groups and display ordering
"""
import pytest

from report_engine.core.classifier import HierarchyPath, natural_key
from report_engine.core.period_calendar import PeriodIndex
from report_engine.data import BarItem, Item, PeriodCounter, TreeBuilder, aggregate

SP = "Social Preparation"
PL = "Production and Livelihood"
PM = "Program Management"


def counter(**months) -> PeriodCounter:
    """Counter from keyword month values, e.g. counter(m1=2, m6=1)."""
    values = [0.0] * 12
    for key, value in months.items():
        values[int(key[1:]) - 1] = float(value)
    return PeriodCounter(tuple(values))


@pytest.fixture
def builder():
    """Builder seeded like a program report."""
    return TreeBuilder(seed_groups=[
        (SP, []),
        (PL, []),
        ("Marketing and Enterprise", []),
        (PM, ["Trainings", "Staff Requirements", "Office Requirements"]),
    ])


@pytest.fixture
def populated(builder):
    builder.add(HierarchyPath(SP), Item("Orientation", counters={"target": counter(m1=1)}, record_count=1))
    builder.add(HierarchyPath(PL, "Package 1"), Item("Rice", counters={"target": counter(m2=2, m5=1)}, record_count=1))
    builder.add(HierarchyPath(PL, "Package 1"), Item("Corn", counters={"target": counter(m11=4)}, record_count=1))
    builder.add(HierarchyPath(PL, "Package 2"), Item("Rice", counters={"target": counter(m12=3)}, record_count=1))
    builder.add(HierarchyPath(PM, "Staff Requirements"), Item("PDO II", counters={"target": counter(m1=1)}, record_count=1))
    return builder.build()


class TestPeriodCounter:
    """Tests for month slots and derived views."""

    def test_single(self):
        c = PeriodCounter.single(PeriodIndex(5), 3)
        assert c.month(5) == 3
        assert c.quarter(2) == 3
        assert c.total == 3

    def test_single_out_of_scope(self):
        assert PeriodCounter.single(None, 5).is_zero
        assert PeriodCounter.single(PeriodIndex(1), 0).is_zero

    def test_wrong_shape(self):
        with pytest.raises(ValueError):
            PeriodCounter((1.0, 2.0))

    def test_quarter_invariants(self):
        """Quarter = sum of its months and total = sum of quarters."""
        c = PeriodCounter(tuple(float(m) for m in range(1, 13)))
        assert c.quarters == (6, 15, 24, 33)
        assert c.total == sum(c.months) == 78
        assert c.cumulative(9) == 45

    def test_add(self):
        total = counter(m1=1, m4=2) + counter(m4=3)
        assert total.month(4) == 5
        assert total.quarters == (1, 5, 0, 0)

    def test_to_dict(self):
        d = counter(m7=2).to_dict()
        assert d["m7"] == 2
        assert d["q3"] == 2
        assert d["total"] == 2

    def test_bar_item(self):
        bar = BarItem(counter(m1=1), counter(m1=1)) + BarItem(counter(m2=1), PeriodCounter())
        assert bar.target.total == 2
        assert bar.actual.total == 1


class TestItem:
    """Tests for folding items."""

    def test_combine(self):
        left = Item(
            "Okra",
            counters={"target": counter(m1=1)},
            amounts={"mooe": 10.0},
            code_amounts={"50203090": 10.0},
            distinct={"ipo": frozenset({"A"})},
            units=frozenset({"kg"}),
            record_count=1,
        )
        right = Item(
            "Okra",
            counters={"target": counter(m1=2), "actual": counter(m3=1)},
            amounts={"mooe": 5.0, "co": 7.0},
            distinct={"ipo": frozenset({"A", "B"})},
            units=frozenset({"heads"}),
            record_count=2,
        )
        merged = left.combine(right)
        assert merged.counter("target").month(1) == 3
        assert merged.counter("actual").total == 1
        assert merged.amount("mooe") == 15.0
        assert merged.amount("co") == 7.0
        assert merged.code_amount("50203090") == 10.0
        assert merged.distinct_count("ipo") == 2
        assert merged.units == frozenset({"kg", "heads"})
        assert merged.record_count == 3

    def test_missing_measures_are_zero(self):
        item = Item("Empty")
        assert item.counter("target").is_zero
        assert item.amount("anything") == 0.0
        assert item.distinct_count("ipo") == 0
        assert item.bar().target.total == 0

    def test_aggregate_empty(self):
        assert aggregate([], "Total") == Item("Total")

    def test_aggregate_sums(self):
        items = [Item("a", amounts={"x": 1.0}), Item("b", amounts={"x": 2.5})]
        total = aggregate(items, "Total")
        assert total.name == "Total"
        assert total.amount("x") == 3.5

    def test_renamed(self):
        assert Item("a", amounts={"x": 1.0}).renamed("b") == Item("b", amounts={"x": 1.0})


class TestTreeBuilder:
    """Tests for accumulation into the hierarchy."""

    def test_merge_by_name(self):
        """Two contributions with one name are one row."""
        builder = TreeBuilder()
        builder.add(HierarchyPath(PL, "Package 1"), Item("Okra", amounts={"target": 1.0}, record_count=1))
        builder.add(HierarchyPath(PL, "Package 1"), Item("Okra", amounts={"target": 2.0}, record_count=1))
        package = builder.build().group(PL).package("Package 1")
        assert [i.name for i in package.items] == ["Okra"]
        assert package.items[0].amount("target") == 3.0
        assert package.items[0].record_count == 2

    def test_merge_ignores_case_and_padding(self):
        """Names differing only in case or padding are one row under the first spelling."""
        builder = TreeBuilder()
        for name in ("Okra Production", "OKRA PRODUCTION", " okra production "):
            builder.add(HierarchyPath(PL, "Package 1"), Item(name, amounts={"target": 1.0}, record_count=1))
        package = builder.build().group(PL).package("Package 1")
        assert [i.name for i in package.items] == ["Okra Production"]
        assert package.items[0].amount("target") == 3.0

    def test_first_spelling_is_trimmed(self):
        builder = TreeBuilder()
        builder.add(HierarchyPath(PL), Item("  Seed Bank ", amounts={"target": 1.0}))
        assert builder.build().group(PL).items[0].name == "Seed Bank"

    def test_same_name_in_other_package_stays_separate(self, populated):
        group = populated.group(PL)
        assert [i.name for i in group.package("Package 1").items] == ["Rice", "Corn"]
        assert [i.name for i in group.package("Package 2").items] == ["Rice"]

    def test_summaries_are_sums_of_children(self, populated):
        pl = populated.group(PL)
        assert pl.package("Package 1").summary.counter("target").total == 7
        assert pl.package("Package 2").summary.counter("target").total == 3
        assert pl.summary.counter("target").total == 10
        assert pl.summary.name == PL

    def test_grand_total_equals_sum_of_groups(self, populated):
        group_total = sum(g.summary.counter("target").total for g in populated.groups)
        assert populated.grand_total.counter("target").total == group_total == 12
        assert populated.grand_total.counter("target").quarters == (4, 1, 0, 7)
        assert populated.grand_total.name == "GRAND TOTAL"

    def test_summary_quarter_invariants(self, populated):
        for group in populated.groups:
            c = group.summary.counter("target")
            assert sum(c.quarters) == c.total
            for q in range(1, 5):
                assert c.quarter(q) == sum(c.month(m) for m in range((q - 1) * 3 + 1, q * 3 + 1))

    def test_seeded_groups_render_empty(self, populated):
        assert [g.name for g in populated.groups] == [SP, PL, "Marketing and Enterprise", PM]
        assert populated.group("Marketing and Enterprise").is_empty
        pm = populated.group(PM)
        assert [p.name for p in pm.packages] == ["Trainings", "Staff Requirements", "Office Requirements"]
        assert pm.package("Trainings").is_empty
        assert not pm.is_empty

    def test_packages_created_lazily(self, populated):
        assert [p.name for p in populated.group(PL).packages] == ["Package 1", "Package 2"]

    def test_new_group_appended(self, builder):
        builder.add(HierarchyPath("Region IV-A"), Item("x"))
        assert builder.build().groups[-1].name == "Region IV-A"

    def test_distinct_keys_counted_once_in_summaries(self):
        builder = TreeBuilder()
        builder.add(HierarchyPath(PL, "Package 1"), Item("a", distinct={"ipo": frozenset({"IPO 1"})}))
        builder.add(HierarchyPath(PL, "Package 2"), Item("b", distinct={"ipo": frozenset({"IPO 1", "IPO 2"})}))
        tree = builder.build()
        assert tree.group(PL).summary.distinct_count("ipo") == 2
        assert tree.grand_total.distinct_count("ipo") == 2

    def test_sorting(self):
        builder = TreeBuilder(
            group_sort=natural_key,
            package_sort=lambda group: natural_key,
            item_sort=lambda item: natural_key(item.name),
        )
        for group, package, name in [
            ("Region 10", "Rizal", "b"),
            ("Region 2", "Quezon", "a"),
            ("Region 2", "Aurora", "c"),
            ("Region 2", "Aurora", "B"),
        ]:
            builder.add(HierarchyPath(group, package), Item(name))
        tree = builder.build()
        assert [g.name for g in tree.groups] == ["Region 2", "Region 10"]
        region2 = tree.group("Region 2")
        assert [p.name for p in region2.packages] == ["Aurora", "Quezon"]
        assert [i.name for i in region2.package("Aurora").items] == ["B", "c"]

    def test_node_keys(self, populated):
        keys = populated.node_keys()
        assert keys[0] == SP
        assert "Production and Livelihood / Package 2" in keys
        assert "Program Management / Trainings" in keys

    def test_to_dict(self, populated):
        d = populated.to_dict()
        assert d["grand_total"]["counters"]["target"]["total"] == 12
        assert len(d["groups"]) == 4
