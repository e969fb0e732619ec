"""
Unit tests for the project index and primary selection.
"""

from datetime import datetime, timezone

import pytest

from project_consolidator.decisions import ScriptedDecisionProvider
from project_consolidator.index import (
    IdentityGroup,
    PrimarySelectionError,
    ProjectIndex,
)
from project_consolidator.selector import select_primaries, select_primary
from project_consolidator.types import ProjectInstance


def instance(path: str, key: str = "foo", year: int = 2020, month: int = 1) -> ProjectInstance:
    return ProjectInstance(
        source_path=path,
        identity_key=key,
        representative_date=datetime(year, month, 1, tzinfo=timezone.utc),
    )


class TestProjectInstance:
    """Tests for the ProjectInstance record."""

    def test_name_is_leaf(self):
        assert instance("/data/A/new").name == "new"

    def test_equality_by_path(self):
        assert instance("/a", key="x") == instance("/a", key="y")
        assert instance("/a") != instance("/b")

    def test_hashable(self):
        assert len({instance("/a"), instance("/a"), instance("/b")}) == 2


class TestIdentityGroup:
    """Tests for IdentityGroup class."""

    def test_rejects_foreign_key(self):
        group = IdentityGroup("foo")
        with pytest.raises(ValueError):
            group.add(instance("/x", key="bar"))

    def test_sort_newest_first(self):
        group = IdentityGroup("foo")
        group.add(instance("/old", year=2018))
        group.add(instance("/newest", year=2023))
        group.add(instance("/mid", year=2020))

        group.sort()
        assert [m.source_path for m in group] == ["/newest", "/mid", "/old"]

    def test_sort_ties_broken_by_path(self):
        group = IdentityGroup("foo")
        group.add(instance("/c"))
        group.add(instance("/a"))
        group.add(instance("/b"))

        group.sort()
        assert [m.source_path for m in group] == ["/a", "/b", "/c"]

    def test_mark_primary_is_exclusive(self):
        group = IdentityGroup("foo")
        for path in ("/a", "/b", "/c"):
            group.add(instance(path))

        group.mark_primary(0)
        group.mark_primary(2)

        assert [m.is_primary for m in group] == [False, False, True]
        assert group.primary.source_path == "/c"
        assert [m.source_path for m in group.secondaries] == ["/a", "/b"]

    def test_mark_primary_out_of_range(self):
        group = IdentityGroup("foo")
        group.add(instance("/a"))
        with pytest.raises(IndexError):
            group.mark_primary(1)

    def test_no_primary(self):
        group = IdentityGroup("foo")
        group.add(instance("/a"))
        assert group.primary is None


class TestProjectIndex:
    """Tests for ProjectIndex class."""

    def test_groups_by_identity(self):
        index = ProjectIndex()
        index.add(instance("/a1", key="a"))
        index.add(instance("/b1", key="b"))
        index.add(instance("/a2", key="a"))

        assert len(index) == 2
        assert index.instance_count() == 3
        assert [g.identity_key for g in index] == ["a", "b"]
        assert [m.source_path for m in index["a"]] == ["/a1", "/a2"]
        assert "b" in index
        assert "c" not in index

    def test_each_instance_in_exactly_one_group(self):
        index = ProjectIndex()
        paths = [f"/p{i}" for i in range(10)]
        for i, path in enumerate(paths):
            index.add(instance(path, key=f"k{i % 3}"))

        grouped = [m.source_path for g in index for m in g]
        assert sorted(grouped) == sorted(paths)
        assert len(set(grouped)) == len(paths)

    def test_duplicate_groups(self):
        index = ProjectIndex()
        index.add(instance("/a1", key="a"))
        index.add(instance("/a2", key="a"))
        index.add(instance("/b1", key="b"))

        assert [g.identity_key for g in index.duplicate_groups()] == ["a"]

    def test_verify_primaries_passes(self):
        index = ProjectIndex()
        index.add(instance("/a1", key="a"))
        index["a"].mark_primary(0)
        index.verify_primaries()

    def test_verify_primaries_missing(self):
        index = ProjectIndex()
        index.add(instance("/a1", key="a"))
        with pytest.raises(PrimarySelectionError):
            index.verify_primaries()

    def test_verify_primaries_too_many(self):
        index = ProjectIndex()
        index.add(instance("/a1", key="a"))
        index.add(instance("/a2", key="a"))
        for member in index["a"]:
            member.is_primary = True
        with pytest.raises(PrimarySelectionError):
            index.verify_primaries()


class TestSelectPrimary:
    """Tests for primary selection."""

    def make_group(self) -> IdentityGroup:
        group = IdentityGroup("foo")
        group.add(instance("/old", year=2019))
        group.add(instance("/new", year=2022))
        group.add(instance("/mid", year=2021))
        return group

    def test_default_is_most_recent(self):
        group = self.make_group()
        assert select_primary(group) == 0
        assert group.primary.source_path == "/new"

    def test_operator_override(self):
        group = self.make_group()
        decisions = ScriptedDecisionProvider(choices=[2])

        assert select_primary(group, decisions, interactive=True) == 2
        assert group.primary.source_path == "/old"
        # Ordering is still newest-first
        assert [m.source_path for m in group] == ["/new", "/mid", "/old"]

    def test_options_presented_newest_first(self):
        group = self.make_group()
        decisions = ScriptedDecisionProvider()

        select_primary(group, decisions, interactive=True)

        (kind, _, options), = decisions.asked
        assert kind == "choice"
        assert options[0].startswith("/new")
        assert "2022-01-01" in options[0]

    def test_not_interactive_ignores_provider(self):
        group = self.make_group()
        decisions = ScriptedDecisionProvider(choices=[2])

        select_primary(group, decisions, interactive=False)
        assert group.primary.source_path == "/new"
        assert decisions.asked == []

    def test_single_member_not_asked(self):
        group = IdentityGroup("solo")
        group.add(instance("/solo", key="solo"))
        decisions = ScriptedDecisionProvider()

        select_primary(group, decisions, interactive=True)
        assert group.primary.source_path == "/solo"
        assert decisions.asked == []

    def test_select_primaries_marks_every_group(self):
        index = ProjectIndex()
        index.add(instance("/a1", key="a", year=2020))
        index.add(instance("/a2", key="a", year=2021))
        index.add(instance("/b1", key="b"))

        select_primaries(index)

        for group in index:
            assert sum(m.is_primary for m in group) == 1
        assert index["a"].primary.source_path == "/a2"
