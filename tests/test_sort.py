"""Tests for nukeeper.sort."""

from __future__ import annotations

import pytest
from builders import make_update_set

from nukeeper.sort import priority_key, sort_update_sets


def ids(updates: list) -> list[str]:
    return [u.package_id for u in updates]


class TestPriority:
    def test_equal_updates_keep_input_order(self) -> None:
        updates = [make_update_set(name) for name in ("A", "B", "C")]

        assert ids(sort_update_sets(updates)) == ["A", "B", "C"]

    def test_more_distinct_versions_first(self) -> None:
        few = make_update_set("Few", current=("1.0.0", "1.0.0", "1.0.0"))
        many = make_update_set("Many", current=("1.0.0", "1.1.0"))

        assert ids(sort_update_sets([few, many])) == ["Many", "Few"]

    def test_more_references_first(self) -> None:
        one = make_update_set("One", current=("1.0.0",))
        two = make_update_set("Two", current=("1.0.0", "1.0.0"))

        assert ids(sort_update_sets([one, two])) == ["Two", "One"]

    def test_bigger_change_first(self) -> None:
        patch = make_update_set("Patch", version="1.0.1", current=("1.0.0",))
        minor = make_update_set("Minor", version="1.1.0", current=("1.0.0",))
        major = make_update_set("Major", version="2.0.0", current=("1.0.0",))

        assert ids(sort_update_sets([patch, minor, major])) == ["Major", "Minor", "Patch"]

    def test_escaping_prerelease_first(self) -> None:
        stable = make_update_set("Stable", version="1.0.1", current=("1.0.0",))
        beta = make_update_set("Beta", version="1.0.1", current=("1.0.0-beta",))

        assert ids(sort_update_sets([stable, beta])) == ["Beta", "Stable"]

    def test_change_outranks_escaping_prerelease(self) -> None:
        beta = make_update_set("Beta", version="1.0.1", current=("1.0.0-beta",))
        minor = make_update_set("Minor", version="1.1.0", current=("1.0.0",))

        assert ids(sort_update_sets([beta, minor])) == ["Minor", "Beta"]

    def test_priority_key_shape(self) -> None:
        update = make_update_set(version="2.0.0", current=("1.0.0", "1.1.0"))

        assert priority_key(update) == (-2, -2, -3, 0)


class TestDependencyOrder:
    def test_dependency_goes_first(self) -> None:
        a = make_update_set("A", dependencies=["B"])
        b = make_update_set("B")
        c = make_update_set("C")

        result = ids(sort_update_sets([a, b, c]))

        assert result.index("B") < result.index("A")
        assert sorted(result) == ["A", "B", "C"]

    def test_dependency_beats_priority(self) -> None:
        # A would go first on priority alone
        a = make_update_set("A", version="2.0.0", current=("1.0.0", "1.1.0"), dependencies=["B"])
        b = make_update_set("B", version="1.0.1", current=("1.0.0",))

        assert ids(sort_update_sets([a, b])) == ["B", "A"]

    def test_dependency_ids_compared_canonically(self) -> None:
        a = make_update_set("Some.Consumer", dependencies=["some-library"])
        b = make_update_set("Some_Library")

        assert ids(sort_update_sets([a, b])) == ["Some_Library", "Some.Consumer"]

    def test_explicit_dependency_map(self) -> None:
        a = make_update_set("A")
        b = make_update_set("B")

        result = sort_update_sets([a, b], dependencies={"A": ["B"], "B": None})

        assert ids(result) == ["B", "A"]

    def test_cycle_does_not_fail(self) -> None:
        a = make_update_set("A", dependencies=["B"])
        b = make_update_set("B", dependencies=["A"])

        result = sort_update_sets([a, b])

        assert ids(result) == ["A", "B"]

    def test_empty(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert sort_update_sets([]) == []
        assert "no change made" in capsys.readouterr().out


class TestReport:
    def test_reports_first_move(self, capsys: pytest.CaptureFixture[str]) -> None:
        one = make_update_set("One")
        two = make_update_set("Two", current=("1.0.0", "1.0.0"))

        sort_update_sets([one, two])

        out = capsys.readouterr().out
        assert "first change is Two moved to position 0 from 1" in out
