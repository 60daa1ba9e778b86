"""Tests for nukeeper.graph."""

from __future__ import annotations

from nukeeper.graph import topo_layers


class TestTopoLayers:
    def test_no_deps(self) -> None:
        assert topo_layers({"a": [], "b": [], "c": []}) == [["a", "b", "c"]]

    def test_linear_deps(self) -> None:
        assert topo_layers({"a": ["b"], "b": ["c"], "c": []}) == [["c"], ["b"], ["a"]]

    def test_diamond_deps(self) -> None:
        layers = topo_layers(
            {
                "top": ["left", "right"],
                "left": ["bottom"],
                "right": ["bottom"],
                "bottom": [],
            }
        )
        assert layers == [["bottom"], ["left", "right"], ["top"]]

    def test_ignores_self_and_external_deps(self) -> None:
        assert topo_layers({"a": ["a", "zzz"], "b": ["a"]}) == [["a"], ["b"]]

    def test_two_cycle_released_together(self) -> None:
        assert topo_layers({"a": ["b"], "b": ["a"]}) == [["a", "b"]]

    def test_cycle_waits_for_its_dependencies(self) -> None:
        layers = topo_layers({"a": ["b"], "b": ["a", "c"], "c": []})
        assert layers == [["c"], ["a", "b"]]

    def test_dependent_of_cycle_comes_after(self) -> None:
        layers = topo_layers({"x": ["a"], "a": ["b"], "b": ["a"]})
        assert layers == [["a", "b"], ["x"]]

    def test_every_node_once(self) -> None:
        deps = {1: [2], 2: [3], 3: [1], 4: [1], 5: []}
        flat = [n for layer in topo_layers(deps) for n in layer]
        assert sorted(flat) == [1, 2, 3, 4, 5]

    def test_empty(self) -> None:
        assert topo_layers({}) == []
