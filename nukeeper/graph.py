"""Dependency graph utilities.

Provides a layered topological sort for ordering updates so that a package
is updated before the packages that depend on it. Unlike a plain build order,
update order has to survive dependency cycles, since published packages can
depend on each other across versions.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from typing import TypeVar

N = TypeVar("N", bound=Hashable)


def topo_layers(deps: Mapping[N, Iterable[N]]) -> list[list[N]]:
    """Group nodes into layers where every node comes after its dependencies.

    Uses Kahn's algorithm one layer at a time: a layer holds every node whose
    dependencies are all in earlier layers. Nodes keep their input order
    within a layer. Dependencies on nodes outside the mapping, and on the
    node itself, are ignored.

    When no node is ready the remaining nodes are blocked by a cycle. The
    members of every cycle that depends on nothing else still pending are
    then released together as one layer, so a cycle never raises.

    Args:
        deps: Map of node → the nodes it depends on. Iteration order of the
              mapping is the input order.

    Returns:
        List of layers; concatenated they contain every node exactly once.

    Example:
        If A depends on B, and B depends on C:
        topo_layers({A: [B], B: [C], C: []}) → [[C], [B], [A]]
    """
    preds: dict[N, set[N]] = {
        node: {d for d in node_deps if d in deps and d != node}
        for node, node_deps in deps.items()
    }

    layers: list[list[N]] = []
    placed: set[N] = set()
    remaining = list(deps)

    while remaining:
        ready = [n for n in remaining if preds[n] <= placed]
        if not ready:
            ready = _source_cycles(remaining, preds, placed)
        layers.append(ready)
        placed.update(ready)
        remaining = [n for n in remaining if n not in placed]

    return layers


def _source_cycles(
    remaining: list[N], preds: Mapping[N, set[N]], placed: set[N]
) -> list[N]:
    """Return the members of cycles that wait on nothing outside themselves.

    A node belongs to such a cycle when every pending node it (transitively)
    depends on also depends back on it.
    """
    reach = {n: _reachable(n, preds, placed) for n in remaining}
    return [n for n in remaining if all(n in reach[m] for m in reach[n])]


def _reachable(start: N, preds: Mapping[N, set[N]], placed: set[N]) -> set[N]:
    seen: set[N] = set()
    stack = [p for p in preds[start] if p not in placed]
    while stack:
        node = stack.pop()
        if node in seen:
            continue
        seen.add(node)
        stack.extend(p for p in preds[node] if p not in placed and p not in seen)
    return seen
