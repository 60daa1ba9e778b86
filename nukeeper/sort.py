"""Ordering of update sets.

Updates are applied in dependency order (a package before the packages that
depend on it) and, among updates that are free to go in any order, riskiest
first: packages with many versions in use and many references are tackled
early, as are the biggest version jumps.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from .graph import topo_layers
from .models import UpdateSet, canonical_id
from .versions import escapes_prerelease, highest_version, version_change


def priority_key(update: UpdateSet) -> tuple[int, int, int, int]:
    """Sort key for updates that have no ordering constraint between them.

    Lower sorts first. Keys, in precedence order:
    1. More distinct versions in use
    2. More referencing projects
    3. Bigger version change (major > minor > patch)
    4. Moving out of a prerelease stream
    """
    in_use = highest_version(ref.version for ref in update.references)
    change = version_change(in_use, update.selected_version)
    escaping = escapes_prerelease(in_use, update.selected_version)
    return (
        -update.count_current_versions(),
        -len(update.references),
        -change.rank,
        -int(escaping),
    )


def sort_update_sets(
    updates: Sequence[UpdateSet],
    dependencies: Mapping[str, Iterable[str] | None] | None = None,
) -> list[UpdateSet]:
    """Order update sets so that depended-upon packages are updated first.

    Update sets are grouped into topological layers by "depends on" edges
    between their package ids, then each layer is sorted by priority_key.
    The sort is stable, so input order decides remaining ties. A dependency
    cycle does not fail the sort: its members are placed together and
    ordered by priority alone.

    Args:
        updates: Update sets in discovery order.
        dependencies: Optional map of package id → ids that package depends
                      on. Defaults to the dependencies declared by each
                      update's selected version.

    Returns:
        A new list holding every update set exactly once.
    """
    ids = [canonical_id(u.package_id) for u in updates]
    deps: dict[int, list[int]] = {}
    for i, update in enumerate(updates):
        if dependencies is not None:
            declared = _lookup(dependencies, update.package_id) or ()
        else:
            declared = update.selected.dependencies
        wanted = {canonical_id(d) for d in declared}
        deps[i] = [j for j, other in enumerate(ids) if other in wanted and j != i]

    order: list[int] = []
    for layer in topo_layers(deps):
        order.extend(sorted(layer, key=lambda i: (priority_key(updates[i]), i)))

    result = [updates[i] for i in order]
    _report_sort(updates, order)
    return result


def _lookup(
    dependencies: Mapping[str, Iterable[str] | None], package_id: str
) -> Iterable[str] | None:
    if package_id in dependencies:
        return dependencies[package_id]
    wanted = canonical_id(package_id)
    for key, value in dependencies.items():
        if canonical_id(key) == wanted:
            return value
    return None


def _report_sort(updates: Sequence[UpdateSet], order: list[int]) -> None:
    for position, original in enumerate(order):
        if position != original:
            print(
                f"  Sorted {len(order)} updates, first change is "
                f"{updates[original].package_id} moved to position {position} "
                f"from {original}"
            )
            return
    print(f"  Sorted {len(order)} updates, no change made")
