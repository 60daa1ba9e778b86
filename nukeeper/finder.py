"""Update discovery: from package references to candidate update sets."""

from __future__ import annotations

import re
from collections.abc import Sequence

from .interfaces import PackageRegistry
from .models import (
    PackageReference,
    UpdateSet,
    UsePrerelease,
    VersionChange,
    canonical_id,
)
from .selection import include_exclude
from .versions import allows_prerelease, highest_version, make_candidate_set, version_key


def filter_references(
    references: Sequence[PackageReference],
    include: re.Pattern[str] | None = None,
    exclude: re.Pattern[str] | None = None,
) -> list[PackageReference]:
    """Keep the references whose package id passes the include/exclude patterns."""
    kept = [r for r in references if include_exclude(r.package_id, include, exclude)]
    if len(kept) < len(references):
        desc = []
        if exclude is not None:
            desc.append(f"Exclude '{exclude.pattern}'")
        if include is not None:
            desc.append(f"Include '{include.pattern}'")
        print(f"  Filtered by {' '.join(desc)} from {len(references)} to {len(kept)}")
    return kept


def group_by_package(
    references: Sequence[PackageReference],
) -> dict[str, list[PackageReference]]:
    """Group references by canonical package id, keeping first-seen order."""
    groups: dict[str, list[PackageReference]] = {}
    for ref in references:
        groups.setdefault(canonical_id(ref.package_id), []).append(ref)
    return groups


def find_update_sets(
    references: Sequence[PackageReference],
    registry: PackageRegistry,
    allowed_change: VersionChange,
    use_prerelease: UsePrerelease,
) -> list[UpdateSet]:
    """Look up every referenced package once and build its update set.

    The registry is asked once per distinct package id. Candidates are
    classified against the highest version in use, and the update set
    covers only the references that are older than the selected version.
    Packages with no newer version produce no update set.

    Args:
        references: Package references, already include/exclude filtered.
        registry: Source of candidate versions.
        allowed_change: Largest version change to consider.
        use_prerelease: Prerelease policy for candidate versions.

    Returns:
        Update sets in first-reference order.
    """
    updates: list[UpdateSet] = []
    for refs in group_by_package(references).values():
        package_id = refs[0].package_id
        in_use = [r.version for r in refs]
        current = highest_version(in_use)

        candidates = registry.lookup(
            package_id, allows_prerelease(current, use_prerelease)
        )
        candidate_set = make_candidate_set(
            package_id, current, candidates, allowed_change, in_use=sorted(set(in_use))
        )
        selected = candidate_set.selected()
        if selected is None:
            continue

        target = version_key(selected.version)
        outdated = [r for r in refs if version_key(r.version) < target]
        if outdated:
            updates.append(UpdateSet(candidates=candidate_set, references=tuple(outdated)))

    print(f"  Found {len(updates)} possible updates")
    for update in updates:
        versions = ", ".join(sorted({r.version for r in update.references}))
        print(f"    {update.package_id} to {update.selected_version} from {versions}")
    return updates
