"""Version parsing and classification.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0"),
and classifies registry candidates into patch, minor and major tiers
relative to the version currently in use.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import semver

from .models import CandidateSet, PackageVersion, UsePrerelease, VersionChange


def _split(version_str: str) -> tuple[list[int], str]:
    text = version_str.strip().lstrip("vV")
    suffix = ""
    for i, ch in enumerate(text):
        if ch in "-+":
            text, suffix = text[:i], text[i:]
            break
    return [int(p) for p in text.split(".")], suffix


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3-beta.1" → "1.2.3-beta.1"

    Only the first 3 numeric components are kept (major.minor.patch), so
    "1.2.3.4" parses as "1.2.3"; compare with version_key() to take the
    rest into account. Prerelease and build suffixes are kept.
    A leading "v" is ignored.

    Raises:
        ValueError: If the numeric part is not made of integers.
    """
    numbers, suffix = _split(version_str)
    parts = [str(n) for n in numbers]
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts[:3]) + suffix)


def version_key(version_str: str) -> tuple[semver.Version, tuple[int, ...]]:
    """Ordering key that also compares components beyond the third.

    Trailing zero components are dropped, so "2.1.0.0" equals "2.1.0".

    Examples:
        "1.0.0.1" < "1.0.0.2" < "1.0.1"
        "2.1.0.5" > "2.1.0"
    """
    extra = _split(version_str)[0][3:]
    while extra and extra[-1] == 0:
        extra.pop()
    return parse_version(version_str), tuple(extra)


def is_prerelease(version_str: str) -> bool:
    """True if the version carries a prerelease tag (e.g. "2.0.0-rc.1")."""
    return parse_version(version_str).prerelease is not None


def version_change(old: str, new: str) -> VersionChange:
    """Classify the magnitude of moving from old to new.

    Examples:
        "1.2.3" → "2.0.0" is MAJOR
        "1.2.3" → "1.4.0" is MINOR
        "1.2.3" → "1.2.9" is PATCH
        "2.1.0.0" → "2.1.0.5" is PATCH (revision only)
        "1.2.3-beta" → "1.2.3" is NONE (same numeric triple)
    """
    a, b = parse_version(old), parse_version(new)
    if b.major > a.major:
        return VersionChange.MAJOR
    if b.major == a.major and b.minor > a.minor:
        return VersionChange.MINOR
    if b.major == a.major and b.minor == a.minor and b.patch > a.patch:
        return VersionChange.PATCH
    if a == b and version_key(new)[1] > version_key(old)[1]:
        return VersionChange.PATCH
    return VersionChange.NONE


def escapes_prerelease(old: str, new: str) -> bool:
    """True if moving from old to new leaves a prerelease stream."""
    return is_prerelease(old) and not is_prerelease(new)


def highest_version(versions: Iterable[str]) -> str:
    """Return the highest of the given version strings (first one on ties)."""
    return max(versions, key=version_key)


def allows_prerelease(current: str, policy: UsePrerelease) -> bool:
    """Decide whether prerelease candidates may be used for a package."""
    if policy is UsePrerelease.ALWAYS:
        return True
    if policy is UsePrerelease.NEVER:
        return False
    return is_prerelease(current)


def _in_tier(current: semver.Version, candidate: semver.Version, tier: VersionChange) -> bool:
    if tier is VersionChange.MAJOR:
        return True
    if tier is VersionChange.MINOR:
        return candidate.major == current.major
    return candidate.major == current.major and candidate.minor == current.minor


def make_candidate_set(
    package_id: str,
    current: str,
    candidates: Iterable[PackageVersion],
    allowed_change: VersionChange,
    in_use: Sequence[str] | None = None,
) -> CandidateSet:
    """Find the highest candidate in each change tier.

    Candidates are partitioned relative to the current version: the patch
    tier keeps major and minor, the minor tier keeps major, the major tier
    takes anything. Each tier holds the highest candidate by version_key(),
    so "1.0.0.2" beats "1.0.0.1", and tiers above allowed_change are left
    empty.

    Args:
        package_id: Package the candidates belong to.
        current: The version the tiers are measured from.
        candidates: Versions offered by the registry, in any order.
        allowed_change: Largest tier that may be filled.
        in_use: Every version currently referenced, recorded on the result.
                Defaults to just the current version.

    Returns:
        A CandidateSet. With no candidates every tier is None.
    """
    base = parse_version(current)
    parsed = [(version_key(c.version), c) for c in candidates]

    tiers: dict[VersionChange, PackageVersion | None] = {}
    for tier in (VersionChange.PATCH, VersionChange.MINOR, VersionChange.MAJOR):
        tiers[tier] = None
        if tier.rank > allowed_change.rank:
            continue
        matching = [(v, c) for v, c in parsed if _in_tier(base, v[0], tier)]
        if matching:
            # max() keeps the first of equal versions, so input order breaks ties
            tiers[tier] = max(matching, key=lambda pair: pair[0])[1]

    return CandidateSet(
        package_id=package_id,
        allowed_change=allowed_change,
        current_versions=tuple(in_use) if in_use else (current,),
        major=tiers[VersionChange.MAJOR],
        minor=tiers[VersionChange.MINOR],
        patch=tiers[VersionChange.PATCH],
    )
