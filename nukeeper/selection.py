"""Selection of the update sets to apply in one run.

Two filters live here: the include/exclude pattern match used on package
ids (and repository names) before any lookup happens, and the selector that
cuts a sorted list of update sets down to the targets for this run.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from .models import RunLimits, UpdateSet


def include_exclude(
    target: str, include: re.Pattern[str] | None, exclude: re.Pattern[str] | None
) -> bool:
    """True if target matches include (or include is unset) and does not match exclude."""
    if include is not None and not include.search(target):
        return False
    return exclude is None or not exclude.search(target)


def format_age(age: timedelta) -> str:
    """Describe a minimum age for console output, e.g. "7 days ago"."""
    if age.days >= 1:
        unit = "day" if age.days == 1 else "days"
        return f"{age.days} {unit} ago"
    hours = int(age.total_seconds() // 3600)
    unit = "hour" if hours == 1 else "hours"
    return f"{hours} {unit} ago"


def _old_enough(update: UpdateSet, cutoff: datetime | None) -> bool:
    published = update.selected.published
    if cutoff is None or published is None:
        return True
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published <= cutoff


def select_updates(
    updates: Sequence[UpdateSet],
    limits: RunLimits,
    now: datetime | None = None,
) -> list[UpdateSet]:
    """Choose which of the sorted update sets to apply.

    Drops updates whose selected version was published less than
    limits.min_package_age ago (updates with no publish date are kept),
    then keeps at most limits.max_package_updates of the rest. Order is
    preserved, so the result is a subsequence of the input and the cap
    keeps the updates that sorted first.

    Args:
        updates: Update sets, already sorted.
        limits: Run limits to enforce.
        now: Reference time for the age check. Defaults to the current UTC time.

    Returns:
        The selected update sets.
    """
    cutoff = None
    if limits.min_package_age:
        cutoff = (now or datetime.now(timezone.utc)) - limits.min_package_age
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)

    filtered = [u for u in updates if _old_enough(u, cutoff)]
    if len(filtered) < len(updates):
        print(
            f"  Filtered by minimum package age '{format_age(limits.min_package_age)}' "
            f"from {len(updates)} to {len(filtered)}"
        )

    capped = filtered[: limits.max_package_updates]

    message = f"  Selection of package updates: {len(updates)} candidates"
    if len(filtered) < len(updates):
        message += f", filtered to {len(filtered)}"
    if len(capped) < len(filtered):
        message += f", capped at {len(capped)}"
    print(message)

    return capped
