"""Grouping of selected updates into pull requests."""

from __future__ import annotations

from collections.abc import Sequence

from .models import Batch, UpdateSet


def consolidate(updates: Sequence[UpdateSet], consolidate: bool) -> list[Batch]:
    """Partition updates into batches, one branch and pull request each.

    With consolidate=True every update goes into a single batch; otherwise
    each update gets a batch of its own. Order is preserved either way.

    Examples:
        consolidate([a, b, c], True) → [[a, b, c]]
        consolidate([a, b, c], False) → [[a], [b], [c]]
    """
    if consolidate:
        return [list(updates)]
    return [[u] for u in updates]
