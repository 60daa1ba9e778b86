"""Branch naming for update batches.

Branch names are derived only from batch content, so a re-run that selects
the same updates finds the branch it pushed last time instead of opening a
second pull request.
"""

from __future__ import annotations

import hashlib
import string
from collections.abc import Sequence
from datetime import datetime, timezone

from .models import UpdateSet

# Tokens a branch name template may use.
TEMPLATE_TOKENS = frozenset({"default", "count", "date"})


def template_tokens(template: str) -> set[str]:
    """Return the names of the {tokens} used in a branch name template.

    Raises:
        ValueError: If the template is not a valid format string.
    """
    return {
        field for _, field, _, _ in string.Formatter().parse(template) if field is not None
    }


def batch_hash(updates: Sequence[UpdateSet]) -> str:
    """Fingerprint a batch by its ordered (package id, version) pairs.

    The digest is the uppercase MD5 hex of "id-vversion" entries joined
    with commas, in batch order.
    """
    content = ",".join(f"{u.package_id}-v{u.selected_version}" for u in updates)
    return hashlib.md5(content.encode("utf-8")).hexdigest().upper()


def default_branch_name(updates: Sequence[UpdateSet]) -> str:
    """Compute the branch name for a batch, before any template is applied.

    Examples:
        one update → "nukeeper-update-Foo-to-1.2.3"
        two updates → "nukeeper-update-2-packages-AA9F9828431C8BFB7A18D3D8F0CF229D"
    """
    if len(updates) == 1:
        update = updates[0]
        return f"nukeeper-update-{update.package_id}-to-{update.selected_version}"
    return f"nukeeper-update-{len(updates)}-packages-{batch_hash(updates)}"


def make_branch_name(
    updates: Sequence[UpdateSet],
    template: str | None = None,
    now: datetime | None = None,
) -> str:
    """Name the branch for a batch, optionally through a template.

    The template's {default} token is replaced by the default branch name,
    {count} by the number of updates and {date} by the UTC date as YYYYMMDD.
    Templates are validated when settings are loaded, so unknown tokens
    never reach this point.

    Example:
        make_branch_name([foo], "deps/{default}") → "deps/nukeeper-update-Foo-to-1.2.3"
    """
    name = default_branch_name(updates)
    if not template:
        return name
    when = now or datetime.now(timezone.utc)
    return template.format_map(
        {"default": name, "count": len(updates), "date": when.strftime("%Y%m%d")}
    )
