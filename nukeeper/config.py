"""Settings loading and validation.

Settings are read from a TOML file with tomlkit. The [tool.nukeeper] table
is used when present (so settings can live in pyproject.toml), otherwise
the whole document:

    [tool.nukeeper]
    max_package_updates = 5
    min_package_age = "3d"
    fork_mode = "prefer_single_repository"
    consolidate = true
    branch_name_template = "deps/{date}/{default}"
    exclude = "^internal\\."

Every problem is reported as a ConfigurationError before any repository is
touched.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import ParseError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .branches import TEMPLATE_TOKENS, template_tokens
from .errors import ConfigurationError
from .models import ForkMode, RunLimits, UsePrerelease, VersionChange

_LIMIT_KEYS = (
    "max_package_updates",
    "max_open_pull_requests",
    "max_repositories_changed",
    "min_package_age",
    "include",
    "exclude",
)


class Settings(BaseModel):
    """Everything a fleet run is configured with.

    Attributes:
        limits: Caps and package filters.
        fork_mode: Where update branches are pushed.
        allowed_change: Largest version change to apply.
        use_prerelease: When prerelease versions may be selected.
        consolidate: Put all updates for a repository in one pull request.
        branch_name_template: Optional template with a {default} token.
        labels: Labels attached to new pull requests.
        delete_branch_after_merge: Ask the platform to delete merged branches.
        set_auto_merge: Ask the platform to merge once checks pass.
        include_repos: Only repositories whose name matches are processed.
        exclude_repos: Repositories whose name matches are skipped.
        work_dir: Parent directory for per-repository working folders.
    """

    model_config = ConfigDict(frozen=True)

    limits: RunLimits = Field(default_factory=RunLimits)
    fork_mode: ForkMode = ForkMode.PREFER_FORK
    allowed_change: VersionChange = VersionChange.MAJOR
    use_prerelease: UsePrerelease = UsePrerelease.FROM_PRERELEASE
    consolidate: bool = False
    branch_name_template: str | None = None
    labels: tuple[str, ...] = ("nukeeper",)
    delete_branch_after_merge: bool = True
    set_auto_merge: bool = False
    include_repos: re.Pattern[str] | None = None
    exclude_repos: re.Pattern[str] | None = None
    work_dir: Path | None = None

    @field_validator("branch_name_template")
    @classmethod
    def _known_tokens(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            tokens = template_tokens(value)
        except ValueError as exc:
            raise ValueError(f"invalid branch name template: {exc}") from exc
        unknown = tokens - TEMPLATE_TOKENS
        if unknown:
            raise ValueError(
                f"unknown branch name template tokens: {', '.join(sorted(unknown))}"
            )
        if "default" not in tokens:
            raise ValueError("branch name template must contain {default}")
        return value


def parse_duration(value: str | int) -> timedelta:
    """Parse a duration such as "12h", "7d" or "2w".

    Examples:
        "0" → 0
        "5h" → 5 hours
        "7d" → 7 days
        "2w" → 14 days

    Raises:
        ConfigurationError: If the value has no recognised unit or count.
    """
    text = str(value).strip()
    if text == "0":
        return timedelta(0)
    units = {"h": timedelta(hours=1), "d": timedelta(days=1), "w": timedelta(weeks=1)}
    suffix, prefix = text[-1:], text[:-1]
    if suffix not in units or not prefix.isdigit():
        raise ConfigurationError(f"Invalid duration '{value}'. Use e.g. 12h, 7d or 2w.")
    return int(prefix) * units[suffix]


def settings_from_mapping(data: dict[str, Any]) -> Settings:
    """Build Settings from a plain mapping (e.g. a parsed TOML table).

    Run limits may be given at the top level alongside the other settings.

    Raises:
        ConfigurationError: On any invalid or unknown value.
    """
    data = dict(data)
    limits = data.pop("limits", {})
    if not isinstance(limits, Mapping):
        raise ConfigurationError(
            f"limits must be a table, not {type(limits).__name__}"
        )
    limits = dict(limits)
    for key in _LIMIT_KEYS:
        if key in data:
            limits[key] = data.pop(key)
    if "min_package_age" in limits and not isinstance(limits["min_package_age"], timedelta):
        limits["min_package_age"] = parse_duration(limits["min_package_age"])

    known = set(Settings.model_fields)
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown settings: {', '.join(sorted(unknown))}")

    try:
        return Settings(limits=RunLimits(**limits), **data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings:\n{exc}") from exc


def load_settings(path: Path) -> Settings:
    """Load and validate settings from a TOML file.

    Raises:
        ConfigurationError: If the file is missing, not valid TOML, or holds
                            invalid settings.
    """
    if not path.exists():
        raise ConfigurationError(f"Settings file {path} not found")
    try:
        doc = tomlkit.parse(path.read_text())
    except ParseError as exc:
        raise ConfigurationError(f"Cannot parse {path}: {exc}") from exc

    table = doc.get("tool", {}).get("nukeeper")
    data = table.unwrap() if table is not None else doc.unwrap()
    data.pop("tool", None)
    return settings_from_mapping(data)
