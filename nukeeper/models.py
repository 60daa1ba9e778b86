"""Data models for nukeeper.

These Pydantic models represent the core data structures that flow through
the update engine: package references found in a repository, registry
candidates, the update sets built from them, and the push targets and jobs
used by the orchestrators.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from enum import Enum

from packaging.utils import canonicalize_name
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import UpdateSetError


def canonical_id(package_id: str) -> str:
    """Normalise a package id for comparison.

    Ids are compared case-insensitively with runs of "-", "_" and "."
    treated as equal, per PEP 503.

    Examples:
        "Newtonsoft.Json" → "newtonsoft-json"
        "My_Package" → "my-package"
    """
    return canonicalize_name(package_id)


class VersionChange(str, Enum):
    """Magnitude of a version change, also used as the allowed-change ceiling."""

    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return _CHANGE_RANKS[self]


_CHANGE_RANKS = {
    VersionChange.NONE: 0,
    VersionChange.PATCH: 1,
    VersionChange.MINOR: 2,
    VersionChange.MAJOR: 3,
}


class UsePrerelease(str, Enum):
    """When prerelease candidates may be considered."""

    ALWAYS = "always"
    NEVER = "never"
    FROM_PRERELEASE = "from_prerelease"


class ManifestKind(str, Enum):
    """How a package reference is recorded in a repository.

    Only plain references can be updated without a package restore first.
    """

    REFERENCE = "reference"
    LOCKED = "locked"
    CENTRAL = "central"
    DOWNLOAD = "download"
    LEGACY = "legacy"


class ForkMode(str, Enum):
    """Policy for choosing where update branches are pushed."""

    PREFER_FORK = "prefer_fork"
    PREFER_SINGLE_REPOSITORY = "prefer_single_repository"
    SINGLE_REPOSITORY_ONLY = "single_repository_only"


class PackageReference(BaseModel):
    """A dependency of one project on a package at a version.

    Attributes:
        package_id: Package identifier as written in the manifest.
        version: Version string in use.
        path: Path of the manifest file, relative to the repository root.
        kind: How the reference is recorded.
    """

    model_config = ConfigDict(frozen=True)

    package_id: str
    version: str
    path: str
    kind: ManifestKind = ManifestKind.REFERENCE

    @property
    def requires_restore(self) -> bool:
        return self.kind is not ManifestKind.REFERENCE


class PackageVersion(BaseModel):
    """One version of a package as reported by a registry.

    Attributes:
        package_id: Package identifier.
        version: Version string.
        published: When the version was published, if known.
        source: Registry the version came from, passed on to apply commands.
        dependencies: Ids of the packages this version depends on.
    """

    model_config = ConfigDict(frozen=True)

    package_id: str
    version: str
    published: datetime | None = None
    source: str | None = None
    dependencies: tuple[str, ...] = ()

    def __str__(self) -> str:
        when = self.published.isoformat() if self.published else "no published date"
        return f"{self.package_id} {self.version} ({when})"


class CandidateSet(BaseModel):
    """The best available upgrade per change tier for one package.

    Tiers above the allowed change are always None.
    """

    model_config = ConfigDict(frozen=True)

    package_id: str
    allowed_change: VersionChange
    current_versions: tuple[str, ...] = ()
    major: PackageVersion | None = None
    minor: PackageVersion | None = None
    patch: PackageVersion | None = None

    @model_validator(mode="after")
    def _tiers_match_package(self) -> CandidateSet:
        expected = canonical_id(self.package_id)
        for tier in (self.major, self.minor, self.patch):
            if tier is not None and canonical_id(tier.package_id) != expected:
                raise UpdateSetError(
                    f"Candidate {tier.package_id} does not belong to {self.package_id}"
                )
        return self

    def selected(self) -> PackageVersion | None:
        """Return the highest tier available within the allowed change."""
        tiers = {
            VersionChange.MAJOR: self.major,
            VersionChange.MINOR: self.minor,
            VersionChange.PATCH: self.patch,
        }
        for change in (VersionChange.MAJOR, VersionChange.MINOR, VersionChange.PATCH):
            if change.rank <= self.allowed_change.rank and tiers[change] is not None:
                return tiers[change]
        return None


class UpdateSet(BaseModel):
    """One package, the version chosen for it, and every reference it replaces."""

    model_config = ConfigDict(frozen=True)

    candidates: CandidateSet
    references: tuple[PackageReference, ...]

    @field_validator("references")
    @classmethod
    def _references_not_empty(
        cls, value: tuple[PackageReference, ...]
    ) -> tuple[PackageReference, ...]:
        if not value:
            raise UpdateSetError("An update set needs at least one package reference")
        return value

    @model_validator(mode="after")
    def _consistent(self) -> UpdateSet:
        selected = self.candidates.selected()
        if selected is None:
            raise UpdateSetError(f"No version selected for {self.candidates.package_id}")
        expected = canonical_id(selected.package_id)
        for ref in self.references:
            if canonical_id(ref.package_id) != expected:
                raise UpdateSetError(
                    f"Reference to {ref.package_id} in {ref.path} does not match "
                    f"update for {selected.package_id}"
                )
        return self

    @property
    def selected(self) -> PackageVersion:
        selected = self.candidates.selected()
        if selected is None:
            raise UpdateSetError(f"No version selected for {self.candidates.package_id}")
        return selected

    @property
    def package_id(self) -> str:
        return self.selected.package_id

    @property
    def selected_version(self) -> str:
        return self.selected.version

    @property
    def allowed_change(self) -> VersionChange:
        return self.candidates.allowed_change

    def count_current_versions(self) -> int:
        return len({ref.version for ref in self.references})


# One branch and one pull request worth of updates.
Batch = list[UpdateSet]


class ForkTarget(BaseModel):
    """A repository that branches are pulled from or pushed to."""

    model_config = ConfigDict(frozen=True)

    uri: str
    owner: str = Field(min_length=1)
    name: str = Field(min_length=1)

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


class RepositoryJob(BaseModel):
    """Where one repository is pulled from and pushed to during a run."""

    model_config = ConfigDict(frozen=True)

    pull: ForkTarget
    push: ForkTarget
    default_branch: str
    remote: str = "origin"

    @property
    def is_fork(self) -> bool:
        return self.push != self.pull


class RunLimits(BaseModel):
    """Operator-supplied caps for a run.

    Attributes:
        max_package_updates: Update sets applied per repository.
        max_open_pull_requests: Open pull requests allowed per repository,
                                counting ones opened by earlier runs.
        max_repositories_changed: Repositories changed per fleet run.
        min_package_age: Releases younger than this are not applied.
        include: Only package ids matching this pattern are considered.
        exclude: Package ids matching this pattern are skipped.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_package_updates: int = Field(default=3, ge=0)
    max_open_pull_requests: int = Field(default=1000, ge=0)
    max_repositories_changed: int = Field(default=10, ge=0)
    min_package_age: timedelta = timedelta(days=7)
    include: re.Pattern[str] | None = None
    exclude: re.Pattern[str] | None = None

    @field_validator("min_package_age")
    @classmethod
    def _age_not_negative(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("min_package_age must not be negative")
        return value


class User(BaseModel):
    """The account the run acts as."""

    login: str
    name: str | None = None
    email: str | None = None


class Repository(BaseModel):
    """A repository as seen by the collaboration platform."""

    owner: str
    name: str
    clone_url: str
    fork: bool = False
    parent_clone_url: str | None = None
    can_push: bool = False


class RepositorySettings(BaseModel):
    """A repository found by discovery, before its push target is known."""

    owner: str
    name: str
    clone_url: str
    default_branch: str | None = None

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


class PullRequestRequest(BaseModel):
    """Everything needed to open one pull request."""

    head: str
    base: str
    title: str
    body: str = ""
    delete_branch_after_merge: bool = True
    set_auto_merge: bool = False
