"""Contracts for the collaborators the update engine drives.

Manifest parsing, registry lookups, restore and apply commands, and commit
message wording live outside this package. The git driver and the GitHub
platform have implementations in nukeeper.git and nukeeper.github.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from .models import (
    ForkTarget,
    PackageReference,
    PackageVersion,
    PullRequestRequest,
    Repository,
    RepositorySettings,
    UpdateSet,
    User,
)


class ManifestReader(Protocol):
    def read(self, folder: Path) -> list[PackageReference]:
        """Return every package reference under folder, skipping malformed entries."""
        ...


class PackageRegistry(Protocol):
    def lookup(self, package_id: str, include_prerelease: bool) -> list[PackageVersion]:
        """Return the versions of a package available for update."""
        ...


class ApplyCommand(Protocol):
    def apply(self, reference: PackageReference, new_version: str, source: str | None) -> None:
        """Rewrite one reference to new_version in the working copy."""
        ...


class RestoreCommand(Protocol):
    def restore(self, folder: Path) -> None:
        """Restore packages so that non-plain references can be updated."""
        ...


class CommitWorder(Protocol):
    def make_commit_message(self, update: UpdateSet) -> str: ...

    def make_pull_request_title(self, updates: Sequence[UpdateSet]) -> str: ...

    def make_commit_details(self, updates: Sequence[UpdateSet]) -> str: ...


class GitDriver(Protocol):
    def clone(self, uri: str, branch: str | None = None) -> None: ...

    def add_remote(self, name: str, uri: str) -> None: ...

    def checkout(self, branch: str) -> None: ...

    def checkout_new_branch(self, branch: str) -> bool:
        """Create and check out a branch from HEAD. False if the name is taken."""
        ...

    def checkout_remote_to_local(self, branch: str) -> None: ...

    def commit(self, message: str) -> None: ...

    def push(self, remote: str, branch: str) -> None: ...

    def current_head(self) -> str: ...

    def new_commit_messages(self, base: str, head: str) -> list[str]:
        """Full messages of the commits on head that are not on base."""
        ...


class CollaborationPlatform(Protocol):
    def get_current_user(self) -> User: ...

    def get_user_repository(self, owner: str, name: str) -> Repository | None: ...

    def make_user_fork(self, owner: str, name: str) -> Repository | None:
        """Fork owner/name for the acting user. None if the platform cannot fork."""
        ...

    def pull_request_exists(self, target: ForkTarget, head: str, base: str) -> bool: ...

    def open_pull_request(
        self, target: ForkTarget, request: PullRequestRequest, labels: Sequence[str]
    ) -> None: ...

    def count_open_pull_requests(self, target: ForkTarget) -> int: ...


class RepositoryDiscovery(Protocol):
    def get_repositories(self) -> list[RepositorySettings]: ...
