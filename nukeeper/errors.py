"""Exception types raised by nukeeper."""

from __future__ import annotations


class NuKeeperError(Exception):
    """Base exception for nukeeper errors."""


class ConfigurationError(NuKeeperError):
    """Raised when settings are invalid. Always raised before any repository is touched."""


class UpdateSetError(NuKeeperError, ValueError):
    """Raised when a candidate set or update set breaks its invariants."""


class NoPushableForkError(NuKeeperError):
    """Raised when no repository could be found to push update branches to."""

    def __init__(self, repository: str, fork_mode: str) -> None:
        super().__init__(f"No pushable fork found for {repository} in mode {fork_mode}")
        self.repository = repository
        self.fork_mode = fork_mode


class FleetUpdateError(NuKeeperError):
    """Raised after a fleet run in which one or more repositories failed.

    Attributes:
        errors: (repository name, exception) for every failed repository,
                in processing order.
        repositories_changed: Number of repositories that were updated
                              before and between the failures.
    """

    def __init__(
        self, errors: list[tuple[str, Exception]], repositories_changed: int
    ) -> None:
        names = ", ".join(name for name, _ in errors)
        super().__init__(
            f"{len(errors)} repositories failed to update: {names}"
        )
        self.errors = errors
        self.repositories_changed = repositories_changed

    @property
    def exceptions(self) -> list[Exception]:
        return [exc for _, exc in self.errors]
