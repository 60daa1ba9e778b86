"""Push target resolution.

Decides whether update branches for a repository are pushed to the
repository itself or to a fork owned by the acting user, creating the fork
when the mode allows it.
"""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from .interfaces import CollaborationPlatform
from .models import ForkMode, ForkTarget, Repository


def normalise_clone_url(url: str) -> str:
    """Normalise a clone URL for comparison.

    Drops a trailing "/" and ".git" and lower-cases scheme and host.

    Examples:
        "https://GitHub.com/org/repo.git" → "https://github.com/org/repo"
        "https://github.com/org/repo/" → "https://github.com/org/repo"
    """
    value = url.strip()
    if value.lower().endswith(".git"):
        value = value[:-4]
    value = value.rstrip("/")
    parts = urlsplit(value)
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, parts.fragment)
    )


def repository_to_target(repo: Repository) -> ForkTarget:
    return ForkTarget(uri=repo.clone_url, owner=repo.owner, name=repo.name)


class ForkFinder:
    """Resolve the push target for a repository under a fork mode.

    Example:
        finder = ForkFinder(platform, ForkMode.PREFER_FORK)
        push = finder.find_push_fork("octocat", origin)
        if push is None:
            ...  # nothing we can push to
    """

    def __init__(self, platform: CollaborationPlatform, fork_mode: ForkMode) -> None:
        self.platform = platform
        self.fork_mode = fork_mode

    def find_push_fork(self, user_name: str, origin: ForkTarget) -> ForkTarget | None:
        """Return where to push branches for origin, or None if nowhere is suitable."""
        print(f"  Finding push target for {origin}, fork mode {self.fork_mode.value}")
        if self.fork_mode is ForkMode.PREFER_FORK:
            return self._user_fork_or_origin(user_name, origin)
        if self.fork_mode is ForkMode.PREFER_SINGLE_REPOSITORY:
            return self._origin_or_user_fork(user_name, origin)
        return self._origin_only(origin)

    def _user_fork_or_origin(self, user_name: str, origin: ForkTarget) -> ForkTarget | None:
        existing = self.platform.get_user_repository(user_name, origin.name)
        if existing is not None:
            fork = self._usable_fork(user_name, existing, origin)
            if fork is not None:
                return fork
            # The user has a repo of that name but it can't be used, so no
            # fork can be created either. Origin is the last option.
            return self._origin_only(origin)

        # as a fallback, we want to pull and push from the same origin repo.
        if self._is_pushable(origin):
            print(f"  No fork for user {user_name}. Using upstream {origin} at {origin.uri}")
            return origin

        return self._make_fork(origin)

    def _origin_or_user_fork(self, user_name: str, origin: ForkTarget) -> ForkTarget | None:
        if self._is_pushable(origin):
            print(f"  Using upstream {origin} as push target")
            return origin

        existing = self.platform.get_user_repository(user_name, origin.name)
        if existing is not None:
            return self._usable_fork(user_name, existing, origin)
        return self._make_fork(origin)

    def _origin_only(self, origin: ForkTarget) -> ForkTarget | None:
        if self._is_pushable(origin):
            print(f"  Using upstream {origin} as push target")
            return origin
        return None

    def _is_pushable(self, target: ForkTarget) -> bool:
        repo = self.platform.get_user_repository(target.owner, target.name)
        return repo is not None and repo.can_push

    def _usable_fork(
        self, user_name: str, repo: Repository, origin: ForkTarget
    ) -> ForkTarget | None:
        matching = is_fork_of(repo, origin.uri)
        if matching and repo.can_push:
            print(f"  Using fork {repo.owner}/{repo.name} at {repo.clone_url}")
            return repository_to_target(repo)
        print(
            f"  User '{user_name}' fork of '{origin.name}' exists but is unsuitable. "
            f"Matching: {matching}. Pushable: {repo.can_push}"
        )
        return None

    def _make_fork(self, origin: ForkTarget) -> ForkTarget | None:
        fork = self.platform.make_user_fork(origin.owner, origin.name)
        if fork is None:
            return None
        print(f"  Created fork {fork.owner}/{fork.name}")
        return repository_to_target(fork)


def is_fork_of(repo: Repository, origin_url: str) -> bool:
    """True if repo is a fork whose parent has the same clone URL as origin_url."""
    if not repo.fork or not repo.parent_clone_url or not origin_url:
        return False
    return normalise_clone_url(repo.parent_clone_url) == normalise_clone_url(origin_url)
