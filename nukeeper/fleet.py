"""Fleet run: update every discovered repository, one at a time.

A failure in one repository never stops the run. Errors are collected and
raised together as a FleetUpdateError once every repository has had its
turn, so one broken repository cannot hide the state of the others.
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from .config import Settings
from .errors import FleetUpdateError, NoPushableForkError
from .forks import ForkFinder
from .interfaces import CollaborationPlatform, GitDriver, RepositoryDiscovery
from .models import ForkTarget, RepositoryJob, RepositorySettings, User
from .repository import RepositoryUpdater
from .selection import include_exclude
from .shell import error, step

PUSH_REMOTE = "nukeeper_push"


@contextmanager
def working_folder(parent: Path | None = None) -> Iterator[Path]:
    """Create a temporary folder for one repository and remove it afterwards."""
    if parent is not None:
        parent.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix="nukeeper-", dir=parent))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class FleetOrchestrator:
    """Update repositories until done or the repositories-changed cap is hit.

    Args:
        platform: Collaboration platform the repositories live on.
        discovery: Lists the repositories to consider.
        updater: Runs the update cycle for one repository.
        git_factory: Makes a git driver for a working folder.
        settings: Run settings.

    Attributes:
        repositories_changed: Repositories with at least one update committed
                              so far. Still readable after run() raises.
        errors: (repository name, exception) for every failed repository.
    """

    def __init__(
        self,
        platform: CollaborationPlatform,
        discovery: RepositoryDiscovery,
        updater: RepositoryUpdater,
        git_factory: Callable[[Path], GitDriver],
        settings: Settings,
    ) -> None:
        self.platform = platform
        self.discovery = discovery
        self.updater = updater
        self.git_factory = git_factory
        self.settings = settings
        self.fork_finder = ForkFinder(platform, settings.fork_mode)
        self.repositories_changed = 0
        self.errors: list[tuple[str, Exception]] = []

    def run(self) -> int:
        """Update the fleet.

        Returns:
            Number of repositories changed.

        Raises:
            FleetUpdateError: After the loop, if any repository failed.
        """
        step(f"{_now()}: Started")
        self.repositories_changed = 0
        self.errors = []
        limit = self.settings.limits.max_repositories_changed

        user = self.platform.get_current_user()
        print(f"  Acting as {user.login}")
        repositories = self._discover()

        for repo in repositories:
            if self.repositories_changed >= limit:
                print(f"  Reached max of {limit} repositories changed")
                break
            try:
                if self.update_repository(repo, user) > 0:
                    self.repositories_changed += 1
            except Exception as exc:
                error(f"Failed on repository {repo}: {exc}")
                self.errors.append((str(repo), exc))

        print(f"\n  {self.repositories_changed} repositories were updated")
        step(f"{_now()}: Done")

        if self.errors:
            raise FleetUpdateError(list(self.errors), self.repositories_changed)
        return self.repositories_changed

    def _discover(self) -> list[RepositorySettings]:
        found = self.discovery.get_repositories()
        include, exclude = self.settings.include_repos, self.settings.exclude_repos
        kept = [r for r in found if include_exclude(r.name, include, exclude)]
        print(f"  Discovered {len(found)} repositories, {len(kept)} after filtering")
        return kept

    def update_repository(self, repo: RepositorySettings, user: User) -> int:
        """Resolve the push target, clone, and run the update cycle for one repository.

        Returns:
            Number of update sets committed.

        Raises:
            NoPushableForkError: If there is nowhere to push branches to.
        """
        step(f"Repository {repo}")
        pull = ForkTarget(uri=repo.clone_url, owner=repo.owner, name=repo.name)
        push = self.fork_finder.find_push_fork(user.login, pull)
        if push is None:
            raise NoPushableForkError(str(repo), self.settings.fork_mode.value)

        with working_folder(self.settings.work_dir) as folder:
            git = self.git_factory(folder)
            git.clone(pull.uri, repo.default_branch)
            remote = "origin"
            if push != pull:
                git.add_remote(PUSH_REMOTE, push.uri)
                remote = PUSH_REMOTE
            default_branch = repo.default_branch or git.current_head()

            job = RepositoryJob(
                pull=pull, push=push, default_branch=default_branch, remote=remote
            )
            return self.updater.run(git, job, folder)
