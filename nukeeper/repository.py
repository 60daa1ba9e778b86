"""Per-repository update cycle: find → sort → select → restore → batches.

For each batch of selected updates the cycle is:
1. Drop updates already committed on the batch's branch by an earlier run
2. Create the branch (or check out the one pushed by an earlier run)
3. Apply the updates to every affected manifest
4. Commit them
5. Push the branch to the push target
6. Open a pull request unless one is already open

Branch names depend only on batch content, so running twice with the same
updates produces no duplicate commits and no duplicate pull requests.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from pathlib import Path

from .batches import consolidate
from .branches import make_branch_name
from .config import Settings
from .errors import NuKeeperError
from .finder import filter_references, find_update_sets
from .interfaces import (
    ApplyCommand,
    CollaborationPlatform,
    CommitWorder,
    GitDriver,
    ManifestReader,
    PackageRegistry,
    RestoreCommand,
)
from .models import Batch, ManifestKind, PullRequestRequest, RepositoryJob, UpdateSet
from .selection import select_updates
from .shell import step
from .sort import sort_update_sets

_WHITESPACE = re.compile(r"\s+")


def _compact(message: str) -> str:
    # commit messages are compared without whitespace, git reflows it
    return _WHITESPACE.sub("", message)


def filter_existing_commits(
    git: GitDriver,
    worder: CommitWorder,
    updates: Sequence[UpdateSet],
    base: str,
    head: str,
) -> list[UpdateSet]:
    """Drop the updates that already have a commit on head that is not on base.

    An update is already committed when its commit message, ignoring
    whitespace, appears in the message of one of those commits.
    """
    existing = [_compact(m) for m in git.new_commit_messages(base, head)]
    if not existing:
        return list(updates)

    remaining = []
    for update in updates:
        message = worder.make_commit_message(update)
        if any(_compact(message) in commit for commit in existing):
            print(f"  Commit '{message.splitlines()[0]}' already in branch '{head}'")
        else:
            remaining.append(update)
    return remaining


def needs_restore(updates: Sequence[UpdateSet]) -> bool:
    """True if any reference in the updates must be restored before updating."""
    return any(ref.requires_restore for u in updates for ref in u.references)


class RepositoryUpdater:
    """Run the update cycle for one checked-out repository.

    Args:
        platform: Collaboration platform used for pull requests.
        reader: Finds package references in the working copy.
        registry: Source of candidate versions.
        apply_commands: One apply command per manifest kind in use.
        worder: Writes commit messages and pull request text.
        settings: Run settings.
        restore: Restore command for kinds that need one, if any.
    """

    def __init__(
        self,
        platform: CollaborationPlatform,
        reader: ManifestReader,
        registry: PackageRegistry,
        apply_commands: Mapping[ManifestKind, ApplyCommand],
        worder: CommitWorder,
        settings: Settings,
        restore: RestoreCommand | None = None,
    ) -> None:
        self.platform = platform
        self.reader = reader
        self.registry = registry
        self.apply_commands = apply_commands
        self.worder = worder
        self.settings = settings
        self.restore = restore

    def run(self, git: GitDriver, job: RepositoryJob, folder: Path) -> int:
        """Update one repository.

        Returns:
            Number of update sets committed in this run.
        """
        limits = self.settings.limits

        step(f"Finding updates in {job.pull}")
        references = filter_references(self.reader.read(folder), limits.include, limits.exclude)
        print(f"  Found {len(references)} package references")
        candidates = find_update_sets(
            references,
            self.registry,
            self.settings.allowed_change,
            self.settings.use_prerelease,
        )
        if not candidates:
            print("  No updates found")
            return 0

        targets = select_updates(sort_update_sets(candidates), limits)
        if not targets:
            print("  No updates can be applied")
            return 0

        if needs_restore(targets):
            if self.restore is None:
                raise NuKeeperError(
                    f"Updates in {job.pull} need a package restore but none is configured"
                )
            print("  Restoring packages")
            self.restore.restore(folder)

        updates_made, _ = self.make_update_pull_requests(git, job, targets)
        return updates_made

    def make_update_pull_requests(
        self, git: GitDriver, job: RepositoryJob, updates: Sequence[UpdateSet]
    ) -> tuple[int, bool]:
        """Turn the selected updates into branches and pull requests.

        Stops starting new batches once the repository has as many open
        pull requests as allowed, counting ones from earlier runs.

        Returns:
            Tuple of (update sets committed, whether the pull request cap
            was reached).
        """
        allowed = self.settings.limits.max_open_pull_requests
        open_prs = self.platform.count_open_pull_requests(job.pull)
        if open_prs >= allowed:
            print(
                f"  {open_prs} open pull requests, allowed {allowed}. "
                "Not opening any more."
            )
            return 0, True

        total = 0
        for batch in consolidate(updates, self.settings.consolidate):
            made, created = self._update_batch(git, job, batch)
            total += made
            if created:
                open_prs += 1
            if open_prs >= allowed:
                print(f"  Reached {allowed} open pull requests")
                return total, True

        return total, False

    def _update_batch(
        self, git: GitDriver, job: RepositoryJob, batch: Batch
    ) -> tuple[int, bool]:
        branch = make_branch_name(batch, self.settings.branch_name_template)
        print(f"\n  Branch '{branch}' for {len(batch)} updates")
        for update in batch:
            versions = ", ".join(sorted({r.version for r in update.references}))
            print(f"    {update.package_id} {versions} → {update.selected_version}")

        remaining = filter_existing_commits(git, self.worder, batch, job.default_branch, branch)

        if remaining:
            git.checkout(job.default_branch)
            if not git.checkout_new_branch(branch):
                git.checkout_remote_to_local(branch)

            for update in remaining:
                self._apply(update)

            git.commit("\n\n".join(self.worder.make_commit_message(u) for u in remaining))
            git.push(job.remote, branch)
        else:
            print(f"  All updates already committed to '{branch}'")

        created = self._reconcile_pull_request(job, batch, branch)
        git.checkout(job.default_branch)
        return len(remaining), created

    def _apply(self, update: UpdateSet) -> None:
        selected = update.selected
        for ref in update.references:
            command = self.apply_commands.get(ref.kind)
            if command is None:
                raise NuKeeperError(f"No update command for {ref.kind.value} references")
            print(f"    Updating {ref.path}: {ref.package_id} {ref.version} → {selected.version}")
            command.apply(ref, selected.version, selected.source)

    def _reconcile_pull_request(self, job: RepositoryJob, batch: Batch, branch: str) -> bool:
        head = f"{job.push.owner}:{branch}" if job.is_fork else branch
        if self.platform.pull_request_exists(job.pull, head, job.default_branch):
            print(f"  A pull request already exists for {job.default_branch} <= {head}")
            return False

        request = PullRequestRequest(
            head=head,
            base=job.default_branch,
            title=self.worder.make_pull_request_title(batch),
            body=self.worder.make_commit_details(batch),
            delete_branch_after_merge=self.settings.delete_branch_after_merge,
            set_auto_merge=self.settings.set_auto_merge,
        )
        self.platform.open_pull_request(job.pull, request, list(self.settings.labels))
        print(f"  Opened pull request {job.default_branch} <= {head}")
        return True
