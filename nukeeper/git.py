"""Git driver that shells out to the git command line."""

from __future__ import annotations

import subprocess
from pathlib import Path

from .shell import git


class GitCmdDriver:
    """Run git operations in one working folder.

    Authentication is left to git itself (credential helpers, or
    `gh auth setup-git` for GitHub).
    """

    def __init__(self, folder: Path) -> None:
        self.folder = folder

    def _git(self, *args: str, check: bool = True) -> str:
        return git(*args, cwd=self.folder, check=check)

    def clone(self, uri: str, branch: str | None = None) -> None:
        print(f"  Git clone {uri}, branch {branch or 'default'}, to {self.folder}")
        args = ["clone"]
        if branch:
            args += ["-b", branch]
        # Clone into the working folder itself
        self._git(*args, uri, ".")

    def add_remote(self, name: str, uri: str) -> None:
        self._git("remote", "add", name, uri)
        # Branches pushed to this remote by earlier runs must be visible
        self._git("fetch", name)

    def checkout(self, branch: str) -> None:
        self._git("checkout", branch)

    def checkout_new_branch(self, branch: str) -> bool:
        """Create branch from HEAD. Returns False if it exists locally or on a remote."""
        if self._find_ref(branch) is not None:
            return False
        try:
            self._git("checkout", "-b", branch)
        except subprocess.CalledProcessError:
            return False
        return True

    def checkout_remote_to_local(self, branch: str) -> None:
        ref = self._find_ref(branch)
        if ref is None or ref.startswith("refs/heads/"):
            self._git("checkout", branch)
            return
        self._git("checkout", "-b", branch, ref.removeprefix("refs/remotes/"))

    def commit(self, message: str) -> None:
        print(f"  Git commit with message '{message.splitlines()[0]}'")
        # Stage new files as well as modified ones
        self._git("add", "-A")
        self._git("commit", "-m", message)

    def push(self, remote: str, branch: str) -> None:
        print(f"  Git push to {remote}/{branch}")
        self._git("push", remote, branch)

    def current_head(self) -> str:
        head = self._git("symbolic-ref", "-q", "--short", "HEAD", check=False)
        return head or self._git("rev-parse", "HEAD")

    def new_commit_messages(self, base: str, head: str) -> list[str]:
        """Full messages of commits reachable from head but not from base.

        Returns an empty list when head does not exist yet.
        """
        ref = self._find_ref(head)
        if ref is None:
            return []
        log = self._git(
            "log", "--format=%B%x00", "--right-only", "--no-decorate", f"{base}...{ref}"
        )
        return [m.strip() for m in log.split("\0") if m.strip()]

    def _find_ref(self, branch: str) -> str | None:
        """Find branch locally, else on any remote. None if it exists nowhere."""
        local = f"refs/heads/{branch}"
        if self._git("rev-parse", "--verify", "--quiet", local, check=False):
            return local
        remote = self._git(
            "for-each-ref", "--format=%(refname)", f"refs/remotes/*/{branch}", check=False
        )
        return remote.splitlines()[0] if remote else None
