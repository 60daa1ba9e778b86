"""GitHub collaboration platform and repository discovery via the gh CLI.

All calls go through `gh api`, so authentication is whatever `gh auth login`
set up.
"""

from __future__ import annotations

import json
import subprocess
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

from .models import ForkTarget, PullRequestRequest, Repository, RepositorySettings, User
from .shell import gh


def api(
    path: str,
    *,
    method: str = "GET",
    fields: dict[str, Any] | None = None,
) -> Any:
    """Call the GitHub REST API and return the decoded JSON response.

    List values in fields are sent as JSON arrays (key[]=value).
    """
    args = ["api", path]
    if method != "GET":
        args += ["--method", method]
    for key, value in (fields or {}).items():
        if isinstance(value, (list, tuple)):
            for item in value:
                args += ["-f", f"{key}[]={item}"]
        elif isinstance(value, bool):
            args += ["-F", f"{key}={str(value).lower()}"]
        else:
            args += ["-f", f"{key}={value}"]
    output = gh(*args)
    return json.loads(output) if output else None


def api_paginated(path: str) -> list[Any]:
    """Fetch every page of a list endpoint, one item per output line."""
    output = gh("api", "--paginate", path, "--jq", ".[]")
    return [json.loads(line) for line in output.splitlines() if line.strip()]


def _not_found(exc: subprocess.CalledProcessError) -> bool:
    return "404" in (exc.stderr or "") or "Not Found" in (exc.stderr or "")


def to_repository(data: dict[str, Any]) -> Repository:
    parent = data.get("parent") or {}
    return Repository(
        owner=data["owner"]["login"],
        name=data["name"],
        clone_url=data["clone_url"],
        fork=data.get("fork", False),
        parent_clone_url=parent.get("clone_url"),
        can_push=(data.get("permissions") or {}).get("push", False),
    )


class GitHubPlatform:
    """Pull requests, forks and user lookups on GitHub.

    Open pull requests count against the run limit only when the acting user
    opened them or they carry one of the given labels.
    """

    def __init__(self, labels: Sequence[str] = ("nukeeper",)) -> None:
        self.labels = set(labels)
        self._login: str | None = None

    def get_current_user(self) -> User:
        data = api("user")
        return User(login=data["login"], name=data.get("name"), email=data.get("email"))

    def get_user_repository(self, owner: str, name: str) -> Repository | None:
        try:
            data = api(f"repos/{owner}/{name}")
        except subprocess.CalledProcessError as exc:
            if _not_found(exc):
                print(f"  Repository {owner}/{name} not found")
                return None
            raise
        return to_repository(data)

    def make_user_fork(self, owner: str, name: str) -> Repository | None:
        data = api(f"repos/{owner}/{name}/forks", method="POST")
        return to_repository(data)

    def pull_request_exists(self, target: ForkTarget, head: str, base: str) -> bool:
        # GitHub only matches head when it is qualified with its owner
        qualified = head if ":" in head else f"{target.owner}:{head}"
        pulls = api(
            f"repos/{target.owner}/{target.name}/pulls"
            f"?state=open&head={quote(qualified)}&base={quote(base)}"
        )
        return bool(pulls)

    def open_pull_request(
        self, target: ForkTarget, request: PullRequestRequest, labels: Sequence[str]
    ) -> None:
        repo = f"{target.owner}/{target.name}"
        pull = api(
            f"repos/{repo}/pulls",
            method="POST",
            fields={
                "title": request.title,
                "head": request.head,
                "base": request.base,
                "body": request.body,
            },
        )
        number = pull["number"]
        if labels:
            api(
                f"repos/{repo}/issues/{number}/labels",
                method="POST",
                fields={"labels": list(labels)},
            )
        if request.set_auto_merge:
            args = ["pr", "merge", str(number), "--auto", "--merge", "--repo", repo]
            if request.delete_branch_after_merge:
                args.append("--delete-branch")
            gh(*args)

    def count_open_pull_requests(self, target: ForkTarget) -> int:
        if self._login is None:
            self._login = self.get_current_user().login
        pulls = api_paginated(f"repos/{target.owner}/{target.name}/pulls?state=open&per_page=100")
        return sum(1 for pull in pulls if self._ours(pull))

    def _ours(self, pull: dict[str, Any]) -> bool:
        if (pull.get("user") or {}).get("login") == self._login:
            return True
        return any(label.get("name") in self.labels for label in pull.get("labels") or [])


class GitHubRepositoryDiscovery:
    """List the repositories a run covers.

    Either every repository of an organisation (archived ones skipped), or an
    explicit list of "owner/name" repositories.
    """

    def __init__(self, organisation: str | None = None, repositories: Sequence[str] = ()) -> None:
        if not organisation and not repositories:
            raise ValueError("Either an organisation or a list of repositories is required")
        self.organisation = organisation
        self.repositories = list(repositories)

    def get_repositories(self) -> list[RepositorySettings]:
        if self.repositories:
            return [self._single(full_name) for full_name in self.repositories]

        found = api_paginated(f"orgs/{self.organisation}/repos?per_page=100")
        return [_to_settings(data) for data in found if not data.get("archived", False)]

    def _single(self, full_name: str) -> RepositorySettings:
        owner, _, name = full_name.partition("/")
        return _to_settings(api(f"repos/{owner}/{name}"))


def _to_settings(data: dict[str, Any]) -> RepositorySettings:
    return RepositorySettings(
        owner=data["owner"]["login"],
        name=data["name"],
        clone_url=data["clone_url"],
        default_branch=data.get("default_branch"),
    )
