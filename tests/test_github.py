"""Tests for nukeeper.github."""

from __future__ import annotations

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest
from builders import make_origin

from nukeeper.github import GitHubPlatform, GitHubRepositoryDiscovery, to_repository
from nukeeper.models import PullRequestRequest

REPO_JSON = {
    "owner": {"login": "bot"},
    "name": "repo",
    "clone_url": "https://github.com/bot/repo.git",
    "default_branch": "main",
    "fork": True,
    "parent": {"clone_url": "https://github.com/org/repo.git"},
    "permissions": {"push": True},
}


class TestGitHubPlatform:
    @patch("nukeeper.github.gh")
    def test_current_user(self, mock_gh: MagicMock) -> None:
        mock_gh.return_value = json.dumps({"login": "bot", "name": "Bot", "email": None})

        user = GitHubPlatform().get_current_user()

        assert user.login == "bot"
        mock_gh.assert_called_once_with("api", "user")

    @patch("nukeeper.github.gh")
    def test_user_repository(self, mock_gh: MagicMock) -> None:
        mock_gh.return_value = json.dumps(REPO_JSON)

        repo = GitHubPlatform().get_user_repository("bot", "repo")

        assert repo.fork
        assert repo.can_push
        assert repo.parent_clone_url == "https://github.com/org/repo.git"

    @patch("nukeeper.github.gh")
    def test_user_repository_not_found(self, mock_gh: MagicMock) -> None:
        mock_gh.side_effect = subprocess.CalledProcessError(
            1, ["gh"], stderr="gh: Not Found (HTTP 404)"
        )

        assert GitHubPlatform().get_user_repository("bot", "repo") is None

    @patch("nukeeper.github.gh")
    def test_other_api_errors_propagate(self, mock_gh: MagicMock) -> None:
        mock_gh.side_effect = subprocess.CalledProcessError(
            1, ["gh"], stderr="gh: Server Error (HTTP 500)"
        )

        with pytest.raises(subprocess.CalledProcessError):
            GitHubPlatform().get_user_repository("bot", "repo")

    @patch("nukeeper.github.gh")
    def test_make_user_fork(self, mock_gh: MagicMock) -> None:
        mock_gh.return_value = json.dumps(REPO_JSON)

        fork = GitHubPlatform().make_user_fork("org", "repo")

        assert fork.owner == "bot"
        mock_gh.assert_called_once_with("api", "repos/org/repo/forks", "--method", "POST")

    @patch("nukeeper.github.gh")
    def test_pull_request_exists_qualifies_head(self, mock_gh: MagicMock) -> None:
        mock_gh.return_value = "[]"

        assert not GitHubPlatform().pull_request_exists(make_origin(), "feature", "main")
        mock_gh.assert_called_once_with(
            "api", "repos/org/repo/pulls?state=open&head=org%3Afeature&base=main"
        )

    @patch("nukeeper.github.gh")
    def test_pull_request_exists_from_fork(self, mock_gh: MagicMock) -> None:
        mock_gh.return_value = json.dumps([{"number": 7}])

        assert GitHubPlatform().pull_request_exists(make_origin(), "bot:feature", "main")
        assert "head=bot%3Afeature" in mock_gh.call_args.args[1]

    @patch("nukeeper.github.gh")
    def test_open_pull_request(self, mock_gh: MagicMock) -> None:
        mock_gh.side_effect = [json.dumps({"number": 7}), "[]", ""]
        request = PullRequestRequest(
            head="feature", base="main", title="Update Foo", body="Details", set_auto_merge=True
        )

        GitHubPlatform().open_pull_request(make_origin(), request, ["nukeeper", "deps"])

        create, labels, merge = mock_gh.call_args_list
        assert create.args[:4] == ("api", "repos/org/repo/pulls", "--method", "POST")
        assert "title=Update Foo" in create.args
        assert labels.args == (
            "api",
            "repos/org/repo/issues/7/labels",
            "--method",
            "POST",
            "-f",
            "labels[]=nukeeper",
            "-f",
            "labels[]=deps",
        )
        assert merge.args == (
            "pr", "merge", "7", "--auto", "--merge", "--repo", "org/repo", "--delete-branch"
        )

    @patch("nukeeper.github.gh")
    def test_open_pull_request_without_extras(self, mock_gh: MagicMock) -> None:
        mock_gh.return_value = json.dumps({"number": 7})
        request = PullRequestRequest(head="feature", base="main", title="Update Foo")

        GitHubPlatform().open_pull_request(make_origin(), request, [])

        assert mock_gh.call_count == 1

    @patch("nukeeper.github.gh")
    def test_count_open_pull_requests_only_counts_own(self, mock_gh: MagicMock) -> None:
        pulls = [
            {"number": 1, "user": {"login": "bot"}, "labels": []},
            {"number": 2, "user": {"login": "alice"}, "labels": [{"name": "nukeeper"}]},
            {"number": 3, "user": {"login": "alice"}, "labels": [{"name": "bug"}]},
        ]

        def respond(*args: str) -> str:
            if args == ("api", "user"):
                return json.dumps({"login": "bot"})
            return "\n".join(json.dumps(pull) for pull in pulls)

        mock_gh.side_effect = respond
        platform = GitHubPlatform(labels=["nukeeper"])

        assert platform.count_open_pull_requests(make_origin()) == 2
        assert platform.count_open_pull_requests(make_origin()) == 2
        assert mock_gh.call_args.args[:2] == ("api", "--paginate")
        assert [c.args for c in mock_gh.call_args_list].count(("api", "user")) == 1


class TestGitHubRepositoryDiscovery:
    @patch("nukeeper.github.gh")
    def test_organisation_skips_archived(self, mock_gh: MagicMock) -> None:
        live = dict(REPO_JSON, owner={"login": "org"}, name="live")
        archived = dict(REPO_JSON, owner={"login": "org"}, name="old", archived=True)
        mock_gh.return_value = f"{json.dumps(live)}\n{json.dumps(archived)}"

        found = GitHubRepositoryDiscovery("org").get_repositories()

        assert [str(r) for r in found] == ["org/live"]
        assert found[0].default_branch == "main"

    @patch("nukeeper.github.gh")
    def test_explicit_repositories(self, mock_gh: MagicMock) -> None:
        mock_gh.return_value = json.dumps(dict(REPO_JSON, owner={"login": "org"}))

        found = GitHubRepositoryDiscovery(repositories=["org/repo"]).get_repositories()

        assert [str(r) for r in found] == ["org/repo"]
        mock_gh.assert_called_once_with("api", "repos/org/repo")

    def test_needs_a_source(self) -> None:
        with pytest.raises(ValueError):
            GitHubRepositoryDiscovery()


def test_to_repository_without_permissions() -> None:
    data = {k: v for k, v in REPO_JSON.items() if k not in ("permissions", "parent")}

    repo = to_repository(data)

    assert not repo.can_push
    assert repo.parent_clone_url is None
