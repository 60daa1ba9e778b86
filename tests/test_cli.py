"""Tests for nukeeper.cli."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner

from nukeeper.cli import cli, load_updater_factory
from nukeeper.errors import FleetUpdateError
from nukeeper.git import GitCmdDriver
from nukeeper.github import GitHubPlatform, GitHubRepositoryDiscovery
from nukeeper.repository import RepositoryUpdater


class TestLoadUpdaterFactory:
    def test_imports_attribute(self) -> None:
        assert load_updater_factory("nukeeper.repository:RepositoryUpdater") is RepositoryUpdater

    @pytest.mark.parametrize(
        "path",
        ["nukeeper.repository", "no_such_module_here:factory", "nukeeper.repository:missing"],
    )
    def test_bad_import_path(self, path: str) -> None:
        with pytest.raises(click.ClickException):
            load_updater_factory(path)


class TestRun:
    @patch("nukeeper.cli.load_updater_factory")
    @patch("nukeeper.cli.FleetOrchestrator")
    def test_builds_fleet_from_config(
        self, mock_fleet: MagicMock, mock_load: MagicMock, settings_file: Path
    ) -> None:
        mock_fleet.return_value.run.return_value = 2

        result = CliRunner().invoke(
            cli,
            ["run", "--config", str(settings_file), "--repo", "org/repo", "--updater", "x:y"],
        )

        assert result.exit_code == 0, result.output
        assert "2 repositories updated" in result.output
        mock_load.assert_called_once_with("x:y")

        platform, discovery, updater, git_factory, settings = mock_fleet.call_args.args
        assert isinstance(platform, GitHubPlatform)
        assert platform.labels == {"dependencies", "nukeeper"}
        assert isinstance(discovery, GitHubRepositoryDiscovery)
        assert discovery.repositories == ["org/repo"]
        assert git_factory is GitCmdDriver
        assert settings.limits.max_package_updates == 5
        mock_load.return_value.assert_called_once_with(platform, settings)
        assert updater is mock_load.return_value.return_value

    def test_requires_org_or_repo(self, settings_file: Path) -> None:
        result = CliRunner().invoke(
            cli, ["run", "--config", str(settings_file), "--updater", "x:y"]
        )

        assert result.exit_code != 0
        assert "--org or at least one --repo" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        config = tmp_path / "nukeeper.toml"
        config.write_text('fork_mode = "sometimes"\n')

        result = CliRunner().invoke(
            cli, ["run", "--config", str(config), "--org", "org", "--updater", "x:y"]
        )

        assert result.exit_code != 0
        assert "Invalid settings" in result.output

    @patch("nukeeper.cli.load_updater_factory")
    @patch("nukeeper.cli.FleetOrchestrator")
    def test_fleet_failure_exits_nonzero(
        self, mock_fleet: MagicMock, mock_load: MagicMock, settings_file: Path
    ) -> None:
        mock_fleet.return_value.run.side_effect = FleetUpdateError(
            [("org/repo", RuntimeError("boom"))], 0
        )

        result = CliRunner().invoke(
            cli, ["run", "--config", str(settings_file), "--org", "org", "--updater", "x:y"]
        )

        assert result.exit_code == 1
        assert "1 repositories failed to update: org/repo" in result.output
