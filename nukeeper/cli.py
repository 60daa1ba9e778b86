"""CLI entry point for nukeeper."""

from __future__ import annotations

import importlib
from collections.abc import Callable
from pathlib import Path

import click

from nukeeper.config import Settings, load_settings
from nukeeper.errors import ConfigurationError, FleetUpdateError
from nukeeper.fleet import FleetOrchestrator
from nukeeper.git import GitCmdDriver
from nukeeper.github import GitHubPlatform, GitHubRepositoryDiscovery
from nukeeper.repository import RepositoryUpdater

UpdaterFactory = Callable[[GitHubPlatform, Settings], RepositoryUpdater]


def load_updater_factory(path: str) -> UpdaterFactory:
    """Import a "package.module:attribute" updater factory."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise click.ClickException(f"Updater must look like 'module:factory', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.ClickException(f"Cannot import {module_name}: {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise click.ClickException(f"{module_name} has no attribute {attr}") from exc


@click.group()
@click.version_option()
def cli() -> None:
    """Open package update pull requests across a fleet of repositories."""


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default="pyproject.toml",
    show_default=True,
    help="TOML file holding a [tool.nukeeper] table.",
)
@click.option("--org", help="Update every repository of this organisation.")
@click.option(
    "--repo",
    "repos",
    multiple=True,
    help="Update this owner/name repository. May be repeated.",
)
@click.option(
    "--updater",
    required=True,
    help="module:factory returning a RepositoryUpdater for (platform, settings).",
)
def run(config_path: Path, org: str | None, repos: tuple[str, ...], updater: str) -> None:
    """Update every selected repository on GitHub."""
    if not org and not repos:
        raise click.ClickException("Give --org or at least one --repo.")

    try:
        settings = load_settings(config_path)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    factory = load_updater_factory(updater)
    platform = GitHubPlatform(labels=settings.labels)
    discovery = GitHubRepositoryDiscovery(organisation=org, repositories=repos)
    fleet = FleetOrchestrator(platform, discovery, factory(platform, settings), GitCmdDriver, settings)

    try:
        changed = fleet.run()
    except FleetUpdateError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"✓ {changed} repositories updated")
