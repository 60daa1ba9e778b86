"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from builders import FakeGit, FakePlatform, FakeWorder, make_origin, make_repository

from nukeeper.models import ForkTarget, RepositoryJob


@pytest.fixture
def origin() -> ForkTarget:
    return make_origin()


@pytest.fixture
def platform() -> FakePlatform:
    """Platform where the acting user can push to org/repo."""
    return FakePlatform(repositories=[make_repository()])


@pytest.fixture
def git_driver() -> FakeGit:
    return FakeGit()


@pytest.fixture
def worder() -> FakeWorder:
    return FakeWorder()


@pytest.fixture
def job(origin: ForkTarget) -> RepositoryJob:
    return RepositoryJob(pull=origin, push=origin, default_branch="main")


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """Create a pyproject.toml with a [tool.nukeeper] table."""
    content = """\
[project]
name = "fleet-config"
version = "1.0.0"

[tool.nukeeper]
max_package_updates = 5
min_package_age = "3d"
fork_mode = "prefer_single_repository"
consolidate = true
branch_name_template = "deps/{date}/{default}"
exclude = "^internal\\\\."
labels = ["dependencies", "nukeeper"]
"""
    path = tmp_path / "pyproject.toml"
    path.write_text(content)
    return path
