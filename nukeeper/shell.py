"""Shell, git and gh utilities.

Provides simple wrappers around subprocess calls for running git and the
GitHub CLI, plus the console output helpers used by the orchestrators.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path


def git(*args: str, cwd: Path | None = None, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        cwd: Working directory for the command. Defaults to the current
             directory.
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., branch lookup).

    Returns:
        Stdout from the git command with trailing whitespace removed.
    """
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=check
    )
    return result.stdout.rstrip()


def gh(*args: str, check: bool = True) -> str:
    """Run a GitHub CLI command and return stdout.

    Same contract as git(): stdout is captured and returned, and a non-zero
    exit raises CalledProcessError (with stderr attached) when check is True.
    """
    result = subprocess.run(["gh", *args], capture_output=True, text=True, check=check)
    return result.stdout.strip()


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate repositories and major phases in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def error(msg: str) -> None:
    """Print an error message to stderr without stopping the run."""
    print(f"ERROR: {msg}", file=sys.stderr)
