"""Shell, git and console output helpers.

Thin wrappers around subprocess for git and build tooling, plus the
terminal output helpers used by every phase of a release.
"""

from __future__ import annotations

import subprocess
import sys


def git(*args: str, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "tag", "core/v1.2.0").
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., tag lookup).

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(["git", *args], capture_output=True, text=True, check=check)
    return result.stdout.strip()


def run(*args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
    """Run an arbitrary command, capturing its output.

    Args:
        *args: Command and arguments (e.g., "uv", "build", "pkg/").
        check: If True (default), raise on non-zero exit.

    Returns:
        CompletedProcess with returncode and captured stdout/stderr.
    """
    return subprocess.run(args, capture_output=True, text=True, check=check)


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the release in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def info(msg: str) -> None:
    """Print an indented progress line."""
    print(f"  {msg}", flush=True)


def warn(msg: str) -> None:
    """Print a non-fatal warning to stderr."""
    print(f"WARNING: {msg}", file=sys.stderr, flush=True)

