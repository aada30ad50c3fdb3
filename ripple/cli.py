"""CLI entry point for ripple."""

from __future__ import annotations

import functools
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from . import pipeline
from .config import load_config
from .errors import ReleaseError
from .models import BumpLevel, ReleaseReport

F = TypeVar("F", bound=Callable[..., Any])

BUMP_CHOICE = click.Choice([level.value for level in BumpLevel])

CHANGES_README = """\
# Change records

Each file in this directory describes one pending change:

    ---
    packages = ["my-package"]
    bump = "minor"
    ---
    What changed, in a sentence or two.

Create one with `ripple new`. Released records move to `archive/`.
"""


def _release_errors(func: F) -> F:
    """Turn ripple errors into clean CLI failures."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ReleaseError as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper  # type: ignore[return-value]


def _parse_overrides(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, BumpLevel]:
    overrides: dict[str, BumpLevel] = {}
    for value in values:
        name, sep, level = value.partition("=")
        if not sep or level not in BUMP_CHOICE.choices:
            raise click.BadParameter(f"expected NAME=patch|minor|major, got {value!r}")
        overrides[name.strip()] = BumpLevel(level)
    return overrides


bump_option = click.option(
    "--bump",
    "overrides",
    multiple=True,
    metavar="NAME=LEVEL",
    callback=_parse_overrides,
    help="Expected bump for a package; fails if resolution disagrees.",
)


def _finish(report: ReleaseReport) -> None:
    pipeline.print_report(report)
    if not report.ok:
        raise SystemExit(1)


@click.group()
@click.version_option(package_name="ripple")
def cli() -> None:
    """Coordinated semantic-version releases for uv workspaces."""


@cli.command()
@_release_errors
def init() -> None:
    """Create the change records directory."""
    root = Path.cwd()
    if not (root / "pyproject.toml").exists():
        raise click.ClickException("No pyproject.toml found in current directory.")

    config = load_config(root)
    changes_dir = root / config.changes_dir
    changes_dir.mkdir(parents=True, exist_ok=True)
    readme = changes_dir / "README.md"
    if not readme.exists():
        readme.write_text(CHANGES_README)
    click.echo(f"✓ Change records go in {changes_dir.relative_to(root)}/")


@cli.command()
@click.option(
    "-p", "--package", "packages", multiple=True, required=True, help="Affected package (repeatable)."
)
@click.option("-b", "--bump", type=BUMP_CHOICE, default="patch", show_default=True)
@click.option("-m", "--message", required=True, help="Summary for the changelog.")
@_release_errors
def new(packages: tuple[str, ...], bump: str, message: str) -> None:
    """Record a new change."""
    ws = pipeline.open_workspace()
    unknown = sorted(set(packages) - set(ws.packages))
    if unknown:
        raise click.ClickException(f"Unknown packages: {', '.join(unknown)}")
    record = ws.changes.create(packages, BumpLevel(bump), message)
    click.echo(f"✓ Wrote {ws.changes.directory.name}/{record.id}.md")


@cli.command()
@bump_option
@_release_errors
def status(overrides: dict[str, BumpLevel]) -> None:
    """Show the release plan without changing anything."""
    ws = pipeline.open_workspace()
    pipeline.print_plan(pipeline.compute_plan(ws, overrides))


@cli.command()
@bump_option
@_release_errors
def version(overrides: dict[str, BumpLevel]) -> None:
    """Apply pending changes: bump versions and write changelogs."""
    ws = pipeline.open_workspace()
    pipeline.version(ws, overrides)


@cli.command()
@_release_errors
def publish() -> None:
    """Publish the planned release, resuming from the checkpoint."""
    ws = pipeline.open_workspace()
    _finish(pipeline.publish(ws))


@cli.command()
@bump_option
@_release_errors
def release(overrides: dict[str, BumpLevel]) -> None:
    """Version and publish in one step."""
    ws = pipeline.open_workspace()
    _finish(pipeline.release(ws, overrides))


@cli.command()
@_release_errors
def tag() -> None:
    """Create git tags for current versions."""
    ws = pipeline.open_workspace()
    if pipeline.tag_packages(ws):
        raise SystemExit(1)


@cli.command()
@click.argument("packages", nargs=-1)
@_release_errors
def abandon(packages: tuple[str, ...]) -> None:
    """Stop retrying failed packages (all failed ones if none given)."""
    ws = pipeline.open_workspace()
    names = pipeline.abandon_packages(ws, packages or None)
    for name in names:
        click.echo(f"  abandoned {name}")
