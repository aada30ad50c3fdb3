"""Release pipeline: changes → resolve → plan → apply → publish → archive.

This module wires the core engine to its collaborators:
1. Discover workspace packages and pending change records
2. Resolve bumps and build the release plan (no side effects yet)
3. Persist the plan as a checkpoint
4. Apply the plan: rewrite versions, pin internal deps, prepend changelogs,
   then mark the checkpoint applied (publish re-applies it otherwise)
5. Publish level by level, tagging each published package
6. Archive change records once every entry is published or abandoned
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from .changelog import prepend_section
from .changes import ChangeStore
from .checkpoint import JsonCheckpointStore
from .clients import GitTagClient, PublishClient, TagClient, UvPublishClient
from .config import ReleaseConfig, load_config
from .deps import rewrite_pyproject
from .errors import CheckpointError, RetryableError, TagError
from .executor import Executor, abandon
from .graph import DependencyGraph
from .models import BumpLevel, PackageNode, ReleasePlan, ReleaseReport
from .planner import plan as build_plan
from .resolver import resolve
from .shell import git, info, step, warn
from .workspace import discover_packages


@dataclass
class Workspace:
    """Everything a release command needs about the current workspace."""

    root: Path
    config: ReleaseConfig
    packages: dict[str, PackageNode]
    graph: DependencyGraph
    changes: ChangeStore
    checkpoint: JsonCheckpointStore


def open_workspace(root: Path | None = None) -> Workspace:
    """Load configuration, packages, and stores for a workspace root.

    Raises:
        WorkspaceError: On missing or invalid configuration.
        CycleError: If the dependency graph has a cycle.
    """
    root = root or Path.cwd()
    config = load_config(root)
    nodes = discover_packages(root, config.ignored_packages)
    graph = DependencyGraph.build(nodes)
    return Workspace(
        root=root,
        config=config,
        packages={node.name: node for node in nodes},
        graph=graph,
        changes=ChangeStore(root / config.changes_dir),
        checkpoint=JsonCheckpointStore(root / config.checkpoint_file),
    )


def compute_plan(
    ws: Workspace, overrides: Mapping[str, BumpLevel] | None = None
) -> ReleasePlan:
    """Resolve pending changes into a release plan without side effects."""
    step("Resolving version bumps")
    records = ws.changes.list()
    info(f"{len(records)} pending change records")
    resolved = resolve(records, ws.graph, ws.config.propagation_bump_level)
    manual = {**ws.config.overrides, **(overrides or {})}
    return build_plan(resolved, ws.graph, ws.packages, records, manual)


def print_plan(plan: ReleasePlan) -> None:
    """Print the plan grouped by level."""
    if not plan.entries:
        info("Nothing to release")
        return
    for index, level in enumerate(plan.levels()):
        info(f"level {index}:")
        for entry in level:
            info(
                f"  {entry.package}: {entry.from_version} → {entry.to_version}"
                f" ({entry.bump.value})"
            )


def apply_plan(ws: Workspace, plan: ReleasePlan) -> list[Path]:
    """Write new versions, internal dep pins, and changelog sections.

    Returns:
        Paths of every file modified.
    """
    step("Applying versions and changelogs")
    versions = {name: node.version for name, node in ws.packages.items()}
    versions.update({entry.package: entry.to_version for entry in plan.entries})

    touched: list[Path] = []
    for entry in plan.entries:
        node = ws.packages[entry.package]
        pkg_dir = ws.root / entry.path
        internal_dep_versions = {dep: versions[dep] for dep in node.deps}
        rewrite_pyproject(pkg_dir / "pyproject.toml", entry.to_version, internal_dep_versions)
        prepend_section(pkg_dir / "CHANGELOG.md", entry)
        touched.extend([pkg_dir / "pyproject.toml", pkg_dir / "CHANGELOG.md"])
        info(f"{entry.package}: {entry.from_version} → {entry.to_version}")
    return touched


def commit_release(ws: Workspace, plan: ReleasePlan, files: Iterable[Path]) -> None:
    """Commit the version and changelog edits."""
    for path in files:
        git("add", str(path.relative_to(ws.root)))
    summary = "\n".join(
        f"  {e.package}: {e.from_version} → {e.to_version}" for e in plan.entries
    )
    git("commit", "-m", "chore: release packages", "-m", summary)
    info("Committed")


def version(ws: Workspace, overrides: Mapping[str, BumpLevel] | None = None) -> ReleasePlan:
    """Plan the release, apply it to the workspace, and checkpoint it.

    Raises:
        CheckpointError: If a release is already in progress.
    """
    if ws.checkpoint.exists():
        raise CheckpointError(
            f"A release is already in progress ({ws.checkpoint.path.name}); "
            "run 'ripple publish' to resume it"
        )
    release_plan = compute_plan(ws, overrides)
    print_plan(release_plan)
    if not release_plan.entries:
        return release_plan

    # Checkpoint first so an interrupted apply can never bump twice
    ws.checkpoint.save_plan(release_plan)
    _apply_and_commit(ws, release_plan)
    return release_plan


def _apply_and_commit(ws: Workspace, plan: ReleasePlan) -> None:
    files = apply_plan(ws, plan)
    if ws.config.commit:
        commit_release(ws, plan, files)
    ws.checkpoint.mark_applied()


def make_tagger(ws: Workspace) -> GitTagClient:
    return GitTagClient(
        ws.config.tag_format, push=ws.config.push_tags, remote=ws.config.tag_remote
    )


def make_executor(
    ws: Workspace,
    plan: ReleasePlan,
    publisher: PublishClient | None = None,
    tagger: TagClient | None = None,
) -> Executor:
    publisher = publisher or UvPublishClient(
        ws.root,
        {entry.package: entry.path for entry in plan.entries},
        index=ws.config.publish_index,
        check_url=ws.config.check_url,
    )
    tagger = tagger or make_tagger(ws)
    return Executor(publisher, tagger, ws.checkpoint, ws.config)


def archive_changes(ws: Workspace, plan: ReleasePlan) -> None:
    for change_id in plan.change_ids():
        ws.changes.archive(change_id)
        info(f"archived {change_id}")


def publish(
    ws: Workspace,
    publisher: PublishClient | None = None,
    tagger: TagClient | None = None,
) -> ReleaseReport:
    """Execute (or resume) the checkpointed release plan.

    Raises:
        CheckpointError: If there is no plan to publish.
    """
    release_plan = ws.checkpoint.load_plan()
    if release_plan is None:
        raise CheckpointError("No release plan to publish; run 'ripple version' first")

    if not ws.checkpoint.is_applied():
        # An earlier run stopped part way through writing the new versions
        step("Re-applying release plan")
        _apply_and_commit(ws, release_plan)

    report = make_executor(ws, release_plan, publisher, tagger).execute(release_plan)
    if not ws.checkpoint.exists():
        step("Archiving change records")
        archive_changes(ws, release_plan)
    return report


def release(
    ws: Workspace,
    overrides: Mapping[str, BumpLevel] | None = None,
    publisher: PublishClient | None = None,
    tagger: TagClient | None = None,
) -> ReleaseReport:
    """Version and publish in one go, resuming an interrupted release."""
    if ws.checkpoint.exists():
        step("Resuming release from checkpoint")
    elif not version(ws, overrides).entries:
        return ReleaseReport()
    return publish(ws, publisher, tagger)


def tag_packages(ws: Workspace, tagger: TagClient | None = None) -> dict[str, str]:
    """Tag every non-ignored workspace package at its current version.

    Tags that already exist are left alone, so this can be re-run to
    recover tags a release reported as not created.

    Returns:
        Map of package name → error for the tags that could not be created.
    """
    tagger = tagger or make_tagger(ws)
    failures: dict[str, str] = {}
    step("Creating tags")
    for name, node in sorted(ws.packages.items()):
        if node.ignored:
            continue
        try:
            tagger.create_tag(name, node.version)
        except (TagError, RetryableError) as exc:
            warn(f"{name} {node.version}: tag not created: {exc}")
            failures[name] = str(exc)
        else:
            info(f"{name} {node.version}: tagged")
    return failures


def abandon_packages(ws: Workspace, names: Iterable[str] | None = None) -> list[str]:
    """Abandon failed packages; archive changes if that ends the release."""
    release_plan = ws.checkpoint.load_plan()
    abandoned = abandon(ws.checkpoint, names)
    if release_plan is not None and not ws.checkpoint.exists():
        archive_changes(ws, release_plan)
    return abandoned


def print_report(report: ReleaseReport) -> None:
    step("Release report")
    for name in report.already_published:
        info(f"{name}: already published")
    for name in report.published:
        info(f"{name}: published")
    for name in report.abandoned:
        info(f"{name}: abandoned")
    for name, reason in report.failed.items():
        info(f"{name}: FAILED ({reason})")
    for name in report.skipped:
        info(f"{name}: skipped (dependency failed)")
    for name in report.undispatched:
        info(f"{name}: not started")
    for warning in report.warnings:
        info(f"warning: {warning}")
