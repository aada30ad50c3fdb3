"""Release planning: resolved bumps → concrete, leveled release plan."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .errors import VersionConflictError
from .graph import DependencyGraph
from .models import (
    BumpLevel,
    ChangeRecord,
    PackageNode,
    ReleasePlan,
    ReleasePlanEntry,
    ResolvedBump,
)
from .versions import bump_version, is_newer


def check_overrides(
    resolved: Mapping[str, ResolvedBump], overrides: Mapping[str, BumpLevel]
) -> None:
    """Ensure a manual resolution agrees with the automatic one.

    Raises:
        VersionConflictError: If any override names a different bump level,
            or a package the automatic pass does not release.
    """
    conflicts: list[str] = []
    names: list[str] = []
    for name, level in sorted(overrides.items()):
        automatic = resolved.get(name)
        if automatic is None:
            conflicts.append(f"{name}: manual {level.value}, automatic none")
            names.append(name)
        elif automatic.bump is not level:
            conflicts.append(
                f"{name}: manual {level.value}, automatic {automatic.bump.value}"
            )
            names.append(name)
    if conflicts:
        raise VersionConflictError(
            "Manual and automatic bumps disagree:\n"
            + "\n".join(f"  - {c}" for c in conflicts),
            packages=names,
        )


def changelog_text(
    bump: ResolvedBump,
    summaries: Mapping[str, str],
    versions: Mapping[str, str],
) -> str:
    """Render changelog text for one package.

    Summaries appear in change-record creation order; propagated bumps add
    a line naming the dependency versions that triggered them.
    """
    lines = [f"- {summaries.get(change_id, change_id)}" for change_id in bump.changes]
    if bump.propagated_from:
        deps = ", ".join(f"{dep}@{versions[dep]}" for dep in sorted(bump.propagated_from))
        lines.append(f"- Updated dependencies: {deps}")
    return "\n".join(lines)


def plan(
    resolved: Mapping[str, ResolvedBump],
    graph: DependencyGraph,
    packages: Mapping[str, PackageNode],
    changes: Sequence[ChangeRecord] = (),
    overrides: Mapping[str, BumpLevel] | None = None,
) -> ReleasePlan:
    """Turn resolved bumps into a release plan.

    Args:
        resolved: Winning bump per released package.
        graph: Workspace dependency graph.
        packages: Workspace packages by name.
        changes: Change records, in creation order, for changelog text.
        overrides: Manual bump levels that must match the automatic pass.

    Returns:
        ReleasePlan with entries sorted by (level, package).

    Raises:
        VersionConflictError: If a bump names a package missing from the
            workspace, or overrides disagree with the resolution.
    """
    unknown = sorted(name for name in resolved if name not in packages)
    if unknown:
        raise VersionConflictError(
            f"Change records name packages not in the workspace: {', '.join(unknown)}",
            packages=unknown,
        )
    if overrides:
        check_overrides(resolved, overrides)

    # Change-record creation order
    position = {change.id: index for index, change in enumerate(changes)}
    summaries = {change.id: change.summary.strip() for change in changes}

    to_versions = {
        name: bump_version(packages[name].version, bump.bump)
        for name, bump in resolved.items()
    }
    levels = graph.levels(resolved)
    level_of = {name: index for index, level in enumerate(levels) for name in level}

    entries: list[ReleasePlanEntry] = []
    for name, bump in resolved.items():
        node = packages[name]
        to_version = to_versions[name]
        if not is_newer(to_version, node.version):
            raise VersionConflictError(
                f"{name}: {to_version} does not follow {node.version}", packages=[name]
            )
        ordered = bump.model_copy(
            update={"changes": sorted(bump.changes, key=lambda c: position.get(c, 0))}
        )
        entries.append(
            ReleasePlanEntry(
                package=name,
                path=node.path,
                from_version=node.version,
                to_version=to_version,
                bump=bump.bump,
                changelog=changelog_text(ordered, summaries, to_versions),
                level=level_of[name],
                changes=ordered.changes,
                dependencies=sorted(graph.dependencies(name) & set(resolved)),
            )
        )

    entries.sort(key=lambda e: (e.level, e.package))
    return ReleasePlan(entries=entries)
