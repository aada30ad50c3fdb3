"""Version resolution: change records + graph → winning bump per package.

Resolution runs in two phases. Direct bumps take the most severe level
among the change records naming a package. Propagation then walks the
graph level by level, giving every unbumped dependent of a bumped package
the configured propagation level, until no package gains a new bump.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .graph import DependencyGraph
from .models import BumpLevel, ChangeRecord, ResolvedBump, max_level
from .shell import warn

Resolution = Mapping[str, ResolvedBump]


def direct_bumps(
    changes: Sequence[ChangeRecord], graph: DependencyGraph
) -> dict[str, ResolvedBump]:
    """Compute the winning bump for each package named by a change record.

    Bumps on ignored packages are dropped with a warning. Names unknown to
    the workspace are kept so the planner can reject them.
    """
    resolved: dict[str, ResolvedBump] = {}
    for change in changes:
        for name in sorted(change.packages):
            if graph.is_ignored(name):
                warn(f"Change '{change.id}' targets ignored package {name}; dropped")
                continue
            current = resolved.get(name)
            if current is None:
                resolved[name] = ResolvedBump(
                    package=name, bump=change.bump, changes=[change.id]
                )
            else:
                resolved[name] = current.model_copy(
                    update={
                        "bump": max_level(current.bump, change.bump),
                        "changes": [*current.changes, change.id],
                    }
                )
    return resolved


def propagate_level(
    level: set[str],
    resolved: Resolution,
    graph: DependencyGraph,
    propagation: BumpLevel,
) -> dict[str, ResolvedBump]:
    """Resolve one topological level given everything resolved so far.

    Pure: returns the updated bumps for packages in this level without
    touching the input mapping. A package gets a bump when any of its
    dependencies is bumped; an existing bump keeps its level unless the
    propagation level is more severe.
    """
    updates: dict[str, ResolvedBump] = {}
    for name in level:
        triggers = {dep for dep in graph.dependencies(name) if dep in resolved}
        if not triggers:
            continue
        current = resolved.get(name)
        if current is None:
            updates[name] = ResolvedBump(
                package=name, bump=propagation, propagated_from=triggers
            )
        elif not triggers <= current.propagated_from:
            updates[name] = current.model_copy(
                update={
                    "bump": max_level(current.bump, propagation),
                    "propagated_from": current.propagated_from | triggers,
                }
            )
    return updates


def resolve(
    changes: Sequence[ChangeRecord],
    graph: DependencyGraph,
    propagation: BumpLevel = BumpLevel.PATCH,
) -> dict[str, ResolvedBump]:
    """Compute the winning bump for every package that changes this cycle.

    Args:
        changes: Pending change records, in creation order.
        graph: Workspace dependency graph (already checked for cycles).
        propagation: Bump given to dependents of a bumped package.

    Returns:
        Map of package name → ResolvedBump. Packages absent from the map
        are not released.
    """
    resolved: dict[str, ResolvedBump] = direct_bumps(changes, graph)
    levels = graph.levels()

    # Bounded: each pass either adds a bump or a trigger, or stops.
    for _ in range(len(graph) + 1):
        before = {name: bump.model_dump() for name, bump in resolved.items()}
        for level in levels:
            resolved = {**resolved, **propagate_level(level, resolved, graph, propagation)}
        if before == {name: bump.model_dump() for name, bump in resolved.items()}:
            break

    return resolved
