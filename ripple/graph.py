"""Dependency graph utilities.

Packages and their internal dependency edges, with cycle detection and
topological level decomposition. An edge A → B means A depends on B, so B
must be released before A. Ignored packages stay in the graph for lookup
but take no part in edges, cycles, or levels.
"""

from __future__ import annotations

from collections.abc import Iterable

from .errors import CycleError, WorkspaceError
from .models import PackageNode


class DependencyGraph:
    """Read-only graph over the workspace packages."""

    def __init__(self, nodes: dict[str, PackageNode]) -> None:
        self._nodes = nodes
        self._deps: dict[str, set[str]] = {}
        self._dependents: dict[str, set[str]] = {name: set() for name in nodes}

        for name, node in nodes.items():
            if node.ignored:
                self._deps[name] = set()
                continue
            # Dependencies on ignored or unknown packages are already satisfied
            deps = {
                dep
                for dep in node.deps
                if dep in nodes and dep != name and not nodes[dep].ignored
            }
            self._deps[name] = deps
            for dep in deps:
                self._dependents[dep].add(name)

    @classmethod
    def build(cls, nodes: Iterable[PackageNode]) -> DependencyGraph:
        """Build a graph and verify it is acyclic.

        Raises:
            WorkspaceError: If two packages share a name.
            CycleError: If non-ignored packages depend on each other in a cycle.
        """
        by_name: dict[str, PackageNode] = {}
        for node in nodes:
            if node.name in by_name:
                raise WorkspaceError(f"Duplicate package name: {node.name}")
            by_name[node.name] = node
        graph = cls(by_name)
        graph.check_cycles()
        return graph

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __getitem__(self, name: str) -> PackageNode:
        return self._nodes[name]

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> dict[str, PackageNode]:
        return dict(self._nodes)

    def is_ignored(self, name: str) -> bool:
        return name in self._nodes and self._nodes[name].ignored

    def active(self) -> set[str]:
        """Names of every non-ignored package."""
        return {name for name, node in self._nodes.items() if not node.ignored}

    def dependencies(self, name: str) -> set[str]:
        """Direct internal dependencies of a package."""
        return set(self._deps.get(name, ()))

    def dependents(self, name: str) -> set[str]:
        """Packages that directly depend on the given package."""
        return set(self._dependents.get(name, ()))

    def check_cycles(self) -> None:
        """Raise CycleError if the non-ignored packages contain a cycle."""
        self.levels(self.active())

    def levels(self, subset: Iterable[str] | None = None) -> list[set[str]]:
        """Group packages into topological levels.

        Uses Kahn's algorithm restricted to edges between packages in the
        subset: level i holds the packages whose dependencies inside the
        subset all lie in levels < i. A dependency outside the subset is
        treated as already satisfied.

        Args:
            subset: Package names to level. Defaults to all non-ignored
                    packages. Unknown and ignored names are dropped.

        Returns:
            Levels in ascending order. Order within a level is undefined.

        Raises:
            CycleError: If the subset contains a dependency cycle.
        """
        names = self.active() if subset is None else set(subset) & self.active()

        # Count dependencies inside the subset for each package
        in_degree = {name: len(self._deps[name] & names) for name in names}

        current = {name for name, degree in in_degree.items() if degree == 0}
        result: list[set[str]] = []
        placed = 0
        while current:
            result.append(current)
            placed += len(current)
            following: set[str] = set()
            for name in current:
                for dependent in self._dependents[name] & names:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        following.add(dependent)
            current = following

        # If we didn't place every package, the rest sit on a cycle
        if placed != len(names):
            remaining = names - set().union(*result) if result else names
            raise CycleError(remaining)

        return result

    def order(self, subset: Iterable[str] | None = None) -> list[str]:
        """Flatten levels into a release order, alphabetical within a level."""
        return [name for level in self.levels(subset) for name in sorted(level)]
