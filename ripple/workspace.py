"""Workspace discovery for uv workspaces."""

from __future__ import annotations

import glob
from collections.abc import Iterable
from pathlib import Path

from .deps import dep_canonical_name
from .models import PackageNode
from .shell import info, step
from .toml import (
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_workspace_member_globs,
    load_pyproject,
)


def discover_packages(root: Path, ignored: Iterable[str] = ()) -> list[PackageNode]:
    """Scan the workspace and discover all packages.

    Reads [tool.uv.workspace].members from root pyproject.toml to find
    package directories, then extracts name, version, and internal deps
    from each package's pyproject.toml.

    Args:
        root: Workspace root directory.
        ignored: Package names to mark as ignored.

    Returns:
        PackageNode per workspace member, in directory order.

    Raises:
        WorkspaceError: If no workspace members are configured.
    """
    step("Discovering workspace packages")

    root_doc = load_pyproject(root / "pyproject.toml")
    member_globs = get_workspace_member_globs(root_doc)
    ignored_names = {dep_canonical_name(name) for name in ignored}

    # Expand globs to find all package directories
    member_dirs: list[Path] = []
    for pattern in member_globs:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match)
            if (p / "pyproject.toml").exists() and p not in member_dirs:
                member_dirs.append(p)

    # First pass: collect names so internal deps can be recognised
    docs = {d: load_pyproject(d / "pyproject.toml") for d in member_dirs}
    names = {d: get_project_name(doc, d.name) for d, doc in docs.items()}
    workspace_names = set(names.values())

    # Second pass: keep only internal deps, ignore external packages
    packages: list[PackageNode] = []
    for d, doc in docs.items():
        deps: list[str] = []
        for dep_str in get_all_dependency_strings(doc):
            dep_name = dep_canonical_name(dep_str)
            if dep_name in workspace_names and dep_name not in deps:
                deps.append(dep_name)
        packages.append(
            PackageNode(
                name=names[d],
                version=get_project_version(doc),
                path=d.relative_to(root).as_posix(),
                deps=tuple(deps),
                ignored=names[d] in ignored_names,
            )
        )

    for node in packages:
        deps_text = f" → [{', '.join(node.deps)}]" if node.deps else ""
        flag = " (ignored)" if node.ignored else ""
        info(f"{node.name} {node.version} ({node.path}){deps_text}{flag}")

    return packages
