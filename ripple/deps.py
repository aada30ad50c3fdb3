"""Version and pin rewriting for released members.

When a member is released, its pyproject.toml gets the new version and every
requirement on another member is pinned to that member's post-release version.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, cast

from packaging.requirements import Requirement
from packaging.utils import canonicalize_name

from .toml import load_pyproject, save_pyproject


def dep_canonical_name(dep_str: str) -> str:
    """Workspace name a requirement refers to.

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def pin_dep(dep_str: str, version: str) -> str:
    """Replace a requirement's specifier with ``==version``.

    Extras (sorted) and the environment marker are kept.

    Examples:
        pin_dep("core>=1.0", "1.3.0") → "core==1.3.0"
        pin_dep("core[cli]; python_version>'3.9'", "2.0.0")
            → "core[cli]==2.0.0; python_version > \"3.9\""
    """
    req = Requirement(dep_str)
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}=={version}{marker}"


def rewrite_pyproject(
    pyproject_path: Path,
    new_version: str,
    internal_dep_versions: dict[str, str],
) -> None:
    """Write a member's release version and pin its workspace requirements.

    Pins apply to runtime requirements, extras, and dependency groups; the
    rewrite is idempotent, so a resumed release can apply it again.

    Args:
        pyproject_path: The member's pyproject.toml.
        new_version: Version the member is released at.
        internal_dep_versions: Member name → version to pin requirements on it to.
    """
    doc = load_pyproject(pyproject_path)
    project = cast(dict[str, Any], doc["project"])
    project["version"] = new_version

    if internal_dep_versions:
        deps = project.get("dependencies")
        if isinstance(deps, list):
            _pin_dep_list(deps, internal_dep_versions)

        opt_deps = project.get("optional-dependencies")
        if isinstance(opt_deps, dict):
            for group in opt_deps.values():
                if isinstance(group, list):
                    _pin_dep_list(group, internal_dep_versions)

        dep_groups = doc.get("dependency-groups")
        if isinstance(dep_groups, dict):
            for group in dep_groups.values():
                if isinstance(group, list):
                    _pin_dep_list(group, internal_dep_versions)

    save_pyproject(pyproject_path, doc)


def _pin_dep_list(deps: list, versions: dict[str, str]) -> None:
    for i, dep_str in enumerate(deps):
        if not isinstance(dep_str, str):
            continue
        name = dep_canonical_name(str(dep_str))
        if name in versions:
            deps[i] = pin_dep(str(dep_str), versions[name])
