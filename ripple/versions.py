"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0").
"""

from __future__ import annotations

import semver

from .models import BumpLevel


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3" → "1.2.3"

    Only the first 3 components are used (major.minor.patch).
    Prerelease/build metadata is not supported.
    """
    parts = version_str.split(".")
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts[:3]))


def bump_version(version_str: str, level: BumpLevel) -> str:
    """Apply a bump level to a version and return the new version string.

    Examples:
        bump_version("1.2.3", BumpLevel.PATCH) → "1.2.4"
        bump_version("1.2.3", BumpLevel.MINOR) → "1.3.0"
        bump_version("1.2.3", BumpLevel.MAJOR) → "2.0.0"
    """
    version = parse_version(version_str)
    if level is BumpLevel.MAJOR:
        return str(version.bump_major())
    if level is BumpLevel.MINOR:
        return str(version.bump_minor())
    return str(version.bump_patch())


def is_newer(candidate: str, current: str) -> bool:
    """Return True if candidate sorts strictly after current."""
    return parse_version(candidate) > parse_version(current)
