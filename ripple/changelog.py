"""CHANGELOG.md maintenance."""

from __future__ import annotations

from pathlib import Path

from .models import ReleasePlanEntry

HEADER = "# Changelog\n"


def render_section(entry: ReleasePlanEntry) -> str:
    """Render the changelog section for one release."""
    body = entry.changelog.strip() or "- No recorded changes"
    return f"## {entry.to_version}\n\n{body}\n"


def prepend_section(path: Path, entry: ReleasePlanEntry) -> None:
    """Insert a release section at the top of a changelog file.

    Creates the file with a "# Changelog" header if it does not exist.
    A section for the same version is never written twice.
    """
    section = render_section(entry)
    existing = path.read_text() if path.exists() else HEADER
    if f"## {entry.to_version}\n" in existing:
        return

    if existing.startswith(HEADER):
        rest = existing[len(HEADER) :].lstrip("\n")
        content = f"{HEADER}\n{section}" + (f"\n{rest}" if rest else "")
    else:
        content = f"{HEADER}\n{section}\n{existing}"
    path.write_text(content)
