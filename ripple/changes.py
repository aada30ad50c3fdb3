"""File-based change records.

Each pending change is a Markdown file in the changes directory with a
TOML front-matter block followed by the summary text:

    ---
    packages = ["core", "utils"]
    bump = "minor"
    created = 2026-10-19T12:00:00Z
    ---
    Add streaming support to the core client.

The file stem is the record id. Released records are moved into the
``archive/`` subdirectory.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

import tomlkit
from packaging.utils import canonicalize_name
from pydantic import ValidationError as PydanticValidationError
from tomlkit.exceptions import TOMLKitError

from .errors import ValidationError
from .models import BumpLevel, ChangeRecord
from .shell import warn

FENCE = "---"
ARCHIVE_DIR = "archive"


def parse_change(record_id: str, text: str) -> ChangeRecord:
    """Parse the contents of a change record file.

    Raises:
        ValidationError: If the front matter is missing or invalid.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != FENCE:
        raise ValidationError(record_id, "missing front matter")
    try:
        end = next(i for i in range(1, len(lines)) if lines[i].strip() == FENCE)
    except StopIteration:
        raise ValidationError(record_id, "unterminated front matter") from None

    try:
        meta = tomlkit.parse("\n".join(lines[1:end])).unwrap()
    except TOMLKitError as exc:
        raise ValidationError(record_id, f"bad front matter: {exc}") from exc

    packages = meta.get("packages")
    if isinstance(packages, str):
        packages = [packages]
    if not isinstance(packages, list) or not all(isinstance(p, str) for p in packages):
        raise ValidationError(record_id, "'packages' must be a list of names")

    try:
        return ChangeRecord(
            id=record_id,
            packages=frozenset(canonicalize_name(p) for p in packages),
            bump=meta.get("bump"),
            summary="\n".join(lines[end + 1 :]).strip(),
            created=meta.get("created"),
        )
    except PydanticValidationError as exc:
        raise ValidationError(record_id, str(exc)) from exc


def render_change(record: ChangeRecord) -> str:
    """Render a change record in its on-disk format."""
    meta = tomlkit.document()
    meta["packages"] = sorted(record.packages)
    meta["bump"] = record.bump.value
    if record.created is not None:
        meta["created"] = record.created
    return f"{FENCE}\n{tomlkit.dumps(meta)}{FENCE}\n{record.summary.strip()}\n"


def _slug(text: str, words: int = 4) -> str:
    tokens = re.findall(r"[a-z0-9]+", text.lower())[:words]
    return "-".join(tokens) or "change"


class ChangeStore:
    """Pending change records stored as files in one directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _path(self, record_id: str) -> Path:
        return self.directory / f"{record_id}.md"

    def list(self) -> list[ChangeRecord]:
        """Return valid records in creation order.

        Invalid records are reported with a warning and skipped.
        """
        if not self.directory.is_dir():
            return []

        records: list[tuple[datetime, str, ChangeRecord]] = []
        for path in sorted(self.directory.glob("*.md")):
            if path.name.lower() == "readme.md":
                continue
            try:
                record = parse_change(path.stem, path.read_text())
            except ValidationError as exc:
                warn(f"{exc}; skipped")
                continue
            created = record.created or datetime.fromtimestamp(
                path.stat().st_mtime, tz=timezone.utc
            )
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            records.append((created, record.id, record))

        records.sort(key=lambda item: (item[0], item[1]))
        return [record for _, _, record in records]

    def create(
        self,
        packages: Iterable[str],
        bump: BumpLevel,
        summary: str,
        now: datetime | None = None,
    ) -> ChangeRecord:
        """Write a new change record and return it."""
        created = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        base = f"{created:%Y%m%d%H%M%S}-{_slug(summary)}"
        record_id = base
        suffix = 1
        while self._path(record_id).exists():
            suffix += 1
            record_id = f"{base}-{suffix}"

        try:
            record = ChangeRecord(
                id=record_id,
                packages=frozenset(canonicalize_name(p) for p in packages),
                bump=bump,
                summary=summary,
                created=created,
            )
        except PydanticValidationError as exc:
            raise ValidationError(record_id, str(exc)) from exc

        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(record_id).write_text(render_change(record))
        return record

    def archive(self, record_id: str) -> None:
        """Move a released record into the archive directory."""
        source = self._path(record_id)
        if not source.exists():
            return
        dest_dir = self.directory / ARCHIVE_DIR
        dest_dir.mkdir(exist_ok=True)
        shutil.move(str(source), str(dest_dir / source.name))
