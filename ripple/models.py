"""Data models for ripple.

These Pydantic models represent the core data structures that flow through
a release: change records and workspace packages go in, resolved bumps and
a leveled release plan come out, and publish states record progress.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BumpLevel(str, Enum):
    """Semantic-version bump severity, ordered patch < minor < major."""

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {BumpLevel.PATCH: 0, BumpLevel.MINOR: 1, BumpLevel.MAJOR: 2}


def max_level(*levels: BumpLevel) -> BumpLevel:
    """Return the most severe of the given bump levels."""
    return max(levels, key=lambda level: level.rank)


class ChangeRecord(BaseModel):
    """One author-submitted statement that packages need a bump.

    Attributes:
        id: Unique identifier (the record's file stem).
        packages: Names of the packages affected by the change.
        bump: Requested bump level for every affected package.
        summary: Free-text description, used as changelog text.
        created: Creation timestamp, used to order changelog entries.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    packages: frozenset[str] = Field(min_length=1)
    bump: BumpLevel
    summary: str = ""
    created: datetime | None = None


class PackageNode(BaseModel):
    """Metadata for a single package in the monorepo workspace.

    Attributes:
        name: Canonical package name.
        version: Current version string from pyproject.toml.
        path: Relative path from workspace root to the package directory.
        deps: Internal (workspace) dependency names. External deps are not
              tracked since only workspace packages are released together.
        ignored: Excluded from propagation and from the publish plan.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    path: str = ""
    deps: tuple[str, ...] = ()
    ignored: bool = False


class ResolvedBump(BaseModel):
    """The winning bump for a package that changes this cycle.

    Attributes:
        package: Package name.
        bump: Winning bump level.
        changes: Ids of change records naming this package, in input order.
        propagated_from: Bumped dependencies that triggered propagation.
    """

    package: str
    bump: BumpLevel
    changes: list[str] = Field(default_factory=list)
    propagated_from: set[str] = Field(default_factory=set)


class ReleasePlanEntry(BaseModel):
    """A concrete version transition for one package."""

    package: str
    path: str = ""
    from_version: str
    to_version: str
    bump: BumpLevel
    changelog: str = ""
    level: int = Field(ge=0)
    changes: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)


class ReleasePlan(BaseModel):
    """Ordered, leveled set of per-package version transitions."""

    entries: list[ReleasePlanEntry] = Field(default_factory=list)

    def get(self, package: str) -> ReleasePlanEntry | None:
        for entry in self.entries:
            if entry.package == package:
                return entry
        return None

    @property
    def packages(self) -> list[str]:
        return [entry.package for entry in self.entries]

    def levels(self) -> list[list[ReleasePlanEntry]]:
        """Group entries by topological level, ascending."""
        grouped: dict[int, list[ReleasePlanEntry]] = {}
        for entry in self.entries:
            grouped.setdefault(entry.level, []).append(entry)
        return [grouped[level] for level in sorted(grouped)]

    def change_ids(self) -> list[str]:
        """All contributing change record ids, deduplicated, in plan order."""
        seen: dict[str, None] = {}
        for entry in self.entries:
            for change_id in entry.changes:
                seen.setdefault(change_id, None)
        return list(seen)


class PublishStatus(str, Enum):
    PENDING = "pending"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"


class PublishState(BaseModel):
    """Persisted publish progress for one plan entry.

    Attributes:
        package: Package name.
        status: Where the entry is in pending → publishing → published/failed.
        attempts: Publish attempts made during the current invocation.
        error: Text of the last publish error, if any.
        skipped_dependency: Failed without an attempt because a dependency
            failed (best-effort mode).
        abandoned: Operator gave up on this entry; it is never retried.
    """

    package: str
    status: PublishStatus = PublishStatus.PENDING
    attempts: int = Field(default=0, ge=0)
    error: str | None = None
    skipped_dependency: bool = False
    abandoned: bool = False

    @property
    def terminal(self) -> bool:
        return self.status is PublishStatus.PUBLISHED or self.abandoned


class ReleaseReport(BaseModel):
    """Outcome of one executor run."""

    published: list[str] = Field(default_factory=list)
    already_published: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    skipped: list[str] = Field(default_factory=list)
    undispatched: list[str] = Field(default_factory=list)
    abandoned: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no package failed, was skipped, or was left pending."""
        return not (self.failed or self.skipped or self.undispatched)
