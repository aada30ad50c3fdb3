"""Error taxonomy for ripple.

Planning errors (cycles, conflicts) are raised before any side effect.
Publish errors are raised by collaborators and absorbed by the executor,
which records them in the checkpoint instead of crashing.
"""

from __future__ import annotations

from collections.abc import Iterable


class ReleaseError(Exception):
    """Base class for every error ripple raises on purpose."""


class ValidationError(ReleaseError):
    """A change record is malformed.

    Local to the offending record: the change store skips it with a warning.
    """

    def __init__(self, record_id: str, reason: str) -> None:
        super().__init__(f"Invalid change record '{record_id}': {reason}")
        self.record_id = record_id
        self.reason = reason


class CycleError(ReleaseError):
    """The internal dependency graph contains a cycle."""

    def __init__(self, packages: Iterable[str]) -> None:
        self.packages = set(packages)
        super().__init__(
            f"Dependency cycle detected involving: {', '.join(sorted(self.packages))}"
        )


class VersionConflictError(ReleaseError):
    """The release plan cannot be computed without guessing."""

    def __init__(self, message: str, packages: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.packages = set(packages)


class WorkspaceError(ReleaseError):
    """The workspace or its configuration is unusable."""


class CheckpointError(ReleaseError):
    """The persisted checkpoint is missing, unreadable, or in the way."""


class PublishError(ReleaseError):
    """Base class for publish collaborator failures."""


class RetryableError(PublishError):
    """A transient publish failure; the executor retries with backoff."""


class FatalError(PublishError):
    """A publish failure that retrying cannot fix."""


class TagError(ReleaseError):
    """Creating a release tag failed. Never reverts a publication."""
