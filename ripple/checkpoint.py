"""Durable publish checkpoints.

The checkpoint records the release plan being executed and the publish
state of each entry, so an interrupted release can resume without
republishing what already went out.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import CheckpointError
from .models import PublishState, ReleasePlan


class CheckpointStore(Protocol):
    """Key-value persistence for publish states, keyed by package name."""

    def exists(self) -> bool: ...

    def load_plan(self) -> ReleasePlan | None: ...

    def save_plan(self, plan: ReleasePlan) -> None: ...

    def load(self) -> dict[str, PublishState]: ...

    def save(self, state: PublishState) -> None: ...

    def clear(self) -> None: ...


class Checkpoint(BaseModel):
    """On-disk checkpoint document."""

    plan: ReleasePlan | None = None
    applied: bool = False
    states: dict[str, PublishState] = Field(default_factory=dict)


class JsonCheckpointStore:
    """Checkpoint store backed by a single JSON file.

    Every write replaces the file atomically, and writes are serialized so
    concurrent publish workers never interleave.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def exists(self) -> bool:
        return self.path.exists()

    def _read(self) -> Checkpoint:
        if not self.path.exists():
            return Checkpoint()
        try:
            return Checkpoint.model_validate_json(self.path.read_text())
        except PydanticValidationError as exc:
            raise CheckpointError(f"Unreadable checkpoint {self.path}: {exc}") from exc

    def _write(self, checkpoint: Checkpoint) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w") as fh:
            fh.write(checkpoint.model_dump_json(indent=2))
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, self.path)

    def load_plan(self) -> ReleasePlan | None:
        with self._lock:
            return self._read().plan

    def save_plan(self, plan: ReleasePlan) -> None:
        with self._lock:
            checkpoint = self._read()
            checkpoint.plan = plan
            self._write(checkpoint)

    def is_applied(self) -> bool:
        """Whether the plan's version and changelog edits were fully written."""
        with self._lock:
            return self._read().applied

    def mark_applied(self) -> None:
        with self._lock:
            checkpoint = self._read()
            checkpoint.applied = True
            self._write(checkpoint)

    def load(self) -> dict[str, PublishState]:
        with self._lock:
            return self._read().states

    def save(self, state: PublishState) -> None:
        with self._lock:
            checkpoint = self._read()
            checkpoint.states[state.package] = state.model_copy()
            self._write(checkpoint)

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)
