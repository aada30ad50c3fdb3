"""Release configuration.

Settings live in the [tool.ripple] table of the workspace root
pyproject.toml, using kebab-case keys:

    [tool.ripple]
    concurrency-limit = 4
    failure-mode = "best-effort"
    ignored-packages = ["docs"]
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import tomlkit
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import WorkspaceError
from .models import BumpLevel


class FailureMode(str, Enum):
    FAIL_FAST = "fail-fast"
    BEST_EFFORT = "best-effort"


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class ReleaseConfig(BaseModel):
    """Options consumed by the planner and the executor."""

    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True)

    concurrency_limit: int = Field(default=1, gt=0)
    failure_mode: FailureMode = FailureMode.FAIL_FAST
    max_retry_attempts: int = Field(default=3, ge=0)
    retry_backoff: float = Field(default=1.0, ge=0)
    propagation_bump_level: BumpLevel = BumpLevel.PATCH
    ignored_packages: set[str] = Field(default_factory=set)
    changes_dir: str = ".changes"
    checkpoint_file: str = ".ripple-checkpoint.json"
    tag_format: str = "{name}/v{version}"
    publish_index: str | None = None
    check_url: str | None = None
    commit: bool = False
    push_tags: bool = False
    tag_remote: str = "origin"
    overrides: dict[str, BumpLevel] = Field(default_factory=dict)

    @field_validator("propagation_bump_level")
    @classmethod
    def _patch_or_minor(cls, value: BumpLevel) -> BumpLevel:
        if value is BumpLevel.MAJOR:
            raise ValueError("propagation bump level must be patch or minor")
        return value

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retrying after the given (1-based) attempt."""
        return self.retry_backoff * 2 ** (attempt - 1)


def load_config(root: Path) -> ReleaseConfig:
    """Read [tool.ripple] from root/pyproject.toml.

    A missing file or table yields the defaults.

    Raises:
        WorkspaceError: If the table holds invalid values.
    """
    pyproject = root / "pyproject.toml"
    table: dict[str, Any] = {}
    if pyproject.exists():
        doc = tomlkit.parse(pyproject.read_text())
        section = doc.get("tool", {}).get("ripple")
        if section is not None:
            table = section.unwrap()
    try:
        return ReleaseConfig.model_validate(table)
    except PydanticValidationError as exc:
        raise WorkspaceError(f"Invalid [tool.ripple] configuration:\n{exc}") from exc
