"""Shared test fixtures."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest
import tomlkit

from ripple.errors import TagError


class FakePublisher:
    """Publish client that raises scripted errors, then succeeds."""

    def __init__(self, script: dict[str, list[Exception]] | None = None) -> None:
        self.script = {name: list(errors) for name, errors in (script or {}).items()}
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def publish(self, package: str, version: str) -> None:
        with self._lock:
            self.calls.append((package, version))
            errors = self.script.get(package)
            error = errors.pop(0) if errors else None
        if error is not None:
            raise error

    def count(self, package: str) -> int:
        return sum(1 for name, _ in self.calls if name == package)


class FakeTagger:
    """Tag client; ``failing`` packages always raise TagError, ``script``
    errors are raised once each before the tag succeeds."""

    def __init__(
        self,
        failing: Iterable[str] = (),
        script: dict[str, list[Exception]] | None = None,
    ) -> None:
        self.failing = set(failing)
        self.script = {name: list(errors) for name, errors in (script or {}).items()}
        self.calls: list[tuple[str, str]] = []
        self.tags: list[str] = []
        self._lock = threading.Lock()

    def create_tag(self, package: str, version: str) -> None:
        with self._lock:
            self.calls.append((package, version))
            errors = self.script.get(package)
            error = errors.pop(0) if errors else None
        if package in self.failing:
            raise TagError("remote rejected")
        if error is not None:
            raise error
        with self._lock:
            self.tags.append(f"{package}/v{version}")


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def tagger() -> FakeTagger:
    return FakeTagger()


@pytest.fixture
def make_publisher() -> Callable[..., FakePublisher]:
    """Factory for publishers with scripted errors per package."""
    return FakePublisher


@pytest.fixture
def make_tagger() -> Callable[..., FakeTagger]:
    """Factory for taggers with failing packages or scripted errors."""
    return FakeTagger


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0",
    "internal-dep>=1.0",
]

[project.optional-dependencies]
dev = ["pytest>=8.0", "another-internal>=0.5"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal>=0.1"]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]

[project.optional-dependencies]
dev = ["pytest>=8.0"]
docs = ["sphinx>=7.0"]

[dependency-groups]
test = ["hypothesis>=6.0"]

[tool.uv.workspace]
members = ["packages/*", "libs/*"]
"""
    return tomlkit.parse(content)


def write_package(root: Path, name: str, version: str = "1.0.0", deps: Iterable[str] = ()) -> Path:
    package_dir = root / "packages" / name
    package_dir.mkdir(parents=True)
    dep_list = ", ".join(f'"{dep}>={version}"' for dep in deps)
    (package_dir / "pyproject.toml").write_text(
        f'[project]\nname = "{name}"\nversion = "{version}"\n'
        f'dependencies = [{dep_list}]\n'
    )
    return package_dir


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A uv workspace with core, utils, and app (app depends on both)."""
    (tmp_path / "pyproject.toml").write_text(
        '[tool.uv.workspace]\nmembers = ["packages/*"]\n\n'
        "[tool.ripple]\nretry-backoff = 0\n"
    )
    write_package(tmp_path, "core", "1.2.0")
    write_package(tmp_path, "utils", "0.4.1")
    write_package(tmp_path, "app", "2.0.0", deps=["core", "utils"])
    return tmp_path


@pytest.fixture
def add_package() -> Callable[..., Path]:
    """Factory writing a member package under ``<root>/packages``."""
    return write_package
