"""Tests for ripple.cli."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from ripple.cli import cli
from ripple.errors import FatalError


@pytest.fixture
def runner(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.chdir(workspace)
    return CliRunner()


def change_files(root: Path) -> list[Path]:
    return sorted((root / ".changes").glob("*.md"))


class TestInit:
    def test_creates_changes_dir(self, runner: CliRunner, workspace: Path) -> None:
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0, result.output
        assert (workspace / ".changes" / "README.md").exists()

    def test_requires_pyproject(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, ["init"])
        assert result.exit_code == 1
        assert "pyproject.toml" in result.output


class TestNew:
    def test_writes_change_record(self, runner: CliRunner, workspace: Path) -> None:
        result = runner.invoke(cli, ["new", "-p", "core", "-b", "minor", "-m", "Add streaming"])
        assert result.exit_code == 0, result.output
        [path] = change_files(workspace)
        assert 'bump = "minor"' in path.read_text()

    def test_rejects_unknown_package(self, runner: CliRunner, workspace: Path) -> None:
        result = runner.invoke(cli, ["new", "-p", "ghost", "-m", "boo"])
        assert result.exit_code == 1
        assert "ghost" in result.output
        assert change_files(workspace) == []


class TestStatus:
    def test_prints_plan(self, runner: CliRunner) -> None:
        runner.invoke(cli, ["new", "-p", "core", "-b", "minor", "-m", "Add streaming"])
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0, result.output
        assert "core: 1.2.0 → 1.3.0 (minor)" in result.output
        assert "app: 2.0.0 → 2.0.1 (patch)" in result.output

    def test_bad_override_syntax(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["status", "--bump", "core"])
        assert result.exit_code == 2

    def test_conflicting_override(self, runner: CliRunner) -> None:
        runner.invoke(cli, ["new", "-p", "core", "-b", "minor", "-m", "Add streaming"])
        result = runner.invoke(cli, ["status", "--bump", "core=major"])
        assert result.exit_code == 1
        assert "disagree" in result.output


class TestRelease:
    def test_success(
        self, runner: CliRunner, workspace: Path, publisher: Any, tagger: Any
    ) -> None:
        runner.invoke(cli, ["new", "-p", "core", "-b", "minor", "-m", "Add streaming"])
        with (
            patch("ripple.pipeline.UvPublishClient", return_value=publisher),
            patch("ripple.pipeline.GitTagClient", return_value=tagger),
        ):
            result = runner.invoke(cli, ["release"])

        assert result.exit_code == 0, result.output
        assert "core: published" in result.output
        assert change_files(workspace) == []

    def test_failure_exits_nonzero_then_abandon(
        self,
        runner: CliRunner,
        workspace: Path,
        make_publisher: Callable[..., Any],
        tagger: Any,
    ) -> None:
        runner.invoke(cli, ["new", "-p", "core", "-b", "minor", "-m", "Add streaming"])
        publisher = make_publisher({"app": [FatalError("registry down")]})
        with (
            patch("ripple.pipeline.UvPublishClient", return_value=publisher),
            patch("ripple.pipeline.GitTagClient", return_value=tagger),
        ):
            result = runner.invoke(cli, ["release"])

        assert result.exit_code == 1
        assert "app: FAILED (registry down)" in result.output
        assert "core: published" in result.output

        result = runner.invoke(cli, ["abandon", "app"])
        assert result.exit_code == 0, result.output
        assert "abandoned app" in result.output
        assert not (workspace / ".ripple-checkpoint.json").exists()

    def test_publish_without_plan(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["publish"])
        assert result.exit_code == 1
        assert "ripple version" in result.output


class TestTag:
    def test_tags_current_versions(self, runner: CliRunner, tagger: Any) -> None:
        with patch("ripple.pipeline.GitTagClient", return_value=tagger):
            result = runner.invoke(cli, ["tag"])

        assert result.exit_code == 0, result.output
        assert sorted(tagger.tags) == ["app/v2.0.0", "core/v1.2.0", "utils/v0.4.1"]
        assert "core 1.2.0: tagged" in result.output

    def test_recovers_tag_missed_by_release(
        self, runner: CliRunner, publisher: Any, make_tagger: Callable[..., Any]
    ) -> None:
        runner.invoke(cli, ["new", "-p", "core", "-b", "minor", "-m", "Add streaming"])
        with (
            patch("ripple.pipeline.UvPublishClient", return_value=publisher),
            patch("ripple.pipeline.GitTagClient", return_value=make_tagger(failing=["core"])),
        ):
            result = runner.invoke(cli, ["release"])
        assert result.exit_code == 0, result.output
        assert "tag not created" in result.output

        tagger = make_tagger()
        with patch("ripple.pipeline.GitTagClient", return_value=tagger):
            result = runner.invoke(cli, ["tag"])

        assert result.exit_code == 0, result.output
        assert "core/v1.3.0" in tagger.tags

    def test_failure_exits_nonzero(
        self, runner: CliRunner, make_tagger: Callable[..., Any]
    ) -> None:
        with patch("ripple.pipeline.GitTagClient", return_value=make_tagger(failing=["app"])):
            result = runner.invoke(cli, ["tag"])

        assert result.exit_code == 1
        assert "app 2.0.0: tag not created: remote rejected" in result.output
