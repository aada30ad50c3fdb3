"""Tests for ripple.models."""

from __future__ import annotations

import pydantic
import pytest

from ripple.models import (
    BumpLevel,
    ChangeRecord,
    PublishState,
    PublishStatus,
    ReleasePlan,
    ReleasePlanEntry,
    ReleaseReport,
    max_level,
)


class TestBumpLevel:
    def test_ordering(self) -> None:
        assert BumpLevel.PATCH.rank < BumpLevel.MINOR.rank < BumpLevel.MAJOR.rank

    def test_max_level(self) -> None:
        assert max_level(BumpLevel.PATCH, BumpLevel.MAJOR, BumpLevel.MINOR) is BumpLevel.MAJOR

    def test_max_of_equal_levels(self) -> None:
        assert max_level(BumpLevel.MINOR, BumpLevel.MINOR) is BumpLevel.MINOR


class TestChangeRecord:
    def test_requires_packages(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ChangeRecord(id="c1", packages=frozenset(), bump=BumpLevel.PATCH)

    def test_is_immutable(self) -> None:
        record = ChangeRecord(id="c1", packages=frozenset({"a"}), bump="minor")
        with pytest.raises(pydantic.ValidationError):
            record.bump = BumpLevel.MAJOR  # type: ignore[misc]

    def test_rejects_unknown_bump(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ChangeRecord(id="c1", packages=frozenset({"a"}), bump="huge")


class TestReleasePlan:
    @staticmethod
    def entry(name: str, level: int, changes: list[str]) -> ReleasePlanEntry:
        return ReleasePlanEntry(
            package=name,
            from_version="1.0.0",
            to_version="1.0.1",
            bump=BumpLevel.PATCH,
            level=level,
            changes=changes,
        )

    def test_levels_group_by_level(self) -> None:
        plan = ReleasePlan(
            entries=[self.entry("a", 0, []), self.entry("b", 0, []), self.entry("c", 1, [])]
        )
        levels = plan.levels()
        assert [[e.package for e in level] for level in levels] == [["a", "b"], ["c"]]

    def test_change_ids_deduplicated(self) -> None:
        plan = ReleasePlan(
            entries=[self.entry("a", 0, ["x", "y"]), self.entry("b", 0, ["y", "z"])]
        )
        assert plan.change_ids() == ["x", "y", "z"]

    def test_get(self) -> None:
        plan = ReleasePlan(entries=[self.entry("a", 0, [])])
        assert plan.get("a") is not None
        assert plan.get("missing") is None

    def test_json_round_trip_keeps_enums(self) -> None:
        plan = ReleasePlan(entries=[self.entry("a", 0, ["x"])])
        loaded = ReleasePlan.model_validate_json(plan.model_dump_json())
        assert loaded.entries[0].bump is BumpLevel.PATCH


class TestPublishState:
    def test_defaults_to_pending(self) -> None:
        state = PublishState(package="a")
        assert state.status is PublishStatus.PENDING
        assert state.attempts == 0
        assert not state.terminal

    def test_published_and_abandoned_are_terminal(self) -> None:
        assert PublishState(package="a", status=PublishStatus.PUBLISHED).terminal
        assert PublishState(package="a", status=PublishStatus.FAILED, abandoned=True).terminal
        assert not PublishState(package="a", status=PublishStatus.FAILED).terminal


class TestReleaseReport:
    def test_ok_when_empty(self) -> None:
        assert ReleaseReport().ok

    def test_not_ok_with_failures(self) -> None:
        assert not ReleaseReport(failed={"a": "boom"}).ok
        assert not ReleaseReport(skipped=["b"]).ok
        assert not ReleaseReport(undispatched=["c"]).ok
