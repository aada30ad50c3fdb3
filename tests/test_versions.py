"""Tests for ripple.versions."""

from __future__ import annotations

from ripple.models import BumpLevel
from ripple.versions import bump_version, is_newer, parse_version


class TestParseVersion:
    def test_full_semver(self) -> None:
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)

    def test_two_part_version(self) -> None:
        v = parse_version("1.2")
        assert (v.major, v.minor, v.patch) == (1, 2, 0)

    def test_single_part_version(self) -> None:
        v = parse_version("5")
        assert (v.major, v.minor, v.patch) == (5, 0, 0)


class TestBumpVersion:
    def test_patch_increments_patch_only(self) -> None:
        assert bump_version("1.2.3", BumpLevel.PATCH) == "1.2.4"

    def test_minor_resets_patch(self) -> None:
        assert bump_version("1.2.3", BumpLevel.MINOR) == "1.3.0"

    def test_major_resets_minor_and_patch(self) -> None:
        assert bump_version("1.2.3", BumpLevel.MAJOR) == "2.0.0"

    def test_incomplete_version(self) -> None:
        assert bump_version("1.0", BumpLevel.PATCH) == "1.0.1"

    def test_zero_major(self) -> None:
        assert bump_version("0.4.1", BumpLevel.MAJOR) == "1.0.0"


class TestIsNewer:
    def test_newer(self) -> None:
        assert is_newer("1.10.0", "1.9.9")

    def test_equal_is_not_newer(self) -> None:
        assert not is_newer("1.0.0", "1.0")
