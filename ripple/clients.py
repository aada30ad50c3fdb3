"""Publish and tag collaborators.

The executor only sees the PublishClient and TagClient protocols. The
concrete clients here shell out to uv and git.
"""

from __future__ import annotations

import subprocess
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from .errors import FatalError, RetryableError, TagError
from .shell import git, run


class PublishClient(Protocol):
    def publish(self, package: str, version: str) -> None:
        """Publish a package version.

        Must succeed as a no-op when the version is already published.

        Raises:
            RetryableError: On a transient failure.
            FatalError: When retrying cannot help.
        """


class TagClient(Protocol):
    def create_tag(self, package: str, version: str) -> None:
        """Create a release tag.

        Must succeed as a no-op when the tag already exists.

        Raises:
            RetryableError: On a transient failure, such as a rejected push.
            TagError: If the tag cannot be created.
        """


def _last_line(result: subprocess.CompletedProcess[str]) -> str:
    lines = (result.stderr or result.stdout or "").strip().splitlines()
    return lines[-1] if lines else f"exit status {result.returncode}"


class UvPublishClient:
    """Build and upload a workspace package with uv.

    Args:
        root: Workspace root directory.
        paths: Map of package name → package directory relative to root.
        index: Upload URL passed to ``uv publish --publish-url``.
        check_url: Index URL used by ``uv publish --check-url`` to skip
                   files that already exist, making re-publishing a no-op.
    """

    def __init__(
        self,
        root: Path,
        paths: Mapping[str, str],
        index: str | None = None,
        check_url: str | None = None,
    ) -> None:
        self.root = root
        self.paths = dict(paths)
        self.index = index
        self.check_url = check_url

    def publish(self, package: str, version: str) -> None:
        if package not in self.paths:
            raise FatalError(f"Unknown package {package}")
        out_dir = self.root / "dist" / package
        try:
            result = run(
                "uv",
                "build",
                str(self.root / self.paths[package]),
                "--out-dir",
                str(out_dir),
                check=False,
            )
        except FileNotFoundError as exc:
            raise FatalError("uv is not installed") from exc
        if result.returncode != 0:
            raise FatalError(f"Build failed for {package}: {_last_line(result)}")

        files = sorted(str(p) for p in out_dir.glob(f"*{version}*"))
        if not files:
            raise FatalError(f"No distributions for {package} {version} in {out_dir}")

        cmd = ["uv", "publish"]
        if self.index:
            cmd.extend(["--publish-url", self.index])
        if self.check_url:
            cmd.extend(["--check-url", self.check_url])
        result = run(*cmd, *files, check=False)
        if result.returncode != 0:
            raise RetryableError(f"Upload failed for {package}: {_last_line(result)}")


class GitTagClient:
    """Create lightweight git tags such as ``core/v1.2.0``.

    With ``push`` set, each tag is also pushed to ``remote``. A failed push
    raises RetryableError so the executor retries it.
    """

    def __init__(
        self,
        tag_format: str = "{name}/v{version}",
        push: bool = False,
        remote: str = "origin",
    ) -> None:
        self.tag_format = tag_format
        self.push = push
        self.remote = remote

    def tag_name(self, package: str, version: str) -> str:
        return self.tag_format.format(name=package, version=version)

    def create_tag(self, package: str, version: str) -> None:
        tag = self.tag_name(package, version)
        try:
            # Re-running after a crash may find the tag already in place
            if git("tag", "--list", tag, check=False) != tag:
                git("tag", tag)
        except subprocess.CalledProcessError as exc:
            raise TagError(f"git tag {tag} failed: {(exc.stderr or '').strip()}") from exc
        except OSError as exc:
            raise TagError(f"git tag {tag} failed: {exc}") from exc
        if self.push:
            self._push(tag)

    def _push(self, tag: str) -> None:
        try:
            git("push", self.remote, tag)
        except subprocess.CalledProcessError as exc:
            raise RetryableError(
                f"git push {self.remote} {tag} failed: {(exc.stderr or '').strip()}"
            ) from exc
        except OSError as exc:
            raise TagError(f"git push {self.remote} {tag} failed: {exc}") from exc
