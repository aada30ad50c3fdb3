"""Release execution: drive a release plan through publication.

Entries move pending → publishing → published/failed. Levels run in
ascending order; within a level, pending entries are published by a
bounded thread pool, and the next level starts only once every entry of
the current one is terminal. Each worker owns its entry's state, and every
change is written to the checkpoint before the worker moves on.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed

from .checkpoint import CheckpointStore
from .clients import PublishClient, TagClient
from .config import FailureMode, ReleaseConfig
from .errors import CheckpointError, FatalError, RetryableError, TagError
from .models import (
    PublishState,
    PublishStatus,
    ReleasePlan,
    ReleasePlanEntry,
    ReleaseReport,
)
from .shell import info, step, warn


class Executor:
    """Publishes a release plan with retry, checkpointing, and tagging.

    Args:
        publisher: Publish collaborator; must treat a repeated publish of an
                   existing version as success.
        tagger: Tag collaborator; transient failures are retried like
                publishes, and a tag that still fails only produces a warning.
        store: Checkpoint store, possibly holding states from a prior run.
        config: Concurrency, retry, and failure-mode settings.
        sleep: Called with the backoff delay between retries.
    """

    def __init__(
        self,
        publisher: PublishClient,
        tagger: TagClient,
        store: CheckpointStore,
        config: ReleaseConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.publisher = publisher
        self.tagger = tagger
        self.store = store
        self.config = config or ReleaseConfig()
        self.sleep = sleep

    def execute(self, plan: ReleasePlan) -> ReleaseReport:
        """Publish every entry of the plan that is not yet published.

        Returns:
            Report of what was published, failed, skipped, or left pending.
            The checkpoint is cleared when every entry is published or
            abandoned, and kept otherwise.
        """
        report = ReleaseReport()
        states = self._load_states(plan, report)
        blocked = {name for name, state in states.items() if state.abandoned}
        abort = threading.Event()

        for index, level in enumerate(plan.levels()):
            runnable: list[ReleasePlanEntry] = []
            for entry in sorted(level, key=lambda e: e.package):
                state = states[entry.package]
                if state.terminal:
                    continue
                if abort.is_set():
                    report.undispatched.append(entry.package)
                    continue
                failed_deps = blocked & set(entry.dependencies)
                if failed_deps:
                    states[entry.package] = self._skip(entry, failed_deps)
                    blocked.add(entry.package)
                    report.skipped.append(entry.package)
                    continue
                runnable.append(entry)

            if not runnable:
                continue

            step(f"Publishing level {index} ({len(runnable)} packages)")
            workers = min(self.config.concurrency_limit, len(runnable))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {
                    pool.submit(self._run_entry, entry, states[entry.package], abort): entry
                    for entry in runnable
                }
                for future in as_completed(futures):
                    entry = futures[future]
                    state, tag_warning = future.result()
                    states[entry.package] = state
                    if tag_warning:
                        report.warnings.append(tag_warning)
                    if state.status is PublishStatus.PUBLISHED:
                        report.published.append(entry.package)
                    elif state.status is PublishStatus.FAILED:
                        blocked.add(entry.package)
                        report.failed[entry.package] = state.error or "unknown error"
                    else:
                        report.undispatched.append(entry.package)

        if all(state.terminal for state in states.values()):
            self.store.clear()
        return report

    def _load_states(
        self, plan: ReleasePlan, report: ReleaseReport
    ) -> dict[str, PublishState]:
        """Merge persisted states into fresh ones for this invocation.

        Published and abandoned entries are kept as they are; anything else
        (failed, or pending/publishing left by a crash) restarts as pending.
        """
        stored = self.store.load()
        states: dict[str, PublishState] = {}
        for entry in plan.entries:
            previous = stored.get(entry.package)
            if previous is not None and previous.status is PublishStatus.PUBLISHED:
                states[entry.package] = previous
                report.already_published.append(entry.package)
                continue
            if previous is not None and previous.abandoned:
                states[entry.package] = previous
                report.abandoned.append(entry.package)
                continue
            state = PublishState(package=entry.package)
            if previous != state:
                self.store.save(state)
            states[entry.package] = state
        return states

    def _skip(self, entry: ReleasePlanEntry, failed_deps: set[str]) -> PublishState:
        state = PublishState(
            package=entry.package,
            status=PublishStatus.FAILED,
            error=f"skipped-dependency: {', '.join(sorted(failed_deps))}",
            skipped_dependency=True,
        )
        self.store.save(state)
        warn(f"{entry.package}: not published, dependency failed ({state.error})")
        return state

    def _run_entry(
        self, entry: ReleasePlanEntry, state: PublishState, abort: threading.Event
    ) -> tuple[PublishState, str | None]:
        """Worker body: publish one entry, then tag it."""
        # Fail-fast stops entries that have not started; started ones finish
        if abort.is_set():
            return state, None

        state = self._publish(entry, state)
        if state.status is PublishStatus.FAILED:
            if self.config.failure_mode is FailureMode.FAIL_FAST:
                abort.set()
            return state, None

        return state, self._tag(entry)

    def _tag(self, entry: ReleasePlanEntry) -> str | None:
        """Tag a published entry, retrying transient failures with backoff.

        Returns:
            A warning for the report if the tag could not be created.
        """
        max_attempts = self.config.max_retry_attempts + 1
        attempt = 0
        while True:
            attempt += 1
            try:
                self.tagger.create_tag(entry.package, entry.to_version)
            except RetryableError as exc:
                if attempt >= max_attempts:
                    return self._tag_warning(entry, exc)
                delay = self.config.backoff_delay(attempt)
                warn(
                    f"{entry.package}: tag attempt {attempt} failed ({exc}); "
                    f"retrying in {delay:g}s"
                )
                self.sleep(delay)
            except (TagError, FatalError) as exc:
                return self._tag_warning(entry, exc)
            else:
                return None

    def _tag_warning(self, entry: ReleasePlanEntry, exc: Exception) -> str:
        message = f"{entry.package} {entry.to_version}: tag not created: {exc}"
        warn(message)
        return message

    def _publish(self, entry: ReleasePlanEntry, state: PublishState) -> PublishState:
        state = state.model_copy(
            update={"status": PublishStatus.PUBLISHING, "attempts": 0, "error": None}
        )
        self.store.save(state)
        max_attempts = self.config.max_retry_attempts + 1

        while True:
            state.attempts += 1
            try:
                self.publisher.publish(entry.package, entry.to_version)
            except RetryableError as exc:
                state.error = str(exc)
                if state.attempts >= max_attempts:
                    state.status = PublishStatus.FAILED
                    self.store.save(state)
                    warn(f"{entry.package}: giving up after {state.attempts} attempts: {exc}")
                    return state
                self.store.save(state)
                delay = self.config.backoff_delay(state.attempts)
                warn(f"{entry.package}: attempt {state.attempts} failed ({exc}); retrying in {delay:g}s")
                self.sleep(delay)
            except FatalError as exc:
                state.error = str(exc)
                state.status = PublishStatus.FAILED
                self.store.save(state)
                warn(f"{entry.package}: publish failed: {exc}")
                return state
            else:
                state.status = PublishStatus.PUBLISHED
                state.error = None
                self.store.save(state)
                info(f"{entry.package} {entry.to_version}: published")
                return state


def abandon(store: CheckpointStore, names: Iterable[str] | None = None) -> list[str]:
    """Mark failed checkpoint entries as abandoned.

    Args:
        store: Checkpoint holding the failed entries.
        names: Packages to abandon; defaults to every failed entry.

    Returns:
        Names of the entries newly abandoned.

    Raises:
        CheckpointError: If there is no checkpoint, or a named package has
            not failed.
    """
    if not store.exists():
        raise CheckpointError("No release in progress")
    states = store.load()
    failed = {
        name
        for name, state in states.items()
        if state.status is PublishStatus.FAILED and not state.abandoned
    }
    targets = failed if names is None else set(names)
    not_failed = sorted(targets - failed)
    if not_failed:
        raise CheckpointError(f"Not failed, cannot abandon: {', '.join(not_failed)}")

    for name in sorted(targets):
        states[name].abandoned = True
        store.save(states[name])

    if states and all(state.terminal for state in states.values()):
        store.clear()
    return sorted(targets)
