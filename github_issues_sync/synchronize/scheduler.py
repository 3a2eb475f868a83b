"""Schedules synchronization passes triggered by GitHub polls and filesystem events.

Two producers feed the scheduler: a timer that polls GitHub on a fixed interval
and the filesystem watcher, which delivers ``FileEvent`` values through an
asyncio queue. Whatever the trigger, passes run one at a time under a single
reconciliation lock, because the snapshot store must never be mutated by two
passes at once. A poll tick arriving while a filesystem-triggered pass runs
waits for the lock and runs next.
"""

import asyncio
import time
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

import structlog

from github_issues_sync.github.abc import IssueTrackerBase
from github_issues_sync.processing.exceptions import ParseError
from github_issues_sync.synchronize.detector import classify_local, classify_remote, merge_changes
from github_issues_sync.synchronize.exceptions import DuplicateIssueFileError, RemoteError, SyncError
from github_issues_sync.synchronize.local import LocalIssueDirectory
from github_issues_sync.synchronize.models import (
    BothUpdated,
    ChangeKind,
    FileEvent,
    FileEventKind,
    LocalCreated,
    LocalUntracked,
    LocalUpdated,
    SyncAction,
    Unchanged,
)
from github_issues_sync.synchronize.reconciler import Reconciler
from github_issues_sync.synchronize.results import SyncPassResult
from github_issues_sync.synchronize.snapshots import SnapshotStore
from github_issues_sync.utils.constants import DEFAULT_DEBOUNCE_SECONDS, DEFAULT_MAX_CONCURRENCY, DEFAULT_SYNC_INTERVAL

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

IDLE_WAIT_SECONDS = 0.5
"""Longest time the watch loop blocks on the event queue before checking for shutdown."""


class SchedulerState(str, Enum):
    """Enum for the states of the scheduler."""

    IDLE = "idle"
    POLLING = "polling"
    WATCH_TRIGGERED = "watch_triggered"
    DEBOUNCING = "debouncing"
    RECONCILING = "reconciling"


class Debouncer:
    """Coalesces filesystem events for the same path until the path has been quiet for a while."""

    def __init__(self, quiet_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the debouncer with its quiet window."""
        self.quiet_seconds = quiet_seconds
        self._clock = clock
        self._pending: dict[Path, tuple[FileEvent, float]] = {}

    def push(self, event: FileEvent) -> None:
        """Record an event, replacing any pending event for the same path and restarting its quiet window."""
        self._pending[event.path] = (event, self._clock())

    def pop_settled(self) -> list[FileEvent]:
        """Remove and return the latest event of every path whose quiet window has elapsed."""
        now = self._clock()
        settled = [path for path, (_, seen) in self._pending.items() if now - seen >= self.quiet_seconds]
        return [self._pending.pop(path)[0] for path in settled]

    def seconds_until_settled(self) -> float | None:
        """Seconds until the next pending path settles, or None when nothing is pending."""
        if not self._pending:
            return None
        now = self._clock()
        return max(0.0, min(seen + self.quiet_seconds - now for _, seen in self._pending.values()))

    def __len__(self) -> int:
        return len(self._pending)


def _change_path(change: ChangeKind, directory: LocalIssueDirectory) -> Path | None:
    if isinstance(change, (LocalUpdated, LocalCreated, LocalUntracked, BothUpdated)):
        return change.local.path
    if change.number is not None:
        return directory.path_for(change.number)
    return None


class SyncScheduler:
    """Runs synchronization passes, one at a time, for the periodic and filesystem triggers."""

    def __init__(
        self,
        tracker: IssueTrackerBase,
        directory: LocalIssueDirectory,
        store: SnapshotStore,
        reconciler: Reconciler,
        poll_interval: float = DEFAULT_SYNC_INTERVAL,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        state_file: Path | None = None,
    ) -> None:
        """Initialize the scheduler with its collaborators and timing settings."""
        self.tracker = tracker
        self.directory = directory
        self.store = store
        self.reconciler = reconciler
        self.poll_interval = poll_interval
        self.debounce_seconds = debounce_seconds
        self.max_concurrency = max_concurrency
        self.state_file = state_file
        self._lock = asyncio.Lock()
        self._state = SchedulerState.IDLE

    @property
    def state(self) -> SchedulerState:
        """Current state of the scheduler."""
        return self._state

    def _set_state(self, state: SchedulerState) -> None:
        if state != self._state:
            logger.debug("Scheduler state changed", previous_state=self._state.value, state=state.value)
            self._state = state

    # Passes

    async def run_pass(self, trigger: str = "poll") -> SyncPassResult:
        """Run one full pass: fetch every GitHub issue, scan the issues directory, and reconcile both.

        Raises:
            RemoteError: If GitHub rejected our credentials; every other failure is recorded in the result.
        """
        async with self._lock:
            result = SyncPassResult(trigger)
            start_time = time.time()
            logger.info("Starting full synchronization pass", trigger=trigger)
            self._set_state(SchedulerState.POLLING)
            try:
                try:
                    remote_issues = await self.tracker.list_issues()
                except RemoteError as exc:
                    if exc.is_fatal:
                        raise
                    logger.error("Failed to fetch issues from GitHub, retrying on the next pass", error=str(exc))
                    result.add_error(exc)
                    return result
                logger.info("Fetched issues from GitHub", issue_count=len(remote_issues), duration=round(time.time() - start_time, 2))

                self._set_state(SchedulerState.RECONCILING)
                changes: dict[int, ChangeKind] = {}
                for remote in remote_issues:
                    changes[remote.number] = classify_remote(remote, self.store.get(remote.number))

                drafts: list[ChangeKind] = []
                created_drafts: list[LocalCreated] = []
                claimed: dict[int, Path] = {}
                for path in self.directory.scan():
                    local_change = self._classify_path(path, result)
                    if local_change is None:
                        continue
                    if isinstance(local_change, LocalCreated) and local_change.local.record.is_draft:
                        created_number = self.store.created_draft_number(local_change.local.fingerprint)
                        if created_number is None:
                            drafts.append(local_change)
                        else:
                            # Already on GitHub; pair the draft with that issue instead of creating it again.
                            renumbered = local_change.local.record.model_copy(update={"number": created_number})
                            created_drafts.append(LocalCreated(replace(local_change.local, record=renumbered)))
                        continue
                    number = local_change.number
                    if number is None:
                        continue
                    if number in claimed:
                        self._reject_duplicate(path, number, claimed[number], result)
                        continue
                    claimed[number] = path
                    changes[number] = merge_changes(changes.get(number, Unchanged(number)), local_change)

                for created_draft in created_drafts:
                    number = created_draft.local.record.number
                    if number is None or number in claimed:
                        # The issue file exists already, so the draft only needs to be dropped.
                        drafts.append(created_draft)
                        continue
                    claimed[number] = created_draft.local.path
                    changes[number] = merge_changes(changes.get(number, Unchanged(number)), created_draft)

                await self._reconcile_all([*changes.values(), *drafts], result)
                return result
            finally:
                result.duration = time.time() - start_time
                self._finish_pass(result)

    async def reconcile_paths(self, paths: Iterable[Path], trigger: str = "watch") -> SyncPassResult:
        """Run a pass for the given issue files only, pushing their local changes to GitHub.

        Files without a snapshot are not pushed: they are reported as deferred and
        wait for a full pass to pair them with GitHub's version.
        """
        async with self._lock:
            result = SyncPassResult(trigger)
            start_time = time.time()
            self._set_state(SchedulerState.RECONCILING)
            try:
                changes: list[ChangeKind] = []
                for path in dict.fromkeys(paths):
                    if not self.directory.is_issue_file(path):
                        logger.debug("Ignoring file outside of the issue naming convention", path=str(path))
                        continue
                    if not path.exists():
                        logger.debug("Issue file no longer exists, nothing to push", path=str(path))
                        continue
                    change = self._classify_path(path, result)
                    if change is None:
                        continue
                    if isinstance(change, LocalUntracked):
                        logger.info(
                            "Issue file has no synchronized state yet, deferring it to a full pass",
                            issue_number=change.number,
                            path=str(path),
                        )
                        result.add_result(change.number, path, SyncAction.DEFERRED)
                        continue
                    changes.append(change)
                await self._reconcile_all(changes, result)
                return result
            finally:
                result.duration = time.time() - start_time
                self._finish_pass(result)

    def _reject_duplicate(self, path: Path, number: int, claimed_by: Path, result: SyncPassResult) -> None:
        error = DuplicateIssueFileError(path, number, claimed_by)
        logger.warning("Skipping issue file that claims an issue number another file already claims", path=str(path), issue_number=number)
        result.add_error(error, issue_number=number, path=path)

    def _classify_path(self, path: Path, result: SyncPassResult) -> ChangeKind | None:
        try:
            local = self.directory.read(path)
        except (ParseError, OSError) as exc:
            logger.warning("Skipping issue file that could not be read", path=str(path), error=str(exc))
            result.add_error(exc, path=path)
            return None
        return classify_local(local, self.store.get(local.record.number))

    async def _reconcile_all(self, changes: list[ChangeKind], result: SyncPassResult) -> None:
        """Reconcile changes concurrently across distinct issues, bounded by max_concurrency."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def reconcile_one(change: ChangeKind) -> None:
            path = _change_path(change, self.directory)
            async with semaphore:
                try:
                    action = await self.reconciler.reconcile(change)
                except RemoteError as exc:
                    if exc.is_fatal:
                        raise
                    logger.error("Failed to synchronize issue with GitHub, retrying on the next pass", issue_number=change.number, error=str(exc))
                    result.add_error(exc, issue_number=change.number, path=path)
                except SyncError as exc:
                    logger.error("Failed to synchronize issue", issue_number=exc.issue_number, error=str(exc))
                    result.add_error(exc, issue_number=exc.issue_number, path=path)
                else:
                    result.add_result(change.number, path, action)

        outcomes = await asyncio.gather(*(reconcile_one(change) for change in changes), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    def _finish_pass(self, result: SyncPassResult) -> None:
        if self.state_file is not None:
            try:
                self.store.save(self.state_file)
            except OSError as exc:
                logger.error("Failed to save snapshot state file", path=str(self.state_file), error=str(exc))
                result.add_error(exc, path=self.state_file)
        self._set_state(SchedulerState.IDLE)
        logger.info("Finished synchronization pass", **result.summary())

    # Continuous mode

    async def run_forever(self, stop_event: asyncio.Event, events: "asyncio.Queue[FileEvent]") -> None:
        """Poll GitHub and consume filesystem events until ``stop_event`` is set.

        A pass that is running when the stop is requested runs to completion.
        """
        logger.info("Watching for changes", poll_interval=self.poll_interval, debounce_seconds=self.debounce_seconds)
        # Either loop sets stop_event when it fails, so the other one winds down too.
        outcomes = await asyncio.gather(self._poll_loop(stop_event), self._watch_loop(stop_event, events), return_exceptions=True)
        logger.info("Stopped watching for changes")
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    async def _poll_loop(self, stop_event: asyncio.Event) -> None:
        try:
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    await self.run_pass(trigger="poll")
        except BaseException:
            stop_event.set()
            raise

    async def _watch_loop(self, stop_event: asyncio.Event, events: "asyncio.Queue[FileEvent]") -> None:
        debouncer = Debouncer(self.debounce_seconds)
        try:
            while not stop_event.is_set():
                timeout = debouncer.seconds_until_settled()
                try:
                    event = await asyncio.wait_for(events.get(), timeout=IDLE_WAIT_SECONDS if timeout is None else timeout)
                except asyncio.TimeoutError:
                    pass
                else:
                    if self._state == SchedulerState.IDLE:
                        self._set_state(SchedulerState.WATCH_TRIGGERED)
                    debouncer.push(event)
                    if self._state == SchedulerState.WATCH_TRIGGERED:
                        self._set_state(SchedulerState.DEBOUNCING)
                settled = debouncer.pop_settled()
                if settled:
                    await self._handle_settled_events(settled)
                elif not debouncer and self._state == SchedulerState.DEBOUNCING:
                    self._set_state(SchedulerState.IDLE)
        except BaseException:
            stop_event.set()
            raise

    async def _handle_settled_events(self, settled: list[FileEvent]) -> None:
        paths: list[Path] = []
        for event in settled:
            if event.kind == FileEventKind.REMOVED:
                logger.info("Issue file removed locally, deletions are not synchronized", path=str(event.path))
                continue
            paths.append(event.path)
        if paths:
            logger.info("Local issue files settled", paths=[str(path) for path in paths])
            result = await self.reconcile_paths(paths, trigger="watch")
            if result.count(SyncAction.DEFERRED):
                await self.run_pass(trigger="deferred")
        elif self._state == SchedulerState.DEBOUNCING:
            self._set_state(SchedulerState.IDLE)
