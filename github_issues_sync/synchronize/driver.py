"""Orchestrates the synchronization between GitHub issues and the issues directory."""

import asyncio
import signal
import time

import structlog

from github_issues_sync.configuration.models import SyncConfig
from github_issues_sync.github.abc import IssueTrackerBase
from github_issues_sync.github.adapter import GitHubAdapter
from github_issues_sync.synchronize.local import LocalIssueDirectory
from github_issues_sync.synchronize.models import FileEvent
from github_issues_sync.synchronize.reconciler import Reconciler
from github_issues_sync.synchronize.results import SyncPassResult
from github_issues_sync.synchronize.scheduler import SyncScheduler
from github_issues_sync.synchronize.snapshots import SnapshotStore
from github_issues_sync.synchronize.watcher import IssueDirectoryWatcher

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def build_scheduler(config: SyncConfig, tracker: IssueTrackerBase) -> SyncScheduler:
    """Wire the issues directory, snapshot store and reconciler into a scheduler."""
    directory = LocalIssueDirectory(config.issues_dir)
    store = SnapshotStore.load(config.state_file) if config.state_file is not None else SnapshotStore()
    reconciler = Reconciler(tracker, directory, store)
    return SyncScheduler(
        tracker=tracker,
        directory=directory,
        store=store,
        reconciler=reconciler,
        poll_interval=config.sync_interval,
        debounce_seconds=config.debounce_seconds,
        max_concurrency=config.max_concurrency,
        state_file=config.state_file,
    )


async def run_sync_workflow(config: SyncConfig, tracker: IssueTrackerBase | None = None) -> SyncPassResult:
    """Run the sync workflow: one full pass, then keep watching both sides when ``config.watch`` is set.

    Returns the result of the initial pass.
    """
    if tracker is None:
        tracker = await GitHubAdapter.create(
            repo=config.repo,
            github_auth_type=config.github_authentication_type,
            github_pat_token=config.github_pat_token,
            github_app_id=config.github_app_id,
            github_app_private_key_path=config.github_app_private_key_path,
            github_app_installation_id=config.github_app_installation_id,
            github_api_url=config.github_api_url,
        )
    scheduler = build_scheduler(config, tracker)

    start_time = time.time()
    logger.info("Synchronizing issues", repo=config.repo, issues_dir=str(config.issues_dir), watch=config.watch)
    result = await scheduler.run_pass(trigger="initial")
    logger.info("Initial synchronization finished", duration=round(time.time() - start_time, 2), **result.summary())
    if not config.watch:
        return result

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_event.set)
    events: asyncio.Queue[FileEvent] = asyncio.Queue()
    watcher = IssueDirectoryWatcher(scheduler.directory, loop, events)
    watcher.start()
    try:
        await scheduler.run_forever(stop_event, events)
    finally:
        watcher.stop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)
    return result
