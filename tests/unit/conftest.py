"""Fixtures for unit tests."""

from pathlib import Path
from typing import Generator

import pytest
import structlog

from github_issues_sync.synchronize.local import LocalIssueDirectory
from github_issues_sync.synchronize.reconciler import Reconciler
from github_issues_sync.synchronize.scheduler import SyncScheduler
from github_issues_sync.synchronize.snapshots import SnapshotStore
from tests.unit.fakes import FakeIssueTracker


@pytest.fixture(autouse=True)
def configure_structlog_for_caplog() -> Generator[None, None, None]:
    """Configure structlog for use with caplog."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def tracker() -> FakeIssueTracker:
    """An empty in-memory issue tracker."""
    return FakeIssueTracker()


@pytest.fixture
def directory(tmp_path: Path) -> LocalIssueDirectory:
    """An empty issues directory."""
    return LocalIssueDirectory(tmp_path / "issues")


@pytest.fixture
def store() -> SnapshotStore:
    """An empty snapshot store."""
    return SnapshotStore()


@pytest.fixture
def reconciler(tracker: FakeIssueTracker, directory: LocalIssueDirectory, store: SnapshotStore) -> Reconciler:
    """A reconciler wired to the fake tracker and the temporary issues directory."""
    return Reconciler(tracker, directory, store)


@pytest.fixture
def scheduler(tracker: FakeIssueTracker, directory: LocalIssueDirectory, store: SnapshotStore, reconciler: Reconciler) -> SyncScheduler:
    """A scheduler with a long poll interval and a short debounce window."""
    return SyncScheduler(tracker, directory, store, reconciler, poll_interval=3600, debounce_seconds=0.05, max_concurrency=4)
