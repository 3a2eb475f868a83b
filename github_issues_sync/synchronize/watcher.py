"""Watches the issues directory and delivers file events to the scheduler's queue."""

import asyncio
import os
from pathlib import Path
from typing import Callable

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileSystemMovedEvent
from watchdog.observers import Observer

from github_issues_sync.synchronize.local import LocalIssueDirectory
from github_issues_sync.synchronize.models import FileEvent, FileEventKind

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class IssueFileEventHandler(FileSystemEventHandler):
    """Translates watchdog events on issue files into ``FileEvent`` values."""

    def __init__(self, directory: LocalIssueDirectory, emit: Callable[[FileEvent], None]) -> None:
        super().__init__()
        self._directory = directory
        self._emit = emit

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, FileEventKind.CREATED, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, FileEventKind.MODIFIED, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, FileEventKind.REMOVED, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors commonly save through a temporary file renamed over the original.
        self._handle(event.src_path, FileEventKind.REMOVED, event.is_directory)
        if isinstance(event, FileSystemMovedEvent):
            self._handle(event.dest_path, FileEventKind.CREATED, event.is_directory)

    def _handle(self, raw_path: str | bytes, kind: FileEventKind, is_directory: bool) -> None:
        if is_directory:
            return
        path = Path(os.fsdecode(raw_path))
        if not self._directory.is_issue_file(path):
            return
        logger.debug("Issue file event", path=str(path), kind=kind.value)
        self._emit(FileEvent(path=path, kind=kind))


class IssueDirectoryWatcher:
    """Watches the issues directory from a watchdog thread and forwards events into an asyncio queue."""

    def __init__(self, directory: LocalIssueDirectory, loop: asyncio.AbstractEventLoop, events: "asyncio.Queue[FileEvent]") -> None:
        """Initialize the watcher for the directory; events are put on ``events`` from within ``loop``."""
        self._directory = directory
        self._loop = loop
        self._events = events
        self._observer: Observer | None = None  # type: ignore[valid-type]
        self._handler = IssueFileEventHandler(directory, self._forward)

    def _forward(self, event: FileEvent) -> None:
        self._loop.call_soon_threadsafe(self._events.put_nowait, event)

    def start(self) -> None:
        """Begin watching the issues directory."""
        if self._observer is not None:
            return
        self._observer = Observer()
        self._observer.schedule(self._handler, str(self._directory.root), recursive=False)
        self._observer.start()
        logger.info("Watching issues directory for changes", path=str(self._directory.root))

    def stop(self) -> None:
        """Stop watching and wait for the watchdog thread to exit."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        logger.info("Stopped watching issues directory", path=str(self._directory.root))
