"""Models describing synchronization state and the changes detected between GitHub and disk."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict

from github_issues_sync.schemas.issue import IssueRecord, RemoteIssue


class SyncAction(str, Enum):
    """Enum for the action taken when reconciling one change."""

    NOOP = "noop"
    PULLED = "pulled"
    PUSHED = "pushed"
    CREATED = "created"
    CONFLICT_RESOLVED = "conflict_resolved"
    DEFERRED = "deferred"


class FileEventKind(str, Enum):
    """Enum for the kinds of filesystem events the watcher reports."""

    MODIFIED = "modified"
    CREATED = "created"
    REMOVED = "removed"


@dataclass(frozen=True)
class FileEvent:
    """A change to a file in the issues directory."""

    path: Path
    kind: FileEventKind


@dataclass(frozen=True)
class LocalFile:
    """An issue file as read from disk."""

    path: Path
    record: IssueRecord
    fingerprint: str


class SyncSnapshot(BaseModel):
    """The state both sides last agreed on for one issue."""

    model_config = ConfigDict(frozen=True)

    record: IssueRecord
    remote_updated_at: datetime
    local_fingerprint: str

    @property
    def number(self) -> int:
        """The GitHub issue number."""
        if self.record.number is None:
            raise ValueError("Snapshots are only kept for issues that exist on GitHub")
        return self.record.number


@dataclass(frozen=True)
class Unchanged:
    """Neither side differs from the snapshot."""

    number: int | None = None


@dataclass(frozen=True)
class RemoteUpdated:
    """GitHub holds a newer version of the issue."""

    remote: RemoteIssue

    @property
    def number(self) -> int:
        return self.remote.number


@dataclass(frozen=True)
class LocalUpdated:
    """The issue file was edited since the last synchronization."""

    local: LocalFile

    @property
    def number(self) -> int | None:
        return self.local.record.number


@dataclass(frozen=True)
class LocalCreated:
    """A draft issue file that GitHub does not know about yet.

    A draft whose creation on GitHub already succeeded carries the created number.
    """

    local: LocalFile

    @property
    def number(self) -> int | None:
        return self.local.record.number


@dataclass(frozen=True)
class LocalUntracked:
    """A numbered issue file with no snapshot, waiting to be paired with GitHub's version by a full pass."""

    local: LocalFile

    @property
    def number(self) -> int | None:
        return self.local.record.number


@dataclass(frozen=True)
class BothUpdated:
    """Both GitHub and the issue file changed within the same pass."""

    remote: RemoteIssue
    local: LocalFile

    @property
    def number(self) -> int:
        return self.remote.number


ChangeKind: TypeAlias = Unchanged | RemoteUpdated | LocalUpdated | LocalCreated | LocalUntracked | BothUpdated
