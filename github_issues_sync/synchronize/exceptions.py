"""Custom exceptions for the synchronize module."""

from enum import Enum
from pathlib import Path


class RemoteErrorKind(str, Enum):
    """Enum for the categories of GitHub failures."""

    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    AUTH_FAILED = "auth_failed"
    REJECTED = "rejected"


class RemoteError(Exception):
    """Raised when a call to GitHub fails."""

    def __init__(self, kind: RemoteErrorKind, message: str, status_code: int | None = None) -> None:
        """Initialize the error with its category and, when available, the HTTP status code."""
        super().__init__(f"GitHub {kind.value} error: {message}")
        self.kind = kind
        self.message = message
        self.status_code = status_code

    @property
    def is_fatal(self) -> bool:
        """Whether the run must stop instead of retrying on the next pass."""
        return self.kind == RemoteErrorKind.AUTH_FAILED


class SyncError(Exception):
    """Raised when a change to one issue could not be applied."""

    def __init__(self, message: str, issue_number: int | None = None) -> None:
        """Initialize the error with a message and the issue it concerns."""
        super().__init__(message)
        self.issue_number = issue_number


class LocalWriteError(SyncError):
    """Raised when an issue file could not be written and nothing was committed on GitHub."""

    def __init__(self, path: Path, issue_number: int | None, reason: str) -> None:
        """Initialize the error with the file that could not be written."""
        super().__init__(f"Failed to write {path}: {reason}", issue_number)
        self.path = path


class PartialApplyError(SyncError):
    """Raised when one side committed a change and the other side failed to follow."""

    def __init__(self, issue_number: int, committed_side: str, reason: str) -> None:
        """Initialize the error with the issue number and the side that committed."""
        super().__init__(
            f"Issue #{issue_number} was only partially synchronized: {committed_side} side committed, other side failed: {reason}",
            issue_number,
        )
        self.committed_side = committed_side


class UntrackedIssueFileError(SyncError):
    """Raised when a numbered issue file refers to an issue that GitHub did not list."""

    def __init__(self, path: Path, issue_number: int | None) -> None:
        """Initialize the error with the file and the issue number it claims."""
        super().__init__(f"{path} refers to issue #{issue_number}, which does not exist on GitHub; the file is left untouched", issue_number)
        self.path = path


class DuplicateIssueFileError(SyncError):
    """Raised when two local files claim the same issue number within one pass."""

    def __init__(self, path: Path, issue_number: int, claimed_by: Path) -> None:
        """Initialize the error with the skipped file and the file that already claimed the number."""
        super().__init__(f"{path} claims issue #{issue_number}, which {claimed_by} already claims; the file is skipped", issue_number)
        self.path = path
        self.claimed_by = claimed_by
