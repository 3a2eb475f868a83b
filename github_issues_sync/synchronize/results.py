"""Contains results of synchronization passes."""

from pathlib import Path
from typing import Any

from github_issues_sync.synchronize.models import SyncAction


class IssueSynchronizationResult:
    """Contains the outcome of reconciling a single issue."""

    def __init__(self, issue_number: int | None, path: Path | None, action: SyncAction) -> None:
        """Initialize the result with the issue, its file, and the action taken."""
        self.issue_number = issue_number
        self.path = path
        self.action = action


class SyncPassResult:
    """Contains results of one synchronization pass."""

    def __init__(self, trigger: str) -> None:
        """Initialize an empty result for a pass started by the given trigger."""
        self.trigger = trigger
        self.results: list[IssueSynchronizationResult] = []
        self.errors: list[dict[str, Any]] = []
        self.duration: float = 0.0

    def add_result(self, issue_number: int | None, path: Path | None, action: SyncAction) -> None:
        """Record the action taken for one issue."""
        self.results.append(IssueSynchronizationResult(issue_number, path, action))

    def add_error(self, error: Exception, issue_number: int | None = None, path: Path | None = None) -> None:
        """Record an error tied to an issue number or file."""
        self.errors.append(
            {
                "issue_number": issue_number,
                "path": str(path) if path is not None else None,
                "error_type": type(error).__name__,
                "error": str(error),
            }
        )

    def count(self, action: SyncAction) -> int:
        """Number of issues for which the given action was taken."""
        return sum(1 for result in self.results if result.action == action)

    @property
    def conflicts(self) -> list[IssueSynchronizationResult]:
        """Issues that changed on both sides and were resolved in favor of GitHub."""
        return [result for result in self.results if result.action == SyncAction.CONFLICT_RESOLVED]

    @property
    def has_errors(self) -> bool:
        """Whether any issue could not be synchronized."""
        return bool(self.errors)

    def summary(self) -> dict[str, Any]:
        """Return counts suitable for logging."""
        return {
            "trigger": self.trigger,
            "pulled": self.count(SyncAction.PULLED),
            "pushed": self.count(SyncAction.PUSHED),
            "created": self.count(SyncAction.CREATED),
            "conflicts": self.count(SyncAction.CONFLICT_RESOLVED),
            "unchanged": self.count(SyncAction.NOOP),
            "deferred": self.count(SyncAction.DEFERRED),
            "errors": len(self.errors),
            "duration": round(self.duration, 2),
        }
