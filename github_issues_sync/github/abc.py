"""Base ABC for GitHub issue trackers."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence

from github_issues_sync.schemas.issue import IssueRecord, RemoteIssue


class IssueTrackerBase(ABC):
    """Base ABC for the remote side of the synchronization.

    Every method raises ``RemoteError`` when the call to the tracker fails.
    """

    @abstractmethod
    async def list_issues(self) -> list[RemoteIssue]:
        """List every issue of the repository, open and closed, excluding pull requests."""
        pass

    @abstractmethod
    async def create_issue(self, record: IssueRecord) -> RemoteIssue:
        """Create an issue and return it with its assigned number."""
        pass

    @abstractmethod
    async def update_issue(self, issue_number: int, record: IssueRecord, fields: Sequence[str] | None = None) -> datetime:
        """Update an issue and return its new ``updated_at``.

        Only the synced fields named in ``fields`` are sent; all of them when it is None.
        """
        pass
