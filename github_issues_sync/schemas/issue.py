"""Pydantic schema for a GitHub issue as it is mirrored on disk."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from github_issues_sync.utils.constants import DRAFT_ISSUE_NUMBER

SYNCED_FIELDS: tuple[str, ...] = ("title", "body", "state", "labels")
"""Issue fields kept consistent between GitHub and the local directory."""


class IssueState(str, Enum):
    """Enum for GitHub issue states."""

    OPEN = "open"
    CLOSED = "closed"


class IssueRecord(BaseModel):
    """Pydantic model for one issue, regardless of whether it came from GitHub or from disk."""

    model_config = ConfigDict(frozen=True)

    number: int | None = None
    title: str
    state: IssueState = IssueState.OPEN
    labels: frozenset[str] = Field(default_factory=frozenset)
    body: str = ""

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        """Reject titles without any visible character; GitHub requires one."""
        if not value.strip():
            raise ValueError("Issue title must not be blank")
        return value

    @field_validator("labels", mode="before")
    @classmethod
    def normalize_labels(cls, value: Any) -> Any:
        """Strip whitespace around label names and drop empty ones, as an issue file cannot hold them."""
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(label.strip() if isinstance(label, str) else label for label in value) - {""}
        return value

    @property
    def is_draft(self) -> bool:
        """Whether the record has not been created on GitHub yet."""
        return self.number is None or self.number == DRAFT_ISSUE_NUMBER

    def changed_fields(self, other: "IssueRecord") -> list[str]:
        """Return the synced fields whose value differs in ``other``."""
        return [field for field in SYNCED_FIELDS if getattr(self, field) != getattr(other, field)]


class RemoteIssue(BaseModel):
    """An issue record as returned by GitHub, along with its last update timestamp."""

    model_config = ConfigDict(frozen=True)

    record: IssueRecord
    updated_at: datetime

    @property
    def number(self) -> int:
        """The GitHub issue number."""
        if self.record.number is None:
            raise ValueError("Issues returned by GitHub always carry a number")
        return self.record.number
