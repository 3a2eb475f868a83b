"""Contains unit tests for the issue record schema."""

import pytest
from pydantic import ValidationError

from github_issues_sync.schemas.issue import IssueRecord


def test_labels_are_stripped_and_empty_labels_dropped() -> None:
    """Test that label names are normalized the way an issue file stores them."""
    record = IssueRecord(number=1, title="T", labels={" spaced ", "", "  ", "bug"})

    assert record.labels == frozenset({"spaced", "bug"})


@pytest.mark.parametrize("title", [pytest.param("", id="empty"), pytest.param("   ", id="spaces only"), pytest.param("\n\t", id="control whitespace")])
def test_blank_title_is_rejected(title: str) -> None:
    """Test that a record cannot be built without a visible title."""
    with pytest.raises(ValidationError, match="title must not be blank"):
        IssueRecord(number=1, title=title)


def test_padded_title_is_kept() -> None:
    """Test that surrounding whitespace in a non-blank title is preserved."""
    assert IssueRecord(number=1, title="  Padded  ").title == "  Padded  "
