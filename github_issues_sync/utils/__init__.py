"""Utility modules for shared functionality."""

from .constants import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_ISSUES_DIR,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_SYNC_INTERVAL,
    DRAFT_ISSUE_NUMBER,
    ISSUE_FILENAME_PATTERN,
    ISSUE_FILENAME_TEMPLATE,
)

__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "DEFAULT_ISSUES_DIR",
    "DEFAULT_MAX_CONCURRENCY",
    "DEFAULT_SYNC_INTERVAL",
    "DRAFT_ISSUE_NUMBER",
    "ISSUE_FILENAME_PATTERN",
    "ISSUE_FILENAME_TEMPLATE",
]
