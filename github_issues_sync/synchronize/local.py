"""Reads and writes the issue files of the local issues directory."""

import hashlib
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

import structlog

from github_issues_sync.processing.exceptions import IssuePathMismatchError, MalformedFrontmatterError
from github_issues_sync.processing.frontmatter import decode_issue, encode_issue
from github_issues_sync.schemas.issue import IssueRecord
from github_issues_sync.synchronize.models import LocalFile
from github_issues_sync.utils.constants import DRAFT_ISSUE_NUMBER, ISSUE_FILENAME_PATTERN, ISSUE_FILENAME_TEMPLATE

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def fingerprint_bytes(data: bytes) -> str:
    """Return the content fingerprint of raw file bytes."""
    return hashlib.sha256(data).hexdigest()


@contextmanager
def atomic_write_text(path: Path) -> Iterator[IO[str]]:
    """Write a text file atomically by writing a sibling temporary file and renaming it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as stream:
            yield stream
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


def issue_number_from_path(path: Path) -> int | None:
    """Return the issue number encoded in an issue file name, or None for any other file."""
    match = ISSUE_FILENAME_PATTERN.match(path.name)
    if match is None:
        return None
    return int(match.group(1))


class LocalIssueDirectory:
    """The directory of Markdown issue files mirrored from GitHub."""

    def __init__(self, root: Path) -> None:
        """Initialize the directory, creating it if needed."""
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, number: int) -> Path:
        """Return the canonical path of the file for an issue number."""
        return self.root / ISSUE_FILENAME_TEMPLATE.format(number=number)

    @property
    def draft_path(self) -> Path:
        """Path of the file holding a local draft issue."""
        return self.path_for(DRAFT_ISSUE_NUMBER)

    def is_issue_file(self, path: Path) -> bool:
        """Whether a path names an issue file directly inside this directory."""
        return path.parent.resolve() == self.root.resolve() and issue_number_from_path(path) is not None

    def scan(self) -> list[Path]:
        """Return all issue files in the directory, ordered by issue number."""
        paths = [path for path in self.root.iterdir() if path.is_file() and issue_number_from_path(path) is not None]
        return sorted(paths, key=lambda path: issue_number_from_path(path) or 0)

    def read(self, path: Path) -> LocalFile:
        """Read and decode an issue file.

        Raises:
            ParseError: If the file content cannot be decoded.
            IssuePathMismatchError: If the file name and the frontmatter number disagree.
        """
        expected_number = issue_number_from_path(path)
        if expected_number is None:
            raise ValueError(f"Not an issue file: {path}")
        data = path.read_bytes()
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedFrontmatterError("Issue file is not valid UTF-8", path) from exc
        is_draft = expected_number == DRAFT_ISSUE_NUMBER
        record = decode_issue(text, allow_draft=is_draft, path=path)
        if is_draft:
            if not record.is_draft:
                raise IssuePathMismatchError(path, expected_number, record.number)
        elif record.number != expected_number:
            raise IssuePathMismatchError(path, expected_number, record.number)
        return LocalFile(path=path, record=record, fingerprint=fingerprint_bytes(data))

    def write(self, record: IssueRecord) -> LocalFile:
        """Write an issue record to its canonical file, leaving the file untouched when it already holds the same bytes."""
        if record.is_draft or record.number is None:
            raise ValueError("Only issues that exist on GitHub are written to the issues directory")
        path = self.path_for(record.number)
        data = encode_issue(record).encode("utf-8")
        if path.exists() and path.read_bytes() == data:
            logger.debug("Issue file already up to date", issue_number=record.number, path=str(path))
        else:
            with atomic_write_text(path) as stream:
                stream.write(data.decode("utf-8"))
            logger.info("Wrote issue file", issue_number=record.number, path=str(path))
        return LocalFile(path=path, record=record, fingerprint=fingerprint_bytes(data))

    def remove(self, path: Path) -> None:
        """Remove an issue file if it exists."""
        if path.exists():
            path.unlink()
            logger.info("Removed issue file", path=str(path))
