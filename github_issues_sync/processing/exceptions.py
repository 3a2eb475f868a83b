"""Custom exceptions for the processing module."""

from pathlib import Path


class ParseError(Exception):
    """Raised when the text of an issue file cannot be turned into an issue record."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        """Initialize the error with a message and, when known, the offending file."""
        super().__init__(message if path is None else f"{path}: {message}")
        self.message = message
        self.path = path


class MalformedFrontmatterError(ParseError):
    """Raised when the frontmatter block is absent, unterminated, or invalid."""

    pass


class MissingRequiredFieldError(ParseError):
    """Raised when a required frontmatter field is absent."""

    def __init__(self, field: str, path: Path | None = None) -> None:
        """Initialize the error with the name of the missing field."""
        super().__init__(f"Missing required frontmatter field: {field}", path)
        self.field = field


class IssuePathMismatchError(ParseError):
    """Raised when an issue file's name and the number in its frontmatter disagree."""

    def __init__(self, path: Path, expected_number: int, actual_number: int | None) -> None:
        """Initialize the error with both issue numbers."""
        super().__init__(f"File name implies issue #{expected_number} but frontmatter declares number {actual_number}", path)
        self.expected_number = expected_number
        self.actual_number = actual_number
