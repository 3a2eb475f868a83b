"""Encodes issue records to Markdown files with YAML frontmatter and decodes them back.

An issue file looks like this::

    ---
    number: 42
    title: Bug fixed
    state: open
    labels:
      - bug
    ---

    Free text body of the issue.

Exactly one blank line separates the frontmatter block from the body, so that
decoding an encoded record always yields the same record.
"""

import io
import re
from pathlib import Path
from typing import Any

import structlog
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from github_issues_sync.processing.exceptions import MalformedFrontmatterError, MissingRequiredFieldError
from github_issues_sync.schemas.issue import IssueRecord, IssueState
from github_issues_sync.utils.constants import FRONTMATTER_DELIMITER

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

yaml = YAML(typ="safe")

_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<header>.*?)^---[ \t]*\r?(?:\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


def create_frontmatter_dumper() -> YAML:
    """Creates a YAML object that renders the frontmatter mapping in block style."""
    yaml_dumper = YAML()
    yaml_dumper.default_flow_style = False
    yaml_dumper.indent(mapping=2, sequence=4, offset=2)  # type: ignore[attr-defined]
    yaml_dumper.width = 4096  # Titles are never wrapped
    return yaml_dumper


def encode_issue(record: IssueRecord) -> str:
    """Render an issue record as the text of an issue file."""
    header: dict[str, Any] = {}
    if record.number is not None:
        header["number"] = record.number
    header["title"] = record.title
    header["state"] = record.state.value
    header["labels"] = sorted(record.labels)

    stream = io.StringIO()
    create_frontmatter_dumper().dump(header, stream)
    return f"{FRONTMATTER_DELIMITER}\n{stream.getvalue()}{FRONTMATTER_DELIMITER}\n\n{record.body}"


def decode_issue(text: str, allow_draft: bool = False, path: Path | None = None) -> IssueRecord:
    """Parse the text of an issue file into an issue record.

    Args:
        text: Full content of the issue file.
        allow_draft: Whether the ``number`` field may be absent (local drafts only).
        path: File the text was read from, used to attribute errors.

    Raises:
        MalformedFrontmatterError: If the frontmatter block is absent, unterminated, or holds invalid values.
        MissingRequiredFieldError: If ``number`` (outside of drafts) or ``title`` is absent.
    """
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        raise MalformedFrontmatterError("File does not start with a terminated frontmatter block", path)

    try:
        header = yaml.load(match.group("header"))
    except YAMLError as exc:
        raise MalformedFrontmatterError(f"Frontmatter is not valid YAML: {exc}", path) from exc
    if header is None:
        header = {}
    if not isinstance(header, dict):
        raise MalformedFrontmatterError("Frontmatter must be a mapping", path)

    extra_fields = set(header) - {"number", "title", "state", "labels"}
    if extra_fields:
        logger.debug("Extra frontmatter fields will be ignored", path=str(path), extra_fields=sorted(extra_fields))

    body = text[match.end() :]
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]

    return IssueRecord(
        number=_parse_number(header.get("number"), allow_draft, path),
        title=_parse_title(header.get("title"), path),
        state=_parse_state(header.get("state"), path),
        labels=_parse_labels(header.get("labels"), path),
        body=body,
    )


def _parse_number(value: Any, allow_draft: bool, path: Path | None) -> int | None:
    if value is None:
        if allow_draft:
            return None
        raise MissingRequiredFieldError("number", path)
    if isinstance(value, bool):
        raise MalformedFrontmatterError(f"Issue number must be an integer, got {value!r}", path)
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise MalformedFrontmatterError(f"Issue number must be an integer, got {value!r}", path) from exc
    if number < 0:
        raise MalformedFrontmatterError(f"Issue number must not be negative, got {number}", path)
    return number


def _parse_title(value: Any, path: Path | None) -> str:
    if value is None or str(value).strip() == "":
        raise MissingRequiredFieldError("title", path)
    return str(value)


def _parse_state(value: Any, path: Path | None) -> IssueState:
    if value is None:
        return IssueState.OPEN
    try:
        return IssueState(str(value).strip().lower())
    except ValueError as exc:
        raise MalformedFrontmatterError(f"Issue state must be 'open' or 'closed', got {value!r}", path) from exc


def _parse_labels(value: Any, path: Path | None) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset(label.strip() for label in value.split(",") if label.strip())
    if isinstance(value, list):
        return frozenset(str(label).strip() for label in value if label is not None and str(label).strip())
    raise MalformedFrontmatterError(f"Issue labels must be a list, got {type(value).__name__}", path)
