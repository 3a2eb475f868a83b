"""GitHub issue tracker adapter for the PyGithub library.

PyGithub is synchronous, so every blocking call runs in a worker thread through
``asyncio.to_thread`` to keep the event loop free for the scheduler.
"""

import asyncio
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence, TypeVar

import requests
import structlog
from github import BadCredentialsException, GithubException, RateLimitExceededException, UnknownObjectException
from github.Issue import Issue
from github.Repository import Repository

from github_issues_sync.configuration.models import GitHubAuthenticationType
from github_issues_sync.schemas.issue import SYNCED_FIELDS, IssueRecord, IssueState, RemoteIssue
from github_issues_sync.synchronize.exceptions import RemoteError, RemoteErrorKind
from github_issues_sync.synchronize.utils import extract_label_names
from github_issues_sync.utils.constants import DEFAULT_GITHUB_API_URL
from github_issues_sync.utils.github import split_repository_in_configuration

from .abc import IssueTrackerBase
from .client import GitHubClient, get_github_client

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def remote_error_kind_for_status(status_code: int, message: str, headers: Any = None) -> RemoteErrorKind:
    """Map an HTTP status code returned by GitHub to a remote error category."""
    if status_code == 401:
        return RemoteErrorKind.AUTH_FAILED
    if status_code == 403:
        remaining = headers.get("x-ratelimit-remaining") if headers is not None else None
        if remaining == "0" or "rate limit" in message.lower():
            return RemoteErrorKind.RATE_LIMITED
        return RemoteErrorKind.AUTH_FAILED
    if status_code == 429:
        return RemoteErrorKind.RATE_LIMITED
    if status_code in (404, 410):
        return RemoteErrorKind.NOT_FOUND
    if status_code == 422:
        return RemoteErrorKind.REJECTED
    return RemoteErrorKind.NETWORK


def _error_message(exc: GithubException) -> str:
    if isinstance(exc.data, dict) and exc.data.get("message"):
        return str(exc.data["message"])
    return exc.message or str(exc)


def translate_github_errors(func: F) -> F:
    """Decorator translating PyGithub and network failures into ``RemoteError``, logging 422 details returned by GitHub."""

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except RateLimitExceededException as exc:
            headers = exc.headers or {}
            logger.warning(
                "GitHub rate limit exceeded",
                function=func.__name__,
                retry_after=headers.get("retry-after", "unknown"),
            )
            raise RemoteError(RemoteErrorKind.RATE_LIMITED, _error_message(exc), exc.status) from exc
        except BadCredentialsException as exc:
            raise RemoteError(RemoteErrorKind.AUTH_FAILED, _error_message(exc), exc.status) from exc
        except UnknownObjectException as exc:
            raise RemoteError(RemoteErrorKind.NOT_FOUND, _error_message(exc), exc.status) from exc
        except GithubException as exc:
            message = _error_message(exc)
            if exc.status == 422:
                errors = exc.data.get("errors", []) if isinstance(exc.data, dict) else []
                logger.error(
                    "GitHub 422 Unprocessable Entity",
                    function=func.__name__,
                    message=message,
                    errors=errors,
                    status_code=422,
                )
                raise RemoteError(RemoteErrorKind.REJECTED, f"{message} | errors: {errors}", exc.status) from exc
            kind = remote_error_kind_for_status(exc.status, message, exc.headers)
            raise RemoteError(kind, message, exc.status) from exc
        except requests.exceptions.RequestException as exc:
            raise RemoteError(RemoteErrorKind.NETWORK, str(exc)) from exc

    return wrapper  # type: ignore


def issue_to_remote_issue(issue: Issue) -> RemoteIssue:
    """Convert a PyGithub issue into a remote issue record."""
    body = issue.body if isinstance(issue.body, str) else ""
    return RemoteIssue(
        record=IssueRecord(
            number=issue.number,
            title=issue.title,
            state=IssueState(issue.state),
            labels=frozenset(extract_label_names(issue.labels or [])),
            body=body,
        ),
        updated_at=issue.updated_at,
    )


def is_pull_request(issue: Issue) -> bool:
    """Whether an entry of the issues API is actually a pull request."""
    # Reading ``pull_request`` on a listed plain issue makes PyGithub fetch the whole issue again.
    return "/pull/" in (issue.html_url or "")


class GitHubAdapter(IssueTrackerBase):
    """GitHub issue tracker adapter for the PyGithub library."""

    def __init__(self, client: GitHubClient, owner: str, repo_name: str) -> None:
        """Initialize the GitHub client adapter with an already-initialized client."""
        self.client = client
        self.owner = owner
        self.repo_name = repo_name
        self._repository: Repository | None = None

    @classmethod
    async def create(
        cls,
        repo: str,
        github_auth_type: GitHubAuthenticationType,
        github_pat_token: str | None = None,
        github_app_id: int | None = None,
        github_app_private_key_path: Path | None = None,
        github_app_installation_id: int | None = None,
        github_api_url: str = DEFAULT_GITHUB_API_URL,
    ) -> "GitHubAdapter":
        """Create a new GitHub client adapter.

        Args:
            repo: Repository in 'owner/repo' format
            github_auth_type: Type of authentication (PAT or APP)
            github_pat_token: Personal access token (required for PAT auth)
            github_app_id: GitHub App ID (required for APP auth)
            github_app_private_key_path: Path to private key file (required for APP auth)
            github_app_installation_id: Installation ID (required for APP auth)
            github_api_url: GitHub API URL (defaults to https://api.github.com)

        Returns:
            Configured GitHubAdapter instance
        """
        owner, repo_name = await split_repository_in_configuration(repo=repo)
        logger.info(
            "Creating client for GitHub instance and repository",
            github_api_url=github_api_url,
            owner=owner,
            repo_name=repo_name,
        )
        client = get_github_client(
            github_auth_type=github_auth_type,
            github_pat_token=github_pat_token,
            github_app_id=github_app_id,
            github_app_private_key_path=github_app_private_key_path,
            github_app_installation_id=github_app_installation_id,
            github_api_url=github_api_url,
        )
        return cls(client, owner, repo_name)

    def _get_repository(self) -> Repository:
        if self._repository is None:
            self._repository = self.client.get_repo(f"{self.owner}/{self.repo_name}")
        return self._repository

    @translate_github_errors
    async def list_issues(self) -> list[RemoteIssue]:
        """List all issues of the repository in every state, skipping pull requests."""

        def _sync() -> list[RemoteIssue]:
            issues = self._get_repository().get_issues(state="all")
            return [issue_to_remote_issue(issue) for issue in issues if not is_pull_request(issue)]

        return await asyncio.to_thread(_sync)

    @translate_github_errors
    async def create_issue(self, record: IssueRecord) -> RemoteIssue:
        """Create an issue from a record; GitHub assigns its number."""

        def _sync() -> RemoteIssue:
            issue = self._get_repository().create_issue(title=record.title, body=record.body, labels=sorted(record.labels))
            return issue_to_remote_issue(issue)

        return await asyncio.to_thread(_sync)

    @translate_github_errors
    async def update_issue(self, issue_number: int, record: IssueRecord, fields: Sequence[str] | None = None) -> datetime:
        """Update the given synced fields of an issue and return its new ``updated_at``."""
        params: dict[str, Any] = {}
        for field in fields if fields is not None else SYNCED_FIELDS:
            if field == "title":
                params["title"] = record.title
            elif field == "body":
                params["body"] = record.body
            elif field == "state":
                params["state"] = record.state.value
            elif field == "labels":
                params["labels"] = sorted(record.labels)
            else:
                raise ValueError(f"Unknown issue field: {field}")

        def _sync() -> datetime:
            issue = self._get_repository().get_issue(issue_number)
            issue.edit(**params)
            return issue.updated_at

        return await asyncio.to_thread(_sync)
