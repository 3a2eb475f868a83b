"""Sets up the authenticated PyGithub client."""

from pathlib import Path
from typing import TypeAlias

import structlog
from github import Auth, Github

from github_issues_sync.configuration.exceptions import GitHubClientConfigurationError
from github_issues_sync.configuration.models import GitHubAuthenticationType

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

GitHubClient: TypeAlias = Github

ISSUES_PER_PAGE = 100


def _create_client(auth: Auth.Auth, github_api_url: str) -> Github:
    # Rate limits and network failures surface immediately and are retried on the next poll.
    return Github(auth=auth, base_url=github_api_url, per_page=ISSUES_PER_PAGE, retry=None)


def get_github_app_client(
    github_app_id: int,
    github_app_private_key_path: Path,
    github_app_installation_id: int,
    github_api_url: str,
) -> Github:
    """Returns a GitHub client authenticated as an installation of a GitHub App."""
    try:
        private_key = Path(github_app_private_key_path).read_text(encoding="utf-8")
    except OSError as exc:
        raise GitHubClientConfigurationError(f"Failed to read GitHub App private key from {github_app_private_key_path}: {exc}") from exc
    app_auth = Auth.AppAuth(github_app_id, private_key)
    return _create_client(app_auth.get_installation_auth(github_app_installation_id), github_api_url)


def get_github_pat_client(github_pat_token: str, github_api_url: str) -> Github:
    """Returns a GitHub client authenticated with a Personal Access Token."""
    return _create_client(Auth.Token(github_pat_token), github_api_url)


def get_github_client(
    github_auth_type: GitHubAuthenticationType,
    github_pat_token: str | None,
    github_app_id: int | None,
    github_app_private_key_path: Path | None,
    github_app_installation_id: int | None,
    github_api_url: str,
) -> GitHubClient:
    """Returns an authenticated GitHub client using either GitHub App or PAT credentials.

    Supports a custom base URL for GitHub Enterprise Server (GHES).
    Raises GitHubClientConfigurationError if the credentials required by the authentication type are missing.
    """
    logger.debug("Creating GitHub client", github_api_url=github_api_url, github_auth_type=github_auth_type.value)
    if github_auth_type == GitHubAuthenticationType.APP:
        if not (github_app_id and github_app_private_key_path and github_app_installation_id):
            raise GitHubClientConfigurationError("GitHub App authentication requires app_id, private_key_path, and installation_id in config.")
        return get_github_app_client(github_app_id, github_app_private_key_path, github_app_installation_id, github_api_url)
    if not github_pat_token:
        raise GitHubClientConfigurationError("GitHub PAT authentication requires github_pat_token in config.")
    return get_github_pat_client(github_pat_token, github_api_url)
