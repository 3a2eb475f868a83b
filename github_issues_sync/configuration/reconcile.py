"""Reconcile configuration between CLI arguments and environment variables."""

from pathlib import Path
from typing import TypeVar

from github_issues_sync.configuration.env import Settings
from github_issues_sync.configuration.exceptions import (
    GitHubAuthenticationConfigurationUndefinedError,
    InvalidConfigurationValueError,
    RequiredConfigurationElementError,
)
from github_issues_sync.configuration.models import GitHubAuthenticationType, SyncConfig

T = TypeVar("T")


async def validate_github_authentication_configuration(
    github_pat_token: str | None,
    github_app_id: int | None,
    github_app_private_key_path: Path | None,
    github_app_installation_id: int | None,
) -> GitHubAuthenticationType:
    """Validates the GitHub authentication configuration.

    Args:
        github_pat_token (str | None): The GitHub PAT token.
        github_app_id (int | None): The GitHub App ID.
        github_app_private_key_path (Path | None): The path to the GitHub App private key.
        github_app_installation_id (int | None): The GitHub App installation ID.

    Raises:
        GitHubAuthenticationConfigurationUndefinedError: If both or neither of the PAT and App configurations are defined,
            or if the App configuration is incomplete.

    Returns:
        GitHubAuthenticationType: The type of GitHub authentication used.
    """
    app_settings = [
        ("GitHub App ID", "--github-app-id", "GITHUB_APP_ID", github_app_id),
        ("GitHub App private key path", "--github-app-private-key-path", "GITHUB_APP_PRIVATE_KEY_PATH", github_app_private_key_path),
        ("GitHub App installation ID", "--github-app-installation-id", "GITHUB_APP_INSTALLATION_ID", github_app_installation_id),
    ]
    any_app_setting = any(value for *_, value in app_settings)

    if github_pat_token and any_app_setting:
        raise GitHubAuthenticationConfigurationUndefinedError("Both PAT and GitHub App configurations are defined. Please use one or the other.")

    if github_pat_token:
        return GitHubAuthenticationType.PAT

    if not any_app_setting:
        raise GitHubAuthenticationConfigurationUndefinedError(
            "No GitHub authentication configuration provided. Please provide either a PAT or a GitHub App configuration."
        )

    missing_settings = [(name, cli_name, env_name) for name, cli_name, env_name, value in app_settings if not value]
    if missing_settings:
        msg = "Incomplete GitHub App configuration - missing settings include " + ", ".join(
            f"{name} (command line option {cli_name}, environment variable {env_name})" for name, cli_name, env_name in missing_settings
        )
        raise GitHubAuthenticationConfigurationUndefinedError(msg)
    return GitHubAuthenticationType.APP


def _prefer_cli(cli_value: T | None, env_value: T) -> T:
    """Return the CLI value when one was given, otherwise the environment value."""
    return env_value if cli_value is None else cli_value


async def reconcile_sync_configuration(
    cli_debug: bool | None = None,
    cli_github_api_url: str | None = None,
    cli_github_pat_token: str | None = None,
    cli_github_app_id: int | None = None,
    cli_github_app_private_key_path: Path | None = None,
    cli_github_app_installation_id: int | None = None,
    cli_repo: str | None = None,
    cli_issues_dir: Path | None = None,
    cli_watch: bool = False,
    cli_sync_interval: float | None = None,
    cli_debounce_seconds: float | None = None,
    cli_max_concurrency: int | None = None,
    cli_state_file: Path | None = None,
    settings: Settings | None = None,
) -> SyncConfig:
    """Reconcile the sync command configuration; CLI arguments take precedence over environment settings.

    Raises:
        RequiredConfigurationElementError: If no repository was configured.
        InvalidConfigurationValueError: If a timing or concurrency setting is out of range.
        GitHubAuthenticationConfigurationUndefinedError: If the GitHub authentication configuration is invalid.
    """
    settings = settings or Settings()

    repo = _prefer_cli(cli_repo, settings.REPO)
    if not repo:
        raise RequiredConfigurationElementError(name="GitHub repository", cli_name="REPO argument", env_name="REPO")

    github_pat_token = _prefer_cli(cli_github_pat_token, settings.GITHUB_PAT_TOKEN)
    github_app_id = _prefer_cli(cli_github_app_id, settings.GITHUB_APP_ID)
    github_app_private_key_path = _prefer_cli(cli_github_app_private_key_path, settings.GITHUB_APP_PRIVATE_KEY_PATH)
    github_app_installation_id = _prefer_cli(cli_github_app_installation_id, settings.GITHUB_APP_INSTALLATION_ID)
    github_auth_type = await validate_github_authentication_configuration(
        github_pat_token=github_pat_token,
        github_app_id=github_app_id,
        github_app_private_key_path=github_app_private_key_path,
        github_app_installation_id=github_app_installation_id,
    )

    sync_interval = _prefer_cli(cli_sync_interval, settings.SYNC_INTERVAL)
    if sync_interval <= 0:
        raise InvalidConfigurationValueError("sync interval", sync_interval, "must be greater than zero")
    debounce_seconds = _prefer_cli(cli_debounce_seconds, settings.DEBOUNCE_SECONDS)
    if debounce_seconds < 0:
        raise InvalidConfigurationValueError("debounce window", debounce_seconds, "must not be negative")
    max_concurrency = _prefer_cli(cli_max_concurrency, settings.MAX_CONCURRENCY)
    if max_concurrency < 1:
        raise InvalidConfigurationValueError("max concurrency", max_concurrency, "must be at least 1")

    return SyncConfig(
        debug=_prefer_cli(cli_debug, settings.DEBUG),
        github_api_url=_prefer_cli(cli_github_api_url, settings.GITHUB_API_URL),
        github_authentication_type=github_auth_type,
        github_pat_token=github_pat_token,
        github_app_id=github_app_id,
        github_app_private_key_path=github_app_private_key_path,
        github_app_installation_id=github_app_installation_id,
        repo=repo,
        issues_dir=_prefer_cli(cli_issues_dir, settings.ISSUES_DIR),
        watch=cli_watch,
        sync_interval=sync_interval,
        debounce_seconds=debounce_seconds,
        max_concurrency=max_concurrency,
        state_file=_prefer_cli(cli_state_file, settings.STATE_FILE),
    )
