"""Unit tests for reconciling the sync command configuration."""

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from github_issues_sync.configuration.exceptions import (
    GitHubAuthenticationConfigurationUndefinedError,
    InvalidConfigurationValueError,
    RequiredConfigurationElementError,
)
from github_issues_sync.configuration.models import GitHubAuthenticationType, SyncConfig
from github_issues_sync.configuration.env import Settings
from github_issues_sync.configuration.reconcile import reconcile_sync_configuration, validate_github_authentication_configuration

KEY_PATH = Path("/path/to/key.pem")


def make_settings(**overrides: Any) -> Any:
    values: dict[str, Any] = {
        "DEBUG": False,
        "GITHUB_API_URL": "https://api.github.com",
        "REPO": None,
        "GITHUB_PAT_TOKEN": None,
        "GITHUB_APP_ID": None,
        "GITHUB_APP_PRIVATE_KEY_PATH": None,
        "GITHUB_APP_INSTALLATION_ID": None,
        "ISSUES_DIR": Path("./issues"),
        "SYNC_INTERVAL": 300.0,
        "DEBOUNCE_SECONDS": 0.5,
        "MAX_CONCURRENCY": 4,
        "STATE_FILE": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.mark.asyncio
async def test_valid_pat_authentication() -> None:
    """Test that PAT authentication is validated correctly."""
    # When
    auth_type = await validate_github_authentication_configuration(
        github_pat_token="test-token",
        github_app_id=None,
        github_app_private_key_path=None,
        github_app_installation_id=None,
    )

    # Then
    assert auth_type == GitHubAuthenticationType.PAT


@pytest.mark.asyncio
async def test_valid_app_authentication() -> None:
    """Test that GitHub App authentication is validated correctly."""
    # When
    auth_type = await validate_github_authentication_configuration(
        github_pat_token=None,
        github_app_id=12345,
        github_app_private_key_path=KEY_PATH,
        github_app_installation_id=67890,
    )

    # Then
    assert auth_type == GitHubAuthenticationType.APP


@pytest.mark.asyncio
async def test_both_auth_methods_error() -> None:
    """Test that error is raised when both PAT and App authentication are provided."""
    # When/Then
    with pytest.raises(GitHubAuthenticationConfigurationUndefinedError, match="Both PAT and GitHub App configurations are defined"):
        await validate_github_authentication_configuration(
            github_pat_token="test-token",
            github_app_id=12345,
            github_app_private_key_path=KEY_PATH,
            github_app_installation_id=67890,
        )


@pytest.mark.asyncio
async def test_no_auth_error() -> None:
    """Test that error is raised when no authentication is provided."""
    # When/Then
    with pytest.raises(GitHubAuthenticationConfigurationUndefinedError, match="No GitHub authentication configuration provided"):
        await validate_github_authentication_configuration(
            github_pat_token=None,
            github_app_id=None,
            github_app_private_key_path=None,
            github_app_installation_id=None,
        )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "app_id, key_path, installation_id, missing",
    [
        pytest.param(None, KEY_PATH, 67890, ["GitHub App ID"], id="missing app id"),
        pytest.param(12345, None, 67890, ["GitHub App private key path"], id="missing private key path"),
        pytest.param(12345, KEY_PATH, None, ["GitHub App installation ID"], id="missing installation id"),
        pytest.param(None, None, 67890, ["GitHub App ID", "GitHub App private key path"], id="missing several"),
    ],
)
async def test_incomplete_app_configuration(app_id: int | None, key_path: Path | None, installation_id: int | None, missing: list[str]) -> None:
    """Test that every missing GitHub App setting is named in the error."""
    # When/Then
    with pytest.raises(GitHubAuthenticationConfigurationUndefinedError) as exc_info:
        await validate_github_authentication_configuration(
            github_pat_token=None,
            github_app_id=app_id,
            github_app_private_key_path=key_path,
            github_app_installation_id=installation_id,
        )

    assert "Incomplete GitHub App configuration" in str(exc_info.value)
    for name in missing:
        assert name in str(exc_info.value)


@pytest.mark.asyncio
async def test_error_message_contains_cli_and_env_variable_names() -> None:
    """Test that error messages include CLI option and environment variable names."""
    # When/Then
    with pytest.raises(GitHubAuthenticationConfigurationUndefinedError) as exc_info:
        await validate_github_authentication_configuration(
            github_pat_token=None,
            github_app_id=12345,
            github_app_private_key_path=None,
            github_app_installation_id=None,
        )

    error_message = str(exc_info.value)
    assert "command line option --github-app-private-key-path" in error_message
    assert "environment variable GITHUB_APP_PRIVATE_KEY_PATH" in error_message


@pytest.mark.asyncio
async def test_reconcile_sync_with_cli_args() -> None:
    """Test that CLI arguments take precedence over environment settings."""
    # Given
    settings = make_settings(REPO="env/repo", GITHUB_PAT_TOKEN="env-token", SYNC_INTERVAL=60.0, ISSUES_DIR=Path("env-issues"))

    # When
    result = await reconcile_sync_configuration(
        cli_debug=True,
        cli_github_api_url="https://github.example.com/api/v3",
        cli_github_pat_token="cli-token",
        cli_repo="owner/repo",
        cli_issues_dir=Path("cli-issues"),
        cli_watch=True,
        cli_sync_interval=30.0,
        cli_debounce_seconds=1.5,
        cli_max_concurrency=8,
        cli_state_file=Path("state.yaml"),
        settings=settings,
    )

    # Then
    assert isinstance(result, SyncConfig)
    assert result.debug is True
    assert result.github_api_url == "https://github.example.com/api/v3"
    assert result.github_pat_token == "cli-token"
    assert result.github_authentication_type == GitHubAuthenticationType.PAT
    assert result.repo == "owner/repo"
    assert result.issues_dir == Path("cli-issues")
    assert result.watch is True
    assert result.sync_interval == 30.0
    assert result.debounce_seconds == 1.5
    assert result.max_concurrency == 8
    assert result.state_file == Path("state.yaml")


@pytest.mark.asyncio
async def test_reconcile_sync_with_env_vars() -> None:
    """Test that environment settings fill every value not given on the command line."""
    # Given
    settings = make_settings(
        DEBUG=True,
        REPO="env/repo",
        GITHUB_APP_ID=12345,
        GITHUB_APP_PRIVATE_KEY_PATH=KEY_PATH,
        GITHUB_APP_INSTALLATION_ID=67890,
        ISSUES_DIR=Path("env-issues"),
        SYNC_INTERVAL=60.0,
        STATE_FILE=Path("env-state.yaml"),
    )

    # When
    result = await reconcile_sync_configuration(settings=settings)

    # Then
    assert result.debug is True
    assert result.repo == "env/repo"
    assert result.github_authentication_type == GitHubAuthenticationType.APP
    assert result.github_app_id == 12345
    assert result.issues_dir == Path("env-issues")
    assert result.watch is False
    assert result.sync_interval == 60.0
    assert result.debounce_seconds == 0.5
    assert result.max_concurrency == 4
    assert result.state_file == Path("env-state.yaml")


@pytest.mark.asyncio
async def test_reconcile_sync_cli_false_overrides_env_true() -> None:
    """Test that an explicit false on the command line is not replaced by the environment."""
    settings = make_settings(DEBUG=True, REPO="env/repo", GITHUB_PAT_TOKEN="env-token")

    result = await reconcile_sync_configuration(cli_debug=False, settings=settings)

    assert result.debug is False


@pytest.mark.asyncio
async def test_reconcile_sync_missing_repo() -> None:
    """Test that a repository is required."""
    # When/Then
    with pytest.raises(RequiredConfigurationElementError) as exc_info:
        await reconcile_sync_configuration(cli_github_pat_token="token", settings=make_settings())

    assert "environment variable REPO" in str(exc_info.value)


@pytest.mark.asyncio
async def test_reconcile_sync_requires_authentication() -> None:
    """Test that authentication is validated while reconciling."""
    # When/Then
    with pytest.raises(GitHubAuthenticationConfigurationUndefinedError):
        await reconcile_sync_configuration(cli_repo="owner/repo", settings=make_settings())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, name",
    [
        pytest.param({"cli_sync_interval": 0.0}, "sync interval", id="zero interval"),
        pytest.param({"cli_debounce_seconds": -1.0}, "debounce window", id="negative debounce"),
        pytest.param({"cli_max_concurrency": 0}, "max concurrency", id="zero concurrency"),
    ],
)
async def test_reconcile_sync_invalid_values(overrides: dict[str, Any], name: str) -> None:
    """Test that out-of-range timing and concurrency settings are rejected."""
    # When/Then
    with pytest.raises(InvalidConfigurationValueError, match=name):
        await reconcile_sync_configuration(cli_repo="owner/repo", cli_github_pat_token="token", settings=make_settings(), **overrides)


@pytest.mark.asyncio
async def test_reconcile_sync_with_github_token_and_repo_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that GITHUB_TOKEN and GITHUB_REPO are accepted in place of GITHUB_PAT_TOKEN and REPO."""
    # Given
    for name in ("REPO", "GITHUB_PAT_TOKEN", "GITHUB_APP_ID", "GITHUB_APP_PRIVATE_KEY_PATH", "GITHUB_APP_INSTALLATION_ID"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GITHUB_TOKEN", "env-token")
    monkeypatch.setenv("GITHUB_REPO", "owner/env-repo")

    # When
    result = await reconcile_sync_configuration(settings=Settings(_env_file=None))

    # Then
    assert result.repo == "owner/env-repo"
    assert result.github_pat_token == "env-token"
    assert result.github_authentication_type == GitHubAuthenticationType.PAT
