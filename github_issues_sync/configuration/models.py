"""Models for configuration reconciled between CLI arguments and environment variables."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class GitHubAuthenticationType(str, Enum):
    """Enum for GitHub authentication types."""

    PAT = "pat"
    APP = "app"


@dataclass
class SyncConfig:
    """Configuration class for the sync command."""

    debug: bool
    github_api_url: str
    github_authentication_type: GitHubAuthenticationType
    github_pat_token: str | None
    github_app_id: int | None
    github_app_private_key_path: Path | None
    github_app_installation_id: int | None
    repo: str
    issues_dir: Path
    watch: bool
    sync_interval: float
    debounce_seconds: float
    max_concurrency: int
    state_file: Path | None
