"""Defines the Command Line Interface (CLI) using Typer."""

import asyncio
import sys
from pathlib import Path

import typer
from dotenv import load_dotenv
from typer import Argument, Option
from typing_extensions import Annotated

from github_issues_sync.configuration.exceptions import (
    GitHubAuthenticationConfigurationUndefinedError,
    GitHubClientConfigurationError,
    InvalidConfigurationValueError,
    RequiredConfigurationElementError,
)
from github_issues_sync.configuration.reconcile import reconcile_sync_configuration
from github_issues_sync.synchronize.driver import run_sync_workflow
from github_issues_sync.synchronize.exceptions import RemoteError
from github_issues_sync.utils.logging import configure_logging

load_dotenv()

typer_app = typer.Typer(pretty_exceptions_show_locals=False)

# --- Typer group for repo commands ---
repo_app = typer.Typer(help="Repository-related commands")


def repo_callback(
    ctx: typer.Context,
    repo: Annotated[str, Argument(envvar=["REPO", "GITHUB_REPO"], help="Repository name (owner/repo).")],
    github_api_url: Annotated[str | None, Option(envvar="GITHUB_API_URL", help="GitHub API URL.")] = None,
    github_pat_token: Annotated[str | None, Option(envvar=["GITHUB_PAT_TOKEN", "GITHUB_TOKEN"], help="GitHub Personal Access Token.")] = None,
    github_app_id: Annotated[int | None, Option(envvar="GITHUB_APP_ID", help="GitHub App ID.")] = None,
    github_app_private_key_path: Annotated[Path | None, Option(envvar="GITHUB_APP_PRIVATE_KEY_PATH", help="Path to GitHub App private key.")] = None,
    github_app_installation_id: Annotated[int | None, Option(envvar="GITHUB_APP_INSTALLATION_ID", help="GitHub App Installation ID.")] = None,
) -> None:
    """Set the repository for the current context."""
    ctx.ensure_object(dict)
    ctx.obj["repo"] = repo
    ctx.obj["github_api_url"] = github_api_url
    ctx.obj["github_pat_token"] = github_pat_token
    ctx.obj["github_app_id"] = github_app_id
    ctx.obj["github_app_private_key_path"] = github_app_private_key_path
    ctx.obj["github_app_installation_id"] = github_app_installation_id


repo_app.callback()(repo_callback)


@repo_app.command(name="sync")
def sync_cli(
    ctx: typer.Context,
    issues_dir: Annotated[Path | None, Option(envvar="ISSUES_DIR", help="Directory holding the issue-<number>.md files.")] = None,
    watch: Annotated[bool, Option(help="Keep running, polling GitHub and watching the issues directory.")] = False,
    interval: Annotated[float | None, Option(envvar="SYNC_INTERVAL", help="Seconds between polls of GitHub in watch mode.")] = None,
    debounce: Annotated[float | None, Option(envvar="DEBOUNCE_SECONDS", help="Seconds a file must stay quiet before it is pushed.")] = None,
    max_concurrency: Annotated[int | None, Option(envvar="MAX_CONCURRENCY", help="Maximum concurrent GitHub calls within a pass.")] = None,
    state_file: Annotated[Path | None, Option(envvar="STATE_FILE", help="YAML file persisting the last synchronized state between runs.")] = None,
    debug: Annotated[bool | None, Option(envvar="DEBUG", help="Enable debug mode.")] = None,
) -> None:
    """Synchronize GitHub issues with a local directory of Markdown files.

    Without --watch, runs a single pass and exits. With --watch, keeps polling
    GitHub and pushing local edits until interrupted.
    """
    try:
        config = asyncio.run(
            reconcile_sync_configuration(
                cli_debug=debug,
                cli_github_api_url=ctx.obj["github_api_url"],
                cli_github_pat_token=ctx.obj["github_pat_token"],
                cli_github_app_id=ctx.obj["github_app_id"],
                cli_github_app_private_key_path=ctx.obj["github_app_private_key_path"],
                cli_github_app_installation_id=ctx.obj["github_app_installation_id"],
                cli_repo=ctx.obj["repo"],
                cli_issues_dir=issues_dir,
                cli_watch=watch,
                cli_sync_interval=interval,
                cli_debounce_seconds=debounce,
                cli_max_concurrency=max_concurrency,
                cli_state_file=state_file,
            )
        )
    except (
        GitHubAuthenticationConfigurationUndefinedError,
        RequiredConfigurationElementError,
        InvalidConfigurationValueError,
    ) as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(1) from exc

    configure_logging(config.debug)
    if config.watch:
        typer.echo(f"Watching {config.issues_dir.absolute()} and {config.repo} for changes, press Ctrl+C to stop")

    try:
        result = asyncio.run(run_sync_workflow(config))
    except GitHubClientConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(1) from exc
    except RemoteError as exc:
        typer.echo(f"Synchronization stopped: {exc}", err=True)
        raise typer.Exit(1) from exc

    summary = result.summary()
    typer.echo(
        f"Pulled {summary['pulled']}, pushed {summary['pushed']}, created {summary['created']}, "
        f"resolved {summary['conflicts']} conflict(s), {summary['unchanged']} unchanged"
    )
    if result.errors:
        typer.echo("Error(s) encountered while synchronizing issues:", err=True)
        for err in result.errors:
            typer.echo(str(err), err=True)
        sys.exit(1)


# --- Register the repo_app as a sub-app of the main Typer app ---
typer_app.add_typer(repo_app, name="repo")


if __name__ == "__main__":
    typer_app()
