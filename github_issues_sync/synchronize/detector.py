"""Classifies changes on either side against the last synchronized snapshot.

Nothing in this module mutates the snapshot store; classification is a pure
function of the freshly observed state and the snapshot.
"""

import structlog

from github_issues_sync.schemas.issue import RemoteIssue
from github_issues_sync.synchronize.models import (
    BothUpdated,
    ChangeKind,
    LocalCreated,
    LocalFile,
    LocalUntracked,
    LocalUpdated,
    RemoteUpdated,
    SyncSnapshot,
    Unchanged,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def classify_remote(remote: RemoteIssue, snapshot: SyncSnapshot | None) -> ChangeKind:
    """Compare an issue fetched from GitHub with its snapshot.

    An issue without a snapshot is new to this run and seeds one. Otherwise the
    issue has changed only when its ``updated_at`` moved forward and its synced
    fields differ from the snapshot, so that the echo of our own push is ignored.
    """
    if snapshot is None:
        logger.debug("Issue has no snapshot yet", issue_number=remote.number)
        return RemoteUpdated(remote)
    if remote.updated_at <= snapshot.remote_updated_at:
        return Unchanged(remote.number)
    if remote.record == snapshot.record:
        logger.debug("Issue was touched on GitHub without changing synced fields", issue_number=remote.number)
        return Unchanged(remote.number)
    logger.debug(
        "Issue changed on GitHub",
        issue_number=remote.number,
        changed_fields=snapshot.record.changed_fields(remote.record),
    )
    return RemoteUpdated(remote)


def classify_local(local: LocalFile, snapshot: SyncSnapshot | None) -> ChangeKind:
    """Compare an issue file read from disk with its snapshot.

    Only drafts are new issues. A numbered file without a snapshot refers to an
    issue that already exists on GitHub, so it is left for a full pass to pair
    with GitHub's version.
    """
    if local.record.is_draft:
        logger.debug("Issue file is a draft", path=str(local.path))
        return LocalCreated(local)
    if snapshot is None:
        logger.debug("Issue file has no snapshot for its number", issue_number=local.record.number, path=str(local.path))
        return LocalUntracked(local)
    if local.fingerprint == snapshot.local_fingerprint:
        return Unchanged(local.record.number)
    if local.record == snapshot.record:
        logger.debug("Issue file bytes changed without changing synced fields", issue_number=local.record.number)
        return Unchanged(local.record.number)
    logger.debug(
        "Issue file changed on disk",
        issue_number=local.record.number,
        changed_fields=snapshot.record.changed_fields(local.record),
    )
    return LocalUpdated(local)


def merge_changes(remote_change: ChangeKind, local_change: ChangeKind) -> ChangeKind:
    """Combine the pending remote and local changes for the same issue number within one pass."""
    if isinstance(local_change, Unchanged):
        return remote_change
    if isinstance(remote_change, Unchanged):
        return local_change
    if isinstance(remote_change, RemoteUpdated) and isinstance(local_change, (LocalUpdated, LocalUntracked, LocalCreated)):
        if remote_change.remote.record == local_change.local.record:
            # Both sides already agree, so only the snapshot needs refreshing.
            return remote_change
        return BothUpdated(remote=remote_change.remote, local=local_change.local)
    raise ValueError(f"Cannot merge {type(remote_change).__name__} with {type(local_change).__name__}")
