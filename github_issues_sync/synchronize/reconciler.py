"""Applies classified changes to GitHub and to the issues directory.

Policy:

- ``Unchanged``: nothing to do.
- ``RemoteUpdated``: overwrite the issue file with the GitHub version.
- ``LocalUpdated``: push the fields that differ from the snapshot to GitHub.
- ``LocalCreated``: create the issue on GitHub and move the draft to its canonical name.
- ``LocalUntracked``: GitHub did not list the issue; the file is reported and left alone.
- ``BothUpdated``: GitHub wins. The local edit is discarded and logged.

The snapshot of an issue is only updated once every side effect for that issue
has succeeded, so a failed GitHub call is simply retried on the next pass. The
one exception is a newly created issue, which is recorded as soon as GitHub has
it so that a draft whose file could not be moved is never created twice.
"""

import structlog

from github_issues_sync.github.abc import IssueTrackerBase
from github_issues_sync.processing.frontmatter import encode_issue
from github_issues_sync.schemas.issue import RemoteIssue
from github_issues_sync.synchronize.exceptions import LocalWriteError, PartialApplyError, RemoteError, UntrackedIssueFileError
from github_issues_sync.synchronize.local import LocalIssueDirectory, fingerprint_bytes
from github_issues_sync.synchronize.models import (
    BothUpdated,
    ChangeKind,
    LocalCreated,
    LocalFile,
    LocalUntracked,
    LocalUpdated,
    RemoteUpdated,
    SyncAction,
    SyncSnapshot,
    Unchanged,
)
from github_issues_sync.synchronize.snapshots import SnapshotStore

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class Reconciler:
    """Executes the action decided for one classified change."""

    def __init__(self, tracker: IssueTrackerBase, directory: LocalIssueDirectory, store: SnapshotStore) -> None:
        """Initialize the reconciler with its collaborators and the snapshot store it owns."""
        self.tracker = tracker
        self.directory = directory
        self.store = store

    async def reconcile(self, change: ChangeKind) -> SyncAction:
        """Apply a change and return the action taken.

        Raises:
            RemoteError: If a GitHub call failed before anything was committed.
            LocalWriteError: If the issue file could not be written.
            UntrackedIssueFileError: If a numbered issue file refers to an issue GitHub does not have.
            PartialApplyError: If GitHub committed the change but the issue file could not follow.
        """
        if isinstance(change, Unchanged):
            return SyncAction.NOOP
        if isinstance(change, RemoteUpdated):
            self._pull(change.remote)
            return SyncAction.PULLED
        if isinstance(change, LocalUpdated):
            await self._push(change.local)
            return SyncAction.PUSHED
        if isinstance(change, LocalCreated):
            await self._create(change.local)
            return SyncAction.CREATED
        if isinstance(change, LocalUntracked):
            raise UntrackedIssueFileError(change.local.path, change.number)
        if isinstance(change, BothUpdated):
            self._resolve_conflict(change)
            return SyncAction.CONFLICT_RESOLVED
        raise TypeError(f"Unknown change kind: {type(change).__name__}")

    def _pull(self, remote: RemoteIssue) -> None:
        path = self.directory.path_for(remote.number)
        try:
            written = self.directory.write(remote.record)
        except OSError as exc:
            raise LocalWriteError(path, remote.number, str(exc)) from exc
        self.store.record(
            SyncSnapshot(record=remote.record, remote_updated_at=remote.updated_at, local_fingerprint=written.fingerprint),
        )
        logger.info("Pulled issue from GitHub", issue_number=remote.number, path=str(path))
        self._discard_created_draft(remote.number)

    async def _push(self, local: LocalFile) -> None:
        number = local.record.number
        if number is None:
            raise ValueError("Draft issues are created, not updated")
        snapshot = self.store.get(number)
        fields = snapshot.record.changed_fields(local.record) if snapshot is not None else None
        updated_at = await self.tracker.update_issue(number, local.record, fields=fields)
        self.store.record(SyncSnapshot(record=local.record, remote_updated_at=updated_at, local_fingerprint=local.fingerprint))
        logger.info("Pushed issue to GitHub", issue_number=number, path=str(local.path), fields=fields)

    async def _create(self, local: LocalFile) -> None:
        created_number = self.store.created_draft_number(local.fingerprint)
        if created_number is not None:
            self._finish_created_draft(local, created_number)
            return

        created = await self.tracker.create_issue(local.record)
        number = created.number
        logger.info("Created issue on GitHub", issue_number=number, draft_path=str(local.path))

        # GitHub always creates issues open, so a closed draft needs a follow-up update.
        agreed = created.record
        updated_at = created.updated_at
        pending_error: RemoteError | None = None
        if local.record.state != agreed.state:
            desired = agreed.model_copy(update={"state": local.record.state})
            try:
                updated_at = await self.tracker.update_issue(number, desired, fields=["state"])
                agreed = desired
            except RemoteError as exc:
                logger.warning(
                    "Created issue but failed to set its state, it will be pushed on the next pass",
                    issue_number=number,
                    state=local.record.state.value,
                    error=str(exc),
                )
                pending_error = exc

        # The issue exists on GitHub from here on, so it is recorded before its file
        # is written. When GitHub has not caught up with the intended state yet the
        # snapshot holds GitHub's version and the difference is pushed next pass.
        self.store.record(
            SyncSnapshot(
                record=agreed,
                remote_updated_at=updated_at,
                local_fingerprint=fingerprint_bytes(encode_issue(agreed).encode("utf-8")),
            ),
        )
        self.store.record_created_draft(local.fingerprint, number)
        target = agreed.model_copy(update={"state": local.record.state})
        try:
            written = self.directory.write(target)
            if written.path != local.path:
                self.directory.remove(local.path)
        except OSError as exc:
            logger.error(
                "Issue was created on GitHub but its file could not be written, the draft is moved on the next pass",
                issue_number=number,
                error=str(exc),
            )
            raise PartialApplyError(number, "remote", str(exc)) from exc
        self.store.forget_created_draft(number)

        logger.info("Moved draft to its canonical issue file", issue_number=number, path=str(written.path))
        if pending_error is not None and pending_error.is_fatal:
            raise pending_error

    def _finish_created_draft(self, local: LocalFile, number: int) -> None:
        """Move a draft that already exists on GitHub to its issue file without creating it again."""
        path = self.directory.path_for(number)
        try:
            if path.exists():
                logger.info("Issue file already exists, dropping the draft it was created from", issue_number=number, path=str(path))
            else:
                self.directory.write(local.record.model_copy(update={"number": number}))
            self.directory.remove(local.path)
        except OSError as exc:
            logger.error("Failed to move already created draft to its issue file", issue_number=number, error=str(exc))
            raise PartialApplyError(number, "remote", str(exc)) from exc
        self.store.forget_created_draft(number)
        logger.info("Moved draft to its canonical issue file", issue_number=number, path=str(path))

    def _discard_created_draft(self, number: int) -> None:
        """Remove the draft an issue was created from once GitHub's version of the issue is on disk."""
        if number not in self.store.created_drafts.values():
            return
        draft_path = self.directory.draft_path
        try:
            if draft_path.exists() and self.store.created_draft_number(fingerprint_bytes(draft_path.read_bytes())) == number:
                self.directory.remove(draft_path)
                logger.info("Removed draft that was already created on GitHub", issue_number=number, draft_path=str(draft_path))
        except OSError as exc:
            raise PartialApplyError(number, "remote", str(exc)) from exc
        self.store.forget_created_draft(number)

    def _resolve_conflict(self, change: BothUpdated) -> None:
        remote_record = change.remote.record
        local_record = change.local.record
        logger.warning(
            "Issue changed on both sides, keeping the GitHub version and discarding the local edit",
            issue_number=change.number,
            path=str(change.local.path),
            discarded_fields=remote_record.changed_fields(local_record),
            discarded_title=local_record.title,
            discarded_state=local_record.state.value,
            discarded_labels=sorted(local_record.labels),
            discarded_body=local_record.body,
        )
        self._pull(change.remote)
