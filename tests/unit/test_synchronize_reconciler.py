"""Contains unit tests for applying classified changes."""

import pytest

from github_issues_sync.processing.frontmatter import encode_issue
from github_issues_sync.schemas.issue import IssueRecord, IssueState
from github_issues_sync.synchronize.exceptions import LocalWriteError, PartialApplyError, RemoteError, RemoteErrorKind, UntrackedIssueFileError
from github_issues_sync.synchronize.local import LocalIssueDirectory, fingerprint_bytes
from github_issues_sync.synchronize.models import (
    BothUpdated,
    LocalCreated,
    LocalUntracked,
    LocalUpdated,
    RemoteUpdated,
    SyncAction,
    Unchanged,
)
from github_issues_sync.synchronize.reconciler import Reconciler
from github_issues_sync.synchronize.snapshots import SnapshotStore
from tests.unit.fakes import FakeIssueTracker


async def pull(reconciler: Reconciler, tracker: FakeIssueTracker, number: int) -> None:
    await reconciler.reconcile(RemoteUpdated(tracker.issues[number]))


def edit_file(directory: LocalIssueDirectory, record: IssueRecord) -> None:
    path = directory.path_for(record.number) if record.number is not None else directory.draft_path
    path.write_text(encode_issue(record), encoding="utf-8")


@pytest.mark.asyncio
async def test_unchanged_is_noop(reconciler: Reconciler, tracker: FakeIssueTracker) -> None:
    """Test that an unchanged issue causes no side effects."""
    assert await reconciler.reconcile(Unchanged(1)) == SyncAction.NOOP
    assert tracker.calls == []


@pytest.mark.asyncio
async def test_pull_writes_file_and_snapshot(
    reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory, store: SnapshotStore
) -> None:
    """Test that a remote change overwrites the issue file and records a snapshot."""
    remote = tracker.add_issue(42, "Bug", labels=["bug"])

    action = await reconciler.reconcile(RemoteUpdated(remote))

    local = directory.read(directory.path_for(42))
    snapshot = store.get(42)
    assert action == SyncAction.PULLED
    assert local.record == remote.record
    assert snapshot is not None
    assert snapshot.record == remote.record
    assert snapshot.remote_updated_at == remote.updated_at
    assert snapshot.local_fingerprint == local.fingerprint
    assert tracker.calls == []


@pytest.mark.asyncio
async def test_remote_title_change_keeps_labels(reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory) -> None:
    """Test that renaming issue #42 on GitHub updates only the title in its file."""
    tracker.add_issue(42, "Bug", labels=["bug"])
    await pull(reconciler, tracker, 42)
    renamed = tracker.edit_issue(42, title="Bug fixed")

    await reconciler.reconcile(RemoteUpdated(renamed))

    record = directory.read(directory.path_for(42)).record
    assert record.title == "Bug fixed"
    assert record.labels == frozenset({"bug"})


@pytest.mark.asyncio
async def test_push_sends_only_changed_fields(
    reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory, store: SnapshotStore
) -> None:
    """Test that editing the body of issue #7 pushes only the body and refreshes the snapshot."""
    tracker.add_issue(7, "Docs", body="Old body")
    await pull(reconciler, tracker, 7)
    edit_file(directory, IssueRecord(number=7, title="Docs", body="New body"))
    local = directory.read(directory.path_for(7))

    action = await reconciler.reconcile(LocalUpdated(local))

    snapshot = store.get(7)
    assert action == SyncAction.PUSHED
    assert tracker.calls[-1][0] == "update_issue"
    assert tracker.calls[-1][3] == ["body"]
    assert tracker.issues[7].record.body == "New body"
    assert snapshot is not None
    assert snapshot.local_fingerprint == local.fingerprint
    assert snapshot.remote_updated_at == tracker.issues[7].updated_at


@pytest.mark.asyncio
async def test_failed_push_leaves_snapshot(
    reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory, store: SnapshotStore
) -> None:
    """Test that a failed GitHub call does not move the snapshot forward."""
    tracker.add_issue(7, "Docs", body="Old body")
    await pull(reconciler, tracker, 7)
    before = store.get(7)
    edit_file(directory, IssueRecord(number=7, title="Docs", body="New body"))
    tracker.failures["update_issue"] = RemoteError(RemoteErrorKind.NETWORK, "connection reset")

    with pytest.raises(RemoteError):
        await reconciler.reconcile(LocalUpdated(directory.read(directory.path_for(7))))

    assert store.get(7) == before


@pytest.mark.asyncio
async def test_create_draft_renames_file(
    reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory, store: SnapshotStore
) -> None:
    """Test that a draft becomes issue-99.md once GitHub assigns number 99."""
    tracker.next_number = 99
    edit_file(directory, IssueRecord(title="New idea", labels=frozenset({"idea"}), body="Details"))

    action = await reconciler.reconcile(LocalCreated(directory.read(directory.draft_path)))

    path = directory.path_for(99)
    record = directory.read(path).record
    snapshot = store.get(99)
    assert action == SyncAction.CREATED
    assert not directory.draft_path.exists()
    assert record == IssueRecord(number=99, title="New idea", labels=frozenset({"idea"}), body="Details")
    assert snapshot is not None
    assert snapshot.local_fingerprint == fingerprint_bytes(path.read_bytes())


@pytest.mark.asyncio
async def test_create_closed_draft_sets_state(reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory) -> None:
    """Test that a closed draft is closed on GitHub right after creation."""
    edit_file(directory, IssueRecord(title="Already done", state=IssueState.CLOSED))

    await reconciler.reconcile(LocalCreated(directory.read(directory.draft_path)))

    assert tracker.call_names() == ["create_issue", "update_issue"]
    assert tracker.calls[-1][3] == ["state"]
    assert tracker.issues[1].record.state == IssueState.CLOSED
    assert directory.read(directory.path_for(1)).record.state == IssueState.CLOSED


@pytest.mark.asyncio
async def test_create_closed_draft_state_failure_is_pushed_later(
    reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory, store: SnapshotStore
) -> None:
    """Test that a failed state update leaves the snapshot open so the state is pushed on the next pass."""
    edit_file(directory, IssueRecord(title="Already done", state=IssueState.CLOSED))
    tracker.failures["update_issue"] = RemoteError(RemoteErrorKind.NETWORK, "timeout")

    await reconciler.reconcile(LocalCreated(directory.read(directory.draft_path)))

    snapshot = store.get(1)
    local = directory.read(directory.path_for(1))
    assert snapshot is not None
    assert snapshot.record.state == IssueState.OPEN
    assert local.record.state == IssueState.CLOSED
    assert snapshot.record.changed_fields(local.record) == ["state"]


@pytest.mark.asyncio
async def test_create_with_unwritable_directory_is_partial(
    reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that a file write failure after GitHub created the issue is reported as a partial apply."""
    edit_file(directory, IssueRecord(title="New idea"))

    def fail_write(record: IssueRecord) -> None:
        raise PermissionError("read-only file system")

    monkeypatch.setattr(directory, "write", fail_write)

    with pytest.raises(PartialApplyError) as exc_info:
        await reconciler.reconcile(LocalCreated(directory.read(directory.draft_path)))

    assert exc_info.value.issue_number == 1
    assert exc_info.value.committed_side == "remote"
    assert 1 in tracker.issues


@pytest.mark.asyncio
async def test_created_draft_is_moved_without_creating_again(
    reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory, store: SnapshotStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that a draft whose file could not be moved after creation is moved later instead of created twice."""
    edit_file(directory, IssueRecord(title="New idea", body="Details"))
    draft = directory.read(directory.draft_path)

    def fail_write(record: IssueRecord) -> None:
        raise OSError("disk full")

    with monkeypatch.context() as patched:
        patched.setattr(directory, "write", fail_write)
        with pytest.raises(PartialApplyError):
            await reconciler.reconcile(LocalCreated(draft))

    assert store.created_draft_number(draft.fingerprint) == 1
    assert store.get(1) is not None

    action = await reconciler.reconcile(LocalCreated(directory.read(directory.draft_path)))

    assert action == SyncAction.CREATED
    assert tracker.call_names() == ["create_issue"]
    assert sorted(tracker.issues) == [1]
    assert not directory.draft_path.exists()
    assert directory.read(directory.path_for(1)).record == IssueRecord(number=1, title="New idea", body="Details")
    assert store.created_drafts == {}


@pytest.mark.asyncio
async def test_untracked_issue_file_is_reported(reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory) -> None:
    """Test that a numbered file for an issue GitHub does not have is reported and left untouched."""
    edit_file(directory, IssueRecord(number=12, title="Typed by hand"))
    path = directory.path_for(12)

    with pytest.raises(UntrackedIssueFileError) as exc_info:
        await reconciler.reconcile(LocalUntracked(directory.read(path)))

    assert exc_info.value.issue_number == 12
    assert path.exists()
    assert tracker.calls == []


@pytest.mark.asyncio
async def test_pull_write_failure(
    reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory, store: SnapshotStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that a failed pull is reported against the issue and leaves no snapshot."""
    remote = tracker.add_issue(3, "T")

    def fail_write(record: IssueRecord) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(directory, "write", fail_write)

    with pytest.raises(LocalWriteError) as exc_info:
        await reconciler.reconcile(RemoteUpdated(remote))

    assert exc_info.value.issue_number == 3
    assert store.get(3) is None


@pytest.mark.asyncio
async def test_conflict_keeps_remote_version(
    reconciler: Reconciler, tracker: FakeIssueTracker, directory: LocalIssueDirectory, caplog: pytest.LogCaptureFixture
) -> None:
    """Test that an issue edited on both sides ends up with GitHub's version and a logged warning."""
    tracker.add_issue(5, "Original")
    await pull(reconciler, tracker, 5)
    remote = tracker.edit_issue(5, title="Remote title")
    edit_file(directory, IssueRecord(number=5, title="Local title"))
    local = directory.read(directory.path_for(5))

    action = await reconciler.reconcile(BothUpdated(remote=remote, local=local))

    assert action == SyncAction.CONFLICT_RESOLVED
    assert directory.read(directory.path_for(5)).record.title == "Remote title"
    assert "update_issue" not in tracker.call_names()
    assert "Local title" in caplog.text
