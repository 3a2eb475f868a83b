"""Holds the last synchronized state of every known issue."""

from pathlib import Path
from typing import Any, Iterator

import structlog
from ruamel.yaml import YAML

from github_issues_sync.synchronize.local import atomic_write_text
from github_issues_sync.synchronize.models import SyncSnapshot

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def create_state_dumper() -> YAML:
    """Creates a YAML object for the state file that keeps multiline bodies readable."""
    yaml_dumper = YAML()
    yaml_dumper.default_flow_style = False
    yaml_dumper.explicit_start = True
    yaml_dumper.width = 4096

    def represent_str(dumper: Any, data: str) -> Any:
        """Use literal scalar style for multiline strings without trailing spaces, which literal style cannot express."""
        if "\n" in data and not any(line != line.rstrip() for line in data.split("\n")):
            return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
        return dumper.represent_scalar("tag:yaml.org,2002:str", data)

    yaml_dumper.representer.add_representer(str, represent_str)  # type: ignore[attr-defined]
    return yaml_dumper


class SnapshotStore:
    """Table of the last synchronized state, keyed by issue number.

    The store is owned by a single scheduler and is only ever mutated by the
    reconciler after a change has been applied successfully. It also remembers
    drafts that were created on GitHub but could not be moved to their issue
    file yet, keyed by the draft's fingerprint, so they are never created twice.
    """

    def __init__(self, snapshots: list[SyncSnapshot] | None = None, created_drafts: dict[str, int] | None = None) -> None:
        """Initialize the store, optionally seeded with known snapshots and created drafts."""
        self._snapshots: dict[int, SyncSnapshot] = {}
        self._created_drafts: dict[str, int] = dict(created_drafts or {})
        for snapshot in snapshots or []:
            self.record(snapshot)

    def get(self, number: int | None) -> SyncSnapshot | None:
        """Return the snapshot for an issue number, if any."""
        if number is None:
            return None
        return self._snapshots.get(number)

    def record(self, snapshot: SyncSnapshot) -> None:
        """Insert or replace the snapshot for the snapshot's issue number."""
        self._snapshots[snapshot.number] = snapshot

    def record_created_draft(self, fingerprint: str, number: int) -> None:
        """Remember that the draft with this fingerprint already exists on GitHub as ``number``."""
        self._created_drafts[fingerprint] = number

    def created_draft_number(self, fingerprint: str) -> int | None:
        """Return the issue number a draft was already created as, if any."""
        return self._created_drafts.get(fingerprint)

    def forget_created_draft(self, number: int) -> None:
        """Drop every created-draft entry pointing at an issue number."""
        self._created_drafts = {fingerprint: value for fingerprint, value in self._created_drafts.items() if value != number}

    @property
    def created_drafts(self) -> dict[str, int]:
        """Drafts created on GitHub whose file has not been moved yet, by fingerprint."""
        return dict(self._created_drafts)

    def numbers(self) -> list[int]:
        """Return the known issue numbers in ascending order."""
        return sorted(self._snapshots)

    def __contains__(self, number: object) -> bool:
        return number in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[SyncSnapshot]:
        return iter(self._snapshots[number] for number in self.numbers())

    def save(self, path: Path) -> None:
        """Persist all snapshots, and drafts awaiting their issue file, to a YAML state file."""
        data: dict[str, Any] = {"snapshots": [snapshot.model_dump(mode="json") for snapshot in self]}
        # Labels are a set; sort them so the state file is stable between runs.
        for entry in data["snapshots"]:
            entry["record"]["labels"] = sorted(entry["record"]["labels"])
        if self._created_drafts:
            data["created_drafts"] = [{"fingerprint": fingerprint, "number": number} for fingerprint, number in self._created_drafts.items()]
        with atomic_write_text(path) as stream:
            create_state_dumper().dump(data, stream)
        logger.debug("Saved snapshot state file", path=str(path), snapshot_count=len(self))

    @classmethod
    def load(cls, path: Path) -> "SnapshotStore":
        """Load snapshots from a YAML state file, returning an empty store when it does not exist."""
        if not path.exists():
            logger.info("No snapshot state file found, starting from an empty state", path=str(path))
            return cls()
        with open(path, encoding="utf-8") as f:
            data = YAML(typ="safe").load(f) or {}
        snapshots = [SyncSnapshot.model_validate(entry) for entry in data.get("snapshots", [])]
        created_drafts = {entry["fingerprint"]: int(entry["number"]) for entry in data.get("created_drafts", [])}
        logger.info("Loaded snapshot state file", path=str(path), snapshot_count=len(snapshots))
        return cls(snapshots, created_drafts)
