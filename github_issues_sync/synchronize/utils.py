"""Contains utility functions for synchronization actions."""

from typing import Any, Protocol, Sequence, runtime_checkable


@runtime_checkable
class HasName(Protocol):
    """Protocol for GitHub label objects, which carry their name in a ``name`` attribute."""

    name: str


LabelType = str | dict[str, Any] | HasName


def extract_label_names(labels: Sequence[LabelType]) -> set[str]:
    """Extract label names from a list of GitHub label objects, strings, or dicts."""
    names: set[str] = set()
    for label in labels:
        if isinstance(label, str):
            names.add(label)
        elif isinstance(label, dict) and "name" in label:
            names.add(label["name"])
        elif isinstance(label, HasName) and isinstance(label.name, str):
            names.add(label.name)
    return names
