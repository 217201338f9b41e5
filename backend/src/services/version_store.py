"""
Bounded undo/redo stacks of note snapshots.

A VersionStore owns two SnapshotStacks. Each stack keeps at most `max_history`
snapshots; pushing beyond the bound evicts the oldest entry, so the most recent
states are always retained.
"""
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from services.exceptions import EmptyHistoryError
from services.utils import truncate_to_ms

DEFAULT_MAX_HISTORY = 20


@dataclass(frozen=True)
class Snapshot:
    """Recorded state of a note's editable fields, captured before a mutation."""

    title: str
    content: str
    captured_at: datetime

    def to_record(self) -> dict[str, str]:
        """Serialize to the persisted {title, content, editedAt} form."""
        captured_at = truncate_to_ms(self.captured_at)
        return {
            "title": self.title,
            "content": self.content,
            "editedAt": captured_at.isoformat(timespec="milliseconds"),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Snapshot":
        """Parse a persisted record."""
        return cls(
            title=record["title"],
            content=record["content"],
            captured_at=truncate_to_ms(datetime.fromisoformat(record["editedAt"])),
        )


class SnapshotStack:
    """LIFO stack of snapshots with FIFO eviction once `max_history` is reached."""

    def __init__(
        self,
        max_history: int = DEFAULT_MAX_HISTORY,
        snapshots: list[Snapshot] | None = None,
    ) -> None:
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.max_history = max_history
        self._items: list[Snapshot] = []
        for snapshot in snapshots or []:
            self.push(snapshot)

    def push(self, snapshot: Snapshot) -> None:
        """Push onto the top, evicting from the bottom if the bound is exceeded."""
        self._items.append(snapshot)
        while len(self._items) > self.max_history:
            self._items.pop(0)

    def pop(self) -> Snapshot:
        """
        Remove and return the top snapshot.

        Raises:
            EmptyHistoryError: If the stack is empty.
        """
        if not self._items:
            raise EmptyHistoryError("No snapshots available")
        return self._items.pop()

    def peek(self) -> Snapshot | None:
        """Return the top snapshot without removing it."""
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        """Remove every snapshot."""
        self._items.clear()

    def to_records(self) -> list[dict[str, str]]:
        """Serialize oldest to newest."""
        return [snapshot.to_record() for snapshot in self._items]

    @classmethod
    def from_records(
        cls,
        records: list[dict[str, Any]] | None,
        max_history: int = DEFAULT_MAX_HISTORY,
    ) -> "SnapshotStack":
        """Load from persisted records, keeping only the newest `max_history`."""
        return cls(
            max_history=max_history,
            snapshots=[Snapshot.from_record(record) for record in records or []],
        )

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(list(self._items))

    def __bool__(self) -> bool:
        return bool(self._items)


class VersionStore:
    """Undo and redo stacks belonging to a single note."""

    def __init__(
        self,
        max_history: int = DEFAULT_MAX_HISTORY,
        undo_stack: SnapshotStack | None = None,
        redo_stack: SnapshotStack | None = None,
    ) -> None:
        self.max_history = max_history
        self.undo_stack = (
            undo_stack if undo_stack is not None else SnapshotStack(max_history)
        )
        self.redo_stack = (
            redo_stack if redo_stack is not None else SnapshotStack(max_history)
        )

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    @classmethod
    def from_records(
        cls,
        undo_records: list[dict[str, Any]] | None,
        redo_records: list[dict[str, Any]] | None,
        max_history: int = DEFAULT_MAX_HISTORY,
    ) -> "VersionStore":
        """Rebuild a store from the persisted JSON lists."""
        return cls(
            max_history=max_history,
            undo_stack=SnapshotStack.from_records(undo_records, max_history),
            redo_stack=SnapshotStack.from_records(redo_records, max_history),
        )
