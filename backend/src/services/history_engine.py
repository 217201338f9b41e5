"""
Linear undo/redo history for notes.

The engine is stateless: every call receives the document and its VersionStore,
mutates them in place, and keeps no reference afterwards. Callers are expected
to hold exclusive access to the document for the duration of a call.

Transitions:
- apply_edit: snapshot current state onto undo, clear redo, apply new fields
- undo: snapshot current state onto redo, restore top of undo
- redo: snapshot current state onto undo, restore top of redo

updated_at advances on every transition and is never restored from a snapshot.
"""
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from services.exceptions import EmptyHistoryError, StaleWriteError
from services.utils import next_timestamp, truncate_to_ms, utc_now
from services.version_store import DEFAULT_MAX_HISTORY, Snapshot, SnapshotStack, VersionStore


class VersionedDocument(Protocol):
    """Editable fields the engine reads and writes."""

    title: str
    content: str
    updated_at: datetime


def ensure_not_stale(
    last_known_update: datetime | None,
    updated_at: datetime,
) -> None:
    """
    Reject an edit built against an outdated read.

    Timestamps are compared at millisecond resolution. A missing
    last_known_update skips the check entirely.

    Raises:
        StaleWriteError: If last_known_update differs from updated_at.
    """
    if last_known_update is None:
        return
    if truncate_to_ms(last_known_update) != truncate_to_ms(updated_at):
        raise StaleWriteError(last_known_update, updated_at)


class HistoryEngine:
    """
    Applies edits, undo and redo to a (document, VersionStore) pair.

    Args:
        max_history: Bound used when creating new stores.
        force_initial_snapshot: If True, the first edit of a document (empty undo
            stack) always records a snapshot even when no field changes.
        clock: Source of the current time, overridable in tests.
    """

    def __init__(
        self,
        max_history: int = DEFAULT_MAX_HISTORY,
        force_initial_snapshot: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.max_history = max_history
        self.force_initial_snapshot = force_initial_snapshot
        self.clock = clock

    def new_store(self) -> VersionStore:
        """Create an empty store for a newly created document."""
        return VersionStore(self.max_history)

    def load_store(
        self,
        undo_records: list[dict] | None,
        redo_records: list[dict] | None,
    ) -> VersionStore:
        """Rebuild a store from persisted records using this engine's bound."""
        return VersionStore.from_records(undo_records, redo_records, self.max_history)

    def apply_edit(
        self,
        document: VersionedDocument,
        store: VersionStore,
        title: str | None = None,
        content: str | None = None,
    ) -> bool:
        """
        Apply a title and/or content edit, recording the prior state.

        Values are trimmed before comparison. Blank-value validation is the
        caller's job.

        Returns:
            True if the edit was recorded, False if it was a no-op.
        """
        new_title = title.strip() if title is not None else None
        new_content = content.strip() if content is not None else None
        title_changed = new_title is not None and new_title != document.title
        content_changed = new_content is not None and new_content != document.content
        first_edit = self.force_initial_snapshot and not store.undo_stack

        if not title_changed and not content_changed and not first_edit:
            return False

        now = self.clock()
        store.undo_stack.push(self._capture(document, now))
        store.redo_stack.clear()

        if title_changed:
            document.title = new_title
        if content_changed:
            document.content = new_content
        document.updated_at = next_timestamp(document.updated_at, now)
        return True

    def undo(self, document: VersionedDocument, store: VersionStore) -> None:
        """
        Restore the most recent prior state.

        Raises:
            EmptyHistoryError: If there is nothing to undo.
        """
        if not store.undo_stack:
            raise EmptyHistoryError("No changes to undo")
        self._transition(document, source=store.undo_stack, target=store.redo_stack)

    def redo(self, document: VersionedDocument, store: VersionStore) -> None:
        """
        Re-apply the most recently undone state.

        Raises:
            EmptyHistoryError: If there is nothing to redo.
        """
        if not store.redo_stack:
            raise EmptyHistoryError("No changes to redo")
        self._transition(document, source=store.redo_stack, target=store.undo_stack)

    def _transition(
        self,
        document: VersionedDocument,
        source: SnapshotStack,
        target: SnapshotStack,
    ) -> None:
        """Save current state onto target, then restore the top of source."""
        now = self.clock()
        target.push(self._capture(document, now))
        previous = source.pop()
        document.title = previous.title
        document.content = previous.content
        document.updated_at = next_timestamp(document.updated_at, now)

    @staticmethod
    def _capture(document: VersionedDocument, now: datetime) -> Snapshot:
        return Snapshot(title=document.title, content=document.content, captured_at=now)
