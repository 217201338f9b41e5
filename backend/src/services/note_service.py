"""Service layer for note CRUD and undo/redo operations."""
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Literal, TypeVar
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql import Select

from models.note import Note
from schemas.note import NoteCreate, NoteUpdate
from services.exceptions import InvalidStateError
from services.history_engine import HistoryEngine
from services.utils import escape_ilike, utc_now
from services.version_store import VersionStore

logger = logging.getLogger(__name__)

SortField = Literal["created_at", "updated_at", "title", "deleted_at"]
View = Literal["active", "deleted"]

R = TypeVar("R")


class NoteService:
    """
    Note service with CRUD, trash and history operations.

    Edits, undo and redo are delegated to a HistoryEngine; this class only
    loads notes, converts their persisted stacks to a VersionStore and back,
    and flushes the result. Soft-deleted notes cannot be edited, undone or
    redone, but their history is preserved for when they are restored.
    """

    entity_name = "Note"

    def __init__(self, engine: HistoryEngine | None = None) -> None:
        self.engine = engine or HistoryEngine()

    # --- Queries ---

    async def get(
        self,
        db: AsyncSession,
        note_id: UUID,
        include_deleted: bool = False,
    ) -> Note | None:
        """
        Get a note by ID.

        Args:
            db: Database session.
            note_id: ID of the note to retrieve.
            include_deleted: If True, include soft-deleted notes. Default False.

        Returns:
            The note if found and matches filters, None otherwise.
        """
        query = select(Note).where(Note.id == note_id)
        if not include_deleted:
            query = query.where(Note.deleted_at.is_(None))
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_updated_at(
        self,
        db: AsyncSession,
        note_id: UUID,
        include_deleted: bool = False,
    ) -> datetime | None:
        """Get only the updated_at token of a note, without loading its history."""
        query = select(Note.updated_at).where(Note.id == note_id)
        if not include_deleted:
            query = query.where(Note.deleted_at.is_(None))
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def search(
        self,
        db: AsyncSession,
        query: str | None = None,
        sort_by: SortField | None = None,
        sort_order: Literal["asc", "desc"] = "desc",
        offset: int = 0,
        limit: int = 50,
        view: View = "active",
    ) -> tuple[list[Note], int]:
        """
        Search and filter notes with pagination.

        Args:
            db: Database session.
            query: Case-insensitive substring match on title and content.
            sort_by: Field to sort by. Defaults to deleted_at for the trash
                view and created_at otherwise.
            sort_order: Sort direction.
            offset: Pagination offset.
            limit: Pagination limit.
            view: "active" or "deleted".

        Returns:
            Tuple of (list of notes, total count).
        """
        base_query = self._apply_view_filter(select(Note), view)

        if query:
            pattern = f"%{escape_ilike(query)}%"
            base_query = base_query.where(
                or_(
                    Note.title.ilike(pattern, escape="\\"),
                    Note.content.ilike(pattern, escape="\\"),
                ),
            )

        count_query = select(func.count()).select_from(base_query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        if sort_by is None:
            sort_by = "deleted_at" if view == "deleted" else "created_at"
        base_query = self._apply_sorting(base_query, sort_by, sort_order)
        base_query = base_query.offset(offset).limit(limit)

        result = await db.execute(base_query)
        return list(result.scalars().all()), total

    # --- Mutations ---

    async def create(self, db: AsyncSession, data: NoteCreate) -> Note:
        """
        Create a new note with empty history.

        Args:
            db: Database session.
            data: Note creation data. Title and content are stored trimmed.

        Returns:
            The created note.
        """
        now = utc_now()
        store = self.engine.new_store()
        note = Note(
            title=data.title.strip(),
            content=data.content.strip(),
            created_at=now,
            updated_at=now,
            undo_stack=store.undo_stack.to_records(),
            redo_stack=store.redo_stack.to_records(),
        )
        db.add(note)
        await db.flush()
        await db.refresh(note)
        logger.info("Created note %s", note.id)
        return note

    async def update(
        self,
        db: AsyncSession,
        note_id: UUID,
        data: NoteUpdate,
    ) -> Note | None:
        """
        Edit a note's title and/or content, recording the prior state.

        Stale-write detection happens before this call (see
        api.helpers.check_optimistic_lock). An edit that changes nothing
        leaves the note and its history untouched.

        Returns:
            The note (edited or unchanged), or None if not found or deleted.
        """
        note = await self.get(db, note_id)
        if note is None:
            return None

        changed = await self._run_history_operation(
            db, note,
            lambda store: self.engine.apply_edit(note, store, data.title, data.content),
        )
        if not changed:
            logger.debug("Edit of note %s changed nothing", note_id)
        return note

    async def undo(self, db: AsyncSession, note_id: UUID) -> Note | None:
        """
        Revert the note to its most recent prior state.

        Returns:
            The note, or None if not found or deleted.

        Raises:
            EmptyHistoryError: If there is nothing to undo.
        """
        note = await self.get(db, note_id)
        if note is None:
            return None
        await self._run_history_operation(
            db, note, lambda store: self.engine.undo(note, store),
        )
        logger.debug("Undo applied to note %s", note_id)
        return note

    async def redo(self, db: AsyncSession, note_id: UUID) -> Note | None:
        """
        Re-apply the most recently undone state.

        Returns:
            The note, or None if not found or deleted.

        Raises:
            EmptyHistoryError: If there is nothing to redo.
        """
        note = await self.get(db, note_id)
        if note is None:
            return None
        await self._run_history_operation(
            db, note, lambda store: self.engine.redo(note, store),
        )
        logger.debug("Redo applied to note %s", note_id)
        return note

    async def delete(
        self,
        db: AsyncSession,
        note_id: UUID,
        permanent: bool = False,
    ) -> bool:
        """
        Delete a note (soft or permanent).

        Soft delete only sets deleted_at; history and updated_at are kept.
        Permanent delete removes the row, and its history with it.

        Returns:
            True if deleted, False if not found.
        """
        note = await self.get(db, note_id, include_deleted=permanent)
        if note is None:
            return False

        if permanent:
            await db.delete(note)
            await db.flush()
            logger.info("Permanently deleted note %s", note_id)
        else:
            note.deleted_at = utc_now()
            await db.flush()
            logger.info("Moved note %s to trash", note_id)
        return True

    async def restore(self, db: AsyncSession, note_id: UUID) -> Note | None:
        """
        Restore a soft-deleted note to active state.

        Returns:
            The restored note, or None if not found.

        Raises:
            InvalidStateError: If the note is not deleted.
        """
        note = await self.get(db, note_id, include_deleted=True)
        if note is None:
            return None
        if not note.is_deleted:
            raise InvalidStateError(f"{self.entity_name} is not deleted")

        note.deleted_at = None
        await db.flush()
        await db.refresh(note)
        logger.info("Restored note %s from trash", note_id)
        return note

    # --- Private Helper Methods ---

    async def _run_history_operation(
        self,
        db: AsyncSession,
        note: Note,
        operation: Callable[[VersionStore], R],
    ) -> R:
        """Run an engine operation against the note's stacks and persist them."""
        store = self.engine.load_store(note.undo_stack, note.redo_stack)
        result = operation(store)
        # Fresh lists so the JSON columns are flagged as modified
        note.undo_stack = store.undo_stack.to_records()
        note.redo_stack = store.redo_stack.to_records()
        await db.flush()
        await db.refresh(note)
        return result

    def _apply_view_filter(self, query: Select[tuple[Note]], view: View) -> Select[tuple[Note]]:
        """Apply view filter (active/deleted) to query."""
        if view == "deleted":
            return query.where(Note.deleted_at.is_not(None))
        return query.where(Note.deleted_at.is_(None))

    def _get_sort_columns(self) -> dict[str, InstrumentedAttribute]:
        return {
            "created_at": Note.created_at,
            "updated_at": Note.updated_at,
            "title": Note.title,
            "deleted_at": Note.deleted_at,
        }

    def _apply_sorting(
        self,
        query: Select[tuple[Note]],
        sort_by: str,
        sort_order: Literal["asc", "desc"],
    ) -> Select[tuple[Note]]:
        """Apply sorting with tiebreakers (created_at, then id)."""
        sort_column = self._get_sort_columns().get(sort_by, Note.created_at)

        if sort_order == "desc":
            return query.order_by(
                sort_column.desc(),
                Note.created_at.desc(),
                Note.id.desc(),
            )
        return query.order_by(
            sort_column.asc(),
            Note.created_at.asc(),
            Note.id.asc(),
        )
