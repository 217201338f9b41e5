"""Optimistic locking helpers for conflict detection on updates."""
from datetime import datetime
from uuid import UUID

from fastapi import HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from services.exceptions import StaleWriteError
from services.history_engine import ensure_not_stale
from services.note_service import NoteService


async def check_optimistic_lock(
    db: AsyncSession,
    service: NoteService,
    note_id: UUID,
    expected_updated_at: datetime | None,
    response_schema: type[BaseModel],
) -> None:
    """
    Check for conflicts before an edit. Raises HTTPException 409 if stale.

    Call this at the start of edit endpoints. If expected_updated_at is None,
    this is a no-op: the guard is opt-in.

    Args:
        db: Database session.
        service: Note service used to read the current state.
        note_id: ID of the note to check.
        expected_updated_at: Client's expected updated_at timestamp. If None, skip check.
        response_schema: Pydantic schema to serialize the current note state.

    Raises:
        HTTPException: 404 if note not found, 409 if note was modified.
    """
    if expected_updated_at is None:
        return

    current_updated_at = await service.get_updated_at(db, note_id)
    if current_updated_at is None:
        raise HTTPException(status_code=404, detail="Note not found")

    try:
        ensure_not_stale(expected_updated_at, current_updated_at)
    except StaleWriteError as e:
        current_note = await service.get(db, note_id)
        if current_note is None:
            # Race condition: note was deleted between timestamp check and fetch
            raise HTTPException(status_code=404, detail="Note not found")
        raise HTTPException(
            status_code=409,
            detail={
                "error": "conflict",
                "message": str(e),
                "server_state": response_schema.model_validate(current_note).model_dump(
                    mode="json",
                ),
            },
        ) from e
