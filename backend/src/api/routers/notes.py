"""Notes CRUD, trash and undo/redo endpoints."""
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_note_service
from api.helpers import check_optimistic_lock
from schemas.note import (
    HistorySummaryResponse,
    NoteCreate,
    NoteListItem,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
)
from services.exceptions import EmptyHistoryError, InvalidStateError
from services.note_service import NoteService

router = APIRouter(prefix="/notes", tags=["notes"])


@router.post("/", response_model=NoteResponse, status_code=201)
async def create_note(
    data: NoteCreate,
    db: AsyncSession = Depends(get_async_session),
    note_service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    """Create a new note. Title and content are required and stored trimmed."""
    note = await note_service.create(db, data)
    return NoteResponse.model_validate(note)


@router.get("/", response_model=NoteListResponse)
async def list_notes(
    q: str | None = Query(
        default=None,
        description="Search query (matches title and content)",
    ),
    sort_by: Literal["created_at", "updated_at", "title", "deleted_at"] | None = Query(
        default=None,
        description="Sort field. Defaults to deleted_at for the trash, created_at otherwise.",
    ),
    sort_order: Literal["asc", "desc"] = Query(default="desc", description="Sort direction"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=50, ge=1, le=100, description="Pagination limit"),
    view: Literal["active", "deleted"] = Query(
        default="active",
        description="Which notes to show: active (default) or deleted (the trash)",
    ),
    db: AsyncSession = Depends(get_async_session),
    note_service: NoteService = Depends(get_note_service),
) -> NoteListResponse:
    """
    List notes with search, sorting and pagination.

    - **q**: Text search across title and content (case-insensitive)
    - **view**: 'active' for normal notes, 'deleted' for the trash
    """
    notes, total = await note_service.search(
        db=db,
        query=q,
        sort_by=sort_by,
        sort_order=sort_order,
        offset=offset,
        limit=limit,
        view=view,
    )
    items = [NoteListItem.model_validate(n) for n in notes]
    return NoteListResponse(
        items=items,
        total=total,
        offset=offset,
        limit=limit,
        has_more=offset + len(items) < total,
    )


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    note_service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    """Get a single note by ID (includes deleted notes)."""
    note = await note_service.get(db, note_id, include_deleted=True)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return NoteResponse.model_validate(note)


@router.get("/{note_id}/history", response_model=HistorySummaryResponse)
async def get_note_history(
    note_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    note_service: NoteService = Depends(get_note_service),
) -> HistorySummaryResponse:
    """Report how many undo and redo steps are available for a note."""
    note = await note_service.get(db, note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return HistorySummaryResponse(
        can_undo=note.can_undo,
        can_redo=note.can_redo,
        undo_count=note.undo_count,
        redo_count=note.redo_count,
        last_edited_at=note.updated_at,
    )


@router.patch("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: UUID,
    data: NoteUpdate,
    db: AsyncSession = Depends(get_async_session),
    note_service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    """
    Edit a note's title and/or content.

    The previous state is pushed onto the undo stack and the redo stack is
    cleared. Submitting values equal to the current ones is a no-op.
    Pass expected_updated_at to get 409 Conflict if the note changed meanwhile.
    """
    # Check for conflicts before updating
    await check_optimistic_lock(
        db, note_service, note_id, data.expected_updated_at, NoteResponse,
    )

    note = await note_service.update(db, note_id, data)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return NoteResponse.model_validate(note)


@router.post("/{note_id}/undo", response_model=NoteResponse)
async def undo_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    note_service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    """Revert the note to its previous state. Returns 400 if there is nothing to undo."""
    try:
        note = await note_service.undo(db, note_id)
    except EmptyHistoryError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return NoteResponse.model_validate(note)


@router.post("/{note_id}/redo", response_model=NoteResponse)
async def redo_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    note_service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    """Re-apply the last undone change. Returns 400 if there is nothing to redo."""
    try:
        note = await note_service.redo(db, note_id)
    except EmptyHistoryError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return NoteResponse.model_validate(note)


@router.delete("/{note_id}", status_code=204)
async def delete_note(
    note_id: UUID,
    permanent: bool = Query(default=False, description="Permanently delete from DB if true"),
    db: AsyncSession = Depends(get_async_session),
    note_service: NoteService = Depends(get_note_service),
) -> None:
    """
    Delete a note.

    By default, performs a soft delete (moves the note to the trash, keeping its
    history). Use ?permanent=true to remove the note and its history.
    """
    deleted = await note_service.delete(db, note_id, permanent=permanent)
    if not deleted:
        raise HTTPException(status_code=404, detail="Note not found")


@router.post("/{note_id}/restore", response_model=NoteResponse)
async def restore_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    note_service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    """Restore a soft-deleted note from the trash, with its undo/redo history intact."""
    try:
        note = await note_service.restore(db, note_id)
    except InvalidStateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return NoteResponse.model_validate(note)
