"""
Tests for note service layer functionality.

Covers persistence of the undo/redo stacks, soft delete, restore and search.
"""
from uuid import UUID

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.note import Note
from schemas.note import NoteCreate, NoteUpdate
from services.exceptions import EmptyHistoryError, InvalidStateError
from services.history_engine import HistoryEngine
from services.note_service import NoteService

MISSING_ID = UUID("00000000-0000-7000-8000-000000000000")


@pytest.fixture
def note_service() -> NoteService:
    return NoteService(HistoryEngine(max_history=20))


@pytest.fixture
async def test_note(db_session: AsyncSession, note_service: NoteService) -> Note:
    """Create a test note."""
    return await note_service.create(
        db_session, NoteCreate(title="Example Note", content="Some content."),
    )


async def _edit(
    db: AsyncSession, service: NoteService, note_id: UUID, **fields: str,
) -> Note:
    note = await service.update(db, note_id, NoteUpdate(**fields))
    assert note is not None
    return note


# =============================================================================
# Create
# =============================================================================


async def test__create__trims_and_starts_with_empty_history(
    db_session: AsyncSession,
    note_service: NoteService,
) -> None:
    note = await note_service.create(
        db_session, NoteCreate(title="  Hola ", content=" Mundo\n"),
    )

    assert note.title == "Hola"
    assert note.content == "Mundo"
    assert note.undo_stack == []
    assert note.redo_stack == []
    assert note.created_at == note.updated_at
    assert note.deleted_at is None
    assert note.is_deleted is False


# =============================================================================
# Edit / undo / redo persistence
# =============================================================================


async def test__update__persists_snapshot_records(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    before = test_note.updated_at

    note = await _edit(db_session, note_service, test_note.id, title="Renamed")

    assert note.title == "Renamed"
    assert note.updated_at > before
    assert len(note.undo_stack) == 1
    record = note.undo_stack[0]
    assert record["title"] == "Example Note"
    assert record["content"] == "Some content."
    assert "editedAt" in record


async def test__update__noop_leaves_note_untouched(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    before = test_note.updated_at

    note = await _edit(db_session, note_service, test_note.id, title=" Example Note ")

    assert note.updated_at == before
    assert note.undo_stack == []


async def test__update__missing_note_returns_none(
    db_session: AsyncSession,
    note_service: NoteService,
) -> None:
    assert await note_service.update(db_session, MISSING_ID, NoteUpdate(title="x")) is None


async def test__undo_redo__round_trip_through_database(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    await _edit(db_session, note_service, test_note.id, title="B", content="second")

    undone = await note_service.undo(db_session, test_note.id)
    assert undone is not None
    assert (undone.title, undone.content) == ("Example Note", "Some content.")
    assert undone.undo_count == 0
    assert undone.redo_count == 1

    redone = await note_service.redo(db_session, test_note.id)
    assert redone is not None
    assert (redone.title, redone.content) == ("B", "second")
    assert redone.undo_count == 1
    assert redone.redo_count == 0


async def test__undo__empty_history_raises(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    with pytest.raises(EmptyHistoryError):
        await note_service.undo(db_session, test_note.id)


async def test__redo__empty_history_raises(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    with pytest.raises(EmptyHistoryError):
        await note_service.redo(db_session, test_note.id)


async def test__history__reloaded_from_database(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    """Stacks survive an expire/reload cycle in the original order."""
    for title in ["v2", "v3", "v4"]:
        await _edit(db_session, note_service, test_note.id, title=title)
    note_id = test_note.id

    db_session.expire_all()
    result = await db_session.execute(select(Note).where(Note.id == note_id))
    reloaded = result.scalar_one()

    assert [r["title"] for r in reloaded.undo_stack] == ["Example Note", "v2", "v3"]


async def test__history__bound_comes_from_engine(
    db_session: AsyncSession,
    test_note: Note,
) -> None:
    service = NoteService(HistoryEngine(max_history=2))
    for title in ["a", "b", "c", "d"]:
        await _edit(db_session, service, test_note.id, title=title)

    note = await service.get(db_session, test_note.id)
    assert note is not None
    assert [r["title"] for r in note.undo_stack] == ["b", "c"]


async def test__first_edit_policy__applied_by_service(
    db_session: AsyncSession,
    test_note: Note,
) -> None:
    service = NoteService(HistoryEngine(force_initial_snapshot=True))

    note = await _edit(db_session, service, test_note.id, title="Example Note")

    assert note.undo_count == 1


# =============================================================================
# Soft delete / restore
# =============================================================================


async def test__delete__soft_delete_sets_deleted_at(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    """Soft delete sets deleted_at instead of removing the row."""
    note_id = test_note.id

    assert await note_service.delete(db_session, note_id) is True

    result = await db_session.execute(select(Note).where(Note.id == note_id))
    note = result.scalar_one()
    assert note.deleted_at is not None
    assert note.is_deleted is True
    assert await note_service.get(db_session, note_id) is None
    assert await note_service.get(db_session, note_id, include_deleted=True) is not None


async def test__delete__soft_deleted_note_rejects_history_operations(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    await _edit(db_session, note_service, test_note.id, title="B")
    await note_service.delete(db_session, test_note.id)

    assert await note_service.update(db_session, test_note.id, NoteUpdate(title="C")) is None
    assert await note_service.undo(db_session, test_note.id) is None
    assert await note_service.redo(db_session, test_note.id) is None


async def test__delete__missing_note_returns_false(
    db_session: AsyncSession,
    note_service: NoteService,
) -> None:
    assert await note_service.delete(db_session, MISSING_ID) is False


async def test__delete__soft_delete_twice_returns_false(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    await note_service.delete(db_session, test_note.id)
    assert await note_service.delete(db_session, test_note.id) is False


async def test__delete__permanent_removes_row(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    note_id = test_note.id
    await note_service.delete(db_session, note_id)

    assert await note_service.delete(db_session, note_id, permanent=True) is True

    result = await db_session.execute(select(Note).where(Note.id == note_id))
    assert result.scalar_one_or_none() is None


async def test__restore__keeps_history_and_updated_at(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    await _edit(db_session, note_service, test_note.id, title="B")
    await _edit(db_session, note_service, test_note.id, title="C")
    await note_service.undo(db_session, test_note.id)
    updated_at = test_note.updated_at

    await note_service.delete(db_session, test_note.id)
    restored = await note_service.restore(db_session, test_note.id)

    assert restored is not None
    assert restored.deleted_at is None
    assert restored.updated_at == updated_at
    assert restored.undo_count == 1
    assert restored.redo_count == 1

    redone = await note_service.redo(db_session, test_note.id)
    assert redone is not None
    assert redone.title == "C"


async def test__restore__not_deleted_raises(
    db_session: AsyncSession,
    note_service: NoteService,
    test_note: Note,
) -> None:
    with pytest.raises(InvalidStateError, match="not deleted"):
        await note_service.restore(db_session, test_note.id)


async def test__restore__missing_note_returns_none(
    db_session: AsyncSession,
    note_service: NoteService,
) -> None:
    assert await note_service.restore(db_session, MISSING_ID) is None


# =============================================================================
# Search
# =============================================================================


async def test__search__excludes_deleted_from_active_view(
    db_session: AsyncSession,
    note_service: NoteService,
) -> None:
    keep = await note_service.create(db_session, NoteCreate(title="keep", content="x"))
    trash = await note_service.create(db_session, NoteCreate(title="trash", content="x"))
    await note_service.delete(db_session, trash.id)

    active, active_total = await note_service.search(db_session)
    deleted, deleted_total = await note_service.search(db_session, view="deleted")

    assert [n.id for n in active] == [keep.id]
    assert active_total == 1
    assert [n.id for n in deleted] == [trash.id]
    assert deleted_total == 1


async def test__search__text_query_matches_title_or_content(
    db_session: AsyncSession,
    note_service: NoteService,
) -> None:
    await note_service.create(db_session, NoteCreate(title="Groceries", content="milk"))
    await note_service.create(db_session, NoteCreate(title="Work", content="Buy MILK later"))
    await note_service.create(db_session, NoteCreate(title="Other", content="nothing"))

    notes, total = await note_service.search(db_session, query="milk")

    assert total == 2
    assert {n.title for n in notes} == {"Groceries", "Work"}


async def test__search__wildcards_are_literal(
    db_session: AsyncSession,
    note_service: NoteService,
) -> None:
    await note_service.create(db_session, NoteCreate(title="100% done", content="x"))
    await note_service.create(db_session, NoteCreate(title="1000 done", content="x"))

    notes, total = await note_service.search(db_session, query="0%")

    assert total == 1
    assert notes[0].title == "100% done"


async def test__search__sorting_and_pagination(
    db_session: AsyncSession,
    note_service: NoteService,
) -> None:
    for title in ["b", "c", "a"]:
        await note_service.create(db_session, NoteCreate(title=title, content="x"))

    notes, total = await note_service.search(
        db_session, sort_by="title", sort_order="asc", offset=1, limit=1,
    )

    assert total == 3
    assert [n.title for n in notes] == ["b"]


async def test__search__trash_defaults_to_most_recently_deleted_first(
    db_session: AsyncSession,
    note_service: NoteService,
) -> None:
    first = await note_service.create(db_session, NoteCreate(title="first", content="x"))
    second = await note_service.create(db_session, NoteCreate(title="second", content="x"))
    await note_service.delete(db_session, first.id)
    await note_service.delete(db_session, second.id)
    # Force distinct deletion times regardless of clock resolution
    first.deleted_at = second.deleted_at.replace(year=second.deleted_at.year - 1)
    await db_session.flush()

    notes, _ = await note_service.search(db_session, view="deleted")

    assert [n.title for n in notes] == ["second", "first"]
