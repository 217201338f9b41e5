"""FastAPI dependencies for injection."""
from fastapi import Depends

from core.config import Settings, get_settings
from db.session import get_async_session
from services.history_engine import HistoryEngine
from services.note_service import NoteService


def get_note_service(settings: Settings = Depends(get_settings)) -> NoteService:
    """Build a NoteService whose history engine follows the configured policy."""
    engine = HistoryEngine(
        max_history=settings.max_history,
        force_initial_snapshot=settings.force_initial_snapshot,
    )
    return NoteService(engine)


__all__ = [
    "get_async_session",
    "get_note_service",
    "get_settings",
]
