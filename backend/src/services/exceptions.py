"""Shared exceptions for service layer operations."""
from datetime import datetime


class InvalidStateError(Exception):
    """
    Raised when an operation is invalid for a resource's current state.

    Used by the note service when operations cannot be performed due to the
    note's state (e.g., restoring a note that is not in the trash).
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class HistoryError(Exception):
    """Base exception for version history failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class EmptyHistoryError(HistoryError):
    """Raised when undo or redo is requested with nothing on the relevant stack."""


class StaleWriteError(HistoryError):
    """
    Raised when an edit is built against an outdated view of the note.

    Attributes:
        expected_updated_at: The timestamp the client believed was current.
        actual_updated_at: The note's real updated_at.
    """

    def __init__(self, expected_updated_at: datetime, actual_updated_at: datetime) -> None:
        self.expected_updated_at = expected_updated_at
        self.actual_updated_at = actual_updated_at
        super().__init__("This note was modified since you loaded it")
