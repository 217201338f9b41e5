"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UTCDateTime, UUIDv7Mixin
from models.note import Note

__all__ = [
    "Base",
    "Note",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDv7Mixin",
]
