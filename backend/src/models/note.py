"""Note model for storing versioned text notes."""
from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

from models.base import Base, JSONType, TimestampMixin, UTCDateTime, UUIDv7Mixin


class Note(Base, UUIDv7Mixin, TimestampMixin):
    """
    Note model - title, content and the note's own undo/redo history.

    The history stacks are stored inline as JSON lists of
    {"title", "content", "editedAt"} records ordered oldest to newest. They are
    only changed by the history engine and survive soft delete and restore.
    Assign new lists (never mutate in place) so SQLAlchemy sees the change.
    """

    __tablename__ = "notes"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Soft delete timestamp
    deleted_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True, default=None, index=True,
    )

    undo_stack: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)
    redo_stack: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)

    @hybrid_property
    def is_deleted(self) -> bool:
        """Check if note is in the trash."""
        return self.deleted_at is not None

    @is_deleted.expression
    def is_deleted(cls) -> ColumnElement[bool]:  # noqa: N805
        """SQL expression for deleted check - used in queries."""
        return cls.deleted_at.is_not(None)

    @property
    def undo_count(self) -> int:
        return len(self.undo_stack or [])

    @property
    def redo_count(self) -> int:
        return len(self.redo_stack or [])

    @property
    def can_undo(self) -> bool:
        return self.undo_count > 0

    @property
    def can_redo(self) -> bool:
        return self.redo_count > 0
