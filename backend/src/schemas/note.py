"""Pydantic schemas for note endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from schemas.validators import check_not_blank

MAX_TITLE_LENGTH = 500


class NoteCreate(BaseModel):
    """Schema for creating a new note. Both fields are required."""

    title: str = Field(max_length=MAX_TITLE_LENGTH)
    content: str

    @field_validator("title", "content")
    @classmethod
    def check_not_empty(cls, v: str, info: ValidationInfo) -> str:
        """Validate title and content are not blank."""
        return check_not_blank(v, info.field_name)


class NoteUpdate(BaseModel):
    """Schema for editing an existing note."""

    title: str | None = Field(default=None, max_length=MAX_TITLE_LENGTH)
    content: str | None = None
    expected_updated_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("expected_updated_at", "last_known_update"),
        description="For optimistic locking. If provided and it does not match the note's "
                    "updated_at (millisecond precision), returns 409 Conflict with the "
                    "current server state.",
    )

    @field_validator("title", "content")
    @classmethod
    def check_not_empty(cls, v: str | None, info: ValidationInfo) -> str | None:
        """Validate title and content are not blank (if provided)."""
        if v is None:
            return None
        return check_not_blank(v, info.field_name)

    @model_validator(mode="after")
    def check_has_changes(self) -> "NoteUpdate":
        """Require at least one editable field."""
        if self.title is None and self.content is None:
            raise ValueError("No fields provided to update")
        return self


class NoteListItem(BaseModel):
    """
    Schema for note list items (excludes content).

    History counts are derived from the note's undo/redo stacks.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    is_deleted: bool
    can_undo: bool
    can_redo: bool
    undo_count: int
    redo_count: int


class NoteResponse(NoteListItem):
    """Schema for full note responses. Returned by GET /notes/:id and mutation endpoints."""

    content: str


class NoteListResponse(BaseModel):
    """Schema for paginated note list responses."""

    items: list[NoteListItem]
    total: int  # Total count of notes matching the query (before pagination)
    offset: int  # Current pagination offset
    limit: int  # Current pagination limit
    has_more: bool  # True if there are more results beyond this page


class HistorySummaryResponse(BaseModel):
    """Undo/redo availability for a note."""

    model_config = ConfigDict(from_attributes=True)

    can_undo: bool
    can_redo: bool
    undo_count: int
    redo_count: int
    last_edited_at: datetime = Field(validation_alias=AliasChoices("last_edited_at", "updated_at"))
