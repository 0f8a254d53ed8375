"""Note schemas."""

from datetime import datetime
from uuid import UUID

from studyhub.schemas.base import ContentSchema, SafeContent


class NoteBase(ContentSchema):
    """Base note schema."""

    content: SafeContent = ""
    pinned: bool = False


class NoteCreate(NoteBase):
    """Schema for creating a note."""


class NoteRead(NoteBase):
    """Schema for reading note data."""

    id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime


class NoteUpdate(ContentSchema):
    """Schema for updating a note (autosave). All fields optional."""

    content: SafeContent | None = None
    pinned: bool | None = None
