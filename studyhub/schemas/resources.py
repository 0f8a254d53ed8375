"""Resource, bookmark and file processing schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from studyhub.schemas.base import BaseSchema


class ResourceRead(BaseSchema):
    """Schema for reading uploaded resource metadata."""

    id: UUID
    user_id: UUID
    title: str
    tags: list[str]
    url: str
    file_name: str
    file_size: int
    file_type: str
    uploaded_at: datetime


class BookmarkCreate(BaseSchema):
    """Request to bookmark a resource."""

    resource_id: UUID


class BookmarkRead(BaseSchema):
    """Bookmark with the bookmarked resource embedded."""

    id: UUID
    resource_id: UUID
    created_at: datetime
    resource: ResourceRead


class BookmarkStatus(BaseModel):
    bookmarked: bool


class FileProcessResponse(BaseModel):
    """Extracted text from an uploaded file. Extraction problems are reported in content."""

    success: bool
    file_name: str
    file_type: str
    file_size: int
    content: str
