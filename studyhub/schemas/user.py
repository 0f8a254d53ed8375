"""User schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from studyhub.schemas.base import BaseSchema, SafeName


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: UUID
    email: EmailStr
    name: str
    student_id: str | None = None
    program: str | None = None
    year: int | None = None
    created_at: datetime
    updated_at: datetime


class UserUpdate(BaseSchema):
    """Schema for updating the user profile. All fields optional."""

    name: SafeName | None = None
    student_id: str | None = Field(None, max_length=50)
    program: str | None = Field(None, max_length=100)
    year: int | None = Field(None, ge=1, le=10)
