"""Study log schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from studyhub.schemas.base import BaseSchema, SafeTopic


class StudyLogCreate(BaseSchema):
    """Schema for logging a study session. timestamp defaults to now."""

    topic: SafeTopic
    duration: int = Field(..., gt=0, le=24 * 60, description="Minutes")
    productivity: int = Field(..., ge=1, le=5)
    timestamp: datetime | None = None


class StudyLogRead(BaseSchema):
    """Schema for reading study log data."""

    id: UUID
    user_id: UUID
    topic: str
    duration: int
    productivity: int
    timestamp: datetime


class StudyLogUpdate(BaseSchema):
    """Schema for updating a study log. All fields optional."""

    topic: SafeTopic | None = None
    duration: int | None = Field(None, gt=0, le=24 * 60)
    productivity: int | None = Field(None, ge=1, le=5)
    timestamp: datetime | None = None


class StudyStatsResponse(BaseModel):
    """Totals over the caller's sessions plus the sessions themselves, newest first."""

    total_hours: float
    total_sessions: int
    streak: int
    average_session_minutes: int
    logs: list[StudyLogRead]
