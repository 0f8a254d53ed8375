"""Timetable schemas."""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from studyhub.db.models import DayOfWeek
from studyhub.schemas.base import BaseSchema, IDMixin, SafeTitle, TimestampMixin
from studyhub.services.timetable import is_valid_time, slot_error


def _check_time(value: str | None) -> str | None:
    if value is not None and not is_valid_time(value):
        raise ValueError("time must be HH:MM (24-hour)")
    return value


class TimetableEntryBase(BaseSchema):
    """Base timetable entry schema."""

    title: SafeTitle
    day: DayOfWeek
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["10:30"])


class TimetableEntryCreate(TimetableEntryBase):
    """
    Schema for creating a timetable entry.

    Slots must end after they start, last at least 30 minutes and sit
    between 08:00 and 22:00.
    """

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return _check_time(value)

    @model_validator(mode="after")
    def check_slot(self) -> "TimetableEntryCreate":
        error = slot_error(self.start_time, self.end_time)
        if error:
            raise ValueError(error)
        return self


class TimetableEntryRead(TimetableEntryBase, IDMixin, TimestampMixin):
    """Schema for reading timetable entry data."""

    user_id: UUID


class TimetableEntryUpdate(BaseSchema):
    """
    Schema for updating a timetable entry. All fields optional.

    The slot rules are checked by the route against the merged result.
    """

    title: SafeTitle | None = None
    day: DayOfWeek | None = None
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: str | None) -> str | None:
        return _check_time(value)


class TimetableResponse(BaseModel):
    """Entries ordered Monday first, with IDs of entries that clash on the same day."""

    entries: list[TimetableEntryRead]
    overlapping_ids: list[UUID]
