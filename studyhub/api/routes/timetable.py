"""Timetable CRUD routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import TimetableEntry
from studyhub.schemas.timetable import (
    TimetableEntryCreate,
    TimetableEntryRead,
    TimetableEntryUpdate,
    TimetableResponse,
)
from studyhub.services.rate_limiter import RateLimit
from studyhub.services.timetable import find_overlaps, slot_error, sort_entries

router = APIRouter(prefix="/timetable", tags=["timetable"], dependencies=[Depends(RateLimit("api"))])


@router.get("/", response_model=TimetableResponse)
async def list_entries(
    current_user: CurrentUser,
    db: DbSession,
) -> TimetableResponse:
    """
    List the current user's week, Monday first and by start time.

    overlapping_ids flags entries that share time with another entry on
    the same day. Overlaps are allowed; they are reported, not rejected.
    """
    result = await db.execute(select(TimetableEntry).where(TimetableEntry.user_id == current_user.id))
    entries = sort_entries(result.scalars())
    return TimetableResponse(
        entries=[TimetableEntryRead.model_validate(e) for e in entries],
        overlapping_ids=find_overlaps(entries),
    )


@router.post("/", response_model=TimetableEntryRead, status_code=status.HTTP_201_CREATED)
async def create_entry(
    data: TimetableEntryCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> TimetableEntryRead:
    """Create a timetable entry."""
    new_entry = TimetableEntry(
        user_id=current_user.id,
        **data.model_dump(),
    )
    db.add(new_entry)
    await db.commit()
    await db.refresh(new_entry)
    return TimetableEntryRead.model_validate(new_entry)


@router.get("/{entry_id}", response_model=TimetableEntryRead)
async def get_entry(
    entry_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> TimetableEntryRead:
    """Get a specific timetable entry by ID."""
    entry = await get_user_resource_or_404(db, TimetableEntry, entry_id, current_user.id)
    return TimetableEntryRead.model_validate(entry)


@router.patch("/{entry_id}", response_model=TimetableEntryRead)
async def update_entry(
    entry_id: UUID,
    data: TimetableEntryUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> TimetableEntryRead:
    """Update a timetable entry. The resulting slot must still be valid."""
    entry = await get_user_resource_or_404(db, TimetableEntry, entry_id, current_user.id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    error = slot_error(
        changes.get("start_time", entry.start_time),
        changes.get("end_time", entry.end_time),
    )
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    for key, value in changes.items():
        setattr(entry, key, value)
    await db.commit()
    await db.refresh(entry)
    return TimetableEntryRead.model_validate(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete a timetable entry."""
    entry = await get_user_resource_or_404(db, TimetableEntry, entry_id, current_user.id)
    await db.delete(entry)
    await db.commit()
