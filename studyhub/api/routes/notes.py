"""Notes CRUD routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import Note
from studyhub.schemas.notes import NoteCreate, NoteRead, NoteUpdate
from studyhub.services.rate_limiter import RateLimit

router = APIRouter(prefix="/notes", tags=["notes"], dependencies=[Depends(RateLimit("api"))])


@router.get("/", response_model=list[NoteRead])
async def list_notes(
    current_user: CurrentUser,
    db: DbSession,
    q: str | None = None,
) -> list[NoteRead]:
    """
    List notes for the current user.

    Pinned notes come first, then the most recently edited.

    Filters:
    - q: Case-insensitive search in content
    """
    query = select(Note).where(Note.user_id == current_user.id)
    if q:
        query = query.where(Note.content.ilike(f"%{q}%"))
    query = query.order_by(Note.pinned.desc(), Note.updated_at.desc())

    result = await db.execute(query)
    return [NoteRead.model_validate(n) for n in result.scalars()]


@router.post("/", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    data: NoteCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> NoteRead:
    """Create a new note. Content may start empty."""
    new_note = Note(
        user_id=current_user.id,
        **data.model_dump(),
    )
    db.add(new_note)
    await db.commit()
    await db.refresh(new_note)
    return NoteRead.model_validate(new_note)


@router.get("/{note_id}", response_model=NoteRead)
async def get_note(
    note_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> NoteRead:
    """Get a specific note by ID."""
    note = await get_user_resource_or_404(db, Note, note_id, current_user.id)
    return NoteRead.model_validate(note)


@router.patch("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: UUID,
    data: NoteUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> NoteRead:
    """Update a note. The client's debounced autosave calls this."""
    note = await get_user_resource_or_404(db, Note, note_id, current_user.id)
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(note, key, value)
    await db.commit()
    await db.refresh(note)
    return NoteRead.model_validate(note)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete a note."""
    note = await get_user_resource_or_404(db, Note, note_id, current_user.id)
    await db.delete(note)
    await db.commit()
