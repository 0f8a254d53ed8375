"""Bookmark routes. Bookmarks are addressed by the resource they point at."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import Bookmark, Resource
from studyhub.schemas.resources import BookmarkCreate, BookmarkRead, BookmarkStatus
from studyhub.services.rate_limiter import RateLimit

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"], dependencies=[Depends(RateLimit("api"))])


async def _find_bookmark(db: DbSession, user_id: UUID, resource_id: UUID) -> Bookmark | None:
    result = await db.execute(
        select(Bookmark).where(Bookmark.user_id == user_id, Bookmark.resource_id == resource_id)
    )
    return result.scalar_one_or_none()


@router.get("/", response_model=list[BookmarkRead])
async def list_bookmarks(current_user: CurrentUser, db: DbSession) -> list[BookmarkRead]:
    """List bookmarks, newest first, each with its resource."""
    result = await db.execute(
        select(Bookmark)
        .where(Bookmark.user_id == current_user.id)
        .options(selectinload(Bookmark.resource))
        .order_by(Bookmark.created_at.desc())
    )
    return [BookmarkRead.model_validate(b) for b in result.scalars()]


@router.post("/", response_model=BookmarkRead, status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> BookmarkRead:
    """
    Bookmark one of the current user's resources.

    Raises 404 if the resource does not exist (or is not the caller's)
    and 409 if it is already bookmarked.
    """
    resource = await get_user_resource_or_404(db, Resource, data.resource_id, current_user.id)

    conflict = HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Resource already bookmarked")
    if await _find_bookmark(db, current_user.id, resource.id) is not None:
        raise conflict

    bookmark = Bookmark(user_id=current_user.id, resource_id=resource.id)
    db.add(bookmark)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise conflict

    result = await db.execute(
        select(Bookmark).where(Bookmark.id == bookmark.id).options(selectinload(Bookmark.resource))
    )
    return BookmarkRead.model_validate(result.scalar_one())


@router.get("/{resource_id}", response_model=BookmarkStatus)
async def bookmark_status(
    resource_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> BookmarkStatus:
    """Whether the current user has bookmarked this resource."""
    bookmark = await _find_bookmark(db, current_user.id, resource_id)
    return BookmarkStatus(bookmarked=bookmark is not None)


@router.delete("/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    resource_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Remove the bookmark on a resource."""
    bookmark = await _find_bookmark(db, current_user.id, resource_id)
    if bookmark is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bookmark not found")
    await db.delete(bookmark)
    await db.commit()
