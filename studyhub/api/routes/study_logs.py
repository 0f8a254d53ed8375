"""Study log routes."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import StudyLog
from studyhub.schemas.study_logs import StudyLogCreate, StudyLogRead, StudyLogUpdate, StudyStatsResponse
from studyhub.services.rate_limiter import RateLimit
from studyhub.services.study_stats import compute_study_stats

router = APIRouter(prefix="/study-logs", tags=["study-logs"], dependencies=[Depends(RateLimit("api"))])


@router.get("/", response_model=list[StudyLogRead])
async def list_study_logs(
    current_user: CurrentUser,
    db: DbSession,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[StudyLogRead]:
    """
    List study sessions, newest first.

    Filters:
    - start: sessions at or after this time
    - end: sessions at or before this time
    """
    query = select(StudyLog).where(StudyLog.user_id == current_user.id)
    if start:
        query = query.where(StudyLog.timestamp >= start)
    if end:
        query = query.where(StudyLog.timestamp <= end)
    query = query.order_by(StudyLog.timestamp.desc())

    result = await db.execute(query)
    return [StudyLogRead.model_validate(log) for log in result.scalars()]


@router.get("/stats", response_model=StudyStatsResponse)
async def study_stats(current_user: CurrentUser, db: DbSession) -> StudyStatsResponse:
    """Total hours (one decimal), session count, current daily streak and all sessions."""
    result = await db.execute(
        select(StudyLog)
        .where(StudyLog.user_id == current_user.id)
        .order_by(StudyLog.timestamp.desc())
    )
    logs = list(result.scalars())
    stats = compute_study_stats(logs)
    return StudyStatsResponse(
        total_hours=stats.total_hours,
        total_sessions=stats.total_sessions,
        streak=stats.streak,
        average_session_minutes=stats.average_session_minutes,
        logs=[StudyLogRead.model_validate(log) for log in logs],
    )


@router.post("/", response_model=StudyLogRead, status_code=status.HTTP_201_CREATED)
async def create_study_log(
    data: StudyLogCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> StudyLogRead:
    """Log a study session."""
    new_log = StudyLog(
        user_id=current_user.id,
        **data.model_dump(exclude_none=True),
    )
    db.add(new_log)
    await db.commit()
    await db.refresh(new_log)
    return StudyLogRead.model_validate(new_log)


@router.get("/{log_id}", response_model=StudyLogRead)
async def get_study_log(
    log_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> StudyLogRead:
    """Get a specific study session by ID."""
    log = await get_user_resource_or_404(db, StudyLog, log_id, current_user.id)
    return StudyLogRead.model_validate(log)


@router.patch("/{log_id}", response_model=StudyLogRead)
async def update_study_log(
    log_id: UUID,
    data: StudyLogUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> StudyLogRead:
    """Update a study session."""
    log = await get_user_resource_or_404(db, StudyLog, log_id, current_user.id)
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(log, key, value)
    await db.commit()
    await db.refresh(log)
    return StudyLogRead.model_validate(log)


@router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_study_log(
    log_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete a study session."""
    log = await get_user_resource_or_404(db, StudyLog, log_id, current_user.id)
    await db.delete(log)
    await db.commit()
