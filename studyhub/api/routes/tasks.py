"""Tasks CRUD routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import Task
from studyhub.schemas.tasks import TaskCreate, TaskRead, TaskSummary, TaskUpdate
from studyhub.services.rate_limiter import RateLimit
from studyhub.services.tasks import TaskView, count_views, filter_tasks

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(RateLimit("api"))])


async def _user_tasks(db: DbSession, user_id: UUID) -> list[Task]:
    result = await db.execute(
        select(Task).where(Task.user_id == user_id).order_by(Task.due_date.asc())
    )
    return list(result.scalars())


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    current_user: CurrentUser,
    db: DbSession,
    view: TaskView = "all",
) -> list[TaskRead]:
    """
    List tasks for the current user, soonest due first.

    Views:
    - all: every task
    - due_today: due on the current (UTC) date
    - overdue: due before today and not completed
    - pending / in_progress / completed: by status
    """
    tasks = filter_tasks(await _user_tasks(db, current_user.id), view)
    return [TaskRead.model_validate(t) for t in tasks]


@router.get("/summary", response_model=TaskSummary)
async def task_summary(current_user: CurrentUser, db: DbSession) -> TaskSummary:
    """Counts for each list view."""
    return TaskSummary(**count_views(await _user_tasks(db, current_user.id)))


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskRead:
    """Create a new task."""
    new_task = Task(
        user_id=current_user.id,
        **data.model_dump(),
    )
    db.add(new_task)
    await db.commit()
    await db.refresh(new_task)
    return TaskRead.model_validate(new_task)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskRead:
    """Get a specific task by ID."""
    task = await get_user_resource_or_404(db, Task, task_id, current_user.id)
    return TaskRead.model_validate(task)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskRead:
    """Update a task. Any status may follow any other."""
    task = await get_user_resource_or_404(db, Task, task_id, current_user.id)
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(task, key, value)
    await db.commit()
    await db.refresh(task)
    return TaskRead.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete a task."""
    task = await get_user_resource_or_404(db, Task, task_id, current_user.id)
    await db.delete(task)
    await db.commit()
