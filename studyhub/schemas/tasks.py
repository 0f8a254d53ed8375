"""Task schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from studyhub.db.models import TaskPriority, TaskStatus
from studyhub.schemas.base import BaseSchema, IDMixin, SafeTitle, TimestampMixin


class TaskBase(BaseSchema):
    """Base task schema."""

    title: SafeTitle
    due_date: datetime
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING


class TaskCreate(TaskBase):
    """Schema for creating a task. New tasks start as pending."""


class TaskRead(TaskBase, IDMixin, TimestampMixin):
    """Schema for reading task data."""

    user_id: UUID


class TaskUpdate(BaseSchema):
    """Schema for updating a task. All fields optional."""

    title: SafeTitle | None = None
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None


class TaskSummary(BaseModel):
    """Task counts per list view."""

    all: int
    due_today: int
    overdue: int
    pending: int
    in_progress: int
    completed: int
