"""Task list views (due today, overdue, by status)."""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Literal

from studyhub.db.models import Task, TaskStatus, as_utc

TaskView = Literal["all", "due_today", "overdue", "pending", "in_progress", "completed"]

TASK_VIEWS: tuple[str, ...] = ("all", "due_today", "overdue", "pending", "in_progress", "completed")


def in_view(task: Task, view: str, now: datetime) -> bool:
    """
    Whether a task belongs to a view. Dates are compared in UTC.

    Overdue means the due date has passed, is not today, and the task
    is not completed.
    """
    due = as_utc(task.due_date)
    if view == "all":
        return True
    if view == "due_today":
        return due.date() == now.date()
    if view == "overdue":
        return due < now and due.date() != now.date() and task.status != TaskStatus.COMPLETED.value
    return task.status == view


def filter_tasks(tasks: Iterable[Task], view: str, now: datetime | None = None) -> list[Task]:
    now = now or datetime.now(timezone.utc)
    return [task for task in tasks if in_view(task, view, now)]


def count_views(tasks: Iterable[Task], now: datetime | None = None) -> dict[str, int]:
    now = now or datetime.now(timezone.utc)
    tasks = list(tasks)
    return {view: sum(1 for task in tasks if in_view(task, view, now)) for view in TASK_VIEWS}
