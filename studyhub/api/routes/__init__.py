"""API routes package."""

from studyhub.api.routes import (
    auth,
    bookmarks,
    chat,
    files,
    notes,
    resources,
    study_logs,
    tasks,
    timetable,
)

__all__ = [
    "auth",
    "bookmarks",
    "chat",
    "files",
    "notes",
    "resources",
    "study_logs",
    "tasks",
    "timetable",
]
