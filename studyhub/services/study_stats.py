"""Aggregate statistics over a user's study sessions."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from studyhub.db.models import StudyLog, as_utc


@dataclass(frozen=True)
class StudyStats:
    total_hours: float
    total_sessions: int
    streak: int
    average_session_minutes: int


def study_streak(session_days: Iterable[date], today: date) -> int:
    """
    Count consecutive days with at least one session, walking back from today.

    A day without sessions so far today does not break the streak; counting
    then starts from yesterday.
    """
    days = set(session_days)
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def compute_study_stats(logs: Iterable[StudyLog], today: date | None = None) -> StudyStats:
    logs = list(logs)
    today = today or datetime.now(timezone.utc).date()

    total_minutes = sum(log.duration for log in logs)
    total_sessions = len(logs)
    streak = study_streak((as_utc(log.timestamp).date() for log in logs), today)

    return StudyStats(
        total_hours=round(total_minutes / 60, 1),
        total_sessions=total_sessions,
        streak=streak,
        average_session_minutes=round(total_minutes / total_sessions) if total_sessions else 0,
    )
