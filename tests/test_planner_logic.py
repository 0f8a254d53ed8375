"""Study stats, timetable rules and task views."""

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from studyhub.db.models import StudyLog, Task, TimetableEntry
from studyhub.services.study_stats import compute_study_stats, study_streak
from studyhub.services.tasks import count_views, filter_tasks
from studyhub.services.timetable import find_overlaps, is_valid_time, slot_error, sort_entries

NOW = datetime(2026, 3, 11, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def log(day_offset: int, duration: int) -> StudyLog:
    return StudyLog(
        id=uuid4(),
        topic="Calculus",
        duration=duration,
        productivity=4,
        timestamp=NOW - timedelta(days=day_offset),
    )


def entry(day: str, start: str, end: str) -> TimetableEntry:
    return TimetableEntry(id=uuid4(), title="Lecture", day=day, start_time=start, end_time=end)


def task(due: datetime, status: str = "pending") -> Task:
    return Task(id=uuid4(), title="Essay", due_date=due, priority="medium", status=status)


# =============================================================================
# STUDY STATS
# =============================================================================


class TestStudyStats:
    def test_streak_counts_consecutive_days_from_today(self):
        days = [TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=2), TODAY - timedelta(days=4)]
        assert study_streak(days, TODAY) == 3

    def test_empty_today_does_not_break_streak(self):
        days = [TODAY - timedelta(days=1), TODAY - timedelta(days=2)]
        assert study_streak(days, TODAY) == 2

    def test_gap_before_yesterday_ends_streak(self):
        assert study_streak([TODAY - timedelta(days=2)], TODAY) == 0

    def test_totals(self):
        stats = compute_study_stats([log(0, 50), log(0, 25), log(1, 45)], today=TODAY)
        assert stats.total_sessions == 3
        assert stats.total_hours == 2.0
        assert stats.streak == 2
        assert stats.average_session_minutes == 40

    def test_hours_rounded_to_one_decimal(self):
        stats = compute_study_stats([log(0, 20)], today=TODAY)
        assert stats.total_hours == 0.3

    def test_no_sessions(self):
        stats = compute_study_stats([], today=date(2026, 1, 1))
        assert (stats.total_hours, stats.total_sessions, stats.streak, stats.average_session_minutes) == (0, 0, 0, 0)

    def test_naive_timestamps_treated_as_utc(self):
        naive = StudyLog(topic="x", duration=60, productivity=3, timestamp=NOW.replace(tzinfo=None))
        assert compute_study_stats([naive], today=TODAY).streak == 1


# =============================================================================
# TIMETABLE
# =============================================================================


class TestTimetable:
    @pytest.mark.parametrize("value", ["08:00", "23:59", "00:00"])
    def test_valid_times(self, value):
        assert is_valid_time(value)

    @pytest.mark.parametrize("value", ["8:00", "24:00", "12:60", "noon"])
    def test_invalid_times(self, value):
        assert not is_valid_time(value)

    def test_slot_rules(self):
        assert slot_error("09:00", "10:00") is None
        assert slot_error("10:00", "09:00") == "End time must be after start time"
        assert slot_error("09:00", "09:00") == "End time must be after start time"
        assert "at least 30 minutes" in slot_error("09:00", "09:20")
        assert "between 08:00 and 22:00" in slot_error("07:30", "09:00")
        assert "between 08:00 and 22:00" in slot_error("21:00", "22:30")
        assert slot_error("21:30", "22:00") is None

    def test_sort_monday_first_then_start(self):
        entries = [
            entry("wednesday", "09:00", "10:00"),
            entry("monday", "14:00", "15:00"),
            entry("monday", "08:00", "09:00"),
        ]
        ordered = sort_entries(entries)
        assert [(e.day, e.start_time) for e in ordered] == [
            ("monday", "08:00"),
            ("monday", "14:00"),
            ("wednesday", "09:00"),
        ]

    def test_overlaps_reported_once(self):
        a = entry("monday", "09:00", "11:00")
        b = entry("monday", "10:00", "12:00")
        c = entry("monday", "10:30", "11:30")
        d = entry("tuesday", "10:00", "12:00")
        overlapping = find_overlaps([a, b, c, d])
        assert sorted(overlapping) == sorted([a.id, b.id, c.id])
        assert len(overlapping) == 3

    def test_back_to_back_is_not_overlap(self):
        assert find_overlaps([entry("friday", "09:00", "10:00"), entry("friday", "10:00", "11:00")]) == []


# =============================================================================
# TASK VIEWS
# =============================================================================


class TestTaskViews:
    def test_views(self):
        due_today = task(NOW + timedelta(hours=3))
        overdue = task(NOW - timedelta(days=2))
        overdue_done = task(NOW - timedelta(days=2), status="completed")
        later = task(NOW + timedelta(days=5), status="in_progress")
        tasks = [due_today, overdue, overdue_done, later]

        assert filter_tasks(tasks, "due_today", NOW) == [due_today]
        assert filter_tasks(tasks, "overdue", NOW) == [overdue]
        assert filter_tasks(tasks, "completed", NOW) == [overdue_done]
        assert filter_tasks(tasks, "in_progress", NOW) == [later]
        assert filter_tasks(tasks, "all", NOW) == tasks

    def test_earlier_today_is_due_today_not_overdue(self):
        earlier = task(NOW - timedelta(hours=2))
        assert filter_tasks([earlier], "overdue", NOW) == []
        assert filter_tasks([earlier], "due_today", NOW) == [earlier]

    def test_counts(self):
        tasks = [task(NOW), task(NOW - timedelta(days=1)), task(NOW + timedelta(days=1), status="completed")]
        counts = count_views(tasks, NOW)
        assert counts == {
            "all": 3,
            "due_today": 1,
            "overdue": 1,
            "pending": 2,
            "in_progress": 0,
            "completed": 1,
        }
