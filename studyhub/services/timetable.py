"""Timetable slot validation, ordering and overlap detection."""

import re
from collections import defaultdict
from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from studyhub.db.models import DayOfWeek

DAY_ORDER = {day.value: index for index, day in enumerate(DayOfWeek)}

EARLIEST_START_MINUTES = 8 * 60  # 08:00
LATEST_END_MINUTES = 22 * 60  # 22:00
MIN_DURATION_MINUTES = 30

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class Slot(Protocol):
    id: UUID
    day: str
    start_time: str
    end_time: str


def is_valid_time(value: str) -> bool:
    """HH:MM, 24-hour clock."""
    return bool(_TIME_RE.match(value))


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def slot_error(start_time: str, end_time: str) -> str | None:
    """Return a human readable problem with the slot, or None if it is acceptable."""
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    if start >= end:
        return "End time must be after start time"
    if end - start < MIN_DURATION_MINUTES:
        return f"Class duration must be at least {MIN_DURATION_MINUTES} minutes"
    if start < EARLIEST_START_MINUTES or end > LATEST_END_MINUTES:
        return "Classes must be scheduled between 08:00 and 22:00"
    return None


def sort_entries(entries: Iterable[Slot]) -> list:
    """Monday first, then by start time."""
    return sorted(entries, key=lambda e: (DAY_ORDER.get(e.day, len(DAY_ORDER)), time_to_minutes(e.start_time)))


def find_overlaps(entries: Iterable[Slot]) -> list[UUID]:
    """
    IDs of entries that share time with another entry on the same day.

    Two slots overlap when start1 < end2 and start2 < end1; back-to-back
    slots (one ends as the next starts) do not.
    """
    by_day: dict[str, list[Slot]] = defaultdict(list)
    for entry in entries:
        by_day[entry.day].append(entry)

    overlapping: list[UUID] = []
    seen: set[UUID] = set()
    for day_entries in by_day.values():
        for i, first in enumerate(day_entries):
            start1, end1 = time_to_minutes(first.start_time), time_to_minutes(first.end_time)
            for second in day_entries[i + 1 :]:
                start2, end2 = time_to_minutes(second.start_time), time_to_minutes(second.end_time)
                if start1 < end2 and start2 < end1:
                    for entry_id in (first.id, second.id):
                        if entry_id not in seen:
                            seen.add(entry_id)
                            overlapping.append(entry_id)
    return overlapping
