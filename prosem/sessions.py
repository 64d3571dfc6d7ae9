"""
Teaching session computation.

Given a semester window, the weekly timetable of a subject and the calendar
dates without lessons, produce the ordered list of teaching sessions. Each
session is tagged with its cell in the 6-month x 5-week semester grid.

Rules:
- Sunday never has lessons
- a weekday with 0 units has no lessons
- every calendar event date is skipped, whatever its weekday
- dates in a 6th week of a month fall outside the grid and are dropped
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Iterable, Mapping, Optional

from prosem.model import (
    GRID_MONTHS,
    GRID_WEEKS,
    TEACHING_WEEKDAYS,
    WEEKDAYS,
    SemesterWindow,
    SlotKey,
    TeachingSession,
)

log = logging.getLogger(__name__)


def _date_range(start: date, end: date) -> list[date]:
    if end < start:
        return []
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def normalize_weekly_units(units_by_weekday: Mapping[Any, Any]) -> dict[int, int]:
    """
    Map {'senin': 2, 'Rabu': 3} (or {0: 2, 2: 3}) to {weekday_index: units}.

    Sunday and unknown keys are ignored; negative or non-numeric counts become 0.
    """
    out: dict[int, int] = {}
    for key, value in units_by_weekday.items():
        if isinstance(key, int):
            idx = key
        else:
            name = str(key).strip().lower()
            if name not in WEEKDAYS:
                log.debug("Ignoring unknown weekday key %r", key)
                continue
            idx = WEEKDAYS.index(name)
        if not (0 <= idx < len(TEACHING_WEEKDAYS)):
            continue
        try:
            units = int(value)
        except (TypeError, ValueError):
            units = 0
        out[idx] = max(units, 0)
    return out


def bucketize(day: date, window: SemesterWindow) -> Optional[SlotKey]:
    """
    Return the (month offset, week-of-month) grid cell of `day`.

    The month offset counts from the window's first month and wraps at 12.
    Returns None when the date falls outside the 6 x 5 grid.
    """
    month = (day.month - window.start.month) % 12 + 1
    week = (day.day - 1) // 7 + 1
    if month > GRID_MONTHS or week > GRID_WEEKS:
        return None
    return SlotKey(month, week)


def scan_sessions(
    window: SemesterWindow,
    units_by_weekday: Mapping[Any, Any],
    exceptions: Iterable[date] = (),
) -> list[TeachingSession]:
    """
    Chronological list of teaching sessions inside the window.

    An empty weekly pattern is not an error; it simply yields no sessions.
    """
    weekly = normalize_weekly_units(units_by_weekday)
    skip = set(exceptions)

    sessions: list[TeachingSession] = []
    for day in _date_range(window.start, window.end):
        units = weekly.get(day.weekday(), 0)
        if units <= 0 or day in skip:
            continue
        slot = bucketize(day, window)
        if slot is None:
            log.debug("Dropping %s: outside the semester grid", day)
            continue
        sessions.append(TeachingSession(date=day, available_units=units, slot=slot))

    if not sessions:
        log.info("No teaching sessions between %s and %s", window.start, window.end)
    return sessions


def units_from_timetable(time_slots: Iterable[Mapping[str, Any]], subject: str) -> dict[str, int]:
    """
    Count the weekly timetable slots of `subject` per weekday.

    Each time slot looks like {"lessonNumber": "1", "subjects": {"senin": "Matematika", ...}}.
    """
    wanted = str(subject or "").strip().lower()
    counts = {name: 0 for name in TEACHING_WEEKDAYS}
    if not wanted:
        return counts

    for slot in time_slots:
        subjects = slot.get("subjects") or {}
        if not isinstance(subjects, Mapping):
            continue
        for day_name, value in subjects.items():
            key = str(day_name).strip().lower()
            if key in counts and str(value or "").strip().lower() == wanted:
                counts[key] += 1
    return counts
