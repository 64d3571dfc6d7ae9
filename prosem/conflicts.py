"""
Schedule consistency checks.

Given per-sub-topic assignments, detect:
- double booking: one teaching date used by two different sub-topics
- order violations: inside a topic, a sub-topic received a date earlier than
  a date already used by one of the sub-topics before it
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable, Mapping, Sequence

from prosem.model import Assignment, Topic


def find_double_bookings(assignments: Iterable[Assignment]) -> list[tuple[date, list[str]]]:
    """
    Dates assigned to more than one sub-topic, with the sub-topic ids using them.
    Sorted by date.
    """
    users: dict[date, list[str]] = defaultdict(list)
    for a in assignments:
        # a sub-topic listing the same date twice is not a conflict with itself
        for d in dict.fromkeys(a.dates):
            users[d].append(a.subtopic_id)

    return [(d, ids) for d, ids in sorted(users.items()) if len(ids) > 1]


def find_order_violations(
    topics: Sequence[Topic], assignments: Mapping[str, Assignment]
) -> list[str]:
    """
    Sub-topic ids that start before an earlier sub-topic of the same topic ended.
    """
    violations: list[str] = []
    for topic in topics:
        latest: date | None = None
        for sub in topic.subtopics:
            a = assignments.get(sub.id)
            if a is None or not a.dates:
                continue
            if latest is not None and min(a.dates) < latest:
                violations.append(sub.id)
            latest = max(a.dates) if latest is None else max(latest, max(a.dates))
    return violations
