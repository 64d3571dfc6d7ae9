"""
Topic / allocation matcher.

Greedy single forward pass over the teaching sessions:
- sub-topics are filled in topic order, then sub-topic order
- a session goes wholly to the current sub-topic (never split)
- once a sub-topic's target is met (or exceeded) the next session starts the next one
- sub-topics with a target of 0 are skipped without consuming a session
- leftover units of a closing session are not carried over

Running out of sessions leaves the trailing sub-topics empty; this is
reported through MatchResult.unfilled, never raised.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from prosem.dates import format_date_list
from prosem.model import AllocationMismatch, Assignment, MatchResult, SubTopic, TeachingSession, Topic

log = logging.getLogger(__name__)


def _flatten(topics: Iterable[Topic]) -> list[tuple[Topic, SubTopic]]:
    return [(topic, sub) for topic in topics for sub in topic.subtopics]


def match_sessions(topics: Sequence[Topic], sessions: Sequence[TeachingSession]) -> MatchResult:
    """
    Assign the ordered sessions to the ordered sub-topics of `topics`.
    """
    flat = _flatten(topics)
    assignments = [
        Assignment(subtopic_id=sub.id, topic_id=topic.id, target_units=sub.target_units)
        for topic, sub in flat
    ]

    cursor = 0
    need = 0
    opened = False
    unused: list[TeachingSession] = []

    for session in sessions:
        if not opened:
            # skip zero-target sub-topics without consuming the session
            while cursor < len(flat) and flat[cursor][1].target_units <= 0:
                cursor += 1
            if cursor < len(flat):
                need = flat[cursor][1].target_units
                opened = True

        if cursor >= len(flat):
            unused.append(session)
            continue

        current = assignments[cursor]
        current.dates.append(session.date)
        current.units_covered += session.available_units
        if session.slot not in current.slots:
            current.slots.append(session.slot)

        need = max(need - session.available_units, 0)
        if need == 0:
            cursor += 1
            opened = False

    for a in assignments:
        a.notes = format_date_list(a.dates)

    result = MatchResult(assignments=assignments, unused_sessions=unused)
    if result.insufficient:
        log.warning(
            "Not enough teaching sessions: %d sub-topic(s) left unfilled (%s)",
            len(result.unfilled),
            ", ".join(result.unfilled),
        )
    return result


def validate_allocations(topics: Iterable[Topic]) -> list[AllocationMismatch]:
    """
    Topics whose sub-topic targets do not add up to the topic total.

    The matcher never calls this; callers surface the mismatches.
    """
    issues: list[AllocationMismatch] = []
    for topic in topics:
        actual = sum(s.target_units for s in topic.subtopics)
        if actual != topic.total_units:
            issues.append(AllocationMismatch(topic_id=topic.id, expected=topic.total_units, actual=actual))
    return issues
