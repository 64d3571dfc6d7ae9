"""
Unit tests for the greedy topic matcher.

Rules checked:
- sessions are consumed whole, in order
- zero-target sub-topics are skipped without using a session
- running out of sessions is reported, not raised
"""

import unittest
from datetime import date
from typing import Optional

from prosem.conflicts import find_double_bookings, find_order_violations
from prosem.matcher import match_sessions, validate_allocations
from prosem.model import SlotKey, SubTopic, TeachingSession, Topic


def _session(day: date, units: int = 2) -> TeachingSession:
    return TeachingSession(date=day, available_units=units, slot=SlotKey(day.month, (day.day - 1) // 7 + 1))


def _topic(*targets: int, total: Optional[int] = None) -> Topic:
    subs = [SubTopic(id=f"s{i}", title=f"Sub {i}", target_units=t) for i, t in enumerate(targets)]
    return Topic(id="t", title="Topic", total_units=sum(targets) if total is None else total, subtopics=subs)


class TestMatchSessions(unittest.TestCase):
    def setUp(self) -> None:
        self.sessions = [_session(date(2025, 1, 6)), _session(date(2025, 1, 13))]

    def test_one_session_per_subtopic(self) -> None:
        result = match_sessions([_topic(2, 2)], self.sessions)
        a0, a1 = result.assignments
        self.assertEqual(a0.dates, [date(2025, 1, 6)])
        self.assertEqual(a1.dates, [date(2025, 1, 13)])
        self.assertEqual(a0.notes, "06-01-2025")
        self.assertEqual(a1.slots, [SlotKey(1, 2)])
        self.assertFalse(result.insufficient)
        self.assertEqual(result.unused_sessions, [])

    def test_zero_target_is_skipped(self) -> None:
        result = match_sessions([_topic(0, 2)], self.sessions)
        a0, a1 = result.assignments
        self.assertEqual(a0.dates, [])
        self.assertEqual(a1.dates, [date(2025, 1, 6)])
        self.assertEqual([s.date for s in result.unused_sessions], [date(2025, 1, 13)])

    def test_sessions_are_not_split(self) -> None:
        with self.assertLogs("prosem.matcher", level="WARNING"):
            result = match_sessions([_topic(3, 2)], self.sessions)
        a0, a1 = result.assignments
        self.assertEqual(a0.units_covered, 4)
        self.assertEqual(len(a0.dates), 2)
        self.assertEqual(a1.dates, [])
        self.assertEqual(result.unfilled, ["s1"])

    def test_no_date_is_used_twice(self) -> None:
        sessions = [_session(date(2025, 1, d), 1) for d in (6, 7, 8, 9, 10)]
        result = match_sessions([_topic(2, 1), _topic(2)], sessions)
        used = [d for a in result.assignments for d in a.dates]
        self.assertEqual(len(used), len(set(used)))

    def test_subtopic_order_is_preserved(self) -> None:
        sessions = [_session(date(2025, 1, d), 1) for d in range(6, 25) if date(2025, 1, d).weekday() != 6]
        second = Topic(id="u", title="Topic 2", total_units=3, subtopics=[
            SubTopic(id="u0", title="Sub u0", target_units=1),
            SubTopic(id="u1", title="Sub u1", target_units=2),
        ])
        topics = [_topic(2, 3, 1), second]
        result = match_sessions(topics, sessions)

        self.assertFalse(result.insufficient)
        self.assertEqual(find_order_violations(topics, result.by_subtopic()), [])
        self.assertEqual(find_double_bookings(result.assignments), [])
        starts = [min(a.dates) for a in result.assignments]
        self.assertEqual(starts, sorted(starts))

    def test_same_week_slot_listed_once(self) -> None:
        sessions = [_session(date(2025, 1, 6), 1), _session(date(2025, 1, 7), 1)]
        result = match_sessions([_topic(2)], sessions)
        self.assertEqual(result.assignments[0].slots, [SlotKey(1, 1)])

    def test_no_sessions(self) -> None:
        with self.assertLogs("prosem.matcher", level="WARNING"):
            result = match_sessions([_topic(2)], [])
        self.assertTrue(result.insufficient)


class TestValidateAllocations(unittest.TestCase):
    def test_mismatch_is_reported(self) -> None:
        issues = validate_allocations([_topic(2, 2, total=6)])
        self.assertEqual(len(issues), 1)
        self.assertEqual((issues[0].expected, issues[0].actual), (6, 4))

    def test_matching_totals(self) -> None:
        self.assertEqual(validate_allocations([_topic(2, 2)]), [])


if __name__ == "__main__":
    unittest.main()
