"""
Unit tests for the shared data model (semester windows, the week grid, topics).
"""

import unittest
from datetime import date

from prosem.model import (
    GANJIL,
    GENAP,
    SemesterWindow,
    SlotGrid,
    SlotKey,
    SubTopic,
    Topic,
    academic_start_year,
    normalize_semester_kind,
)


class TestSemester(unittest.TestCase):
    def test_kind_normalization(self) -> None:
        self.assertEqual(normalize_semester_kind(" ganjil "), GANJIL)
        self.assertEqual(normalize_semester_kind("GENAP"), GENAP)
        with self.assertRaises(ValueError):
            normalize_semester_kind("ketiga")

    def test_academic_start_year(self) -> None:
        self.assertEqual(academic_start_year("2025/2026"), 2025)
        self.assertEqual(academic_start_year("2025-2026"), 2025)
        self.assertEqual(academic_start_year(2025), 2025)
        with self.assertRaises(ValueError):
            academic_start_year("tahun ini")

    def test_windows(self) -> None:
        ganjil = SemesterWindow.for_semester("2025/2026", "ganjil")
        genap = SemesterWindow.for_semester("2025/2026", "genap")
        self.assertEqual((ganjil.start, ganjil.end), (date(2025, 7, 1), date(2025, 12, 31)))
        self.assertEqual((genap.start, genap.end), (date(2026, 1, 1), date(2026, 6, 30)))


class TestSlotGrid(unittest.TestCase):
    def test_slot_key_range(self) -> None:
        self.assertEqual(SlotKey(2, 3).legacy_key, "b2_m3")
        with self.assertRaises(ValueError):
            SlotKey(7, 1)
        with self.assertRaises(ValueError):
            SlotKey(1, 6)

    def test_from_slots_and_rows(self) -> None:
        grid = SlotGrid.from_slots([SlotKey(1, 1), SlotKey(6, 5)])
        rows = grid.to_rows()
        self.assertEqual(len(rows), 6)
        self.assertTrue(all(len(r) == 5 for r in rows))
        self.assertTrue(rows[0][0] and rows[5][4])
        self.assertEqual(grid.active_slots(), [SlotKey(1, 1), SlotKey(6, 5)])

    def test_coerce_accepts_legacy_dict(self) -> None:
        grid = SlotGrid.coerce({"b1_m2": True, "b3_m5": False, "junk": True})
        self.assertEqual(grid.active_slots(), [SlotKey(1, 2)])
        self.assertTrue(grid.to_legacy()["b1_m2"])
        self.assertEqual(len(grid.to_legacy()), 30)

    def test_coerce_fallbacks(self) -> None:
        self.assertEqual(SlotGrid.coerce(None), SlotGrid())
        self.assertEqual(SlotGrid.coerce([[1, 0]]), SlotGrid.from_slots([SlotKey(1, 1)]))

    def test_non_list_rows_are_skipped(self) -> None:
        self.assertEqual(SlotGrid.coerce([1, [True]]), SlotGrid.from_slots([SlotKey(2, 1)]))


class TestTopic(unittest.TestCase):
    def test_with_summative_appends_one(self) -> None:
        topic = Topic("p1", "Bilangan", 6, [SubTopic("p1_0", "A", 4)])
        subs = topic.with_summative().subtopics
        self.assertEqual([s.id for s in subs], ["p1_0", "p1_slm"])
        self.assertTrue(subs[-1].summative)
        self.assertEqual(subs[-1].target_units, 2)

    def test_with_summative_keeps_last_only(self) -> None:
        topic = Topic(
            "p1",
            "Bilangan",
            6,
            [SubTopic("x", "SLM", 1, True), SubTopic("p1_0", "A", 4), SubTopic("y", "SLM", 2, True)],
        )
        self.assertEqual([s.id for s in topic.with_summative().subtopics], ["p1_0", "y"])


if __name__ == "__main__":
    unittest.main()
