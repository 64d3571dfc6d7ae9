"""
Unit tests for date parsing and the date-list normalizer.

Contract:
- dd-mm-yyyy is the display format (zero padded)
- normalize_and_sort() sorts chronologically, not lexically
- malformed entries are kept where they were, never raise
"""

import unittest
from datetime import date

from prosem.dates import (
    format_date,
    format_date_list,
    malformed_dates,
    normalize_and_sort,
    parse_display_date,
    parse_iso_date,
)


class TestParseAndFormat(unittest.TestCase):
    def test_format_is_zero_padded(self) -> None:
        self.assertEqual(format_date(date(2025, 7, 1)), "01-07-2025")

    def test_parse_accepts_other_separators(self) -> None:
        self.assertEqual(parse_display_date("1/7/2025"), date(2025, 7, 1))
        self.assertEqual(parse_display_date("01.07.2025"), date(2025, 7, 1))

    def test_parse_invalid_returns_none(self) -> None:
        self.assertIsNone(parse_display_date("31-02-2025"))
        self.assertIsNone(parse_display_date("besok"))
        self.assertIsNone(parse_display_date(""))

    def test_parse_iso(self) -> None:
        self.assertEqual(parse_iso_date("2025-12-10"), date(2025, 12, 10))
        self.assertIsNone(parse_iso_date("10-12-2025"))

    def test_format_list_sorts(self) -> None:
        days = [date(2025, 8, 4), date(2025, 7, 28)]
        self.assertEqual(format_date_list(days), "28-07-2025, 04-08-2025")


class TestNormalizeAndSort(unittest.TestCase):
    def test_sorts_two_dates(self) -> None:
        self.assertEqual(normalize_and_sort("21-07-2025, 14-07-2025"), "14-07-2025, 21-07-2025")

    def test_sorts_by_calendar_not_text(self) -> None:
        # lexically "02-08" < "14-07", chronologically it is later
        self.assertEqual(normalize_and_sort("02-08-2025, 14-07-2025"), "14-07-2025, 02-08-2025")

    def test_pads_and_trims(self) -> None:
        self.assertEqual(normalize_and_sort(" 5-7-2025 ,1-7-2025"), "01-07-2025, 05-07-2025")

    def test_idempotent(self) -> None:
        once = normalize_and_sort("21-07-2025, 5-7-2025, 14-07-2025")
        self.assertEqual(normalize_and_sort(once), once)

    def test_idempotent_with_malformed_entries(self) -> None:
        with self.assertLogs("prosem.dates", level="WARNING"):
            once = normalize_and_sort("21-07-2025, kemarin, 5-7-2025, ,x")
            twice = normalize_and_sort(once)
        self.assertEqual(once, "05-07-2025, kemarin, 21-07-2025, x")
        self.assertEqual(twice, once)

    def test_malformed_entry_keeps_position(self) -> None:
        with self.assertLogs("prosem.dates", level="WARNING"):
            out = normalize_and_sort("21-07-2025, kemarin, 14-07-2025")
        self.assertEqual(out, "14-07-2025, kemarin, 21-07-2025")

    def test_empty_input(self) -> None:
        self.assertEqual(normalize_and_sort(""), "")

    def test_malformed_dates_lists_bad_entries(self) -> None:
        self.assertEqual(malformed_dates("14-07-2025, 32-07-2025, x"), ["32-07-2025", "x"])


if __name__ == "__main__":
    unittest.main()
