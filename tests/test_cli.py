"""
Tests for CLI entry points.

These tests focus on:
- Basic argument validation (missing options -> nonzero exit)
- A plan/show/pull run against a temporary data directory
  (to avoid touching real school data during tests)
"""

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

from prosem.cli import main
from prosem.storage import DocumentKey, load_prosem, prosem_path

CLEAN_ENV = {"PROSEM_USER": "", "PROSEM_DATA_DIR": "", "API_KEY": "", "GEMINI_API_KEYS": ""}


def _run(*argv: str) -> tuple[int, str]:
    out = io.StringIO()
    with redirect_stdout(out):
        with mock.patch.dict(os.environ, CLEAN_ENV):
            try:
                main(list(argv))
            except SystemExit as exc:
                return exc.code, out.getvalue()
    return -1, out.getvalue()


class TestCLIValidation(unittest.TestCase):
    def test_sort_dates(self) -> None:
        code, out = _run("sort-dates", "21-07-2025, 14-07-2025")
        self.assertEqual(code, 0)
        self.assertIn("14-07-2025, 21-07-2025", out)

    def test_sort_dates_requires_text(self) -> None:
        code, _ = _run("sort-dates", "  ")
        self.assertNotEqual(code, 0)

    def test_plan_requires_subject(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            code, _ = _run("plan", "--data-dir", d, "--class", "Kelas I")
        self.assertEqual(code, 1)

    def test_invalid_year(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            code, out = _run("sessions", "--data-dir", d, "--year", "abc", "--class", "Kelas I", "--subject", "X")
        self.assertEqual(code, 1)
        self.assertIn("Error", out)


class TestCLIPlanRun(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)
        year_dir = self.data_dir / "schoolData" / "2025-2026"
        class_dir = year_dir / "kelas-i"
        self._write(
            year_dir / "calendar.json",
            {"events": [{"date": "2025-12-10", "description": "Sumatif Akhir Semester", "type": "event"}]},
        )
        self._write(
            class_dir / "schedule.json",
            {"timeSlots": [{"lessonNumber": "1", "subjects": {"senin": "Matematika", "kamis": "Matematika"}}]},
        )
        self._write(
            class_dir / "prota" / "matematika.json",
            {
                "ganjilRows": [
                    {"id": "r1", "material": "Bilangan", "materialScope": "Membilang\nMenulis", "alokasiWaktu": 6}
                ]
            },
        )
        self.common = [
            "--data-dir", str(self.data_dir), "--year", "2025/2026",
            "--class", "Kelas I", "--subject", "Matematika", "--semester", "ganjil",
        ]
        self.key = DocumentKey("2025/2026", "Kelas I", "Matematika", "Ganjil")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, path: Path, data: object) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")

    def test_sessions(self) -> None:
        code, out = _run("sessions", *self.common)
        self.assertEqual(code, 0)
        self.assertIn("sessions", out)

    def test_dry_run_saves_nothing(self) -> None:
        code, _ = _run("plan", *self.common, "--dry-run")
        self.assertEqual(code, 0)
        self.assertFalse(prosem_path(self.data_dir, self.key).exists())

    def test_plan_then_show(self) -> None:
        code, _ = _run("plan", *self.common)
        self.assertEqual(code, 0)

        stored = load_prosem(self.data_dir, self.key)
        self.assertEqual(sorted(stored), ["r1_0", "r1_1", "r1_slm"])
        # 1 JP on Mondays and Thursdays, 2 JP per row
        self.assertEqual(stored["r1_0"]["notes"], "03-07-2025, 07-07-2025")
        self.assertEqual(stored["r1_slm"]["notes"], "17-07-2025, 21-07-2025")
        self.assertEqual(stored["r1_0"]["units"], 2)

        code, _ = _run("show", *self.common)
        self.assertEqual(code, 0)

    def test_show_without_plan(self) -> None:
        code, _ = _run("show", "--data-dir", str(self.data_dir), "--class", "Kelas II", "--subject", "IPAS")
        self.assertEqual(code, 1)

    def test_calendar(self) -> None:
        code, out = _run("calendar", "--data-dir", str(self.data_dir), "--year", "2025/2026")
        self.assertEqual(code, 0)
        self.assertIn("10-12-2025", out)

    def test_pull(self) -> None:
        code, _ = _run("pull", *self.common)
        self.assertEqual(code, 1)  # no --user

        code, _ = _run("pull", *self.common, "--user", "guru-1")
        self.assertEqual(code, 1)  # no master yet

        _run("plan", *self.common)
        code, _ = _run("pull", *self.common, "--user", "guru-1")
        self.assertEqual(code, 0)
        user_key = DocumentKey("2025/2026", "Kelas I", "Matematika", "Ganjil", user_id="guru-1")
        self.assertEqual(sorted(load_prosem(self.data_dir, user_key)), ["r1_0", "r1_1", "r1_slm"])


if __name__ == "__main__":
    unittest.main()
