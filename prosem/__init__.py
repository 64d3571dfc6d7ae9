"""
Semester program (PROSEM) planner.

Turns a yearly plan, a weekly timetable and an academic calendar into the
week-by-week semester program of a subject.
"""

from pathlib import Path

__version__ = (Path(__file__).resolve().parent / "VERSION").read_text(encoding="utf-8").strip()
