"""
CLI (Command Line Interface).

Terminal commands for building and inspecting a semester program (PROSEM):

    prosem sessions  --year 2025/2026 --class "Kelas I" --subject Matematika --semester Ganjil
    prosem plan      ... [--ai] [--dry-run]
    prosem show      ...
    prosem calendar  --year 2025/2026
    prosem sort-dates "21-07-2025, 14-07-2025"
    prosem pull      ... --user <teacher id>

Note:
- Settings come from the environment (see prosem/config.py); flags override them
- Output is rendered with rich; library modules only log
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from prosem.academic_calendar import (
    LEGEND,
    classify_event,
    effective_days,
    exception_dates,
    resolve_assessment_window,
)
from prosem.config import Settings, load_settings
from prosem.dates import format_date, malformed_dates, normalize_and_sort
from prosem.gemini import GeminiClient
from prosem.model import GANJIL, GENAP, GRID_MONTHS, GRID_WEEKS, WEEKDAYS, SemesterWindow, SlotKey
from prosem.planner import build_rows, plan_semester
from prosem.sessions import scan_sessions, units_from_timetable
from prosem.storage import (
    DocumentKey,
    load_calendar_events,
    load_prosem,
    load_prota,
    load_timetable,
    merge_prosem,
    pull_from_master,
)

console = Console()

DEFAULT_YEAR = "2025/2026"

MONTH_NAMES = {
    GANJIL: ("Juli", "Agustus", "September", "Oktober", "November", "Desember"),
    GENAP: ("Januari", "Februari", "Maret", "April", "Mei", "Juni"),
}


def _settings(args: argparse.Namespace) -> Settings:
    """
    Environment settings with the command line flags applied on top.
    """
    settings = load_settings()
    if args.data_dir:
        settings.data_dir = Path(args.data_dir)
    if args.user:
        settings.user_id = args.user.strip() or None
    return settings


def _require(args: argparse.Namespace, *names: str) -> bool:
    missing = [f"--{n.replace('_level', '')}" for n in names if not (getattr(args, n, None) or "").strip()]
    if missing:
        console.print(f"Missing option(s): {', '.join(missing)}", markup=False)
        return False
    return True


def _key(args: argparse.Namespace, settings: Settings) -> DocumentKey:
    return DocumentKey(
        academic_year=args.year,
        class_level=args.class_level,
        subject=args.subject,
        semester=args.semester,
        user_id=settings.user_id,
    )


def _cmd_sessions(args: argparse.Namespace) -> int:
    """
    List the teaching sessions of a subject with their week-grid cell.
    """
    if not _require(args, "class_level", "subject"):
        return 1
    settings = _settings(args)

    events = load_calendar_events(settings.data_dir, args.year, settings.user_id)
    time_slots = load_timetable(settings.data_dir, args.year, args.class_level, settings.user_id)
    weekly = units_from_timetable(time_slots, args.subject)
    window = SemesterWindow.for_semester(args.year, args.semester)
    sessions = scan_sessions(window, weekly, exception_dates(events))

    if not sessions:
        console.print("No teaching sessions (check the timetable and the subject name).")
        return 0

    table = Table(title=f"Teaching sessions: {args.subject} ({window.kind})", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Date")
    table.add_column("Day")
    table.add_column("JP", justify="right")
    table.add_column("Week")
    for i, s in enumerate(sessions, start=1):
        table.add_row(
            str(i), format_date(s.date), WEEKDAYS[s.date.weekday()].title(), str(s.available_units), s.slot.legacy_key
        )
    console.print(table)
    console.print(f"{len(sessions)} sessions, {sum(s.available_units for s in sessions)} JP")
    return 0


def _cmd_plan(args: argparse.Namespace) -> int:
    """
    Build (and save) the semester program for one subject.
    """
    if not _require(args, "class_level", "subject"):
        return 1
    settings = _settings(args)
    key = _key(args, settings)

    prota_rows = load_prota(
        settings.data_dir, args.year, args.class_level, args.subject, args.semester, settings.user_id
    )
    if not prota_rows:
        console.print(f"No yearly plan (PROTA) rows for {args.subject} ({args.semester}).", markup=False)
        return 1

    client: Optional[GeminiClient] = None
    if args.ai:
        if settings.api_keys:
            client = GeminiClient(settings.api_keys, model=settings.gemini_model)
        else:
            console.print("Warning: --ai given but no API key configured; using the matcher.")

    plan = plan_semester(
        prota_rows=prota_rows,
        events=load_calendar_events(settings.data_dir, args.year, settings.user_id),
        time_slots=load_timetable(settings.data_dir, args.year, args.class_level, settings.user_id),
        subject=args.subject,
        academic_year=args.year,
        semester=args.semester,
        stored=load_prosem(settings.data_dir, key),
        client=client,
    )

    for m in plan.mismatches:
        console.print(f"Warning: {m}", markup=False)
    for reason in plan.rejected_reasons:
        console.print(f"AI suggestion rejected: {reason}", markup=False)
    if plan.result.insufficient:
        console.print(
            f"Warning: not enough sessions for {len(plan.result.unfilled)} row(s): {', '.join(plan.result.unfilled)}",
            markup=False,
        )

    table = Table(title=f"PROSEM {args.subject} ({args.semester}) via {plan.source}", box=box.SIMPLE)
    table.add_column("Row")
    table.add_column("Lingkup Materi")
    table.add_column("JP", justify="right")
    table.add_column("Weeks")
    table.add_column("Keterangan")
    for row in plan.rows:
        weeks = " ".join(s.legacy_key for s in row.weeks.active_slots())
        table.add_row(row.id, row.scope, str(row.units), weeks, row.notes)
    console.print(table)

    if plan.assessment is not None and plan.assessment.date_range_text:
        console.print(f"{plan.assessment.label}: {plan.assessment.date_range_text}", markup=False)

    if args.dry_run:
        console.print("Dry run: nothing saved.")
        return 0

    path = merge_prosem(plan.rows, settings.data_dir, key)
    console.print(f"Saved {len(plan.rows)} rows to: {path}", markup=False, highlight=False)
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    """
    Render the stored plan as the printed 6 x 5 week grid.
    """
    if not _require(args, "class_level", "subject"):
        return 1
    settings = _settings(args)
    key = _key(args, settings)

    stored = load_prosem(settings.data_dir, key)
    prota_rows = load_prota(
        settings.data_dir, args.year, args.class_level, args.subject, args.semester, settings.user_id
    )
    rows = build_rows(prota_rows, stored)
    if not rows:
        console.print("No plan found.")
        return 1

    window = SemesterWindow.for_semester(args.year, args.semester)
    months = MONTH_NAMES[window.kind or GANJIL]

    table = Table(title=f"PROSEM {args.subject} ({window.kind})", box=box.SIMPLE, show_lines=False)
    table.add_column("Materi")
    table.add_column("Lingkup Materi")
    table.add_column("JP", justify="right")
    for m in range(GRID_MONTHS):
        for w in range(GRID_WEEKS):
            table.add_column(f"{months[m][:3]}{w + 1}", justify="center")
    table.add_column("Keterangan")

    for row in rows:
        cells = [
            "x" if row.weeks.is_active(SlotKey(m + 1, w + 1)) else ""
            for m in range(GRID_MONTHS)
            for w in range(GRID_WEEKS)
        ]
        table.add_row(row.material, row.scope, str(row.units or ""), *cells, row.notes)
    console.print(table)

    events = load_calendar_events(settings.data_dir, args.year, settings.user_id)
    assessment = resolve_assessment_window(events, window.kind or args.semester)
    if assessment.date_range_text:
        console.print(f"{assessment.label}: {assessment.date_range_text}", markup=False)
    return 0


def _cmd_calendar(args: argparse.Namespace) -> int:
    """
    Effective-day summary of the academic year plus the assessment windows.
    """
    settings = _settings(args)
    events = load_calendar_events(settings.data_dir, args.year, settings.user_id)
    if not events:
        console.print(f"No calendar events for {args.year}.", markup=False)

    if args.events and events:
        ev_table = Table(title="Calendar events", box=box.SIMPLE)
        ev_table.add_column("Date")
        ev_table.add_column("Category")
        ev_table.add_column("Description")
        for ev in sorted(events, key=lambda e: e.date):
            category = classify_event(ev)
            ev_table.add_row(ev.date, category.value if category else "", ev.description)
        console.print(ev_table)

    eff = effective_days(events, args.year)
    table = Table(title=f"Effective days {args.year}", box=box.SIMPLE)
    table.add_column("Semester")
    table.add_column("Days", justify="right")
    table.add_column("Weeks", justify="right")
    table.add_row(GANJIL, str(eff.ganjil), str(eff.ganjil_weeks))
    table.add_row(GENAP, str(eff.genap), str(eff.genap_weeks))
    console.print(table)

    for kind in (GANJIL, GENAP):
        window = resolve_assessment_window(events, kind)
        console.print(f"{window.label}: {window.date_range_text or '-'}", markup=False)

    if args.legend:
        for code, text in LEGEND.items():
            console.print(f"{code:>4}  {text}", markup=False, highlight=False)
    return 0


def _cmd_sort_dates(args: argparse.Namespace) -> int:
    """
    Normalize and sort a comma-separated dd-mm-yyyy list.
    """
    text = (args.text or "").strip()
    if not text:
        console.print("Please provide a date list.")
        return 1

    for bad in malformed_dates(text):
        console.print(f"Warning: not a date: {bad!r}", markup=False)
    console.print(normalize_and_sort(text), markup=False, highlight=False)
    return 0


def _cmd_pull(args: argparse.Namespace) -> int:
    """
    Overwrite the teacher's copy with the master (admin) plan.
    """
    if not _require(args, "class_level", "subject"):
        return 1
    settings = _settings(args)
    if not settings.user_id:
        console.print("Please provide --user (or set PROSEM_USER).")
        return 1

    try:
        path = pull_from_master(settings.data_dir, _key(args, settings))
    except FileNotFoundError as exc:
        console.print(str(exc), markup=False)
        return 1

    console.print(f"Pulled master plan to: {path}", markup=False, highlight=False)
    return 0


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--year", default=DEFAULT_YEAR, help="Academic year (e.g. 2025/2026)")
    common.add_argument("--class", dest="class_level", default=None, help='Class name (e.g. "Kelas I")')
    common.add_argument("--subject", default=None, help="Subject name as in the timetable")
    common.add_argument("--semester", default=GANJIL, type=str.title, choices=(GANJIL, GENAP))
    common.add_argument("--data-dir", default=None, help="Root folder of the JSON documents")
    common.add_argument("--user", default=None, help="Teacher id; omit for the master copy")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return common


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    common = _common_options()
    parser = argparse.ArgumentParser(prog="prosem", description="Semester program (PROSEM) planner")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("sessions", parents=[common], help="List teaching sessions")

    p_plan = sub.add_parser("plan", parents=[common], help="Build and save the semester program")
    p_plan.add_argument("--ai", action="store_true", help="Ask the Gemini model first (validated)")
    p_plan.add_argument("--dry-run", action="store_true", help="Do not save the result")

    sub.add_parser("show", parents=[common], help="Show the stored plan as a week grid")

    p_cal = sub.add_parser("calendar", parents=[common], help="Effective days and assessment windows")
    p_cal.add_argument("--events", action="store_true", help="Also list the classified events")
    p_cal.add_argument("--legend", action="store_true", help="Print the day-code legend")

    p_sort = sub.add_parser("sort-dates", parents=[common], help="Normalize a dd-mm-yyyy date list")
    p_sort.add_argument("text", type=str, help='Dates, e.g. "21-07-2025, 14-07-2025"')

    sub.add_parser("pull", parents=[common], help="Copy the master plan into the teacher copy")

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.command == "sessions":
            raise SystemExit(_cmd_sessions(args))
        if args.command == "plan":
            raise SystemExit(_cmd_plan(args))
        if args.command == "show":
            raise SystemExit(_cmd_show(args))
        if args.command == "calendar":
            raise SystemExit(_cmd_calendar(args))
        if args.command == "sort-dates":
            raise SystemExit(_cmd_sort_dates(args))
        if args.command == "pull":
            raise SystemExit(_cmd_pull(args))
    except ValueError as exc:
        # bad academic year and similar input errors
        console.print(f"Error: {exc}", markup=False)
        raise SystemExit(1) from exc

    raise SystemExit(2)
