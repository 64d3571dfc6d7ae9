"""
Academic calendar helpers.

- classify calendar events (national holiday, leave, assessment, ...)
- compute the printed day code of each calendar day
- count effective (lesson) days per semester
- resolve the end-of-term assessment window label

Event dates are stored as 'YYYY-MM-DD' text, descriptions are free Indonesian
text, so classification is keyword based.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional

from prosem.dates import format_date
from prosem.model import (
    GANJIL,
    GENAP,
    AcademicYear,
    AssessmentWindow,
    CalendarEvent,
    EffectiveDays,
    academic_start_year,
    normalize_semester_kind,
)

log = logging.getLogger(__name__)


class EventCategory(str, Enum):
    LHB = "LHB"
    LIBUR_BIASA = "LIBUR_BIASA"
    CUTI = "CUTI"
    PENILAIAN = "PENILAIAN"
    KEGIATAN = "KEGIATAN"


LHB_KEYWORDS = (
    "hut", "maulid", "natal", "tahun baru masehi", "isra", "imlek", "nyepi", "idul fitri",
    "idul adha", "wafat yesus", "buruh internasional", "kenaikan yesus", "waisak",
    "lahir pancasila", "tahun baru islam",
)
LIBUR_BIASA_KEYWORDS = ("libur semester", "libur sekitar hari raya")
CUTI_KEYWORDS = ("cuti bersama",)
PENILAIAN_KEYWORDS = ("sumatif tengah semester", "sumatif akhir semester", "sumatif akhir tahun")

LEGEND = {
    "LHB": "Libur Hari Besar",
    "LU": "Libur Umum",
    "LS1": "Libur Semester 1",
    "LS2": "Libur Semester 2",
    "CB": "Cuti Bersama",
    "LHR": "Libur Sekitar Hari Raya",
    "LB": "Libur Biasa",
    "KPP": "Kegiatan Awal Puasa",
    "KOR": "Koreksi & Olah Rapor",
    "KS": "Kegiatan Sekolah",
    "KTS": "Kegiatan Tengah Semester",
    "MPS": "Masa Pengenalan Lingkungan Sekolah",
    "PNL": "Penilaian",
    "STS": "Sumatif Tengah Semester",
    "SAS": "Sumatif Akhir Semester",
    "SAT": "Sumatif Akhir Tahun",
}

_SUNDAY = "SUNDAY"
_PRIORITY = (
    EventCategory.LHB,
    _SUNDAY,
    EventCategory.CUTI,
    EventCategory.LIBUR_BIASA,
    EventCategory.PENILAIAN,
    EventCategory.KEGIATAN,
)

ASSESSMENT_KEYWORDS = {GANJIL: "akhir semester", GENAP: "akhir tahun"}
ASSESSMENT_LABELS = {GANJIL: "SUMATIF AKHIR SEMESTER", GENAP: "SUMATIF AKHIR TAHUN"}


def classify_event(event: CalendarEvent) -> Optional[EventCategory]:
    desc = (event.description or "").lower()

    # assessment wins: some holiday descriptions overlap with assessment ones
    if event.type == "assessment" or any(k in desc for k in PENILAIAN_KEYWORDS):
        return EventCategory.PENILAIAN

    if event.type == "holiday":
        if any(k in desc for k in CUTI_KEYWORDS):
            return EventCategory.CUTI
        if any(k in desc for k in LIBUR_BIASA_KEYWORDS):
            return EventCategory.LIBUR_BIASA
        if any(k in desc for k in LHB_KEYWORDS):
            return EventCategory.LHB
        return EventCategory.LIBUR_BIASA

    if event.type == "event":
        return EventCategory.KEGIATAN
    return None


def _events_by_day(events: Iterable[CalendarEvent]) -> dict[date, list[CalendarEvent]]:
    out: dict[date, list[CalendarEvent]] = defaultdict(list)
    for ev in events:
        d = ev.day()
        if d is None:
            log.warning("Skipping calendar event with invalid date: %r", ev.date)
            continue
        out[d].append(ev)
    return out


def _first_description(events: list[CalendarEvent], category: EventCategory) -> str:
    for ev in events:
        if classify_event(ev) == category:
            return (ev.description or "").lower()
    return ""


def day_code(day: date, events_on_day: Iterable[CalendarEvent]) -> Optional[str]:
    """
    Printed code of a calendar day, or None for an effective (lesson) day.
    """
    events = list(events_on_day)
    present: set = {classify_event(ev) for ev in events} - {None}
    if day.weekday() == 6:
        present.add(_SUNDAY)

    top = next((c for c in _PRIORITY if c in present), None)
    if top is None:
        return None
    if top == _SUNDAY:
        return "LU"
    if top == EventCategory.LHB:
        return "LHB"
    if top == EventCategory.CUTI:
        return "CB"
    if top == EventCategory.LIBUR_BIASA:
        desc = _first_description(events, top)
        if "libur semester genap" in desc:
            return "LS2"
        if "libur semester ganjil" in desc:
            return "LS1"
        if "libur sekitar hari raya" in desc:
            return "LHR"
        return "LB"
    if top == EventCategory.PENILAIAN:
        desc = _first_description(events, top)
        if "sumatif akhir tahun" in desc:
            return "SAT"
        if "sumatif akhir semester" in desc:
            return "SAS"
        if "sumatif tengah semester" in desc:
            return "STS"
        return "PNL"

    desc = _first_description(events, EventCategory.KEGIATAN)
    if "kegiatan permulaan puasa" in desc:
        return "KPP"
    if "kegiatan tengah semester" in desc:
        return "KTS"
    if "mpls" in desc or "masa pengenalan lingkungan sekolah" in desc:
        return "MPS"
    if any(k in desc for k in ("koreksi", "pengolahan rapor", "pembagian rapor")):
        return "KOR"
    return "KS"


def effective_days(events: Iterable[CalendarEvent], academic_year: AcademicYear) -> EffectiveDays:
    """
    Count lesson days of the July-June academic year, split per semester.
    """
    start_year = academic_start_year(academic_year)
    by_day = _events_by_day(events)

    ganjil = genap = 0
    day = date(start_year, 7, 1)
    end = date(start_year + 1, 6, 30)
    while day <= end:
        if day_code(day, by_day.get(day, [])) is None:
            if day.month >= 7:
                ganjil += 1
            else:
                genap += 1
        day += timedelta(days=1)
    return EffectiveDays(ganjil=ganjil, genap=genap)


def exception_dates(events: Iterable[CalendarEvent]) -> set[date]:
    """
    Dates without regular lessons: every dated calendar event.
    """
    return set(_events_by_day(events))


def resolve_assessment_window(
    events: Iterable[CalendarEvent], kind: str, label: Optional[str] = None
) -> AssessmentWindow:
    """
    Date range of the end-of-semester (Ganjil) or end-of-year (Genap) assessment.

    No match gives an empty range text, never an error.
    """
    kind = normalize_semester_kind(kind)
    keyword = ASSESSMENT_KEYWORDS[kind]
    label = label or ASSESSMENT_LABELS[kind]

    days = sorted(
        {
            d
            for ev in events
            if keyword in (ev.description or "").lower()
            for d in [ev.day()]
            if d is not None
        }
    )

    if not days:
        text = ""
    elif len(days) == 1:
        text = format_date(days[0])
    else:
        text = f"{format_date(days[0])} sampai {format_date(days[-1])}"
    return AssessmentWindow(label=label, date_range_text=text, dates=tuple(days))
