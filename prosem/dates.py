"""
Date parsing, formatting and the date-list normalizer.

Date lists are the free-text 'keterangan' column of the semester program:
"14-07-2025, 21-07-2025". Teachers edit them by hand, so parsing must never
crash on a bad entry.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Iterable, Optional

log = logging.getLogger(__name__)

DISPLAY_FORMAT = "%d-%m-%Y"

_SEPARATORS = re.compile(r"[./]")


def format_date(day: date) -> str:
    """
    date(2025, 7, 14) -> '14-07-2025'
    """
    return day.strftime(DISPLAY_FORMAT)


def parse_display_date(text: str) -> Optional[date]:
    """
    Parse 'dd-mm-yyyy' (also 'dd/mm/yyyy' and 'dd.mm.yyyy').
    Returns None if the text is not a valid calendar date.
    """
    raw = _SEPARATORS.sub("-", str(text or "").strip())
    parts = raw.split("-")
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        return None
    try:
        day, month, year = (int(p) for p in parts)
        return date(year, month, day)
    except ValueError:
        return None


def parse_iso_date(text: str) -> Optional[date]:
    try:
        return datetime.strptime(str(text).strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def split_date_list(text: str) -> list[str]:
    if not text or not isinstance(text, str):
        return []
    return [p.strip() for p in text.split(",") if p.strip()]


def format_date_list(days: Iterable[date]) -> str:
    return ", ".join(format_date(d) for d in sorted(days))


def malformed_dates(text: str) -> list[str]:
    """
    Entries of a comma-separated date list that do not parse.
    """
    return [p for p in split_date_list(text) if parse_display_date(p) is None]


def normalize_and_sort(text: str) -> str:
    """
    Canonicalize and chronologically sort a comma-separated date list.

    Valid entries are rewritten as zero-padded dd-mm-yyyy and sorted by
    calendar order. Malformed entries stay at their positions; the valid
    entries are sorted into the remaining positions. Idempotent.
    """
    entries = split_date_list(text)
    parsed = [parse_display_date(e) for e in entries]

    for entry, value in zip(entries, parsed):
        if value is None:
            log.warning("Unparseable date entry kept as-is: %r", entry)

    valid = iter(sorted(d for d in parsed if d is not None))
    out: list[str] = []
    for entry, value in zip(entries, parsed):
        out.append(entry if value is None else format_date(next(valid)))
    return ", ".join(out)
