"""
Persistent JSON storage for calendars, timetables, yearly plans and PROSEM documents.

Documents are laid out like the school's document store:

    <data_dir>/schoolData/<year>/...        master (admin) copy
    <data_dir>/users/<user_id>/<year>/...   a teacher's own copy

    <root>/<year>/calendar.json                          {"events": [...]}
    <root>/<year>/<class>/schedule.json                  {"timeSlots": [...]}
    <root>/<year>/<class>/prota/<subject>.json           {"ganjilRows": [...], "genapRows": [...]}
    <root>/<year>/<class>/prosem/<subject>_<sem>.json    {row_id: {"units", "weeks", "notes"}}

Loading is deliberately defensive: a missing or corrupted file loads as an
empty value and never crashes the application.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from prosem.model import (
    GANJIL,
    CalendarEvent,
    ProsemRow,
    ProtaRow,
    SlotGrid,
    normalize_semester_kind,
)

log = logging.getLogger(__name__)

MASTER_ROOT = "schoolData"


@dataclass(frozen=True)
class DocumentKey:
    """
    Identifies one PROSEM document: (year, class, subject, semester) plus the owner.
    """

    academic_year: str
    class_level: str
    subject: str
    semester: str
    user_id: Optional[str] = None

    def for_master(self) -> "DocumentKey":
        return DocumentKey(self.academic_year, self.class_level, self.subject, self.semester, None)


def year_doc_id(academic_year: str) -> str:
    return str(academic_year).strip().replace("/", "-")


def class_doc_id(class_level: str) -> str:
    text = str(class_level or "").strip().lower()
    return re.sub(r"\s+", "-", text) if text else "unknown-class"


def subject_doc_id(subject: str) -> str:
    text = str(subject or "").strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def document_root(data_dir: str | Path, user_id: Optional[str] = None) -> Path:
    base = Path(data_dir)
    if user_id:
        return base / "users" / user_id
    return base / MASTER_ROOT


def _class_dir(data_dir: str | Path, academic_year: str, class_level: str, user_id: Optional[str]) -> Path:
    return document_root(data_dir, user_id) / year_doc_id(academic_year) / class_doc_id(class_level)


def prosem_path(data_dir: str | Path, key: DocumentKey) -> Path:
    semester = normalize_semester_kind(key.semester).lower()
    name = f"{subject_doc_id(key.subject)}_{semester}.json"
    return _class_dir(data_dir, key.academic_year, key.class_level, key.user_id) / "prosem" / name


def _read_json(path: Path) -> Any:
    """
    Return the decoded JSON content, or None if the file is missing or broken.
    """
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        log.warning("Ignoring unreadable file %s: %s", path, exc)
        return None


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _as_int(value: Any) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError, OverflowError):
        return 0


# ---------------------------------------------------------------------------
# Inputs (calendar, timetable, yearly plan)
# ---------------------------------------------------------------------------


def load_calendar_events(
    data_dir: str | Path, academic_year: str, user_id: Optional[str] = None
) -> list[CalendarEvent]:
    path = document_root(data_dir, user_id) / year_doc_id(academic_year) / "calendar.json"
    data = _read_json(path)
    raw = data.get("events", []) if isinstance(data, dict) else data
    if not isinstance(raw, list):
        return []

    events: list[CalendarEvent] = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("date"):
            continue
        events.append(
            CalendarEvent(
                date=str(item["date"]).strip(),
                description=str(item.get("description") or ""),
                type=str(item.get("type") or "event"),
                id=item.get("id"),
            )
        )
    return events


def load_timetable(
    data_dir: str | Path, academic_year: str, class_level: str, user_id: Optional[str] = None
) -> list[dict[str, Any]]:
    data = _read_json(_class_dir(data_dir, academic_year, class_level, user_id) / "schedule.json")
    slots = data.get("timeSlots", []) if isinstance(data, dict) else data
    if not isinstance(slots, list):
        return []
    return [s for s in slots if isinstance(s, dict)]


def load_prota(
    data_dir: str | Path,
    academic_year: str,
    class_level: str,
    subject: str,
    semester: str,
    user_id: Optional[str] = None,
) -> list[ProtaRow]:
    path = _class_dir(data_dir, academic_year, class_level, user_id) / "prota" / f"{subject_doc_id(subject)}.json"
    data = _read_json(path)
    if not isinstance(data, dict):
        return []

    field_name = "ganjilRows" if normalize_semester_kind(semester) == GANJIL else "genapRows"
    rows: list[ProtaRow] = []
    for item in data.get(field_name) or []:
        if not isinstance(item, dict) or not item.get("id"):
            continue
        rows.append(
            ProtaRow(
                id=str(item["id"]),
                material=str(item.get("material") or ""),
                learning_goal_pathway=str(item.get("learningGoalPathway") or ""),
                material_scope=str(item.get("materialScope") or ""),
                units=_as_int(item.get("alokasiWaktu")),
            )
        )
    return rows


# ---------------------------------------------------------------------------
# PROSEM documents
# ---------------------------------------------------------------------------


def _decode_record(record: Any) -> Optional[dict[str, Any]]:
    if not isinstance(record, dict):
        return None
    # older documents used the form field names
    units = record.get("units", record.get("alokasiWaktu"))
    weeks = record.get("weeks", record.get("pekan"))
    notes = record.get("notes", record.get("keterangan"))
    return {"units": _as_int(units), "weeks": SlotGrid.coerce(weeks), "notes": str(notes or "")}


def _encode_row(row: ProsemRow) -> dict[str, Any]:
    return {"units": row.units, "weeks": row.weeks.to_rows(), "notes": row.notes}


def load_prosem(data_dir: str | Path, key: DocumentKey) -> dict[str, dict[str, Any]]:
    """
    Load {row_id: {"units": int, "weeks": SlotGrid, "notes": str}}.

    Returns an empty dict if the document does not exist or is invalid.
    """
    data = _read_json(prosem_path(data_dir, key))
    if not isinstance(data, dict):
        return {}

    out: dict[str, dict[str, Any]] = {}
    for row_id, record in data.items():
        decoded = _decode_record(record)
        if decoded is not None:
            out[str(row_id)] = decoded
    return out


def save_prosem(rows: Iterable[ProsemRow], data_dir: str | Path, key: DocumentKey) -> Path:
    """
    Replace the whole document with `rows`.
    """
    path = prosem_path(data_dir, key)
    _write_json(path, {row.id: _encode_row(row) for row in rows})
    return path


def merge_prosem(rows: Iterable[ProsemRow], data_dir: str | Path, key: DocumentKey) -> Path:
    """
    Overwrite the records of `rows` and keep every other stored row.
    """
    path = prosem_path(data_dir, key)
    existing = _read_json(path)
    data = dict(existing) if isinstance(existing, dict) else {}
    for row in rows:
        data[row.id] = _encode_row(row)
    _write_json(path, data)
    return path


def pull_from_master(data_dir: str | Path, key: DocumentKey) -> Path:
    """
    Copy the master PROSEM document over the teacher's copy.

    Raises FileNotFoundError if the master has no document for this key.
    """
    if not key.user_id:
        raise ValueError("pull_from_master needs a user_id (the teacher copy to overwrite)")

    master = _read_json(prosem_path(data_dir, key.for_master()))
    if not isinstance(master, dict):
        raise FileNotFoundError(
            f"No master PROSEM for {key.subject} ({key.semester}, {key.class_level}, {key.academic_year})"
        )

    target = prosem_path(data_dir, key)
    _write_json(target, master)
    return target
