"""
Central data model definitions used across the project.

This module defines the canonical structure of the planning objects so that:
- all modules share the same field names
- the scanner, matcher, planner and storage layers agree on one shape
- the 6 x 5 week grid is a fixed structure instead of string keys
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union


GANJIL = "Ganjil"
GENAP = "Genap"
SEMESTER_KINDS = (GANJIL, GENAP)

AcademicYear = Union[str, int]

# index == date.weekday()
WEEKDAYS = ("senin", "selasa", "rabu", "kamis", "jumat", "sabtu", "minggu")
TEACHING_WEEKDAYS = WEEKDAYS[:6]

GRID_MONTHS = 6
GRID_WEEKS = 5

SUMMATIVE_UNITS = 2
SUMMATIVE_TITLE = "Sumatif Lingkup Materi (SLM)"


def normalize_semester_kind(kind: str) -> str:
    """
    Accept 'ganjil', 'GENAP', ... and return the canonical spelling.
    Raises ValueError for anything else.
    """
    text = str(kind or "").strip().lower()
    for k in SEMESTER_KINDS:
        if k.lower() == text:
            return k
    raise ValueError(f"Unknown semester kind: {kind!r} (expected Ganjil or Genap)")


def academic_start_year(academic_year: AcademicYear) -> int:
    """
    '2025/2026' -> 2025, '2025-2026' -> 2025, 2025 -> 2025.
    """
    if isinstance(academic_year, int):
        return academic_year
    head = str(academic_year).strip().replace("-", "/").split("/", 1)[0]
    try:
        return int(head)
    except ValueError as exc:
        raise ValueError(f"Invalid academic year: {academic_year!r}") from exc


@dataclass(frozen=True)
class SemesterWindow:
    """
    Inclusive date range of one semester.

    Ganjil runs July 1 to December 31 of the academic year's first year,
    Genap runs January 1 to June 30 of the following year.
    """

    start: date
    end: date
    kind: Optional[str] = None

    @classmethod
    def for_semester(cls, academic_year: AcademicYear, kind: str) -> "SemesterWindow":
        year = academic_start_year(academic_year)
        kind = normalize_semester_kind(kind)
        if kind == GANJIL:
            return cls(date(year, 7, 1), date(year, 12, 31), kind)
        return cls(date(year + 1, 1, 1), date(year + 1, 6, 30), kind)


@dataclass(frozen=True, order=True)
class SlotKey:
    """
    One cell of the printed semester grid: month offset 1-6, week-of-month 1-5.
    """

    month: int
    week: int

    def __post_init__(self) -> None:
        if not (1 <= self.month <= GRID_MONTHS and 1 <= self.week <= GRID_WEEKS):
            raise ValueError(f"Slot out of grid: month={self.month} week={self.week}")

    @property
    def legacy_key(self) -> str:
        return f"b{self.month}_m{self.week}"


class SlotGrid:
    """
    Fixed 6 x 5 grid of week checkboxes.

    Stored as a list of 6 rows with 5 booleans each. The old
    'b{month}_m{week}' dict form can still be read and written.
    """

    def __init__(self, cells: Optional[List[List[bool]]] = None) -> None:
        self._cells = [[False] * GRID_WEEKS for _ in range(GRID_MONTHS)]
        if cells:
            for m, row in enumerate(cells[:GRID_MONTHS]):
                if not isinstance(row, (list, tuple)):
                    continue
                for w, value in enumerate(list(row)[:GRID_WEEKS]):
                    self._cells[m][w] = bool(value)

    @classmethod
    def from_slots(cls, slots: Iterable[SlotKey]) -> "SlotGrid":
        grid = cls()
        for slot in slots:
            grid.activate(slot)
        return grid

    @classmethod
    def coerce(cls, value: object) -> "SlotGrid":
        """
        Build a grid from a SlotGrid, a list of 6 rows, or the legacy dict form.
        """
        if isinstance(value, SlotGrid):
            return value
        if isinstance(value, dict):
            return cls.from_legacy(value)
        if isinstance(value, list):
            return cls(value)
        return cls()

    @classmethod
    def from_legacy(cls, data: Dict[str, bool]) -> "SlotGrid":
        grid = cls()
        for m in range(1, GRID_MONTHS + 1):
            for w in range(1, GRID_WEEKS + 1):
                if data.get(f"b{m}_m{w}"):
                    grid.activate(SlotKey(m, w))
        return grid

    def activate(self, slot: SlotKey, value: bool = True) -> None:
        self._cells[slot.month - 1][slot.week - 1] = value

    def is_active(self, slot: SlotKey) -> bool:
        return self._cells[slot.month - 1][slot.week - 1]

    def active_slots(self) -> List[SlotKey]:
        return [
            SlotKey(m + 1, w + 1)
            for m in range(GRID_MONTHS)
            for w in range(GRID_WEEKS)
            if self._cells[m][w]
        ]

    def to_rows(self) -> List[List[bool]]:
        return [list(row) for row in self._cells]

    def to_legacy(self) -> Dict[str, bool]:
        return {
            SlotKey(m + 1, w + 1).legacy_key: self._cells[m][w]
            for m in range(GRID_MONTHS)
            for w in range(GRID_WEEKS)
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SlotGrid):
            return NotImplemented
        return self._cells == other._cells

    def __repr__(self) -> str:
        active = ", ".join(s.legacy_key for s in self.active_slots())
        return f"SlotGrid([{active}])"


@dataclass(frozen=True)
class TeachingSession:
    """
    One calendar day on which the subject is taught.
    """

    date: date
    available_units: int
    slot: SlotKey

    @property
    def session_id(self) -> str:
        return f"session-{self.date.isoformat()}"


@dataclass(frozen=True)
class CalendarEvent:
    """
    One entry of the academic calendar (holiday, assessment, school activity).

    `date` is kept as the stored 'YYYY-MM-DD' text; use `day()` for a date.
    """

    date: str
    description: str
    type: str = "event"
    id: Optional[str] = None

    def day(self) -> Optional[date]:
        try:
            return datetime.strptime(self.date.strip(), "%Y-%m-%d").date()
        except (ValueError, AttributeError):
            return None


@dataclass
class SubTopic:
    """
    A 'Lingkup Materi' row with its own target allocation (JP).
    """

    id: str
    title: str
    target_units: int
    summative: bool = False


@dataclass
class Topic:
    """
    A 'Materi/Tema' with its ordered sub-topics and total allocation.
    """

    id: str
    title: str
    total_units: int
    subtopics: List[SubTopic] = field(default_factory=list)

    def with_summative(self, units: int = SUMMATIVE_UNITS) -> "Topic":
        """
        Return a copy whose sub-topic list ends with exactly one summative check.

        Summative entries that are not last are dropped. If none exists,
        one with `units` target is appended.
        """
        regular = [s for s in self.subtopics if not s.summative]
        summatives = [s for s in self.subtopics if s.summative]
        last = summatives[-1] if summatives else SubTopic(
            id=f"{self.id}_slm", title=SUMMATIVE_TITLE, target_units=units, summative=True
        )
        return Topic(id=self.id, title=self.title, total_units=self.total_units, subtopics=regular + [last])


@dataclass
class Assignment:
    """
    Sessions consumed by one sub-topic.
    """

    subtopic_id: str
    topic_id: str
    target_units: int
    dates: List[date] = field(default_factory=list)
    slots: List[SlotKey] = field(default_factory=list)
    units_covered: int = 0
    notes: str = ""

    @property
    def satisfied(self) -> bool:
        return self.units_covered >= self.target_units


@dataclass
class MatchResult:
    assignments: List[Assignment]
    unused_sessions: List[TeachingSession] = field(default_factory=list)

    def by_subtopic(self) -> Dict[str, Assignment]:
        return {a.subtopic_id: a for a in self.assignments}

    @property
    def unfilled(self) -> List[str]:
        # InsufficientSessions: reported, never raised
        return [a.subtopic_id for a in self.assignments if a.target_units > 0 and not a.satisfied]

    @property
    def insufficient(self) -> bool:
        return bool(self.unfilled)


@dataclass(frozen=True)
class AllocationMismatch:
    topic_id: str
    expected: int
    actual: int

    def __str__(self) -> str:
        return f"{self.topic_id}: sub-topic targets sum to {self.actual} JP, topic total is {self.expected} JP"


@dataclass(frozen=True)
class AssessmentWindow:
    label: str
    date_range_text: str
    dates: Tuple[date, ...] = ()


@dataclass
class ProtaRow:
    """
    One row of the yearly plan (PROTA) for a semester.
    """

    id: str
    material: str
    learning_goal_pathway: str = ""
    material_scope: str = ""
    units: int = 0


@dataclass
class ProsemRow:
    """
    One row of the semester program (PROSEM) table.
    """

    id: str
    prota_row_id: str
    material: str
    atp: str
    scope: str
    units: int = 0
    weeks: SlotGrid = field(default_factory=SlotGrid)
    notes: str = ""
    summative: bool = False


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


@dataclass(frozen=True)
class EffectiveDays:
    ganjil: int
    genap: int

    @property
    def ganjil_weeks(self) -> int:
        return _round_half_up(self.ganjil / 6)

    @property
    def genap_weeks(self) -> int:
        return _round_half_up(self.genap / 6)
