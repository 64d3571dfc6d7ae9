"""
Semester program (PROSEM) assembly.

Pipeline of one scheduling run:

    yearly plan rows -> PROSEM rows -> topics with sub-topic targets
    calendar + timetable -> teaching sessions
    topics + sessions -> assignments (matcher, or a validated AI suggestion)
    assignments -> rows (units, week grid, notes)

A run overwrites the previous values of every row it schedules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Optional, Sequence

from prosem.academic_calendar import exception_dates, resolve_assessment_window
from prosem.ai_schedule import suggest_assignments
from prosem.dates import normalize_and_sort
from prosem.gemini import GeminiClient
from prosem.matcher import validate_allocations
from prosem.model import (
    SUMMATIVE_TITLE,
    SUMMATIVE_UNITS,
    AcademicYear,
    AllocationMismatch,
    AssessmentWindow,
    CalendarEvent,
    MatchResult,
    ProsemRow,
    ProtaRow,
    SemesterWindow,
    SlotGrid,
    SubTopic,
    TeachingSession,
    Topic,
)
from prosem.sessions import scan_sessions, units_from_timetable

log = logging.getLogger(__name__)


@dataclass
class SemesterPlan:
    rows: list[ProsemRow]
    topics: list[Topic]
    sessions: list[TeachingSession]
    result: MatchResult
    mismatches: list[AllocationMismatch] = field(default_factory=list)
    assessment: Optional[AssessmentWindow] = None
    source: str = "matcher"
    rejected_reasons: list[str] = field(default_factory=list)


def _scope_lines(material_scope: str) -> list[str]:
    return [line.strip() for line in (material_scope or "").splitlines() if line.strip()]


def build_rows(
    prota_rows: Iterable[ProtaRow], stored: Optional[Mapping[str, Mapping[str, Any]]] = None
) -> list[ProsemRow]:
    """
    One row per non-empty material-scope line, plus a summative row per topic.

    Values already stored for a row id (units, weeks, notes) are carried over.
    """
    stored = stored or {}
    rows: list[ProsemRow] = []
    for prota in prota_rows:
        lines = _scope_lines(prota.material_scope)
        entries = [(f"{prota.id}_{i}", line, False) for i, line in enumerate(lines)]
        entries.append((f"{prota.id}_slm", SUMMATIVE_TITLE, True))

        for row_id, scope, summative in entries:
            record = stored.get(row_id) or {}
            rows.append(
                ProsemRow(
                    id=row_id,
                    prota_row_id=prota.id,
                    material=prota.material,
                    atp=prota.learning_goal_pathway,
                    scope=scope,
                    units=int(record.get("units") or 0),
                    weeks=SlotGrid.coerce(record.get("weeks")),
                    notes=str(record.get("notes") or ""),
                    summative=summative,
                )
            )
    return rows


def distribute_units(total: int, content_rows: int) -> tuple[list[int], int]:
    """
    Split a topic total: SUMMATIVE_UNITS to the summative check, the rest
    evenly over the content rows (earlier rows take the remainder).

    Returns (content targets, summative target).
    """
    total = max(int(total), 0)
    if content_rows <= 0:
        return [], total
    summative = min(SUMMATIVE_UNITS, total)
    base, extra = divmod(total - summative, content_rows)
    return [base + (1 if i < extra else 0) for i in range(content_rows)], summative


def topics_from_rows(rows: Sequence[ProsemRow], prota_rows: Iterable[ProtaRow]) -> list[Topic]:
    """
    Group PROSEM rows into topics, in yearly-plan order.

    Stored row units are used as targets when any row of the topic has one;
    otherwise the topic total is distributed with distribute_units().
    """
    topics: list[Topic] = []
    for prota in prota_rows:
        group = [r for r in rows if r.prota_row_id == prota.id]
        if not group:
            continue

        content = [r for r in group if not r.summative]
        summative = [r for r in group if r.summative]

        if any(r.units > 0 for r in group):
            targets = {r.id: r.units for r in group}
        else:
            content_targets, summative_target = distribute_units(prota.units, len(content))
            targets = {r.id: t for r, t in zip(content, content_targets)}
            targets.update({r.id: summative_target for r in summative})

        subtopics = [
            SubTopic(id=r.id, title=r.scope, target_units=targets.get(r.id, 0), summative=r.summative)
            for r in content + summative
        ]
        topic = Topic(id=prota.id, title=prota.material, total_units=prota.units, subtopics=subtopics)
        topics.append(topic.with_summative())
    return topics


def apply_assignments(rows: Sequence[ProsemRow], result: MatchResult) -> list[ProsemRow]:
    """
    Write units, week grid and notes of each assignment into its row.
    """
    by_id = result.by_subtopic()
    out: list[ProsemRow] = []
    for row in rows:
        a = by_id.get(row.id)
        if a is None:
            out.append(row)
            continue
        out.append(
            replace(
                row,
                units=a.target_units,
                weeks=SlotGrid.from_slots(a.slots),
                notes=normalize_and_sort(a.notes),
            )
        )
    return out


def plan_semester(
    *,
    prota_rows: Sequence[ProtaRow],
    events: Sequence[CalendarEvent],
    time_slots: Sequence[Mapping[str, Any]],
    subject: str,
    academic_year: AcademicYear,
    semester: str,
    stored: Optional[Mapping[str, Mapping[str, Any]]] = None,
    client: Optional[GeminiClient] = None,
) -> SemesterPlan:
    """
    Run one complete scheduling pass for a subject and semester.
    """
    window = SemesterWindow.for_semester(academic_year, semester)
    rows = build_rows(prota_rows, stored)
    topics = topics_from_rows(rows, prota_rows)

    mismatches = validate_allocations(topics)
    for m in mismatches:
        log.warning("Allocation mismatch: %s", m)

    weekly = units_from_timetable(time_slots, subject)
    sessions = scan_sessions(window, weekly, exception_dates(events))
    log.info("%s %s: %d teaching sessions, %d topics", subject, window.kind, len(sessions), len(topics))

    outcome = suggest_assignments(client, sessions, topics)
    return SemesterPlan(
        rows=apply_assignments(rows, outcome.result),
        topics=topics,
        sessions=sessions,
        result=outcome.result,
        mismatches=mismatches,
        assessment=resolve_assessment_window(events, window.kind or semester),
        source=outcome.source,
        rejected_reasons=outcome.reasons,
    )
