"""
Optional AI suggestion layer for the semester schedule.

The model gets the precomputed teaching sessions and the topic list and
answers, per sub-topic, which sessions it would use. A suggestion is only
accepted when it passes the same checks the matcher guarantees:
- every session id is known
- every sub-topic with a positive target has an entry
- no date is used by two sub-topics
- sub-topics of a topic are scheduled in order
- per-topic allocations add up to the topic total
- no sub-topic is left short while the sessions could cover it

Otherwise the deterministic matcher result is used.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import requests

from prosem.conflicts import find_double_bookings, find_order_violations
from prosem.dates import format_date, format_date_list
from prosem.gemini import AIGenerationError, GeminiClient
from prosem.matcher import match_sessions
from prosem.model import Assignment, MatchResult, TeachingSession, Topic

log = logging.getLogger(__name__)

RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "id": {"type": "STRING"},
            "alokasiWaktu": {"type": "NUMBER"},
            "sessionIds": {"type": "ARRAY", "items": {"type": "STRING"}},
            "keterangan": {"type": "STRING"},
        },
        "required": ["id", "alokasiWaktu", "sessionIds", "keterangan"],
    },
}

PROMPT_TEMPLATE = """\
Anda adalah ahli kurikulum Sekolah Dasar. Tugas Anda adalah membagi Lingkup Materi ke dalam sesi mengajar yang tersedia pada Program Semester (PROSEM).

DAFTAR SESI MENGAJAR YANG TERSEDIA (SESUAI KALENDER & JADWAL):
Sesi ini diurutkan berdasarkan tanggal. Gunakan sesi ini SATU PER SATU.
{sessions}

DATA MATERI YANG HARUS DIJADWALKAN:
{topics}

ATURAN PENJADWALAN (SANGAT KETAT):
1. JANGAN PERNAH MENGGUNAKAN TANGGAL YANG SAMA UNTUK DUA BARIS MATERI YANG BERBEDA.
2. Isikan jadwal secara BERURUTAN dari sub-materi pertama ke terakhir.
3. Satu sub-materi dapat menggunakan satu atau lebih sesi mengajar tergantung jumlah JP yang dibutuhkan.
4. Jika suatu sub-materi dialokasikan ke suatu sesi, maka sesi tersebut dianggap SUDAH TERPAKAI dan tidak boleh digunakan oleh sub-materi berikutnya.
5. Total JP per materi (Topik) harus sesuai dengan 'totalProtaJP'.
6. SUMATIF LINGKUP MATERI (isSLM: true) dialokasikan pada sesi tersendiri di akhir materi tersebut.
7. 'keterangan' diisi dengan tanggal sesi yang digunakan (format dd-mm-yyyy), dipisahkan dengan koma.

FORMAT OUTPUT:
Array JSON berisi objek untuk setiap sub-materi, contoh:
[
  {{"id": "row1_id", "alokasiWaktu": 4, "sessionIds": ["session-2024-07-15", "session-2024-07-17"], "keterangan": "15-07-2024, 17-07-2024"}}
]
"""


@dataclass
class SuggestionOutcome:
    result: MatchResult
    source: str  # "ai" or "matcher"
    reasons: list[str] = field(default_factory=list)


def session_payload(sessions: Sequence[TeachingSession]) -> list[dict[str, Any]]:
    return [
        {"id": s.session_id, "date": format_date(s.date), "jp": s.available_units, "weekKey": s.slot.legacy_key}
        for s in sessions
    ]


def topic_payload(topics: Sequence[Topic]) -> list[dict[str, Any]]:
    return [
        {
            "totalProtaJP": t.total_units,
            "topic": t.title,
            "subTopics": [
                {"id": s.id, "isSLM": s.summative, "text": s.title, "targetJP": s.target_units}
                for s in t.subtopics
            ],
        }
        for t in topics
    ]


def build_prompt(sessions: Sequence[TeachingSession], topics: Sequence[Topic]) -> str:
    return PROMPT_TEMPLATE.format(
        sessions=json.dumps(session_payload(sessions), indent=2, ensure_ascii=False),
        topics=json.dumps(topic_payload(topics), indent=2, ensure_ascii=False),
    )


def parse_suggestion(
    data: Any, sessions: Sequence[TeachingSession], topics: Sequence[Topic]
) -> tuple[MatchResult, list[str]]:
    """
    Turn the model's JSON answer into a MatchResult plus a list of problems.

    Dates, slots and notes are derived from the session ids, not from the
    free-text 'keterangan' of the answer.
    """
    problems: list[str] = []
    if not isinstance(data, list):
        return MatchResult(assignments=[]), ["answer is not a JSON array"]

    by_id = {s.session_id: s for s in sessions}
    items: dict[str, dict[str, Any]] = {}
    for item in data:
        if isinstance(item, dict) and item.get("id") is not None:
            items[str(item["id"])] = item

    assignments: list[Assignment] = []
    used: set[str] = set()
    for topic in topics:
        for sub in topic.subtopics:
            item = items.get(sub.id)
            if item is None:
                if sub.target_units > 0:
                    problems.append(f"no entry for sub-topic {sub.id}")
                assignments.append(Assignment(subtopic_id=sub.id, topic_id=topic.id, target_units=sub.target_units))
                continue

            try:
                units = int(item.get("alokasiWaktu") or 0)
            except (TypeError, ValueError, OverflowError):
                problems.append(f"invalid allocation for {sub.id}: {item.get('alokasiWaktu')!r}")
                units = 0

            raw_ids = item.get("sessionIds") or []
            if not isinstance(raw_ids, list):
                problems.append(f"sessionIds of {sub.id} is not a list: {raw_ids!r}")
                raw_ids = []

            picked: list[TeachingSession] = []
            for sid in raw_ids:
                session = by_id.get(str(sid))
                if session is None:
                    problems.append(f"unknown session id {sid!r} for {sub.id}")
                    continue
                picked.append(session)
                used.add(session.session_id)
            picked.sort(key=lambda s: s.date)

            slots = []
            for s in picked:
                if s.slot not in slots:
                    slots.append(s.slot)
            assignments.append(
                Assignment(
                    subtopic_id=sub.id,
                    topic_id=topic.id,
                    target_units=units,
                    dates=[s.date for s in picked],
                    slots=slots,
                    units_covered=sum(s.available_units for s in picked),
                    notes=format_date_list(s.date for s in picked),
                )
            )

    unused = [s for s in sessions if s.session_id not in used]
    return MatchResult(assignments=assignments, unused_sessions=unused), problems


def validate_suggestion(
    result: MatchResult, topics: Sequence[Topic], reference: Optional[MatchResult] = None
) -> list[str]:
    """
    Invariant violations of a suggested schedule (empty list == valid).

    A sub-topic with a positive target must get enough session units. With a
    `reference` (the matcher result for the same sessions) this is only
    required where the reference itself could fill the sub-topic.
    """
    reasons: list[str] = []
    excused = set(reference.unfilled) if reference is not None else set()
    for sub_id in result.unfilled:
        if sub_id not in excused:
            reasons.append(f"{sub_id} left without enough sessions")

    for day, ids in find_double_bookings(result.assignments):
        reasons.append(f"{format_date(day)} used by {', '.join(ids)}")

    for sub_id in find_order_violations(topics, result.by_subtopic()):
        reasons.append(f"{sub_id} scheduled before an earlier sub-topic finished")

    per_topic: dict[str, int] = {}
    for a in result.assignments:
        per_topic[a.topic_id] = per_topic.get(a.topic_id, 0) + a.target_units
    for topic in topics:
        got = per_topic.get(topic.id, 0)
        if got != topic.total_units:
            reasons.append(f"{topic.id}: allocations sum to {got} JP, expected {topic.total_units} JP")
    return reasons


def suggest_assignments(
    client: Optional[GeminiClient],
    sessions: Sequence[TeachingSession],
    topics: Sequence[Topic],
) -> SuggestionOutcome:
    """
    Ask the model for a schedule and keep it only if it is valid.
    """
    fallback = match_sessions(topics, sessions)
    if client is None or not sessions or not topics:
        return SuggestionOutcome(result=fallback, source="matcher")

    try:
        data = client.generate_json(build_prompt(sessions, topics), response_schema=RESPONSE_SCHEMA)
    except (AIGenerationError, requests.RequestException) as exc:
        log.warning("AI suggestion unavailable: %s", exc)
        return SuggestionOutcome(result=fallback, source="matcher", reasons=[str(exc)])

    suggested, problems = parse_suggestion(data, sessions, topics)
    reasons = problems + validate_suggestion(suggested, topics, reference=fallback)
    if reasons:
        log.warning("Rejected AI suggestion (%d problem(s)); using matcher result", len(reasons))
        return SuggestionOutcome(result=fallback, source="matcher", reasons=reasons)
    return SuggestionOutcome(result=suggested, source="ai")
