"""
Interaction Event log

Who interacted with whom, with sentiment (-1..1) and intrigue metadata.
Events are upserted by id; ids produced by memory extraction are derived from
the source memory, so replaying an extraction rewrites the same rows.

Pair summaries group events by their sorted participant set:
    total_interactions, last_interaction, sentiment_sum,
    intrigue_count (events carrying intrigue tags), tags (union),
    public_count / private_count, pressure_score (sum of |sentiment| over
    negative public events)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from sylvia.errors import ValidationError
from sylvia.storage import SQLiteStore, dump_json, from_iso, load_json, to_iso, utcnow

InteractionContext = Literal["public", "private", "system"]
ParticipantType = Literal["user", "sylvia", "performer"]

_CONTEXTS = ("public", "private", "system")


@dataclass
class InteractionEvent:
    id: str
    conversation_id: str = ""
    speaker_id: str = "system"
    speaker_name: str = "Memory Processor"
    speaker_type: ParticipantType = "sylvia"
    target_ids: list[str] = field(default_factory=list)
    target_names: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)
    message_id: str = ""
    intrigue_tags: list[str] = field(default_factory=list)
    sentiment: float | None = None
    narrative_tags: list[str] = field(default_factory=list)
    context: InteractionContext = "public"
    origin: str = "other"

    def participants(self) -> list[str]:
        targets = self.target_ids or self.target_names
        return sorted({self.speaker_id, *targets})

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "speaker_id": self.speaker_id,
            "speaker_name": self.speaker_name,
            "speaker_type": self.speaker_type,
            "target_ids": self.target_ids,
            "target_names": self.target_names,
            "timestamp": to_iso(self.timestamp),
            "message_id": self.message_id,
            "intrigue_tags": self.intrigue_tags,
            "sentiment": self.sentiment,
            "narrative_tags": self.narrative_tags,
            "context": self.context,
            "origin": self.origin,
        }


@dataclass
class InteractionSummary:
    pair_key: str
    participants: list[str]
    last_interaction: datetime
    total_interactions: int = 0
    sentiment_sum: float = 0.0
    intrigue_count: int = 0
    tags: list[str] = field(default_factory=list)
    public_count: int = 0
    private_count: int = 0
    pressure_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "pair_key": self.pair_key,
            "participants": self.participants,
            "last_interaction": to_iso(self.last_interaction),
            "total_interactions": self.total_interactions,
            "sentiment_sum": round(self.sentiment_sum, 4),
            "intrigue_count": self.intrigue_count,
            "tags": self.tags,
            "public_count": self.public_count,
            "private_count": self.private_count,
            "pressure_score": round(self.pressure_score, 4),
        }


class InteractionLog(SQLiteStore):
    SCHEMA = (
        """CREATE TABLE IF NOT EXISTS interaction_events (
            id TEXT PRIMARY KEY,
            conversation_id TEXT DEFAULT '',
            speaker_id TEXT NOT NULL,
            speaker_name TEXT DEFAULT '',
            speaker_type TEXT DEFAULT 'sylvia',
            target_ids TEXT DEFAULT '[]',
            target_names TEXT DEFAULT '[]',
            timestamp TEXT NOT NULL,
            message_id TEXT DEFAULT '',
            intrigue_tags TEXT DEFAULT '[]',
            sentiment REAL,
            narrative_tags TEXT DEFAULT '[]',
            context TEXT DEFAULT 'public',
            origin TEXT DEFAULT 'other'
        )""",
        "CREATE INDEX IF NOT EXISTS idx_interactions_speaker ON interaction_events(speaker_id)",
        "CREATE INDEX IF NOT EXISTS idx_interactions_timestamp ON interaction_events(timestamp)",
    )

    def upsert_events(self, events: list[InteractionEvent]) -> int:
        """
        Insert or replace events by id.

        Returns:
            Number of events that did not exist before
        """
        if not events:
            return 0
        inserted = 0
        with self.connection() as conn:
            for event in events:
                if not event.id:
                    raise ValidationError("Interaction event requires an id")
                context = event.context if event.context in _CONTEXTS else "public"
                exists = conn.execute(
                    "SELECT 1 FROM interaction_events WHERE id = ?", (event.id,)
                ).fetchone()
                conn.execute(
                    """INSERT OR REPLACE INTO interaction_events
                       (id, conversation_id, speaker_id, speaker_name, speaker_type, target_ids,
                        target_names, timestamp, message_id, intrigue_tags, sentiment,
                        narrative_tags, context, origin)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        event.id,
                        event.conversation_id,
                        event.speaker_id,
                        event.speaker_name,
                        event.speaker_type,
                        dump_json(event.target_ids),
                        dump_json(event.target_names),
                        to_iso(event.timestamp),
                        event.message_id,
                        dump_json(event.intrigue_tags),
                        event.sentiment,
                        dump_json(event.narrative_tags),
                        context,
                        event.origin,
                    ),
                )
                if not exists:
                    inserted += 1
        return inserted

    def list_events(self) -> list[InteractionEvent]:
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM interaction_events ORDER BY timestamp, id"
            ).fetchall()
        return [self._row_to_event(row) for row in rows]

    def events_for_participant(self, participant: str) -> list[InteractionEvent]:
        """Events where `participant` is the speaker or a target (by id or name)."""
        return [
            event
            for event in self.list_events()
            if event.speaker_id == participant
            or participant in event.target_ids
            or participant in event.target_names
        ]

    def summarize_pairs(self) -> list[InteractionSummary]:
        """Per participant-set summaries, most recently active first."""
        summaries: dict[str, InteractionSummary] = {}
        for event in self.list_events():
            participants = event.participants()
            key = "|".join(participants)
            summary = summaries.get(key)
            if summary is None:
                summary = InteractionSummary(
                    pair_key=key, participants=participants, last_interaction=event.timestamp
                )
                summaries[key] = summary

            summary.total_interactions += 1
            summary.last_interaction = max(summary.last_interaction, event.timestamp)
            if event.context == "public":
                summary.public_count += 1
            elif event.context == "private":
                summary.private_count += 1
            if event.sentiment is not None:
                summary.sentiment_sum += event.sentiment
                if event.context == "public" and event.sentiment < 0:
                    summary.pressure_score += abs(event.sentiment)
            if event.intrigue_tags:
                summary.intrigue_count += 1
            for tag in [*event.intrigue_tags, *event.narrative_tags]:
                if tag not in summary.tags:
                    summary.tags.append(tag)

        return sorted(summaries.values(), key=lambda s: s.last_interaction, reverse=True)

    def clear(self) -> None:
        with self.connection() as conn:
            conn.execute("DELETE FROM interaction_events")

    @staticmethod
    def _row_to_event(row) -> InteractionEvent:
        return InteractionEvent(
            id=row["id"],
            conversation_id=row["conversation_id"] or "",
            speaker_id=row["speaker_id"],
            speaker_name=row["speaker_name"] or "",
            speaker_type=row["speaker_type"] or "sylvia",
            target_ids=load_json(row["target_ids"], []),
            target_names=load_json(row["target_names"], []),
            timestamp=from_iso(row["timestamp"]) or utcnow(),
            message_id=row["message_id"] or "",
            intrigue_tags=load_json(row["intrigue_tags"], []),
            sentiment=row["sentiment"],
            narrative_tags=load_json(row["narrative_tags"], []),
            context=row["context"] or "public",
            origin=row["origin"] or "other",
        )


__all__ = [
    "InteractionContext",
    "InteractionEvent",
    "InteractionLog",
    "InteractionSummary",
    "ParticipantType",
]
