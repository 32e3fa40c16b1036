"""
Processing Result structures

A ProcessingResult is what extraction produced for one memory. It is plain
data: names are already resolved to store ids where possible and every field
has been type-checked, so the Application Router only has to write it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sylvia.stores.brand import BrandRecord
from sylvia.stores.clients import ClientProfile
from sylvia.stores.interactions import InteractionEvent
from sylvia.stores.knowledge import DEFAULT_RELATIONSHIP, KnowledgeEntity
from sylvia.stores.performers import PerformerProfile


@dataclass
class ClientUpdate:
    """Field content for one client. client_id is None for a client not yet on file."""

    client_name: str
    updates: dict[str, str]
    client_id: str | None = None


@dataclass
class PerformerUpdate:
    performer_id: str
    performer_name: str
    updates: dict[str, str]


@dataclass
class CalendarEntry:
    date: str  # YYYY-MM-DD
    content: str


@dataclass
class KnowledgeConnection:
    entity: str
    related_to: list[str] = field(default_factory=list)
    relationship_type: str = DEFAULT_RELATIONSHIP


@dataclass
class ProcessingResult:
    client_updates: list[ClientUpdate] = field(default_factory=list)
    brand_updates: dict[str, str] | None = None
    performer_updates: list[PerformerUpdate] = field(default_factory=list)
    calendar_entries: list[CalendarEntry] = field(default_factory=list)
    knowledge_connections: list[KnowledgeConnection] = field(default_factory=list)
    interaction_events: list[InteractionEvent] = field(default_factory=list)
    reranked_relevance: float = 5.0
    reasoning: str = ""

    def is_empty(self) -> bool:
        return not (
            self.client_updates
            or self.brand_updates
            or self.performer_updates
            or self.calendar_entries
            or self.knowledge_connections
            or self.interaction_events
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "client_updates": [
                {"client_id": u.client_id, "client_name": u.client_name, "updates": u.updates}
                for u in self.client_updates
            ],
            "brand_updates": self.brand_updates,
            "performer_updates": [
                {"performer_id": u.performer_id, "performer_name": u.performer_name, "updates": u.updates}
                for u in self.performer_updates
            ],
            "calendar_entries": [{"date": e.date, "content": e.content} for e in self.calendar_entries],
            "knowledge_connections": [
                {"entity": c.entity, "related_to": c.related_to, "relationship_type": c.relationship_type}
                for c in self.knowledge_connections
            ],
            "interaction_events": [event.to_dict() for event in self.interaction_events],
            "reranked_relevance": self.reranked_relevance,
            "reasoning": self.reasoning,
        }


@dataclass
class ExtractionContext:
    """Current state the model cross-references names against."""

    clients: list[ClientProfile] = field(default_factory=list)
    brand: BrandRecord | None = None
    performers: list[PerformerProfile] = field(default_factory=list)
    knowledge_entities: list[KnowledgeEntity] = field(default_factory=list)


__all__ = [
    "CalendarEntry",
    "ClientUpdate",
    "ExtractionContext",
    "KnowledgeConnection",
    "PerformerUpdate",
    "ProcessingResult",
]
