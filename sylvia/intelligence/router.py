"""
Application Router

Writes a ProcessingResult into the destination stores, in this order:

    clients -> brand -> performers -> calendar -> knowledge -> interactions -> relevance

Each item is attempted on its own. A failure is logged, recorded in the
report as (destination, error) and does not stop the remaining writes;
writes that succeeded stay in place. The originating memory's relevance is
only overwritten when every other write succeeded, so a partially applied
memory keeps its pre-processing state and can be processed again.

Every write is keyed, so applying the same result again (or two copies of it
concurrently) converges on the same state:
    clients       content appended only if not already present
    brand         fields set, never cleared
    calendar      appended, keyed by (date, memory id, content fingerprint)
    knowledge     edges unioned
    interactions  upserted by id
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sylvia.errors import ApplicationError, DestinationError
from sylvia.events import ChangeEvent, EventBus
from sylvia.intelligence.audit_log import IntelligenceLog, IntelligenceSource
from sylvia.intelligence.models import ClientUpdate, ProcessingResult
from sylvia.memory.store import MemoryStore
from sylvia.stores.brand import BrandStore
from sylvia.stores.clients import ClientStore
from sylvia.stores.interactions import InteractionLog
from sylvia.stores.journal import JournalStore
from sylvia.stores.knowledge import KnowledgeEntity, KnowledgeGraph
from sylvia.stores.performers import PerformerStore

logger = logging.getLogger(__name__)

DESTINATIONS = ("clients", "brand", "performers", "calendar", "knowledge", "interactions", "relevance")


@dataclass
class ApplicationReport:
    """Outcome of one apply. Partial failure is reported here, not raised."""

    memory_id: int
    applied: dict[str, int] = field(default_factory=lambda: {name: 0 for name in DESTINATIONS})
    errors: list[DestinationError] = field(default_factory=list)
    previous_relevance: float | None = None
    relevance: float | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def failed_destinations(self) -> list[str]:
        return list(dict.fromkeys(error.destination for error in self.errors))

    def raise_for_errors(self) -> None:
        """Raise ApplicationError if any destination failed."""
        if self.errors:
            raise ApplicationError(
                f"Memory {self.memory_id}: {len(self.errors)} destination write(s) failed "
                f"({', '.join(self.failed_destinations)})",
                memory_id=self.memory_id,
                errors=list(self.errors),
            )

    def summary(self) -> str:
        parts = [f"{count} {name}" for name, count in self.applied.items() if count and name != "relevance"]
        text = f"Memory {self.memory_id} processed: {', '.join(parts) if parts else 'no routed updates'}"
        if self.relevance is not None and self.relevance != self.previous_relevance:
            text += f"; relevance {self.previous_relevance:g} -> {self.relevance:g}"
        if self.errors:
            text += f"; {len(self.errors)} failed"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "memory_id": self.memory_id,
            "applied": dict(self.applied),
            "errors": [error.to_dict() for error in self.errors],
            "previous_relevance": self.previous_relevance,
            "relevance": self.relevance,
        }


class ApplicationRouter:
    """Fans a ProcessingResult out into the destination stores."""

    def __init__(
        self,
        memories: MemoryStore,
        clients: ClientStore,
        brand: BrandStore,
        performers: PerformerStore,
        journal: JournalStore,
        knowledge: KnowledgeGraph,
        interactions: InteractionLog,
        audit_log: IntelligenceLog | None = None,
        events: EventBus | None = None,
    ):
        self.memories = memories
        self.clients = clients
        self.brand = brand
        self.performers = performers
        self.journal = journal
        self.knowledge = knowledge
        self.interactions = interactions
        self.audit_log = audit_log
        self.events = events or memories.events

    async def apply(self, memory_id: int, result: ProcessingResult) -> ApplicationReport:
        """
        Apply a processing result produced for `memory_id`.

        Raises:
            ApplicationError: the memory does not exist
        """
        memory = self.memories.get_memory(memory_id)
        if memory is None:
            raise ApplicationError(f"Memory {memory_id} does not exist", memory_id=memory_id)

        report = ApplicationReport(memory_id=memory_id, previous_relevance=memory.relevance)
        source_tags = memory.tags

        steps: list[tuple[str, list, Callable[[Any], None]]] = [
            ("clients", result.client_updates, self._apply_client),
            ("brand", [result.brand_updates] if result.brand_updates else [], self.brand.patch),
            (
                "performers",
                result.performer_updates,
                lambda update: self.performers.patch(update.performer_id, update.updates),
            ),
            (
                "calendar",
                result.calendar_entries,
                lambda entry: self.journal.upsert_entry(entry.date, entry.content, source_id=memory_id),
            ),
            (
                "knowledge",
                result.knowledge_connections,
                lambda conn: self.knowledge.upsert_entity(
                    KnowledgeEntity(
                        name=conn.entity,
                        relationships={conn.relationship_type: conn.related_to},
                        source_tags=source_tags,
                        last_seen_conversation_id=str(memory_id),
                    )
                ),
            ),
            ("interactions", result.interaction_events, lambda event: self.interactions.upsert_events([event])),
        ]

        for destination, items, write in steps:
            for item in items:
                self._attempt(report, destination, write, item)
            # Yield between destinations so concurrent applies and extractions interleave
            await asyncio.sleep(0)

        if report.ok:
            self._attempt(
                report,
                "relevance",
                lambda value: self.memories.set_relevance(memory_id, value),
                result.reranked_relevance,
            )
            if report.ok:
                report.relevance = result.reranked_relevance
        else:
            logger.warning(
                f"Memory {memory_id}: relevance left at {memory.relevance:g} after failed "
                f"destinations {report.failed_destinations}"
            )

        self._notify(report)
        self._audit(result, report)
        return report

    def _apply_client(self, update: ClientUpdate) -> None:
        profile = self.clients.get(update.client_id) if update.client_id else None
        if profile is None:
            # Resolve again at write time: a concurrent apply may have created it
            profile = self.clients.find_by_name(update.client_name) or self.clients.create(update.client_name)
        self.clients.append_fields(profile.id, update.updates)

    @staticmethod
    def _attempt(report: ApplicationReport, destination: str, write: Callable[[Any], Any], item: Any) -> None:
        try:
            write(item)
        except Exception as e:
            logger.warning(f"Memory {report.memory_id}: {destination} write failed: {e}")
            report.errors.append(DestinationError(destination=destination, error=str(e)))
            return
        report.applied[destination] += 1

    def _notify(self, report: ApplicationReport) -> None:
        announcements = (
            ("clients", ChangeEvent.CLIENT_DATA_UPDATED),
            ("brand", ChangeEvent.BRAND_DATA_UPDATED),
            ("performers", ChangeEvent.PERFORMERS_UPDATED),
            ("interactions", ChangeEvent.PERFORMER_INTERACTIONS_UPDATED),
        )
        for destination, event in announcements:
            if report.applied[destination]:
                self.events.emit(event)

    def _audit(self, result: ProcessingResult, report: ApplicationReport) -> None:
        if self.audit_log is None:
            return
        try:
            self.audit_log.log(
                source=IntelligenceSource.POST_PROCESSING,
                summary=report.summary(),
                request_payload=result.to_dict(),
                response_payload=report.to_dict(),
            )
        except Exception as e:
            logger.warning(f"Memory {report.memory_id}: audit record not written: {e}")


__all__ = ["DESTINATIONS", "ApplicationReport", "ApplicationRouter"]
