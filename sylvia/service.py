"""
Sylvia Service Facade

Wires every store, the Context Selector and the intelligence pipeline onto
one SQLite file and one EventBus. Chat pages and the CLI go through this
instead of constructing stores themselves.

Usage:
    from sylvia.service import SylviaService

    service = SylviaService(load_config())
    service.memories.add_memory(Memory(summary="...", tags=["pricing"]))
    selection = service.select_context("Any news on pricing?", history)
    outcomes = await service.process([memory_id])
"""

from __future__ import annotations

import logging
from pathlib import Path

from sylvia.config import SylviaConfig
from sylvia.events import EventBus
from sylvia.intelligence.audit_log import IntelligenceLog
from sylvia.intelligence.batch import BatchOutcome, BatchProcessor
from sylvia.intelligence.extractor import ExtractionEngine
from sylvia.intelligence.models import ExtractionContext
from sylvia.intelligence.router import ApplicationRouter
from sylvia.memory.context import ContextSelection, ContextSelector
from sylvia.memory.models import HistoryTurn
from sylvia.memory.store import MemoryStore
from sylvia.memory.tag_index import TagScoreIndex
from sylvia.stores.brand import BrandStore
from sylvia.stores.clients import ClientStore
from sylvia.stores.interactions import InteractionLog
from sylvia.stores.journal import JournalStore
from sylvia.stores.knowledge import KnowledgeGraph
from sylvia.stores.performers import PerformerStore

logger = logging.getLogger(__name__)


class SylviaService:
    """All core components bound to one database and one event bus."""

    def __init__(
        self,
        config: SylviaConfig | None = None,
        db_path: Path | str | None = None,
        events: EventBus | None = None,
    ):
        self.config = config or SylviaConfig()
        self.db_path = Path(db_path) if db_path else self.config.database_file
        self.events = events or EventBus()

        self.tag_index = TagScoreIndex(self.db_path)
        self.memories = MemoryStore(self.db_path, self.tag_index, self.events)
        self.clients = ClientStore(self.db_path)
        self.brand = BrandStore(self.db_path)
        self.performers = PerformerStore(self.db_path)
        self.journal = JournalStore(self.db_path)
        self.knowledge = KnowledgeGraph(self.db_path, self.tag_index)
        self.interactions = InteractionLog(self.db_path)
        self.audit_log = IntelligenceLog(self.db_path, self.events)

        self.selector = ContextSelector(self.config.context)
        self.router = ApplicationRouter(
            memories=self.memories,
            clients=self.clients,
            brand=self.brand,
            performers=self.performers,
            journal=self.journal,
            knowledge=self.knowledge,
            interactions=self.interactions,
            audit_log=self.audit_log,
            events=self.events,
        )

    # =========================================================================
    # Context
    # =========================================================================

    def select_context(
        self,
        utterance: str,
        history: list[HistoryTurn] | None = None,
        limit: int | None = None,
    ) -> ContextSelection:
        return self.selector.select_context(
            utterance,
            history,
            self.memories.list_memories(),
            self.tag_index.get_tag_scores(),
            limit,
        )

    def select_performer_context(
        self,
        performer_id: str,
        utterance: str,
        history: list[HistoryTurn] | None = None,
        limit: int | None = None,
    ) -> ContextSelection:
        return self.selector.select_performer_context(
            performer_id,
            utterance,
            history,
            self.memories.list_performer_memories(performer_id),
            self.tag_index.get_tag_scores(),
            limit,
        )

    # =========================================================================
    # Intelligence
    # =========================================================================

    def extraction_context(self) -> ExtractionContext:
        return ExtractionContext(
            clients=self.clients.list_clients(),
            brand=self.brand.get(),
            performers=self.performers.list_performers(),
            knowledge_entities=self.knowledge.list_entities(),
        )

    def batch_processor(self, engines: list[ExtractionEngine] | None = None) -> BatchProcessor:
        if engines is not None:
            return BatchProcessor(engines, self.router, self.extraction_context)
        return BatchProcessor.from_config(self.config.ai, self.router, self.extraction_context)

    async def process(
        self,
        memory_ids: list[int],
        engines: list[ExtractionEngine] | None = None,
    ) -> list[BatchOutcome]:
        """Extract and apply the given memories (default engines: one per configured key)."""
        processor = self.batch_processor(engines)
        try:
            return await processor.process(memory_ids)
        finally:
            await processor.close()


__all__ = ["SylviaService"]
