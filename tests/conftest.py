"""Shared test fixtures for Sylvia tests.

This module provides common fixtures used across all test modules:
- Database isolation with a temporary SQLite file per test
- Wired stores (tag index, memory store, full service)
- A scripted AI provider for extraction tests

Usage:
    def test_something(service):
        service.memories.add_memory(...)
"""

import json
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sylvia.config import AIConfig, SylviaConfig
from sylvia.errors import ExtractionError
from sylvia.events import EventBus
from sylvia.intelligence.extractor import ExtractionEngine
from sylvia.intelligence.providers.base import AIProvider
from sylvia.memory.models import Memory
from sylvia.memory.store import MemoryStore
from sylvia.memory.tag_index import TagScoreIndex
from sylvia.service import SylviaService


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    """Path to a fresh SQLite file; removed with tmp_path."""
    return tmp_path / "data" / "sylvia.db"


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def tag_index(temp_db: Path) -> TagScoreIndex:
    return TagScoreIndex(temp_db)


@pytest.fixture
def memory_store(temp_db: Path, tag_index: TagScoreIndex, events: EventBus) -> MemoryStore:
    return MemoryStore(temp_db, tag_index, events)


@pytest.fixture
def service(temp_db: Path, events: EventBus) -> SylviaService:
    """Every store wired onto the temporary database."""
    return SylviaService(SylviaConfig(), db_path=temp_db, events=events)


# ─────────────────────────────────────────────────────────────────────────────
# Memory Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def fixed_time() -> datetime:
    return datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_memory(fixed_time: datetime) -> Callable[..., Memory]:
    """Factory for Memory objects with sensible defaults."""

    def _make(summary: str = "Client wants a Q3 pricing review", tags=None, relevance: float = 5, **kwargs) -> Memory:
        timestamp = kwargs.pop("timestamp", fixed_time)
        return Memory(
            summary=summary,
            tags=list(tags) if tags is not None else ["pricing", "q3"],
            relevance=relevance,
            timestamp=timestamp,
            **kwargs,
        )

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# AI Provider Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class ScriptedProvider(AIProvider):
    """Returns queued responses in order; Exception entries are raised."""

    name = "scripted"

    def __init__(self, responses=None, config: AIConfig | None = None, api_key: str = "test-key"):
        super().__init__(api_key, config or AIConfig(api_keys=[api_key]))
        self.responses = list(responses or [])
        self.prompts: list[str] = []
        self.closed = False

    async def generate_json(self, prompt, schema):
        self.prompts.append(prompt)
        if not self.responses:
            raise ExtractionError("no scripted response left", provider=self.name)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response

    async def close(self):
        self.closed = True


@pytest.fixture
def ai_config() -> AIConfig:
    return AIConfig(provider="openai", model="test-model", api_keys=["key-a", "key-b"])


@pytest.fixture
def make_engine(ai_config: AIConfig) -> Callable[..., ExtractionEngine]:
    """Factory: ExtractionEngine over a ScriptedProvider with the given responses."""

    def _make(*responses, api_key: str = "key-a") -> ExtractionEngine:
        provider = ScriptedProvider(list(responses), ai_config, api_key=api_key)
        return ExtractionEngine(ai_config, provider=provider)

    return _make


@pytest.fixture
def extraction_response() -> dict:
    """A complete, well-formed model response."""
    return {
        "clientUpdates": [
            {"clientName": "Acme", "field": "painPoints", "content": "Pricing is opaque"},
        ],
        "brandUpdates": {"field": "tone", "content": "Warm and direct"},
        "performerUpdates": [
            {"performerName": "Nova", "field": "roleDescription", "content": "Lead negotiator"},
        ],
        "calendarEntries": [{"date": "2025-04-01", "content": "Send Q3 pricing proposal"}],
        "knowledgeConnections": [
            {"entity": "Acme", "relatedTo": ["Globex"], "relationshipType": "competes_with"},
        ],
        "interactionEvents": [
            {"participants": ["Nova", "Rex"], "intrigueTags": ["rivalry"], "sentiment": -0.4},
        ],
        "rerankedRelevance": 8,
        "reasoning": "Concrete pricing commitment with a named client",
        "unexpectedKey": "ignored",
    }
