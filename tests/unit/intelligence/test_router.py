"""
Unit tests for the Application Router.

Covers fan-out to every destination, idempotent re-application, concurrent
applies, relevance handling and per-destination failure aggregation.
"""

import asyncio
from unittest.mock import patch

import pytest

from sylvia.errors import ApplicationError
from sylvia.events import ChangeEvent
from sylvia.intelligence.models import (
    CalendarEntry,
    ClientUpdate,
    KnowledgeConnection,
    PerformerUpdate,
    ProcessingResult,
)
from sylvia.stores.interactions import InteractionEvent


@pytest.fixture
def stored_memory(service, make_memory):
    return service.memories.add_memory(make_memory(relevance=4))


@pytest.fixture
def nova(service):
    return service.performers.create("Nova", performer_id="p-nova")


@pytest.fixture
def result(nova):
    return ProcessingResult(
        client_updates=[ClientUpdate(client_name="Acme", updates={"painPoints": "Opaque pricing"})],
        brand_updates={"tone": "Warm"},
        performer_updates=[PerformerUpdate(performer_id=nova.id, performer_name="Nova", updates={"roleDescription": "Closer"})],
        calendar_entries=[CalendarEntry(date="2025-04-01", content="Send proposal")],
        knowledge_connections=[KnowledgeConnection(entity="A", related_to=["B"], relationship_type="mentions")],
        interaction_events=[InteractionEvent(id="interaction_1_abc", target_names=["Nova", "Rex"], sentiment=-0.2)],
        reranked_relevance=9,
        reasoning="test",
    )


def _edges(service):
    return {edge for entity in service.knowledge.list_entities() for edge in entity.edges()}


# ============================================================================
# Fan-out
# ============================================================================


class TestApply:
    """Tests for ApplicationRouter.apply()."""

    @pytest.mark.asyncio
    async def test_writes_every_destination(self, service, stored_memory, result, nova):
        report = await service.router.apply(stored_memory.id, result)

        assert report.ok
        acme = service.clients.find_by_name("Acme")
        assert acme.get("painPoints") == "Opaque pricing"
        assert service.brand.get().fields["tone"] == "Warm"
        assert service.performers.get(nova.id).role_description == "Closer"
        assert service.journal.get_day("2025-04-01") == "Send proposal"
        assert _edges(service) == {("A", "mentions", "B")}
        assert len(service.interactions.list_events()) == 1
        assert service.memories.get_memory(stored_memory.id).relevance == 9

    @pytest.mark.asyncio
    async def test_relevance_round_trip(self, service, stored_memory):
        report = await service.router.apply(stored_memory.id, ProcessingResult(reranked_relevance=7.5))

        assert report.previous_relevance == 4
        assert report.relevance == 7.5
        assert service.memories.get_memory(stored_memory.id).relevance == 7.5

    @pytest.mark.asyncio
    async def test_same_day_calendar_entries_appended(self, service, stored_memory):
        """Two entries for one date from one memory both land in the journal."""
        result = ProcessingResult(
            calendar_entries=[
                CalendarEntry(date="2025-04-01", content="Call Acme at 10"),
                CalendarEntry(date="2025-04-01", content="Invoice Globex due"),
            ],
            reranked_relevance=6,
        )

        report = await service.router.apply(stored_memory.id, result)
        await service.router.apply(stored_memory.id, result)

        assert report.applied["calendar"] == 2
        assert service.journal.get_day("2025-04-01") == "Call Acme at 10\n\nInvoice Globex due"

    @pytest.mark.asyncio
    async def test_missing_memory_raises(self, service, result):
        with pytest.raises(ApplicationError) as exc_info:
            await service.router.apply(999, result)

        assert exc_info.value.memory_id == 999

    @pytest.mark.asyncio
    async def test_knowledge_uses_memory_tags(self, service, stored_memory, result, tag_index):
        await service.router.apply(stored_memory.id, result)

        entity = service.knowledge.get_entity("A")
        assert entity.source_tags == ["pricing", "q3"]
        assert entity.last_seen_conversation_id == str(stored_memory.id)
        assert service.tag_index.get("pricing").knowledge_count == 1

    @pytest.mark.asyncio
    async def test_events_per_affected_store(self, service, events, stored_memory, result):
        seen = []
        for event in ChangeEvent:
            events.subscribe(event, lambda e=event: seen.append(e))

        await service.router.apply(stored_memory.id, result)

        assert ChangeEvent.CLIENT_DATA_UPDATED in seen
        assert ChangeEvent.BRAND_DATA_UPDATED in seen
        assert ChangeEvent.PERFORMERS_UPDATED in seen
        assert ChangeEvent.PERFORMER_INTERACTIONS_UPDATED in seen
        assert ChangeEvent.MEMORIES_UPDATED in seen
        assert ChangeEvent.INTELLIGENCE_LOG_UPDATED in seen

    @pytest.mark.asyncio
    async def test_no_events_for_untouched_stores(self, service, events, stored_memory):
        seen = []
        events.subscribe(ChangeEvent.BRAND_DATA_UPDATED, lambda: seen.append("brand"))
        events.subscribe(ChangeEvent.CLIENT_DATA_UPDATED, lambda: seen.append("client"))

        await service.router.apply(stored_memory.id, ProcessingResult(reranked_relevance=5))

        assert seen == []

    @pytest.mark.asyncio
    async def test_single_audit_record(self, service, stored_memory, result):
        await service.router.apply(stored_memory.id, result)

        records = service.audit_log.list_records()
        assert len(records) == 1
        assert records[0].source == "post_processing"
        assert records[0].category == "operations"
        assert f"Memory {stored_memory.id} processed" in records[0].summary


# ============================================================================
# Idempotence and concurrency
# ============================================================================


class TestIdempotence:
    """Applying the same result more than once converges."""

    @pytest.mark.asyncio
    async def test_apply_twice_does_not_duplicate(self, service, stored_memory, result):
        await service.router.apply(stored_memory.id, result)
        await service.router.apply(stored_memory.id, result)

        assert len(service.clients.list_clients()) == 1
        assert service.clients.find_by_name("Acme").get("painPoints") == "Opaque pricing"
        assert len(service.journal.list_entries("2025-04-01")) == 1
        assert _edges(service) == {("A", "mentions", "B")}
        assert len(service.interactions.list_events()) == 1

    @pytest.mark.asyncio
    async def test_concurrent_applies_single_edge(self, service, stored_memory):
        result = ProcessingResult(
            knowledge_connections=[KnowledgeConnection(entity="A", related_to=["B"], relationship_type="mentions")],
            reranked_relevance=6,
        )

        reports = await asyncio.gather(
            service.router.apply(stored_memory.id, result),
            service.router.apply(stored_memory.id, result),
        )

        assert all(report.ok for report in reports)
        assert service.knowledge.get_entity("A").relationships == {"mentions": ["B"]}

    @pytest.mark.asyncio
    async def test_concurrent_applies_single_client(self, service, stored_memory):
        result = ProcessingResult(
            client_updates=[ClientUpdate(client_name="Globex", updates={"notes": "New lead"})],
            reranked_relevance=6,
        )

        await asyncio.gather(*(service.router.apply(stored_memory.id, result) for _ in range(3)))

        assert [c.name for c in service.clients.list_clients()] == ["Globex"]


# ============================================================================
# Partial failure
# ============================================================================


class TestPartialFailure:
    """Per-destination failures are aggregated, not raised."""

    @pytest.mark.asyncio
    async def test_failures_aggregated_and_others_applied(self, service, stored_memory, result):
        with patch.object(service.brand, "patch", side_effect=RuntimeError("disk full")):
            report = await service.router.apply(stored_memory.id, result)

        assert not report.ok
        assert [(e.destination, e.error) for e in report.errors] == [("brand", "disk full")]
        assert service.journal.get_day("2025-04-01") == "Send proposal"
        assert _edges(service) == {("A", "mentions", "B")}

    @pytest.mark.asyncio
    async def test_relevance_untouched_on_partial_failure(self, service, stored_memory, result):
        with patch.object(service.journal, "upsert_entry", side_effect=RuntimeError("locked")):
            report = await service.router.apply(stored_memory.id, result)

        assert report.relevance is None
        assert service.memories.get_memory(stored_memory.id).relevance == 4

    @pytest.mark.asyncio
    async def test_unknown_performer_id_reported(self, service, stored_memory):
        result = ProcessingResult(
            performer_updates=[PerformerUpdate(performer_id="gone", performer_name="Gone", updates={"description": "x"})],
            reranked_relevance=5,
        )

        report = await service.router.apply(stored_memory.id, result)

        assert report.failed_destinations == ["performers"]

    @pytest.mark.asyncio
    async def test_raise_for_errors(self, service, stored_memory, result):
        with patch.object(service.brand, "patch", side_effect=RuntimeError("disk full")):
            report = await service.router.apply(stored_memory.id, result)

        with pytest.raises(ApplicationError) as exc_info:
            report.raise_for_errors()

        assert exc_info.value.memory_id == stored_memory.id
        assert exc_info.value.errors[0].destination == "brand"

    @pytest.mark.asyncio
    async def test_retry_after_failure_completes(self, service, stored_memory, result):
        with patch.object(service.brand, "patch", side_effect=RuntimeError("disk full")):
            await service.router.apply(stored_memory.id, result)

        report = await service.router.apply(stored_memory.id, result)

        assert report.ok
        assert service.memories.get_memory(stored_memory.id).relevance == 9
        assert len(service.journal.list_entries()) == 1
