"""
Unit tests for the performer, journal, knowledge and interaction stores.
"""

from datetime import datetime, timedelta, timezone

import pytest

from sylvia.errors import ApplicationError, ValidationError
from sylvia.stores.interactions import InteractionEvent, InteractionLog
from sylvia.stores.journal import JournalStore
from sylvia.stores.knowledge import KnowledgeEntity, KnowledgeGraph
from sylvia.stores.performers import PerformerStore


@pytest.fixture
def performers(temp_db):
    return PerformerStore(temp_db)


@pytest.fixture
def journal(temp_db):
    return JournalStore(temp_db)


@pytest.fixture
def graph(temp_db, tag_index):
    return KnowledgeGraph(temp_db, tag_index)


@pytest.fixture
def interactions(temp_db):
    return InteractionLog(temp_db)


# ============================================================================
# Performers
# ============================================================================


class TestPerformerStore:
    """Tests for PerformerStore."""

    def test_patch_description_and_role(self, performers):
        nova = performers.create("Nova")

        performers.patch(nova.id, {"description": "Ex-analyst", "roleDescription": "Negotiator"})

        loaded = performers.get(nova.id)
        assert loaded.description == "Ex-analyst"
        assert loaded.role_description == "Negotiator"

    def test_patch_rejects_other_fields(self, performers):
        nova = performers.create("Nova")
        with pytest.raises(ValidationError):
            performers.patch(nova.id, {"prompt": "x"})

    def test_patch_missing_performer(self, performers):
        with pytest.raises(ApplicationError):
            performers.patch("missing", {"description": "x"})

    def test_find_by_name(self, performers):
        nova = performers.create("Nova Starling")
        assert performers.find_by_name("nova").id == nova.id


# ============================================================================
# Journal
# ============================================================================


class TestJournalStore:
    """Tests for JournalStore."""

    def test_keyed_by_date_and_source(self, journal):
        journal.upsert_entry("2025-04-01", "Send proposal", source_id=7)
        journal.upsert_entry("2025-04-01", "Send proposal", source_id=7)
        journal.upsert_entry("2025-04-01", "Call legal", source_id=8)

        assert len(journal.list_entries("2025-04-01")) == 2
        assert journal.get_day("2025-04-01") == "Send proposal\n\nCall legal"

    def test_same_source_keeps_distinct_entries(self, journal):
        """Different entries from one memory on the same day are all kept."""
        journal.upsert_entry("2025-04-01", "Call Acme at 10", source_id=7)
        journal.upsert_entry("2025-04-01", "Invoice Globex due", source_id=7)
        journal.upsert_entry("2025-04-01", "call acme at 10 ", source_id=7)

        assert journal.get_day("2025-04-01") == "Call Acme at 10\n\nInvoice Globex due"

    @pytest.mark.parametrize("date", ["2025-13-01", "April 1", "2025/04/01"])
    def test_invalid_date(self, journal, date):
        with pytest.raises(ValidationError):
            journal.upsert_entry(date, "x")

    def test_empty_day(self, journal):
        assert journal.get_day("2025-04-02") is None


# ============================================================================
# Knowledge graph
# ============================================================================


class TestKnowledgeGraph:
    """Tests for KnowledgeGraph."""

    def test_relationships_are_unioned(self, graph):
        graph.add_connection("Acme", ["Globex"], "competes_with")
        graph.add_connection("Acme", ["Globex", "Initech"], "competes_with")
        graph.add_connection("Acme", ["Pricing"], "mentions")

        entity = graph.get_entity("Acme")
        assert entity.relationships == {
            "competes_with": ["Globex", "Initech"],
            "mentions": ["Pricing"],
        }

    def test_created_at_preserved(self, graph):
        first = graph.add_connection("Acme", ["Globex"])
        second = graph.add_connection("Acme", ["Initech"])

        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at

    def test_default_relationship_type(self, graph):
        graph.upsert_entity(KnowledgeEntity(name="Acme", relationships={"": ["Globex"]}))
        assert graph.get_entity("Acme").relationships == {"related_to": ["Globex"]}

    def test_new_source_tags_recorded_once(self, graph, tag_index):
        graph.add_connection("Acme", ["Globex"], source_tags=["Pricing"])
        graph.add_connection("Acme", ["Globex"], source_tags=["pricing", "q3"])

        assert tag_index.get("pricing").knowledge_count == 1
        assert tag_index.get("q3").knowledge_count == 1
        assert graph.get_entity("Acme").source_tags == ["pricing", "q3"]

    def test_requires_name(self, graph):
        with pytest.raises(ValidationError):
            graph.upsert_entity(KnowledgeEntity(name=" "))

    def test_delete(self, graph):
        graph.add_connection("Acme", ["Globex"])
        assert graph.delete_entity("Acme") is True
        assert graph.get_entity("Acme") is None


# ============================================================================
# Interactions
# ============================================================================


def _event(event_id, speaker="nova", targets=("rex",), sentiment=None, tags=(), context="public", minutes=0):
    return InteractionEvent(
        id=event_id,
        speaker_id=speaker,
        target_ids=list(targets),
        sentiment=sentiment,
        intrigue_tags=list(tags),
        context=context,
        timestamp=datetime(2025, 3, 14, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


class TestInteractionLog:
    """Tests for InteractionLog."""

    def test_upsert_by_id(self, interactions):
        assert interactions.upsert_events([_event("e1"), _event("e2")]) == 2
        assert interactions.upsert_events([_event("e1", sentiment=0.5)]) == 0

        events = interactions.list_events()
        assert len(events) == 2
        assert next(e for e in events if e.id == "e1").sentiment == 0.5

    def test_unknown_context_defaults_to_public(self, interactions):
        interactions.upsert_events([_event("e1", context="weird")])
        assert interactions.list_events()[0].context == "public"

    def test_pair_summary(self, interactions):
        interactions.upsert_events(
            [
                _event("e1", sentiment=-0.5, tags=["rivalry"], minutes=1),
                _event("e2", speaker="rex", targets=("nova",), sentiment=0.25, context="private", minutes=5),
                _event("e3", targets=("kai",), minutes=2),
            ]
        )

        summaries = interactions.summarize_pairs()
        pair = next(s for s in summaries if s.pair_key == "nova|rex")

        assert pair.total_interactions == 2
        assert pair.sentiment_sum == pytest.approx(-0.25)
        assert pair.intrigue_count == 1
        assert pair.tags == ["rivalry"]
        assert pair.public_count == 1
        assert pair.private_count == 1
        assert pair.pressure_score == pytest.approx(0.5)
        assert summaries[0].pair_key == "nova|rex"

    def test_events_for_participant(self, interactions):
        interactions.upsert_events([_event("e1"), _event("e2", speaker="kai", targets=("lee",))])
        assert [e.id for e in interactions.events_for_participant("rex")] == ["e1"]
