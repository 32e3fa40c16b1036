"""
Extraction Engine

Turns one stored memory into a ProcessingResult by asking a model to route
its content to clients, brand, performers, calendar, knowledge graph and
interaction log.

Parsing is lenient per field and strict at the top:
    - the response must contain a JSON object, otherwise ExtractionError
    - every field is type-checked; a missing or malformed field falls back to
      its default ([] for lists, None for brand, the memory's own relevance)
    - unknown keys are ignored

Name resolution against the context passed in:
    - clients: exact or containing name match; unknown names are kept with
      client_id=None and created by the router
    - performers: exact or containing name match; unknown names are dropped

The engine never retries. Retrying with another credential is the batch
processor's decision.

Usage:
    engine = ExtractionEngine(config.ai)
    result = await engine.extract(memory, context)
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from sylvia.config import AIConfig
from sylvia.errors import ExtractionError, ValidationError
from sylvia.intelligence.models import (
    CalendarEntry,
    ClientUpdate,
    ExtractionContext,
    KnowledgeConnection,
    PerformerUpdate,
    ProcessingResult,
)
from sylvia.intelligence.providers import AIProvider, get_provider
from sylvia.intelligence.schema import PROCESSING_RESULT_SCHEMA
from sylvia.memory.models import MAX_RELEVANCE, MIN_RELEVANCE, Memory
from sylvia.stores.brand import BRAND_FIELDS
from sylvia.stores.clients import CLIENT_FIELDS, FIELD_SEPARATOR, ClientProfile
from sylvia.stores.interactions import InteractionEvent
from sylvia.stores.journal import validate_date
from sylvia.stores.knowledge import DEFAULT_RELATIONSHIP
from sylvia.stores.performers import PERFORMER_FIELDS, PerformerProfile

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Analyze this memory and extract actionable intelligence for the rest of the system.

MEMORY:
Summary: {summary}
Tags: {tags}
Conversation: {snippet}

EXISTING CONTEXT:
Clients: {clients}
Brand: {brand}
Performers: {performers}
Knowledge Entities: {knowledge}

Route what you find to:
1. clientUpdates - insights about existing or new clients. Fields: {client_fields}
2. brandUpdates - one insight about our brand, or null. Fields: {brand_fields}
   (brand or company name / mission statement -> mission; who we serve -> targetAudience;
   principles -> values; long-term aspirations -> vision; voice -> tone;
   differentiation -> uniqueValue or competitiveEdge; talking points -> keyMessages;
   boundaries -> constraints; current objectives -> goals)
3. performerUpdates - biography or role details for listed performers. Fields: {performer_fields}
4. calendarEntries - commitments, deadlines or scheduled events, dated YYYY-MM-DD
5. knowledgeConnections - relationships between named entities
6. interactionEvents - notable interactions between performers or with the user, sentiment -1 to 1
7. rerankedRelevance - reassess this memory's importance on a 0-10 scale
8. reasoning - one or two sentences

Respond in JSON:
{{
  "clientUpdates": [{{"clientName": "name", "field": "painPoints", "content": "text"}}],
  "brandUpdates": {{"field": "mission", "content": "text"}} or null,
  "performerUpdates": [{{"performerName": "name", "field": "description|roleDescription", "content": "text"}}],
  "calendarEntries": [{{"date": "YYYY-MM-DD", "content": "text"}}],
  "knowledgeConnections": [{{"entity": "name", "relatedTo": ["entity1"], "relationshipType": "type"}}],
  "interactionEvents": [{{"participants": ["name1", "name2"], "intrigueTags": ["tag"], "sentiment": 0.0}}],
  "rerankedRelevance": 0-10,
  "reasoning": "brief explanation"
}}"""


# =============================================================================
# Prompt
# =============================================================================

def _clip(text: str, limit: int) -> str:
    text = text or ""
    return text if len(text) <= limit else text[:limit].rstrip() + " …"


def build_prompt(memory: Memory, context: ExtractionContext, config: AIConfig) -> str:
    """Bounded extraction prompt: at most max_prompt_items names per list, snippet clipped."""
    items = config.max_prompt_items

    clients = [client.to_prompt() for client in context.clients[:items]]
    brand_fields = sorted(context.brand.fields) if context.brand and context.brand.fields else []

    return EXTRACTION_PROMPT.format(
        summary=memory.summary,
        tags=", ".join(memory.tags),
        snippet=_clip(memory.conversation_snippet, config.max_snippet_chars),
        clients=", ".join(clients) or "none",
        brand=f"configured ({', '.join(brand_fields)})" if brand_fields else "not configured",
        performers=", ".join(p.name for p in context.performers[:items]) or "none",
        knowledge=", ".join(k.name for k in context.knowledge_entities[:items]) or "none",
        client_fields=", ".join(CLIENT_FIELDS),
        brand_fields=", ".join(BRAND_FIELDS),
        performer_fields=", ".join(PERFORMER_FIELDS),
    )


# =============================================================================
# Parsing
# =============================================================================

def _load_object(raw_output: str) -> dict[str, Any]:
    text = (raw_output or "").strip()

    # Strip markdown code fences if present
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(lines).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1:
        raise ExtractionError(f"Model response contains no JSON object: {text[:200]!r}")

    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Model response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionError("Model response is not a JSON object")
    return data


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _string_list(value: Any) -> list[str]:
    return [item.strip() for item in _as_list(value) if isinstance(item, str) and item.strip()]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _match_name(name: str, profiles: list) -> Any:
    query = name.casefold()
    for profile in profiles:
        if profile.name.casefold() == query:
            return profile
    for profile in profiles:
        if query in profile.name.casefold():
            return profile
    return None


def _parse_client_updates(items: Any, clients: list[ClientProfile]) -> list[ClientUpdate]:
    grouped: dict[str, ClientUpdate] = {}
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        name = _text(item.get("clientName"))
        field_name = _text(item.get("field"))
        content = _text(item.get("content"))
        if not name or field_name not in CLIENT_FIELDS or not content:
            continue

        match = _match_name(name, clients)
        key = match.id if match else name.casefold()
        update = grouped.get(key)
        if update is None:
            update = ClientUpdate(
                client_name=match.name if match else name,
                client_id=match.id if match else None,
                updates={},
            )
            grouped[key] = update

        if field_name in update.updates:
            update.updates[field_name] += FIELD_SEPARATOR + content
        else:
            update.updates[field_name] = content
    return list(grouped.values())


def _parse_brand_updates(value: Any) -> dict[str, str] | None:
    if not isinstance(value, dict):
        return None
    if "field" in value:
        field_name = _text(value.get("field"))
        content = _text(value.get("content"))
        if field_name in BRAND_FIELDS and content:
            return {field_name: content}
        return None
    # Tolerate a direct {field: content} map
    updates = {k: _text(v) for k, v in value.items() if k in BRAND_FIELDS and _text(v)}
    return updates or None


def _parse_performer_updates(items: Any, performers: list[PerformerProfile]) -> list[PerformerUpdate]:
    grouped: dict[str, PerformerUpdate] = {}
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        name = _text(item.get("performerName"))
        field_name = _text(item.get("field"))
        content = _text(item.get("content"))
        if not name or field_name not in PERFORMER_FIELDS or not content:
            continue
        match = _match_name(name, performers)
        if match is None:
            logger.debug(f"Dropping update for unknown performer {name!r}")
            continue
        update = grouped.setdefault(
            match.id, PerformerUpdate(performer_id=match.id, performer_name=match.name, updates={})
        )
        update.updates[field_name] = content
    return list(grouped.values())


def _parse_calendar_entries(items: Any) -> list[CalendarEntry]:
    entries = []
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        content = _text(item.get("content"))
        if not content:
            continue
        try:
            day = validate_date(_text(item.get("date")))
        except ValidationError:
            logger.debug(f"Skipping calendar entry with bad date: {item.get('date')!r}")
            continue
        entries.append(CalendarEntry(date=day, content=content))
    return entries


def _parse_knowledge_connections(items: Any) -> list[KnowledgeConnection]:
    connections = []
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        entity = _text(item.get("entity"))
        if not entity:
            continue
        connections.append(
            KnowledgeConnection(
                entity=entity,
                related_to=_string_list(item.get("relatedTo")),
                relationship_type=_text(item.get("relationshipType")) or DEFAULT_RELATIONSHIP,
            )
        )
    return connections


def interaction_event_id(memory_id: int | None, participants: list[str], tags: list[str], sentiment: float | None) -> str:
    """Stable id for an extracted interaction, so re-extraction collapses on upsert."""
    fingerprint = json.dumps(
        [sorted(p.casefold() for p in participants), sorted(t.casefold() for t in tags), sentiment],
        ensure_ascii=False,
    )
    digest = hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()[:12]
    return f"interaction_{memory_id}_{digest}"


def _parse_interaction_events(items: Any, memory: Memory) -> list[InteractionEvent]:
    events: dict[str, InteractionEvent] = {}
    source = str(memory.id) if memory.id is not None else ""
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        participants = _string_list(item.get("participants"))
        if not participants:
            continue
        tags = _string_list(item.get("intrigueTags"))
        sentiment = item.get("sentiment")
        sentiment = max(-1.0, min(1.0, float(sentiment))) if _is_number(sentiment) else None

        event_id = interaction_event_id(memory.id, participants, tags, sentiment)
        events[event_id] = InteractionEvent(
            id=event_id,
            conversation_id=source,
            message_id=source,
            target_names=participants,
            timestamp=memory.timestamp,
            intrigue_tags=tags,
            sentiment=sentiment,
        )
    return list(events.values())


def parse_processing_result(raw_output: str, memory: Memory, context: ExtractionContext) -> ProcessingResult:
    """
    Parse and validate a model response.

    Raises:
        ExtractionError: response has no parseable top-level JSON object
    """
    data = _load_object(raw_output)

    relevance = data.get("rerankedRelevance")
    if _is_number(relevance):
        relevance = max(MIN_RELEVANCE, min(MAX_RELEVANCE, float(relevance)))
    else:
        relevance = memory.relevance

    return ProcessingResult(
        client_updates=_parse_client_updates(data.get("clientUpdates"), context.clients),
        brand_updates=_parse_brand_updates(data.get("brandUpdates")),
        performer_updates=_parse_performer_updates(data.get("performerUpdates"), context.performers),
        calendar_entries=_parse_calendar_entries(data.get("calendarEntries")),
        knowledge_connections=_parse_knowledge_connections(data.get("knowledgeConnections")),
        interaction_events=_parse_interaction_events(data.get("interactionEvents"), memory),
        reranked_relevance=relevance,
        reasoning=_text(data.get("reasoning")),
    )


# =============================================================================
# Engine
# =============================================================================

class ExtractionEngine:
    """Memory -> ProcessingResult through one AIProvider."""

    def __init__(
        self,
        config: AIConfig,
        provider: AIProvider | None = None,
        api_key: str | None = None,
    ):
        """
        Raises:
            ExtractionError: no provider given and none can be built (no key, unknown name)
        """
        self.config = config
        if provider is None:
            key = api_key or (config.api_keys[0] if config.api_keys else "")
            try:
                provider = get_provider(config.provider, key, config)
            except ValueError as e:
                raise ExtractionError(str(e), provider=config.provider) from e
        self.provider = provider

    async def extract(self, memory: Memory, context: ExtractionContext | None = None) -> ProcessingResult:
        """
        Extract routed intelligence from one memory.

        Raises:
            ExtractionError: model call failed or the response was unusable
        """
        context = context or ExtractionContext()
        prompt = build_prompt(memory, context, self.config)

        try:
            raw_output = await self.provider.generate_json(prompt, PROCESSING_RESULT_SCHEMA)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(
                f"{self.provider.name} call failed: {e}", provider=self.provider.name
            ) from e

        try:
            result = parse_processing_result(raw_output, memory, context)
        except ExtractionError as e:
            e.provider = e.provider or self.provider.name
            logger.warning(f"Extraction for memory {memory.id} returned unusable output: {e}")
            raise

        logger.info(
            f"Extracted memory {memory.id}: {len(result.client_updates)} client, "
            f"{len(result.performer_updates)} performer, {len(result.calendar_entries)} calendar, "
            f"{len(result.knowledge_connections)} knowledge, {len(result.interaction_events)} interaction updates"
        )
        return result

    async def close(self) -> None:
        await self.provider.close()


__all__ = [
    "EXTRACTION_PROMPT",
    "ExtractionEngine",
    "build_prompt",
    "interaction_event_id",
    "parse_processing_result",
]
