"""
Memory Data Structures

Records owned by the Memory Store and the Tag Score Index, plus the
normalization rules applied before anything is indexed:

- Tags are stripped of leading '#', trimmed, case-folded and have whitespace
  runs collapsed to '-', so "#Q3 Pricing" and "q3-pricing" are the same tag.
- Every stored memory carries temporal meta-tags (date/month/year/ISO week)
  derived from its timestamp. Meta-tags are kept apart from the 1-6 user tags.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sylvia.errors import ValidationError
from sylvia.storage import from_iso, to_iso, utcnow

MIN_TAGS = 1
MAX_TAGS = 6
MIN_RELEVANCE = 0.0
MAX_RELEVANCE = 10.0

_WHITESPACE = re.compile(r"\s+")


def normalize_tag(tag: Any) -> str:
    """Normalize a single tag; returns "" for unusable input."""
    if not isinstance(tag, str):
        return ""
    cleaned = tag.strip().lstrip("#").strip()
    return _WHITESPACE.sub("-", cleaned).casefold()


def normalize_tags(tags: Any) -> list[str]:
    """Normalize and de-duplicate a tag list, preserving first-seen order."""
    if not isinstance(tags, (list, tuple)):
        return []
    seen: dict[str, None] = {}
    for tag in tags:
        normalized = normalize_tag(tag)
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)


def temporal_meta_tags(timestamp: datetime) -> list[str]:
    """date:/month:/year:/week: meta-tags for a timestamp (UTC, ISO week)."""
    moment = timestamp.astimezone(timezone.utc) if timestamp.tzinfo else timestamp
    iso_year, iso_week, _ = moment.isocalendar()
    return [
        f"date:{moment.strftime('%Y-%m-%d')}",
        f"month:{moment.strftime('%Y-%m')}",
        f"year:{moment.year}",
        f"week:{iso_year}-W{iso_week:02d}",
    ]


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def _merge_meta_tags(existing: list[str], timestamp: datetime) -> list[str]:
    merged: dict[str, None] = {}
    for tag in [*existing, *temporal_meta_tags(timestamp)]:
        if isinstance(tag, str) and tag:
            merged.setdefault(tag, None)
    return list(merged)


def _validate_common(summary: str, tags: list[str], relevance: float) -> None:
    if not isinstance(summary, str) or not summary.strip():
        raise ValidationError("Memory summary must be a non-empty string")
    if not MIN_TAGS <= len(tags) <= MAX_TAGS:
        raise ValidationError(
            f"Memory must carry {MIN_TAGS}-{MAX_TAGS} tags after normalization, got {len(tags)}"
        )
    if isinstance(relevance, bool) or not isinstance(relevance, (int, float)):
        raise ValidationError(f"Relevance must be a number, got {type(relevance).__name__}")
    if not MIN_RELEVANCE <= relevance <= MAX_RELEVANCE:
        raise ValidationError(f"Relevance must be within 0-10, got {relevance}")


@dataclass
class Memory:
    """A persisted, tagged summary of a conversational exchange."""

    summary: str
    tags: list[str]
    conversation_snippet: str = ""
    relevance: float = 5.0
    id: int | None = None
    timestamp: datetime = field(default_factory=utcnow)
    knowledge_refs: list[str] = field(default_factory=list)
    meta_tags: list[str] = field(default_factory=list)

    def normalized(self) -> Memory:
        """Copy with normalized tags and temporal meta-tags. Raises ValidationError."""
        tags = normalize_tags(self.tags)
        _validate_common(self.summary, tags, self.relevance)
        return Memory(
            id=self.id,
            timestamp=_as_utc(self.timestamp),
            summary=self.summary.strip(),
            tags=tags,
            conversation_snippet=self.conversation_snippet or "",
            relevance=float(self.relevance),
            knowledge_refs=list(dict.fromkeys(self.knowledge_refs or [])),
            meta_tags=_merge_meta_tags(self.meta_tags or [], self.timestamp),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": to_iso(self.timestamp),
            "summary": self.summary,
            "tags": self.tags,
            "conversation_snippet": self.conversation_snippet,
            "relevance": self.relevance,
            "knowledge_refs": self.knowledge_refs,
            "meta_tags": self.meta_tags,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Memory:
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = from_iso(timestamp)
        return cls(
            id=data.get("id"),
            timestamp=timestamp or utcnow(),
            summary=data.get("summary", ""),
            tags=list(data.get("tags") or []),
            conversation_snippet=data.get("conversation_snippet", "") or "",
            relevance=data.get("relevance", 5.0),
            knowledge_refs=list(data.get("knowledge_refs") or []),
            meta_tags=list(data.get("meta_tags") or []),
        )


@dataclass
class PerformerMemory:
    """A memory scoped to one performer's own transcript."""

    performer_id: str
    summary: str
    tags: list[str]
    transcript_snippet: str = ""
    relevance: float = 5.0
    id: int | None = None
    timestamp: datetime = field(default_factory=utcnow)
    conversation_id: str | None = None
    meta_tags: list[str] = field(default_factory=list)

    def normalized(self) -> PerformerMemory:
        if not isinstance(self.performer_id, str) or not self.performer_id.strip():
            raise ValidationError("Performer memory requires a performer_id")
        tags = normalize_tags(self.tags)
        _validate_common(self.summary, tags, self.relevance)
        return PerformerMemory(
            id=self.id,
            performer_id=self.performer_id.strip(),
            timestamp=_as_utc(self.timestamp),
            summary=self.summary.strip(),
            tags=tags,
            transcript_snippet=self.transcript_snippet or "",
            relevance=float(self.relevance),
            conversation_id=self.conversation_id,
            meta_tags=_merge_meta_tags(self.meta_tags or [], self.timestamp),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "performer_id": self.performer_id,
            "timestamp": to_iso(self.timestamp),
            "summary": self.summary,
            "tags": self.tags,
            "transcript_snippet": self.transcript_snippet,
            "relevance": self.relevance,
            "conversation_id": self.conversation_id,
            "meta_tags": self.meta_tags,
        }


@dataclass
class TagScore:
    """Usage counters and derived priority score for one tag."""

    tag: str
    memory_count: int = 0
    knowledge_count: int = 0
    last_updated: datetime = field(default_factory=utcnow)
    score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "memory_count": self.memory_count,
            "knowledge_count": self.knowledge_count,
            "last_updated": to_iso(self.last_updated),
            "score": self.score,
        }


@dataclass
class MemoryPayload:
    """The memory (summary + tags) an assistant turn produced, if any."""

    summary: str
    tags: list[str] = field(default_factory=list)


@dataclass
class HistoryTurn:
    """One turn of the running conversation, as seen by the Context Selector."""

    role: str
    content: str
    memory: MemoryPayload | None = None


__all__ = [
    "MAX_RELEVANCE",
    "MAX_TAGS",
    "MIN_RELEVANCE",
    "MIN_TAGS",
    "HistoryTurn",
    "Memory",
    "MemoryPayload",
    "PerformerMemory",
    "TagScore",
    "normalize_tag",
    "normalize_tags",
    "temporal_meta_tags",
]
