"""
Memory Store

Durable storage for agent-scoped memories and performer-scoped memories.
This is the ingestion interface used by chat and onboarding collaborators:

    store.add_memory(memory)              # validates, stores, records tag usage
    store.add_performer_memory(memory)    # same, isolated per performer

Invalid input (no tags, more than six tags, empty summary, relevance outside
0-10) raises ValidationError before anything is written. Every mutation emits
the matching change event so pages can re-fetch.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sylvia.errors import ValidationError
from sylvia.events import ChangeEvent, EventBus
from sylvia.memory.models import MAX_RELEVANCE, MIN_RELEVANCE, Memory, PerformerMemory
from sylvia.memory.tag_index import TagScoreIndex
from sylvia.storage import SQLiteStore, dump_json, from_iso, load_json, to_iso, utcnow

logger = logging.getLogger(__name__)


class MemoryStore(SQLiteStore):
    """SQLite-backed store for Memory and PerformerMemory records."""

    SCHEMA = (
        """CREATE TABLE IF NOT EXISTS memories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TEXT NOT NULL,
            summary TEXT NOT NULL,
            tags TEXT NOT NULL,
            conversation_snippet TEXT DEFAULT '',
            relevance REAL NOT NULL,
            knowledge_refs TEXT DEFAULT '[]',
            meta_tags TEXT DEFAULT '[]'
        )""",
        "CREATE INDEX IF NOT EXISTS idx_memories_timestamp ON memories(timestamp)",
        """CREATE TABLE IF NOT EXISTS performer_memories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            performer_id TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            summary TEXT NOT NULL,
            tags TEXT NOT NULL,
            transcript_snippet TEXT DEFAULT '',
            relevance REAL NOT NULL,
            conversation_id TEXT,
            meta_tags TEXT DEFAULT '[]'
        )""",
        "CREATE INDEX IF NOT EXISTS idx_performer_memories_performer ON performer_memories(performer_id, timestamp)",
    )

    def __init__(self, db_path, tag_index: TagScoreIndex, events: EventBus | None = None):
        super().__init__(db_path)
        self._tag_index = tag_index
        self._events = events or EventBus()

    @property
    def tag_index(self) -> TagScoreIndex:
        return self._tag_index

    @property
    def events(self) -> EventBus:
        return self._events

    # =========================================================================
    # Agent memories
    # =========================================================================

    def add_memory(self, memory: Memory) -> Memory:
        """
        Validate and append a memory, then record its tag usage once.

        Returns:
            The stored memory with its assigned id and normalized tags
        """
        normalized = memory.normalized()
        with self.connection() as conn:
            cursor = conn.execute(
                """INSERT INTO memories
                   (timestamp, summary, tags, conversation_snippet, relevance, knowledge_refs, meta_tags)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    to_iso(normalized.timestamp),
                    normalized.summary,
                    dump_json(normalized.tags),
                    normalized.conversation_snippet,
                    normalized.relevance,
                    dump_json(normalized.knowledge_refs),
                    dump_json(normalized.meta_tags),
                ),
            )
            normalized.id = cursor.lastrowid

        self._tag_index.record_tag_usage(normalized.tags, "memory", relevance=normalized.relevance)
        logger.debug(f"Stored memory {normalized.id} with tags {normalized.tags}")
        self._events.emit(ChangeEvent.MEMORIES_UPDATED)
        return normalized

    def get_memory(self, memory_id: int) -> Memory | None:
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM memories WHERE id = ?", (memory_id,)).fetchone()
        return self._row_to_memory(row) if row else None

    def list_memories(self, limit: int | None = None) -> list[Memory]:
        """All memories, most recent first (ties: newest id first)."""
        query = "SELECT * FROM memories ORDER BY timestamp DESC, id DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_memory(row) for row in rows]

    def update_memory(self, memory: Memory) -> Memory:
        """Replace an existing memory's editable fields. Tag usage is not re-counted."""
        if memory.id is None:
            raise ValidationError("Cannot update a memory without an id")
        normalized = memory.normalized()
        with self.connection() as conn:
            cursor = conn.execute(
                """UPDATE memories SET timestamp = ?, summary = ?, tags = ?, conversation_snippet = ?,
                       relevance = ?, knowledge_refs = ?, meta_tags = ?
                   WHERE id = ?""",
                (
                    to_iso(normalized.timestamp),
                    normalized.summary,
                    dump_json(normalized.tags),
                    normalized.conversation_snippet,
                    normalized.relevance,
                    dump_json(normalized.knowledge_refs),
                    dump_json(normalized.meta_tags),
                    normalized.id,
                ),
            )
            if cursor.rowcount == 0:
                raise ValidationError(f"Memory {memory.id} does not exist")
        self._events.emit(ChangeEvent.MEMORIES_UPDATED)
        return normalized

    def set_relevance(self, memory_id: int, relevance: float) -> bool:
        """
        Overwrite a memory's relevance.

        Returns:
            True if the memory exists and was updated
        """
        if isinstance(relevance, bool) or not isinstance(relevance, (int, float)):
            raise ValidationError(f"Relevance must be a number, got {relevance!r}")
        if not MIN_RELEVANCE <= relevance <= MAX_RELEVANCE:
            raise ValidationError(f"Relevance must be within 0-10, got {relevance}")
        with self.connection() as conn:
            cursor = conn.execute(
                "UPDATE memories SET relevance = ? WHERE id = ?", (float(relevance), memory_id)
            )
            updated = cursor.rowcount > 0
        if updated:
            self._events.emit(ChangeEvent.MEMORIES_UPDATED)
        return updated

    def delete_memory(self, memory_id: int) -> bool:
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            self._events.emit(ChangeEvent.MEMORIES_UPDATED)
        return deleted

    def clear_memories(self) -> None:
        with self.connection() as conn:
            conn.execute("DELETE FROM memories")
        self._events.emit(ChangeEvent.MEMORIES_UPDATED)

    # =========================================================================
    # Performer memories
    # =========================================================================

    def add_performer_memory(self, memory: PerformerMemory) -> PerformerMemory:
        """Validate and append a performer-scoped memory, then record tag usage once."""
        normalized = memory.normalized()
        with self.connection() as conn:
            cursor = conn.execute(
                """INSERT INTO performer_memories
                   (performer_id, timestamp, summary, tags, transcript_snippet, relevance, conversation_id, meta_tags)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    normalized.performer_id,
                    to_iso(normalized.timestamp),
                    normalized.summary,
                    dump_json(normalized.tags),
                    normalized.transcript_snippet,
                    normalized.relevance,
                    normalized.conversation_id,
                    dump_json(normalized.meta_tags),
                ),
            )
            normalized.id = cursor.lastrowid

        self._tag_index.record_tag_usage(normalized.tags, "memory", relevance=normalized.relevance)
        self._events.emit(ChangeEvent.PERFORMER_MEMORIES_UPDATED)
        return normalized

    def list_performer_memories(self, performer_id: str, limit: int | None = None) -> list[PerformerMemory]:
        """One performer's memories, most recent first. Never returns another performer's records."""
        query = (
            "SELECT * FROM performer_memories WHERE performer_id = ? "
            "ORDER BY timestamp DESC, id DESC"
        )
        params: tuple = (performer_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (performer_id, limit)
        with self.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_performer_memory(row) for row in rows]

    def clear_performer_memories(self, performer_id: str | None = None) -> int:
        """Delete one performer's memories, or every performer's when no id is given."""
        with self.connection() as conn:
            if performer_id:
                cursor = conn.execute(
                    "DELETE FROM performer_memories WHERE performer_id = ?", (performer_id,)
                )
            else:
                cursor = conn.execute("DELETE FROM performer_memories")
            removed = cursor.rowcount
        self._events.emit(ChangeEvent.PERFORMER_MEMORIES_UPDATED)
        return removed

    # =========================================================================
    # Row mapping
    # =========================================================================

    @staticmethod
    def _timestamp(value: str | None) -> datetime:
        return from_iso(value) or utcnow()

    def _row_to_memory(self, row) -> Memory:
        return Memory(
            id=row["id"],
            timestamp=self._timestamp(row["timestamp"]),
            summary=row["summary"],
            tags=load_json(row["tags"], []),
            conversation_snippet=row["conversation_snippet"] or "",
            relevance=row["relevance"],
            knowledge_refs=load_json(row["knowledge_refs"], []),
            meta_tags=load_json(row["meta_tags"], []),
        )

    def _row_to_performer_memory(self, row) -> PerformerMemory:
        return PerformerMemory(
            id=row["id"],
            performer_id=row["performer_id"],
            timestamp=self._timestamp(row["timestamp"]),
            summary=row["summary"],
            tags=load_json(row["tags"], []),
            transcript_snippet=row["transcript_snippet"] or "",
            relevance=row["relevance"],
            conversation_id=row["conversation_id"],
            meta_tags=load_json(row["meta_tags"], []),
        )


__all__ = ["MemoryStore"]
