"""
Knowledge Graph

Named entities with typed, additive edges:

    {"name": "Acme", "relationships": {"mentions": ["Globex"], "competes_with": ["Initech"]}}

Writes never remove an edge. `upsert_entity` unions incoming relationship
targets and source tags into whatever is stored, keeps `created_at` and bumps
`updated_at`. Source tags seen on an entity for the first time are recorded
in the Tag Score Index as knowledge usage; repeating a write records nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sylvia.errors import ValidationError
from sylvia.memory.models import normalize_tags
from sylvia.memory.tag_index import TagScoreIndex
from sylvia.storage import SQLiteStore, dump_json, from_iso, load_json, to_iso, utcnow

logger = logging.getLogger(__name__)

DEFAULT_RELATIONSHIP = "related_to"


@dataclass
class KnowledgeEntity:
    name: str
    relationships: dict[str, list[str]] = field(default_factory=dict)
    source_tags: list[str] = field(default_factory=list)
    last_seen_conversation_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def edges(self) -> set[tuple[str, str, str]]:
        return {
            (self.name, rel_type, target)
            for rel_type, targets in self.relationships.items()
            for target in targets
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "relationships": self.relationships,
            "source_tags": self.source_tags,
            "last_seen_conversation_id": self.last_seen_conversation_id,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


def _union(existing: list[str], incoming: list[str]) -> list[str]:
    merged = list(existing)
    for item in incoming:
        if isinstance(item, str) and item.strip() and item.strip() not in merged:
            merged.append(item.strip())
    return merged


class KnowledgeGraph(SQLiteStore):
    SCHEMA = (
        """CREATE TABLE IF NOT EXISTS knowledge_entities (
            name TEXT PRIMARY KEY,
            relationships TEXT DEFAULT '{}',
            source_tags TEXT DEFAULT '[]',
            last_seen_conversation_id TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )""",
        "CREATE INDEX IF NOT EXISTS idx_knowledge_updated ON knowledge_entities(updated_at)",
    )

    def __init__(self, db_path, tag_index: TagScoreIndex | None = None):
        super().__init__(db_path)
        self._tag_index = tag_index

    def upsert_entity(self, entity: KnowledgeEntity) -> KnowledgeEntity:
        """Union an entity into the graph and return the stored result."""
        name = entity.name.strip() if isinstance(entity.name, str) else ""
        if not name:
            raise ValidationError("Knowledge entity requires a name")

        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM knowledge_entities WHERE name = ?", (name,)
            ).fetchone()
            current = self._row_to_entity(row) if row else KnowledgeEntity(name=name)

            for rel_type, targets in (entity.relationships or {}).items():
                key = (rel_type or "").strip() or DEFAULT_RELATIONSHIP
                current.relationships[key] = _union(current.relationships.get(key, []), targets or [])

            incoming_tags = normalize_tags(entity.source_tags)
            new_tags = [tag for tag in incoming_tags if tag not in current.source_tags]
            current.source_tags = current.source_tags + new_tags
            if entity.last_seen_conversation_id:
                current.last_seen_conversation_id = entity.last_seen_conversation_id
            current.updated_at = utcnow()

            conn.execute(
                """INSERT INTO knowledge_entities
                   (name, relationships, source_tags, last_seen_conversation_id, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(name) DO UPDATE SET
                       relationships = excluded.relationships,
                       source_tags = excluded.source_tags,
                       last_seen_conversation_id = excluded.last_seen_conversation_id,
                       updated_at = excluded.updated_at""",
                (
                    current.name,
                    dump_json(current.relationships),
                    dump_json(current.source_tags),
                    current.last_seen_conversation_id,
                    to_iso(current.created_at),
                    to_iso(current.updated_at),
                ),
            )

        if new_tags and self._tag_index is not None:
            self._tag_index.record_tag_usage(new_tags, "knowledge")
        return current

    def add_connection(
        self,
        entity: str,
        related_to: list[str],
        relationship_type: str = DEFAULT_RELATIONSHIP,
        source_tags: list[str] | None = None,
        conversation_id: str | None = None,
    ) -> KnowledgeEntity:
        return self.upsert_entity(
            KnowledgeEntity(
                name=entity,
                relationships={relationship_type: list(related_to)},
                source_tags=list(source_tags or []),
                last_seen_conversation_id=conversation_id,
            )
        )

    def get_entity(self, name: str) -> KnowledgeEntity | None:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM knowledge_entities WHERE name = ?", (name,)
            ).fetchone()
        return self._row_to_entity(row) if row else None

    def list_entities(self) -> list[KnowledgeEntity]:
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM knowledge_entities ORDER BY updated_at DESC, name"
            ).fetchall()
        return [self._row_to_entity(row) for row in rows]

    def delete_entity(self, name: str) -> bool:
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM knowledge_entities WHERE name = ?", (name,))
            return cursor.rowcount > 0

    def clear(self) -> None:
        with self.connection() as conn:
            conn.execute("DELETE FROM knowledge_entities")

    @staticmethod
    def _row_to_entity(row) -> KnowledgeEntity:
        return KnowledgeEntity(
            name=row["name"],
            relationships=load_json(row["relationships"], {}),
            source_tags=load_json(row["source_tags"], []),
            last_seen_conversation_id=row["last_seen_conversation_id"],
            created_at=from_iso(row["created_at"]) or utcnow(),
            updated_at=from_iso(row["updated_at"]) or utcnow(),
        )


__all__ = ["DEFAULT_RELATIONSHIP", "KnowledgeEntity", "KnowledgeGraph"]
