"""
Tag Score Index

Per-tag usage counters across memories and knowledge entities, with a derived
priority score used by the Context Selector to rank tags.

Weighting:
    memory write     memory_count    += max(1, round(relevance))
    knowledge write  knowledge_count += 1
    score = round(memory_count * 0.6 + knowledge_count * 1.2, 2)

Counts only ever grow and both weights are positive, so a tag's score never
drops when its usage increases. Callers record usage exactly once per memory
or knowledge write; the index does not de-duplicate repeated calls.
"""

from __future__ import annotations

import logging
from typing import Literal

from sylvia.memory.models import TagScore, normalize_tags
from sylvia.storage import SQLiteStore, from_iso, to_iso, utcnow

logger = logging.getLogger(__name__)

MEMORY_WEIGHT = 0.6
KNOWLEDGE_WEIGHT = 1.2

UsageKind = Literal["memory", "knowledge"]


def compute_score(memory_count: int, knowledge_count: int) -> float:
    """Priority score for a tag's usage counters."""
    return round(memory_count * MEMORY_WEIGHT + knowledge_count * KNOWLEDGE_WEIGHT, 2)


class TagScoreIndex(SQLiteStore):
    """Tag usage index persisted in the `tag_scores` table."""

    SCHEMA = (
        """CREATE TABLE IF NOT EXISTS tag_scores (
            tag TEXT PRIMARY KEY,
            memory_count INTEGER NOT NULL DEFAULT 0,
            knowledge_count INTEGER NOT NULL DEFAULT 0,
            last_updated TEXT NOT NULL,
            score REAL NOT NULL DEFAULT 0
        )""",
        "CREATE INDEX IF NOT EXISTS idx_tag_scores_score ON tag_scores(score DESC)",
    )

    def record_tag_usage(
        self,
        tags: list[str] | None,
        kind: UsageKind = "memory",
        relevance: float | None = None,
    ) -> list[TagScore]:
        """
        Increment usage for each distinct tag and recompute its score.

        Args:
            tags: Tags from the memory or knowledge entity just written
            kind: "memory" or "knowledge"
            relevance: Memory relevance, weights memory usage (ignored for knowledge)

        Returns:
            The updated TagScore records
        """
        if kind not in ("memory", "knowledge"):
            raise ValueError(f"Unknown usage kind: {kind}")

        unique = normalize_tags(tags or [])
        if not unique:
            return []

        delta = max(1, round(relevance if relevance is not None else 1))
        now = utcnow()
        updated: list[TagScore] = []

        with self.connection() as conn:
            for tag in unique:
                row = conn.execute(
                    "SELECT memory_count, knowledge_count FROM tag_scores WHERE tag = ?",
                    (tag,),
                ).fetchone()
                memory_count = row["memory_count"] if row else 0
                knowledge_count = row["knowledge_count"] if row else 0

                if kind == "memory":
                    memory_count += delta
                else:
                    knowledge_count += 1

                entry = TagScore(
                    tag=tag,
                    memory_count=memory_count,
                    knowledge_count=knowledge_count,
                    last_updated=now,
                    score=compute_score(memory_count, knowledge_count),
                )
                conn.execute(
                    """INSERT INTO tag_scores (tag, memory_count, knowledge_count, last_updated, score)
                       VALUES (?, ?, ?, ?, ?)
                       ON CONFLICT(tag) DO UPDATE SET
                           memory_count = excluded.memory_count,
                           knowledge_count = excluded.knowledge_count,
                           last_updated = excluded.last_updated,
                           score = excluded.score""",
                    (tag, memory_count, knowledge_count, to_iso(now), entry.score),
                )
                updated.append(entry)

        logger.debug(f"Recorded {kind} usage for {len(updated)} tags")
        return updated

    def get_tag_scores(self) -> list[TagScore]:
        """All tag scores, highest score first (ties broken alphabetically)."""
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tag_scores ORDER BY score DESC, tag ASC"
            ).fetchall()
        return [self._row_to_score(row) for row in rows]

    def get(self, tag: str) -> TagScore | None:
        normalized = normalize_tags([tag])
        if not normalized:
            return None
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM tag_scores WHERE tag = ?", (normalized[0],)
            ).fetchone()
        return self._row_to_score(row) if row else None

    def clear(self) -> None:
        with self.connection() as conn:
            conn.execute("DELETE FROM tag_scores")

    @staticmethod
    def _row_to_score(row) -> TagScore:
        return TagScore(
            tag=row["tag"],
            memory_count=row["memory_count"],
            knowledge_count=row["knowledge_count"],
            last_updated=from_iso(row["last_updated"]) or utcnow(),
            score=row["score"],
        )


__all__ = [
    "KNOWLEDGE_WEIGHT",
    "MEMORY_WEIGHT",
    "TagScoreIndex",
    "UsageKind",
    "compute_score",
]
