"""
Context Selector: Memory injection for the next AI prompt

Picks the memories worth showing the model for the current conversation turn
and renders them as a primer block. Pure and synchronous: it works on memories
and tag scores the caller already loaded and never writes anything.

Selection:
    1. Keywords: utterance tokens of at least 4 characters (case-folded,
       de-duplicated, first 12) plus tags from memories attached to the last
       12 history turns (first 12, most recent turn first).
    2. Prioritized tags: keywords that are known tags, ranked by tag score,
       top 10; remaining slots filled with the globally highest-scoring tags.
    3. Score per memory:
           relevance * 2
           + 8 + 0.6 * tag_score   for each prioritized tag it carries
           + 2                     for each other tag that is a keyword
    4. Memories carrying a prioritized tag come first, then the rest, each
       tier by score descending; ties keep input order. Cut at `limit`.

Usage:
    selector = ContextSelector(config.context)
    selection = selector.select_context(utterance, history, memories, tag_index.get_tag_scores())
    system_prompt += "\\n\\n" + selection.primer
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import timezone
from typing import Union

from sylvia.config import ContextConfig
from sylvia.memory.models import HistoryTurn, Memory, PerformerMemory, TagScore, normalize_tags

PRIORITY_TAG_BONUS = 8.0
PRIORITY_TAG_SCORE_WEIGHT = 0.6
KEYWORD_TAG_BONUS = 2.0
RELEVANCE_WEIGHT = 2.0

# Markdown punctuation is noise for keyword matching
_MARKDOWN_NOISE = re.compile(r"[`*_#>\[\]]")
_TOKEN = re.compile(r"[^\W_]+")
_WHITESPACE = re.compile(r"\s+")

AnyMemory = Union[Memory, PerformerMemory]


@dataclass
class ScoredMemory:
    memory: AnyMemory
    score: float
    prioritized: bool


@dataclass
class ContextSelection:
    """Result of one selection pass."""

    memories: list[AnyMemory]
    prioritized_tags: list[str]
    keywords: list[str] = field(default_factory=list)
    scored: list[ScoredMemory] = field(default_factory=list)
    primer: str = ""


def extract_keywords(text: str | None, min_length: int = 4, limit: int = 12) -> list[str]:
    """Case-folded, de-duplicated tokens of at least `min_length` characters, first `limit`."""
    if not text:
        return []
    cleaned = _MARKDOWN_NOISE.sub(" ", text).casefold()
    keywords: dict[str, None] = {}
    for token in _TOKEN.findall(cleaned):
        if len(token) >= min_length:
            keywords.setdefault(token, None)
            if len(keywords) >= limit:
                break
    return list(keywords)


def extract_history_tags(history: list[HistoryTurn] | None, turns: int = 12, limit: int = 12) -> list[str]:
    """Tags of memory payloads attached to the last `turns` turns, most recent first."""
    if not history or turns <= 0 or limit <= 0:
        return []
    tags: dict[str, None] = {}
    for turn in reversed(history[-turns:]):
        if turn.memory is None:
            continue
        for tag in normalize_tags(turn.memory.tags):
            tags.setdefault(tag, None)
            if len(tags) >= limit:
                return list(tags)
    return list(tags)


def score_memory(
    memory: AnyMemory,
    keywords: set[str],
    prioritized: set[str],
    tag_weights: dict[str, float],
) -> float:
    """Context score for one memory."""
    score = (memory.relevance or 0) * RELEVANCE_WEIGHT
    for tag in normalize_tags(memory.tags):
        if tag in prioritized:
            score += PRIORITY_TAG_BONUS + PRIORITY_TAG_SCORE_WEIGHT * tag_weights.get(tag, 0.0)
        elif tag in keywords:
            score += KEYWORD_TAG_BONUS
    return score


def format_primer(memories: list[AnyMemory], tags_per_line: int = 4) -> str:
    """
    Render memories for the prompt, one line each:

        - 2025-03-14 • Client wants Q3 pricing review (#pricing #q3)
    """
    lines = []
    for memory in memories:
        stamp = memory.timestamp
        if stamp.tzinfo is not None:
            stamp = stamp.astimezone(timezone.utc)
        tags = " ".join(
            f"#{_WHITESPACE.sub('-', tag.strip())}"
            for tag in memory.tags[:tags_per_line]
            if tag and tag.strip()
        )
        line = f"- {stamp.date().isoformat()} • {memory.summary}"
        if tags:
            line += f" ({tags})"
        lines.append(line)
    return "\n".join(lines)


class ContextSelector:
    """Keyword/tag driven memory selection, configured by ContextConfig."""

    def __init__(self, config: ContextConfig | None = None):
        self._config = config or ContextConfig()

    @property
    def config(self) -> ContextConfig:
        return self._config

    def build_keyword_set(self, utterance: str, history: list[HistoryTurn] | None) -> list[str]:
        cfg = self._config
        keywords: dict[str, None] = {}
        for keyword in extract_keywords(utterance, cfg.min_keyword_length, cfg.max_keywords):
            keywords.setdefault(keyword, None)
        for tag in extract_history_tags(history, cfg.history_turns, cfg.max_history_tags):
            keywords.setdefault(tag, None)
        return list(keywords)

    def prioritize_tags(self, keywords: list[str], tag_scores: list[TagScore]) -> list[str]:
        """Known keyword tags by score, topped up with the globally strongest tags."""
        limit = self._config.prioritized_tag_limit
        if limit <= 0 or not tag_scores:
            return []

        weights = {entry.tag: entry.score for entry in tag_scores}
        matches = [keyword for keyword in keywords if keyword in weights]
        # sorted() is stable: equal scores keep keyword order
        prioritized = sorted(matches, key=lambda tag: weights[tag], reverse=True)[:limit]

        if len(prioritized) < limit:
            chosen = set(prioritized)
            for entry in sorted(tag_scores, key=lambda e: e.score, reverse=True):
                if entry.tag in chosen:
                    continue
                prioritized.append(entry.tag)
                chosen.add(entry.tag)
                if len(prioritized) >= limit:
                    break

        return prioritized

    def select_context(
        self,
        utterance: str,
        recent_history: list[HistoryTurn] | None,
        all_memories: list[AnyMemory],
        tag_scores: list[TagScore],
        limit: int | None = None,
    ) -> ContextSelection:
        """
        Choose and order memories for the current turn.

        Args:
            utterance: The user's current message
            recent_history: Conversation so far, oldest first
            all_memories: Candidate memories in their natural (most recent first) order
            tag_scores: Current Tag Score Index contents
            limit: Max memories returned (default: config.limit)

        Returns:
            ContextSelection with ordered memories, prioritized tags and primer text
        """
        cap = self._config.limit if limit is None else limit
        keywords = self.build_keyword_set(utterance, recent_history)
        prioritized = self.prioritize_tags(keywords, tag_scores)

        if not all_memories or cap <= 0:
            return ContextSelection(memories=[], prioritized_tags=prioritized, keywords=keywords)

        keyword_set = set(keywords)
        prioritized_set = set(prioritized)
        weights = {entry.tag: entry.score for entry in tag_scores}

        scored = [
            ScoredMemory(
                memory=memory,
                score=score_memory(memory, keyword_set, prioritized_set, weights),
                prioritized=any(tag in prioritized_set for tag in normalize_tags(memory.tags)),
            )
            for memory in all_memories
        ]

        ordered = sorted(scored, key=lambda item: (not item.prioritized, -item.score))
        chosen = ordered[:cap]
        memories = [item.memory for item in chosen]

        return ContextSelection(
            memories=memories,
            prioritized_tags=prioritized,
            keywords=keywords,
            scored=chosen,
            primer=format_primer(memories, self._config.primer_tags_per_line),
        )

    def select_performer_context(
        self,
        performer_id: str,
        utterance: str,
        recent_history: list[HistoryTurn] | None,
        performer_memories: list[PerformerMemory],
        tag_scores: list[TagScore],
        limit: int | None = None,
    ) -> ContextSelection:
        """Same selection, restricted to one performer's own memories."""
        own = [memory for memory in performer_memories if memory.performer_id == performer_id]
        return self.select_context(utterance, recent_history, own, tag_scores, limit)


__all__ = [
    "KEYWORD_TAG_BONUS",
    "PRIORITY_TAG_BONUS",
    "PRIORITY_TAG_SCORE_WEIGHT",
    "RELEVANCE_WEIGHT",
    "ContextSelection",
    "ContextSelector",
    "ScoredMemory",
    "extract_history_tags",
    "extract_keywords",
    "format_primer",
    "score_memory",
]
