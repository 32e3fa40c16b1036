"""
Memory Context Engine

Components:
    - models.py: Memory, PerformerMemory, TagScore and tag normalization
    - tag_index.py: Tag Score Index (usage counters + priority score)
    - store.py: Memory Store (ingestion interface, SQLite)
    - context.py: Context Selector (keyword/tag scoring, primer rendering)
"""

from .context import ContextSelection, ContextSelector, extract_keywords, format_primer
from .models import (
    HistoryTurn,
    Memory,
    MemoryPayload,
    PerformerMemory,
    TagScore,
    normalize_tag,
    normalize_tags,
    temporal_meta_tags,
)
from .store import MemoryStore
from .tag_index import TagScoreIndex, compute_score


__all__ = [
    # Models
    "HistoryTurn",
    "Memory",
    "MemoryPayload",
    "PerformerMemory",
    "TagScore",
    "normalize_tag",
    "normalize_tags",
    "temporal_meta_tags",
    # Index + store
    "MemoryStore",
    "TagScoreIndex",
    "compute_score",
    # Selection
    "ContextSelection",
    "ContextSelector",
    "extract_keywords",
    "format_primer",
]
