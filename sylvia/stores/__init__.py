"""
Destination stores written by the Application Router.

    - clients.py: Client Profiles (append-only field merges)
    - brand.py: Brand Intelligence singleton
    - performers.py: Performer Profiles
    - journal.py: Journal / Calendar entries keyed by (date, source)
    - knowledge.py: Knowledge Graph with additive edges
    - interactions.py: Interaction Event log and pair summaries
"""

from .brand import BRAND_FIELDS, BrandRecord, BrandStore
from .clients import CLIENT_FIELDS, ClientProfile, ClientStore
from .interactions import InteractionEvent, InteractionLog, InteractionSummary
from .journal import JournalEntry, JournalStore
from .knowledge import KnowledgeEntity, KnowledgeGraph
from .performers import PERFORMER_FIELDS, PerformerProfile, PerformerStore


__all__ = [
    "BRAND_FIELDS",
    "CLIENT_FIELDS",
    "PERFORMER_FIELDS",
    "BrandRecord",
    "BrandStore",
    "ClientProfile",
    "ClientStore",
    "InteractionEvent",
    "InteractionLog",
    "InteractionSummary",
    "JournalEntry",
    "JournalStore",
    "KnowledgeEntity",
    "KnowledgeGraph",
    "PerformerProfile",
    "PerformerStore",
]
