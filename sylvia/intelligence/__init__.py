"""
Intelligence Extraction & Application Pipeline

    memory -> ExtractionEngine -> ProcessingResult -> ApplicationRouter -> stores + events

Components:
    - models.py: ProcessingResult and its parts
    - schema.py: JSON output schema sent to the model
    - providers/: AIProvider adapters (OpenAI, OpenRouter, Google, Anthropic)
    - extractor.py: prompt building, response parsing, name resolution
    - router.py: idempotent fan-out into destination stores
    - audit_log.py: bounded intelligence audit log
    - batch.py: concurrent extraction + apply bounded by credentials
"""

from .audit_log import IntelligenceCategory, IntelligenceLog, IntelligenceRecord, IntelligenceSource
from .batch import BatchOutcome, BatchProcessor, OutcomeStatus
from .extractor import ExtractionEngine, parse_processing_result
from .models import (
    CalendarEntry,
    ClientUpdate,
    ExtractionContext,
    KnowledgeConnection,
    PerformerUpdate,
    ProcessingResult,
)
from .router import ApplicationReport, ApplicationRouter


__all__ = [
    # Results
    "CalendarEntry",
    "ClientUpdate",
    "ExtractionContext",
    "KnowledgeConnection",
    "PerformerUpdate",
    "ProcessingResult",
    # Pipeline
    "ApplicationReport",
    "ApplicationRouter",
    "BatchOutcome",
    "BatchProcessor",
    "ExtractionEngine",
    "OutcomeStatus",
    "parse_processing_result",
    # Audit
    "IntelligenceCategory",
    "IntelligenceLog",
    "IntelligenceRecord",
    "IntelligenceSource",
]
