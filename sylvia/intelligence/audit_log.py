"""
Intelligence audit log

A bounded history of intelligence-producing activity (the 200 most recent
records). Each record is classified into a category, inferred from its
source when the caller does not give one:

    brand_update     -> brand
    client_update    -> client
    dm_response      -> mission
    post_processing  -> operations
    anything else    -> social

Records without a summary get the category's default one.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from sylvia.events import ChangeEvent, EventBus
from sylvia.storage import SQLiteStore, dump_json, from_iso, load_json, to_iso, utcnow

logger = logging.getLogger(__name__)

MAX_ENTRIES = 200


class IntelligenceSource(StrEnum):
    CHAT_GENERATE = "chat_generate"
    PERFORMER_RESPONSE = "performer_response"
    POST_PROCESSING = "post_processing"
    BRAND_UPDATE = "brand_update"
    CLIENT_UPDATE = "client_update"
    DM_RESPONSE = "dm_response"


class IntelligenceCategory(StrEnum):
    MISSION = "mission"
    SOCIAL = "social"
    BRAND = "brand"
    CLIENT = "client"
    OPERATIONS = "operations"


_SOURCE_CATEGORIES = {
    IntelligenceSource.BRAND_UPDATE: IntelligenceCategory.BRAND,
    IntelligenceSource.CLIENT_UPDATE: IntelligenceCategory.CLIENT,
    IntelligenceSource.DM_RESPONSE: IntelligenceCategory.MISSION,
    IntelligenceSource.POST_PROCESSING: IntelligenceCategory.OPERATIONS,
}

DEFAULT_SUMMARIES = {
    IntelligenceCategory.MISSION: "Mission progress recorded",
    IntelligenceCategory.SOCIAL: "New conversational intelligence captured",
    IntelligenceCategory.BRAND: "Brand intelligence updated",
    IntelligenceCategory.CLIENT: "Client dossier updated",
    IntelligenceCategory.OPERATIONS: "Operational signal logged",
}


def infer_category(source: str, category: str | None = None) -> IntelligenceCategory:
    if category:
        return IntelligenceCategory(category)
    return _SOURCE_CATEGORIES.get(source, IntelligenceCategory.SOCIAL)


@dataclass
class IntelligenceRecord:
    source: str
    category: IntelligenceCategory
    summary: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=utcnow)
    request_payload: dict[str, Any] = field(default_factory=dict)
    response_payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "category": str(self.category),
            "summary": self.summary,
            "timestamp": to_iso(self.timestamp),
            "request_payload": self.request_payload,
            "response_payload": self.response_payload,
        }


class IntelligenceLog(SQLiteStore):
    SCHEMA = (
        """CREATE TABLE IF NOT EXISTS intelligence_log (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            id TEXT UNIQUE NOT NULL,
            source TEXT NOT NULL,
            category TEXT NOT NULL,
            summary TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            request_payload TEXT DEFAULT '{}',
            response_payload TEXT DEFAULT '{}'
        )""",
    )

    def __init__(self, db_path, events: EventBus | None = None, max_entries: int = MAX_ENTRIES):
        super().__init__(db_path)
        self._events = events or EventBus()
        self.max_entries = max_entries

    def log(
        self,
        source: str,
        summary: str | None = None,
        category: str | None = None,
        request_payload: dict[str, Any] | None = None,
        response_payload: dict[str, Any] | None = None,
    ) -> IntelligenceRecord:
        """Classify, store and announce a record; older records beyond the cap are dropped."""
        resolved = infer_category(source, category)
        record = IntelligenceRecord(
            source=str(source),
            category=resolved,
            summary=summary or DEFAULT_SUMMARIES[resolved],
            request_payload=request_payload or {},
            response_payload=response_payload or {},
        )
        with self.connection() as conn:
            conn.execute(
                """INSERT INTO intelligence_log
                   (id, source, category, summary, timestamp, request_payload, response_payload)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.id,
                    record.source,
                    str(record.category),
                    record.summary,
                    to_iso(record.timestamp),
                    dump_json(record.request_payload),
                    dump_json(record.response_payload),
                ),
            )
            conn.execute(
                """DELETE FROM intelligence_log WHERE seq NOT IN
                   (SELECT seq FROM intelligence_log ORDER BY seq DESC LIMIT ?)""",
                (self.max_entries,),
            )
        self._events.emit(ChangeEvent.INTELLIGENCE_LOG_UPDATED)
        return record

    def list_records(self, limit: int | None = None, category: str | None = None) -> list[IntelligenceRecord]:
        """Stored records, newest first."""
        query = "SELECT * FROM intelligence_log"
        params: list[Any] = []
        if category:
            query += " WHERE category = ?"
            params.append(str(IntelligenceCategory(category)))
        query += " ORDER BY seq DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        with self.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            IntelligenceRecord(
                id=row["id"],
                source=row["source"],
                category=IntelligenceCategory(row["category"]),
                summary=row["summary"],
                timestamp=from_iso(row["timestamp"]) or utcnow(),
                request_payload=load_json(row["request_payload"], {}),
                response_payload=load_json(row["response_payload"], {}),
            )
            for row in rows
        ]

    def clear(self) -> None:
        with self.connection() as conn:
            conn.execute("DELETE FROM intelligence_log")
        self._events.emit(ChangeEvent.INTELLIGENCE_LOG_UPDATED)


__all__ = [
    "DEFAULT_SUMMARIES",
    "MAX_ENTRIES",
    "IntelligenceCategory",
    "IntelligenceLog",
    "IntelligenceRecord",
    "IntelligenceSource",
    "infer_category",
]
