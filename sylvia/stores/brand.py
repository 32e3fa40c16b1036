"""
Brand Intelligence store (singleton record).

Patches only ever set the named fields; fields not mentioned keep their value
and blank content never clears a field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sylvia.errors import ValidationError
from sylvia.storage import SQLiteStore, dump_json, from_iso, load_json, to_iso, utcnow

# Wire name -> stored field name
BRAND_FIELDS: dict[str, str] = {
    "mission": "mission",
    "vision": "vision",
    "values": "values",
    "targetAudience": "target_audience",
    "uniqueValue": "unique_value",
    "goals": "goals",
    "tone": "tone",
    "keyMessages": "key_messages",
    "competitiveEdge": "competitive_edge",
    "constraints": "constraints",
}

_SINGLETON_ID = 1


def resolve_brand_field(name: str) -> str | None:
    if name in BRAND_FIELDS:
        return BRAND_FIELDS[name]
    if name in BRAND_FIELDS.values():
        return name
    return None


@dataclass
class BrandRecord:
    fields: dict[str, str] = field(default_factory=dict)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {"fields": self.fields, "updated_at": to_iso(self.updated_at)}


class BrandStore(SQLiteStore):
    SCHEMA = (
        """CREATE TABLE IF NOT EXISTS brand (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            fields TEXT DEFAULT '{}',
            updated_at TEXT NOT NULL
        )""",
    )

    def get(self) -> BrandRecord | None:
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM brand WHERE id = ?", (_SINGLETON_ID,)).fetchone()
        if row is None:
            return None
        return BrandRecord(
            fields=load_json(row["fields"], {}),
            updated_at=from_iso(row["updated_at"]) or utcnow(),
        )

    def patch(self, updates: dict[str, str]) -> BrandRecord:
        """
        Set the named brand fields, creating the record on first write.

        Raises:
            ValidationError: unknown field name
        """
        record = self.get() or BrandRecord()
        for name, content in updates.items():
            stored = resolve_brand_field(name)
            if stored is None:
                raise ValidationError(f"Unknown brand field: {name}")
            if isinstance(content, str) and content.strip():
                record.fields[stored] = content.strip()
        record.updated_at = utcnow()

        with self.connection() as conn:
            conn.execute(
                """INSERT INTO brand (id, fields, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET fields = excluded.fields, updated_at = excluded.updated_at""",
                (_SINGLETON_ID, dump_json(record.fields), to_iso(record.updated_at)),
            )
        return record

    def clear(self) -> None:
        with self.connection() as conn:
            conn.execute("DELETE FROM brand")


__all__ = ["BRAND_FIELDS", "BrandRecord", "BrandStore", "resolve_brand_field"]
