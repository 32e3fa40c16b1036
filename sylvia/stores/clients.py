"""
Client Profile store

Client dossiers keyed by id. Profile text lives in a fixed set of fields; the
wire names the extraction model uses (camelCase) map onto the snake_case
names stored here.

Extraction only ever appends to a client field: new content goes after the
existing text separated by a blank line, and content already stored as one of
the field's paragraphs is skipped, so re-applying the same insight leaves the
profile as is.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sylvia.errors import ApplicationError, ValidationError
from sylvia.storage import SQLiteStore, dump_json, from_iso, load_json, to_iso, utcnow

logger = logging.getLogger(__name__)

# Wire name -> stored field name
CLIENT_FIELDS: dict[str, str] = {
    "company": "company",
    "industry": "industry",
    "role": "role",
    "painPoints": "pain_points",
    "goals": "goals",
    "budget": "budget",
    "decisionProcess": "decision_process",
    "personality": "personality",
    "communicationStyle": "communication_style",
    "objections": "objections",
    "opportunities": "opportunities",
    "history": "history",
    "notes": "notes",
}

FIELD_SEPARATOR = "\n\n"


def resolve_client_field(name: str) -> str | None:
    """Map a wire or stored field name to the stored name; None if unknown."""
    if name in CLIENT_FIELDS:
        return CLIENT_FIELDS[name]
    if name in CLIENT_FIELDS.values():
        return name
    return None


def append_content(existing: str | None, content: str) -> str:
    """Append each paragraph of content after a blank line unless the field already holds it."""
    current = (existing or "").strip()
    paragraphs = [p.strip() for p in current.split(FIELD_SEPARATOR) if p.strip()]
    for paragraph in content.split(FIELD_SEPARATOR):
        paragraph = paragraph.strip()
        if paragraph and paragraph not in paragraphs:
            paragraphs.append(paragraph)
    return FIELD_SEPARATOR.join(paragraphs)


@dataclass
class ClientProfile:
    name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    fields: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def get(self, field_name: str) -> str:
        stored = resolve_client_field(field_name) or field_name
        return self.fields.get(stored, "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "fields": self.fields,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    def to_prompt(self) -> str:
        """Compact form for the extraction prompt: name, plus company when known."""
        company = self.fields.get("company")
        return f"{self.name} ({company})" if company else self.name


class ClientStore(SQLiteStore):
    """SQLite-backed client profiles."""

    SCHEMA = (
        """CREATE TABLE IF NOT EXISTS clients (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            fields TEXT DEFAULT '{}',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )""",
        "CREATE INDEX IF NOT EXISTS idx_clients_name ON clients(name COLLATE NOCASE)",
    )

    def create(self, name: str, fields: dict[str, str] | None = None) -> ClientProfile:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Client name must be a non-empty string")
        profile = ClientProfile(name=name.strip(), fields=self._clean_fields(fields or {}))
        with self.connection() as conn:
            conn.execute(
                "INSERT INTO clients (id, name, fields, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (
                    profile.id,
                    profile.name,
                    dump_json(profile.fields),
                    to_iso(profile.created_at),
                    to_iso(profile.updated_at),
                ),
            )
        logger.info(f"Created client {profile.name} ({profile.id})")
        return profile

    def get(self, client_id: str) -> ClientProfile | None:
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
        return self._row_to_profile(row) if row else None

    def list_clients(self) -> list[ClientProfile]:
        with self.connection() as conn:
            rows = conn.execute("SELECT * FROM clients ORDER BY created_at, id").fetchall()
        return [self._row_to_profile(row) for row in rows]

    def find_by_name(self, name: str) -> ClientProfile | None:
        """Exact case-insensitive match first, then first profile whose name contains `name`."""
        query = (name or "").strip().casefold()
        if not query:
            return None
        clients = self.list_clients()
        for client in clients:
            if client.name.casefold() == query:
                return client
        for client in clients:
            if query in client.name.casefold():
                return client
        return None

    def append_fields(self, client_id: str, updates: dict[str, str]) -> ClientProfile:
        """
        Append content to named fields of an existing client.

        Raises:
            ApplicationError: client does not exist
            ValidationError: unknown field name
        """
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
            if row is None:
                raise ApplicationError(f"Client {client_id} does not exist")
            profile = self._row_to_profile(row)

            changed = False
            for name, content in updates.items():
                stored = resolve_client_field(name)
                if stored is None:
                    raise ValidationError(f"Unknown client field: {name}")
                merged = append_content(profile.fields.get(stored), str(content))
                if merged != profile.fields.get(stored, ""):
                    profile.fields[stored] = merged
                    changed = True

            if changed:
                profile.updated_at = utcnow()
                conn.execute(
                    "UPDATE clients SET fields = ?, updated_at = ? WHERE id = ?",
                    (dump_json(profile.fields), to_iso(profile.updated_at), client_id),
                )
        return profile

    def delete(self, client_id: str) -> bool:
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM clients WHERE id = ?", (client_id,))
            return cursor.rowcount > 0

    @staticmethod
    def _clean_fields(fields: dict[str, str]) -> dict[str, str]:
        cleaned = {}
        for name, value in fields.items():
            stored = resolve_client_field(name)
            if stored is None:
                raise ValidationError(f"Unknown client field: {name}")
            if isinstance(value, str) and value.strip():
                cleaned[stored] = value.strip()
        return cleaned

    @staticmethod
    def _row_to_profile(row) -> ClientProfile:
        return ClientProfile(
            id=row["id"],
            name=row["name"],
            fields=load_json(row["fields"], {}),
            created_at=from_iso(row["created_at"]) or utcnow(),
            updated_at=from_iso(row["updated_at"]) or utcnow(),
        )


__all__ = [
    "CLIENT_FIELDS",
    "ClientProfile",
    "ClientStore",
    "append_content",
    "resolve_client_field",
]
