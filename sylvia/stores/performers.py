"""
Performer Profile store

Only the biographical text of a performer (description, role description) is
managed here; chat settings for performers belong to the chat layer.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sylvia.errors import ApplicationError, ValidationError
from sylvia.storage import SQLiteStore, from_iso, to_iso, utcnow

PERFORMER_FIELDS: dict[str, str] = {
    "description": "description",
    "roleDescription": "role_description",
}


def resolve_performer_field(name: str) -> str | None:
    if name in PERFORMER_FIELDS:
        return PERFORMER_FIELDS[name]
    if name in PERFORMER_FIELDS.values():
        return name
    return None


@dataclass
class PerformerProfile:
    name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    description: str = ""
    role_description: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "role_description": self.role_description,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


class PerformerStore(SQLiteStore):
    SCHEMA = (
        """CREATE TABLE IF NOT EXISTS performers (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT DEFAULT '',
            role_description TEXT DEFAULT '',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )""",
    )

    def create(
        self,
        name: str,
        description: str = "",
        role_description: str = "",
        performer_id: str | None = None,
    ) -> PerformerProfile:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Performer name must be a non-empty string")
        profile = PerformerProfile(
            name=name.strip(),
            description=description,
            role_description=role_description,
        )
        if performer_id:
            profile.id = performer_id
        with self.connection() as conn:
            conn.execute(
                """INSERT INTO performers (id, name, description, role_description, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    profile.id,
                    profile.name,
                    profile.description,
                    profile.role_description,
                    to_iso(profile.created_at),
                    to_iso(profile.updated_at),
                ),
            )
        return profile

    def get(self, performer_id: str) -> PerformerProfile | None:
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM performers WHERE id = ?", (performer_id,)).fetchone()
        return self._row_to_profile(row) if row else None

    def list_performers(self) -> list[PerformerProfile]:
        with self.connection() as conn:
            rows = conn.execute("SELECT * FROM performers ORDER BY created_at, id").fetchall()
        return [self._row_to_profile(row) for row in rows]

    def find_by_name(self, name: str) -> PerformerProfile | None:
        """Exact case-insensitive match first, then containment."""
        query = (name or "").strip().casefold()
        if not query:
            return None
        performers = self.list_performers()
        for performer in performers:
            if performer.name.casefold() == query:
                return performer
        for performer in performers:
            if query in performer.name.casefold():
                return performer
        return None

    def patch(self, performer_id: str, updates: dict[str, str]) -> PerformerProfile:
        """
        Overwrite description and/or role description.

        Raises:
            ApplicationError: performer does not exist
            ValidationError: field other than description/roleDescription
        """
        profile = self.get(performer_id)
        if profile is None:
            raise ApplicationError(f"Performer {performer_id} does not exist")

        for name, content in updates.items():
            stored = resolve_performer_field(name)
            if stored is None:
                raise ValidationError(f"Unknown performer field: {name}")
            if isinstance(content, str) and content.strip():
                setattr(profile, stored, content.strip())
        profile.updated_at = utcnow()

        with self.connection() as conn:
            conn.execute(
                "UPDATE performers SET description = ?, role_description = ?, updated_at = ? WHERE id = ?",
                (profile.description, profile.role_description, to_iso(profile.updated_at), performer_id),
            )
        return profile

    def delete(self, performer_id: str) -> bool:
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM performers WHERE id = ?", (performer_id,))
            return cursor.rowcount > 0

    @staticmethod
    def _row_to_profile(row) -> PerformerProfile:
        return PerformerProfile(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            role_description=row["role_description"] or "",
            created_at=from_iso(row["created_at"]) or utcnow(),
            updated_at=from_iso(row["updated_at"]) or utcnow(),
        )


__all__ = ["PERFORMER_FIELDS", "PerformerProfile", "PerformerStore", "resolve_performer_field"]
