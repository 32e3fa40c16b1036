"""
Journal / Calendar store

Dated entries keyed by (date, source, content fingerprint). A source is the
memory that produced the entry. Distinct entries for the same day are all
kept, while writing the same entry for the same memory again is a no-op. The
calendar view of a day is every entry for that date joined by blank lines,
oldest first.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sylvia.errors import ValidationError
from sylvia.storage import SQLiteStore, from_iso, to_iso, utcnow

DATE_FORMAT = "%Y-%m-%d"


def validate_date(value: str) -> str:
    """Return the date if it is a real YYYY-MM-DD day, else raise ValidationError."""
    if not isinstance(value, str):
        raise ValidationError(f"Journal date must be a string, got {type(value).__name__}")
    try:
        parsed = datetime.strptime(value.strip(), DATE_FORMAT)
    except ValueError as e:
        raise ValidationError(f"Journal date must be YYYY-MM-DD, got {value!r}") from e
    return parsed.strftime(DATE_FORMAT)


def entry_key(content: str) -> str:
    """Fingerprint of an entry's text, case and surrounding whitespace ignored."""
    return hashlib.sha1(content.strip().casefold().encode("utf-8")).hexdigest()[:12]


@dataclass
class JournalEntry:
    date: str
    content: str
    source_id: str = ""
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "content": self.content,
            "source_id": self.source_id,
            "created_at": to_iso(self.created_at),
        }


class JournalStore(SQLiteStore):
    SCHEMA = (
        """CREATE TABLE IF NOT EXISTS journal_entries (
            date TEXT NOT NULL,
            source_id TEXT NOT NULL DEFAULT '',
            entry_key TEXT NOT NULL,
            content TEXT NOT NULL,
            created_at TEXT NOT NULL,
            PRIMARY KEY (date, source_id, entry_key)
        )""",
    )

    def upsert_entry(self, date: str, content: str, source_id: str | int = "") -> JournalEntry:
        """Append an entry at `date`; the same text from the same source is stored once."""
        day = validate_date(date)
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Journal content must be a non-empty string")
        entry = JournalEntry(date=day, content=content.strip(), source_id=str(source_id))
        with self.connection() as conn:
            conn.execute(
                """INSERT INTO journal_entries (date, source_id, entry_key, content, created_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(date, source_id, entry_key) DO NOTHING""",
                (entry.date, entry.source_id, entry_key(entry.content), entry.content, to_iso(entry.created_at)),
            )
        return entry

    def list_entries(self, date: str | None = None) -> list[JournalEntry]:
        query = "SELECT * FROM journal_entries"
        params: tuple = ()
        if date is not None:
            query += " WHERE date = ?"
            params = (validate_date(date),)
        query += " ORDER BY date, created_at, rowid"
        with self.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            JournalEntry(
                date=row["date"],
                content=row["content"],
                source_id=row["source_id"],
                created_at=from_iso(row["created_at"]) or utcnow(),
            )
            for row in rows
        ]

    def get_day(self, date: str) -> str | None:
        """All content for a day, or None when nothing is recorded."""
        entries = self.list_entries(date)
        if not entries:
            return None
        return "\n\n".join(entry.content for entry in entries)

    def delete_day(self, date: str) -> int:
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM journal_entries WHERE date = ?", (validate_date(date),))
            return cursor.rowcount


__all__ = ["JournalEntry", "JournalStore", "entry_key", "validate_date"]
