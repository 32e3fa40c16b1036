"""
SQLite plumbing shared by every store.

Each store owns its tables: subclasses list their CREATE statements in
`SCHEMA` and get them created on first connection. Connections are opened per
operation and closed afterwards, so a committed write is visible to the next
read from any store pointed at the same file.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def load_json(value: str | None, default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return default


class SQLiteStore:
    """Base class for stores backed by a single SQLite file."""

    SCHEMA: tuple[str, ...] = ()

    def __init__(self, db_path: Path | str):
        self._db_path = Path(db_path)
        self._initialized = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection, creating tables if needed."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        if not self._initialized:
            for statement in self.SCHEMA:
                conn.execute(statement)
            conn.commit()
            self._initialized = True
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Connection that commits on success and always closes."""
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


__all__ = [
    "SQLiteStore",
    "dump_json",
    "from_iso",
    "load_json",
    "to_iso",
    "utcnow",
]
