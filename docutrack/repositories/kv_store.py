"""SQLite-backed key-value store for JSON records.

Holds the three top-level records the application persists:
    users        list of registered users
    currentUser  the logged-in session user (or absent)
    documents    list of all documents

Design Decisions:
- One table, one row per key, value stored as JSON text
- Whole-record replacement on every write (last write wins)
- Unparsable JSON is treated as absent: the row is removed and a warning logged
- Writes are fire-and-forget: sqlite3 errors are logged, never raised
- Connection-per-operation for file databases; one persistent connection
  for ":memory:" (otherwise each connection would see an empty database)
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Persistence collaborator with get/set semantics."""

    def get(self, key: str) -> Optional[Any]:
        """Return the decoded JSON value for key, or None if absent/corrupt."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Replace the value stored under key."""
        ...

    def delete(self, key: str) -> None:
        """Remove key if present."""
        ...


class SqliteKeyValueStore:
    """KeyValueStore implementation on a single SQLite table.

    Schema:
        key: TEXT PRIMARY KEY
        value_json: TEXT NOT NULL
        updated_at: TEXT NOT NULL (ISO timestamp)
    """

    def __init__(self, db_path: str = ":memory:"):
        """Initialize the store.

        Args:
            db_path: SQLite file path, or ":memory:" for a process-local store.
                    Parent directories are created for file paths.
        """
        self.db_path = db_path

        self._memory_conn: Optional[sqlite3.Connection] = None
        if db_path == ":memory:":
            self._memory_conn = sqlite3.connect(":memory:")
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        return sqlite3.connect(self.db_path)

    def _release(self, conn: sqlite3.Connection) -> None:
        if conn is not self._memory_conn:
            conn.close()

    def _init_schema(self) -> None:
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_entries (
                    key TEXT PRIMARY KEY,
                    value_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()
        finally:
            self._release(conn)

    def get(self, key: str) -> Optional[Any]:
        """Read and decode the value stored under key.

        Returns:
            Decoded JSON value, or None if the key is missing or its stored
            text cannot be parsed (the corrupt row is removed).
        """
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT value_json FROM kv_entries WHERE key = ?", (key,)
            ).fetchone()
        finally:
            self._release(conn)

        if row is None:
            return None

        try:
            return json.loads(row[0])
        except (TypeError, ValueError) as exc:
            logger.warning("Discarding unparsable value for key=%s: %s", key, exc)
            self.delete(key)
            return None

    def set(self, key: str, value: Any) -> None:
        """Store value under key, replacing any previous value.

        Persistence failures are logged and swallowed; callers keep their
        in-memory state either way.
        """
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError):
            logger.exception("Value for key=%s is not JSON-serializable; not persisted", key)
            return

        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO kv_entries (key, value_json, updated_at)
                VALUES (?, ?, ?)
                """,
                (key, payload, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()
        except sqlite3.Error as exc:
            logger.error("Persisting key=%s failed: %s", key, exc)
        finally:
            self._release(conn)

    def delete(self, key: str) -> None:
        conn = self._get_connection()
        try:
            conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as exc:
            logger.error("Deleting key=%s failed: %s", key, exc)
        finally:
            self._release(conn)

    def close(self) -> None:
        if self._memory_conn is not None:
            self._memory_conn.close()
            self._memory_conn = None
