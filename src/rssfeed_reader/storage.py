"""Namespaced key-value stores holding the reader's persisted records."""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "rssfeed_reader"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS records (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (namespace, key)
);
"""


class KeyValueStore(ABC):
    """Load/save contract for JSON-serializable records."""

    @abstractmethod
    def save(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under key, replacing any previous one."""

    @abstractmethod
    def load(self, key: str) -> Any | None:
        """Return the value stored under key, or None when absent."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete the value stored under key, if any."""

    @abstractmethod
    def clear(self) -> None:
        """Delete every value in this store's namespace."""


class MemoryStore(KeyValueStore):
    """In-process store. Values still go through JSON so they behave like persisted ones."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        self.namespace = namespace
        self._data: dict[str, str] = {}

    def save(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def load(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return _decode(key, raw)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class SqliteStore(KeyValueStore):
    """SQLite-backed store; several namespaces can share one database file."""

    def __init__(self, db_path: str, namespace: str = DEFAULT_NAMESPACE):
        self.db_path = db_path
        self.namespace = namespace
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open database connection and initialize schema."""
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Store not connected. Call connect() first.")
        return self._conn

    def save(self, key: str, value: Any) -> None:
        self.conn.execute(
            """INSERT INTO records (namespace, key, value, updated_at)
               VALUES (?, ?, ?, datetime('now'))
               ON CONFLICT(namespace, key) DO UPDATE SET
                   value = excluded.value,
                   updated_at = excluded.updated_at""",
            (self.namespace, key, json.dumps(value)),
        )
        self.conn.commit()

    def load(self, key: str) -> Any | None:
        row = self.conn.execute(
            "SELECT value FROM records WHERE namespace = ? AND key = ?",
            (self.namespace, key),
        ).fetchone()
        if row is None:
            return None
        return _decode(key, row["value"])

    def remove(self, key: str) -> None:
        self.conn.execute(
            "DELETE FROM records WHERE namespace = ? AND key = ?",
            (self.namespace, key),
        )
        self.conn.commit()

    def clear(self) -> None:
        self.conn.execute(
            "DELETE FROM records WHERE namespace = ?", (self.namespace,)
        )
        self.conn.commit()

    def keys(self) -> list[str]:
        """Return the keys stored in this namespace."""
        rows = self.conn.execute(
            "SELECT key FROM records WHERE namespace = ? ORDER BY key",
            (self.namespace,),
        ).fetchall()
        return [r["key"] for r in rows]


def _decode(key: str, raw: str) -> Any | None:
    """Decode a stored JSON value; corrupt records read as absent."""
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.warning("Discarding unreadable record '%s': %s", key, e)
        return None
