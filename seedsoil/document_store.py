"""
Key/value document persistence using SQLite.

Each key holds one JSON document (the whole item collection lives under
a single key). Writes replace the document wholesale; there is no
partial-update primitive.
"""

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


@dataclass
class DocumentRecord:
    """A stored JSON document."""
    key: str
    content: str
    updated_at: str

    def decode(self) -> Any:
        return json.loads(self.content)


class DocumentStore:
    """
    SQLite-backed key/value store for JSON documents.

    One connection; every ``put()`` is committed before it returns.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")

        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                key TEXT PRIMARY KEY,
                content TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._conn.commit()

    def _now(self) -> str:
        """Current timestamp in ISO format."""
        return datetime.now(timezone.utc).isoformat()

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def put(self, key: str, value: Any) -> DocumentRecord:
        """
        Serialize ``value`` as JSON and store it under ``key``.

        Replaces any existing document with the same key.
        """
        now = self._now()
        content = json.dumps(value, ensure_ascii=False)
        self._conn.execute("""
            INSERT OR REPLACE INTO documents (key, content, updated_at)
            VALUES (?, ?, ?)
        """, (key, content, now))
        self._conn.commit()
        return DocumentRecord(key=key, content=content, updated_at=now)

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Optional[DocumentRecord]:
        """Get a document by key, or None if absent."""
        cursor = self._conn.execute("""
            SELECT key, content, updated_at FROM documents WHERE key = ?
        """, (key,))
        row = cursor.fetchone()
        if row is None:
            return None
        return DocumentRecord(key=row["key"], content=row["content"], updated_at=row["updated_at"])

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        self.close()
