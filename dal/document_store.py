"""Async JSON document store on top of SQLite.

Documents live in named collections and are stored as JSON text. The store
assigns ids and, for any field whose value is `SERVER_TIMESTAMP`, its own
clock time, so ordering does not depend on the writer's clock.
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Any, Dict, List

from utils.database_init import AsyncDatabaseInitializer


class _ServerTimestamp:
    """Placeholder resolved to the store clock on write."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class AsyncDocumentStore:
    """Collection-scoped document reads and writes.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Insert a new document and return its generated id.

        Args:
            collection: Collection name, e.g. "history".
            data: JSON-serializable fields; `SERVER_TIMESTAMP` values are
                replaced with the store time in epoch seconds.
        """
        doc_id = uuid.uuid4().hex
        now = time.time()
        resolved = {key: (now if value is SERVER_TIMESTAMP else value) for key, value in data.items()}

        async with self._db.connection() as conn:
            await conn.execute(
                "INSERT INTO documents (collection, id, data, created_at) VALUES (?, ?, ?, ?)",
                (collection, doc_id, json.dumps(resolved), now),
            )
            await conn.commit()
        return doc_id

    async def get(self, collection: str, doc_id: str) -> Dict[str, Any] | None:
        """Return the document with `doc_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT id, data FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            )
            row = await cur.fetchone()
            return self._row_to_document(row) if row else None

    async def where_equal(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        """Return documents whose top-level `field` equals `value`, in insertion order."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT id, data FROM documents "
                "WHERE collection = ? AND json_extract(data, ?) = ? ORDER BY rowid",
                (collection, f"$.{field}", value),
            )
            rows = await cur.fetchall()
            return [self._row_to_document(r) for r in rows]

    async def get_all(self, collection: str) -> List[Dict[str, Any]]:
        """Return every document in `collection`, in insertion order."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT id, data FROM documents WHERE collection = ? ORDER BY rowid",
                (collection,),
            )
            rows = await cur.fetchall()
            return [self._row_to_document(r) for r in rows]

    @staticmethod
    def _row_to_document(row) -> Dict[str, Any]:
        """Merge the row id into the decoded document body."""
        return {"id": row[0], **json.loads(row[1])}
