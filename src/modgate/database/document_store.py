"""
Backing store for lazily loaded documents.

``DocumentStore`` is the contract the wrappers consume:

- ``fetch(collection, key, fields)`` returns the requested top-level fields
  that exist (absent fields are simply missing), or ``None`` when the
  document does not exist.
- ``apply_update(collection, key, ops)`` applies ordered set/unset
  operations, creating the document if needed.

``SqliteDocumentStore`` implements it on top of a single aiosqlite
connection with JSON bodies. Driver errors are wrapped into
``PersistenceError`` exactly once, here.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional, Protocol, Sequence

import aiosqlite

from modgate.database.db_connection import ConnectionManager
from modgate.database.doc_path import DocField, UpdateOp, apply_ops
from modgate.errors import PersistenceError
from modgate.util.logger import get_logger

logger = get_logger("document_store")


class Collection:
    """Names of the document collections."""

    USERS = "users"
    GUILDS = "guilds"
    GUILD_MEMBERS = "guild_members"


class DocumentStore(Protocol):
    """Persistence contract for ``DocWrapper``."""

    async def fetch(self, collection: str, key: str, fields: Iterable[DocField]) -> Optional[Dict[str, Any]]:
        ...

    async def apply_update(self, collection: str, key: str, ops: Sequence[UpdateOp]) -> None:
        ...

    async def delete(self, collection: str, key: str) -> bool:
        ...


class SqliteDocumentStore:
    """
    Document store backed by the ``documents`` table.

    Each update reads the current body, applies the operations and writes
    it back inside one serialised transaction, so a failed write leaves the
    stored body unchanged.
    """

    def __init__(self, connection: ConnectionManager):
        self._connection = connection

    async def fetch(self, collection: str, key: str, fields: Iterable[DocField]) -> Optional[Dict[str, Any]]:
        """
        Read selected top-level fields of a document.

        Raises:
            PersistenceError: If the database read fails or the body is corrupt.
        """
        try:
            async with self._connection.read() as conn:
                async with conn.execute(
                    "SELECT body FROM documents WHERE collection = ? AND doc_key = ?",
                    (collection, key),
                ) as cursor:
                    row = await cursor.fetchone()
        except (aiosqlite.Error, RuntimeError) as exc:
            logger.error("[DOCUMENT STORE] Fetch of %s/%s failed: %s", collection, key, exc)
            raise PersistenceError(f"Failed to fetch {collection}/{key}") from exc

        if row is None:
            return None

        body = self._decode(collection, key, row[0])
        return {f.value: body[f.value] for f in fields if f.value in body}

    async def apply_update(self, collection: str, key: str, ops: Sequence[UpdateOp]) -> None:
        """
        Apply ordered update operations to a document, creating it if missing.

        Raises:
            PersistenceError: If the transaction fails; nothing is committed.
        """
        if not ops:
            return

        try:
            async with self._connection.transaction() as conn:
                async with conn.execute(
                    "SELECT body FROM documents WHERE collection = ? AND doc_key = ?",
                    (collection, key),
                ) as cursor:
                    row = await cursor.fetchone()

                body = self._decode(collection, key, row[0]) if row is not None else {}
                apply_ops(body, ops)

                await conn.execute(
                    """
                    INSERT INTO documents (collection, doc_key, body) VALUES (?, ?, ?)
                    ON CONFLICT(collection, doc_key) DO UPDATE SET body = excluded.body
                    """,
                    (collection, key, json.dumps(body)),
                )
        except (aiosqlite.Error, RuntimeError, TypeError, ValueError) as exc:
            logger.error("[DOCUMENT STORE] Update of %s/%s failed: %s", collection, key, exc)
            raise PersistenceError(f"Failed to update {collection}/{key}") from exc

        logger.debug("[DOCUMENT STORE] Applied %d op(s) to %s/%s", len(ops), collection, key)

    async def delete(self, collection: str, key: str) -> bool:
        """Delete a whole document. Returns True if a row was removed."""
        try:
            async with self._connection.transaction() as conn:
                cursor = await conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND doc_key = ?",
                    (collection, key),
                )
                return cursor.rowcount > 0
        except (aiosqlite.Error, RuntimeError) as exc:
            raise PersistenceError(f"Failed to delete {collection}/{key}") from exc

    @staticmethod
    def _decode(collection: str, key: str, raw: str) -> Dict[str, Any]:
        try:
            body = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Corrupt document body for {collection}/{key}") from exc
        if not isinstance(body, dict):
            raise PersistenceError(f"Document {collection}/{key} is not an object")
        return body
