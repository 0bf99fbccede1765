"""
The single aiosqlite connection shared by the document store and the mod log.

Reads go straight to the connection. Writes queue on a semaphore so only one
transaction is open at a time.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from modgate.util.logger import get_logger

logger = get_logger("database_connection")

_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
)


class ConnectionManager:
    """Opens, hands out and closes the database connection."""

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)

    async def open(self, path: Path) -> None:
        """
        Connect to ``path`` (``Path(":memory:")`` for an in-memory database).

        Parent directories are created. Opening twice keeps the first connection.
        """
        if self._conn is not None:
            logger.warning("[DB CONNECTION] Already open, ignoring open(%s)", path)
            return

        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(path)
        for pragma in _PRAGMAS:
            await self._conn.execute(pragma)
        await self._conn.commit()
        logger.info("[DB CONNECTION] Opened %s", path)

    async def close(self) -> None:
        if self._conn is None:
            return
        try:
            await self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await self._conn.commit()
        except aiosqlite.Error:
            logger.exception("[DB CONNECTION] WAL checkpoint failed during close")
        finally:
            await self._conn.close()
            self._conn = None
            logger.info("[DB CONNECTION] Closed")

    def _require(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database connection is not open")
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Exclusive write access; commits on success, rolls back if the body raises."""
        conn = self._require()
        async with self._write_sem:
            try:
                yield conn
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        yield self._require()
