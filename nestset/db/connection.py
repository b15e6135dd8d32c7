"""Async SQLite connection wrapper with WAL mode, schema initialization and transactions."""

import asyncio
import logging
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from nestset.db.schema import build_schema_sql
from nestset.errors import StoreFailureError
from nestset.models import NestedSetSchema

logger = logging.getLogger(__name__)


class Database:
    """Thin async wrapper around aiosqlite with WAL mode, auto-schema and transactions.

    Statements executed outside ``transaction()`` are committed immediately.
    Inside a transaction they are held until the block exits.
    """

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection
        self._write_lock = asyncio.Lock()
        self._in_transaction = False

    @classmethod
    async def connect(
        cls, path: str = "nestset.db", schema: NestedSetSchema | None = None
    ) -> "Database":
        """Create a connection with WAL mode, foreign keys, and schema init."""
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        await conn.execute("PRAGMA busy_timeout=5000")
        db = cls(conn)
        await db.ensure_schema(schema or NestedSetSchema())
        return db

    async def ensure_schema(self, schema: NestedSetSchema) -> None:
        """Create the node table and its indexes if they don't exist. Idempotent."""
        await self._conn.executescript(build_schema_sql(schema))
        await self._conn.commit()

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["Database"]:
        """Run the enclosed statements as one all-or-nothing unit.

        Holds the connection's write lock for the whole block and opens the
        transaction with BEGIN IMMEDIATE so SQLite takes its write lock before
        the first read. Any exception rolls back; sqlite3 errors are re-raised
        as StoreFailureError.
        """
        async with self._write_lock:
            try:
                await self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreFailureError("begin") from e
            self._in_transaction = True
            try:
                yield self
            except BaseException as e:
                self._in_transaction = False
                await self._rollback()
                if isinstance(e, sqlite3.Error):
                    raise StoreFailureError("transaction") from e
                raise
            self._in_transaction = False
            try:
                await self._conn.commit()
            except sqlite3.Error as e:
                await self._rollback()
                raise StoreFailureError("commit") from e

    async def _rollback(self) -> None:
        try:
            await self._conn.rollback()
        except sqlite3.Error as e:
            raise StoreFailureError("rollback") from e
        logger.warning("Transaction rolled back")

    async def execute(self, sql: str, params: tuple | list | None = None) -> aiosqlite.Cursor:
        """Execute a single SQL statement; commit unless inside a transaction."""
        cursor = await self._conn.execute(sql, params or ())
        if not self._in_transaction:
            await self._conn.commit()
        return cursor

    async def fetchone(self, sql: str, params: tuple | list | None = None) -> aiosqlite.Row | None:
        """Execute and return a single row."""
        cursor = await self._conn.execute(sql, params or ())
        return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple | list | None = None) -> list[aiosqlite.Row]:
        """Execute and return all rows."""
        cursor = await self._conn.execute(sql, params or ())
        return list(await cursor.fetchall())

    async def close(self) -> None:
        """Close the database connection."""
        await self._conn.close()
