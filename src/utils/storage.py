# durable key-value slots for client state (session blob, cart blob)
import asyncio
import os.path
from contextlib import asynccontextmanager
from typing import Dict, Optional, Protocol

import aiosqlite

from utils.logger import get_logger

_logger = get_logger(__name__)


class KeyValueStorage(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryStorage:
    """Non-durable storage, used when no database path is configured and in tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqliteStorage:
    """
    One table of (key, value) text pairs in a local sqlite file.
    The table is created on first use.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def _init_db(self, conn: aiosqlite.Connection) -> None:
        _logger.info(f"Initializing client storage at {self.path}...")
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store
            (
                key   TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        await conn.commit()

    @asynccontextmanager
    async def connect(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        conn = await aiosqlite.connect(self.path)
        try:
            if not self._initialized:
                async with self._init_lock:
                    if not self._initialized:
                        await self._init_db(conn)
                        self._initialized = True
            yield conn
        finally:
            await conn.close()

    async def get(self, key: str) -> Optional[str]:
        async with self.connect() as conn:
            cur = await conn.execute("SELECT value FROM kv_store WHERE key = ?;", (key,))
            row = await cur.fetchone()
            await cur.close()
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        async with self.connect() as conn:
            await conn.execute(
                """
                INSERT INTO kv_store(key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value;
                """,
                (key, value),
            )
            await conn.commit()

    async def delete(self, key: str) -> None:
        async with self.connect() as conn:
            await conn.execute("DELETE FROM kv_store WHERE key = ?;", (key,))
            await conn.commit()
