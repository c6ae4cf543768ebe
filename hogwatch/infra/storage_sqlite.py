import asyncio
import sqlite3
from typing import Any

import aiosqlite

from hogwatch.core.errors import PersistenceReadError, PersistenceWriteError
from hogwatch.infra.backing import BackingStore, decode_value, encode_value


class SQLiteBacking(BackingStore):
    """
    Async SQLite implementation of the BackingStore for persisting
    the capture buffer as JSON text under a single key.
    """
    def __init__(self, db_path: str = "hogwatch.db", quota_bytes: int | None = None):
        self.db_path = db_path
        self.quota_bytes = quota_bytes
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def connect(self):
        if not self._db:
            self._db = await aiosqlite.connect(self.db_path)
            await self._init_db()

    async def close(self):
        if self._db:
            await self._db.close()
            self._db = None

    async def _init_db(self):
        await self._db.execute('''
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        ''')
        await self._db.commit()

    async def load(self, key: str) -> Any | None:
        try:
            await self.connect()
            async with self._db.execute('SELECT value FROM kv WHERE key=?', (key,)) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceReadError(f"sqlite read failed: {exc}", key) from exc
        if row is None or row[0] is None:
            return None
        return decode_value(key, row[0])

    async def save(self, key: str, value: Any) -> None:
        encoded = encode_value(key, value, self.quota_bytes)
        try:
            await self.connect()
            async with self._lock:
                await self._db.execute(
                    'INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)',
                    (key, encoded)
                )
                await self._db.commit()
        except sqlite3.Error as exc:
            raise PersistenceWriteError(f"sqlite write failed: {exc}", key, size=len(encoded)) from exc
