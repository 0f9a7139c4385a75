"""Key-value backends for the discovery.

``MemoryStore`` keeps values in a dict; ``SqliteStore`` keeps them as JSON
text in a single SQLite table via aiosqlite. Both implement
``KeyValueStore``.

Unlike a cache, the store is the source of truth for the discovery, so
backend failures are not swallowed: ``aiosqlite.Error`` is logged with
``exc_info=True`` and re-raised as ``StoreError``.
"""

from __future__ import annotations

import copy
import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog

from kvdiscovery.errors import InvalidArgumentError, StoreError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from kvdiscovery.config import StoreSettings
    from kvdiscovery.protocols import KeyValueStore

log = structlog.get_logger()

_CREATE_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
)
"""


class MemoryStore:
    """Dict-backed store. Values are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self._data

    async def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class SqliteStore:
    """SQLite-backed store implementing KeyValueStore."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_KV_TABLE)
        await self._db.commit()

    async def get(self, key: str, default: Any = None) -> Any:
        try:
            cursor = await self._db.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            log.warning("store_error", op="get", key=key, exc_info=True)
            raise StoreError(f"Could not read key {key!r}: {exc}") from exc
        if row is None:
            return default
        return json.loads(row[0])

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                (key, payload),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            log.warning("store_error", op="set", key=key, exc_info=True)
            raise StoreError(f"Could not write key {key!r}: {exc}") from exc

    async def remove(self, key: str) -> None:
        try:
            await self._db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await self._db.commit()
        except aiosqlite.Error as exc:
            log.warning("store_error", op="remove", key=key, exc_info=True)
            raise StoreError(f"Could not remove key {key!r}: {exc}") from exc

    async def exists(self, key: str) -> bool:
        try:
            cursor = await self._db.execute("SELECT 1 FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            log.warning("store_error", op="exists", key=key, exc_info=True)
            raise StoreError(f"Could not check key {key!r}: {exc}") from exc
        return row is not None

    async def clear(self) -> None:
        try:
            cursor = await self._db.execute("DELETE FROM kv_store")
            await self._db.commit()
        except aiosqlite.Error as exc:
            log.warning("store_error", op="clear", exc_info=True)
            raise StoreError(f"Could not clear store: {exc}") from exc
        log.info("store_cleared", deleted=cursor.rowcount)


@asynccontextmanager
async def open_store(settings: StoreSettings) -> AsyncIterator[KeyValueStore]:
    """Open the backend selected by ``settings.backend``.

    For SQLite, missing parent directories of ``db_path`` are created.
    """
    if settings.backend == "memory":
        yield MemoryStore()
        return

    if settings.backend != "sqlite":
        raise InvalidArgumentError(f"Unknown store backend: {settings.backend!r}")

    db_path = Path(settings.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        store = SqliteStore(db)
        await store.init_db()
        log.info("store_opened", backend="sqlite", db_path=str(db_path))
        yield store
