"""SQLite blob store.

Keeps router state blobs in a single SQLite table. Uses aiosqlite for
async access with WAL mode so a CLI reader does not block a running
router.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from duet.persistence.store import BlobStore, JsonFileBlobStore, StoreError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS blobs (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


async def init_db(db_path: str) -> aiosqlite.Connection:
    """Open the state database and create the blob table if needed.

    Args:
        db_path: Path to the SQLite database file. Supports ~ expansion
                 and ``:memory:``.

    Returns:
        An open aiosqlite connection ready for use.
    """
    if db_path == ":memory:":
        target = db_path
    else:
        resolved = Path(db_path).expanduser()
        resolved.parent.mkdir(parents=True, exist_ok=True)
        target = str(resolved)

    db = await aiosqlite.connect(target)
    await db.execute("PRAGMA journal_mode=WAL")
    await db.executescript(_SCHEMA)
    await db.commit()

    logger.info("State database initialized at %s", target)
    return db


class SqliteBlobStore(BlobStore):
    """Blob store backed by an aiosqlite connection from init_db()."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    @classmethod
    async def open(cls, db_path: str) -> SqliteBlobStore:
        return cls(await init_db(db_path))

    async def read(self, key: str) -> str | None:
        try:
            async with self._db.execute(
                "SELECT value FROM blobs WHERE key = ?", (key,),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Could not read blob '{key}': {e}") from e
        return row[0] if row else None

    async def write(self, key: str, value: str) -> None:
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO blobs (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, datetime.now(UTC).isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Could not write blob '{key}': {e}") from e

    async def close(self) -> None:
        await self._db.close()


async def open_store(path: str | Path) -> BlobStore:
    """Open a blob store for ``path``.

    ``.db``/``.sqlite``/``.sqlite3`` paths and ``:memory:`` open a SQLite
    store; anything else is treated as a directory of JSON files.
    """
    text = str(path)
    if text == ":memory:" or Path(text).suffix in {".db", ".sqlite", ".sqlite3"}:
        return await SqliteBlobStore.open(text)
    return JsonFileBlobStore(Path(text))
