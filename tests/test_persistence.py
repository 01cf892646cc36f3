"""Tests for duet.persistence — memory, JSON-file, and SQLite blob stores."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import aiosqlite
import pytest

from duet.persistence.database import SqliteBlobStore, init_db, open_store
from duet.persistence.store import (
    CONFIG_KEY,
    METRICS_KEY,
    JsonFileBlobStore,
    MemoryBlobStore,
    StoreError,
)


class TestMemoryBlobStore:
    @pytest.mark.asyncio
    async def test_read_missing(self):
        assert await MemoryBlobStore().read(CONFIG_KEY) is None

    @pytest.mark.asyncio
    async def test_write_then_read(self):
        store = MemoryBlobStore()
        await store.write(METRICS_KEY, "[]")
        assert await store.read(METRICS_KEY) == "[]"
        assert store.blobs == {METRICS_KEY: "[]"}

    @pytest.mark.asyncio
    async def test_initial_blobs_copied(self):
        initial = {CONFIG_KEY: "{}"}
        store = MemoryBlobStore(initial)
        await store.write(CONFIG_KEY, '{"quality_first": true}')
        assert initial[CONFIG_KEY] == "{}"


class TestJsonFileBlobStore:
    @pytest.mark.asyncio
    async def test_read_missing(self, tmp_path: Path):
        assert await JsonFileBlobStore(tmp_path / "state").read(CONFIG_KEY) is None

    @pytest.mark.asyncio
    async def test_write_creates_directory(self, tmp_path: Path):
        store = JsonFileBlobStore(tmp_path / "state")
        await store.write(CONFIG_KEY, '{"a": 1}')
        assert (tmp_path / "state" / "router_config.json").read_text() == '{"a": 1}'
        assert await store.read(CONFIG_KEY) == '{"a": 1}'

    @pytest.mark.asyncio
    async def test_overwrite_leaves_no_temp_files(self, tmp_path: Path):
        store = JsonFileBlobStore(tmp_path)
        await store.write(METRICS_KEY, "[1]")
        await store.write(METRICS_KEY, "[2]")
        assert await store.read(METRICS_KEY) == "[2]"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["performance_metrics.json"]

    @pytest.mark.asyncio
    async def test_write_failure_raises_store_error(self, tmp_path: Path):
        blocker = tmp_path / "state"
        blocker.write_text("not a directory")
        store = JsonFileBlobStore(blocker)
        with pytest.raises(StoreError, match="Could not write"):
            await store.write(CONFIG_KEY, "{}")

    @pytest.mark.asyncio
    async def test_failed_replace_removes_temp_file(self, tmp_path: Path):
        (tmp_path / "router_config.json").mkdir()
        store = JsonFileBlobStore(tmp_path)
        with pytest.raises(StoreError, match="Could not write"):
            await store.write(CONFIG_KEY, "{}")
        assert [p.name for p in tmp_path.iterdir()] == ["router_config.json"]

    @pytest.mark.asyncio
    async def test_undecodable_file_raises_store_error(self, tmp_path: Path):
        (tmp_path / "performance_metrics.json").write_bytes(b"\xff\xfe")
        with pytest.raises(StoreError, match="Could not read"):
            await JsonFileBlobStore(tmp_path).read(METRICS_KEY)


class TestSqliteBlobStore:
    @pytest.mark.asyncio
    async def test_init_db_creates_table(self):
        db = await init_db(":memory:")
        try:
            async with db.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='blobs'",
            ) as cursor:
                assert await cursor.fetchone() is not None
        finally:
            await db.close()

    @pytest.mark.asyncio
    async def test_write_then_read(self):
        store = await SqliteBlobStore.open(":memory:")
        try:
            assert await store.read(CONFIG_KEY) is None
            await store.write(CONFIG_KEY, "{}")
            await store.write(CONFIG_KEY, '{"quality_first": true}')
            assert await store.read(CONFIG_KEY) == '{"quality_first": true}'
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_file_database_persists(self, tmp_path: Path):
        path = tmp_path / "nested" / "duet.db"
        store = await SqliteBlobStore.open(str(path))
        await store.write(METRICS_KEY, "[]")
        await store.close()

        reopened = await SqliteBlobStore.open(str(path))
        try:
            assert await reopened.read(METRICS_KEY) == "[]"
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_backend_error_wrapped(self):
        db = AsyncMock()
        db.execute.side_effect = aiosqlite.OperationalError("disk I/O error")
        store = SqliteBlobStore(db)
        with pytest.raises(StoreError, match="Could not write"):
            await store.write(CONFIG_KEY, "{}")


class TestOpenStore:
    @pytest.mark.asyncio
    async def test_directory_opens_json_store(self, tmp_path: Path):
        store = await open_store(tmp_path / "state")
        assert isinstance(store, JsonFileBlobStore)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["duet.db", "duet.sqlite", "duet.sqlite3"])
    async def test_database_suffix_opens_sqlite(self, tmp_path: Path, name: str):
        store = await open_store(tmp_path / name)
        try:
            assert isinstance(store, SqliteBlobStore)
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_memory_opens_sqlite(self):
        store = await open_store(":memory:")
        try:
            assert isinstance(store, SqliteBlobStore)
        finally:
            await store.close()
