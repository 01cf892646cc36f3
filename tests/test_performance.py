"""Tests for duet.performance.tracker — moving averages and persistence."""

from __future__ import annotations

import asyncio
import json

import pytest

from duet.performance.tracker import HISTORY_WEIGHT, PerformanceTracker
from duet.persistence.store import (
    METRICS_KEY,
    BlobStore,
    JsonFileBlobStore,
    MemoryBlobStore,
    StoreError,
)
from duet.schemas.performance import Observation, PerformanceRecord
from duet.schemas.tasks import ProviderId

Q = ProviderId.QUALITY
F = ProviderId.FAST


def _obs(**overrides) -> Observation:
    defaults = {
        "cost": 0.10,
        "confidence": 0.9,
        "response_time_ms": 2000.0,
        "success": True,
        "satisfaction": 0.8,
    }
    defaults.update(overrides)
    return Observation(**defaults)


class _BrokenStore(BlobStore):
    async def read(self, key):
        raise StoreError("backend down")

    async def write(self, key, value):
        raise StoreError("backend down")


# ── Recording ──────────────────────────────────────────────────────


class TestRecord:
    @pytest.mark.asyncio
    async def test_first_observation_stored_verbatim(self):
        tracker = PerformanceTracker(MemoryBlobStore())
        record = await tracker.record("quick-insights", F, _obs(cost=0.02, confidence=0.6))
        assert record.avg_cost == 0.02
        assert record.avg_confidence == 0.6
        assert record.avg_response_time_ms == 2000.0
        assert record.success_rate == 1.0
        assert record.user_satisfaction == 0.8
        assert record.samples == 1

    @pytest.mark.asyncio
    async def test_second_observation_blends(self):
        tracker = PerformanceTracker(MemoryBlobStore())
        await tracker.record("t", Q, _obs(cost=0.10, confidence=0.9))
        record = await tracker.record(
            "t", Q, _obs(cost=0.20, confidence=0.4, response_time_ms=1000, success=False),
        )
        assert record.avg_cost == pytest.approx(0.10 * 0.8 + 0.20 * 0.2)
        assert record.avg_confidence == pytest.approx(0.9 * 0.8 + 0.4 * 0.2)
        assert record.avg_response_time_ms == pytest.approx(2000 * 0.8 + 1000 * 0.2)
        assert record.success_rate == pytest.approx(0.8)
        assert record.samples == 2

    @pytest.mark.asyncio
    async def test_converges_toward_constant_input(self):
        tracker = PerformanceTracker(MemoryBlobStore())
        await tracker.record("t", Q, _obs(confidence=0.0))
        for _ in range(40):
            record = await tracker.record("t", Q, _obs(confidence=1.0))
        assert record.avg_confidence == pytest.approx(1.0, abs=1e-3)
        assert record.samples == 41

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        tracker = PerformanceTracker(MemoryBlobStore())
        await tracker.record("t", Q, _obs(cost=0.5))
        await tracker.record("t", F, _obs(cost=0.01))
        await tracker.record("other", Q, _obs(cost=0.3))
        assert tracker.get("t", Q).avg_cost == 0.5
        assert tracker.get("t", F).avg_cost == 0.01
        assert len(tracker.records()) == 3

    @pytest.mark.asyncio
    async def test_get_returns_copy(self):
        tracker = PerformanceTracker(MemoryBlobStore())
        await tracker.record("t", Q, _obs())
        copy = tracker.get("t", Q)
        copy.avg_cost = 99.0
        assert tracker.get("t", Q).avg_cost == 0.10

    def test_get_missing(self):
        assert PerformanceTracker(MemoryBlobStore()).get("t", Q) is None

    def test_history_weight(self):
        assert HISTORY_WEIGHT == 0.8

    @pytest.mark.asyncio
    async def test_concurrent_updates_all_applied(self):
        tracker = PerformanceTracker(MemoryBlobStore())
        await asyncio.gather(*(tracker.record("t", Q, _obs()) for _ in range(10)))
        assert tracker.get("t", Q).samples == 10

    @pytest.mark.asyncio
    async def test_write_failure_propagates(self):
        tracker = PerformanceTracker(_BrokenStore())
        with pytest.raises(StoreError):
            await tracker.record("t", Q, _obs())


# ── Feedback ───────────────────────────────────────────────────────


class TestRecordSatisfaction:
    @pytest.mark.asyncio
    async def test_blends_satisfaction_only(self):
        tracker = PerformanceTracker(MemoryBlobStore())
        await tracker.record("t", Q, _obs(satisfaction=0.8))
        record = await tracker.record_satisfaction("t", Q, 0.3)
        assert record.user_satisfaction == pytest.approx(0.8 * 0.8 + 0.3 * 0.2)
        assert record.samples == 1
        assert record.avg_confidence == 0.9

    @pytest.mark.asyncio
    async def test_unknown_pair_ignored(self):
        store = MemoryBlobStore()
        tracker = PerformanceTracker(store)
        assert await tracker.record_satisfaction("t", Q, 1.0) is None
        assert METRICS_KEY not in store.blobs

    @pytest.mark.asyncio
    async def test_score_clamped(self):
        tracker = PerformanceTracker(MemoryBlobStore())
        await tracker.record("t", F, _obs(satisfaction=1.0))
        record = await tracker.record_satisfaction("t", F, 7.0)
        assert record.user_satisfaction == 1.0


# ── Persistence ────────────────────────────────────────────────────


class TestPersistence:
    @pytest.mark.asyncio
    async def test_every_update_persisted(self):
        store = MemoryBlobStore()
        tracker = PerformanceTracker(store)
        await tracker.record("t", Q, _obs())
        rows = json.loads(store.blobs[METRICS_KEY])
        assert rows[0]["task_id"] == "t"
        assert rows[0]["provider_id"] == "quality"

    @pytest.mark.asyncio
    async def test_reload_round_trip(self):
        store = MemoryBlobStore()
        tracker = PerformanceTracker(store)
        await tracker.record("t", Q, _obs())
        await tracker.record("t", F, _obs(cost=0.02))

        reloaded = await PerformanceTracker.load(store)
        assert reloaded.get("t", Q) == tracker.get("t", Q)
        assert reloaded.get("t", F).avg_cost == 0.02

    @pytest.mark.asyncio
    async def test_missing_blob_starts_empty(self):
        tracker = await PerformanceTracker.load(MemoryBlobStore())
        assert tracker.records() == []

    @pytest.mark.asyncio
    async def test_corrupt_blob_starts_empty(self):
        store = MemoryBlobStore({METRICS_KEY: "{not json"})
        tracker = await PerformanceTracker.load(store)
        assert tracker.records() == []

    @pytest.mark.asyncio
    async def test_invalid_rows_start_empty(self):
        store = MemoryBlobStore({METRICS_KEY: '[{"task_id": "t", "provider_id": "auto"}]'})
        tracker = await PerformanceTracker.load(store)
        assert tracker.records() == []

    @pytest.mark.asyncio
    async def test_unreadable_store_starts_empty(self):
        tracker = await PerformanceTracker.load(_BrokenStore())
        assert tracker.records() == []

    @pytest.mark.asyncio
    async def test_undecodable_metrics_file_starts_empty(self, tmp_path):
        (tmp_path / "performance_metrics.json").write_bytes(b"\xff\xfe\x00garbage")
        tracker = await PerformanceTracker.load(JsonFileBlobStore(tmp_path))
        assert tracker.records() == []

    @pytest.mark.asyncio
    async def test_seeded_records(self):
        record = PerformanceRecord(task_id="t", provider_id=F, avg_cost=0.01, samples=3)
        tracker = PerformanceTracker(MemoryBlobStore(), [record])
        assert tracker.get("t", F).samples == 3
