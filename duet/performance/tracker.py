"""Per-(task, provider) performance tracking.

Folds each execution observation into exponential moving averages and
writes the full record table to the ``performance_metrics`` blob after
every update.
"""

from __future__ import annotations

import asyncio
import json
import logging

from pydantic import TypeAdapter

from duet.persistence.store import METRICS_KEY, BlobStore, StoreError
from duet.schemas.performance import Observation, PerformanceRecord, clamp_unit
from duet.schemas.tasks import ProviderId

logger = logging.getLogger(__name__)

# Weight kept by the existing average; the new observation gets the rest
HISTORY_WEIGHT = 0.8

_RECORDS_ADAPTER = TypeAdapter(list[PerformanceRecord])

_Key = tuple[str, ProviderId]


def _blend(old: float, observed: float) -> float:
    return old * HISTORY_WEIGHT + observed * (1 - HISTORY_WEIGHT)


class PerformanceTracker:
    """Durable moving-average metrics per (task, provider).

    Updating a record involves no suspension point, so concurrent updates
    of the same key inside one event loop are applied one after another.
    Writes of the table are serialized so an older snapshot can never land
    after a newer one.
    """

    def __init__(
        self,
        store: BlobStore,
        records: list[PerformanceRecord] | None = None,
    ) -> None:
        self._store = store
        self._records: dict[_Key, PerformanceRecord] = {}
        for record in records or []:
            self._records[(record.task_id, record.provider_id)] = record
        self._write_lock = asyncio.Lock()

    @classmethod
    async def load(cls, store: BlobStore) -> PerformanceTracker:
        """Build a tracker from the stored metrics table.

        A missing, unreadable, or corrupt table is logged and replaced by
        an empty one; startup never fails because of stored metrics.
        """
        records: list[PerformanceRecord] = []
        try:
            raw = await store.read(METRICS_KEY)
            if raw is not None:
                records = _RECORDS_ADAPTER.validate_python(json.loads(raw))
        except (StoreError, ValueError) as e:
            logger.warning("Failed to load performance metrics, starting empty: %s", e)
            records = []
        logger.info("Loaded %d performance records", len(records))
        return cls(store, records)

    def get(self, task_id: str, provider_id: ProviderId) -> PerformanceRecord | None:
        record = self._records.get((task_id, provider_id))
        return record.model_copy() if record else None

    def records(self) -> list[PerformanceRecord]:
        """All records, as copies."""
        return [r.model_copy() for r in self._records.values()]

    async def record(
        self,
        task_id: str,
        provider_id: ProviderId,
        observation: Observation,
    ) -> PerformanceRecord:
        """Fold an observation into the (task, provider) record and persist.

        The first observation for a key is stored verbatim; later ones are
        blended with weight 0.8 on history and 0.2 on the new value.
        """
        key = (task_id, provider_id)
        observed_success = 1.0 if observation.success else 0.0
        current = self._records.get(key)

        if current is None:
            updated = PerformanceRecord(
                task_id=task_id,
                provider_id=provider_id,
                avg_cost=observation.cost,
                avg_confidence=observation.confidence,
                avg_response_time_ms=observation.response_time_ms,
                success_rate=observed_success,
                user_satisfaction=observation.satisfaction,
                samples=1,
            )
        else:
            updated = PerformanceRecord(
                task_id=task_id,
                provider_id=provider_id,
                avg_cost=_blend(current.avg_cost, observation.cost),
                avg_confidence=_blend(current.avg_confidence, observation.confidence),
                avg_response_time_ms=_blend(
                    current.avg_response_time_ms, observation.response_time_ms,
                ),
                success_rate=_blend(current.success_rate, observed_success),
                user_satisfaction=_blend(
                    current.user_satisfaction, observation.satisfaction,
                ),
                samples=current.samples + 1,
            )

        self._records[key] = updated
        await self._persist()
        logger.debug(
            "Recorded %s/%s: success=%s conf=%.2f cost=$%.4f",
            task_id, provider_id.value, observation.success,
            observation.confidence, observation.cost,
        )
        return updated.model_copy()

    async def record_satisfaction(
        self,
        task_id: str,
        provider_id: ProviderId,
        satisfaction: float,
    ) -> PerformanceRecord | None:
        """Blend explicit user feedback into ``user_satisfaction`` only.

        Returns None when the pair has never been executed.
        """
        current = self._records.get((task_id, provider_id))
        if current is None:
            logger.warning(
                "Ignoring feedback for %s/%s: no performance record yet",
                task_id, provider_id.value,
            )
            return None
        updated = current.model_copy(
            update={
                "user_satisfaction": _blend(
                    current.user_satisfaction, clamp_unit(satisfaction),
                ),
            },
        )
        self._records[(task_id, provider_id)] = updated
        await self._persist()
        return updated.model_copy()

    async def _persist(self) -> None:
        async with self._write_lock:
            payload = _RECORDS_ADAPTER.dump_json(list(self._records.values()))
            await self._store.write(METRICS_KEY, payload.decode("utf-8"))
