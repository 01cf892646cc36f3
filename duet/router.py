"""Router API: the public entry point for task routing and consensus.

A Router is an explicit instance wired from a blob store, provider
adapters, and an optional clock. Each request walks
decide → execute → (merge) → record and returns to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from duet.budget.ledger import CostLedger
from duet.consensus.engine import ConsensusEngine, compare_costs
from duet.execution.coordinator import ExecutionCoordinator
from duet.performance.tracker import PerformanceTracker
from duet.persistence.store import BlobStore
from duet.providers.base import ProviderAdapter
from duet.routing.config_store import ConfigStore
from duet.routing.selector import ProviderSelector
from duet.schemas.budget import BudgetStatus
from duet.schemas.config import RouterConfig
from duet.schemas.consensus import CostComparison, MultiProviderInsight
from duet.schemas.execution import (
    CreativeBrief,
    ExecutionOutcome,
    RoutingDecision,
    RoutingOptions,
    VisualAsset,
)
from duet.schemas.performance import PerformanceRecord
from duet.schemas.tasks import ProviderId, TaskDefinition
from duet.tasks.registry import TaskRegistry, load_tasks

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Router:
    """Routes tasks to providers, executes them, and learns from outcomes.

    Prefer ``await Router.open(store, adapters)``, which loads the stored
    configuration and metrics before building the router.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        config_store: ConfigStore,
        tracker: PerformanceTracker,
        adapters: Mapping[ProviderId, ProviderAdapter],
        *,
        clock: Callable[[], datetime] = _utcnow,
        timeout: float | None = None,
        consensus: ConsensusEngine | None = None,
    ) -> None:
        self._registry = registry
        self._config_store = config_store
        self._tracker = tracker
        self._adapters = dict(adapters)
        self._clock = clock
        self._selector = ProviderSelector(registry, config_store, tracker)
        self._ledger = CostLedger(
            lambda: self._config_store.get_config().budget_limits, clock=clock,
        )
        self._coordinator = ExecutionCoordinator(
            self._adapters, tracker, registry,
            ledger=self._ledger, timeout=timeout, clock=clock,
        )
        self._consensus = consensus or ConsensusEngine()

    @classmethod
    async def open(
        cls,
        store: BlobStore,
        adapters: Mapping[ProviderId, ProviderAdapter],
        *,
        registry: TaskRegistry | None = None,
        clock: Callable[[], datetime] = _utcnow,
        timeout: float | None = None,
    ) -> Router:
        """Load persisted state from ``store`` and build a router.

        Args:
            store: Durable store for the config and metrics blobs.
            adapters: One adapter per concrete provider.
            registry: Task catalogue; defaults to the shipped tasks.toml.
            clock: Timestamp source (injected for tests).
            timeout: Optional per-call deadline in seconds.
        """
        registry = registry or load_tasks()
        config_store = await ConfigStore.load(store, registry)
        tracker = await PerformanceTracker.load(store)
        logger.info(
            "Router ready: %d tasks, config=%s",
            len(registry), config_store.get_config().model_dump(mode="json"),
        )
        return cls(
            registry, config_store, tracker, adapters,
            clock=clock, timeout=timeout,
        )

    # ── Routing ───────────────────────────────────────────────

    def get_optimal_provider(
        self,
        task_id: str,
        options: RoutingOptions | None = None,
    ) -> ProviderId:
        """Return the provider that should handle ``task_id``."""
        return self._selector.resolve(task_id, options)

    def route(
        self,
        task_id: str,
        options: RoutingOptions | None = None,
    ) -> RoutingDecision:
        """Like get_optimal_provider(), with the rule and scores behind it."""
        return self._selector.decide(task_id, options)

    # ── Execution ─────────────────────────────────────────────

    async def get_single_insight(
        self,
        task_id: str,
        payload: dict[str, Any],
        options: RoutingOptions | None = None,
    ) -> ExecutionOutcome:
        """Route the task, run it on the chosen provider, and record it.

        Provider failures are returned as ``succeeded=False`` outcomes.
        Costs are charged to the ledger even if persisting metrics fails.
        """
        provider = self._selector.resolve(task_id, options)
        return await self._coordinator.execute(task_id, payload, provider)

    async def get_multi_provider_insight(
        self,
        task_id: str,
        payload: dict[str, Any],
        *,
        include_consensus: bool = True,
    ) -> MultiProviderInsight:
        """Run the task on both providers and merge the results.

        A consensus is built only when both providers succeed. If one
        fails, the other's outcome is returned alone.

        Raises:
            DualProviderError: If both providers failed.
        """
        dual = await self._coordinator.execute_both(task_id, payload)

        consensus = None
        if include_consensus and dual.both_succeeded:
            consensus = self._consensus.merge(dual.quality, dual.fast)

        if dual.both_succeeded:
            costs = compare_costs(dual.quality.cost_incurred, dual.fast.cost_incurred)
        else:
            costs = CostComparison(
                cost_a=dual.quality.cost_incurred if dual.quality else 0.0,
                cost_b=dual.fast.cost_incurred if dual.fast else 0.0,
            )

        return MultiProviderInsight(
            task_id=task_id,
            quality=dual.quality,
            fast=dual.fast,
            consensus=consensus,
            cost_comparison=costs,
            failures=dual.failures,
            timestamp=self._clock(),
        )

    async def generate_visual(self, brief: CreativeBrief) -> VisualAsset:
        """Generate a visual asset with the fast provider.

        Raises:
            NotImplementedError: If the fast adapter has no visual model.
        """
        adapter = self._adapters.get(ProviderId.FAST)
        if adapter is None:
            raise ValueError("No adapter registered for provider fast")
        asset = await adapter.generate_visual(brief)
        self._ledger.charge(asset.cost)
        return asset

    # ── Feedback ──────────────────────────────────────────────

    async def submit_feedback(
        self,
        task_id: str,
        provider_id: ProviderId,
        satisfaction: float,
    ) -> PerformanceRecord | None:
        """Fold a user satisfaction score (0-1) into the provider's record."""
        return await self._tracker.record_satisfaction(task_id, provider_id, satisfaction)

    # ── Configuration & introspection ─────────────────────────

    async def configure(self, **changes: Any) -> RouterConfig:
        return await self._config_store.configure(**changes)

    def get_config(self) -> RouterConfig:
        return self._config_store.get_config()

    def get_task_definitions(self) -> list[TaskDefinition]:
        return self._registry.all()

    def get_performance_records(self) -> list[PerformanceRecord]:
        return self._tracker.records()

    def budget_status(self) -> BudgetStatus:
        return self._ledger.status()

    @property
    def ledger(self) -> CostLedger:
        return self._ledger
