"""Provider selection for incoming tasks.

Resolves a task id to a concrete provider by walking a fixed rule order:
forced provider, unknown task default, pinned task, per-task override,
then weighted scoring over performance history (or a complexity
heuristic when there is no history).
"""

from __future__ import annotations

import logging

from duet.performance.tracker import PerformanceTracker
from duet.routing.config_store import ConfigStore
from duet.routing.scoring import default_provider_for, pick_by_score, score_provider
from duet.schemas.execution import RoutingDecision, RoutingOptions, RoutingReason
from duet.schemas.tasks import ProviderId
from duet.tasks.registry import TaskRegistry

logger = logging.getLogger(__name__)


class ProviderSelector:
    """Pure decision function over the registry, config, and history."""

    def __init__(
        self,
        registry: TaskRegistry,
        config_store: ConfigStore,
        tracker: PerformanceTracker,
    ) -> None:
        self._registry = registry
        self._config_store = config_store
        self._tracker = tracker

    def resolve(
        self,
        task_id: str,
        options: RoutingOptions | None = None,
    ) -> ProviderId:
        """Return the provider that should handle ``task_id``."""
        return self.decide(task_id, options).provider

    def decide(
        self,
        task_id: str,
        options: RoutingOptions | None = None,
    ) -> RoutingDecision:
        """Select a provider and explain which rule selected it.

        Args:
            task_id: Task catalogue id. Unknown ids fall back to the
                     configured default provider.
            options: Optional force/priority hints.

        Returns:
            RoutingDecision with the concrete provider and rationale.
        """
        options = options or RoutingOptions()
        config = self._config_store.get_config()

        if options.force_provider is not None and options.force_provider.is_concrete:
            return self._decided(
                task_id, options.force_provider, RoutingReason.FORCED,
                f"Forced provider: {options.force_provider.value}",
            )

        task = self._registry.lookup(task_id)
        if task is None:
            logger.warning("Unknown task type: %s, using default provider", task_id)
            default = config.default_provider
            provider = default if default.is_concrete else ProviderId.QUALITY
            return self._decided(
                task_id, provider, RoutingReason.UNKNOWN_TASK,
                f"Unknown task, default provider {provider.value}",
            )

        if task.is_pinned:
            return self._decided(
                task_id, task.primary_provider, RoutingReason.PINNED,
                f"Task pinned to {task.primary_provider.value}",
            )

        override = config.per_task_override.get(task_id)
        if override is not None:
            return self._decided(
                task_id, override, RoutingReason.OVERRIDE,
                f"Per-task override: {override.value}",
            )

        quality_record = self._tracker.get(task_id, ProviderId.QUALITY)
        fast_record = self._tracker.get(task_id, ProviderId.FAST)
        if quality_record is None and fast_record is None:
            provider = default_provider_for(task, config.cost_optimization)
            return self._decided(
                task_id, provider, RoutingReason.HEURISTIC,
                f"No history; {task.complexity.value} task routed to {provider.value}",
            )

        cost_priority = (
            options.cost_priority
            if options.cost_priority is not None
            else config.cost_optimization
        )
        quality_priority = (
            options.quality_priority
            if options.quality_priority is not None
            else config.quality_first
        )
        scores = {
            ProviderId.QUALITY: score_provider(
                quality_record, task,
                cost_priority=cost_priority, quality_priority=quality_priority,
            ),
            ProviderId.FAST: score_provider(
                fast_record, task,
                cost_priority=cost_priority, quality_priority=quality_priority,
            ),
        }
        provider = pick_by_score(scores[ProviderId.QUALITY], scores[ProviderId.FAST])
        return self._decided(
            task_id, provider, RoutingReason.SCORED,
            f"Scored quality={scores[ProviderId.QUALITY]:.3f} "
            f"fast={scores[ProviderId.FAST]:.3f}",
            scores=scores,
        )

    def _decided(
        self,
        task_id: str,
        provider: ProviderId,
        reason: RoutingReason,
        rationale: str,
        scores: dict[ProviderId, float] | None = None,
    ) -> RoutingDecision:
        logger.info("Routing %s → %s (%s)", task_id, provider.value, rationale)
        return RoutingDecision(
            task_id=task_id,
            provider=provider,
            reason=reason,
            scores=scores,
            rationale=rationale,
        )
