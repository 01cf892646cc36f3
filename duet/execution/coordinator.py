"""Provider execution with failure isolation.

Runs a task on one provider, or on both concurrently, converting adapter
errors into failed outcomes and feeding every outcome back into the
performance tracker.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from duet.budget.ledger import CostLedger
from duet.performance.tracker import PerformanceTracker
from duet.persistence.store import StoreError
from duet.providers.base import ProviderAdapter
from duet.schemas.execution import DualOutcome, ExecutionOutcome, ProviderResponse
from duet.schemas.performance import Observation
from duet.schemas.tasks import CONCRETE_PROVIDERS, ProviderId, TaskDefinition
from duet.tasks.registry import TaskRegistry

logger = logging.getLogger(__name__)

# Satisfaction recorded when no explicit user feedback exists
DEFAULT_SATISFACTION = 0.8


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DualProviderError(RuntimeError):
    """Both providers failed on the dual-provider path.

    Attributes:
        errors: Provider -> error detail for each failed provider.
    """

    def __init__(self, task_id: str, errors: dict[ProviderId, str]) -> None:
        self.task_id = task_id
        self.errors = errors
        detail = "; ".join(f"{p.value}: {msg}" for p, msg in errors.items())
        super().__init__(f"All providers failed for {task_id}: {detail}")


class ExecutionCoordinator:
    """Invokes provider adapters and records what was observed.

    Args:
        adapters: Adapter per concrete provider.
        tracker: Receives one observation per invocation.
        registry: Optional catalogue, used to hand task definitions to adapters.
        ledger: Optional cost ledger, charged for every outcome before it
                is recorded.
        timeout: Optional deadline in seconds per provider call. A missed
                 deadline cancels the call and yields a failed outcome.
        clock: Timestamp source for outcomes.
        timer: Monotonic timer used for response times.
    """

    def __init__(
        self,
        adapters: Mapping[ProviderId, ProviderAdapter],
        tracker: PerformanceTracker,
        registry: TaskRegistry | None = None,
        *,
        ledger: CostLedger | None = None,
        timeout: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._adapters = dict(adapters)
        self._tracker = tracker
        self._registry = registry
        self._ledger = ledger
        self._timeout = timeout
        self._clock = clock
        self._timer = timer

    async def execute(
        self,
        task_id: str,
        payload: dict[str, Any],
        provider_id: ProviderId,
    ) -> ExecutionOutcome:
        """Run the task on one provider.

        Adapter failures come back as ``succeeded=False`` outcomes; the
        outcome is always charged and recorded in the performance tracker.

        Raises:
            ValueError: If ``provider_id`` is ``auto`` or has no adapter.
            StoreError: If the metrics could not be persisted. The cost is
                        charged and the in-memory record updated regardless.
        """
        adapter = self._adapter_for(provider_id)
        outcome = await self._invoke(adapter, task_id, payload)
        await self._settle([outcome])
        return outcome

    async def execute_both(
        self,
        task_id: str,
        payload: dict[str, Any],
    ) -> DualOutcome:
        """Run the task on both providers concurrently.

        Both calls are issued together and awaited until both settle; one
        failing never cancels or delays the other. Both outcomes are
        recorded before returning.

        Returns:
            DualOutcome holding the successful outcome(s) and the failures.

        Raises:
            DualProviderError: If both providers failed.
            StoreError: If the metrics could not be persisted. Both outcomes
                        are still charged and recorded in memory first.
        """
        adapters = [self._adapter_for(p) for p in CONCRETE_PROVIDERS]
        results = await asyncio.gather(
            *(self._invoke(adapter, task_id, payload) for adapter in adapters),
            return_exceptions=True,
        )

        outcomes: list[ExecutionOutcome] = []
        for result in results:
            if isinstance(result, BaseException):
                # _invoke converts adapter errors, so only cancellation lands here
                raise result
            outcomes.append(result)

        await self._settle(outcomes)

        failures = {
            o.provider_id: o.error_detail or "unknown error"
            for o in outcomes if not o.succeeded
        }
        if len(failures) == len(outcomes):
            raise DualProviderError(task_id, failures)

        succeeded = {o.provider_id: o for o in outcomes if o.succeeded}
        return DualOutcome(
            quality=succeeded.get(ProviderId.QUALITY),
            fast=succeeded.get(ProviderId.FAST),
            failures=failures,
        )

    def _adapter_for(self, provider_id: ProviderId) -> ProviderAdapter:
        if not provider_id.is_concrete:
            raise ValueError("'auto' is not an execution target; resolve it first")
        adapter = self._adapters.get(provider_id)
        if adapter is None:
            raise ValueError(f"No adapter registered for provider {provider_id.value}")
        return adapter

    def _definition(self, task_id: str) -> TaskDefinition | None:
        return self._registry.lookup(task_id) if self._registry else None

    async def _invoke(
        self,
        adapter: ProviderAdapter,
        task_id: str,
        payload: dict[str, Any],
    ) -> ExecutionOutcome:
        provider_id = adapter.provider_id
        started = self._timer()
        try:
            call = adapter.invoke(task_id, payload, task=self._definition(task_id))
            if self._timeout is not None:
                result = await asyncio.wait_for(call, timeout=self._timeout)
            else:
                result = await call
            response = ProviderResponse.model_validate(result)
        except Exception as e:
            elapsed_ms = (self._timer() - started) * 1000
            detail = str(e) or type(e).__name__
            if isinstance(e, TimeoutError) and self._timeout is not None:
                detail = f"deadline of {self._timeout}s exceeded"
            logger.warning(
                "%s failed for %s after %.0fms: %s",
                adapter.display_name, task_id, elapsed_ms, detail,
            )
            return ExecutionOutcome(
                provider_id=provider_id,
                task_id=task_id,
                response_time_ms=elapsed_ms,
                timestamp=self._clock(),
                succeeded=False,
                error_detail=detail,
            )

        elapsed_ms = (self._timer() - started) * 1000
        logger.info(
            "%s completed %s in %.0fms (conf=%.2f, $%.4f)",
            adapter.display_name, task_id, elapsed_ms,
            response.confidence, response.cost_incurred,
        )
        return ExecutionOutcome(
            provider_id=provider_id,
            task_id=task_id,
            analysis_text=response.analysis_text,
            recommendations=list(response.recommendations),
            confidence=response.confidence,
            cost_incurred=response.cost_incurred,
            tokens_used=response.tokens_used,
            response_time_ms=elapsed_ms,
            timestamp=response.timestamp,
            succeeded=True,
        )

    async def _settle(self, outcomes: list[ExecutionOutcome]) -> None:
        """Charge and record every outcome, then re-raise the first store error."""
        if self._ledger is not None:
            for outcome in outcomes:
                self._ledger.charge(outcome.cost_incurred)

        first_error: StoreError | None = None
        for outcome in outcomes:
            try:
                await self._record(outcome)
            except StoreError as e:
                logger.warning(
                    "Could not persist metrics for %s/%s: %s",
                    outcome.task_id, outcome.provider_id.value, e,
                )
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    async def _record(self, outcome: ExecutionOutcome) -> None:
        await self._tracker.record(
            outcome.task_id,
            outcome.provider_id,
            Observation(
                cost=outcome.cost_incurred,
                confidence=outcome.confidence,
                response_time_ms=outcome.response_time_ms,
                success=outcome.succeeded,
                satisfaction=DEFAULT_SATISFACTION if outcome.succeeded else 0.0,
            ),
        )
