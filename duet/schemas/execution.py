"""Execution schemas: adapter responses, outcomes, and routing decisions."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from duet.schemas.performance import clamp_unit
from duet.schemas.tasks import ProviderId


class RoutingOptions(BaseModel):
    """Per-request routing hints.

    ``cost_priority`` and ``quality_priority`` default to the router's
    ``cost_optimization`` and ``quality_first`` settings when left unset.
    """

    force_provider: ProviderId | None = None
    cost_priority: bool | None = None
    quality_priority: bool | None = None


class RoutingReason(StrEnum):
    """Which resolution rule produced a routing decision."""

    FORCED = "forced"
    UNKNOWN_TASK = "unknown_task"
    PINNED = "pinned"
    OVERRIDE = "override"
    HEURISTIC = "heuristic"
    SCORED = "scored"


class RoutingDecision(BaseModel):
    """Record of which provider was selected for a task and why."""

    task_id: str = Field(description="Requested task identifier")
    provider: ProviderId = Field(description="Selected concrete provider")
    reason: RoutingReason = Field(description="Resolution rule that decided")
    scores: dict[ProviderId, float] | None = Field(
        default=None, description="Weighted scores when the scoring rule decided",
    )
    rationale: str = Field(default="", description="Human-readable explanation")


class ProviderResponse(BaseModel):
    """What a provider adapter returns from a successful invocation."""

    analysis_text: str = Field(default="", description="Free-text analysis")
    recommendations: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, description="Self-reported confidence, 0-1")
    cost_incurred: float = Field(default=0.0, ge=0.0, description="USD cost of the call")
    tokens_used: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_unit(value)


class ExecutionOutcome(BaseModel):
    """Result of invoking one provider for one task.

    Failed invocations are represented with ``succeeded=False`` and an
    ``error_detail`` instead of raising.
    """

    provider_id: ProviderId
    task_id: str
    analysis_text: str = ""
    recommendations: list[str] = Field(default_factory=list)
    confidence: float = 0.0
    cost_incurred: float = Field(default=0.0, ge=0.0)
    tokens_used: int = Field(default=0, ge=0)
    response_time_ms: float = Field(default=0.0, ge=0.0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    succeeded: bool = True
    error_detail: str | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_unit(value)


class DualOutcome(BaseModel):
    """Settled results of running a task on both providers.

    Only successful outcomes are populated; failures are listed by provider.
    """

    quality: ExecutionOutcome | None = None
    fast: ExecutionOutcome | None = None
    failures: dict[ProviderId, str] = Field(default_factory=dict)

    @property
    def both_succeeded(self) -> bool:
        return self.quality is not None and self.fast is not None


class CreativeBrief(BaseModel):
    """Input for visual asset generation."""

    description: str = Field(min_length=1)
    target_audience: str = Field(min_length=1)
    platform: str = Field(min_length=1)
    style: str = ""


class VisualAsset(BaseModel):
    """A generated visual asset."""

    asset_ref: str = Field(description="URL or storage reference of the asset")
    cost: float = Field(default=0.0, ge=0.0)
    description: str = ""
