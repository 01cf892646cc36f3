"""Task catalogue schemas.

Defines provider identifiers, task complexity tiers, and the immutable
TaskDefinition entries that make up the task registry.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProviderId(StrEnum):
    """Provider identifiers.

    ``QUALITY`` and ``FAST`` are the two concrete providers. ``AUTO`` is a
    routing input only and can never be an execution target.
    """

    QUALITY = "quality"
    FAST = "fast"
    AUTO = "auto"

    @property
    def is_concrete(self) -> bool:
        return self is not ProviderId.AUTO


CONCRETE_PROVIDERS: tuple[ProviderId, ProviderId] = (ProviderId.QUALITY, ProviderId.FAST)


class Complexity(StrEnum):
    """Task complexity tier used by the default routing heuristic."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class FocusArea(StrEnum):
    """Analysis focus passed to the provider prompt."""

    PERFORMANCE = "performance"
    OPTIMIZATION = "optimization"
    CREATIVE = "creative"
    BUDGET = "budget"


class TaskDefinition(BaseModel):
    """A catalogue entry describing how a task type is routed.

    Created once when the registry is loaded and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Unique task identifier")
    name: str = Field(default="", description="Human-friendly task name")
    description: str = Field(default="", description="What the task produces")
    complexity: Complexity = Field(description="Complexity tier")
    primary_provider: ProviderId = Field(
        description="Pinned provider, or 'auto' for score-based selection",
    )
    fallback_provider: ProviderId | None = Field(
        default=None, description="Alternative provider for this task",
    )
    cost_efficiency_factor: float = Field(
        default=1.0,
        gt=0.0,
        description="Score multiplier: <1 cost-sensitive, >1 quality-first",
    )
    focus_area: FocusArea = Field(
        default=FocusArea.PERFORMANCE, description="Prompt focus for the analysis",
    )

    @field_validator("fallback_provider")
    @classmethod
    def _fallback_is_concrete(cls, value: ProviderId | None) -> ProviderId | None:
        if value is ProviderId.AUTO:
            raise ValueError("fallback_provider must be a concrete provider")
        return value

    @property
    def is_pinned(self) -> bool:
        """Whether the task always runs on its primary provider."""
        return self.primary_provider.is_concrete
