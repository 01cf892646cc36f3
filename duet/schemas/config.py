"""Router configuration schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from duet.schemas.tasks import ProviderId


class BudgetLimits(BaseModel):
    """Spend limits in USD."""

    model_config = ConfigDict(extra="forbid")

    daily: float = Field(default=50.0, ge=0.0, description="Daily spend limit")
    monthly: float = Field(default=1000.0, ge=0.0, description="Monthly spend limit")


class RouterConfig(BaseModel):
    """Mutable router configuration.

    Persisted after every change. Unknown fields are rejected so typos in
    ``configure()`` calls fail loudly instead of being stored silently.
    """

    model_config = ConfigDict(extra="forbid")

    default_provider: ProviderId = Field(
        default=ProviderId.AUTO,
        description="Provider for unknown tasks ('auto' resolves to quality)",
    )
    cost_optimization: bool = Field(
        default=True, description="Prefer cheaper providers when scoring",
    )
    quality_first: bool = Field(
        default=False, description="Add a confidence bonus when scoring",
    )
    budget_limits: BudgetLimits = Field(default_factory=BudgetLimits)
    per_task_override: dict[str, ProviderId] = Field(
        default_factory=dict,
        description="Task id -> provider for auto-routed tasks",
    )

    @field_validator("per_task_override")
    @classmethod
    def _overrides_are_concrete(
        cls, value: dict[str, ProviderId],
    ) -> dict[str, ProviderId]:
        for task_id, provider in value.items():
            if not provider.is_concrete:
                raise ValueError(
                    f"Override for '{task_id}' must name a concrete provider"
                )
        return value
