"""Performance tracking schemas.

PerformanceRecord holds the moving averages for one (task, provider) pair;
Observation is a single measured outcome folded into that record.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from duet.schemas.tasks import ProviderId


def clamp_unit(value: float) -> float:
    """Clamp a probability/score value into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


class Observation(BaseModel):
    """One measured execution result."""

    cost: float = Field(default=0.0, ge=0.0, description="USD spent on the call")
    confidence: float = Field(default=0.0, description="Reported confidence, 0-1")
    response_time_ms: float = Field(default=0.0, ge=0.0, description="Wall time in ms")
    success: bool = Field(description="Whether the provider call succeeded")
    satisfaction: float = Field(default=0.8, description="User satisfaction, 0-1")

    @field_validator("confidence", "satisfaction", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_unit(value)


class PerformanceRecord(BaseModel):
    """Historical moving-average metrics for a task on one provider."""

    task_id: str = Field(description="Task identifier")
    provider_id: ProviderId = Field(description="Concrete provider")
    avg_cost: float = Field(default=0.0, ge=0.0, description="Average USD cost per call")
    avg_confidence: float = Field(default=0.0, description="Average confidence, 0-1")
    avg_response_time_ms: float = Field(
        default=0.0, ge=0.0, description="Average response time in ms",
    )
    success_rate: float = Field(default=0.0, description="Fraction of successful calls")
    user_satisfaction: float = Field(default=0.0, description="Average satisfaction, 0-1")
    samples: int = Field(default=1, ge=0, description="Observations folded into the averages")

    @field_validator("avg_confidence", "success_rate", "user_satisfaction", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_unit(value)

    @field_validator("provider_id")
    @classmethod
    def _concrete_provider(cls, value: ProviderId) -> ProviderId:
        if not value.is_concrete:
            raise ValueError("performance is only tracked for concrete providers")
        return value
