"""Consensus schemas for dual-provider runs.

ConsensusResult is the merged view of two successful outcomes;
MultiProviderInsight is what the router hands back from the dual path,
with the consensus present only when both providers succeeded.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator

from duet.schemas.execution import ExecutionOutcome
from duet.schemas.performance import clamp_unit
from duet.schemas.tasks import ProviderId

MAX_MERGED_RECOMMENDATIONS = 8


class MergedRecommendation(BaseModel):
    """A recommendation in the merged list, tagged with its provenance."""

    text: str = Field(description="Recommendation text")
    agreed: bool = Field(default=False, description="Both providers proposed it")
    providers: list[ProviderId] = Field(
        default_factory=list, description="Providers that proposed it",
    )
    similarity: float = Field(
        default=0.0, description="Best word-level Jaccard similarity found",
    )

    @property
    def label(self) -> str:
        """Display form, e.g. ``Both providers recommend: ...``."""
        if self.agreed:
            return f"Both providers recommend: {self.text}"
        source = self.providers[0].value.capitalize() if self.providers else "Unknown"
        return f"{source} suggests: {self.text}"


class CostComparison(BaseModel):
    """Spend of each provider on the same task."""

    cost_a: float = Field(default=0.0, ge=0.0)
    cost_b: float = Field(default=0.0, ge=0.0)
    delta: float = Field(default=0.0, ge=0.0, description="|cost_a - cost_b|")


class ConsensusResult(BaseModel):
    """Agreement-scored merge of two provider outcomes."""

    outcome_a: ExecutionOutcome | None = None
    outcome_b: ExecutionOutcome | None = None
    agreement: float = Field(default=0.0, description="Lexical overlap ratio, 0-1")
    merged_recommendations: list[MergedRecommendation] = Field(
        default_factory=list, max_length=MAX_MERGED_RECOMMENDATIONS,
    )
    confidence: float = Field(default=0.0, description="Consensus confidence, 0-1")
    cost_comparison: CostComparison = Field(default_factory=CostComparison)

    @field_validator("agreement", "confidence", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_unit(value)


class MultiProviderInsight(BaseModel):
    """Router output for a task run against both providers."""

    task_id: str
    quality: ExecutionOutcome | None = None
    fast: ExecutionOutcome | None = None
    consensus: ConsensusResult | None = None
    cost_comparison: CostComparison = Field(default_factory=CostComparison)
    failures: dict[ProviderId, str] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
