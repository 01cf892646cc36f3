"""Provider scoring and the no-history heuristic.

Each function is pure: it takes the task, the provider's performance
record, and the effective priorities, and returns a score or a provider.
"""

from __future__ import annotations

from duet.schemas.performance import PerformanceRecord
from duet.schemas.tasks import Complexity, ProviderId, TaskDefinition

# Normalization ceilings: responses at or above 10s, or costs at or
# above $1, earn nothing on those factors.
_RESPONSE_TIME_CEILING_MS = 10_000.0
_COST_CEILING = 1.0

_CONFIDENCE_WEIGHT = 0.3
_SUCCESS_WEIGHT = 0.2
_SATISFACTION_WEIGHT = 0.2
_RESPONSE_TIME_WEIGHT = 0.1
_COST_WEIGHT = 0.1
_COST_PRIORITY_WEIGHT = 0.3
_QUALITY_BONUS_WEIGHT = 0.2


def score_provider(
    record: PerformanceRecord | None,
    task: TaskDefinition,
    *,
    cost_priority: bool,
    quality_priority: bool,
) -> float:
    """Weighted score in [0, 1] for one provider on one task.

    A provider with no record scores 0.
    """
    if record is None:
        return 0.0

    score = (
        record.avg_confidence * _CONFIDENCE_WEIGHT
        + record.success_rate * _SUCCESS_WEIGHT
        + record.user_satisfaction * _SATISFACTION_WEIGHT
    )

    response_time_score = max(
        0.0, 1 - record.avg_response_time_ms / _RESPONSE_TIME_CEILING_MS,
    )
    score += response_time_score * _RESPONSE_TIME_WEIGHT

    cost_score = max(0.0, 1 - record.avg_cost / _COST_CEILING)
    cost_weight = _COST_PRIORITY_WEIGHT if cost_priority else _COST_WEIGHT
    score += cost_score * cost_weight

    if quality_priority:
        score += record.avg_confidence * _QUALITY_BONUS_WEIGHT

    score *= task.cost_efficiency_factor
    return min(score, 1.0)


def pick_by_score(quality_score: float, fast_score: float) -> ProviderId:
    """Quality wins only with a strictly higher score; ties go to fast."""
    return ProviderId.QUALITY if quality_score > fast_score else ProviderId.FAST


def default_provider_for(task: TaskDefinition, cost_optimization: bool) -> ProviderId:
    """Complexity-based routing used when neither provider has history."""
    if task.complexity is Complexity.COMPLEX:
        return ProviderId.QUALITY
    if task.complexity is Complexity.SIMPLE:
        return ProviderId.FAST
    return ProviderId.FAST if cost_optimization else ProviderId.QUALITY
