"""Consensus merging of two independent provider outcomes.

Scores lexical agreement between the two analyses, pairs up similar
recommendations, and derives a consensus confidence that is discounted
when the providers disagree.
"""

from __future__ import annotations

import logging

from duet.consensus.similarity import jaccard_similarity, lexical_agreement
from duet.schemas.consensus import (
    MAX_MERGED_RECOMMENDATIONS,
    ConsensusResult,
    CostComparison,
    MergedRecommendation,
)
from duet.schemas.execution import ExecutionOutcome

logger = logging.getLogger(__name__)

# Recommendations must be strictly more similar than this to count as agreed
SIMILARITY_THRESHOLD = 0.6

# Consensus confidence = avg confidence * (floor + agreement * (1 - floor))
_CONFIDENCE_FLOOR = 0.7


class ConsensusEngine:
    """Merges two successful outcomes into one agreement-scored result."""

    def __init__(
        self,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        max_recommendations: int = MAX_MERGED_RECOMMENDATIONS,
    ) -> None:
        self._threshold = similarity_threshold
        self._max_recommendations = min(max_recommendations, MAX_MERGED_RECOMMENDATIONS)

    def merge(
        self,
        outcome_a: ExecutionOutcome,
        outcome_b: ExecutionOutcome,
    ) -> ConsensusResult:
        """Merge two outcomes.

        Raises:
            ValueError: If either outcome did not succeed. Partial results
                        are returned to callers without a consensus.
        """
        for outcome in (outcome_a, outcome_b):
            if not outcome.succeeded:
                raise ValueError(
                    f"Cannot build consensus from failed outcome of "
                    f"{outcome.provider_id.value}"
                )

        agreement = lexical_agreement(outcome_a.analysis_text, outcome_b.analysis_text)
        merged = self.merge_recommendations(outcome_a, outcome_b)

        avg_confidence = (outcome_a.confidence + outcome_b.confidence) / 2
        confidence = avg_confidence * (
            _CONFIDENCE_FLOOR + agreement * (1 - _CONFIDENCE_FLOOR)
        )

        logger.info(
            "Consensus %s/%s: agreement=%.2f confidence=%.2f (%d recommendations)",
            outcome_a.provider_id.value, outcome_b.provider_id.value,
            agreement, confidence, len(merged),
        )
        return ConsensusResult(
            outcome_a=outcome_a,
            outcome_b=outcome_b,
            agreement=agreement,
            merged_recommendations=merged,
            confidence=confidence,
            cost_comparison=compare_costs(
                outcome_a.cost_incurred, outcome_b.cost_incurred,
            ),
        )

    def merge_recommendations(
        self,
        outcome_a: ExecutionOutcome,
        outcome_b: ExecutionOutcome,
    ) -> list[MergedRecommendation]:
        """Pair recommendations across outcomes.

        Walks A's recommendations in order, marking each as agreed when its
        best match in B is similar enough, then appends B's recommendations
        that matched nothing in A. The list is cut to the configured maximum.
        """
        recs_a = outcome_a.recommendations
        recs_b = outcome_b.recommendations
        merged: list[MergedRecommendation] = []

        for rec_a in recs_a:
            best = max((jaccard_similarity(rec_a, rec_b) for rec_b in recs_b), default=0.0)
            if best > self._threshold:
                merged.append(MergedRecommendation(
                    text=rec_a,
                    agreed=True,
                    providers=[outcome_a.provider_id, outcome_b.provider_id],
                    similarity=best,
                ))
            else:
                merged.append(MergedRecommendation(
                    text=rec_a, providers=[outcome_a.provider_id], similarity=best,
                ))

        for rec_b in recs_b:
            best = max((jaccard_similarity(rec_a, rec_b) for rec_a in recs_a), default=0.0)
            if best <= self._threshold:
                merged.append(MergedRecommendation(
                    text=rec_b, providers=[outcome_b.provider_id], similarity=best,
                ))

        return merged[: self._max_recommendations]


def compare_costs(cost_a: float, cost_b: float) -> CostComparison:
    return CostComparison(cost_a=cost_a, cost_b=cost_b, delta=abs(cost_a - cost_b))
