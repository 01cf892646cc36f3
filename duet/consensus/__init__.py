"""Consensus building for dual-provider runs.

Provides lexical agreement scoring, recommendation pairing, and the
ConsensusEngine that merges two outcomes into one result.
"""

from duet.consensus.engine import SIMILARITY_THRESHOLD, ConsensusEngine, compare_costs
from duet.consensus.similarity import (
    jaccard_similarity,
    lexical_agreement,
    significant_words,
)

__all__ = [
    "SIMILARITY_THRESHOLD",
    "ConsensusEngine",
    "compare_costs",
    "jaccard_similarity",
    "lexical_agreement",
    "significant_words",
]
