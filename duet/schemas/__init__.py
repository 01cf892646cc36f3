"""duet schema definitions.

All Pydantic v2 models used across routing, execution, consensus,
performance tracking, and persistence.
"""

from duet.schemas.budget import BudgetPeriod, BudgetStatus, PeriodSpend
from duet.schemas.config import BudgetLimits, RouterConfig
from duet.schemas.consensus import (
    ConsensusResult,
    CostComparison,
    MergedRecommendation,
    MultiProviderInsight,
)
from duet.schemas.execution import (
    CreativeBrief,
    DualOutcome,
    ExecutionOutcome,
    ProviderResponse,
    RoutingDecision,
    RoutingOptions,
    RoutingReason,
    VisualAsset,
)
from duet.schemas.performance import Observation, PerformanceRecord
from duet.schemas.providers import ProviderConfig
from duet.schemas.tasks import (
    CONCRETE_PROVIDERS,
    Complexity,
    FocusArea,
    ProviderId,
    TaskDefinition,
)

__all__ = [
    "CONCRETE_PROVIDERS",
    "BudgetLimits",
    "BudgetPeriod",
    "BudgetStatus",
    "Complexity",
    "ConsensusResult",
    "CostComparison",
    "CreativeBrief",
    "DualOutcome",
    "ExecutionOutcome",
    "FocusArea",
    "MergedRecommendation",
    "MultiProviderInsight",
    "Observation",
    "PerformanceRecord",
    "PeriodSpend",
    "ProviderConfig",
    "ProviderId",
    "ProviderResponse",
    "RouterConfig",
    "RoutingDecision",
    "RoutingOptions",
    "RoutingReason",
    "TaskDefinition",
    "VisualAsset",
]
