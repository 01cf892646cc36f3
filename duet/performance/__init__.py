"""Moving-average performance tracking per task and provider."""

from duet.performance.tracker import HISTORY_WEIGHT, PerformanceTracker

__all__ = ["HISTORY_WEIGHT", "PerformanceTracker"]
