"""Single- and dual-provider execution with failure isolation."""

from duet.execution.coordinator import (
    DEFAULT_SATISFACTION,
    DualProviderError,
    ExecutionCoordinator,
)

__all__ = ["DEFAULT_SATISFACTION", "DualProviderError", "ExecutionCoordinator"]
