"""duet — task routing and consensus across two AI providers."""

__version__ = "0.1.0"

from .execution import DualProviderError
from .router import Router
from .schemas import ProviderId, RouterConfig, RoutingOptions, TaskDefinition

__all__ = [
    "DualProviderError",
    "ProviderId",
    "Router",
    "RouterConfig",
    "RoutingOptions",
    "TaskDefinition",
]
