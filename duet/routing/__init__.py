"""Provider routing for duet.

Selects the provider for a task from pins, overrides, and weighted
scoring over performance history; owns the durable router config.
"""

from duet.routing.config_store import ConfigStore
from duet.routing.scoring import default_provider_for, pick_by_score, score_provider
from duet.routing.selector import ProviderSelector

__all__ = [
    "ConfigStore",
    "ProviderSelector",
    "default_provider_for",
    "pick_by_score",
    "score_provider",
]
