"""duet provider layer.

Every provider call goes through the ProviderAdapter interface; the
shipped implementation is LiteLLMAdapter.
"""

from duet.providers.base import ProviderAdapter
from duet.providers.litellm_provider import LiteLLMAdapter
from duet.providers.parser import (
    HeuristicResponseParser,
    ParsedResponse,
    ResponseParser,
    extract_confidence,
    extract_recommendations,
)
from duet.providers.registry import build_adapters, load_providers

__all__ = [
    "HeuristicResponseParser",
    "LiteLLMAdapter",
    "ParsedResponse",
    "ProviderAdapter",
    "ResponseParser",
    "build_adapters",
    "extract_confidence",
    "extract_recommendations",
    "load_providers",
]
