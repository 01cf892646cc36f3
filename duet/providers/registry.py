"""Provider registry and TOML configuration loader.

Loads provider definitions from providers.toml and builds one LiteLLM
adapter per concrete provider.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import ValidationError

from duet.providers.base import ProviderAdapter
from duet.providers.litellm_provider import LiteLLMAdapter
from duet.providers.parser import ResponseParser
from duet.schemas.providers import ProviderConfig
from duet.schemas.tasks import CONCRETE_PROVIDERS, ProviderId

# Default config directory relative to the duet package
_CONFIG_DIR = Path(__file__).parent.parent / "config"


def load_providers(config_path: Path | None = None) -> dict[ProviderId, ProviderConfig]:
    """Load provider definitions from a TOML file.

    Args:
        config_path: Path to providers.toml. Defaults to duet/config/providers.toml.

    Returns:
        Mapping of concrete ProviderId to ProviderConfig.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML is malformed or a concrete provider is missing.
    """
    path = config_path or _CONFIG_DIR / "providers.toml"
    if not path.exists():
        raise FileNotFoundError(f"Provider registry not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    section = raw.get("providers")
    if not section or not isinstance(section, dict):
        raise ValueError(f"No [providers] section found in {path}")

    configs: dict[ProviderId, ProviderConfig] = {}
    for key, entry in section.items():
        if not isinstance(entry, dict):
            continue
        try:
            config = ProviderConfig(provider_id=key, **entry)
        except ValidationError as e:
            raise ValueError(f"Invalid provider '{key}' in {path}: {e}") from e
        configs[config.provider_id] = config

    missing = [p.value for p in CONCRETE_PROVIDERS if p not in configs]
    if missing:
        raise ValueError(f"Missing provider definitions in {path}: {', '.join(missing)}")
    return configs


def build_adapters(
    configs: dict[ProviderId, ProviderConfig] | None = None,
    parser: ResponseParser | None = None,
    timeout: int = 120,
) -> dict[ProviderId, ProviderAdapter]:
    """Create a LiteLLM adapter for each provider config."""
    configs = configs if configs is not None else load_providers()
    return {
        provider_id: LiteLLMAdapter(config, parser=parser, timeout=timeout)
        for provider_id, config in configs.items()
    }
