"""Durable router configuration.

Holds the single RouterConfig, merges partial updates from configure(),
and rewrites the ``router_config`` blob after every effective change.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from duet.persistence.store import CONFIG_KEY, BlobStore, StoreError
from duet.schemas.config import BudgetLimits, RouterConfig
from duet.tasks.registry import TaskRegistry

logger = logging.getLogger(__name__)


class ConfigStore:
    """Mutable router configuration persisted through a BlobStore."""

    def __init__(
        self,
        store: BlobStore,
        registry: TaskRegistry,
        config: RouterConfig | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._config = self._drop_unknown_overrides(config or RouterConfig())

    @classmethod
    async def load(cls, store: BlobStore, registry: TaskRegistry) -> ConfigStore:
        """Read the stored configuration once at startup.

        Stored fields are layered over the defaults. A missing blob yields
        the defaults; an unreadable or corrupt one is logged and ignored.
        """
        config = RouterConfig()
        try:
            raw = await store.read(CONFIG_KEY)
            if raw is not None:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise ValueError("stored router config is not an object")
                config = RouterConfig.model_validate({**config.model_dump(), **data})
        except (StoreError, ValueError) as e:
            # json.JSONDecodeError and ValidationError are ValueErrors
            logger.warning("Failed to load router config, using defaults: %s", e)
            config = RouterConfig()
        return cls(store, registry, config)

    def get_config(self) -> RouterConfig:
        """Return a deep copy of the current configuration."""
        return self._config.model_copy(deep=True)

    async def configure(self, **changes: Any) -> RouterConfig:
        """Merge ``changes`` into the configuration and persist the result.

        ``budget_limits`` may be given partially (e.g. ``{"daily": 20}``);
        every other field replaces the current value. Calling with values
        identical to the current ones changes nothing and writes nothing.

        Raises:
            ValueError: If a key is not a RouterConfig field.
            ValidationError: If a value is invalid.
        """
        unknown = sorted(set(changes) - set(RouterConfig.model_fields))
        if unknown:
            raise ValueError(f"Unknown router config keys: {', '.join(unknown)}")

        merged = self._config.model_dump()
        for name, value in changes.items():
            if name == "budget_limits":
                if isinstance(value, BudgetLimits):
                    value = value.model_dump()
                merged["budget_limits"] = {**merged["budget_limits"], **value}
            else:
                merged[name] = value

        updated = self._drop_unknown_overrides(RouterConfig.model_validate(merged))
        if updated == self._config:
            return self.get_config()

        self._config = updated
        await self._store.write(CONFIG_KEY, updated.model_dump_json())
        logger.info("Router configured: %s", updated.model_dump(mode="json"))
        return self.get_config()

    def _drop_unknown_overrides(self, config: RouterConfig) -> RouterConfig:
        overrides = config.per_task_override
        unknown = [task_id for task_id in overrides if task_id not in self._registry]
        if not unknown:
            return config
        logger.warning("Ignoring overrides for unknown tasks: %s", ", ".join(unknown))
        kept = {k: v for k, v in overrides.items() if k in self._registry}
        return config.model_copy(update={"per_task_override": kept})
