"""Abstract base class for provider adapters.

Defines the ProviderAdapter interface every concrete provider must
implement. The execution coordinator talks to providers exclusively
through this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from duet.schemas.execution import CreativeBrief, ProviderResponse, VisualAsset
from duet.schemas.providers import ProviderConfig
from duet.schemas.tasks import ProviderId, TaskDefinition


class ProviderAdapter(ABC):
    """Interface for a provider that can analyse a task payload.

    Initialized from a ProviderConfig loaded from providers.toml.
    Transport concerns (timeouts, retries, auth) belong to the adapter.
    """

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config

    # ── Identity ──────────────────────────────────────────────

    @property
    def provider_id(self) -> ProviderId:
        return self._config.provider_id

    @property
    def model_id(self) -> str:
        """LiteLLM model identifier used for calls."""
        return self._config.model

    @property
    def display_name(self) -> str:
        return self._config.display_name

    @property
    def config(self) -> ProviderConfig:
        return self._config

    # ── Capabilities ──────────────────────────────────────────

    @property
    def supports_visual(self) -> bool:
        """Whether generate_visual() is available on this adapter."""
        return self._config.supports_visual

    # ── Core interface ────────────────────────────────────────

    @abstractmethod
    async def invoke(
        self,
        task_id: str,
        payload: dict[str, Any],
        *,
        task: TaskDefinition | None = None,
    ) -> ProviderResponse:
        """Run the task against the provider and return its analysis.

        Args:
            task_id: Requested task id (may be absent from the catalogue).
            payload: Task input data (campaign metrics, briefs, ...).
            task: Catalogue definition, when the task id is known.

        Returns:
            ProviderResponse with analysis text, recommendations,
            confidence, cost, and token usage.

        Raises:
            TimeoutError: If the provider call times out.
            RuntimeError: If the provider call fails.
        """

    async def generate_visual(self, brief: CreativeBrief) -> VisualAsset:
        """Generate a visual asset from a creative brief.

        Raises:
            NotImplementedError: Unless the provider has a visual model.
        """
        raise NotImplementedError(
            f"{self.display_name} ({self.provider_id.value}) "
            f"does not support visual generation"
        )

    def calculate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        """Estimated USD cost for a token count."""
        input_cost = (prompt_tokens / 1_000_000) * self._config.cost_input
        output_cost = (completion_tokens / 1_000_000) * self._config.cost_output
        return input_cost + output_cost
