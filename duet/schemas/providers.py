"""Provider configuration schema.

Loaded from ``duet/config/providers.toml``; one entry per concrete provider.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from duet.schemas.tasks import ProviderId


class ProviderConfig(BaseModel):
    """Model, credentials, and pricing for a concrete provider."""

    provider_id: ProviderId = Field(description="Which concrete provider this is")
    model: str = Field(description="LiteLLM model identifier")
    display_name: str = Field(description="Human-friendly model name")
    api_key_env: str = Field(description="Environment variable holding the API key")
    api_base: str | None = Field(default=None, description="Custom API base URL")
    cost_input: float = Field(default=0.0, ge=0.0, description="USD per 1M input tokens")
    cost_output: float = Field(default=0.0, ge=0.0, description="USD per 1M output tokens")
    max_tokens: int = Field(default=1500, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    prompt_template: str = Field(
        default="quality_analysis", description="Prompt template name under duet/prompts",
    )
    default_confidence: float = Field(
        default=0.7, ge=0.0, le=1.0,
        description="Confidence used when the response carries no CONFIDENCE marker",
    )
    visual_model: str | None = Field(
        default=None, description="Image model; only set for the fast provider",
    )
    visual_cost: float = Field(default=0.04, ge=0.0, description="USD per generated image")

    @field_validator("provider_id")
    @classmethod
    def _concrete(cls, value: ProviderId) -> ProviderId:
        if not value.is_concrete:
            raise ValueError("provider_id must be 'quality' or 'fast'")
        return value

    @property
    def supports_visual(self) -> bool:
        return self.visual_model is not None
