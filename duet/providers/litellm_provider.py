"""LiteLLM adapter implementing the ProviderAdapter interface.

Renders the task prompt, calls the configured model through LiteLLM's
unified API with retry and exponential backoff, and turns the free-text
answer into a ProviderResponse via a ResponseParser.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import UTC, datetime
from typing import Any

import litellm

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

from duet.prompts import render_prompt
from duet.providers.base import ProviderAdapter
from duet.providers.parser import HeuristicResponseParser, ResponseParser
from duet.schemas.execution import CreativeBrief, ProviderResponse, VisualAsset
from duet.schemas.providers import ProviderConfig
from duet.schemas.tasks import FocusArea, TaskDefinition

logger = logging.getLogger(__name__)

# Max attempts for transient failures
_MAX_RETRIES = 3
_BASE_BACKOFF = 1.0  # seconds

_DEFAULT_TIMEOUT = 120


def _short_error_reason(error: Exception) -> str:
    """Map a LiteLLM error to a concise, user-friendly reason."""
    error_str = str(error).lower()
    if "rate" in error_str or "429" in error_str:
        return "rate limit"
    if "overloaded" in error_str or "529" in error_str:
        return "overloaded"
    if "timeout" in error_str or isinstance(error, TimeoutError):
        return "timeout"
    if "503" in error_str or "unavailable" in error_str:
        return "service unavailable"
    if "500" in error_str or "internal" in error_str:
        return "server error"
    if "connection" in error_str:
        return "connection error"
    return str(error)[:80]


class LiteLLMAdapter(ProviderAdapter):
    """Provider adapter powered by LiteLLM.

    One instance per concrete provider. Visual generation is available
    when the config names a ``visual_model``.
    """

    def __init__(
        self,
        config: ProviderConfig,
        parser: ResponseParser | None = None,
        timeout: int = _DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(config)
        self._api_key = os.environ.get(config.api_key_env, "")
        self._parser = parser or HeuristicResponseParser()
        self._timeout = timeout

    async def invoke(
        self,
        task_id: str,
        payload: dict[str, Any],
        *,
        task: TaskDefinition | None = None,
    ) -> ProviderResponse:
        """Analyse ``payload`` for the task and return a ProviderResponse.

        Raises:
            TimeoutError: If every attempt times out.
            RuntimeError: If the call fails after all retries or on a
                          non-retryable error (auth, bad request).
        """
        prompt = self.build_prompt(task_id, payload, task)
        kwargs = self._build_completion_kwargs(
            [{"role": "user", "content": prompt}],
        )
        response = await self._call_with_retry(litellm.acompletion, kwargs)

        content = self._extract_content(response)
        parsed = self._parser.parse(content)

        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
        completion_tokens = getattr(usage, "completion_tokens", 0) or 0

        confidence = (
            parsed.confidence
            if parsed.confidence is not None
            else self._config.default_confidence
        )
        return ProviderResponse(
            analysis_text=content,
            recommendations=parsed.recommendations,
            confidence=confidence,
            cost_incurred=self.calculate_cost(prompt_tokens, completion_tokens),
            tokens_used=prompt_tokens + completion_tokens,
            timestamp=datetime.now(UTC),
        )

    async def generate_visual(self, brief: CreativeBrief) -> VisualAsset:
        """Generate one image for ``brief`` with the configured visual model."""
        if not self.supports_visual:
            return await super().generate_visual(brief)

        prompt = render_prompt("visual_brief", **brief.model_dump())
        kwargs: dict[str, Any] = {
            "model": self._config.visual_model,
            "prompt": prompt,
            "n": 1,
            "timeout": float(self._timeout),
        }
        if self._api_key:
            kwargs["api_key"] = self._api_key
        if self._config.api_base:
            kwargs["api_base"] = self._config.api_base

        response = await self._call_with_retry(litellm.aimage_generation, kwargs)
        data = getattr(response, "data", None) or []
        if not data:
            raise RuntimeError(f"{self._config.visual_model} returned no image")
        image = data[0]
        asset_ref = getattr(image, "url", None) or getattr(image, "b64_json", None) or ""
        return VisualAsset(
            asset_ref=asset_ref,
            cost=self._config.visual_cost,
            description=getattr(image, "revised_prompt", None) or brief.description,
        )

    def build_prompt(
        self,
        task_id: str,
        payload: dict[str, Any],
        task: TaskDefinition | None,
    ) -> str:
        """Render this provider's prompt template for the task."""
        return render_prompt(
            self._config.prompt_template,
            task_name=task.name if task and task.name else task_id,
            description=task.description if task else "",
            focus_area=(task.focus_area if task else FocusArea.PERFORMANCE).value,
            payload=json.dumps(payload, indent=2, default=str),
        )

    def _build_completion_kwargs(self, messages: list[dict[str, str]]) -> dict:
        """Build the kwargs dict for litellm.acompletion."""
        kwargs: dict = {
            "model": self._config.model,
            "messages": messages,
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "timeout": float(self._timeout),
        }
        if self._api_key:
            kwargs["api_key"] = self._api_key
        if self._config.api_base:
            kwargs["api_base"] = self._config.api_base
        return kwargs

    async def _call_with_retry(self, call, kwargs: dict) -> Any:
        """Call a LiteLLM coroutine function with exponential backoff.

        Retries on transient errors (rate limits, server errors, timeouts).
        Non-retryable errors (auth, bad request) are raised immediately.

        Raises:
            TimeoutError: If all retries time out.
            RuntimeError: If all retries fail with non-timeout errors.
        """
        last_error: Exception | None = None

        for attempt in range(_MAX_RETRIES):
            try:
                return await call(**kwargs)
            except TimeoutError:
                last_error = TimeoutError(
                    f"Call to {kwargs.get('model')} timed out after "
                    f"{kwargs.get('timeout')}s (attempt {attempt + 1}/{_MAX_RETRIES})"
                )
            except litellm.AuthenticationError:
                raise RuntimeError(
                    f"Authentication failed for {kwargs.get('model')}. "
                    f"Check that {self._config.api_key_env} is set correctly."
                ) from None
            except litellm.BadRequestError as e:
                raise RuntimeError(f"Bad request to {kwargs.get('model')}: {e}") from e
            except (
                litellm.RateLimitError,
                litellm.ServiceUnavailableError,
                litellm.InternalServerError,
                litellm.APIConnectionError,
            ) as e:
                last_error = e

            if attempt < _MAX_RETRIES - 1:
                backoff = _BASE_BACKOFF * (2**attempt)
                logger.warning(
                    "Retry %d/%d for %s (%s, backoff: %.1fs)",
                    attempt + 1,
                    _MAX_RETRIES,
                    self._config.display_name,
                    _short_error_reason(last_error),
                    backoff,
                )
                await asyncio.sleep(backoff)

        if isinstance(last_error, TimeoutError):
            raise last_error
        raise RuntimeError(
            f"Call to {kwargs.get('model')} failed after {_MAX_RETRIES} "
            f"retries: {last_error}"
        ) from last_error

    def _extract_content(self, response: Any) -> str:
        """Extract text content from a LiteLLM completion response."""
        if not response.choices:
            return ""
        message = response.choices[0].message
        return message.content or "" if message else ""
