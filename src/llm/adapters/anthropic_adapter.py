# src/llm/adapters/anthropic_adapter.py
"""Anthropic Claude adapter implementing BaseLLMClient.

Uses the official anthropic SDK, imported on first call. JSON output is
requested through the system prompt since the Messages API has no plain
JSON mode.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from loadspec.llm.base_client import BaseLLMClient
from loadspec.llm.models import CompletionRequest, CompletionResponse, TokenUsage

logger = logging.getLogger(__name__)

_JSON_INSTRUCTION = "Respond with a single valid JSON document and nothing else."


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        timeout_s: float | None = None,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout_s = timeout_s
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            try:
                import anthropic
            except ImportError as e:
                raise ImportError(
                    "anthropic package required: pip install 'loadspec[anthropic]'"
                ) from e
            kwargs: dict[str, Any] = {"api_key": self._api_key or None}
            if self._timeout_s is not None:
                kwargs["timeout"] = self._timeout_s
            # Retries are owned by loadspec.llm.retry
            self.__client = anthropic.AsyncAnthropic(max_retries=0, **kwargs)
        return self.__client

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Text completion via Anthropic Messages API."""
        kwargs = self._build_kwargs(request)

        start = time.monotonic()
        response = await self._client.messages.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        return CompletionResponse(
            text=self._extract_text(response),
            token_usage=TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
            provider="anthropic",
            model=response.model,
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    # --- Internal helpers ---

    def _build_kwargs(self, request: CompletionRequest) -> dict[str, Any]:
        system = request.system or ""
        if request.desired_format == "json":
            system = f"{system}\n\n{_JSON_INSTRUCTION}".strip()
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if system:
            kwargs["system"] = system
        return kwargs

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Concatenate text blocks from the response content."""
        return "".join(
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        )
