# src/llm/adapters/openai_adapter.py
"""OpenAI GPT adapter implementing BaseLLMClient.

Uses the official openai SDK with JSON mode when JSON is requested. Any
OpenAI-compatible endpoint (OpenRouter) is reached through base_url.
"""

from __future__ import annotations

import time
from typing import Any

from loadspec.llm.base_client import BaseLLMClient
from loadspec.llm.models import CompletionRequest, CompletionResponse, TokenUsage


class OpenAIAdapter(BaseLLMClient):
    """OpenAI GPT adapter."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str = "",
        timeout_s: float | None = None,
        base_url: str | None = None,
        provider: str = "openai",
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._base_url = base_url
        self._provider = provider

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        import openai

        client = openai.AsyncOpenAI(
            api_key=self._api_key or None, base_url=self._base_url,
            timeout=self._timeout_s, max_retries=0,
        )
        oai_messages: list[dict[str, Any]] = []
        if request.system:
            oai_messages.append({"role": "system", "content": request.system})
        oai_messages.append({"role": "user", "content": request.prompt})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": oai_messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.desired_format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        t0 = time.monotonic()
        resp = await client.chat.completions.create(**kwargs)
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        usage = resp.usage
        return CompletionResponse(
            text=choice.message.content or "",
            token_usage=TokenUsage(
                input_tokens=usage.prompt_tokens if usage else 0,
                output_tokens=usage.completion_tokens if usage else 0,
            ),
            provider=self._provider,
            model=self._model,
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return self._provider
