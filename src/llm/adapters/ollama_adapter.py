# src/llm/adapters/ollama_adapter.py
"""Ollama local model adapter implementing BaseLLMClient.

Uses the ollama Python SDK; format="json" constrains output when JSON is
requested.
"""

from __future__ import annotations

import time
from typing import Any

from loadspec.llm.base_client import BaseLLMClient
from loadspec.llm.models import CompletionRequest, CompletionResponse, TokenUsage


class OllamaAdapter(BaseLLMClient):
    """Ollama local inference adapter."""

    def __init__(
        self,
        model: str = "llama3",
        host: str = "http://localhost:11434",
        timeout_s: float | None = None,
        **kwargs: Any,
    ):
        self._model = model
        self._host = host
        self._timeout_s = timeout_s

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        import ollama

        client = ollama.AsyncClient(host=self._host, timeout=self._timeout_s)
        msgs: list[dict[str, str]] = []
        if request.system:
            msgs.append({"role": "system", "content": request.system})
        msgs.append({"role": "user", "content": request.prompt})

        options: dict[str, Any] = {
            "num_predict": request.max_tokens,
            "temperature": request.temperature,
        }
        kwargs: dict[str, Any] = {"model": self._model, "messages": msgs, "options": options}
        if request.desired_format == "json":
            kwargs["format"] = "json"

        t0 = time.monotonic()
        resp = await client.chat(**kwargs)
        latency = int((time.monotonic() - t0) * 1000)

        return CompletionResponse(
            text=resp["message"]["content"],
            token_usage=TokenUsage(
                input_tokens=resp.get("prompt_eval_count", 0) or 0,
                output_tokens=resp.get("eval_count", 0) or 0,
            ),
            provider="ollama",
            model=self._model,
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "ollama"
