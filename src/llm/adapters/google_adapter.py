# src/llm/adapters/google_adapter.py
"""Google Gemini adapter implementing BaseLLMClient.

Uses the google-generativeai SDK. JSON output is requested through the
response MIME type.
"""

from __future__ import annotations

import time
from typing import Any

from loadspec.llm.base_client import BaseLLMClient
from loadspec.llm.models import CompletionRequest, CompletionResponse, TokenUsage


class GoogleAdapter(BaseLLMClient):
    """Google Gemini adapter."""

    def __init__(
        self,
        model: str = "gemini-1.5-flash",
        api_key: str = "",
        timeout_s: float | None = None,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._timeout_s = timeout_s

    def _build_config(self, request: CompletionRequest) -> dict[str, Any]:
        gen_config: dict[str, Any] = {
            "max_output_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.desired_format == "json":
            gen_config["response_mime_type"] = "application/json"
        return gen_config

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model, system_instruction=request.system)

        request_options = {"timeout": self._timeout_s} if self._timeout_s else None
        t0 = time.monotonic()
        resp = await model.generate_content_async(
            [{"role": "user", "parts": [{"text": request.prompt}]}],
            generation_config=self._build_config(request),
            request_options=request_options,
        )
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        return CompletionResponse(
            text=resp.text or "",
            token_usage=TokenUsage(
                input_tokens=getattr(usage, "prompt_token_count", 0) if usage else 0,
                output_tokens=getattr(usage, "candidates_token_count", 0) if usage else 0,
            ),
            provider="google",
            model=self._model,
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "google"
