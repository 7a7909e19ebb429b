# src/llm/models.py
"""Completion service contract: CompletionRequest, TokenUsage, CompletionResponse."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class CompletionRequest(BaseModel):
    """Provider-agnostic completion request."""

    prompt: str
    system: str | None = None
    temperature: float = 0.01
    max_tokens: int = 2000
    desired_format: Literal["json", "text"] = "json"


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class CompletionResponse(BaseModel):
    """Normalized response from any completion provider."""

    text: str
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    provider: str
    model: str = ""
    latency_ms: int = 0
    raw_response: Any = None
