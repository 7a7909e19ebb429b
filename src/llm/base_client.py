# src/llm/base_client.py
"""Abstract completion client interface.

Any backend (local model server or hosted API) satisfying complete() is
interchangeable. Adapters raise their SDK's own exceptions; the retry
layer decides which of them are transient.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from loadspec.llm.models import CompletionRequest, CompletionResponse


class BaseLLMClient(ABC):
    """Unified interface for all completion providers."""

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Text completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai, openrouter, google, ollama)."""
