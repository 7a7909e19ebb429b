# src/llm/client_factory.py
"""Factory: instantiate the completion client from provider name.

Adapters are imported lazily so only the selected provider's SDK needs
to be installed.
"""

from __future__ import annotations

import importlib
import logging

from loadspec.config.settings import Settings
from loadspec.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "loadspec.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "openai": "loadspec.llm.adapters.openai_adapter.OpenAIAdapter",
    "ollama": "loadspec.llm.adapters.ollama_adapter.OllamaAdapter",
    "google": "loadspec.llm.adapters.google_adapter.GoogleAdapter",
    "gemini": "loadspec.llm.adapters.google_adapter.GoogleAdapter",
    "openrouter": "loadspec.llm.adapters.openai_adapter.OpenAIAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    settings: Settings | None = None,
    provider: str | None = None,
    model: str | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the correct adapter from settings.

    Args:
        settings: Application settings (provider, model, credentials).
        provider: Overrides settings.llm_provider.
        model: Overrides settings.llm_model.
        **kwargs: Additional provider-specific arguments.

    Returns:
        Configured BaseLLMClient instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    settings = settings or Settings()
    provider = (provider or settings.llm_provider).lower()
    model = model or settings.llm_model

    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    init_kwargs.setdefault("timeout_s", settings.llm_timeout_s)
    if provider == "anthropic":
        init_kwargs.setdefault("api_key", settings.anthropic_api_key)
    elif provider == "openai":
        init_kwargs.setdefault("api_key", settings.openai_api_key)
    elif provider in ("google", "gemini"):
        init_kwargs.setdefault("api_key", settings.google_api_key)
    elif provider == "openrouter":
        init_kwargs.setdefault("api_key", settings.openrouter_api_key)
        init_kwargs.setdefault("base_url", settings.openrouter_base_url)
        init_kwargs.setdefault("provider", "openrouter")
    elif provider == "ollama":
        init_kwargs.setdefault("host", settings.ollama_base_url)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def available_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
