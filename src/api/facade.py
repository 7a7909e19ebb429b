# src/api/facade.py
"""Public API facade: single entry point for command interpretation.

Usage:
    from loadspec.api.facade import parse_command
    outcome = await parse_command("send 5 GET requests to https://api.example.com/users")

Long-lived callers should build one coordinator with build_coordinator()
and reuse it so the cache and rate governor are shared across commands.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from loadspec.cache.cache_factory import create_cache_store
from loadspec.config.settings import Settings
from loadspec.llm.client_factory import UnsupportedProviderError, create_llm_client
from loadspec.llm.rate_governor import RateGovernor
from loadspec.parser.orchestrator import CompletionOrchestrator
from loadspec.pipeline.coordinator import PipelineCoordinator

if TYPE_CHECKING:
    from loadspec.cache.base_cache_store import BaseCacheStore
    from loadspec.core.models import ParseOutcome
    from loadspec.core.signals import TextSignalExtractor
    from loadspec.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

_UNSET = object()

# Providers that cannot be called without a credential.
_KEYED_PROVIDERS = {
    "anthropic": "anthropic_api_key",
    "openai": "openai_api_key",
    "google": "google_api_key",
    "gemini": "google_api_key",
    "openrouter": "openrouter_api_key",
}


def build_coordinator(
    settings: Settings | None = None,
    llm_client: BaseLLMClient | None = None,
    cache: BaseCacheStore | None | object = _UNSET,
    governor: RateGovernor | None | object = _UNSET,
    extractor: TextSignalExtractor | None = None,
) -> PipelineCoordinator:
    """Wire a coordinator from settings.

    Args:
        settings: Application settings. Loaded from .env if None.
        llm_client: Completion client. Built from settings if None; when the
            configured provider has no credential, every command goes to the
            fallback parser.
        cache: Result cache. Built from settings if omitted; None disables it.
        governor: Rate governor. Built from settings if omitted; None disables it.
        extractor: Text signal strategy shared by every component.
    """
    settings = settings or Settings()

    if llm_client is None:
        llm_client = _create_client(settings)
    orchestrator = (
        CompletionOrchestrator(llm_client, settings=settings, extractor=extractor)
        if llm_client is not None
        else None
    )

    if cache is _UNSET:
        cache = create_cache_store(settings)
    if governor is _UNSET:
        governor = RateGovernor(
            max_per_minute=settings.rate_max_per_minute,
            max_per_hour=settings.rate_max_per_hour,
            burst_size=settings.rate_burst_size,
        )

    return PipelineCoordinator(
        orchestrator,
        settings=settings,
        cache=cache,
        governor=governor,
        extractor=extractor,
    )


async def parse_command(
    command: str,
    settings: Settings | None = None,
    coordinator: PipelineCoordinator | None = None,
) -> ParseOutcome:
    """Interpret one natural-language command. Never raises.

    Args:
        command: Free-form load test description.
        settings: Used to build a coordinator when none is given.
        coordinator: Reused coordinator (shared cache and governor).

    Returns:
        ParseOutcome carrying a usable TestSpecification.
    """
    coordinator = coordinator or build_coordinator(settings)
    return await coordinator.parse(command)


def _create_client(settings: Settings) -> BaseLLMClient | None:
    key_field = _KEYED_PROVIDERS.get(settings.llm_provider)
    if key_field is not None and not getattr(settings, key_field):
        logger.warning(
            "%s not set; completion service disabled, using rule-based parsing",
            key_field.upper(),
        )
        return None
    try:
        return create_llm_client(settings)
    except UnsupportedProviderError as e:
        logger.warning("Completion service disabled: %s", e)
        return None
