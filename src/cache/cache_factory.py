# src/cache/cache_factory.py
"""Factory for the result cache."""

from __future__ import annotations

import logging

from loadspec.cache.base_cache_store import BaseCacheStore
from loadspec.config.settings import Settings

logger = logging.getLogger(__name__)


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore | None:
    """Instantiate the configured result cache.

    Args:
        settings: Application settings. Loaded from .env if None.

    Returns:
        Configured BaseCacheStore, or None when caching is disabled.
    """
    settings = settings or Settings()
    if not settings.cache_enabled:
        logger.debug("Result cache disabled")
        return None

    from loadspec.cache.result_cache import ResultCache

    return ResultCache(
        cache_file=settings.cache_path,
        ttl_minutes=settings.cache_ttl_minutes,
        max_entries=settings.cache_max_entries,
        max_entry_bytes=settings.cache_max_entry_bytes,
    )
