# src/cache/base_cache_store.py
"""Abstract result cache interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from loadspec.cache.models import CacheLookupResult, CommandFingerprint
from loadspec.core.models import TestSpecification


class BaseCacheStore(ABC):
    """Unified interface for parse-result caches."""

    @abstractmethod
    def get(self, fingerprint: CommandFingerprint) -> CacheLookupResult:
        """Look up the primary key, then each variant key."""

    @abstractmethod
    def set(
        self,
        fingerprint: CommandFingerprint,
        spec: TestSpecification,
        file_dependencies: list[str] | None = None,
    ) -> bool:
        """Store a spec under every key of the fingerprint. False if rejected."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""

    @abstractmethod
    def size(self) -> int:
        """Number of stored keys."""

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Summary counters for diagnostics."""
