# tests/unit/cache/test_unit_cache_factory.py
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

from loadspec.cache.cache_factory import create_cache_store
from loadspec.cache.result_cache import ResultCache
from loadspec.config.settings import Settings


class TestCreateCacheStore:
    def test_default_result_cache(self, settings):
        store = create_cache_store(settings)
        assert isinstance(store, ResultCache)
        assert store.stats()["path"] == str(settings.cache_path)

    def test_limits_from_settings(self, tmp_path):
        s = Settings(
            _env_file=None,
            cache_file=tmp_path / "c.json",
            cache_ttl_minutes=5,
            cache_max_entries=7,
        )
        stats = create_cache_store(s).stats()
        assert stats["ttl_minutes"] == 5
        assert stats["max_entries"] == 7

    def test_disabled(self, tmp_path):
        s = Settings(_env_file=None, cache_enabled=False, cache_file=tmp_path / "c.json")
        assert create_cache_store(s) is None
