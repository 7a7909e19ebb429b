# tests/unit/cache/test_models.py
"""Tests for cache/models.py."""

from __future__ import annotations

from loadspec.cache.models import CacheEntry, CacheLookupResult


class TestCacheEntry:
    def test_wire_keys(self, sample_spec):
        entry = CacheEntry(
            spec=sample_spec,
            created_at=1700000000.0,
            file_dependencies=["/tmp/p.json"],
            file_dependency_mod_times={"/tmp/p.json": 1699999999.0},
        )
        wire = entry.to_wire()
        assert set(wire) == {"spec", "createdAt", "fileDependencies", "fileDependencyModTimes"}
        assert CacheEntry.model_validate(wire) == entry

    def test_dependencies_optional_on_input(self, sample_spec):
        entry = CacheEntry.model_validate({"spec": sample_spec.to_wire(), "createdAt": 1.0})
        assert entry.file_dependencies == []


class TestCacheLookupResult:
    def test_miss(self):
        assert CacheLookupResult().is_hit is False

    def test_hit(self, sample_spec):
        result = CacheLookupResult(
            hit_level="variant",
            matched_key="var:GET:a.io/x:0123456789abcdef",
            entry=CacheEntry(spec=sample_spec, created_at=1.0),
        )
        assert result.is_hit
