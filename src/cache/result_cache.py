# src/cache/result_cache.py
"""JSON-file backed result cache with TTL and file-dependency invalidation.

The whole table lives in memory (insertion-ordered) and is rewritten to a
single JSON document after every mutation. Entries are evicted lazily when
a read finds them expired or stale, and oldest-first when a write would
exceed capacity. A missing or corrupt file loads as an empty cache.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from loadspec.cache.base_cache_store import BaseCacheStore
from loadspec.cache.models import CacheEntry, CacheLookupResult, CommandFingerprint
from loadspec.core.errors import CacheCorruptionError, CacheWriteError
from loadspec.core.models import TestSpecification

logger = logging.getLogger(__name__)


class ResultCache(BaseCacheStore):
    """Persistent parse-result cache keyed by command fingerprints."""

    def __init__(
        self,
        cache_file: Path | str,
        ttl_minutes: float = 60.0,
        max_entries: int = 1000,
        max_entry_bytes: int = 100_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = Path(cache_file).expanduser()
        self._ttl_s = ttl_minutes * 60
        self._max_entries = max_entries
        self._max_entry_bytes = max_entry_bytes
        self._clock = clock
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._entries: dict[str, CacheEntry] = self._load()

    # --- Public API ---

    def get(self, fingerprint: CommandFingerprint) -> CacheLookupResult:
        """Return the first valid entry for the primary key, then each variant key."""
        with self._lock:
            stale: list[str] = []
            result = CacheLookupResult()
            candidates = [("primary", fingerprint.primary_key)] + [
                ("variant", key) for key in fingerprint.variant_keys
            ]
            for level, key in candidates:
                entry = self._entries.get(key)
                if entry is None:
                    continue
                reason = self._invalid_reason(entry)
                if reason is not None:
                    logger.debug("Evicting cache key %s: %s", key, reason)
                    stale.append(key)
                    continue
                result = CacheLookupResult(hit_level=level, matched_key=key, entry=entry)
                break

            if stale:
                for key in stale:
                    self._entries.pop(key, None)
                try:
                    self._persist()
                except CacheWriteError as e:
                    logger.warning("Cache eviction not persisted: %s", e)

            if result.is_hit:
                self._hits += 1
            else:
                self._misses += 1
            return result

    def set(
        self,
        fingerprint: CommandFingerprint,
        spec: TestSpecification,
        file_dependencies: list[str] | None = None,
    ) -> bool:
        """Store spec under the primary key and every variant key.

        Returns:
            False when the serialized entry exceeds the size cap.

        Raises:
            CacheWriteError: If the table cannot be persisted.
        """
        entry = CacheEntry(
            spec=spec,
            created_at=self._clock(),
            **self._snapshot_dependencies(file_dependencies or []),
        )
        size = len(json.dumps(entry.to_wire()).encode("utf-8"))
        if size > self._max_entry_bytes:
            logger.info(
                "Not caching %s: entry is %d bytes (cap %d)",
                fingerprint.primary_key, size, self._max_entry_bytes,
            )
            return False

        keys = [fingerprint.primary_key, *fingerprint.variant_keys]
        with self._lock:
            # Re-inserting moves the keys to the newest position
            for key in keys:
                self._entries.pop(key, None)
            # Never evicts keys of the fingerprint being written
            overflow = len(self._entries) + len(keys) - self._max_entries
            for oldest in list(self._entries)[:max(overflow, 0)]:
                del self._entries[oldest]
                logger.debug("Evicted oldest cache key %s", oldest)
            for key in keys:
                self._entries[key] = entry
            self._persist()
        return True

    def clear(self) -> None:
        """Remove every entry and persist the empty table."""
        with self._lock:
            self._entries.clear()
            self._persist()

    def cleanup(self) -> int:
        """Drop every expired or stale entry now. Returns the number removed."""
        with self._lock:
            stale = [k for k, e in self._entries.items() if self._invalid_reason(e)]
            for key in stale:
                del self._entries[key]
            if stale:
                self._persist()
            return len(stale)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            created = [e.created_at for e in self._entries.values()]
            return {
                "path": str(self._path),
                "entries": len(self._entries),
                "max_entries": self._max_entries,
                "ttl_minutes": self._ttl_s / 60,
                "hits": self._hits,
                "misses": self._misses,
                "oldest_created_at": min(created) if created else None,
                "newest_created_at": max(created) if created else None,
            }

    # --- Internal helpers ---

    def _invalid_reason(self, entry: CacheEntry) -> str | None:
        if self._clock() - entry.created_at > self._ttl_s:
            return "expired"
        for path in entry.file_dependencies:
            try:
                mtime = os.stat(path).st_mtime
            except OSError:
                return f"dependency missing: {path}"
            recorded = entry.file_dependency_mod_times.get(path)
            if recorded is None or mtime > recorded:
                return f"dependency modified: {path}"
        return None

    @staticmethod
    def _snapshot_dependencies(paths: list[str]) -> dict[str, Any]:
        dependencies: list[str] = []
        mod_times: dict[str, float] = {}
        for raw in paths:
            path = str(Path(raw).expanduser().resolve())
            try:
                mod_times[path] = os.stat(path).st_mtime
            except OSError:
                logger.warning("Cache dependency not found, not tracked: %s", raw)
                continue
            dependencies.append(path)
        return {"file_dependencies": dependencies, "file_dependency_mod_times": mod_times}

    def _load(self) -> dict[str, CacheEntry]:
        if not self._path.exists():
            return {}
        try:
            return self._read_table()
        except CacheCorruptionError as e:
            logger.warning("Cache file %s unreadable, starting empty: %s", self._path, e)
            return {}

    def _read_table(self) -> dict[str, CacheEntry]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CacheCorruptionError(str(e)) from e
        if not isinstance(raw, dict):
            raise CacheCorruptionError("top-level value is not an object")

        entries: dict[str, CacheEntry] = {}
        for key, value in raw.items():
            try:
                entries[key] = CacheEntry.model_validate(value)
            except ValidationError as e:
                logger.debug("Skipping invalid cache entry %s: %s", key, e)
        return entries

    def _persist(self) -> None:
        table = {key: entry.to_wire() for key, entry in self._entries.items()}
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(table, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise CacheWriteError(f"Failed to write cache file {self._path}: {e}") from e
