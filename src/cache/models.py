# src/cache/models.py
"""Cache domain models: CommandFingerprint, CacheEntry, CacheLookupResult."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from loadspec.core.models import TestSpecification, WireModel


class CommandFingerprint(BaseModel):
    """Cache keys derived from one raw command.

    The primary key is salted with method and domain; variant keys
    progressively generalize the command for fuzzy reuse.
    """

    primary_key: str
    variant_keys: list[str] = Field(default_factory=list)
    normalized: str
    method: str
    domain: str | None = None


class CacheEntry(WireModel):
    """Single persisted parse result. created_at is epoch seconds."""

    spec: TestSpecification
    created_at: float
    file_dependencies: list[str] = Field(default_factory=list)
    file_dependency_mod_times: dict[str, float] = Field(default_factory=dict)


class CacheLookupResult(BaseModel):
    """Result of a primary-then-variant key lookup."""

    hit_level: Literal["primary", "variant"] | None = None
    matched_key: str | None = None
    entry: CacheEntry | None = None

    @property
    def is_hit(self) -> bool:
        return self.entry is not None
