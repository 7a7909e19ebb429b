# src/config/settings.py
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for completion-service, cache, rate-governor and
logging settings. Every field can be overridden by an environment
variable of the same name (case-insensitive).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === COMPLETION SERVICE ===
    llm_provider: str = "anthropic"
    llm_model: str = "claude-sonnet-4-20250514"
    llm_temperature: float = 0.01
    llm_max_tokens: int = 2000
    llm_timeout_s: float = 30.0
    llm_retry_attempts: int = 3
    llm_retry_base_delay_s: float = 1.0
    llm_retry_max_delay_s: float = 10.0

    # Provider credentials / endpoints
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    ollama_base_url: str = "http://localhost:11434"

    # Minimum completion confidence accepted before falling back
    confidence_threshold: float = 0.5

    # === RESULT CACHE ===
    cache_enabled: bool = True
    cache_file: Path = Path("~/.loadspec/cache/parse-cache.json")
    cache_ttl_minutes: float = 60.0
    cache_max_entries: int = 1000
    cache_max_entry_bytes: int = 100_000

    # === RATE GOVERNOR ===
    rate_max_per_minute: int = 60
    rate_max_per_hour: int = 1000
    rate_burst_size: int = 10

    # === FILE REFERENCES ===
    file_search_dirs: str = ""

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("llm_provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:  # noqa: N805
        return v.strip().lower()

    @field_validator("llm_temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:  # noqa: N805
        if not 0.0 <= v <= 2.0:
            raise ValueError("llm_temperature must be within [0, 2]")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not 0.0 <= self.confidence_threshold <= 1.0:
            errors.append("CONFIDENCE_THRESHOLD must be within [0, 1]")

        if self.rate_burst_size < 1:
            errors.append("RATE_BURST_SIZE must be >= 1")
        if self.rate_burst_size > self.rate_max_per_minute:
            errors.append("RATE_BURST_SIZE must be <= RATE_MAX_PER_MINUTE")
        if self.rate_max_per_minute > self.rate_max_per_hour:
            errors.append("RATE_MAX_PER_MINUTE must be <= RATE_MAX_PER_HOUR")

        if self.cache_ttl_minutes <= 0:
            errors.append("CACHE_TTL_MINUTES must be > 0")
        # One fingerprint writes a primary key plus up to three variant keys
        if self.cache_max_entries < 4:
            errors.append("CACHE_MAX_ENTRIES must be >= 4")
        if self.cache_max_entry_bytes < 1:
            errors.append("CACHE_MAX_ENTRY_BYTES must be >= 1")

        if self.llm_timeout_s <= 0:
            errors.append("LLM_TIMEOUT_S must be > 0")
        if self.llm_retry_attempts < 1:
            errors.append("LLM_RETRY_ATTEMPTS must be >= 1")
        if self.llm_retry_max_delay_s < self.llm_retry_base_delay_s:
            errors.append("LLM_RETRY_MAX_DELAY_S must be >= LLM_RETRY_BASE_DELAY_S")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def file_search_dirs_list(self) -> list[Path]:
        """Parse comma-separated search directories for @file references."""
        return [
            Path(d.strip()).expanduser()
            for d in self.file_search_dirs.split(",")
            if d.strip()
        ]

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_file).expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-call config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
