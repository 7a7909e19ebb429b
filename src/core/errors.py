# src/core/errors.py
"""Error taxonomy for the command interpretation pipeline.

Only TransportError and MalformedOutputError travel between stages; the
coordinator turns both into a fallback decision. Rate limiting is a
boolean routing signal and has no exception type.
"""

from __future__ import annotations


class LoadSpecError(Exception):
    """Base class for all pipeline errors."""


class TransportError(LoadSpecError):
    """Completion service unreachable, timed out or returned a server error.

    Raised by the retry wrapper once all attempts are exhausted.
    """

    def __init__(self, message: str, attempts: int = 1, last_error: Exception | None = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)


class MalformedOutputError(LoadSpecError):
    """Completion text is not JSON or does not match an accepted shape."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class SpecValidationError(LoadSpecError):
    """Specification is structurally valid but cannot be executed.

    Only strict helpers raise this; the pipeline repairs and downgrades
    confidence instead.
    """

    def __init__(self, message: str, issues: list | None = None):
        self.issues = issues or []
        super().__init__(message)


class CacheCorruptionError(LoadSpecError):
    """Persisted cache file could not be decoded."""


class CacheWriteError(LoadSpecError):
    """Persisting the cache table to disk failed."""
