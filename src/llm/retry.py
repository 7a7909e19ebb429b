# src/llm/retry.py
"""Bounded exponential backoff around completion-service transport calls.

Only transient transport failures (rate limit, timeout, connection, 5xx)
are retried. Anything else propagates unchanged on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from loadspec.core.errors import TransportError

logger = logging.getLogger(__name__)

TRANSIENT_ERROR_TYPES = frozenset({"rate_limit", "timeout", "connection", "server_error"})


@dataclass(frozen=True)
class RetryConfig:
    """Backoff policy for transport failures."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    max_delay_s: float = 10.0
    backoff_factor: float = 2.0
    jitter: bool = True


def classify_error(error: Exception) -> str:
    """Classify an exception into a retry error type."""
    msg = str(error).lower()
    name = type(error).__name__.lower()

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)) or "timeout" in name:
        return "timeout"
    if "ratelimit" in name or "429" in msg or "rate limit" in msg:
        return "rate_limit"
    if isinstance(error, ConnectionError) or "connection" in name or "connect" in msg:
        return "connection"
    if "internalserver" in name or "overloaded" in msg or any(
        code in msg for code in ("500", "502", "503", "504", "529")
    ):
        return "server_error"
    return "unknown"


def is_transient(error: Exception) -> bool:
    return classify_error(error) in TRANSIENT_ERROR_TYPES


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Delay before the retry following a failed attempt (0-based), capped."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return min(delay, config.max_delay_s)


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    config: RetryConfig | None = None,
    operation: str = "completion",
    **kwargs: Any,
) -> Any:
    """Execute an async function, retrying transient transport failures.

    Raises:
        TransportError: If every attempt failed with a transient error.
        Exception: Any non-transient error, unchanged, on first occurrence.
    """
    config = config or RetryConfig()
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error_type = classify_error(e)
            if error_type not in TRANSIENT_ERROR_TYPES:
                raise
            attempts += 1
            if attempts >= config.max_attempts:
                raise TransportError(
                    f"{operation} failed after {attempts} attempts ({error_type}): {e}",
                    attempts=attempts,
                    last_error=e,
                ) from e

            delay = compute_delay(config, attempts - 1)
            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.1fs",
                operation, error_type, attempts, config.max_attempts, delay,
            )
            await asyncio.sleep(delay)
