# src/llm/rate_governor.py
"""Admission control in front of the completion service.

Keeps one deque of admission timestamps pruned to the last hour. A request
is admitted only when the burst (per second), per-minute and per-hour caps
all have room; admission records the timestamp under the same lock so two
concurrent callers cannot both take the last slot. The governor never
queues: a refusal tells the caller to take the fallback path.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable

logger = logging.getLogger(__name__)

_SECOND = 1.0
_MINUTE = 60.0
_HOUR = 3600.0


class RateGovernor:
    """Sliding-window rate limiter with burst, minute and hour caps."""

    def __init__(
        self,
        max_per_minute: int = 60,
        max_per_hour: int = 1000,
        burst_size: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_per_minute = max_per_minute
        self._max_per_hour = max_per_hour
        self._burst_size = burst_size
        self._clock = clock
        self._timestamps: deque[float] = deque()
        self._lock = threading.Lock()
        self._refused = 0

    def can_make_request(self) -> bool:
        """Admit and record one request if every cap has room."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            blocked = self._blocking_window(now)
            if blocked is not None:
                self._refused += 1
                logger.info("Completion call refused: %s cap reached", blocked)
                return False
            self._timestamps.append(now)
            return True

    def get_wait_time(self) -> float:
        """Seconds until the per-minute cap frees a slot (0 when not blocked)."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            in_minute = [t for t in self._timestamps if now - t < _MINUTE]
            if len(in_minute) < self._max_per_minute:
                return 0.0
            return max(0.0, in_minute[0] + _MINUTE - now)

    def reset(self) -> None:
        with self._lock:
            self._timestamps.clear()
            self._refused = 0

    def stats(self) -> dict[str, Any]:
        with self._lock:
            now = self._clock()
            self._prune(now)
            return {
                "last_second": self._count_since(now, _SECOND),
                "last_minute": self._count_since(now, _MINUTE),
                "last_hour": len(self._timestamps),
                "burst_size": self._burst_size,
                "max_per_minute": self._max_per_minute,
                "max_per_hour": self._max_per_hour,
                "refused": self._refused,
            }

    # --- Internal helpers ---

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= _HOUR:
            self._timestamps.popleft()

    def _count_since(self, now: float, window: float) -> int:
        return sum(1 for t in self._timestamps if now - t < window)

    def _blocking_window(self, now: float) -> str | None:
        if len(self._timestamps) >= self._max_per_hour:
            return "hourly"
        if self._count_since(now, _MINUTE) >= self._max_per_minute:
            return "per-minute"
        if self._count_since(now, _SECOND) >= self._burst_size:
            return "burst"
        return None
