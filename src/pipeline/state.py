# src/pipeline/state.py
"""Per-command run state carried through the coordinator's state machine.

Records the visited states (the outcome trace), accumulated warnings and
the cache fingerprint. Every transition is checked against TRANSITIONS.
"""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, Field

from loadspec.cache.models import CommandFingerprint
from loadspec.logging.context import set_stage

ParseState = Literal[
    "start",
    "cache_lookup",
    "adapt_and_return",
    "rate_check",
    "completion_attempt",
    "enhance",
    "cache_write",
    "fallback",
    "return",
]

TRANSITIONS: dict[str, frozenset[str]] = {
    "start": frozenset({"cache_lookup"}),
    "cache_lookup": frozenset({"adapt_and_return", "rate_check"}),
    "adapt_and_return": frozenset({"return"}),
    "rate_check": frozenset({"fallback", "completion_attempt"}),
    "completion_attempt": frozenset({"enhance", "fallback"}),
    "enhance": frozenset({"cache_write", "fallback"}),
    "cache_write": frozenset({"return"}),
    "fallback": frozenset({"return"}),
    "return": frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """Raised when the coordinator attempts a transition not in TRANSITIONS."""


class ParseRun(BaseModel):
    """Mutable state of one coordinator invocation."""

    command: str
    command_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: ParseState = "start"
    trace: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    fingerprint: CommandFingerprint | None = None

    def enter(self, state: ParseState) -> None:
        """Move to state, recording it in the trace and the logging context."""
        if state not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"{self.state} -> {state}")
        self.state = state
        self.trace.append(state)
        set_stage(state)

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)
