# src/logging/context.py
"""Contextual logging support: attach command_id and pipeline stage to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set once per command interpretation, then per pipeline state.
_command_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "command_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    command_id: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(command_id=_command_id.get(), stage=_stage.get())


def set_command_context(command_id: str) -> None:
    """Set command-level context (called once per parse)."""
    _command_id.set(command_id)
    _stage.set(None)


def set_stage(stage: str | None) -> None:
    """Set the current pipeline state."""
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _command_id.set(None)
    _stage.set(None)
