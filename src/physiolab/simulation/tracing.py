"""
Trace Hooks - Opt-in Diagnostics for the Simulation Engines

Engines are pure functions: they do not log or print. Callers that want
diagnostics pass a trace hook, which receives named events with a payload
of plain values.

Usage:
    import logging
    from physiolab.simulation.tracing import LoggingTrace
    from physiolab.simulation.mri import simulate_mri

    result = simulate_mri(params, trace=LoggingTrace(logging.getLogger("mri")))
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TraceHook(Protocol):
    """
    Protocol for engine trace hooks.

    Examples
    --------
    >>> events = []
    >>> def collect(event, payload):
    ...     events.append(event)
    >>> isinstance(collect, TraceHook)
    True
    """

    def __call__(self, event: str, payload: dict[str, Any]) -> None:
        ...


def emit(trace: TraceHook | None, event: str, **payload: Any) -> None:
    """Send an event to ``trace`` if one was supplied."""
    if trace is not None:
        trace(event, payload)


class LoggingTrace:
    """Trace hook forwarding events to a logger."""

    def __init__(self, logger: logging.Logger, level: int = logging.DEBUG) -> None:
        self.logger = logger
        self.level = level

    def __call__(self, event: str, payload: dict[str, Any]) -> None:
        if self.logger.isEnabledFor(self.level):
            details = ", ".join(f"{key}={value!r}" for key, value in payload.items())
            self.logger.log(self.level, "%s: %s", event, details)


class RecordingTrace:
    """Trace hook that keeps every event in memory, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, dict(payload)))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]
