"""
Simulation Sessions - Serialized Access to the Engines

A session owns the "current result" of one laboratory. UI events may
arrive faster than a computation completes, so requests go through a small
state machine:

    IDLE --submit--> COMPUTING --done--> IDLE

While COMPUTING, a new request is either queued (only the most recent one
is kept and runs as soon as the current computation finishes) or rejected
with SimulationBusyError, depending on the session's BusyPolicy.

Usage:
    from physiolab.simulation.session import SimulationSession
    from physiolab.simulation.tens_field import simulate_tens_field

    session = SimulationSession(simulate_tens_field, name="tens")
    session.subscribe(lambda result: print(result.risk_level))
    session.submit(params, tissue)
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable

from physiolab.physics.constants import PHANTOM_DEPTH, PHANTOM_HEIGHT, PHANTOM_WIDTH
from physiolab.simulation.mri import MRIParams, MRIResult, Volume, generate_phantom_volume, simulate_mri
from physiolab.simulation.tracing import TraceHook

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    COMPUTING = "computing"


class BusyPolicy(str, Enum):
    """What a session does with a request that arrives while computing."""

    QUEUE = "queue"
    REJECT = "reject"


class SimulationBusyError(RuntimeError):
    """Raised by a REJECT session that receives a request while computing."""


class SimulationSession:
    """
    Serializes invocations of one engine and publishes the latest result.

    Parameters
    ----------
    engine : callable
        Pure engine function, called as ``engine(*args, **kwargs)``.
    policy : BusyPolicy or str
        Handling of requests that arrive while computing.
    name : str
        Name used in log messages.
    trace : TraceHook, optional
        Forwarded to the engine as ``trace=``.
    """

    def __init__(
        self,
        engine: Callable[..., Any],
        policy: BusyPolicy | str = BusyPolicy.QUEUE,
        name: str = "simulation",
        trace: TraceHook | None = None,
    ) -> None:
        self.engine = engine
        self.policy = BusyPolicy(policy)
        self.name = name
        self.trace = trace

        self._lock = threading.Lock()
        self._state = SessionState.IDLE
        self._pending: tuple[tuple[Any, ...], dict[str, Any]] | None = None
        self._listeners: list[Callable[[Any], None]] = []

        self.current_result: Any = None
        self.completed_runs = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def subscribe(self, listener: Callable[[Any], None]) -> Callable[[], None]:
        """
        Call ``listener(result)`` whenever a new result is published.

        Returns
        -------
        callable
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def submit(self, *args: Any, **kwargs: Any) -> Any:
        """
        Request a computation.

        Returns
        -------
        object or None
            The latest published result once the session is idle again, or
            None if the request was queued behind a running computation.

        Raises
        ------
        SimulationBusyError
            If the session is computing and its policy is REJECT.
        """
        with self._lock:
            if self._state is SessionState.COMPUTING:
                if self.policy is BusyPolicy.REJECT:
                    raise SimulationBusyError(
                        f"Session '{self.name}' is busy; request rejected"
                    )
                if self._pending is not None:
                    logger.debug("%s: replacing queued request", self.name)
                self._pending = (args, kwargs)
                return None
            self._state = SessionState.COMPUTING

        try:
            request: tuple[tuple[Any, ...], dict[str, Any]] | None = (args, kwargs)
            while request is not None:
                self._run(*request)
                request = self._take_pending()
        except Exception:
            logger.error("%s: computation failed", self.name)
            with self._lock:
                self._pending = None
                self._state = SessionState.IDLE
            raise

        return self.current_result

    def _take_pending(self) -> tuple[tuple[Any, ...], dict[str, Any]] | None:
        with self._lock:
            request = self._pending
            self._pending = None
            if request is None:
                self._state = SessionState.IDLE
            return request

    def _compute(self, *args: Any, **kwargs: Any) -> Any:
        if self.trace is not None:
            kwargs.setdefault("trace", self.trace)
        return self.engine(*args, **kwargs)

    def _run(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        start = time.perf_counter()
        result = self._compute(*args, **kwargs)
        elapsed_ms = (time.perf_counter() - start) * 1000

        with self._lock:
            self.current_result = result
            self.completed_runs += 1
        logger.debug("%s: result published in %.1f ms", self.name, elapsed_ms)

        for listener in list(self._listeners):
            listener(result)


class MRISession(SimulationSession):
    """
    Session for the MRI lab that reuses the generated phantom.

    The volume is regenerated only when the phantom type or resolution
    changes; acquisition-parameter changes only re-run the signal step.
    """

    def __init__(
        self,
        resolution: tuple[int, int, int] = (PHANTOM_WIDTH, PHANTOM_HEIGHT, PHANTOM_DEPTH),
        policy: BusyPolicy | str = BusyPolicy.QUEUE,
        trace: TraceHook | None = None,
    ) -> None:
        super().__init__(simulate_mri, policy=policy, name="mri", trace=trace)
        self.resolution = tuple(resolution)
        self.volumes_generated = 0
        self._volume: Volume | None = None

    def submit(self, params: MRIParams) -> MRIResult | None:  # type: ignore[override]
        return super().submit(params)

    def _volume_for(self, params: MRIParams) -> Volume:
        width, height, depth = self.resolution
        volume = self._volume
        if (
            volume is None
            or volume.phantom_type is not params.phantom_type
            or (volume.width, volume.height, volume.depth) != (width, height, depth)
        ):
            logger.info(
                "mri: generating %s phantom (%dx%dx%d)",
                params.phantom_type.value,
                width,
                height,
                depth,
            )
            volume = generate_phantom_volume(params.phantom_type, width, height, depth)
            self._volume = volume
            self.volumes_generated += 1
        return volume

    def _compute(self, params: MRIParams, **kwargs: Any) -> MRIResult:
        if self.trace is not None:
            kwargs.setdefault("trace", self.trace)
        return simulate_mri(params, volume=self._volume_for(params), **kwargs)
