"""Process lifecycle: in-flight request tracking and graceful shutdown.

Shutdown is a one-way state machine:

    RUNNING -> DRAINING -> TERMINATED_CLEAN | TERMINATED_FORCED

DRAINING is entered once, on the first termination signal. Entering it starts
a force timer that races the connection drain; if the timer wins, the process
exits with status 1.
"""

import asyncio
import logging
import os
import threading
from enum import Enum
from typing import Callable

import uvicorn

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED_CLEAN = "terminated_clean"
    TERMINATED_FORCED = "terminated_forced"


class ShutdownManager:
    def __init__(
        self,
        grace_period: float,
        exit_func: Callable[[int], None] = os._exit,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.grace_period = grace_period
        self._exit_func = exit_func
        self._timer_factory = timer_factory
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()
        self._state = LifecycleState.RUNNING
        self._in_flight = 0
        self._idle: asyncio.Event | None = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def request_started(self) -> None:
        self._in_flight += 1

    def request_finished(self) -> None:
        self._in_flight -= 1
        if self._in_flight == 0 and self._idle is not None:
            self._idle.set()

    async def wait_for_drain(self) -> None:
        """Wait until no requests are in flight."""
        while self._in_flight > 0:
            self._idle = asyncio.Event()
            await self._idle.wait()

    def begin_shutdown(self) -> bool:
        """Enter DRAINING and start the force timer. Returns False if already shutting down."""
        with self._lock:
            if self._state is not LifecycleState.RUNNING:
                return False
            self._state = LifecycleState.DRAINING
            self._timer = self._timer_factory(self.grace_period, self.force_shutdown)
            self._timer.daemon = True
            self._timer.start()

        logger.info(
            "Shutdown requested, draining %d in-flight request(s) (grace period %ss)",
            self._in_flight,
            self.grace_period,
        )
        return True

    def complete(self) -> int:
        """Mark the drain finished and return the process exit status."""
        with self._lock:
            if self._state is LifecycleState.TERMINATED_FORCED:
                return 1
            if self._timer is not None:
                self._timer.cancel()
            self._state = LifecycleState.TERMINATED_CLEAN

        logger.info("All connections drained, shutdown complete")
        return 0

    def force_shutdown(self) -> None:
        with self._lock:
            if self._state is not LifecycleState.DRAINING:
                return
            self._state = LifecycleState.TERMINATED_FORCED

        logger.error(
            "Connections did not drain within %ss, forcing shutdown (%d request(s) in flight)",
            self.grace_period,
            self._in_flight,
        )
        self._exit_func(1)


class GracefulServer(uvicorn.Server):
    """uvicorn server that reports signals and drain progress to a ShutdownManager."""

    def __init__(self, config: uvicorn.Config, lifecycle: ShutdownManager):
        super().__init__(config)
        self.lifecycle = lifecycle

    def handle_exit(self, sig, frame) -> None:
        # Signals are not re-raised after serve() returns: a clean drain exits 0
        if self.lifecycle.begin_shutdown():
            self.should_exit = True
        else:
            # Second signal while draining: don't wait for the grace period
            self.lifecycle.force_shutdown()

    async def shutdown(self, sockets=None) -> None:
        await super().shutdown(sockets=sockets)
        await self.lifecycle.wait_for_drain()
