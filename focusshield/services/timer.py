"""
Countdown timer for focus sessions.

The timer is the single owner of its asyncio task handle. Any transition away
from "running" cancels the task before the state changes, and a tick that
arrives after cancellation is ignored.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class FocusTimer:
    def __init__(
        self,
        on_complete: Optional[Callable[[bool], None]] = None,
        on_tick: Optional[Callable[[int], None]] = None,
        interval: float = 1.0,
    ):
        # on_complete receives interrupted: False on natural expiry, True on stop()
        self.on_complete = on_complete
        self.on_tick = on_tick
        self.interval = interval
        self.state = TimerState.IDLE
        self.remaining = 0
        self.duration = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def progress(self) -> float:
        if not self.duration:
            return 0.0
        return (self.duration - self.remaining) / self.duration * 100

    def _cancel_task(self) -> None:
        if self._task is not None:
            task, self._task = self._task, None
            if task is not asyncio.current_task():
                task.cancel()

    def _transition(self, state: TimerState) -> None:
        if state is not TimerState.RUNNING:
            self._cancel_task()
        logger.debug("Timer %s -> %s", self.state.value, state.value)
        self.state = state

    def _schedule(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        # A task that lost ownership of the handle must not tick again
        while self.state is TimerState.RUNNING and self._task is asyncio.current_task():
            await asyncio.sleep(self.interval)
            if self._task is asyncio.current_task():
                self.tick()

    def start(self, duration_sec: int) -> None:
        """Start counting down. Must be called from a running event loop."""
        if self.state is TimerState.RUNNING:
            raise RuntimeError("Timer is already running")
        self.duration = duration_sec
        self.remaining = duration_sec
        self._transition(TimerState.RUNNING)
        self._schedule()

    def pause(self) -> None:
        if self.state is TimerState.RUNNING:
            self._transition(TimerState.PAUSED)

    def resume(self) -> None:
        if self.state is TimerState.PAUSED:
            self._transition(TimerState.RUNNING)
            self._schedule()

    def stop(self) -> None:
        """Manual stop: the session ends as interrupted."""
        if self.state in (TimerState.RUNNING, TimerState.PAUSED):
            self._transition(TimerState.IDLE)
            if self.on_complete:
                self.on_complete(True)

    def tick(self) -> None:
        if self.state is not TimerState.RUNNING:
            return
        self.remaining = max(0, self.remaining - 1)
        if self.on_tick:
            self.on_tick(self.remaining)
        if self.remaining == 0:
            self._transition(TimerState.COMPLETED)
            if self.on_complete:
                self.on_complete(False)

    def reset(self) -> None:
        self._transition(TimerState.IDLE)
        self.remaining = self.duration

    async def wait(self) -> None:
        """Wait until the countdown task finishes or is cancelled."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def close(self) -> None:
        """Teardown: release the scheduled task without ending the session."""
        self._cancel_task()
        if self.state is TimerState.RUNNING:
            self.state = TimerState.PAUSED
