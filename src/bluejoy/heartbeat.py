"""
Heartbeat scheduler: keeps the link from idling out.

The peripheral drops the pairing when no control point is written within its
idle window. The scheduler re-sends the last axis command once per period
unless an explicit send re-arms it first.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from .codec import AxisCommand
from .core import HEARTBEAT_PERIOD

logger = logging.getLogger(__name__)


class HeartbeatScheduler:
    """Periodic re-send of the last AxisCommand."""

    def __init__(
        self,
        send: Callable[[AxisCommand], None],
        period: Optional[float] = HEARTBEAT_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize a disarmed scheduler.

        Args:
            send: Called with the command to re-send when a period elapses
            period: Seconds between re-sends; None or <= 0 disables heartbeats
            clock: Monotonic time source
        """
        self._send = send
        self._period = period if period and period > 0 else None
        self._clock = clock
        self._last = AxisCommand()
        self._deadline: Optional[float] = None
        self._wakeup = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self._period is not None

    @property
    def period(self) -> Optional[float]:
        return self._period

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_command(self) -> AxisCommand:
        return self._last

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def arm(self, command: Optional[AxisCommand] = None) -> None:
        """Record an explicit send and push the deadline one period out.

        Args:
            command: New last axis command, if the send changed it
        """
        if command is not None:
            self._last = command
        if self._period is None:
            return
        self._deadline = self._clock() + self._period
        self._wakeup.set()

    def poll(self, now: Optional[float] = None) -> Optional[AxisCommand]:
        """Check whether a heartbeat is due.

        Returns:
            The command to re-send, or None if the deadline has not elapsed
        """
        if self._deadline is None or self._period is None:
            return None
        if now is None:
            now = self._clock()
        if now < self._deadline:
            return None

        # Keep a fixed cadence; only re-base when the loop fell a period behind
        deadline = self._deadline + self._period
        if deadline <= now:
            deadline = now + self._period
        self._deadline = deadline
        return self._last

    def start(self) -> None:
        """Arm and start the background heartbeat task."""
        if self._period is None:
            logger.debug("Heartbeat disabled")
            return
        if self.is_running:
            return
        self.arm()
        self._task = asyncio.create_task(self._run())
        logger.debug(f"Heartbeat started ({self._period:.2f}s)")

    def stop(self) -> None:
        """Disarm and cancel the background task. Safe to call repeatedly."""
        self._deadline = None
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Heartbeat stopped")

    async def _run(self) -> None:
        while True:
            self._wakeup.clear()
            deadline = self._deadline
            if deadline is None:
                await self._wakeup.wait()
                continue

            delay = deadline - self._clock()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                continue

            command = self.poll()
            if command is None:
                continue
            try:
                self._send(command)
            except Exception as e:
                logger.error(f"Heartbeat send error: {e}")
