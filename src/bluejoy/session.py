"""
Per-connection control session.

Built when the link becomes Ready and discarded on teardown. It owns the
actuator state, the heartbeat and one outbound queue drained by a single
writer task, so user input and heartbeat re-sends reach the wire in the order
they were produced.
"""

import asyncio
import logging
import time
from typing import Callable, Iterable, List, Optional

from .actuator import ActuatorStateMachine, Button, Toggle, Write
from .codec import AxisCommand, ProtocolGeneration, axis_command, encode_axis_command
from .connection import ConnectionManager
from .core import HEARTBEAT_PERIOD, Role
from .errors import WriteResult
from .heartbeat import HeartbeatScheduler

logger = logging.getLogger(__name__)


class ControlSession:
    """Serializes all writes for one Ready connection."""

    def __init__(
        self,
        manager: ConnectionManager,
        generation: ProtocolGeneration = ProtocolGeneration.CURRENT,
        heartbeat_period: Optional[float] = HEARTBEAT_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._manager = manager
        self._generation = generation
        self.actuator = ActuatorStateMachine()
        self.heartbeat = HeartbeatScheduler(self._on_heartbeat, heartbeat_period, clock)
        self._axis = AxisCommand()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None
        self._closed = False
        self._on_write: Optional[Callable] = None

    @property
    def axis(self) -> AxisCommand:
        """Last axis command sent or scheduled."""
        return self._axis

    @property
    def generation(self) -> ProtocolGeneration:
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def set_on_write(self, callback: Callable) -> None:
        """Set callback for completed writes.

        Args:
            callback: Function called with (Write, WriteResult)
        """
        self._on_write = callback

    def start(self) -> None:
        """Start the writer task and the heartbeat."""
        if self._closed or self._writer is not None:
            return
        self._writer = asyncio.create_task(self._write_loop())
        self.heartbeat.start()

    def close(self) -> None:
        """Stop the heartbeat, cancel the writer and drop pending writes."""
        if self._closed:
            return
        self._closed = True
        self.heartbeat.stop()

        writer, self._writer = self._writer, None
        if writer is not None:
            writer.cancel()

        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.debug(f"Dropped {dropped} pending writes")

    async def flush(self) -> None:
        """Wait until every queued write has been attempted."""
        if self._closed:
            return
        await self._queue.join()

    # ========== Input ==========

    def on_axis_changed(self, x: float, y: float) -> AxisCommand:
        """Quantize and send a new axis position."""
        command = axis_command(x, y, self._generation)
        self._axis = command
        self._submit(self._axis_writes(command))
        return command

    def on_button(self, button: Button, pressed: bool) -> List[Write]:
        writes = self.actuator.button(button, pressed)
        self._submit(writes)
        return writes

    def on_toggle(self, toggle: Toggle) -> List[Write]:
        writes = self.actuator.toggle(toggle)
        self._submit(writes)
        return writes

    def on_reset(self) -> List[Write]:
        """Reset the actuators, pulse the mode channel and center the axes."""
        self._axis = AxisCommand()
        writes = self.actuator.reset() + self._axis_writes(self._axis)
        self._submit(writes)
        return writes

    # ========== Internals ==========

    def _axis_writes(self, command: AxisCommand) -> List[Write]:
        payload_x, payload_y = encode_axis_command(command, self._generation)
        return [
            Write(Role.AXIS_X, payload_x, Role.AXIS_X.acknowledged),
            Write(Role.AXIS_Y, payload_y, Role.AXIS_Y.acknowledged),
        ]

    def _submit(self, writes: Iterable[Write], explicit: bool = True) -> None:
        writes = list(writes)
        if not writes:
            return
        if self._closed:
            logger.debug("Session closed, dropping writes")
            return
        for write in writes:
            self._queue.put_nowait(write)
        if explicit:
            self.heartbeat.arm(self._axis)

    def _on_heartbeat(self, command: AxisCommand) -> None:
        logger.debug(f"Heartbeat re-send x={command.x} y={command.y}")
        self._submit(self._axis_writes(command), explicit=False)

    async def _write_loop(self) -> None:
        while True:
            write = await self._queue.get()
            try:
                result = await self._manager.write(
                    write.role, write.payload, response=write.response
                )
                if result is not WriteResult.SUCCESS:
                    logger.debug(f"{write.role.name} write: {result.value}")
                if self._on_write:
                    try:
                        self._on_write(write, result)
                    except Exception as e:
                        logger.error(f"Write callback error: {e}")
            finally:
                self._queue.task_done()
