"""
Remote controller facade for BLE joystick peripherals.

Exposes the Scanner UI and Input Surface entry points, builds a control
session whenever the link becomes Ready and tears it down, heartbeat first,
whenever the link leaves Ready. Presentation code subscribes to the
callbacks here and never feeds state back into protocol decisions.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

from .actuator import ActuatorState, Button, Toggle
from .codec import AxisCommand
from .config import Settings
from .connection import ConnectionManager, LinkState
from .errors import WriteResult
from .session import ControlSession

logger = logging.getLogger(__name__)


class RemoteController:
    """Drives one peripheral from joystick, button and toggle input."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        manager: Optional[ConnectionManager] = None,
    ) -> None:
        """Initialize controller with no device connection.

        Args:
            settings: Engine settings (defaults when None)
            manager: Connection manager (a bleak-backed one when None)
        """
        self.settings = settings or Settings()
        self.manager = manager or ConnectionManager(
            connect_timeout=self.settings.connect_timeout
        )
        self._session: Optional[ControlSession] = None

        # Callbacks
        self._on_device_discovered: Optional[Callable] = None
        self._on_state_changed: Optional[Callable] = None
        self._on_actuator_changed: Optional[Callable] = None
        self._on_error: Optional[Callable] = None
        self._on_write: Optional[Callable] = None

        self.manager.set_on_state_changed(self._on_link_state)
        self.manager.set_on_device_discovered(self._on_discovered)
        self.manager.set_on_error(self._on_link_error)

    @property
    def state(self) -> LinkState:
        return self.manager.state

    @property
    def is_ready(self) -> bool:
        return self._session is not None and self.manager.is_ready

    @property
    def session(self) -> Optional[ControlSession]:
        return self._session

    @property
    def discovered_devices(self) -> Dict[str, str]:
        return self.manager.discovered_devices

    @property
    def actuator_state(self) -> Optional[ActuatorState]:
        """Discrete control state, if a session is active."""
        if self._session is None:
            return None
        return self._session.actuator.state

    @property
    def last_axis(self) -> Optional[AxisCommand]:
        if self._session is None:
            return None
        return self._session.axis

    def get_status(self) -> dict:
        """Get current link and control state.

        Returns:
            Dictionary with link, reason, device, axis, actuator and heartbeat
        """
        device_id = self.manager.peripheral_id
        device = None
        if device_id:
            name = self.discovered_devices.get(device_id)
            device = f"{name} ({device_id})" if name else device_id

        return {
            "link": self.manager.state,
            "reason": self.manager.reason,
            "device": device,
            "axis": self.last_axis,
            "actuator": self.actuator_state,
            "heartbeat": self.settings.heartbeat_period,
        }

    def set_on_device_discovered(self, callback: Callable) -> None:
        """Set callback for discovered devices.

        Args:
            callback: Function called with (device id, display name)
        """
        self._on_device_discovered = callback

    def set_on_connection_state_changed(self, callback: Callable) -> None:
        """Set callback for link state changes.

        Args:
            callback: Function called with (LinkState, reason or None)
        """
        self._on_state_changed = callback

    def set_on_actuator_changed(self, callback: Callable) -> None:
        """Set callback for actuator state changes.

        Args:
            callback: Function called with the new ActuatorState
        """
        self._on_actuator_changed = callback

    def set_on_error(self, callback: Callable) -> None:
        """Set callback for user-visible errors.

        Args:
            callback: Function called with the BlueJoyError instance
        """
        self._on_error = callback

    def set_on_write(self, callback: Callable) -> None:
        """Set callback for completed writes.

        Args:
            callback: Function called with (Write, WriteResult)
        """
        self._on_write = callback

    # ========== Scanner UI ==========

    async def start_scan(self) -> bool:
        return await self.manager.start_scan()

    async def stop_scan(self) -> None:
        await self.manager.stop_scan()

    async def select_device(self, device_id: str) -> bool:
        """Connect to a scanned device.

        Returns:
            True if the peripheral is Ready for commands
        """
        return await self.manager.connect(device_id)

    async def scan(self, timeout: Optional[float] = None) -> Dict[str, str]:
        """Scan for a fixed time and return the named devices found.

        Args:
            timeout: Seconds to scan (settings.scan_timeout when None)
        """
        if not await self.start_scan():
            return {}
        await asyncio.sleep(self.settings.scan_timeout if timeout is None else timeout)
        devices = self.discovered_devices
        await self.stop_scan()
        return devices

    async def disconnect(self) -> None:
        """Disconnect from device."""
        await self.manager.disconnect("user")

    # ========== Input Surface ==========

    def on_axis_changed(self, x: float, y: float) -> Optional[AxisCommand]:
        """Send a new joystick position, x and y normalized to [-1, 1]."""
        session = self._require_session("axis")
        if session is None:
            return None
        return session.on_axis_changed(x, y)

    def on_button(self, button: Button, pressed: bool) -> None:
        session = self._require_session(button.value)
        if session is not None:
            session.on_button(button, pressed)

    def on_toggle(self, toggle: Toggle) -> None:
        session = self._require_session(toggle.value)
        if session is not None:
            session.on_toggle(toggle)

    def on_reset(self) -> None:
        session = self._require_session("reset")
        if session is not None:
            session.on_reset()

    async def flush(self) -> None:
        """Wait for queued writes to reach the transport."""
        if self._session is not None:
            await self._session.flush()

    def _require_session(self, what: str) -> Optional[ControlSession]:
        if self._session is None:
            logger.debug(f"Ignoring {what} input: not connected")
        return self._session

    # ========== Link events ==========

    def _on_link_state(self, state: LinkState, reason: Optional[str]) -> None:
        if state is LinkState.READY:
            self._open_session()
        else:
            self._close_session()

        if self._on_state_changed:
            try:
                self._on_state_changed(state, reason)
            except Exception as e:
                logger.error(f"State callback error: {e}")

    def _open_session(self) -> None:
        self._close_session()
        session = ControlSession(
            self.manager,
            generation=self.settings.generation,
            heartbeat_period=self.settings.heartbeat_period,
        )
        session.actuator.set_on_changed(self._forward_actuator)
        session.set_on_write(self._forward_write)
        self._session = session
        session.start()
        logger.debug("Control session started")

    def _close_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.close()
            logger.debug("Control session closed")

    def _on_discovered(self, device_id: str, name: str) -> None:
        if self._on_device_discovered:
            try:
                self._on_device_discovered(device_id, name)
            except Exception as e:
                logger.error(f"Discovery callback error: {e}")

    def _on_link_error(self, error: Exception) -> None:
        if self._on_error:
            try:
                self._on_error(error)
            except Exception as e:
                logger.error(f"Error callback error: {e}")

    def _forward_actuator(self, state: ActuatorState) -> None:
        if self._on_actuator_changed:
            try:
                self._on_actuator_changed(state)
            except Exception as e:
                logger.error(f"Actuator callback error: {e}")

    def _forward_write(self, write, result: WriteResult) -> None:  # type: ignore[no-untyped-def]
        if self._on_write:
            try:
                self._on_write(write, result)
            except Exception as e:
                logger.error(f"Write callback error: {e}")
