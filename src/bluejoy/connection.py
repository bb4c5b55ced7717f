"""
Connection manager for a single BLE joystick peripheral.

Owns the link lifecycle: scanning, connecting, resolving the control points
into an endpoint registry, writing, and teardown. All state transitions run
on the asyncio event loop; bleak delivers its detection and disconnect
callbacks on that same loop.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from .core import AXIS_ROLES, CONNECT_TIMEOUT, CONTROL_SERVICE_UUID, Role
from .errors import (
    DiscoveryFailed,
    EndpointMissing,
    LinkUnavailable,
    WriteFailed,
    WriteResult,
)
from .registry import Endpoint, EndpointRegistry

logger = logging.getLogger(__name__)


class LinkState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    RESOLVING = "resolving"
    READY = "ready"
    DISCONNECTED = "disconnected"


@dataclass
class ConnectionSession:
    """One connection attempt to one peripheral."""

    peripheral_id: str
    client: Any
    registry: EndpointRegistry = field(default_factory=EndpointRegistry)


class ConnectionManager:
    """Manages discovery, connection and writes to one peripheral."""

    CONTROL_SERVICE_UUID = CONTROL_SERVICE_UUID

    def __init__(
        self,
        connect_timeout: float = CONNECT_TIMEOUT,
        scanner_factory: Callable[..., Any] = BleakScanner,
        client_factory: Callable[..., Any] = BleakClient,
    ) -> None:
        """Initialize manager in the Idle state.

        Args:
            connect_timeout: Seconds allowed for link establishment
            scanner_factory: Builds the scanner (bleak's BleakScanner by default)
            client_factory: Builds the GATT client (bleak's BleakClient by default)
        """
        self._connect_timeout = connect_timeout
        self._scanner_factory = scanner_factory
        self._client_factory = client_factory

        self._state = LinkState.IDLE
        self._reason: Optional[str] = None
        self._scanner: Any = None
        self._devices: Dict[str, Any] = {}
        self._names: Dict[str, str] = {}
        self._session: Optional[ConnectionSession] = None

        # Callbacks
        self._on_state_changed: Optional[Callable] = None
        self._on_device_discovered: Optional[Callable] = None
        self._on_error: Optional[Callable] = None

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def reason(self) -> Optional[str]:
        """Why the link is Disconnected, if it is."""
        return self._reason

    @property
    def is_ready(self) -> bool:
        return self._state is LinkState.READY

    @property
    def session(self) -> Optional[ConnectionSession]:
        return self._session

    @property
    def peripheral_id(self) -> Optional[str]:
        return self._session.peripheral_id if self._session else None

    @property
    def discovered_devices(self) -> Dict[str, str]:
        """Named devices seen during scanning, id -> display name."""
        return dict(self._names)

    def set_on_state_changed(self, callback: Callable) -> None:
        """Set callback for link state transitions.

        Args:
            callback: Function called with (LinkState, reason or None)
        """
        self._on_state_changed = callback

    def set_on_device_discovered(self, callback: Callable) -> None:
        """Set callback for newly discovered devices.

        Args:
            callback: Function called with (device id, display name)
        """
        self._on_device_discovered = callback

    def set_on_error(self, callback: Callable) -> None:
        """Set callback for user-visible errors (LinkUnavailable, DiscoveryFailed).

        Args:
            callback: Function called with the BlueJoyError instance
        """
        self._on_error = callback

    # ========== Scanning ==========

    async def start_scan(self) -> bool:
        """Start scanning for peripherals.

        Returns:
            True if scanning started, False if the request was ignored
        """
        if self._state not in (LinkState.IDLE, LinkState.DISCONNECTED):
            logger.warning(f"Cannot scan while {self._state.value}")
            return False

        self._devices.clear()
        self._names.clear()
        try:
            self._scanner = self._scanner_factory(
                detection_callback=self._on_detection
            )
            await self._scanner.start()
        except BleakError as e:
            self._scanner = None
            self._report(LinkUnavailable(f"Bluetooth unavailable: {e}"))
            return False

        logger.info("Scanning for peripherals...")
        self._set_state(LinkState.SCANNING)
        return True

    async def stop_scan(self) -> None:
        """Stop scanning and return to Idle."""
        if self._state is not LinkState.SCANNING:
            return
        await self._stop_scanner()
        self._set_state(LinkState.IDLE)

    def _on_detection(self, device: Any, advertisement_data: Any) -> None:
        """Handle a scanner advertisement report.

        Unnamed devices are skipped; each named device is reported once.
        """
        if self._state is not LinkState.SCANNING:
            return

        name = getattr(advertisement_data, "local_name", None) or device.name
        if not name:
            return

        address = device.address
        self._devices[address] = device
        if self._names.get(address) == name:
            return

        self._names[address] = name
        logger.debug(f"Discovered {name} ({address})")
        if self._on_device_discovered:
            try:
                self._on_device_discovered(address, name)
            except Exception as e:
                logger.error(f"Discovery callback error: {e}")

    async def _stop_scanner(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is None:
            return
        try:
            await scanner.stop()
        except BleakError as e:
            logger.warning(f"Stopping scanner failed: {e}")

    # ========== Connection ==========

    async def connect(self, device_id: str) -> bool:
        """Connect to a device found by the current scan.

        Returns:
            True once the peripheral is Ready, False otherwise
        """
        if self._state is not LinkState.SCANNING:
            logger.error(f"Cannot connect while {self._state.value}")
            return False

        device = self._devices.get(device_id)
        if device is None:
            logger.error(f"Unknown device: {device_id}")
            return False

        await self._stop_scanner()
        if self._state is not LinkState.SCANNING:
            return False
        self._set_state(LinkState.CONNECTING)

        client = self._client_factory(
            device,
            disconnected_callback=self._on_link_lost,
            timeout=self._connect_timeout,
        )
        session = ConnectionSession(peripheral_id=device_id, client=client)
        self._session = session

        try:
            logger.info(f"Connecting to {self._names.get(device_id, device_id)}...")
            await client.connect()
        except Exception as e:
            logger.error(f"Connection failed: {e}")
            if self._session is session:
                self._session = None
                self._set_state(LinkState.DISCONNECTED, "connect failed")
            return False

        if self._session is not session or self._state is not LinkState.CONNECTING:
            # Torn down while the link was coming up
            await self._release(client)
            return False

        self._set_state(LinkState.RESOLVING)
        try:
            self._resolve_endpoints(session)
        except DiscoveryFailed as e:
            self._report(e)
            return False

        self._set_state(LinkState.READY)
        return True

    def _resolve_endpoints(self, session: ConnectionSession) -> None:
        """Match the control service's characteristics to roles.

        Raises:
            DiscoveryFailed: If the service or the axis endpoints are missing
        """
        try:
            services = session.client.services
            service = services.get_service(self.CONTROL_SERVICE_UUID)
        except BleakError as e:
            raise DiscoveryFailed(f"Service discovery failed: {e}") from e

        if service is None:
            raise DiscoveryFailed(
                f"Control service {self.CONTROL_SERVICE_UUID} not found"
            )

        for characteristic in service.characteristics:
            endpoint = session.registry.match(characteristic.uuid, characteristic)
            if endpoint:
                logger.debug(f"Resolved {endpoint.role.name} -> {endpoint.uuid}")

        if not session.registry.has_all(AXIS_ROLES):
            missing = [r.name for r in AXIS_ROLES if r not in session.registry]
            raise DiscoveryFailed(f"Axis endpoints missing: {', '.join(missing)}")

        absent = [role.name for role in Role if role not in session.registry]
        if absent:
            logger.info(f"Optional endpoints absent: {', '.join(absent)}")

    async def disconnect(self, reason: str = "user") -> None:
        """Tear down the link from any state.

        Listeners see Disconnected before the client handle is released.
        """
        session, self._session = self._session, None
        if session is not None:
            session.registry.clear()

        if self._state is not LinkState.DISCONNECTED or session is not None:
            self._set_state(LinkState.DISCONNECTED, reason)

        await self._stop_scanner()
        if session is not None:
            await self._release(session.client)

    def _on_link_lost(self, client: Any) -> None:
        """Handle peripheral-initiated disconnect."""
        session = self._session
        if session is None or session.client is not client:
            return
        logger.warning("Device disconnected")
        self._session = None
        session.registry.clear()
        self._set_state(LinkState.DISCONNECTED, "link lost")

    async def _release(self, client: Any) -> None:
        try:
            logger.info("Disconnecting...")
            await client.disconnect()
            logger.info("Disconnected")
        except Exception as e:
            logger.error(f"Disconnect failed: {e}")

    # ========== Writes ==========

    async def write(
        self, role: Role, payload: bytes, response: Optional[bool] = None
    ) -> WriteResult:
        """Write a payload to the control point bound to a role.

        Args:
            role: Target control channel
            payload: Encoded value
            response: Acknowledged delivery; defaults to the role's mode

        Returns:
            WriteResult describing the outcome (never raises)
        """
        session = self._session
        if self._state is not LinkState.READY or session is None:
            logger.debug(f"Dropping {role.name} write: not connected")
            return WriteResult.NOT_CONNECTED

        try:
            endpoint = session.registry.require(role)
        except EndpointMissing as e:
            logger.debug(f"Dropping write: {e}")
            return WriteResult.ENDPOINT_MISSING

        if response is None:
            response = role.acknowledged

        try:
            await self._write_gatt(session.client, endpoint, payload, response)
        except WriteFailed as e:
            logger.error(f"{e}")
            return WriteResult.WRITE_FAILED
        except Exception as e:
            logger.error(f"{role.name} write error: {e}")
            return WriteResult.WRITE_FAILED

        logger.debug(f"{role.name} <- {payload.hex()}")
        return WriteResult.SUCCESS

    @staticmethod
    async def _write_gatt(
        client: Any, endpoint: Endpoint, payload: bytes, response: bool
    ) -> None:
        try:
            await client.write_gatt_char(endpoint.handle, payload, response=response)
        except (BleakError, OSError, asyncio.TimeoutError) as e:
            raise WriteFailed(f"{endpoint.role.name} write failed: {e}") from e

    # ========== Internals ==========

    def _set_state(self, state: LinkState, reason: Optional[str] = None) -> None:
        self._state = state
        self._reason = reason if state is LinkState.DISCONNECTED else None
        if reason:
            logger.info(f"Link {state.value} ({reason})")
        else:
            logger.info(f"Link {state.value}")
        if self._on_state_changed:
            try:
                self._on_state_changed(state, self._reason)
            except Exception as e:
                logger.error(f"State callback error: {e}")

    def _report(self, error: Exception) -> None:
        logger.error(str(error))
        if self._on_error:
            try:
                self._on_error(error)
            except Exception as e:
                logger.error(f"Error callback error: {e}")
