"""Fake bleak scanner and client for exercising the engine without a radio."""

from types import SimpleNamespace
from typing import List, Optional, Tuple

import pytest
from bleak.exc import BleakError

from bluejoy.connection import ConnectionManager
from bluejoy.core import CONTROL_SERVICE_UUID, Role


def make_device(address: str, name: Optional[str]) -> SimpleNamespace:
    return SimpleNamespace(address=address, name=name)


def make_adv(local_name: Optional[str] = None) -> SimpleNamespace:
    return SimpleNamespace(local_name=local_name)


class FakeService:
    def __init__(self, uuids):  # type: ignore[no-untyped-def]
        self.uuid = CONTROL_SERVICE_UUID
        self.characteristics = [SimpleNamespace(uuid=uuid) for uuid in uuids]


class FakeServices:
    def __init__(self, service: Optional[FakeService]):
        self._service = service

    def get_service(self, uuid: str) -> Optional[FakeService]:
        if self._service is not None and uuid == self._service.uuid:
            return self._service
        return None


class FakeScanner:
    """Stands in for BleakScanner; tests push adverts through detect()."""

    instances: List["FakeScanner"] = []
    fail_start = False

    def __init__(self, detection_callback=None, **kwargs):  # type: ignore[no-untyped-def]
        self.detection_callback = detection_callback
        self.running = False
        FakeScanner.instances.append(self)

    async def start(self) -> None:
        if FakeScanner.fail_start:
            raise BleakError("Bluetooth adapter is powered off")
        self.running = True

    async def stop(self) -> None:
        self.running = False

    def detect(self, address: str, name: Optional[str], local_name=None) -> None:  # type: ignore[no-untyped-def]
        self.detection_callback(make_device(address, name), make_adv(local_name))


class FakeClient:
    """Stands in for BleakClient and records every write."""

    instances: List["FakeClient"] = []
    roles = list(Role)
    has_service = True
    fail_connect = False

    def __init__(self, device, disconnected_callback=None, timeout=None):  # type: ignore[no-untyped-def]
        self.device = device
        self.disconnected_callback = disconnected_callback
        self.timeout = timeout
        self.is_connected = False
        self.fail_writes = False
        self.write_error: Optional[Exception] = None
        self.writes: List[Tuple[str, bytes, bool]] = []
        self.events: List[str] = []
        service = FakeService([role.uuid for role in self.roles])
        self.services = FakeServices(service if self.has_service else None)
        FakeClient.instances.append(self)

    async def connect(self) -> None:
        if FakeClient.fail_connect:
            raise BleakError("Device not found")
        self.is_connected = True

    async def disconnect(self) -> None:
        self.events.append("disconnect")
        self.is_connected = False

    async def write_gatt_char(self, char, data, response=False):  # type: ignore[no-untyped-def]
        if self.fail_writes:
            raise BleakError("Not connected")
        if self.write_error is not None:
            error, self.write_error = self.write_error, None
            raise error
        self.writes.append((char.uuid, bytes(data), response))

    def drop_link(self) -> None:
        self.is_connected = False
        self.disconnected_callback(self)

    def writes_to(self, role: Role) -> List[bytes]:
        return [data for uuid, data, _ in self.writes if uuid == role.uuid]


@pytest.fixture(autouse=True)
def reset_fakes():
    FakeScanner.instances = []
    FakeScanner.fail_start = False
    FakeClient.instances = []
    FakeClient.roles = list(Role)
    FakeClient.has_service = True
    FakeClient.fail_connect = False
    yield


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager(
        connect_timeout=1.0,
        scanner_factory=FakeScanner,
        client_factory=FakeClient,
    )


async def connect_fake(manager: ConnectionManager, address: str = "AA:BB:CC:DD:EE:01") -> FakeClient:
    """Scan, advertise one device and connect to it."""
    await manager.start_scan()
    FakeScanner.instances[-1].detect(address, "JoyPad")
    await manager.connect(address)
    return FakeClient.instances[-1]
