"""Connection manager lifecycle against fake bleak objects."""

import pytest

from bluejoy.connection import LinkState
from bluejoy.core import Role
from bluejoy.errors import DiscoveryFailed, LinkUnavailable, WriteResult

from conftest import FakeClient, FakeScanner, connect_fake


@pytest.mark.asyncio
async def test_scan_reports_named_devices_once(manager):
    found = []
    manager.set_on_device_discovered(lambda *args: found.append(args))

    assert await manager.start_scan()
    assert manager.state is LinkState.SCANNING

    scanner = FakeScanner.instances[-1]
    scanner.detect("AA:00", "JoyPad")
    scanner.detect("AA:00", "JoyPad")
    scanner.detect("AA:01", None)
    scanner.detect("AA:02", None, local_name="Crane")

    assert found == [("AA:00", "JoyPad"), ("AA:02", "Crane")]
    assert manager.discovered_devices == {"AA:00": "JoyPad", "AA:02": "Crane"}


@pytest.mark.asyncio
async def test_scan_only_from_idle_or_disconnected(manager):
    await connect_fake(manager)
    assert manager.state is LinkState.READY
    assert not await manager.start_scan()

    await manager.disconnect()
    assert await manager.start_scan()


@pytest.mark.asyncio
async def test_link_unavailable_ignores_scan(manager):
    errors = []
    manager.set_on_error(errors.append)
    FakeScanner.fail_start = True

    assert not await manager.start_scan()
    assert manager.state is LinkState.IDLE
    assert isinstance(errors[0], LinkUnavailable)


@pytest.mark.asyncio
async def test_stop_scan_returns_to_idle(manager):
    await manager.start_scan()
    await manager.stop_scan()
    assert manager.state is LinkState.IDLE
    assert not FakeScanner.instances[-1].running


@pytest.mark.asyncio
async def test_connect_requires_scanning_and_known_device(manager):
    assert not await manager.connect("AA:00")
    await manager.start_scan()
    assert not await manager.connect("AA:00")
    assert manager.state is LinkState.SCANNING


@pytest.mark.asyncio
async def test_connect_resolves_all_endpoints(manager):
    states = []
    manager.set_on_state_changed(lambda state, reason: states.append(state))

    client = await connect_fake(manager)

    assert manager.is_ready
    assert states == [
        LinkState.SCANNING,
        LinkState.CONNECTING,
        LinkState.RESOLVING,
        LinkState.READY,
    ]
    assert manager.session.registry.roles == frozenset(Role)
    assert not FakeScanner.instances[-1].running
    assert client.timeout == 1.0


@pytest.mark.asyncio
async def test_missing_optional_endpoints_still_ready(manager):
    FakeClient.roles = [Role.AXIS_X, Role.AXIS_Y]
    client = await connect_fake(manager)

    assert manager.is_ready
    result = await manager.write(Role.EXTEND_INNER, b"\x01")
    assert result is WriteResult.ENDPOINT_MISSING
    assert client.writes == []


@pytest.mark.asyncio
async def test_missing_axis_endpoint_stays_resolving(manager):
    errors = []
    manager.set_on_error(errors.append)
    FakeClient.roles = [Role.AXIS_X, Role.CONTROL_MODE]

    await connect_fake(manager)

    assert manager.state is LinkState.RESOLVING
    assert isinstance(errors[0], DiscoveryFailed)
    assert await manager.write(Role.AXIS_X, b"\x00\x00") is WriteResult.NOT_CONNECTED


@pytest.mark.asyncio
async def test_missing_service_stays_resolving(manager):
    FakeClient.has_service = False
    await connect_fake(manager)
    assert manager.state is LinkState.RESOLVING


@pytest.mark.asyncio
async def test_connect_failure_disconnects(manager):
    FakeClient.fail_connect = True
    await connect_fake(manager)
    assert manager.state is LinkState.DISCONNECTED
    assert manager.reason == "connect failed"
    assert manager.session is None


@pytest.mark.asyncio
async def test_write_uses_role_delivery_mode(manager):
    client = await connect_fake(manager)

    assert await manager.write(Role.AXIS_X, b"\xff\x00") is WriteResult.SUCCESS
    assert await manager.write(Role.EXTEND_OUTER, b"\x01") is WriteResult.SUCCESS

    assert client.writes == [
        (Role.AXIS_X.uuid, b"\xff\x00", True),
        (Role.EXTEND_OUTER.uuid, b"\x01", False),
    ]


@pytest.mark.asyncio
async def test_write_failure_is_reported_not_raised(manager):
    client = await connect_fake(manager)
    client.fail_writes = True
    assert await manager.write(Role.AXIS_Y, b"\x00\x00") is WriteResult.WRITE_FAILED
    assert manager.is_ready


@pytest.mark.asyncio
async def test_unexpected_transport_error_is_a_failed_write(manager):
    client = await connect_fake(manager)
    client.write_error = RuntimeError("bus error")
    assert await manager.write(Role.AXIS_X, b"\x00\x00") is WriteResult.WRITE_FAILED
    assert await manager.write(Role.AXIS_X, b"\x01\x00") is WriteResult.SUCCESS
    assert client.writes_to(Role.AXIS_X) == [b"\x01\x00"]


@pytest.mark.asyncio
async def test_link_lost_clears_endpoints(manager):
    client = await connect_fake(manager)
    registry = manager.session.registry

    client.drop_link()

    assert manager.state is LinkState.DISCONNECTED
    assert manager.reason == "link lost"
    assert len(registry) == 0
    assert await manager.write(Role.AXIS_X, b"\x00\x00") is WriteResult.NOT_CONNECTED


@pytest.mark.asyncio
async def test_disconnect_notifies_before_release(manager):
    client = await connect_fake(manager)
    manager.set_on_state_changed(
        lambda state, reason: client.events.append(f"{state.value}:{reason}")
    )

    await manager.disconnect()

    assert client.events == ["disconnected:user", "disconnect"]
    # Our own disconnect must not be reported as a lost link
    client.drop_link()
    assert manager.reason == "user"
