"""Endpoint registry binding and lookup."""

import pytest

from bluejoy.core import Role
from bluejoy.errors import EndpointMissing
from bluejoy.registry import EndpointRegistry


def test_match_known_and_unknown_uuids():
    registry = EndpointRegistry()
    handle = object()

    endpoint = registry.match(Role.AXIS_X.uuid.upper(), handle)
    assert endpoint.role is Role.AXIS_X
    assert endpoint.handle is handle
    assert registry.match("00002a00-0000-1000-8000-00805f9b34fb", object()) is None
    assert registry.roles == frozenset({Role.AXIS_X})


def test_axis_roles_gate_readiness():
    registry = EndpointRegistry()
    registry.bind(Role.AXIS_X, "x")
    assert not registry.has_all()
    registry.bind(Role.AXIS_Y, "y")
    assert registry.has_all()


def test_require_missing_role():
    registry = EndpointRegistry()
    with pytest.raises(EndpointMissing) as info:
        registry.require(Role.STAGE_SELECT)
    assert info.value.role is Role.STAGE_SELECT


def test_rebind_and_clear():
    registry = EndpointRegistry()
    registry.bind(Role.CONTROL_MODE, "old")
    registry.bind(Role.CONTROL_MODE, "new")
    assert registry.get(Role.CONTROL_MODE).handle == "new"
    assert len(registry) == 1

    registry.clear()
    assert Role.CONTROL_MODE not in registry
    assert registry.get(Role.CONTROL_MODE) is None
