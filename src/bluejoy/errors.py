"""
Error taxonomy for the control engine.

None of these are fatal: the connection manager and the control session catch
them, log them, and degrade to "no command delivered this cycle".
"""

from enum import Enum


class BlueJoyError(Exception):
    """Base class for control engine errors."""


class LinkUnavailable(BlueJoyError):
    """Radio is powered off or unsupported; scan requests are ignored."""


class DiscoveryFailed(BlueJoyError):
    """Service or characteristic enumeration did not yield the axis endpoints."""


class EndpointMissing(BlueJoyError):
    """A command targeted a role that was never resolved on this peripheral."""

    def __init__(self, role) -> None:  # type: ignore[no-untyped-def]
        super().__init__(f"Endpoint {role.name} not resolved")
        self.role = role


class WriteFailed(BlueJoyError):
    """Transport-level write error."""


class WriteResult(Enum):
    """Outcome of a single control-point write."""

    SUCCESS = "success"
    NOT_CONNECTED = "not_connected"
    ENDPOINT_MISSING = "endpoint_missing"
    WRITE_FAILED = "write_failed"
