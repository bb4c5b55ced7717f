"""
Core constants for the joystick control protocol.

UUIDs and wire values shared by the codec, the endpoint registry and the
connection manager.
"""

from enum import Enum

# Vendor control service advertised by the peripheral
CONTROL_SERVICE_UUID = "4fafc201-1fb5-459e-8fcc-c5c9c331914b"

# Control points (GATT characteristics) inside the control service
AXIS_X_UUID = "beb5483e-36e1-4688-b7f5-ea07361b26a8"
AXIS_Y_UUID = "beb5483f-36e1-4688-b7f5-ea07361b26a8"
EXTEND_INNER_UUID = "beb54840-36e1-4688-b7f5-ea07361b26a8"
EXTEND_OUTER_UUID = "beb54841-36e1-4688-b7f5-ea07361b26a8"
CONTROL_MODE_UUID = "beb54842-36e1-4688-b7f5-ea07361b26a8"
STAGE_SELECT_UUID = "beb54843-36e1-4688-b7f5-ea07361b26a8"


class Role(Enum):
    """Logical control channel, valued by its characteristic UUID."""

    AXIS_X = AXIS_X_UUID
    AXIS_Y = AXIS_Y_UUID
    EXTEND_INNER = EXTEND_INNER_UUID
    EXTEND_OUTER = EXTEND_OUTER_UUID
    CONTROL_MODE = CONTROL_MODE_UUID
    STAGE_SELECT = STAGE_SELECT_UUID

    @property
    def uuid(self) -> str:
        return self.value

    @property
    def acknowledged(self) -> bool:
        """Whether writes to this role use write-with-response."""
        return self not in (Role.EXTEND_INNER, Role.EXTEND_OUTER)

    @classmethod
    def from_uuid(cls, uuid: str) -> "Role | None":
        try:
            return cls(uuid.lower())
        except ValueError:
            return None


AXIS_ROLES = (Role.AXIS_X, Role.AXIS_Y)

# Axis quantization per protocol generation
AXIS_SCALE = 255
AXIS_WIDTH = 2
LEGACY_AXIS_SCALE = 127
LEGACY_AXIS_WIDTH = 1

# Discrete channel values
EXTEND = 1
NEUTRAL = 0
RETRACT = -1

STAGE_BOTH = 0
STAGE_LOWER_ONLY = 1
STAGE_UPPER_ONLY = 2

MODE_RESET_PULSE = -1
MODE_INSTANT = 0
MODE_SMOOTH = 1

# Timing (seconds)
HEARTBEAT_PERIOD = 5.0
SCAN_TIMEOUT = 10.0
CONNECT_TIMEOUT = 10.0

# Application metadata
__version__ = "0.1.0"
__description__ = "CLI and REPL remote control for BLE joystick actuators"
