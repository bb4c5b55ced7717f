"""
Command codec: normalized input to control-point payloads and back.

Pure functions, no state. Axis values are quantized by truncating toward zero
and clamping, so any float (NaN and infinities included) encodes without
error. Discrete values are a single signed byte.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .core import (
    AXIS_SCALE,
    AXIS_WIDTH,
    EXTEND,
    LEGACY_AXIS_SCALE,
    LEGACY_AXIS_WIDTH,
    MODE_INSTANT,
    MODE_RESET_PULSE,
    MODE_SMOOTH,
    NEUTRAL,
    RETRACT,
    STAGE_BOTH,
    STAGE_LOWER_ONLY,
    STAGE_UPPER_ONLY,
    Role,
)


class ProtocolGeneration(Enum):
    """Axis wire format per firmware generation.

    CURRENT is canonical: x and y scaled by 255, two bytes each, y passed
    through. LEGACY is the first firmware: scaled by 127, one byte each,
    with y inverted.
    """

    CURRENT = (AXIS_SCALE, AXIS_WIDTH, 1)
    LEGACY = (LEGACY_AXIS_SCALE, LEGACY_AXIS_WIDTH, -1)

    @property
    def scale(self) -> int:
        return self.value[0]

    @property
    def width(self) -> int:
        return self.value[1]

    @property
    def y_sign(self) -> int:
        return self.value[2]

    @classmethod
    def from_name(cls, name: str) -> "ProtocolGeneration":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(
                f"Unknown protocol generation {name!r} (expected current or legacy)"
            ) from None


@dataclass(frozen=True)
class AxisCommand:
    """Quantized axis pair, in wire integers."""

    x: int = 0
    y: int = 0


# Accepted discrete values per role
DISCRETE_VALUES = {
    Role.EXTEND_INNER: frozenset((RETRACT, NEUTRAL, EXTEND)),
    Role.EXTEND_OUTER: frozenset((RETRACT, NEUTRAL, EXTEND)),
    Role.STAGE_SELECT: frozenset((STAGE_BOTH, STAGE_LOWER_ONLY, STAGE_UPPER_ONLY)),
    Role.CONTROL_MODE: frozenset((MODE_RESET_PULSE, MODE_INSTANT, MODE_SMOOTH)),
}


def quantize(
    value: float, generation: ProtocolGeneration = ProtocolGeneration.CURRENT
) -> int:
    """Scale a normalized value to a wire integer.

    Args:
        value: Normalized value, nominally in [-1, 1]
        generation: Protocol generation providing the scale

    Returns:
        Integer in [-scale, scale]
    """
    if math.isnan(value):
        return 0
    scale = generation.scale
    if math.isinf(value):
        return scale if value > 0 else -scale
    return max(-scale, min(scale, int(value * scale)))


def axis_command(
    x: float, y: float, generation: ProtocolGeneration = ProtocolGeneration.CURRENT
) -> AxisCommand:
    """Quantize a normalized (x, y) pair, applying the generation's y sign."""
    return AxisCommand(
        x=quantize(x, generation),
        y=quantize(y * generation.y_sign, generation),
    )


def encode_axis_command(
    command: AxisCommand,
    generation: ProtocolGeneration = ProtocolGeneration.CURRENT,
) -> Tuple[bytes, bytes]:
    """Serialize an already-quantized command as (x payload, y payload)."""
    scale = generation.scale
    x = max(-scale, min(scale, command.x))
    y = max(-scale, min(scale, command.y))
    return (
        x.to_bytes(generation.width, "little", signed=True),
        y.to_bytes(generation.width, "little", signed=True),
    )


def encode_axis(
    x: float, y: float, generation: ProtocolGeneration = ProtocolGeneration.CURRENT
) -> Tuple[bytes, bytes]:
    """Encode normalized axis input into the X and Y payloads.

    Args:
        x: Horizontal deflection in [-1, 1]
        y: Vertical deflection in [-1, 1]
        generation: Protocol generation to encode for

    Returns:
        Tuple of (AxisX payload, AxisY payload), little-endian signed
    """
    return encode_axis_command(axis_command(x, y, generation), generation)


def decode_axis(
    payload_x: bytes,
    payload_y: bytes,
    generation: ProtocolGeneration = ProtocolGeneration.CURRENT,
) -> Tuple[float, float]:
    """Inverse of encode_axis, to within one quantization step."""
    for payload in (payload_x, payload_y):
        if len(payload) != generation.width:
            raise ValueError(
                f"Expected {generation.width}-byte axis payload, got {len(payload)}"
            )
    x = int.from_bytes(payload_x, "little", signed=True)
    y = int.from_bytes(payload_y, "little", signed=True)
    return x / generation.scale, (y * generation.y_sign) / generation.scale


def encode_discrete(role: Role, value: int) -> bytes:
    """Encode a discrete control value as one signed byte.

    Raises:
        ValueError: If the role is not discrete or the value is not one the
            peripheral understands for that role
    """
    allowed = DISCRETE_VALUES.get(role)
    if allowed is None:
        raise ValueError(f"{role.name} is not a discrete channel")
    if value not in allowed:
        raise ValueError(f"Invalid value {value} for {role.name}")
    return int(value).to_bytes(1, "little", signed=True)


def decode_discrete(payload: bytes) -> int:
    if len(payload) != 1:
        raise ValueError(f"Expected 1-byte discrete payload, got {len(payload)}")
    return int.from_bytes(payload, "little", signed=True)
