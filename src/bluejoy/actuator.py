"""
Actuator state machine for the discrete controls.

Turns button edges and toggles into the writes the peripheral expects, and
keeps at least one stage selected at all times. Every operation returns the
ordered list of writes it derived; an empty list means the event was a
duplicate edge and nothing goes on the wire.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional

from .codec import encode_discrete
from .core import (
    EXTEND,
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

logger = logging.getLogger(__name__)


class ExtendState(Enum):
    IDLE = NEUTRAL
    EXTENDING = EXTEND
    RETRACTING = RETRACT


class ControlMode(Enum):
    INSTANT = MODE_INSTANT
    SMOOTH = MODE_SMOOTH


class Button(Enum):
    """Momentary buttons on the Input Surface."""

    EXTEND_INNER = "extend-inner"
    RETRACT_INNER = "retract-inner"
    EXTEND_OUTER = "extend-outer"
    RETRACT_OUTER = "retract-outer"


class Toggle(Enum):
    """Latching toggles on the Input Surface."""

    UPPER = "upper"
    LOWER = "lower"
    MODE = "mode"


@dataclass(frozen=True)
class ActuatorState:
    """Snapshot of the discrete controls."""

    inner: ExtendState = ExtendState.IDLE
    outer: ExtendState = ExtendState.IDLE
    upper: bool = True
    lower: bool = True
    mode: ControlMode = ControlMode.SMOOTH

    @property
    def stage_select(self) -> int:
        """Wire value for the stage flags (0 both, 2 upper only, 1 lower only)."""
        if self.upper and self.lower:
            return STAGE_BOTH
        if self.upper:
            return STAGE_UPPER_ONLY
        return STAGE_LOWER_ONLY


@dataclass(frozen=True)
class Write:
    """One pending control-point write."""

    role: Role
    payload: bytes
    response: bool

    @classmethod
    def discrete(cls, role: Role, value: int) -> "Write":
        return cls(role, encode_discrete(role, value), role.acknowledged)


class ActuatorStateMachine:
    """Owns the discrete control state for one session."""

    def __init__(self, initial: Optional[ActuatorState] = None) -> None:
        self._state = initial or ActuatorState()
        self._on_changed: Optional[Callable] = None

    @property
    def state(self) -> ActuatorState:
        return self._state

    def set_on_changed(self, callback: Callable) -> None:
        """Set callback for state changes.

        Args:
            callback: Function called with the new ActuatorState
        """
        self._on_changed = callback

    def button(self, button: Button, pressed: bool) -> List[Write]:
        """Dispatch a press or release edge."""
        name = button.name.lower()
        handler = getattr(self, f"{name}_press" if pressed else f"{name}_release")
        return handler()

    def toggle(self, toggle: Toggle) -> List[Write]:
        return getattr(self, f"toggle_{toggle.name.lower()}")()

    # ========== Extend / retract ==========

    def extend_inner_press(self) -> List[Write]:
        return self._press(Role.EXTEND_INNER, ExtendState.EXTENDING)

    def extend_inner_release(self) -> List[Write]:
        return self._release(Role.EXTEND_INNER, ExtendState.EXTENDING)

    def retract_inner_press(self) -> List[Write]:
        return self._press(Role.EXTEND_INNER, ExtendState.RETRACTING)

    def retract_inner_release(self) -> List[Write]:
        return self._release(Role.EXTEND_INNER, ExtendState.RETRACTING)

    def extend_outer_press(self) -> List[Write]:
        return self._press(Role.EXTEND_OUTER, ExtendState.EXTENDING)

    def extend_outer_release(self) -> List[Write]:
        return self._release(Role.EXTEND_OUTER, ExtendState.EXTENDING)

    def retract_outer_press(self) -> List[Write]:
        return self._press(Role.EXTEND_OUTER, ExtendState.RETRACTING)

    def retract_outer_release(self) -> List[Write]:
        return self._release(Role.EXTEND_OUTER, ExtendState.RETRACTING)

    def _press(self, role: Role, direction: ExtendState) -> List[Write]:
        if self._stage(role) is direction:
            logger.debug(f"Ignoring repeated {direction.name} press on {role.name}")
            return []
        self._set_stage(role, direction)
        return [Write.discrete(role, direction.value)]

    def _release(self, role: Role, direction: ExtendState) -> List[Write]:
        # Releasing a direction that is no longer active must not cancel the
        # direction pressed since.
        if self._stage(role) is not direction:
            logger.debug(f"Ignoring stale {direction.name} release on {role.name}")
            return []
        self._set_stage(role, ExtendState.IDLE)
        return [Write.discrete(role, ExtendState.IDLE.value)]

    def _stage(self, role: Role) -> ExtendState:
        if role is Role.EXTEND_INNER:
            return self._state.inner
        return self._state.outer

    def _set_stage(self, role: Role, value: ExtendState) -> None:
        if role is Role.EXTEND_INNER:
            self._update(replace(self._state, inner=value))
        else:
            self._update(replace(self._state, outer=value))

    # ========== Toggles ==========

    def toggle_upper(self) -> List[Write]:
        # upper, lower, upper from both selected sends 1, 2, 1: turning off the
        # last selected stage selects the other one, never both.
        state = self._state
        upper = not state.upper
        lower = state.lower or not upper
        return self._set_stages(upper, lower)

    def toggle_lower(self) -> List[Write]:
        state = self._state
        lower = not state.lower
        upper = state.upper or not lower
        return self._set_stages(upper, lower)

    def _set_stages(self, upper: bool, lower: bool) -> List[Write]:
        self._update(replace(self._state, upper=upper, lower=lower))
        return [Write.discrete(Role.STAGE_SELECT, self._state.stage_select)]

    def toggle_mode(self) -> List[Write]:
        state = self._state
        mode = (
            ControlMode.INSTANT if state.mode is ControlMode.SMOOTH else ControlMode.SMOOTH
        )
        self._update(replace(state, mode=mode))
        return [Write.discrete(Role.CONTROL_MODE, mode.value)]

    # ========== Reset ==========

    def reset(self) -> List[Write]:
        """Neutralize extends, select both stages and pulse the mode channel.

        The reset pulse must come first: the peripheral only clears a latched
        fault when -1 is immediately followed by a valid mode value. Stages
        that were moving are then sent neutral, and both stages are reselected
        if either was off, so the peripheral matches the local state.
        """
        previous = self._state
        mode = previous.mode
        writes = [
            Write.discrete(Role.CONTROL_MODE, MODE_RESET_PULSE),
            Write.discrete(Role.CONTROL_MODE, mode.value),
        ]
        if previous.inner is not ExtendState.IDLE:
            writes.append(Write.discrete(Role.EXTEND_INNER, NEUTRAL))
        if previous.outer is not ExtendState.IDLE:
            writes.append(Write.discrete(Role.EXTEND_OUTER, NEUTRAL))
        if not (previous.upper and previous.lower):
            writes.append(Write.discrete(Role.STAGE_SELECT, STAGE_BOTH))

        self._update(ActuatorState(mode=mode))
        return writes

    # ========== Internals ==========

    def _update(self, state: ActuatorState) -> None:
        if state == self._state:
            return
        self._state = state
        if self._on_changed:
            try:
                self._on_changed(state)
            except Exception as e:
                logger.error(f"Actuator callback error: {e}")
