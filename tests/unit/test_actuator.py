"""Actuator state machine: edges, stage invariant, mode and reset ordering."""

from bluejoy.actuator import (
    ActuatorState,
    ActuatorStateMachine,
    Button,
    ControlMode,
    ExtendState,
    Toggle,
)
from bluejoy.codec import decode_discrete
from bluejoy.core import Role


def values(writes):
    return [decode_discrete(w.payload) for w in writes]


def test_press_release_is_two_writes():
    """A press then release on extend-inner sends exactly +1 then 0."""
    machine = ActuatorStateMachine()
    writes = machine.extend_inner_press() + machine.extend_inner_release()

    assert [w.role for w in writes] == [Role.EXTEND_INNER, Role.EXTEND_INNER]
    assert values(writes) == [1, 0]
    assert machine.state.inner is ExtendState.IDLE


def test_extend_writes_are_unacknowledged():
    machine = ActuatorStateMachine()
    assert machine.retract_outer_press()[0].response is False
    assert machine.toggle_mode()[0].response is True
    assert machine.toggle_upper()[0].response is True


def test_repeated_press_is_debounced():
    machine = ActuatorStateMachine()
    assert values(machine.retract_inner_press()) == [-1]
    assert machine.retract_inner_press() == []
    assert machine.state.inner is ExtendState.RETRACTING


def test_stale_release_keeps_new_direction():
    """Releasing extend after switching to retract must not neutralize."""
    machine = ActuatorStateMachine()
    machine.extend_outer_press()
    assert values(machine.retract_outer_press()) == [-1]
    assert machine.extend_outer_release() == []
    assert machine.state.outer is ExtendState.RETRACTING
    assert values(machine.retract_outer_release()) == [0]


def test_inner_and_outer_are_independent():
    machine = ActuatorStateMachine()
    machine.extend_inner_press()
    machine.retract_outer_press()
    assert machine.state.inner is ExtendState.EXTENDING
    assert machine.state.outer is ExtendState.RETRACTING


def test_button_dispatch():
    machine = ActuatorStateMachine()
    writes = machine.button(Button.RETRACT_INNER, True)
    assert values(writes) == [-1]
    writes = machine.button(Button.RETRACT_INNER, False)
    assert values(writes) == [0]


def test_stage_toggles_never_select_neither():
    """Upper, lower, upper from both selected: 1, 2, 1, never neither."""
    machine = ActuatorStateMachine()
    sent = []
    for toggle in (Toggle.UPPER, Toggle.LOWER, Toggle.UPPER):
        writes = machine.toggle(toggle)
        assert [w.role for w in writes] == [Role.STAGE_SELECT]
        sent.extend(values(writes))
        assert machine.state.upper or machine.state.lower

    assert sent == [1, 2, 1]


def test_repeated_lower_toggle_alternates_both_and_upper_only():
    machine = ActuatorStateMachine()
    sent = [machine.state.stage_select]
    for _ in range(3):
        sent.extend(values(machine.toggle_lower()))
    assert sent == [0, 2, 0, 2]


def test_toggle_last_stage_off_restores_other():
    machine = ActuatorStateMachine(ActuatorState(upper=True, lower=False))
    writes = machine.toggle_upper()
    assert machine.state.upper is False
    assert machine.state.lower is True
    assert values(writes) == [1]


def test_mode_toggle():
    machine = ActuatorStateMachine()
    assert machine.state.mode is ControlMode.SMOOTH
    assert values(machine.toggle_mode()) == [0]
    assert values(machine.toggle_mode()) == [1]


def test_reset_pulse_precedes_mode_restore():
    machine = ActuatorStateMachine()
    machine.toggle_mode()
    machine.extend_inner_press()
    machine.toggle_lower()

    writes = machine.reset()

    assert [w.role for w in writes] == [
        Role.CONTROL_MODE,
        Role.CONTROL_MODE,
        Role.EXTEND_INNER,
        Role.STAGE_SELECT,
    ]
    assert values(writes) == [-1, 0, 0, 0]
    assert writes[2].response is False
    assert machine.state == ActuatorState(mode=ControlMode.INSTANT)


def test_reset_from_idle_only_pulses_mode():
    machine = ActuatorStateMachine()
    writes = machine.reset()
    assert [w.role for w in writes] == [Role.CONTROL_MODE, Role.CONTROL_MODE]
    assert values(writes) == [-1, 1]


def test_changes_are_published():
    machine = ActuatorStateMachine()
    seen = []
    machine.set_on_changed(seen.append)

    machine.extend_inner_press()
    machine.extend_inner_press()

    assert len(seen) == 1
    assert seen[0].inner is ExtendState.EXTENDING
