"""
Command definitions and auto-completion for REPL.

Defines all available commands with metadata and provides a completer
for prompt_toolkit auto-completion.
"""

from dataclasses import dataclass
from typing import Any, List

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .actuator import Button, Toggle


@dataclass
class Command:
    """Command definition with metadata."""

    name: str
    aliases: List[str]
    description: str
    usage: str
    handler: str


# Define all available commands
COMMANDS = [
    Command(
        name="scan",
        aliases=["sc"],
        description="Start scanning for peripherals",
        usage="scan",
        handler="cmd_scan",
    ),
    Command(
        name="stopscan",
        aliases=["ss"],
        description="Stop scanning",
        usage="stopscan",
        handler="cmd_stop_scan",
    ),
    Command(
        name="devices",
        aliases=["d", "ls"],
        description="List devices found by the current scan",
        usage="devices",
        handler="cmd_devices",
    ),
    Command(
        name="connect",
        aliases=["c"],
        description="Connect to a scanned device",
        usage="connect <number|address>",
        handler="cmd_connect",
    ),
    Command(
        name="disconnect",
        aliases=["dc"],
        description="Disconnect from device",
        usage="disconnect",
        handler="cmd_disconnect",
    ),
    Command(
        name="axis",
        aliases=["a"],
        description="Send joystick position, each axis in [-1, 1]",
        usage="axis <x> <y>",
        handler="cmd_axis",
    ),
    Command(
        name="center",
        aliases=["0"],
        description="Center the joystick",
        usage="center",
        handler="cmd_center",
    ),
    Command(
        name="press",
        aliases=["p"],
        description="Press an extend/retract button",
        usage="press <button>",
        handler="cmd_press",
    ),
    Command(
        name="release",
        aliases=["r"],
        description="Release an extend/retract button",
        usage="release <button>",
        handler="cmd_release",
    ),
    Command(
        name="toggle",
        aliases=["t"],
        description="Toggle upper stage, lower stage or smooth mode",
        usage="toggle <upper|lower|mode>",
        handler="cmd_toggle",
    ),
    Command(
        name="reset",
        aliases=["rs"],
        description="Neutralize actuators, clear faults, center axes",
        usage="reset",
        handler="cmd_reset",
    ),
    Command(
        name="status",
        aliases=["st"],
        description="Show link and control state",
        usage="status",
        handler="cmd_status",
    ),
    Command(
        name="live",
        aliases=["l"],
        description="Toggle live display mode",
        usage="live",
        handler="cmd_live",
    ),
    Command(
        name="info",
        aliases=["i"],
        description="Show device and debug information",
        usage="info",
        handler="cmd_info",
    ),
    Command(
        name="help",
        aliases=["h", "?"],
        description="Show all available commands",
        usage="help",
        handler="cmd_help",
    ),
    Command(
        name="quit",
        aliases=["q", "exit"],
        description="Exit the REPL",
        usage="quit",
        handler="cmd_quit",
    ),
]

BUTTON_NAMES = [button.value for button in Button]
TOGGLE_NAMES = [toggle.value for toggle in Toggle]


def get_command(name: str) -> Command | None:
    """Get command by name or alias.

    Args:
        name: Command name or alias

    Returns:
        Command object if found, None otherwise
    """
    for cmd in COMMANDS:
        if cmd.name == name or name in cmd.aliases:
            return cmd
    return None


def argument_choices(name: str) -> List[str]:
    """Argument values offered for completion after a command."""
    cmd = get_command(name)
    if cmd is None:
        return []
    if cmd.name in ("press", "release"):
        return BUTTON_NAMES
    if cmd.name == "toggle":
        return TOGGLE_NAMES
    return []


class CommandCompleter(Completer):
    """Auto-completion for commands and arguments."""

    def __init__(self) -> None:
        """Initialize completer."""
        self._command_names = set()
        self._command_aliases = set()

        for cmd in COMMANDS:
            self._command_names.add(cmd.name)
            self._command_aliases.update(cmd.aliases)

    def get_completions(self, document: Document, complete_event) -> Any:  # type: ignore[no-untyped-def]
        """Get completion suggestions for current input.

        Args:
            document: Current input document
            complete_event: Completion event

        Yields:
            Completion objects for matching commands/arguments
        """
        text = document.text_before_cursor.lstrip()
        parts = text.split()

        # If no text yet, suggest nothing (avoid spam)
        if not text:
            return

        # First part: complete command name
        if len(parts) == 1 and not text.endswith(" "):
            partial_cmd = parts[0].lower()
            all_names = self._command_names | self._command_aliases

            for name in sorted(all_names):
                if name.startswith(partial_cmd):
                    completion = name[len(partial_cmd) :]
                    yield Completion(
                        completion,
                        start_position=0,
                        display=name,
                    )
            return

        # Second part: button or toggle names
        if len(parts) > 2 or (len(parts) == 2 and text.endswith(" ")):
            return
        partial = "" if text.endswith(" ") else parts[-1].lower()
        for choice in argument_choices(parts[0].lower()):
            if choice.startswith(partial):
                yield Completion(
                    choice[len(partial) :],
                    start_position=0,
                    display=choice,
                )
