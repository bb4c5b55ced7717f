"""
Display manager for Rich-based REPL output and live updates.

Handles all console output including device lists, the control status table
and the toggle-able live view. Read-only: it renders what the controller
reports and never changes protocol state.
"""

import logging
from typing import Any, Dict, Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from .actuator import ActuatorState, ExtendState
from .codec import AxisCommand
from .connection import LinkState
from .errors import WriteResult

logger = logging.getLogger(__name__)


class DisplayManager:
    """Manages console output with Rich library."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize display manager.

        Args:
            console: Rich Console instance (creates one if None)
        """
        self.console = console or Console()
        self.live_enabled = False
        self._live: Optional[Live] = None
        self._live_data: dict[str, Any] = {}

    def print_banner(self) -> None:
        """Print startup banner."""
        panel = Panel(
            "[bold cyan]BlueJoy - BLE Joystick Remote[/bold cyan]\n"
            "[dim]Type 'help' for commands, 'quit' to exit[/dim]",
            expand=False,
        )
        self.console.print(panel)

    def print_devices(self, devices: Dict[str, str]) -> None:
        """Display discovered devices.

        Args:
            devices: Mapping of device id to display name
        """
        if not devices:
            self.print_info("No devices found")
            return

        table = Table(title="Discovered Devices", show_header=True)
        table.add_column("#", style="magenta", justify="right")
        table.add_column("Name", style="cyan")
        table.add_column("Address", style="yellow")
        for index, (address, name) in enumerate(devices.items(), start=1):
            table.add_row(str(index), name, address)
        self.console.print(table)

    def print_status(self, data: dict) -> None:
        """Display one-time control status table.

        Args:
            data: Dictionary from RemoteController.get_status()
        """
        table = self.format_status_table(data)
        self.console.print(table)

    def print_result(self, cmd: str, result: WriteResult) -> None:
        """Display write result.

        Args:
            cmd: Command name
            result: WriteResult enum
        """
        if result == WriteResult.SUCCESS:
            self.console.print(f"[green]✓[/green] {cmd} sent", highlight=False)
        elif result == WriteResult.ENDPOINT_MISSING:
            self.console.print(
                f"[yellow]⚠[/yellow] {cmd} not supported by device",
                highlight=False,
            )
        elif result == WriteResult.NOT_CONNECTED:
            self.console.print(f"[red]✗[/red] {cmd} not connected", highlight=False)
        else:
            self.console.print(f"[red]✗[/red] {cmd} failed", highlight=False)

    def print_error(self, message: str) -> None:
        """Print red error message.

        Args:
            message: Error message text
        """
        self.console.print(f"[red]Error:[/red] {message}", highlight=False)

    def print_info(self, message: str) -> None:
        """Print blue info message.

        Args:
            message: Info message text
        """
        self.console.print(f"[cyan]Info:[/cyan] {message}", highlight=False)

    def print_help(self, commands: list) -> None:
        """Display command reference.

        Args:
            commands: List of Command objects
        """
        table = Table(title="Available Commands", show_header=True)
        table.add_column("Command", style="cyan")
        table.add_column("Aliases", style="magenta")
        table.add_column("Description", style="white")
        table.add_column("Usage", style="yellow")

        for cmd in commands:
            aliases = ", ".join(cmd.aliases) if cmd.aliases else "-"
            table.add_row(cmd.name, aliases, cmd.description, cmd.usage)

        self.console.print(table)
        self.console.print(
            "[dim]Keyboard shortcuts: Ctrl+C to interrupt, Ctrl+D to exit[/dim]"
        )

    def start_live(self) -> None:
        """Start live display refresh mode."""
        if self.live_enabled:
            return

        self.live_enabled = True
        self._live_data = {
            "link": LinkState.IDLE,
            "reason": None,
            "axis": None,
            "actuator": None,
        }
        renderable = self._create_live_table()
        self._live = Live(renderable, console=self.console, refresh_per_second=4)
        self._live.start()
        self.console.print("[dim]Live display enabled ['live' to disable][/dim]")

    def stop_live(self) -> None:
        """Stop live display refresh mode."""
        if not self.live_enabled:
            return

        self.live_enabled = False
        if self._live is not None:
            self._live.stop()
            self._live = None

    def update_live(self, data: dict) -> None:
        """Update live display with new control state.

        Args:
            data: Partial status dict (any of link, reason, axis, actuator)
        """
        if not self.live_enabled or self._live is None:
            return

        self._live_data.update(data)
        try:
            self._live.update(self._create_live_table())
        except Exception as e:
            logger.error(f"Live update error: {e}")

    def toggle_live(self) -> bool:
        """Toggle live display on/off.

        Returns:
            New live display state (True = on, False = off)
        """
        if self.live_enabled:
            self.stop_live()
        else:
            self.start_live()
        return self.live_enabled

    def _create_live_table(self) -> Table:
        return self.format_status_table(self._live_data)

    def format_status_table(self, data: dict) -> Table:
        """Create Rich Table for control status.

        Args:
            data: Dictionary with link, reason, device, axis, actuator, heartbeat

        Returns:
            Rich Table object
        """
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Control", style="cyan")
        table.add_column("Value", style="yellow")

        table.add_row("Link", self.format_link(data.get("link"), data.get("reason")))
        if data.get("device"):
            table.add_row("Device", data["device"])
        table.add_row("Axis", self.format_axis(data.get("axis")))

        actuator = data.get("actuator")
        if actuator is not None:
            table.add_row("Inner", self.format_extend(actuator.inner))
            table.add_row("Outer", self.format_extend(actuator.outer))
            table.add_row("Stages", self.format_stages(actuator))
            table.add_row("Mode", actuator.mode.name.lower())

        if "heartbeat" in data:
            period = data["heartbeat"]
            table.add_row("Heartbeat", f"{period:.1f} s" if period else "off")

        return table

    @staticmethod
    def format_link(state: Optional[LinkState], reason: Optional[str] = None) -> str:
        """Format link state, with the disconnect reason if any."""
        if state is None:
            return "unknown"
        if reason:
            return f"{state.value} ({reason})"
        return state.value

    @staticmethod
    def format_axis(command: Optional[AxisCommand]) -> str:
        if command is None:
            return "-"
        return f"x={command.x:+d} y={command.y:+d}"

    @staticmethod
    def format_extend(state: ExtendState) -> str:
        """Format an extend channel state.

        Args:
            state: ExtendState enum

        Returns:
            Arrow and label for the direction
        """
        if state is ExtendState.EXTENDING:
            return "▲ extending"
        if state is ExtendState.RETRACTING:
            return "▼ retracting"
        return "■ idle"

    @staticmethod
    def format_stages(state: ActuatorState) -> str:
        if state.upper and state.lower:
            return "both"
        return "upper only" if state.upper else "lower only"
