"""
Main REPL application for BLE joystick remote control.

Interactive command loop with async support, auto-completion,
and live control display. The REPL plays the part of the scanner UI and the
input surface: it feeds the controller and renders what it reports.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import InMemoryHistory

from .actuator import ActuatorState, Button, Toggle, Write
from .codec import ProtocolGeneration
from .commands import BUTTON_NAMES, COMMANDS, TOGGLE_NAMES, CommandCompleter, get_command
from .config import Settings
from .connection import LinkState
from .controller import RemoteController
from .display import DisplayManager
from .errors import WriteResult

logger = logging.getLogger(__name__)

DEVICE_POLL_INTERVAL = 0.25


def configure_logging(level: str) -> None:
    """Configure root logging for the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
    )


class BlueJoyREPL:
    """Interactive REPL for BLE joystick remote control."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """Initialize REPL with controller and display manager."""
        self.controller = RemoteController(settings)
        self.display = DisplayManager()
        self.running = False
        self.session: PromptSession

        # Set up callbacks
        self.controller.set_on_device_discovered(self._on_device_discovered)
        self.controller.set_on_connection_state_changed(self._on_state_changed)
        self.controller.set_on_actuator_changed(self._on_actuator_changed)
        self.controller.set_on_error(self._on_error)
        self.controller.set_on_write(self._on_write)

        # Create prompt session with auto-completion
        self.session = PromptSession(
            completer=CommandCompleter(),
            history=InMemoryHistory(),
            enable_history_search=True,
        )

    async def run(self, device: Optional[str] = None) -> None:
        """Run the main REPL loop.

        Args:
            device: Address or name to connect to on startup
        """
        self.running = True
        self.display.print_banner()

        if device:
            self.display.console.print(f"Looking for {device}...")
            if await self.connect_to(device):
                self.display.console.print("✓ Connected successfully\n")
            else:
                self.display.console.print(
                    "⚠ Could not connect to device. Use 'scan' and 'connect' to retry.\n"
                )

        try:
            while self.running:
                try:
                    prompt_text = self._get_prompt()
                    text = await self.session.prompt_async(prompt_text)

                    if text.strip():
                        await self._handle_input(text.strip())

                except KeyboardInterrupt:
                    # Just show new prompt on Ctrl+C
                    self.display.console.print()
                    continue

        except EOFError:
            # End of input (Ctrl+D)
            await self.cmd_quit([])
        finally:
            self.running = False
            if self.controller.state is not LinkState.DISCONNECTED:
                await self.controller.disconnect()

    async def connect_to(self, target: str) -> bool:
        """Scan until a device matching address or name shows up, then connect.

        Args:
            target: Device address or display name

        Returns:
            True once the device is Ready
        """
        if self.controller.state is not LinkState.SCANNING:
            if not await self.controller.start_scan():
                return False

        timeout = self.controller.settings.scan_timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            device_id = self._match_device(target)
            if device_id:
                return await self.controller.select_device(device_id)
            await asyncio.sleep(DEVICE_POLL_INTERVAL)

        await self.controller.stop_scan()
        logger.warning(f"{target} not found within {timeout:.0f}s")
        return False

    def _match_device(self, target: str) -> Optional[str]:
        devices = self.controller.discovered_devices
        wanted = target.lower()
        for address, name in devices.items():
            if address.lower() == wanted or name.lower() == wanted:
                return address
        return None

    def _get_prompt(self) -> FormattedText:
        """Get dynamic prompt based on connection state.

        Returns:
            FormattedText for prompt_toolkit
        """
        state = self.controller.state
        if state is LinkState.READY:
            device_id = self.controller.manager.peripheral_id or "device"
            name = self.controller.discovered_devices.get(device_id, device_id)
            return FormattedText([("class:prompt", f"[{name}] > ")])
        return FormattedText([("class:prompt", f"[{state.value}] > ")])

    async def _handle_input(self, text: str) -> None:
        """Parse and dispatch command.

        Args:
            text: Raw user input text
        """
        parts = text.split(maxsplit=1)
        if not parts:
            return

        cmd_name = parts[0].lower()
        args = parts[1].split() if len(parts) > 1 else []

        cmd = get_command(cmd_name)
        if not cmd:
            self.display.print_error(
                f"Unknown command: {cmd_name}. Type 'help' for available commands."
            )
            return

        handler_name = cmd.handler
        if not hasattr(self, handler_name):
            self.display.print_error(f"Handler not found: {handler_name}")
            return

        handler = getattr(self, handler_name)

        try:
            await handler(args)
        except Exception as e:
            self.display.print_error(f"Command failed: {e}")
            logger.exception("Command exception")

    # ========== Controller callbacks ==========

    def _on_device_discovered(self, device_id: str, name: str) -> None:
        if not self.display.live_enabled:
            self.display.print_info(f"Found {name} ({device_id})")

    def _on_state_changed(self, state: LinkState, reason: Optional[str]) -> None:
        self.display.update_live(
            {"link": state, "reason": reason, "axis": self.controller.last_axis}
        )
        if state is LinkState.DISCONNECTED and reason == "link lost":
            if self.display.live_enabled:
                self.display.stop_live()
            self.display.print_info("Device disconnected")

    def _on_actuator_changed(self, state: ActuatorState) -> None:
        self.display.update_live({"actuator": state})

    def _on_error(self, error: Exception) -> None:
        self.display.print_error(str(error))

    def _on_write(self, write: Write, result: WriteResult) -> None:
        if result is not WriteResult.SUCCESS and not self.display.live_enabled:
            self.display.print_result(write.role.name.lower(), result)

    def _require_ready(self) -> bool:
        if not self.controller.is_ready:
            self.display.print_error("Not connected. Use 'scan' and 'connect' first.")
            return False
        return True

    # ========== Command Handlers ==========

    async def cmd_scan(self, args: list) -> None:
        """Start scanning for peripherals."""
        if self.controller.state is LinkState.SCANNING:
            self.display.print_info("Already scanning")
            return
        if await self.controller.start_scan():
            self.display.print_info(
                "Scanning... use 'devices' to list, 'connect <n>' to pick one"
            )

    async def cmd_stop_scan(self, args: list) -> None:
        """Stop scanning."""
        await self.controller.stop_scan()
        self.display.print_info("Scan stopped")

    async def cmd_devices(self, args: list) -> None:
        """List devices found by the current scan."""
        self.display.print_devices(self.controller.discovered_devices)

    async def cmd_connect(self, args: list) -> None:
        """Connect to a scanned device."""
        if self.controller.is_ready:
            self.display.print_info("Already connected")
            return

        if not args:
            self.display.print_error("Usage: connect <number|address>")
            return

        target = args[0]
        devices = list(self.controller.discovered_devices)
        if target.isdigit():
            index = int(target) - 1
            if not 0 <= index < len(devices):
                self.display.print_error(f"No device #{target}. Use 'devices' to list.")
                return
            target = devices[index]

        if self.controller.state is not LinkState.SCANNING:
            self.display.print_info("Scanning for device...")
            connected = await self.connect_to(target)
        else:
            device_id = self._match_device(target)
            if device_id is None:
                self.display.print_error(f"Unknown device: {target}")
                return
            self.display.print_info("Connecting...")
            connected = await self.controller.select_device(device_id)

        if not connected:
            self.display.print_error("Connection failed. Please try again.")
            return

        self.display.print_info("Connected!")
        await self.cmd_status([])

    async def cmd_disconnect(self, args: list) -> None:
        """Disconnect from device."""
        if self.display.live_enabled:
            self.display.stop_live()

        await self.controller.disconnect()
        self.display.print_info("Disconnected")

    async def cmd_axis(self, args: list) -> None:
        """Send joystick position."""
        if not self._require_ready():
            return

        if len(args) != 2:
            self.display.print_error("Usage: axis <x> <y>")
            return

        try:
            x, y = float(args[0]), float(args[1])
        except ValueError:
            self.display.print_error(f"Invalid axis values: {' '.join(args)}")
            return

        command = self.controller.on_axis_changed(x, y)
        await self.controller.flush()
        self.display.update_live({"axis": command})
        if command is not None and not self.display.live_enabled:
            self.display.print_info(f"Axis {self.display.format_axis(command)}")

    async def cmd_center(self, args: list) -> None:
        """Center the joystick."""
        await self.cmd_axis(["0", "0"])

    async def cmd_press(self, args: list) -> None:
        """Press an extend/retract button."""
        await self._button(args, pressed=True)

    async def cmd_release(self, args: list) -> None:
        """Release an extend/retract button."""
        await self._button(args, pressed=False)

    async def _button(self, args: List[str], pressed: bool) -> None:
        if not self._require_ready():
            return

        try:
            button = Button(args[0].lower()) if args else None
        except ValueError:
            button = None
        if button is None:
            self.display.print_error(f"Button must be one of: {', '.join(BUTTON_NAMES)}")
            return

        self.controller.on_button(button, pressed)
        await self.controller.flush()

    async def cmd_toggle(self, args: list) -> None:
        """Toggle upper stage, lower stage or smooth mode."""
        if not self._require_ready():
            return

        try:
            toggle = Toggle(args[0].lower()) if args else None
        except ValueError:
            toggle = None
        if toggle is None:
            self.display.print_error(f"Toggle must be one of: {', '.join(TOGGLE_NAMES)}")
            return

        self.controller.on_toggle(toggle)
        await self.controller.flush()
        state = self.controller.actuator_state
        if state is not None and not self.display.live_enabled:
            self.display.print_info(
                f"Stages: {self.display.format_stages(state)}, mode: {state.mode.name.lower()}"
            )

    async def cmd_reset(self, args: list) -> None:
        """Neutralize actuators, clear faults, center axes."""
        if not self._require_ready():
            return

        self.controller.on_reset()
        await self.controller.flush()
        self.display.update_live({"axis": self.controller.last_axis})
        self.display.print_info("Reset sent")

    async def cmd_status(self, args: list) -> None:
        """Show link and control state."""
        self.display.print_status(self.controller.get_status())

    async def cmd_live(self, args: list) -> None:
        """Toggle live display mode."""
        enabled = self.display.toggle_live()
        if enabled:
            self.display.update_live(self.controller.get_status())
        else:
            self.display.print_info("Live display disabled")

    async def cmd_info(self, args: list) -> None:
        """Show device and debug information."""
        settings = self.controller.settings
        status = self.controller.get_status()

        self.display.console.print("[bold cyan]Link[/bold cyan]")
        self.display.console.print(
            f"  State: {self.display.format_link(status['link'], status['reason'])}"
        )
        self.display.console.print(f"  Device: {status['device'] or '-'}")

        session = self.controller.manager.session
        if session is not None:
            roles = ", ".join(sorted(role.name for role in session.registry.roles))
            self.display.console.print(f"  Endpoints: {roles or '-'}")

        self.display.console.print()
        self.display.console.print("[bold cyan]Protocol Settings[/bold cyan]")
        generation = settings.generation
        self.display.console.print(
            f"  Generation: {generation.name.lower()} "
            f"(scale {generation.scale}, {generation.width}-byte axes)"
        )
        period = settings.heartbeat_period
        self.display.console.print(
            f"  Heartbeat: {f'{period:.1f} s' if period else 'off'}"
        )

        self.display.console.print()
        self.display.console.print("[bold cyan]Debug Information[/bold cyan]")
        self.display.console.print(f"  Ready: {self.controller.is_ready}")
        self.display.console.print(f"  Live enabled: {self.display.live_enabled}")
        control = self.controller.session
        if control is not None:
            self.display.console.print(f"  Pending writes: {control.pending}")
            self.display.console.print(
                f"  Heartbeat running: {control.heartbeat.is_running}"
            )

    async def cmd_help(self, args: list) -> None:
        """Show all available commands."""
        self.display.print_help(COMMANDS)

    async def cmd_quit(self, args: list) -> None:
        """Exit the REPL."""
        if self.display.live_enabled:
            self.display.stop_live()

        if self.controller.state is not LinkState.DISCONNECTED:
            self.display.print_info("Disconnecting...")
            await self.controller.disconnect()

        self.display.console.print("[cyan]Goodbye![/cyan]")
        self.running = False


async def run_scan(settings: Settings) -> None:
    """Scan once, print the named devices and exit."""
    controller = RemoteController(settings)
    display = DisplayManager()

    display.print_info(f"Scanning for {settings.scan_timeout:.0f}s...")
    devices = await controller.scan()
    display.print_devices(devices)


def build_settings(args: argparse.Namespace) -> Settings:
    """Apply CLI overrides on top of environment settings."""
    settings = Settings.from_env()
    if args.heartbeat_period is not None:
        period = args.heartbeat_period if args.heartbeat_period > 0 else None
        settings = replace(settings, heartbeat_period=period)
    if args.legacy:
        settings = replace(settings, generation=ProtocolGeneration.LEGACY)
    if args.scan_timeout is not None:
        settings = replace(settings, scan_timeout=args.scan_timeout)
    if args.debug:
        settings = replace(settings, log_level="DEBUG")
    return settings


def main() -> None:
    """Entry point for the REPL application."""
    parser = argparse.ArgumentParser(
        description="BLE Joystick Remote Control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bluejoy                          # Start interactive REPL
  bluejoy --device AA:BB:CC:DD:EE  # Start REPL and connect on startup
  bluejoy --scan                   # List nearby devices and exit
  bluejoy --legacy                 # Use the first-generation axis encoding
  bluejoy --heartbeat-period 0     # Disable heartbeat re-sends
        """,
    )

    parser.add_argument("--scan", action="store_true", help="List devices and exit")

    parser.add_argument(
        "--device", metavar="ID", help="Address or name to connect to on startup"
    )

    parser.add_argument(
        "--heartbeat-period",
        type=float,
        metavar="SECONDS",
        help="Heartbeat interval (0 disables)",
    )

    parser.add_argument(
        "--scan-timeout", type=float, metavar="SECONDS", help="Scan duration"
    )

    parser.add_argument(
        "--legacy",
        action="store_true",
        help="Legacy protocol (127 scale, 1-byte axes, inverted Y)",
    )

    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    args = parser.parse_args()
    settings = build_settings(args)
    configure_logging(settings.log_level)

    if args.scan:
        try:
            asyncio.run(run_scan(settings))
        except KeyboardInterrupt:
            print("\nInterrupted")
            sys.exit(1)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    try:
        repl = BlueJoyREPL(settings)
        asyncio.run(repl.run(device=args.device))
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
