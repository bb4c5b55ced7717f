"""
BlueJoy - BLE Joystick Remote Control Library

A Python library for driving a joystick-controlled BLE actuator peripheral.
"""

__version__ = "0.1.0"
__description__ = "CLI and REPL remote control for BLE joystick actuators"

from .controller import RemoteController
from .display import DisplayManager

__all__ = ["RemoteController", "DisplayManager"]
