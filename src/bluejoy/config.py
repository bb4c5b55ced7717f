"""
Runtime settings, read from the environment and overridden by CLI flags.
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .codec import ProtocolGeneration
from .core import CONNECT_TIMEOUT, HEARTBEAT_PERIOD, SCAN_TIMEOUT

logger = logging.getLogger(__name__)

ENV_PREFIX = "BLUEJOY_"


@dataclass(frozen=True)
class Settings:
    """Tunable engine settings."""

    heartbeat_period: Optional[float] = HEARTBEAT_PERIOD
    generation: ProtocolGeneration = ProtocolGeneration.CURRENT
    scan_timeout: float = SCAN_TIMEOUT
    connect_timeout: float = CONNECT_TIMEOUT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from BLUEJOY_* environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings with defaults for anything unset or unparseable
        """
        env = os.environ if environ is None else environ
        settings = cls()

        period = _read_float(env, "HEARTBEAT_PERIOD")
        if period is not None:
            # 0 or negative disables the heartbeat
            settings = replace(
                settings, heartbeat_period=period if period > 0 else None
            )

        protocol = env.get(ENV_PREFIX + "PROTOCOL")
        if protocol:
            try:
                settings = replace(
                    settings, generation=ProtocolGeneration.from_name(protocol)
                )
            except ValueError as e:
                logger.warning(f"Ignoring {ENV_PREFIX}PROTOCOL: {e}")

        scan_timeout = _read_float(env, "SCAN_TIMEOUT")
        if scan_timeout is not None:
            settings = replace(settings, scan_timeout=scan_timeout)

        connect_timeout = _read_float(env, "CONNECT_TIMEOUT")
        if connect_timeout is not None:
            settings = replace(settings, connect_timeout=connect_timeout)

        level = env.get(ENV_PREFIX + "LOG_LEVEL")
        if level:
            settings = replace(settings, log_level=level.upper())

        return settings


def _read_float(env: Mapping[str, str], name: str) -> Optional[float]:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring {ENV_PREFIX}{name}={raw!r}: not a number")
        return None
