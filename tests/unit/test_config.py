"""Settings from environment variables."""

from bluejoy.codec import ProtocolGeneration
from bluejoy.config import Settings
from bluejoy.core import HEARTBEAT_PERIOD


def test_defaults():
    settings = Settings.from_env({})
    assert settings.heartbeat_period == HEARTBEAT_PERIOD
    assert settings.generation is ProtocolGeneration.CURRENT
    assert settings.log_level == "INFO"


def test_environment_overrides():
    settings = Settings.from_env(
        {
            "BLUEJOY_HEARTBEAT_PERIOD": "2.5",
            "BLUEJOY_PROTOCOL": "legacy",
            "BLUEJOY_SCAN_TIMEOUT": "3",
            "BLUEJOY_CONNECT_TIMEOUT": "4",
            "BLUEJOY_LOG_LEVEL": "debug",
        }
    )
    assert settings.heartbeat_period == 2.5
    assert settings.generation is ProtocolGeneration.LEGACY
    assert settings.scan_timeout == 3.0
    assert settings.connect_timeout == 4.0
    assert settings.log_level == "DEBUG"


def test_zero_period_disables_heartbeat():
    assert Settings.from_env({"BLUEJOY_HEARTBEAT_PERIOD": "0"}).heartbeat_period is None


def test_bad_values_fall_back_to_defaults():
    settings = Settings.from_env(
        {"BLUEJOY_HEARTBEAT_PERIOD": "often", "BLUEJOY_PROTOCOL": "v9"}
    )
    assert settings.heartbeat_period == HEARTBEAT_PERIOD
    assert settings.generation is ProtocolGeneration.CURRENT
