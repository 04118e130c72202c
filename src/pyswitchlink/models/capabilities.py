"""Capability names and typed capability values."""

from __future__ import annotations

import enum
from typing import Final

from pyswitchlink.models._base import SwitchBotEnum

BATTERY: Final = "battery"
LOW_BATTERY: Final = "low_battery"
TEMPERATURE: Final = "temperature"
HUMIDITY: Final = "humidity"
MOTION: Final = "motion"
LIGHT_LEVEL: Final = "light_level"
CONTACT: Final = "contact"
FIRMWARE: Final = "firmware"


class BatteryStatus(SwitchBotEnum):
    """Mirrors the host's ``StatusLowBattery`` characteristic."""

    UNKNOWN = -1
    NORMAL = 0
    LOW = 1


class ContactState(SwitchBotEnum):
    """Mirrors the host's ``ContactSensorState`` characteristic."""

    UNKNOWN = -1
    DETECTED = 0
    NOT_DETECTED = 1


class Unavailable(enum.Enum):
    """Marker for a capability the device explicitly reports as unavailable."""

    TOKEN = "unavailable"

    def __repr__(self) -> str:
        return "UNAVAILABLE"


UNAVAILABLE: Final = Unavailable.TOKEN
