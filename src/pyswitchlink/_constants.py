"""Internal constants shared across the library."""

from __future__ import annotations

import re

BASE_URL = "https://api.switch-bot.com"
API_VERSION = "v1.1"
USER_AGENT = "pyswitchlink"

# ------------------------------------------------------------------
# Rate / retry defaults (device config -> platform config -> these)
# ------------------------------------------------------------------

DEFAULT_REFRESH_RATE: float = 300.0
DEFAULT_UPDATE_RATE: float = 5.0
DEFAULT_MAX_RETRIES: int = 2
DEFAULT_RETRY_DELAY: float = 3.0
DEFAULT_SCAN_DURATION: float = 1.0
DEFAULT_TOPIC_PREFIX = "homebridge-switchbot"

# ------------------------------------------------------------------
# Cloud status codes
# ------------------------------------------------------------------

SUCCESS_STATUS_CODES: frozenset[int] = frozenset({100, 200})
DEVICE_OFFLINE_CODE = 161
HUB_OFFLINE_CODE = 171
PLACEHOLDER_HUB_ID = "000000000000"
BUG_REPORT_HINT = "Submit Bugs Here: https://tinyurl.com/SwitchBotBug"

# ------------------------------------------------------------------
# Physical bounds enforced by decoders
# ------------------------------------------------------------------

HUMIDITY_RANGE: tuple[float, float] = (0.0, 100.0)
TEMPERATURE_RANGE: tuple[float, float] = (-273.15, 100.0)
BATTERY_RANGE: tuple[float, float] = (0.0, 100.0)
LIGHT_LEVEL_RANGE: tuple[float, float] = (0.0001, 100000.0)
LOW_BATTERY_THRESHOLD = 10

DEFAULT_MIN_LUX = 1.0
DEFAULT_MAX_LUX = 6001.0

# ------------------------------------------------------------------
# BLE
# ------------------------------------------------------------------

SERVICE_DATA_UUIDS: tuple[str, ...] = (
    "0000fd3d-0000-1000-8000-00805f9b34fb",
    "00000d00-0000-1000-8000-00805f9b34fb",
)

_DEVICE_ID_RE = re.compile(r"^[0-9a-fA-F]{12}$")


def format_device_id_as_mac(device_id: str) -> str:
    """Convert a 12-hex SwitchBot device id to a lower-case BLE MAC.

    Accepts ids that already contain ``:`` or ``-`` separators.
    Raises :class:`ValueError` for anything else.
    """
    compact = device_id.strip().replace(":", "").replace("-", "")
    if not _DEVICE_ID_RE.match(compact):
        raise ValueError(f"device id must be 12 hex characters, got {device_id!r}")
    compact = compact.lower()
    return ":".join(compact[i : i + 2] for i in range(0, 12, 2))


def normalize_device_id(device_id: str) -> str:
    """Canonical device id: separators removed, upper-case hex."""
    return str(device_id).strip().replace(":", "").replace("-", "").upper()
