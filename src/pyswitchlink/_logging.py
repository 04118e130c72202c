"""Per-device loggers.

Every device logs under ``pyswitchlink.device.<device_id>`` with a
``"<device_type>: <name>"`` prefix. The device ``logging`` option maps
``debug`` to DEBUG, ``standard`` to INFO and ``none`` to silence.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

from pyswitchlink.models.identity import DeviceIdentity

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "standard": logging.INFO,
    "none": logging.CRITICAL + 1,
}


class DeviceLoggerAdapter(logging.LoggerAdapter[logging.Logger]):
    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        prefix = self.extra.get("prefix", "") if self.extra else ""
        return f"{prefix}: {msg}", kwargs


def device_logger(identity: DeviceIdentity) -> DeviceLoggerAdapter:
    logger = logging.getLogger(f"pyswitchlink.device.{identity.device_id}")
    level = _LEVELS.get(identity.log_level.strip().lower())
    if level is None:
        logging.getLogger(__name__).warning(
            "Unknown logging option %r for %s, using 'standard'",
            identity.log_level,
            identity.device_id,
        )
        level = logging.INFO
    logger.setLevel(level)
    return DeviceLoggerAdapter(logger, {"prefix": f"{identity.device_type}: {identity.display_name}"})
