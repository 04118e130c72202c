"""Normalization helpers.

Centralizes defensive parsing, clamping to physical bounds and unit
conversion so every decoder (radio, cloud, webhook) applies the same
rules.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable
from typing import Any

from pyswitchlink._constants import LOW_BATTERY_THRESHOLD
from pyswitchlink.models.capabilities import BatteryStatus
from pyswitchlink.models.identity import TemperatureUnit

_logger = logging.getLogger(__name__)


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off"}:
            return False
    return None


def clamp(
    value: float,
    bounds: tuple[float, float],
    *,
    name: str,
    logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
) -> float:
    """Clamp *value* into *bounds*, logging a warning when it had to move."""
    low, high = bounds
    if low <= value <= high:
        return value
    clamped = low if value < low else high
    (logger or _logger).warning("%s %s out of range [%s, %s], clamped to %s", name, value, low, high, clamped)
    return clamped


# ------------------------------------------------------------------
# Temperature
# ------------------------------------------------------------------

_TO_CELSIUS: dict[TemperatureUnit, Callable[[float], float]] = {
    TemperatureUnit.CELSIUS: lambda v: v,
    TemperatureUnit.FAHRENHEIT: lambda v: (v - 32.0) * 5.0 / 9.0,
    TemperatureUnit.KELVIN: lambda v: v - 273.15,
}

_FROM_CELSIUS: dict[TemperatureUnit, Callable[[float], float]] = {
    TemperatureUnit.CELSIUS: lambda v: v,
    TemperatureUnit.FAHRENHEIT: lambda v: v * 9.0 / 5.0 + 32.0,
    TemperatureUnit.KELVIN: lambda v: v + 273.15,
}

_SCALE_ALIASES: dict[str, TemperatureUnit] = {
    "c": TemperatureUnit.CELSIUS,
    "celsius": TemperatureUnit.CELSIUS,
    "f": TemperatureUnit.FAHRENHEIT,
    "fahrenheit": TemperatureUnit.FAHRENHEIT,
    "k": TemperatureUnit.KELVIN,
    "kelvin": TemperatureUnit.KELVIN,
}


def parse_scale(scale: Any) -> TemperatureUnit | None:
    if isinstance(scale, TemperatureUnit):
        return scale
    if not isinstance(scale, str):
        return None
    return _SCALE_ALIASES.get(scale.strip().lower())


def convert_temperature(
    value: float,
    scale: Any,
    target: TemperatureUnit | None,
    *,
    logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
) -> float:
    """Convert a reading reported in *scale* to *target*.

    Without a *target* override the value passes through unchanged; a
    non-Celsius scale is then reported as a configuration warning since
    the host expects Celsius. A missing scale is assumed to be Celsius.
    """
    log = logger or _logger
    source = parse_scale(scale) if scale is not None else TemperatureUnit.CELSIUS

    if target is None:
        if source != TemperatureUnit.CELSIUS:
            log.warning(
                "received a non-CELSIUS temperature scale %r; set convert_unit_to if it displays incorrectly",
                scale,
            )
        return value

    if source is None:
        log.warning("unknown temperature scale %r, cannot convert to %s", scale, target.value)
        return value

    return round(_FROM_CELSIUS[target](_TO_CELSIUS[source](value)), 2)


# ------------------------------------------------------------------
# Derived values
# ------------------------------------------------------------------


def battery_status(level: float) -> BatteryStatus:
    return BatteryStatus.LOW if level < LOW_BATTERY_THRESHOLD else BatteryStatus.NORMAL


def get_light_level(light_level: float, min_lux: float, max_lux: float, space_between_levels: int) -> float:
    """Map a discrete light level (1..space_between_levels+1) onto a lux range."""
    number_of_levels = space_between_levels + 1
    if light_level == 1:
        return min_lux
    if light_level == number_of_levels:
        return max_lux
    return ((max_lux - min_lux) / space_between_levels) * (light_level - 1)


def bright_dark_to_lux(brightness: Any, min_lux: float, max_lux: float) -> float | None:
    """Translate a ``"bright"``/``"dark"`` (or ``"dim"``) flag into an ambient lux value."""
    if isinstance(brightness, bool):
        is_bright = brightness
    elif isinstance(brightness, str) and brightness.strip().lower() in {"bright", "dark", "dim"}:
        is_bright = brightness.strip().lower() == "bright"
    elif isinstance(brightness, (int, float)):
        # Radio light level: 1 = dark, 2 = bright.
        is_bright = brightness >= 2
    else:
        return None
    level = 2 if is_bright else 1
    return get_light_level(level, min_lux, max_lux, 1)


_VERSION_STRIP = re.compile(r"^V|-.*$")


def parse_firmware_version(value: Any) -> str | None:
    """Normalize a firmware string: ``"V1.2-beta"`` -> ``"1.2"``, ``"V123"`` -> ``"1.2.3"``."""
    if value is None:
        return None
    text = _VERSION_STRIP.sub("", str(value).strip())
    if not text:
        return None
    if "." not in text:
        return ".".join(text)
    return text
