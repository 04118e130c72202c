"""Device identity, transport kinds and the device model table."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pyswitchlink._constants import DEFAULT_MAX_LUX, DEFAULT_MIN_LUX, normalize_device_id


class TransportKind(enum.StrEnum):
    """Channels through which device state can be obtained."""

    RADIO = "radio"
    CLOUD = "cloud"
    WEBHOOK = "webhook"


class StateSource(enum.StrEnum):
    """Tag recorded on every capability value."""

    RADIO = "radio"
    CLOUD = "cloud"
    WEBHOOK = "webhook"
    OFFLINE = "offline"


class TemperatureUnit(enum.StrEnum):
    CELSIUS = "CELSIUS"
    FAHRENHEIT = "FAHRENHEIT"
    KELVIN = "KELVIN"


@dataclass(frozen=True)
class DeviceModel:
    """Cloud and BLE model identifiers for one SwitchBot device type.

    ``ble_model`` is the single model character carried in advertisement
    service data; ``ble_model_name`` is the name the radio stack reports.
    ``pipeline`` selects the device pipeline implementation.
    """

    model: str
    ble_model: str
    ble_model_name: str
    friendly_name: str
    pipeline: str


UNKNOWN_MODEL = DeviceModel("Unknown", "", "Unknown", "Unknown", "unknown")

DEVICE_MODELS: dict[str, DeviceModel] = {
    "Meter": DeviceModel("SwitchBot Thermometer and Hygrometer", "T", "WoSensorTH", "Meter", "hygrometer"),
    "MeterPlus": DeviceModel("SwitchBot Thermometer and Hygrometer Plus (US)", "i", "WoSensorTHPlus", "Meter Plus", "hygrometer"),
    "Meter Plus (JP)": DeviceModel("SwitchBot Thermometer and Hygrometer Plus (JP)", "i", "WoSensorTHPlus", "Meter Plus", "hygrometer"),
    "Meter Pro": DeviceModel("SwitchBot Meter Pro", "4", "WoMeterPro", "Meter Pro", "hygrometer"),
    "MeterPro(CO2)": DeviceModel("SwitchBot Meter Pro CO2", "5", "WoMeterProCO2", "Meter Pro CO2", "hygrometer"),
    "WoIOSensor": DeviceModel("SwitchBot Indoor/Outdoor Thermo-Hygrometer", "w", "WoIOSensorTH", "Outdoor Meter", "hygrometer"),
    "Hub 2": DeviceModel("SwitchBot Hub 2", "v", "WoHub2", "Hub 2", "hygrometer"),
    "Motion Sensor": DeviceModel("SwitchBot Motion Sensor", "s", "WoPresence", "Motion Sensor", "motion"),
    "Contact Sensor": DeviceModel("SwitchBot Contact Sensor", "d", "WoContact", "Contact Sensor", "contact"),
}


def lookup_model(device_type: str) -> DeviceModel:
    """Return the model entry for a cloud ``deviceType`` (``UNKNOWN_MODEL`` if unmapped)."""
    return DEVICE_MODELS.get(device_type, UNKNOWN_MODEL)


class RetryPolicy(BaseModel):
    """Bounded retry: ``max_attempts`` tries with ``delay * backoff**(n-1)`` between them."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = Field(default=2, ge=1)
    delay: float = Field(default=3.0, ge=0.0)
    backoff: float = Field(default=1.0, ge=1.0)

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt number *attempt* (1-based)."""
        return self.delay * (self.backoff ** max(attempt - 1, 0))


class DeviceOptions(BaseModel):
    """Per-device presentation options consumed by decoders."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    hide_temperature: bool = False
    hide_humidity: bool = False
    hide_lightsensor: bool = False
    convert_unit_to: TemperatureUnit | None = None
    min_lux: float = DEFAULT_MIN_LUX
    max_lux: float = DEFAULT_MAX_LUX

    @model_validator(mode="after")
    def _check_lux_range(self) -> DeviceOptions:
        if self.max_lux <= self.min_lux:
            raise ValueError(f"max_lux ({self.max_lux}) must be greater than min_lux ({self.min_lux})")
        return self


class DeviceIdentity(BaseModel):
    """Immutable description of one physical device.

    Created at registration by :func:`pyswitchlink.config.resolve_identity`
    and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    device_id: str
    address: str
    device_type: str
    model: DeviceModel = UNKNOWN_MODEL
    name: str = ""
    transports: frozenset[TransportKind] = frozenset()
    refresh_interval: float = Field(default=300.0, gt=0)
    update_interval: float = Field(default=5.0, ge=0)
    scan_duration: float = Field(default=1.0, gt=0)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    hub_device_id: str | None = None
    offline: bool = False
    history: bool = False
    options: DeviceOptions = Field(default_factory=DeviceOptions)
    log_level: str = "standard"

    @field_validator("device_id")
    @classmethod
    def _normalize_device_id(cls, value: str) -> str:
        device_id = normalize_device_id(value)
        if not device_id:
            raise ValueError("device_id must be non-empty")
        return device_id

    @field_validator("hub_device_id")
    @classmethod
    def _normalize_hub_device_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_device_id(value) or None

    @field_validator("address")
    @classmethod
    def _normalize_address(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def display_name(self) -> str:
        return self.name or self.device_id

    def uses(self, transport: TransportKind) -> bool:
        return transport in self.transports
