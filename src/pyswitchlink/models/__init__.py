"""Data models for SwitchBot devices, payloads and cloud status codes."""

from pyswitchlink.models._base import SwitchBotBaseModel, SwitchBotEnum, strip_sentinels
from pyswitchlink.models.capabilities import UNAVAILABLE, BatteryStatus, ContactState
from pyswitchlink.models.identity import (
    DEVICE_MODELS,
    DeviceIdentity,
    DeviceModel,
    DeviceOptions,
    RetryPolicy,
    StateSource,
    TemperatureUnit,
    TransportKind,
    lookup_model,
)
from pyswitchlink.models.payloads import (
    RAW_STATUS_PAYLOAD_ADAPTER,
    CloudResponse,
    RadioAdvertisement,
    RawStatusPayload,
    WebhookEvent,
)
from pyswitchlink.models.status import (
    CommandResult,
    StatusClassification,
    StatusKind,
    classify_status_code,
    is_success_code,
    remap_hub_offline,
)

__all__ = [
    "BatteryStatus",
    "CloudResponse",
    "CommandResult",
    "ContactState",
    "DEVICE_MODELS",
    "DeviceIdentity",
    "DeviceModel",
    "DeviceOptions",
    "RAW_STATUS_PAYLOAD_ADAPTER",
    "RadioAdvertisement",
    "RawStatusPayload",
    "RetryPolicy",
    "StateSource",
    "StatusClassification",
    "StatusKind",
    "SwitchBotBaseModel",
    "SwitchBotEnum",
    "TemperatureUnit",
    "TransportKind",
    "UNAVAILABLE",
    "WebhookEvent",
    "classify_status_code",
    "is_success_code",
    "lookup_model",
    "remap_hub_offline",
    "strip_sentinels",
]
