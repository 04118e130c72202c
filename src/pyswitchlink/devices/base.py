"""Device pipeline base class and shared decode helpers.

A :class:`DevicePipeline` variant exists per device type. It supplies the
decoders for each transport, the set of capabilities the device exposes
and the neutral placeholders published by the offline fallback. The
refresh orchestrator and reconciler are shared by every variant.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, ClassVar

from pyswitchlink._constants import (
    BATTERY_RANGE,
    HUMIDITY_RANGE,
    LIGHT_LEVEL_RANGE,
    TEMPERATURE_RANGE,
)
from pyswitchlink.exceptions import DecodeMismatchError
from pyswitchlink.ingestion.normalize import (
    battery_status,
    bright_dark_to_lux,
    clamp,
    convert_temperature,
    parse_firmware_version,
    safe_float,
)
from pyswitchlink.models import capabilities as cap
from pyswitchlink.models.identity import DeviceIdentity
from pyswitchlink.models.payloads import CloudResponse, RadioAdvertisement, WebhookEvent

Logger = logging.Logger | logging.LoggerAdapter[Any]

_logger = logging.getLogger(__name__)


def verify_radio_model(advertisement: RadioAdvertisement, identity: DeviceIdentity) -> None:
    """Reject advertisements that do not belong to *identity*.

    Both the model character and the model name must match the declared
    model; a mismatch is a cross-talk packet.
    """
    expected = identity.model
    if not expected.ble_model:
        raise DecodeMismatchError(
            f"{identity.device_type} has no radio model",
            expected="radio model",
            received=advertisement.model,
        )
    if advertisement.model != expected.ble_model or advertisement.model_name != expected.ble_model_name:
        raise DecodeMismatchError(
            "advertisement model does not match device",
            expected=f"{expected.ble_model}/{expected.ble_model_name}",
            received=f"{advertisement.model}/{advertisement.model_name}",
        )


def battery_patch(fields: Mapping[str, Any], key: str, logger: Logger) -> dict[str, Any]:
    """Battery level plus the derived low-battery status, when *key* is present."""
    level = safe_float(fields.get(key))
    if level is None:
        return {}
    level = clamp(level, BATTERY_RANGE, name="battery", logger=logger)
    return {cap.BATTERY: int(level), cap.LOW_BATTERY: battery_status(level)}


def humidity_patch(fields: Mapping[str, Any], key: str, logger: Logger) -> dict[str, Any]:
    humidity = safe_float(fields.get(key))
    if humidity is None:
        return {}
    return {cap.HUMIDITY: clamp(humidity, HUMIDITY_RANGE, name="humidity", logger=logger)}


def temperature_patch(
    fields: Mapping[str, Any],
    key: str,
    identity: DeviceIdentity,
    logger: Logger,
    *,
    scale: Any = None,
) -> dict[str, Any]:
    temperature = safe_float(fields.get(key))
    if temperature is None:
        return {}
    temperature = convert_temperature(temperature, scale, identity.options.convert_unit_to, logger=logger)
    return {cap.TEMPERATURE: clamp(temperature, TEMPERATURE_RANGE, name="temperature", logger=logger)}


def light_level_patch(
    fields: Mapping[str, Any],
    key: str,
    identity: DeviceIdentity,
    logger: Logger,
) -> dict[str, Any]:
    lux = bright_dark_to_lux(fields.get(key), identity.options.min_lux, identity.options.max_lux)
    if lux is None:
        return {}
    return {cap.LIGHT_LEVEL: clamp(lux, LIGHT_LEVEL_RANGE, name="light_level", logger=logger)}


def firmware_patch(fields: Mapping[str, Any], key: str = "version") -> dict[str, Any]:
    version = parse_firmware_version(fields.get(key))
    return {cap.FIRMWARE: version} if version else {}


class DevicePipeline:
    """Per-device-type decode surface shared by all transports.

    Subclasses set :attr:`capabilities` and :attr:`offline_placeholders`
    and implement the three ``decode_*`` methods, each returning a
    capability patch. A patch only carries the capabilities the payload
    actually reported.
    """

    kind: ClassVar[str] = "base"
    capabilities: ClassVar[tuple[str, ...]] = ()
    offline_placeholders: ClassVar[Mapping[str, Any]] = {}

    def __init__(self, identity: DeviceIdentity, logger: Logger | None = None) -> None:
        self.identity = identity
        self.logger: Logger = logger or _logger

    def hidden_capabilities(self) -> frozenset[str]:
        options = self.identity.options
        hidden: set[str] = set()
        if options.hide_temperature:
            hidden.add(cap.TEMPERATURE)
        if options.hide_humidity:
            hidden.add(cap.HUMIDITY)
        if options.hide_lightsensor:
            hidden.add(cap.LIGHT_LEVEL)
        return frozenset(hidden)

    @property
    def exposed_capabilities(self) -> frozenset[str]:
        return frozenset(self.capabilities) - self.hidden_capabilities()

    def _exposed(self, patch: dict[str, Any]) -> dict[str, Any]:
        exposed = self.exposed_capabilities
        return {name: value for name, value in patch.items() if name in exposed}

    def decode(self, payload: RadioAdvertisement | CloudResponse | WebhookEvent) -> dict[str, Any]:
        """Decode any raw payload into a patch of exposed capabilities."""
        if isinstance(payload, RadioAdvertisement):
            verify_radio_model(payload, self.identity)
            patch = self.decode_radio(payload)
        elif isinstance(payload, CloudResponse):
            patch = self.decode_cloud(payload)
        elif isinstance(payload, WebhookEvent):
            patch = self.decode_webhook(payload)
        else:
            raise DecodeMismatchError(
                "unsupported payload",
                expected="RawStatusPayload",
                received=type(payload).__name__,
            )
        patch = self._exposed(patch)
        self.logger.debug("decoded %s payload: %s", payload.transport, patch)
        return patch

    def offline_patch(self) -> dict[str, Any]:
        return self._exposed(dict(self.offline_placeholders))

    def decode_radio(self, advertisement: RadioAdvertisement) -> dict[str, Any]:
        raise NotImplementedError

    def decode_cloud(self, response: CloudResponse) -> dict[str, Any]:
        raise NotImplementedError

    def decode_webhook(self, event: WebhookEvent) -> dict[str, Any]:
        raise NotImplementedError
