"""Contact sensor (door/window) with built-in motion and light detection."""

from __future__ import annotations

from typing import Any

from pyswitchlink.devices.base import DevicePipeline, battery_patch, firmware_patch, light_level_patch
from pyswitchlink.devices.motion import motion_patch
from pyswitchlink.models import capabilities as cap
from pyswitchlink.models.payloads import CloudResponse, RadioAdvertisement, WebhookEvent

# Radio reports "timeout not close", the cloud "timeOutNotClose".
_CLOSED_STATES = frozenset({"close", "closed"})
_OPEN_STATES = frozenset({"open", "timeout not close", "timeoutnotclose"})


def contact_patch(fields: dict[str, Any], key: str) -> dict[str, Any]:
    value = fields.get(key)
    if not isinstance(value, str):
        return {}
    state = value.strip().lower()
    if state in _CLOSED_STATES:
        return {cap.CONTACT: cap.ContactState.DETECTED}
    if state in _OPEN_STATES:
        return {cap.CONTACT: cap.ContactState.NOT_DETECTED}
    return {}


class ContactPipeline(DevicePipeline):
    kind = "contact"
    capabilities = (cap.CONTACT, cap.MOTION, cap.LIGHT_LEVEL, cap.BATTERY, cap.LOW_BATTERY, cap.FIRMWARE)
    offline_placeholders = {cap.CONTACT: cap.ContactState.DETECTED, cap.MOTION: False}

    def decode_radio(self, advertisement: RadioAdvertisement) -> dict[str, Any]:
        data = advertisement.service_data
        return {
            **contact_patch(data, "doorState"),
            **motion_patch(data, "movement"),
            **light_level_patch(data, "lightLevel", self.identity, self.logger),
            **battery_patch(data, "battery", self.logger),
        }

    def decode_cloud(self, response: CloudResponse) -> dict[str, Any]:
        body = response.body
        return {
            **contact_patch(body, "openState"),
            **motion_patch(body, "moveDetected"),
            **light_level_patch(body, "brightness", self.identity, self.logger),
            **battery_patch(body, "battery", self.logger),
            **firmware_patch(body),
        }

    def decode_webhook(self, event: WebhookEvent) -> dict[str, Any]:
        context = event.context
        return {
            **contact_patch(context, "openState"),
            **motion_patch(context, "detectionState"),
            **light_level_patch(context, "brightness", self.identity, self.logger),
            **battery_patch(context, "battery", self.logger),
        }
