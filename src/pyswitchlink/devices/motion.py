"""Motion sensor."""

from __future__ import annotations

from typing import Any

from pyswitchlink.devices.base import DevicePipeline, battery_patch, firmware_patch, light_level_patch
from pyswitchlink.ingestion.normalize import safe_bool
from pyswitchlink.models import capabilities as cap
from pyswitchlink.models.payloads import CloudResponse, RadioAdvertisement, WebhookEvent


def motion_patch(fields: dict[str, Any], key: str) -> dict[str, Any]:
    value = fields.get(key)
    if key == "detectionState" and isinstance(value, str):
        return {cap.MOTION: value.strip().upper() == "DETECTED"}
    detected = safe_bool(value)
    return {} if detected is None else {cap.MOTION: detected}


class MotionPipeline(DevicePipeline):
    kind = "motion"
    capabilities = (cap.MOTION, cap.LIGHT_LEVEL, cap.BATTERY, cap.LOW_BATTERY, cap.FIRMWARE)
    offline_placeholders = {cap.MOTION: False}

    def decode_radio(self, advertisement: RadioAdvertisement) -> dict[str, Any]:
        data = advertisement.service_data
        return {
            **motion_patch(data, "movement"),
            **light_level_patch(data, "lightLevel", self.identity, self.logger),
            **battery_patch(data, "battery", self.logger),
        }

    def decode_cloud(self, response: CloudResponse) -> dict[str, Any]:
        body = response.body
        return {
            **motion_patch(body, "moveDetected"),
            **light_level_patch(body, "brightness", self.identity, self.logger),
            **battery_patch(body, "battery", self.logger),
            **firmware_patch(body),
        }

    def decode_webhook(self, event: WebhookEvent) -> dict[str, Any]:
        context = event.context
        return {
            **motion_patch(context, "detectionState"),
            **light_level_patch(context, "brightness", self.identity, self.logger),
            **battery_patch(context, "battery", self.logger),
        }
