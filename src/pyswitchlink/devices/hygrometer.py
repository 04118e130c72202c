"""Thermometer/hygrometer family (Meter, Meter Plus, Meter Pro, Outdoor Meter, Hub 2)."""

from __future__ import annotations

from typing import Any

from pyswitchlink.devices.base import (
    DevicePipeline,
    battery_patch,
    firmware_patch,
    humidity_patch,
    temperature_patch,
)
from pyswitchlink.models import capabilities as cap
from pyswitchlink.models.payloads import CloudResponse, RadioAdvertisement, WebhookEvent


class HygrometerPipeline(DevicePipeline):
    kind = "hygrometer"
    capabilities = (cap.BATTERY, cap.LOW_BATTERY, cap.TEMPERATURE, cap.HUMIDITY, cap.FIRMWARE)
    offline_placeholders = {cap.HUMIDITY: 50.0, cap.TEMPERATURE: 30.0}

    def decode_radio(self, advertisement: RadioAdvertisement) -> dict[str, Any]:
        # ``celsius`` is always Celsius; the ``fahrenheit`` flag only
        # reflects the device's display setting.
        data = advertisement.service_data
        return {
            **battery_patch(data, "battery", self.logger),
            **humidity_patch(data, "humidity", self.logger),
            **temperature_patch(data, "celsius", self.identity, self.logger),
        }

    def decode_cloud(self, response: CloudResponse) -> dict[str, Any]:
        body = response.body
        return {
            **battery_patch(body, "battery", self.logger),
            **humidity_patch(body, "humidity", self.logger),
            **temperature_patch(body, "temperature", self.identity, self.logger),
            **firmware_patch(body),
        }

    def decode_webhook(self, event: WebhookEvent) -> dict[str, Any]:
        context = event.context
        return {
            **battery_patch(context, "battery", self.logger),
            **humidity_patch(context, "humidity", self.logger),
            **temperature_patch(
                context,
                "temperature",
                self.identity,
                self.logger,
                scale=context.get("scale"),
            ),
        }
