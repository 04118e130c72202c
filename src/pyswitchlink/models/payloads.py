"""Raw status payloads, one variant per transport.

Payloads are ephemeral: produced by an adapter (or a push handler) and
consumed by a decoder within one reconciliation cycle.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter, field_validator

from pyswitchlink.models._base import SwitchBotBaseModel


class RadioAdvertisement(SwitchBotBaseModel):
    """A parsed BLE advertisement.

    ``service_data`` holds the decoded capability fields (``battery``,
    ``celsius``, ``humidity``, ``movement``, ...) alongside ``model`` and
    ``modelName``.
    """

    transport: Literal["radio"] = "radio"
    address: str
    model: str = ""
    model_name: str = ""
    rssi: int | None = None
    service_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("address")
    @classmethod
    def _normalize_address(cls, value: str) -> str:
        return value.strip().lower()

    @classmethod
    def from_service_data(
        cls,
        address: str,
        service_data: dict[str, Any],
        *,
        rssi: int | None = None,
    ) -> RadioAdvertisement:
        return cls(
            address=address,
            model=str(service_data.get("model") or ""),
            model_name=str(service_data.get("modelName") or ""),
            rssi=rssi,
            service_data=dict(service_data),
            raw={"address": address, "rssi": rssi, "serviceData": dict(service_data)},
        )


class CloudResponse(SwitchBotBaseModel):
    """Envelope returned by the cloud status and command endpoints."""

    transport: Literal["cloud"] = "cloud"
    status_code: int
    message: str = ""
    body: dict[str, Any] = Field(default_factory=dict)

    @field_validator("body", mode="before")
    @classmethod
    def _coerce_body(cls, value: Any) -> Any:
        # Command endpoints answer with ``"body": {}`` or omit it entirely.
        return value if isinstance(value, dict) else {}

    @property
    def is_success(self) -> bool:
        return self.status_code in (100, 200)


class WebhookEvent(SwitchBotBaseModel):
    """A push delivered by the cloud webhook.

    ``context`` holds the device fields (``temperature``, ``scale``,
    ``humidity``, ``detectionState``, ``openState``, ``battery``, ...).
    """

    transport: Literal["webhook"] = "webhook"
    device_id: str
    event_type: str = "changeReport"
    event_version: str = "1"
    context: dict[str, Any] = Field(default_factory=dict)


RawStatusPayload = Annotated[
    RadioAdvertisement | CloudResponse | WebhookEvent,
    Field(discriminator="transport"),
]

RAW_STATUS_PAYLOAD_ADAPTER: TypeAdapter[RadioAdvertisement | CloudResponse | WebhookEvent] = TypeAdapter(
    RawStatusPayload
)
