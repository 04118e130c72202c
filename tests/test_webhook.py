from __future__ import annotations

import json

import pytest

from pyswitchlink.exceptions import DecodeMismatchError
from pyswitchlink.ingestion.webhook import WebhookRouter, parse_webhook_body
from pyswitchlink.models.payloads import WebhookEvent

_BODY = {
    "eventType": "changeReport",
    "eventVersion": "1",
    "context": {
        "deviceType": "WoMeter",
        "deviceMac": "DA7D8CD9B1A8",
        "temperature": 22.5,
        "scale": "CELSIUS",
        "humidity": 31,
        "battery": 100,
        "timeOfSample": 123456789,
    },
}


def test_parse_webhook_body_from_json_bytes() -> None:
    event = parse_webhook_body(json.dumps(_BODY).encode())

    assert event.device_id == "DA7D8CD9B1A8"
    assert event.event_type == "changeReport"
    assert event.context["humidity"] == 31
    assert event.raw == _BODY


@pytest.mark.parametrize(
    "body",
    [
        "{not json",
        "[1, 2]",
        {"eventType": "changeReport"},
        {"context": {"temperature": 1}},
    ],
)
def test_parse_webhook_body_rejects_non_device_events(body: object) -> None:
    with pytest.raises(DecodeMismatchError):
        parse_webhook_body(body)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_router_dispatches_by_normalized_device_id() -> None:
    received: list[WebhookEvent] = []

    async def _handler(event: WebhookEvent) -> None:
        received.append(event)

    router = WebhookRouter()
    router.subscribe("da:7d:8c:d9:b1:a8", _handler)

    assert await router.dispatch(_BODY)
    assert [event.device_id for event in received] == ["DA7D8CD9B1A8"]


@pytest.mark.asyncio
async def test_router_drops_unknown_and_malformed_bodies() -> None:
    router = WebhookRouter()

    assert not await router.dispatch(_BODY)
    assert not await router.dispatch("garbage")


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery() -> None:
    received: list[WebhookEvent] = []

    async def _handler(event: WebhookEvent) -> None:
        received.append(event)

    router = WebhookRouter()
    router.subscribe("DA7D8CD9B1A8", _handler)
    router.unsubscribe("DA7D8CD9B1A8")

    assert not await router.dispatch(_BODY)
    assert received == []
