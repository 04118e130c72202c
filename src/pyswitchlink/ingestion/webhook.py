"""Webhook body parsing and per-device dispatch.

SwitchBot posts ``changeReport`` events shaped like::

    {
        "eventType": "changeReport",
        "eventVersion": "1",
        "context": {
            "deviceType": "WoMeter",
            "deviceMac": "DA7D8CD9B1A8",
            "temperature": 22.5,
            "scale": "CELSIUS",
            "humidity": 31,
            "battery": 100,
            "timeOfSample": 123456789
        }
    }

``deviceMac`` is the same 12-hex identifier used as the cloud device id.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import ValidationError

from pyswitchlink._constants import normalize_device_id
from pyswitchlink._redact import redact_for_log
from pyswitchlink.exceptions import DecodeMismatchError
from pyswitchlink.models.payloads import WebhookEvent

_logger = logging.getLogger(__name__)

WebhookHandler = Callable[[WebhookEvent], Awaitable[Any]]


def parse_webhook_body(body: Mapping[str, Any] | str | bytes) -> WebhookEvent:
    """Parse a webhook POST body into a :class:`WebhookEvent`.

    Raises :class:`DecodeMismatchError` when the body is not a SwitchBot
    device event.
    """
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except json.JSONDecodeError as exc:
            raise DecodeMismatchError("webhook body is not JSON", expected="object") from exc
    if not isinstance(body, Mapping):
        raise DecodeMismatchError(
            "webhook body must be a JSON object",
            expected="object",
            received=type(body).__name__,
        )

    context = body.get("context")
    if not isinstance(context, Mapping):
        raise DecodeMismatchError("webhook body has no context", expected="context")
    device_mac = context.get("deviceMac")
    if not device_mac:
        raise DecodeMismatchError("webhook context has no deviceMac", expected="deviceMac")

    try:
        return WebhookEvent(
            device_id=normalize_device_id(device_mac),
            event_type=str(body.get("eventType") or "changeReport"),
            event_version=str(body.get("eventVersion") or "1"),
            context=dict(context),
            raw=dict(body),
        )
    except ValidationError as exc:
        raise DecodeMismatchError(f"invalid webhook body: {exc}") from exc


class WebhookRouter:
    """Dispatch table from device id to the handler owning that device.

    The router does not reorder anything: each handler is expected to
    enqueue the event on its device's ordered inbound queue.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, WebhookHandler] = {}

    def subscribe(self, device_id: str, handler: WebhookHandler) -> None:
        key = normalize_device_id(device_id)
        if key in self._handlers:
            _logger.debug("Replacing webhook handler for %s", key)
        self._handlers[key] = handler

    def unsubscribe(self, device_id: str) -> None:
        self._handlers.pop(normalize_device_id(device_id), None)

    def is_subscribed(self, device_id: str) -> bool:
        return normalize_device_id(device_id) in self._handlers

    async def dispatch(self, body: Mapping[str, Any] | str | bytes) -> bool:
        """Route one webhook body; return ``True`` when a handler accepted it."""
        try:
            event = parse_webhook_body(body)
        except DecodeMismatchError as exc:
            _logger.warning("Ignoring webhook: %s", exc)
            return False

        handler = self._handlers.get(event.device_id)
        if handler is None:
            _logger.debug("No webhook handler for %s: %s", event.device_id, redact_for_log(event.context))
            return False

        await handler(event)
        return True
