"""Telemetry publishing over paho-mqtt.

Each published capability lands on ``{prefix}/{device_type}/{mac}`` as a
JSON object ``{capability: value}``. Publishing is best-effort: a broken
broker connection is logged and the update is dropped.
"""

from __future__ import annotations

import enum
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import paho.mqtt.client as mqtt

from pyswitchlink._constants import DEFAULT_TOPIC_PREFIX
from pyswitchlink.exceptions import SwitchLinkConfigError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrokerSettings:
    """Broker connection details parsed from an ``mqtt://`` URL."""

    host: str
    port: int = 1883
    username: str | None = None
    password: str | None = None
    tls: bool = False


def parse_broker_url(url: str) -> BrokerSettings:
    value = url.strip()
    if not value:
        raise SwitchLinkConfigError("MQTT URL is empty")
    if "://" not in value:
        value = f"mqtt://{value}"
    parts = urlsplit(value)
    if parts.scheme not in {"mqtt", "mqtts", "tcp", "ssl"}:
        raise SwitchLinkConfigError(f"Unsupported MQTT scheme: {parts.scheme!r}")
    if not parts.hostname:
        raise SwitchLinkConfigError(f"MQTT URL has no host: {url!r}")
    tls = parts.scheme in {"mqtts", "ssl"}
    return BrokerSettings(
        host=parts.hostname,
        port=parts.port or (8883 if tls else 1883),
        username=parts.username,
        password=parts.password,
        tls=tls,
    )


def telemetry_topic(device_type: str, address: str, *, prefix: str = DEFAULT_TOPIC_PREFIX) -> str:
    """Topic for one device, keyed by type and stable hardware address."""
    return f"{prefix}/{device_type}/{address}"


def _json_default(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    return str(value)


def encode_payload(payload: Mapping[str, Any]) -> str:
    return json.dumps(dict(payload), default=_json_default, separators=(",", ":"))


class MqttTelemetryPublisher:
    """Threaded paho-mqtt publisher.

    :meth:`start` connects asynchronously and runs paho's network loop in
    its own thread; :meth:`publish` never raises.
    """

    def __init__(
        self,
        settings: BrokerSettings,
        *,
        qos: int = 0,
        retain: bool = False,
        keepalive: int = 60,
        client_factory: Callable[[], mqtt.Client] | None = None,
    ) -> None:
        self._settings = settings
        self._qos = qos
        self._retain = retain
        self._keepalive = keepalive
        self._client_factory = client_factory or (lambda: mqtt.Client(mqtt.CallbackAPIVersion.VERSION2))
        self._client: mqtt.Client | None = None

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> MqttTelemetryPublisher:
        return cls(parse_broker_url(url), **kwargs)

    @property
    def is_running(self) -> bool:
        return self._client is not None

    def start(self) -> None:
        self.stop()
        client = self._client_factory()
        if self._settings.username:
            client.username_pw_set(self._settings.username, self._settings.password)
        if self._settings.tls:
            client.tls_set()
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        _logger.debug("MQTT telemetry connecting to %s:%s", self._settings.host, self._settings.port)
        client.connect_async(self._settings.host, self._settings.port, keepalive=self._keepalive)
        client.loop_start()
        self._client = client

    def stop(self) -> None:
        client = self._client
        self._client = None
        if client is None:
            return
        try:
            client.disconnect()
        finally:
            client.loop_stop()

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        client = self._client
        if client is None:
            _logger.debug("MQTT telemetry not started, dropping %s", topic)
            return
        try:
            info = client.publish(topic, encode_payload(payload), qos=self._qos, retain=self._retain)
        except (OSError, ValueError, TypeError) as exc:
            _logger.warning("MQTT publish to %s failed: %s", topic, exc)
            return
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            _logger.warning("MQTT publish to %s failed: %s", topic, mqtt.error_string(info.rc))

    def _on_connect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if getattr(reason_code, "is_failure", False):
            _logger.warning("MQTT telemetry connect failed: %s", reason_code)
        else:
            _logger.debug("MQTT telemetry connected")

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any,
    ) -> None:
        _logger.debug("MQTT telemetry disconnected: %s", reason_code)
