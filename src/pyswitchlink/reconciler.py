"""Characteristic reconciler.

:func:`diff` is pure. :meth:`Reconciler.apply` pushes each change to the
host and records it in :class:`PublishedState` only after the host
accepted it, then fans out to telemetry and history.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import UTC, datetime
from typing import Any

from pyswitchlink._mqtt import telemetry_topic
from pyswitchlink._transport import HistoryWriter, HostPlatform, TelemetryPublisher
from pyswitchlink.exceptions import HostUpdateError
from pyswitchlink.models.capabilities import UNAVAILABLE
from pyswitchlink.models.identity import DeviceIdentity
from pyswitchlink.state.events import NormalizedState, PublishedState
from pyswitchlink.state.store import StateStore

_logger = logging.getLogger(__name__)

Logger = logging.Logger | logging.LoggerAdapter[Any]


def diff(
    state: NormalizedState,
    published: PublishedState,
    exposed: Collection[str] | None = None,
) -> list[tuple[str, Any]]:
    """Capabilities whose value changed or was never published, in state order."""
    changes: list[tuple[str, Any]] = []
    for name, value in state.values().items():
        if exposed is not None and name not in exposed:
            continue
        if published.has(name) and published.get(name) == value:
            continue
        changes.append((name, value))
    return changes


class Reconciler:
    """Applies diffs to the host platform, one capability at a time."""

    def __init__(
        self,
        host: HostPlatform,
        store: StateStore,
        *,
        telemetry: TelemetryPublisher | None = None,
        history: HistoryWriter | None = None,
        topic_prefix: str | None = None,
    ) -> None:
        self._host = host
        self._store = store
        self._telemetry = telemetry
        self._history = history
        self._topic_prefix = topic_prefix

    async def apply(
        self,
        identity: DeviceIdentity,
        *,
        exposed: Collection[str] | None = None,
        logger: Logger | None = None,
    ) -> list[tuple[str, Any]]:
        """Publish what changed for *identity*; return the changes the host accepted."""
        log = logger or _logger
        device_id = identity.device_id
        changes = diff(self._store.get_state(device_id), self._store.get_published(device_id), exposed)
        if not changes:
            log.debug("no characteristic changes")
            return []

        applied: list[tuple[str, Any]] = []
        for capability, value in changes:
            if value is None or value is UNAVAILABLE:
                log.info("%s is unavailable, not updating", capability)
                continue
            value = await self._push_current(device_id, capability, value, log)
            if value is None:
                continue
            self._store.record_published(device_id, capability, value)
            applied.append((capability, value))
            log.debug("updated %s: %s", capability, value)
            self._publish_telemetry(identity, capability, value, log)

        if applied:
            self._write_history(identity, applied, log)
        return applied

    async def _push_current(self, device_id: str, capability: str, value: Any, log: Logger) -> Any:
        """Write *capability* to the host until the host holds the current state value.

        A push for the same device can land while the host is awaited. The
        value written last must be the one in NormalizedState, so a write
        overtaken by a newer value is followed by a write of that value.
        Returns the value the host now holds, or ``None`` when nothing was
        written.
        """
        overtaken = False
        while True:
            current = self._store.get_state(device_id).value(capability)
            if current != value:
                log.debug("%s changed to %s during update", capability, current)
                value = current
            if value is None or value is UNAVAILABLE:
                return None
            published = self._store.get_published(device_id)
            if not overtaken and published.has(capability) and published.get(capability) == value:
                return None
            try:
                await self._update_host(device_id, capability, value)
            except HostUpdateError as exc:
                log.error("failed to update %s: %s", capability, exc)
                return None
            if self._store.get_state(device_id).value(capability) == value:
                return value
            overtaken = True

    async def _update_host(self, device_id: str, capability: str, value: Any) -> None:
        try:
            await self._host.update_characteristic(device_id, capability, value)
        except HostUpdateError:
            raise
        except Exception as exc:
            raise HostUpdateError(str(exc) or type(exc).__name__, capability=capability) from exc

    def _publish_telemetry(self, identity: DeviceIdentity, capability: str, value: Any, log: Logger) -> None:
        if self._telemetry is None:
            return
        kwargs = {"prefix": self._topic_prefix} if self._topic_prefix else {}
        topic = telemetry_topic(identity.device_type, identity.address, **kwargs)
        try:
            self._telemetry.publish(topic, {capability: value})
        except Exception as exc:
            log.warning("telemetry publish to %s failed: %s", topic, exc)

    def _write_history(self, identity: DeviceIdentity, applied: list[tuple[str, Any]], log: Logger) -> None:
        if self._history is None or not identity.history:
            return
        entry: dict[str, Any] = {"time": int(datetime.now(UTC).timestamp())}
        entry.update(applied)
        try:
            self._history.add_entry(identity.device_id, entry)
        except Exception as exc:
            log.warning("history write failed: %s", exc)
