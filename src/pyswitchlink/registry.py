"""Device registry and lifecycle.

The registry owns, per device, the identity, its refresh orchestrator,
one periodic refresh timer and one ordered inbound queue for push events
(radio advertisements and webhooks). It also owns the radio and webhook
dispatch tables, tied to device add/remove.

An error inside one device's pipeline is logged there and never reaches
other devices or the caller of an event handler.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pyswitchlink._constants import normalize_device_id
from pyswitchlink._logging import device_logger
from pyswitchlink._transport import CloudTransport, HistoryWriter, HostPlatform, RadioScanner, TelemetryPublisher
from pyswitchlink.commands import send_command
from pyswitchlink.devices import create_pipeline
from pyswitchlink.devices.base import Logger
from pyswitchlink.exceptions import DecodeMismatchError
from pyswitchlink.ingestion.webhook import WebhookRouter, parse_webhook_body
from pyswitchlink.models.identity import DeviceIdentity, TransportKind
from pyswitchlink.models.payloads import RadioAdvertisement, WebhookEvent
from pyswitchlink.models.status import CommandResult
from pyswitchlink.orchestrator import CycleOutcome, RefreshCycle, RefreshOrchestrator
from pyswitchlink.reconciler import Reconciler
from pyswitchlink.state.events import NormalizedState, PublishedState
from pyswitchlink.state.store import StateStore

_logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
PushPayload = RadioAdvertisement | WebhookEvent


@dataclass
class _DeviceEntry:
    identity: DeviceIdentity
    orchestrator: RefreshOrchestrator
    logger: Logger
    inbound: asyncio.Queue[PushPayload] = field(default_factory=asyncio.Queue)
    worker: asyncio.Task[None] | None = None
    timer: asyncio.Task[None] | None = None
    tasks: set[asyncio.Task[Any]] = field(default_factory=set)


class DeviceRegistry:
    """Owns every registered device and routes events to it.

    Usage::

        async with DeviceRegistry(host, radio=scanner, cloud=cloud) as registry:
            await registry.add_device(resolve_identity(raw_device, link))
            ...
    """

    def __init__(
        self,
        host: HostPlatform,
        *,
        radio: RadioScanner | None = None,
        cloud: CloudTransport | None = None,
        telemetry: TelemetryPublisher | None = None,
        history: HistoryWriter | None = None,
        webhook_router: WebhookRouter | None = None,
        cloud_service_enabled: bool = True,
        topic_prefix: str | None = None,
        start_timers: bool = True,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._radio = radio
        self._cloud = cloud
        self._webhook_router = webhook_router
        self._cloud_service_enabled = cloud_service_enabled
        self._start_timers = start_timers
        self._sleep = sleep
        self._store = StateStore()
        self._reconciler = Reconciler(
            host,
            self._store,
            telemetry=telemetry,
            history=history,
            topic_prefix=topic_prefix,
        )
        # Radio hardware is single-channel: one scan system-wide.
        self._radio_lock = asyncio.Lock()
        self._devices: dict[str, _DeviceEntry] = {}
        self._by_address: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> DeviceRegistry:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        for device_id in list(self._devices):
            await self.remove_device(device_id)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def device_ids(self) -> list[str]:
        return list(self._devices)

    async def add_device(self, identity: DeviceIdentity) -> RefreshOrchestrator:
        """Register *identity*, start its inbound worker and refresh timer."""
        device_id = normalize_device_id(identity.device_id)
        if device_id in self._devices:
            await self.remove_device(device_id)

        logger = device_logger(identity)
        pipeline = create_pipeline(identity, logger)
        orchestrator = RefreshOrchestrator(
            identity,
            pipeline,
            self._store,
            self._reconciler,
            radio=self._radio,
            cloud=self._cloud,
            radio_lock=self._radio_lock,
            cloud_service_enabled=self._cloud_service_enabled,
            sleep=self._sleep,
            logger=logger,
        )
        entry = _DeviceEntry(identity=identity, orchestrator=orchestrator, logger=logger)
        self._devices[device_id] = entry

        if identity.uses(TransportKind.RADIO):
            self._by_address[identity.address.lower()] = device_id
        if identity.uses(TransportKind.WEBHOOK) and self._webhook_router is not None:
            self._webhook_router.subscribe(device_id, self._webhook_handler(device_id))
            logger.debug("listening to webhook")

        entry.worker = asyncio.create_task(self._inbound_worker(entry), name=f"switchlink-inbound-{device_id}")
        if self._start_timers:
            entry.timer = asyncio.create_task(self._refresh_timer(entry), name=f"switchlink-timer-{device_id}")

        logger.info(
            "registered (transports: %s, refresh every %ss)",
            ", ".join(sorted(t.value for t in identity.transports)) or "none",
            identity.refresh_interval,
        )
        return orchestrator

    async def remove_device(self, device_id: str) -> None:
        """Stop the device's timer and worker and drop its dispatch entries."""
        device_id = normalize_device_id(device_id)
        entry = self._devices.pop(device_id, None)
        if entry is None:
            return
        if self._by_address.get(entry.identity.address.lower()) == device_id:
            del self._by_address[entry.identity.address.lower()]
        if self._webhook_router is not None:
            self._webhook_router.unsubscribe(device_id)

        tasks = [t for t in (entry.timer, entry.worker, *entry.tasks) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._store.forget(device_id)
        entry.logger.debug("removed")

    def _entry(self, device_id: str) -> _DeviceEntry:
        entry = self._devices.get(normalize_device_id(device_id))
        if entry is None:
            raise KeyError(f"Unknown device: {device_id}")
        return entry

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def on_tick(self, device_id: str) -> CycleOutcome | None:
        """Run one refresh cycle for *device_id* (skipped while one is in flight)."""
        entry = self._devices.get(normalize_device_id(device_id))
        if entry is None:
            _logger.debug("Tick for unknown device %s", device_id)
            return None
        try:
            return await entry.orchestrator.run_cycle()
        except Exception:
            entry.logger.exception("refresh cycle crashed")
            return None

    async def on_radio_event(self, address: str, payload: RadioAdvertisement) -> bool:
        """Queue a radio advertisement for the device at *address*."""
        device_id = self._by_address.get(address.strip().lower())
        if device_id is None:
            return False
        entry = self._devices[device_id]
        if payload.address != entry.identity.address.lower():
            entry.logger.debug("ignoring advertisement for %s", payload.address)
            return False
        entry.inbound.put_nowait(payload)
        return True

    async def on_webhook_event(self, device_id: str, payload: WebhookEvent | Mapping[str, Any]) -> bool:
        """Queue a webhook push for *device_id*.

        *payload* may be a parsed :class:`WebhookEvent`, a full webhook
        body, or just its ``context`` mapping.
        """
        entry = self._devices.get(normalize_device_id(device_id))
        if entry is None:
            _logger.debug("Webhook for unknown device %s", device_id)
            return False
        if not entry.identity.uses(TransportKind.WEBHOOK):
            entry.logger.debug("webhook not enabled, ignoring push")
            return False
        try:
            event = self._coerce_webhook(entry.identity.device_id, payload)
        except DecodeMismatchError as exc:
            entry.logger.warning("ignoring webhook: %s", exc)
            return False
        entry.inbound.put_nowait(event)
        return True

    @staticmethod
    def _coerce_webhook(device_id: str, payload: WebhookEvent | Mapping[str, Any]) -> WebhookEvent:
        device_id = normalize_device_id(device_id)
        if isinstance(payload, WebhookEvent):
            event = payload
        elif "context" in payload:
            event = parse_webhook_body(payload)
        else:
            return WebhookEvent(device_id=device_id, context=dict(payload))
        if normalize_device_id(event.device_id) != device_id:
            raise DecodeMismatchError(
                "webhook is addressed to another device", expected=device_id, received=event.device_id
            )
        return event

    def _webhook_handler(self, device_id: str) -> Callable[[WebhookEvent], Awaitable[bool]]:
        async def _handle(event: WebhookEvent) -> bool:
            return await self.on_webhook_event(device_id, event)

        return _handle

    async def drain(self, device_id: str) -> None:
        """Wait until every queued push for *device_id* has been applied."""
        await self._entry(device_id).inbound.join()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def get_identity(self, device_id: str) -> DeviceIdentity:
        return self._entry(device_id).identity

    def get_cycle(self, device_id: str) -> RefreshCycle:
        return self._entry(device_id).orchestrator.cycle

    def get_state(self, device_id: str) -> NormalizedState:
        return self._store.get_state(normalize_device_id(device_id))

    def get_published(self, device_id: str) -> PublishedState:
        return self._store.get_published(normalize_device_id(device_id))

    def seed_published(self, device_id: str, values: Mapping[str, Any]) -> None:
        """Restore last-known published values, e.g. from the host's cache."""
        self._store.seed_published(self._entry(device_id).identity.device_id, values)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def send_command(
        self,
        device_id: str,
        command: str,
        parameter: Any = "default",
        command_type: str = "command",
        *,
        refresh: bool = True,
    ) -> CommandResult:
        """Send a cloud command; on success schedule a refresh after ``update_interval``."""
        entry = self._entry(device_id)
        result = await send_command(
            self._cloud,
            entry.identity,
            command,
            parameter,
            command_type,
            logger=entry.logger,
        )
        if result.success and refresh:
            self._spawn(entry, self._delayed_refresh(entry), "refresh-after-command")
        return result

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def _spawn(self, entry: _DeviceEntry, coro: Awaitable[Any], label: str) -> None:
        task = asyncio.ensure_future(coro)
        entry.tasks.add(task)
        task.add_done_callback(entry.tasks.discard)
        entry.logger.debug("spawned %s", label)

    async def _refresh_timer(self, entry: _DeviceEntry) -> None:
        # Each tick runs as its own task so a slow cycle makes the next
        # tick hit the busy check instead of delaying the timer.
        while True:
            self._spawn(entry, self.on_tick(entry.identity.device_id), "tick")
            await asyncio.sleep(entry.identity.refresh_interval)

    async def _delayed_refresh(self, entry: _DeviceEntry) -> None:
        await self._sleep(entry.identity.update_interval)
        await self.on_tick(entry.identity.device_id)

    async def _inbound_worker(self, entry: _DeviceEntry) -> None:
        while True:
            payload = await entry.inbound.get()
            try:
                await entry.orchestrator.apply_push(payload)
            except Exception:
                entry.logger.exception("failed to handle %s push", payload.transport)
            finally:
                entry.inbound.task_done()
