"""Per-device refresh state machine.

One :class:`RefreshOrchestrator` exists per device. A cycle moves
``idle -> in_flight(transport) -> retrying(attempt, transport)`` and ends
``idle`` on success or ``failed`` once every planned transport failed.
``failed`` only describes the last cycle: the next tick starts fresh.

Radio is tried first, up to ``retry.max_attempts`` times, then cloud as
the single fallback hop. A tick that arrives while a cycle is in flight
is dropped, not queued.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pyswitchlink._transport import CloudTransport, RadioScanner
from pyswitchlink.devices.base import DevicePipeline, Logger
from pyswitchlink.exceptions import (
    DecodeMismatchError,
    RemoteStatusError,
    TransportError,
    TransportTimeoutError,
    TransportUnavailableError,
)
from pyswitchlink.models.identity import DeviceIdentity, StateSource, TransportKind
from pyswitchlink.models.payloads import RadioAdvertisement, WebhookEvent
from pyswitchlink.models.status import classify_status_code
from pyswitchlink.reconciler import Reconciler
from pyswitchlink.state.policy import PlanKind, select_transports
from pyswitchlink.state.store import StateStore

_logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class CycleState(enum.StrEnum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    RETRYING = "retrying"
    FAILED = "failed"


@dataclass(frozen=True)
class RefreshCycle:
    """Snapshot of a device's refresh state machine."""

    state: CycleState = CycleState.IDLE
    transport: TransportKind | None = None
    attempt: int = 0
    error: str | None = None

    @property
    def busy(self) -> bool:
        return self.state in (CycleState.IN_FLIGHT, CycleState.RETRYING)


class CycleStatus(enum.StrEnum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"
    OFFLINE = "offline"
    NOOP = "noop"


@dataclass(frozen=True)
class CycleOutcome:
    """What one :meth:`RefreshOrchestrator.run_cycle` call did."""

    status: CycleStatus
    attempts: tuple[TransportKind, ...] = ()
    changes: tuple[tuple[str, Any], ...] = ()
    error: str | None = None
    source: StateSource | None = None

    @property
    def ok(self) -> bool:
        return self.status in (CycleStatus.SUCCESS, CycleStatus.OFFLINE)


class RefreshOrchestrator:
    """Runs refresh cycles and push updates for one device."""

    def __init__(
        self,
        identity: DeviceIdentity,
        pipeline: DevicePipeline,
        store: StateStore,
        reconciler: Reconciler,
        *,
        radio: RadioScanner | None = None,
        cloud: CloudTransport | None = None,
        radio_lock: asyncio.Lock | None = None,
        cloud_service_enabled: bool = True,
        sleep: Sleep = asyncio.sleep,
        logger: Logger | None = None,
    ) -> None:
        self.identity = identity
        self.pipeline = pipeline
        self._store = store
        self._reconciler = reconciler
        self._radio = radio
        self._cloud = cloud
        self._radio_lock = radio_lock or asyncio.Lock()
        self._cloud_service_enabled = cloud_service_enabled
        self._sleep = sleep
        self.logger: Logger = logger or _logger
        self._cycle = RefreshCycle()

    @property
    def cycle(self) -> RefreshCycle:
        return self._cycle

    @property
    def busy(self) -> bool:
        return self._cycle.busy

    def _enter(self, state: CycleState, transport: TransportKind | None = None, attempt: int = 0) -> None:
        self._cycle = RefreshCycle(state=state, transport=transport, attempt=attempt)

    def _fail(self, error: str) -> None:
        self._cycle = RefreshCycle(
            state=CycleState.FAILED,
            transport=self._cycle.transport,
            attempt=self._cycle.attempt,
            error=error,
        )

    # ------------------------------------------------------------------
    # Periodic refresh
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleOutcome:
        """Run one refresh cycle, or skip it if one is already in flight."""
        if self._cycle.busy:
            self.logger.debug(
                "refresh skipped, %s cycle still %s",
                self._cycle.transport,
                self._cycle.state.value,
            )
            return CycleOutcome(CycleStatus.SKIPPED)

        plan = select_transports(
            self.identity,
            cloud_credentialed=self._cloud is not None and self._cloud.has_credentials,
            cloud_service_enabled=self._cloud_service_enabled,
        )

        if plan.kind == PlanKind.UNAVAILABLE:
            error = TransportUnavailableError(f"refresh not attempted: {plan.reason}", transport="cloud")
            self.logger.error("%s", error)
            self._cycle = RefreshCycle(state=CycleState.FAILED, error=str(error))
            return CycleOutcome(CycleStatus.UNAVAILABLE, error=str(error))

        if plan.kind == PlanKind.NOOP:
            self.logger.warning("%s, refresh will not happen", plan.reason)
            self._enter(CycleState.IDLE)
            return CycleOutcome(CycleStatus.NOOP)

        if plan.kind == PlanKind.OFFLINE:
            self.logger.debug("%s, publishing offline placeholders", plan.reason)
            changes = await self._commit(self.pipeline.offline_patch(), StateSource.OFFLINE)
            self._enter(CycleState.IDLE)
            return CycleOutcome(CycleStatus.OFFLINE, changes=tuple(changes), source=StateSource.OFFLINE)

        # Claim the cycle before the first suspension point.
        self._enter(CycleState.IN_FLIGHT, plan.chain[0], 1)
        attempts: list[TransportKind] = []
        errors: list[str] = []
        try:
            for index, transport in enumerate(plan.chain):
                if index:
                    self.logger.info("falling back from %s to %s", plan.chain[index - 1].value, transport.value)
                if transport == TransportKind.RADIO:
                    patch = await self._attempt_radio(attempts, errors)
                else:
                    patch = await self._attempt_cloud(attempts, errors)
                if patch is None:
                    continue
                changes = await self._commit(patch, StateSource(transport.value))
                self._enter(CycleState.IDLE)
                return CycleOutcome(
                    CycleStatus.SUCCESS,
                    attempts=tuple(attempts),
                    changes=tuple(changes),
                    source=StateSource(transport.value),
                )
        except BaseException:
            if self._cycle.busy:
                self._fail("cycle aborted")
            raise

        error = "; ".join(errors) or "no transport succeeded"
        self.logger.error("refresh failed: %s", error)
        self._fail(error)
        return CycleOutcome(CycleStatus.FAILED, attempts=tuple(attempts), error=error)

    async def _attempt_radio(self, attempts: list[TransportKind], errors: list[str]) -> dict[str, Any] | None:
        policy = self.identity.retry
        last_error = ""
        for attempt in range(1, policy.max_attempts + 1):
            state = CycleState.IN_FLIGHT if attempt == 1 else CycleState.RETRYING
            self._enter(state, TransportKind.RADIO, attempt)
            attempts.append(TransportKind.RADIO)
            try:
                return await self._scan_once()
            except (TransportError, DecodeMismatchError) as exc:
                self.logger.debug("radio attempt %d/%d failed: %s", attempt, policy.max_attempts, exc)
                last_error = f"radio: {exc}"
            if attempt < policy.max_attempts:
                await self._sleep(policy.delay_for(attempt))
        errors.append(last_error)
        self.logger.warning("radio refresh failed after %d attempt(s): %s", policy.max_attempts, last_error)
        return None

    async def _scan_once(self) -> dict[str, Any]:
        if self._radio is None:
            raise TransportUnavailableError("no radio adapter", transport="radio")
        identity = self.identity
        async with self._radio_lock:
            advertisement = await self._radio.scan(identity.address, identity.model.ble_model, identity.scan_duration)
        if advertisement is None:
            raise TransportTimeoutError(
                f"no advertisement from {identity.address} within {identity.scan_duration}s",
                transport="radio",
            )
        return self.pipeline.decode(advertisement)

    async def _attempt_cloud(self, attempts: list[TransportKind], errors: list[str]) -> dict[str, Any] | None:
        self._enter(CycleState.IN_FLIGHT, TransportKind.CLOUD, 1)
        attempts.append(TransportKind.CLOUD)
        try:
            return await self._fetch_cloud()
        except (TransportError, DecodeMismatchError, RemoteStatusError) as exc:
            errors.append(f"cloud: {exc}")
            return None

    async def _fetch_cloud(self) -> dict[str, Any]:
        if self._cloud is None:
            raise TransportUnavailableError("no cloud adapter", transport="cloud")
        identity = self.identity
        response = await self._cloud.fetch_status(
            identity.device_id,
            max_retries=identity.retry.max_attempts - 1,
            retry_delay=identity.retry.delay,
        )
        classification = classify_status_code(
            response.status_code,
            device_id=identity.device_id,
            hub_device_id=identity.hub_device_id,
        )
        self.logger.log(
            classification.log_level,
            "statusCode: %s, %s",
            classification.status_code,
            classification.message,
        )
        if not classification.is_success:
            raise RemoteStatusError(
                classification.message,
                status_code=classification.status_code,
                kind=classification.kind.value,
            )
        return self.pipeline.decode(response)

    # ------------------------------------------------------------------
    # Push events
    # ------------------------------------------------------------------

    async def apply_push(self, payload: RadioAdvertisement | WebhookEvent) -> CycleOutcome:
        """Apply an already-delivered push payload.

        Pushes bypass the busy check and never touch the cycle state.
        """
        source = StateSource(payload.transport)
        try:
            patch = self.pipeline.decode(payload)
        except DecodeMismatchError as exc:
            self.logger.debug("ignoring %s push: %s", payload.transport, exc)
            return CycleOutcome(CycleStatus.FAILED, error=str(exc), source=source)
        changes = await self._commit(patch, source)
        return CycleOutcome(CycleStatus.SUCCESS, changes=tuple(changes), source=source)

    async def _commit(self, patch: dict[str, Any], source: StateSource) -> list[tuple[str, Any]]:
        self._store.apply_patch(self.identity.device_id, patch, source=source)
        return await self._reconciler.apply(
            self.identity,
            exposed=self.pipeline.exposed_capabilities,
            logger=self.logger,
        )
