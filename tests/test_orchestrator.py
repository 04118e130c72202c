from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pyswitchlink.config import resolve_identity
from pyswitchlink.devices import create_pipeline
from pyswitchlink.exceptions import CloudTransportError
from pyswitchlink.models import capabilities as cap
from pyswitchlink.models.identity import DeviceIdentity, StateSource, TransportKind
from pyswitchlink.models.payloads import CloudResponse, RadioAdvertisement, WebhookEvent
from pyswitchlink.orchestrator import CycleState, CycleStatus, RefreshOrchestrator
from pyswitchlink.reconciler import Reconciler
from pyswitchlink.state.store import StateStore

DEVICE_ID = "AABBCCDDEEFF"
ADDRESS = "aa:bb:cc:dd:ee:ff"


def _advert(**fields: Any) -> RadioAdvertisement:
    return RadioAdvertisement.from_service_data(ADDRESS, {"model": "T", "modelName": "WoSensorTH", **fields})


class _DummyHost:
    def __init__(self) -> None:
        self.updates: list[tuple[str, Any]] = []

    async def update_characteristic(self, device_id: str, capability: str, value: Any) -> None:
        self.updates.append((capability, value))


class _SlowHost(_DummyHost):
    """Holds the first host update until released."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def update_characteristic(self, device_id: str, capability: str, value: Any) -> None:
        if not self.started.is_set():
            self.started.set()
            await self.release.wait()
        await super().update_characteristic(device_id, capability, value)


class _DummyRadio:
    def __init__(self, results: list[Any] | None = None, *, gate: asyncio.Event | None = None) -> None:
        self.results = list(results or [])
        self.gate = gate
        self.calls: list[tuple[str, str, float]] = []
        self.started = asyncio.Event()

    async def scan(self, address: str, model: str, duration: float) -> RadioAdvertisement | None:
        self.calls.append((address, model, duration))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        return result


class _DummyCloud:
    def __init__(self, responses: list[Any] | None = None, *, has_credentials: bool = True) -> None:
        self.responses = list(responses or [])
        self._has_credentials = has_credentials
        self.calls: list[tuple[str, int, float]] = []

    @property
    def has_credentials(self) -> bool:
        return self._has_credentials

    async def fetch_status(self, device_id: str, *, max_retries: int, retry_delay: float) -> CloudResponse:
        self.calls.append((device_id, max_retries, retry_delay))
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def send_command(self, *args: Any, **kwargs: Any) -> CloudResponse:
        raise AssertionError("not used")


class _SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _identity(connection_type: str = "BLE/OpenAPI", **extra: Any) -> DeviceIdentity:
    return resolve_identity(
        {
            "deviceId": DEVICE_ID,
            "deviceType": "Meter",
            "connectionType": connection_type,
            "maxRetries": 3,
            "delayBetweenRetries": 2,
            "retryBackoff": 2,
            **extra,
        }
    )


def _orchestrator(
    identity: DeviceIdentity,
    *,
    radio: _DummyRadio | None = None,
    cloud: _DummyCloud | None = None,
    sleep: _SleepRecorder | None = None,
    cloud_service_enabled: bool = True,
    host: _DummyHost | None = None,
) -> tuple[RefreshOrchestrator, StateStore, _DummyHost]:
    store = StateStore()
    host = host or _DummyHost()
    orchestrator = RefreshOrchestrator(
        identity,
        create_pipeline(identity),
        store,
        Reconciler(host, store),
        radio=radio,
        cloud=cloud,
        cloud_service_enabled=cloud_service_enabled,
        sleep=sleep or _SleepRecorder(),
    )
    return orchestrator, store, host


@pytest.mark.asyncio
async def test_radio_success_publishes_and_returns_to_idle() -> None:
    radio = _DummyRadio([_advert(battery=45, humidity=60, celsius=22)])
    orchestrator, store, host = _orchestrator(_identity("BLE"), radio=radio)

    outcome = await orchestrator.run_cycle()

    assert outcome.status == CycleStatus.SUCCESS
    assert outcome.source == StateSource.RADIO
    assert outcome.attempts == (TransportKind.RADIO,)
    assert radio.calls == [(ADDRESS, "T", 5.0)]
    assert store.get_state(DEVICE_ID).value(cap.HUMIDITY) == 60
    assert (cap.TEMPERATURE, 22) in host.updates
    assert orchestrator.cycle.state == CycleState.IDLE


@pytest.mark.asyncio
async def test_radio_retries_then_falls_back_to_cloud_once() -> None:
    radio = _DummyRadio([None, None, None])
    cloud = _DummyCloud([CloudResponse(status_code=100, body={"temperature": 19.5})])
    sleep = _SleepRecorder()
    orchestrator, store, _ = _orchestrator(_identity(), radio=radio, cloud=cloud, sleep=sleep)

    outcome = await orchestrator.run_cycle()

    assert outcome.status == CycleStatus.SUCCESS
    assert outcome.source == StateSource.CLOUD
    assert outcome.attempts == (TransportKind.RADIO,) * 3 + (TransportKind.CLOUD,)
    assert len(radio.calls) == 3
    assert cloud.calls == [(DEVICE_ID, 2, 2.0)]
    assert sleep.delays == [2.0, 4.0]
    assert store.get_state(DEVICE_ID).capabilities[cap.TEMPERATURE].source == StateSource.CLOUD


@pytest.mark.asyncio
async def test_decode_mismatch_counts_as_failed_radio_attempt() -> None:
    foreign = RadioAdvertisement.from_service_data(ADDRESS, {"model": "s", "modelName": "WoPresence"})
    radio = _DummyRadio([foreign, _advert(humidity=55)])
    orchestrator, store, _ = _orchestrator(_identity("BLE"), radio=radio)

    outcome = await orchestrator.run_cycle()

    assert outcome.status == CycleStatus.SUCCESS
    assert len(radio.calls) == 2
    assert store.get_state(DEVICE_ID).value(cap.HUMIDITY) == 55


@pytest.mark.asyncio
async def test_all_transports_failing_marks_cycle_failed_without_mutation() -> None:
    radio = _DummyRadio([None, None, None])
    cloud = _DummyCloud([CloudTransportError("HTTP 503", status_code=503)])
    orchestrator, store, host = _orchestrator(_identity(), radio=radio, cloud=cloud)

    outcome = await orchestrator.run_cycle()

    assert outcome.status == CycleStatus.FAILED
    assert "HTTP 503" in (outcome.error or "")
    assert orchestrator.cycle.state == CycleState.FAILED
    assert store.get_state(DEVICE_ID).values() == {}
    assert host.updates == []


@pytest.mark.asyncio
async def test_cloud_device_offline_code_does_not_mutate_state() -> None:
    cloud = _DummyCloud([CloudResponse(status_code=161, message="device offline", body={"temperature": 99})])
    orchestrator, store, _ = _orchestrator(_identity("OpenAPI"), cloud=cloud)
    store.apply_patch(DEVICE_ID, {cap.TEMPERATURE: 20.0}, source=StateSource.RADIO)

    outcome = await orchestrator.run_cycle()

    assert outcome.status == CycleStatus.FAILED
    assert "Device is offline" in (outcome.error or "")
    assert store.get_state(DEVICE_ID).value(cap.TEMPERATURE) == 20.0


@pytest.mark.asyncio
async def test_failed_cycle_does_not_block_the_next_one() -> None:
    cloud = _DummyCloud(
        [
            CloudResponse(status_code=190),
            CloudResponse(status_code=100, body={"humidity": 42}),
        ]
    )
    orchestrator, _, _ = _orchestrator(_identity("OpenAPI"), cloud=cloud)

    first = await orchestrator.run_cycle()
    second = await orchestrator.run_cycle()

    assert first.status == CycleStatus.FAILED
    assert second.status == CycleStatus.SUCCESS
    assert orchestrator.cycle.state == CycleState.IDLE


@pytest.mark.asyncio
async def test_tick_during_cycle_is_skipped() -> None:
    gate = asyncio.Event()
    radio = _DummyRadio([_advert(humidity=50)], gate=gate)
    orchestrator, _, _ = _orchestrator(_identity("BLE"), radio=radio)

    first = asyncio.create_task(orchestrator.run_cycle())
    await radio.started.wait()
    assert orchestrator.busy

    skipped = await orchestrator.run_cycle()
    gate.set()
    outcome = await first

    assert skipped.status == CycleStatus.SKIPPED
    assert outcome.status == CycleStatus.SUCCESS
    assert len(radio.calls) == 1


@pytest.mark.asyncio
async def test_missing_credentials_is_unavailable_and_nothing_attempted() -> None:
    cloud = _DummyCloud(has_credentials=False)
    orchestrator, _, _ = _orchestrator(_identity("OpenAPI"), cloud=cloud)

    outcome = await orchestrator.run_cycle()

    assert outcome.status == CycleStatus.UNAVAILABLE
    assert cloud.calls == []
    assert orchestrator.cycle.state == CycleState.FAILED


@pytest.mark.asyncio
async def test_cloud_service_disabled_is_unavailable() -> None:
    cloud = _DummyCloud()
    orchestrator, _, _ = _orchestrator(_identity("OpenAPI"), cloud=cloud, cloud_service_enabled=False)

    outcome = await orchestrator.run_cycle()

    assert outcome.status == CycleStatus.UNAVAILABLE
    assert cloud.calls == []


@pytest.mark.asyncio
async def test_offline_device_publishes_placeholders() -> None:
    orchestrator, store, host = _orchestrator(_identity("Disabled", offline=True))

    outcome = await orchestrator.run_cycle()

    assert outcome.status == CycleStatus.OFFLINE
    assert outcome.ok
    assert store.get_state(DEVICE_ID).values() == {cap.HUMIDITY: 50.0, cap.TEMPERATURE: 30.0}
    assert store.get_state(DEVICE_ID).capabilities[cap.HUMIDITY].source == StateSource.OFFLINE
    assert sorted(host.updates) == [(cap.HUMIDITY, 50.0), (cap.TEMPERATURE, 30.0)]


@pytest.mark.asyncio
async def test_disabled_device_is_noop() -> None:
    orchestrator, store, _ = _orchestrator(_identity("Disabled"))

    outcome = await orchestrator.run_cycle()

    assert outcome.status == CycleStatus.NOOP
    assert store.get_state(DEVICE_ID).values() == {}


@pytest.mark.asyncio
async def test_push_applies_while_cycle_in_flight() -> None:
    gate = asyncio.Event()
    radio = _DummyRadio([_advert(humidity=50)], gate=gate)
    orchestrator, store, _ = _orchestrator(_identity("BLE", webhook=True), radio=radio)

    cycle = asyncio.create_task(orchestrator.run_cycle())
    await radio.started.wait()

    pushed = await orchestrator.apply_push(WebhookEvent(device_id=DEVICE_ID, context={"temperature": 18.0}))
    assert pushed.status == CycleStatus.SUCCESS
    assert orchestrator.busy
    assert store.get_state(DEVICE_ID).value(cap.TEMPERATURE) == 18.0

    gate.set()
    await cycle
    assert store.get_state(DEVICE_ID).values() == {cap.TEMPERATURE: 18.0, cap.HUMIDITY: 50}


@pytest.mark.asyncio
async def test_mismatched_push_is_ignored() -> None:
    orchestrator, store, _ = _orchestrator(_identity("BLE"))
    foreign = RadioAdvertisement.from_service_data(ADDRESS, {"model": "d", "modelName": "WoContact", "battery": 10})

    outcome = await orchestrator.apply_push(foreign)

    assert outcome.status == CycleStatus.FAILED
    assert store.get_state(DEVICE_ID).values() == {}


@pytest.mark.asyncio
async def test_cancelled_cycle_is_left_failed() -> None:
    gate = asyncio.Event()
    radio = _DummyRadio(gate=gate)
    orchestrator, _, _ = _orchestrator(_identity("BLE"), radio=radio)

    task = asyncio.create_task(orchestrator.run_cycle())
    await radio.started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert orchestrator.cycle.state == CycleState.FAILED
    assert not orchestrator.busy


@pytest.mark.asyncio
async def test_push_during_host_update_is_not_overwritten_by_cycle() -> None:
    host = _SlowHost()
    radio = _DummyRadio([_advert(humidity=60)])
    orchestrator, store, _ = _orchestrator(_identity("BLE", webhook=True), radio=radio, host=host)

    cycle = asyncio.create_task(orchestrator.run_cycle())
    await host.started.wait()

    pushed = await orchestrator.apply_push(WebhookEvent(device_id=DEVICE_ID, context={"humidity": 70}))
    host.release.set()
    outcome = await cycle

    assert pushed.status == CycleStatus.SUCCESS
    assert outcome.status == CycleStatus.SUCCESS
    humidity = [value for name, value in host.updates if name == cap.HUMIDITY]
    assert humidity[-1] == 70
    assert store.get_state(DEVICE_ID).value(cap.HUMIDITY) == 70
    assert store.get_published(DEVICE_ID).get(cap.HUMIDITY) == 70
