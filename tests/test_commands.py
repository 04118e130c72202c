from __future__ import annotations

from typing import Any

import pytest

from pyswitchlink.commands import build_command_body, send_command
from pyswitchlink.config import resolve_identity
from pyswitchlink.exceptions import CloudTransportError
from pyswitchlink.models.identity import DeviceIdentity
from pyswitchlink.models.payloads import CloudResponse
from pyswitchlink.models.status import StatusKind


class _DummyCloud:
    def __init__(self, result: Any, *, has_credentials: bool = True) -> None:
        self.result = result
        self._has_credentials = has_credentials
        self.calls: list[tuple[Any, ...]] = []

    @property
    def has_credentials(self) -> bool:
        return self._has_credentials

    async def fetch_status(self, device_id: str, *, max_retries: int, retry_delay: float) -> CloudResponse:
        raise AssertionError("not used")

    async def send_command(
        self,
        device_id: str,
        command: str,
        parameter: Any = "default",
        command_type: str = "command",
    ) -> CloudResponse:
        self.calls.append((device_id, command, parameter, command_type))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _identity(**extra: Any) -> DeviceIdentity:
    return resolve_identity({"deviceId": "C271111EC0AB", "deviceType": "Meter", **extra})


def test_build_command_body() -> None:
    assert build_command_body("setPosition", "0,ff,50") == {
        "command": "setPosition",
        "parameter": "0,ff,50",
        "commandType": "command",
    }
    with pytest.raises(ValueError):
        build_command_body("")


@pytest.mark.asyncio
async def test_successful_command() -> None:
    cloud = _DummyCloud(CloudResponse(status_code=100, message="success", body={"items": []}))

    result = await send_command(cloud, _identity(), "turnOn")

    assert result.success
    assert result.kind == StatusKind.SUCCESS
    assert result.message == "success"
    assert result.body == {"items": []}
    assert cloud.calls == [("C271111EC0AB", "turnOn", "default", "command")]


@pytest.mark.asyncio
async def test_hub_offline_on_self_hub_reported_as_device_offline() -> None:
    cloud = _DummyCloud(CloudResponse(status_code=171))

    result = await send_command(cloud, _identity(hubDeviceId="000000000000"), "turnOff")

    assert not result.success
    assert result.kind == StatusKind.DEVICE_OFFLINE
    assert result.status_code == 161


@pytest.mark.asyncio
async def test_transport_failure_is_returned_not_raised() -> None:
    cloud = _DummyCloud(CloudTransportError("HTTP 500", status_code=500))

    result = await send_command(cloud, _identity(), "turnOn")

    assert not result.success
    assert result.kind == StatusKind.TRANSPORT_ERROR
    assert result.status_code == 500


@pytest.mark.asyncio
async def test_missing_credentials_short_circuits() -> None:
    cloud = _DummyCloud(CloudResponse(status_code=100), has_credentials=False)

    result = await send_command(cloud, _identity(), "turnOn")
    no_cloud = await send_command(None, _identity(), "turnOn")

    assert result.kind == StatusKind.TRANSPORT_ERROR
    assert no_cloud.kind == StatusKind.TRANSPORT_ERROR
    assert cloud.calls == []


@pytest.mark.asyncio
async def test_empty_command_returns_failed_result() -> None:
    cloud = _DummyCloud(CloudResponse(status_code=100))

    result = await send_command(cloud, _identity(), "")

    assert not result.success
    assert result.kind == StatusKind.CLIENT_ERROR
    assert "non-empty" in result.message
    assert cloud.calls == []
