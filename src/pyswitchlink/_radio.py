"""BLE advertisement scanning over bleak.

SwitchBot devices broadcast their state in service data (UUID ``fd3d``,
legacy ``0d00``); newer meters also carry the readings in manufacturer
data under the Woan company id. :func:`parse_service_data` turns both
into the flat field dict carried by :class:`RadioAdvertisement`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from pyswitchlink._constants import SERVICE_DATA_UUIDS
from pyswitchlink.exceptions import TransportUnavailableError
from pyswitchlink.models.identity import DEVICE_MODELS
from pyswitchlink.models.payloads import RadioAdvertisement

_logger = logging.getLogger(__name__)

WOAN_COMPANY_ID = 0x0969

_MODEL_NAMES: dict[str, str] = {m.ble_model: m.ble_model_name for m in DEVICE_MODELS.values()}
_THERMO_MODELS = frozenset({"T", "i", "w", "4", "5"})
_HUB2_MODEL = "v"
_MOTION_MODEL = "s"
_CONTACT_MODEL = "d"
_DOOR_STATES = ("close", "open", "timeout not close")

RadioEventHandler = Callable[[str, RadioAdvertisement], Awaitable[Any]]


def _parse_thermo(temp_data: bytes) -> dict[str, Any]:
    decimal = (temp_data[0] & 0b00001111) / 10.0
    integer = temp_data[1] & 0b01111111
    sign = 1 if temp_data[1] & 0b10000000 else -1
    return {
        "celsius": round(sign * (integer + decimal), 1),
        "fahrenheit": bool(temp_data[2] & 0b10000000),
        "humidity": temp_data[2] & 0b01111111,
    }


def parse_service_data(
    service_data: Mapping[str, bytes],
    manufacturer_data: Mapping[int, bytes] | None = None,
) -> dict[str, Any] | None:
    """Decode SwitchBot advertisement bytes; ``None`` if not a supported device."""
    data = next((service_data[uuid] for uuid in SERVICE_DATA_UUIDS if uuid in service_data), None)
    if not data:
        return None
    model = chr(data[0] & 0b01111111)
    model_name = _MODEL_NAMES.get(model)
    if model_name is None:
        return None

    mfr = (manufacturer_data or {}).get(WOAN_COMPANY_ID, b"")
    fields: dict[str, Any] = {"model": model, "modelName": model_name}

    if model in _THERMO_MODELS:
        if len(data) >= 3:
            fields["battery"] = data[2] & 0b01111111
        if len(mfr) >= 11:
            fields.update(_parse_thermo(mfr[8:11]))
        elif len(data) >= 6:
            fields.update(_parse_thermo(data[3:6]))
    elif model == _HUB2_MODEL:
        if len(mfr) >= 16:
            fields.update(_parse_thermo(mfr[13:16]))
            fields["lightLevel"] = "bright" if (mfr[12] & 0b00011111) > 1 else "dark"
    elif model == _MOTION_MODEL:
        if len(data) < 6:
            return None
        fields["movement"] = bool(data[1] & 0b01000000)
        fields["battery"] = data[2] & 0b01111111
        fields["lightLevel"] = "bright" if (data[5] & 0b00000011) == 2 else "dark"
    elif model == _CONTACT_MODEL:
        if len(data) < 4:
            return None
        fields["movement"] = bool(data[1] & 0b01000000)
        fields["battery"] = data[2] & 0b01111111
        hall = (data[3] >> 1) & 0b00000011
        if hall < len(_DOOR_STATES):
            fields["doorState"] = _DOOR_STATES[hall]
        fields["lightLevel"] = "bright" if data[3] & 0b00000001 else "dark"
    return fields


class BleakRadioScanner:
    """Radio scanner backed by :class:`bleak.BleakScanner`.

    :meth:`scan` performs one bounded scan for a single device; it is the
    caller's job to serialize scans when the adapter is single-channel.
    :meth:`start_listening` runs a passive scan that forwards every
    SwitchBot advertisement to a handler.
    """

    def __init__(
        self,
        *,
        adapter: str | None = None,
        scanner_factory: Callable[..., BleakScanner] = BleakScanner,
    ) -> None:
        self._adapter = adapter
        self._scanner_factory = scanner_factory
        self._listener: BleakScanner | None = None

    def _make_scanner(self, callback: Callable[[BLEDevice, AdvertisementData], None]) -> BleakScanner:
        kwargs: dict[str, Any] = {"detection_callback": callback}
        if self._adapter:
            kwargs["adapter"] = self._adapter
        return self._scanner_factory(**kwargs)

    async def scan(self, address: str, model: str, duration: float) -> RadioAdvertisement | None:
        loop = asyncio.get_running_loop()
        found: asyncio.Future[RadioAdvertisement] = loop.create_future()
        wanted = address.lower()

        def _on_detection(device: BLEDevice, advertisement: AdvertisementData) -> None:
            if found.done() or device.address.lower() != wanted:
                return
            fields = parse_service_data(advertisement.service_data, advertisement.manufacturer_data)
            if fields is None or fields.get("model") != model:
                return
            found.set_result(RadioAdvertisement.from_service_data(device.address, fields, rssi=advertisement.rssi))

        scanner = self._make_scanner(_on_detection)
        try:
            await scanner.start()
        except BleakError as exc:
            raise TransportUnavailableError(f"Bluetooth scan could not start: {exc}", transport="radio") from exc

        try:
            return await asyncio.wait_for(found, timeout=duration)
        except TimeoutError:
            _logger.debug("No advertisement from %s (model %s) within %.1fs", address, model, duration)
            return None
        finally:
            await scanner.stop()

    async def start_listening(self, handler: RadioEventHandler) -> None:
        """Forward every SwitchBot advertisement to *handler* until :meth:`stop_listening`."""
        await self.stop_listening()
        loop = asyncio.get_running_loop()
        pending: set[asyncio.Task[Any]] = set()

        def _on_detection(device: BLEDevice, advertisement: AdvertisementData) -> None:
            fields = parse_service_data(advertisement.service_data, advertisement.manufacturer_data)
            if fields is None:
                return
            payload = RadioAdvertisement.from_service_data(device.address, fields, rssi=advertisement.rssi)
            task = loop.create_task(handler(payload.address, payload))
            pending.add(task)
            task.add_done_callback(pending.discard)

        scanner = self._make_scanner(_on_detection)
        try:
            await scanner.start()
        except BleakError as exc:
            raise TransportUnavailableError(f"Bluetooth listener could not start: {exc}", transport="radio") from exc
        self._listener = scanner
        _logger.debug("Passive BLE listener started")

    async def stop_listening(self) -> None:
        if self._listener is None:
            return
        listener, self._listener = self._listener, None
        await listener.stop()
        _logger.debug("Passive BLE listener stopped")
