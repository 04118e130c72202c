"""Structural interfaces for the transports and host-side collaborators.

Having protocols here makes it easy to pass test doubles while keeping
the production implementations (:mod:`pyswitchlink._radio`,
:mod:`pyswitchlink._cloud`, :mod:`pyswitchlink._mqtt`) concrete.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from pyswitchlink.models.payloads import CloudResponse, RadioAdvertisement


class RadioScanner(Protocol):
    """Local BLE advertisement scan."""

    async def scan(self, address: str, model: str, duration: float) -> RadioAdvertisement | None:
        """Listen for up to *duration* seconds.

        Returns the first advertisement from *address* carrying *model*,
        or ``None`` when nothing matching was seen in the window.
        """
        ...


class CloudTransport(Protocol):
    """SwitchBot cloud status fetch and command."""

    @property
    def has_credentials(self) -> bool:
        ...

    async def fetch_status(
        self,
        device_id: str,
        *,
        max_retries: int,
        retry_delay: float,
    ) -> CloudResponse:
        ...

    async def send_command(
        self,
        device_id: str,
        command: str,
        parameter: Any = "default",
        command_type: str = "command",
    ) -> CloudResponse:
        ...


class HostPlatform(Protocol):
    """The home-automation host that receives characteristic updates."""

    async def update_characteristic(self, device_id: str, capability: str, value: Any) -> None:
        ...


class TelemetryPublisher(Protocol):
    """Best-effort message bus publisher."""

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        ...


class HistoryWriter(Protocol):
    """Host-provided history persistence."""

    def add_entry(self, device_id: str, entry: Mapping[str, Any]) -> None:
        ...
