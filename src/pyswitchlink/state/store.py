"""In-memory store for per-device snapshots.

This is the only component allowed to supersede a device's
:class:`NormalizedState` or :class:`PublishedState`. Both are replaced by
value; callers always receive immutable snapshots.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pyswitchlink.models.identity import StateSource
from pyswitchlink.state.events import NormalizedState, PublishedState


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class _DeviceSnapshots:
    state: NormalizedState = field(default_factory=NormalizedState)
    published: PublishedState = field(default_factory=PublishedState)


class StateStore:
    """Snapshot store keyed by device id.

    A decode failure never reaches :meth:`apply_patch`, so the previous
    snapshot survives untouched.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._devices: dict[str, _DeviceSnapshots] = {}

    def _entry(self, device_id: str) -> _DeviceSnapshots:
        entry = self._devices.get(device_id)
        if entry is None:
            entry = _DeviceSnapshots()
            self._devices[device_id] = entry
        return entry

    def apply_patch(
        self,
        device_id: str,
        patch: Mapping[str, Any],
        *,
        source: StateSource,
    ) -> NormalizedState:
        """Supersede the device's state with *patch* merged in; return the new snapshot."""
        entry = self._entry(device_id)
        entry.state = entry.state.merged(patch, source=source, observed_at=self._clock())
        return entry.state

    def record_published(self, device_id: str, capability: str, value: Any) -> PublishedState:
        """Record one value the host accepted."""
        entry = self._entry(device_id)
        entry.published = entry.published.with_value(capability, value)
        return entry.published

    def get_state(self, device_id: str) -> NormalizedState:
        entry = self._devices.get(device_id)
        return entry.state if entry is not None else NormalizedState()

    def get_published(self, device_id: str) -> PublishedState:
        entry = self._devices.get(device_id)
        return entry.published if entry is not None else PublishedState()

    def seed_published(self, device_id: str, values: Mapping[str, Any]) -> None:
        """Restore last-known published values (e.g. from the host's cached context)."""
        entry = self._entry(device_id)
        entry.published = PublishedState(values={**entry.published.values, **values})

    def forget(self, device_id: str) -> None:
        self._devices.pop(device_id, None)

    def device_ids(self) -> list[str]:
        return list(self._devices)
