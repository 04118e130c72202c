"""Normalized device-state snapshots.

Every transport path converts its payload into a capability patch; only
the state store is allowed to turn a patch into a new
:class:`NormalizedState`. Both snapshot types are frozen and replaced by
value, so a reader never observes a half-applied update.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyswitchlink.models.identity import StateSource


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CapabilityValue(BaseModel):
    """One capability value with provenance."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: Any
    source: StateSource
    observed_at: datetime = Field(default_factory=_utcnow)

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class NormalizedState(BaseModel):
    """Canonical per-device snapshot: capability name -> :class:`CapabilityValue`."""

    model_config = ConfigDict(frozen=True)

    capabilities: dict[str, CapabilityValue] = Field(default_factory=dict)

    def value(self, capability: str, default: Any = None) -> Any:
        entry = self.capabilities.get(capability)
        return default if entry is None else entry.value

    def values(self) -> dict[str, Any]:
        return {name: entry.value for name, entry in self.capabilities.items()}

    def merged(
        self,
        patch: Mapping[str, Any],
        *,
        source: StateSource,
        observed_at: datetime | None = None,
    ) -> NormalizedState:
        """Return a new snapshot with *patch* applied.

        Capabilities absent from the patch keep their previous value.
        """
        if not patch:
            return self
        stamp = observed_at or _utcnow()
        capabilities = dict(self.capabilities)
        for name, value in patch.items():
            capabilities[name] = CapabilityValue(value=value, source=source, observed_at=stamp)
        return NormalizedState(capabilities=capabilities)


class PublishedState(BaseModel):
    """Last value actually accepted by the host, per capability."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    values: dict[str, Any] = Field(default_factory=dict)

    def has(self, capability: str) -> bool:
        return capability in self.values

    def get(self, capability: str, default: Any = None) -> Any:
        return self.values.get(capability, default)

    def with_value(self, capability: str, value: Any) -> PublishedState:
        return PublishedState(values={**self.values, capability: value})
