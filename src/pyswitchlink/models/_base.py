"""Base model and enum for SwitchBot payloads.

Every payload model inherits from :class:`SwitchBotBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase API keys (``statusCode``,
  ``deviceMac``, ``modelName``) map automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips sentinel values
  (``""``, ``"--"``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.

State enums inherit from :class:`SwitchBotEnum` which resolves any value
without a mapped member to ``UNKNOWN``.
"""

from __future__ import annotations

import enum
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


class SwitchBotEnum(enum.IntEnum):
    """Base for integer state enums.

    Every subclass **must** define ``UNKNOWN = -1``.
    """

    @classmethod
    def _missing_(cls, value: object) -> SwitchBotEnum:
        unknown: SwitchBotEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


def strip_sentinels(values: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value means "not reported"."""
    cleaned: dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, str) and value.strip() in _SENTINELS:
            continue
        if isinstance(value, float) and math.isnan(value):
            continue
        cleaned[key] = value
    return cleaned


class SwitchBotBaseModel(BaseModel):
    """Base for SwitchBot payload models.

    Handles:
    * camelCase → snake_case via ``alias_generator=to_camel``
    * sentinel values dropped so the field default is used instead
    * the original dict stashed in ``raw``
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original payload dict."""

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned = strip_sentinels(values)
        # Keep an explicit raw= from the caller; otherwise stash the input.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
