"""Helpers for safe debug logging.

Cloud requests carry an API token, a signing secret and per-request
signatures; MQTT options may carry broker credentials. Payload dumps go
through :func:`redact_for_log` before they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "token",
        "secret",
        "sign",
        "nonce",
        "authorization",
        "password",
        "username",
    }
)

_MAX_DEPTH = 12


def mask_secret(value: str, *, keep: int = 4) -> str:
    """Mask all but the last *keep* characters of a credential."""
    if len(value) <= keep:
        return "*" * len(value)
    return f"{'*' * 8}{value[-keep:]}"


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a copy of *value* with credentials masked and long strings cut."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…"

    if isinstance(value, (bytes, bytearray)):
        return value.hex()

    if isinstance(value, BaseModel):
        value = value.model_dump()

    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key)
            if name.lower() in _SENSITIVE_VALUE_KEYS:
                out[name] = mask_secret(str(item)) if item else item
            else:
                out[name] = redact_for_log(item, max_string=max_string, _depth=_depth + 1)
        return out

    if isinstance(value, Sequence):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]

    return repr(value)
