"""Cloud ``statusCode`` taxonomy and command results."""

from __future__ import annotations

import enum
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyswitchlink._constants import (
    BUG_REPORT_HINT,
    DEVICE_OFFLINE_CODE,
    HUB_OFFLINE_CODE,
    PLACEHOLDER_HUB_ID,
    SUCCESS_STATUS_CODES,
)


class StatusKind(enum.StrEnum):
    SUCCESS = "success"
    DEVICE_OFFLINE = "device_offline"
    HUB_OFFLINE = "hub_offline"
    DEVICE_ERROR = "device_error"
    CLIENT_ERROR = "client_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    TRANSPORT_ERROR = "transport_error"
    UNCLASSIFIED = "unclassified"


_STATUS_TABLE: dict[int, tuple[StatusKind, str]] = {
    100: (StatusKind.SUCCESS, "Command successfully sent"),
    200: (StatusKind.SUCCESS, "Request successful"),
    151: (StatusKind.DEVICE_ERROR, "Command not supported by this deviceType"),
    152: (StatusKind.DEVICE_ERROR, "Device not found"),
    160: (StatusKind.DEVICE_ERROR, "Command is not supported"),
    161: (StatusKind.DEVICE_OFFLINE, "Device is offline"),
    171: (StatusKind.HUB_OFFLINE, "Hub Device is offline"),
    190: (
        StatusKind.DEVICE_ERROR,
        "Device internal error due to device states not synchronized with server, or command format is invalid",
    ),
    400: (StatusKind.CLIENT_ERROR, "Bad Request, an invalid payload request"),
    401: (
        StatusKind.CLIENT_ERROR,
        "Unauthorized, Authorization for the API is required, but the request has not been authenticated",
    ),
    403: (
        StatusKind.CLIENT_ERROR,
        "Forbidden, The request has been authenticated but does not have appropriate permissions",
    ),
    404: (StatusKind.CLIENT_ERROR, "Not Found, Specifies the requested path does not exist"),
    406: (StatusKind.CLIENT_ERROR, "Not Acceptable, the requested MIME type is not supported by the server"),
    415: (StatusKind.CLIENT_ERROR, "Unsupported Media Type, the contentType header is not supported"),
    422: (StatusKind.CLIENT_ERROR, "Unprocessable Entity, often due to exceeded API limits"),
    429: (StatusKind.RATE_LIMITED, "Too Many Requests, exceeded the number of requests allowed"),
    500: (StatusKind.SERVER_ERROR, "Internal Server Error, An unexpected error occurred"),
}


class StatusClassification(BaseModel):
    """Outcome of looking up a cloud ``statusCode``.

    ``status_code`` is the code *after* the self-hub remap;
    ``original_code`` is what the API actually returned.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int
    original_code: int
    kind: StatusKind
    message: str
    known: bool

    @property
    def is_success(self) -> bool:
        return self.kind == StatusKind.SUCCESS

    @property
    def log_level(self) -> int:
        if self.is_success:
            return logging.DEBUG
        return logging.ERROR if self.known else logging.INFO


def remap_hub_offline(status_code: int, *, device_id: str, hub_device_id: str | None) -> int:
    """Treat "hub offline" as "device offline" when the device is its own hub."""
    if status_code == HUB_OFFLINE_CODE and hub_device_id in (device_id, PLACEHOLDER_HUB_ID):
        return DEVICE_OFFLINE_CODE
    return status_code


def classify_status_code(
    status_code: int,
    *,
    device_id: str = "",
    hub_device_id: str | None = None,
) -> StatusClassification:
    """Classify a cloud status code with the fixed lookup table."""
    code = remap_hub_offline(status_code, device_id=device_id, hub_device_id=hub_device_id)
    entry = _STATUS_TABLE.get(code)
    if entry is None:
        return StatusClassification(
            status_code=code,
            original_code=status_code,
            kind=StatusKind.UNCLASSIFIED,
            message=f"Unknown statusCode: {code}, {BUG_REPORT_HINT}",
            known=False,
        )
    kind, message = entry
    if code == HUB_OFFLINE_CODE and hub_device_id:
        message = f"{message}. Hub: {hub_device_id}"
    return StatusClassification(
        status_code=code,
        original_code=status_code,
        kind=kind,
        message=message,
        known=True,
    )


def is_success_code(status_code: int) -> bool:
    return status_code in SUCCESS_STATUS_CODES


class CommandResult(BaseModel):
    """Result of an outbound cloud command, returned to the caller as a value."""

    model_config = ConfigDict(frozen=True)

    device_id: str
    command: str
    success: bool
    kind: StatusKind
    status_code: int | None = None
    message: str = ""
    body: dict[str, Any] = Field(default_factory=dict)
