"""Outbound cloud commands.

Commands are never retried here: the outcome is returned as a
:class:`CommandResult` so the caller can tell the user what happened.
"""

from __future__ import annotations

import logging
from typing import Any

from pyswitchlink._transport import CloudTransport
from pyswitchlink.exceptions import TransportError
from pyswitchlink.models.identity import DeviceIdentity
from pyswitchlink.models.status import CommandResult, StatusKind, classify_status_code

_logger = logging.getLogger(__name__)


def build_command_body(command: str, parameter: Any = "default", command_type: str = "command") -> dict[str, Any]:
    """Request body for ``POST /devices/{id}/commands``."""
    if not command:
        raise ValueError("command must be non-empty")
    return {"command": command, "parameter": parameter, "commandType": command_type}


async def send_command(
    cloud: CloudTransport | None,
    identity: DeviceIdentity,
    command: str,
    parameter: Any = "default",
    command_type: str = "command",
    *,
    logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
) -> CommandResult:
    """Send one command and classify the answer."""
    log = logger or _logger
    try:
        body = build_command_body(command, parameter, command_type)
    except ValueError as exc:
        log.error("cannot send command: %s", exc)
        return CommandResult(
            device_id=identity.device_id,
            command=command,
            success=False,
            kind=StatusKind.CLIENT_ERROR,
            message=str(exc),
        )

    if cloud is None or not cloud.has_credentials:
        log.error("cannot send %s: no cloud credentials", command)
        return CommandResult(
            device_id=identity.device_id,
            command=command,
            success=False,
            kind=StatusKind.TRANSPORT_ERROR,
            message="No SwitchBot token/secret configured",
        )

    log.debug("sending command %s", body)
    try:
        response = await cloud.send_command(
            identity.device_id,
            body["command"],
            body["parameter"],
            body["commandType"],
        )
    except TransportError as exc:
        log.error("command %s failed: %s", command, exc)
        return CommandResult(
            device_id=identity.device_id,
            command=command,
            success=False,
            kind=StatusKind.TRANSPORT_ERROR,
            status_code=getattr(exc, "status_code", None),
            message=str(exc),
        )

    classification = classify_status_code(
        response.status_code,
        device_id=identity.device_id,
        hub_device_id=identity.hub_device_id,
    )
    log.log(
        classification.log_level,
        "command %s: statusCode %s, %s",
        command,
        classification.status_code,
        classification.message,
    )
    return CommandResult(
        device_id=identity.device_id,
        command=command,
        success=classification.is_success,
        kind=classification.kind,
        status_code=classification.status_code,
        message=(response.message or classification.message) if classification.is_success else classification.message,
        body=response.body,
    )
