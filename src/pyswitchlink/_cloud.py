"""SwitchBot OpenAPI v1.1 client over aiohttp.

Every request carries the signed ``Authorization``/``sign``/``nonce``/``t``
header set. Network failures are retried inside the client; a response
with any ``statusCode`` is returned as-is for the caller to classify.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from pyswitchlink._constants import API_VERSION, USER_AGENT
from pyswitchlink._redact import redact_for_log
from pyswitchlink.config import LinkConfig
from pyswitchlink.exceptions import CloudTransportError, TransportUnavailableError
from pyswitchlink.models.payloads import CloudResponse

_logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def build_auth_headers(token: str, secret: str, *, now_ms: int | None = None, nonce: str | None = None) -> dict[str, str]:
    """Signed header set: ``sign = base64(HMAC-SHA256(secret, token + t + nonce))``."""
    t = str(now_ms if now_ms is not None else int(time.time() * 1000))
    nonce = nonce or str(uuid.uuid4())
    digest = hmac.new(secret.encode("utf-8"), f"{token}{t}{nonce}".encode(), hashlib.sha256).digest()
    return {
        "Authorization": token,
        "sign": base64.b64encode(digest).decode("ascii"),
        "nonce": nonce,
        "t": t,
        "Content-Type": "application/json; charset=utf8",
        "User-Agent": USER_AGENT,
    }


class SwitchBotCloudClient:
    """Async client for the SwitchBot cloud status and command endpoints.

    Usage::

        async with SwitchBotCloudClient(config) as cloud:
            response = await cloud.fetch_status("C271111EC0AB", max_retries=2, retry_delay=3)
    """

    def __init__(
        self,
        config: LinkConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._sleep = sleep

    async def __aenter__(self) -> SwitchBotCloudClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
            )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None

    @property
    def has_credentials(self) -> bool:
        return self._config.has_credentials

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            raise CloudTransportError("Cloud client is not open; use it as an async context manager")
        return self._http_session

    async def _request_once(self, method: str, endpoint: str, body: dict[str, Any] | None) -> CloudResponse:
        if not self.has_credentials:
            raise TransportUnavailableError("No SwitchBot token/secret configured", transport="cloud")
        session = self._require_session()
        headers = build_auth_headers(self._config.token or "", self._config.secret or "")
        url = f"{self._config.base_url}/{API_VERSION}{endpoint}"
        data = json.dumps(body) if body is not None else None

        _logger.debug("%s %s body=%s", method, url, redact_for_log(body))

        try:
            async with session.request(method, url, data=data, headers=headers) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise CloudTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except CloudTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise CloudTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CloudTransportError(f"Invalid JSON from {endpoint}: {text[:200]}", endpoint=endpoint) from exc
        if not isinstance(payload, dict) or "statusCode" not in payload:
            raise CloudTransportError(f"Missing 'statusCode' field from {endpoint}", endpoint=endpoint)

        _logger.debug("Response from %s: %s", endpoint, redact_for_log(payload))
        return CloudResponse.model_validate(payload)

    async def _request(
        self,
        method: str,
        endpoint: str,
        body: dict[str, Any] | None = None,
        *,
        max_retries: int = 0,
        retry_delay: float = 0.0,
    ) -> CloudResponse:
        """Send one request, retrying network-level failures up to *max_retries* times."""
        attempt = 0
        while True:
            try:
                return await self._request_once(method, endpoint, body)
            except CloudTransportError as exc:
                # HTTP 4xx will not improve on retry.
                if exc.status_code is not None and exc.status_code < 500:
                    raise
                if attempt >= max_retries:
                    raise
                attempt += 1
                _logger.debug(
                    "Retrying %s %s (%d/%d) in %.1fs: %s",
                    method,
                    endpoint,
                    attempt,
                    max_retries,
                    retry_delay,
                    exc,
                )
                await self._sleep(retry_delay)

    async def fetch_status(self, device_id: str, *, max_retries: int = 0, retry_delay: float = 0.0) -> CloudResponse:
        """``GET /v1.1/devices/{device_id}/status``."""
        return await self._request(
            "GET",
            f"/devices/{device_id}/status",
            max_retries=max_retries,
            retry_delay=retry_delay,
        )

    async def send_command(
        self,
        device_id: str,
        command: str,
        parameter: Any = "default",
        command_type: str = "command",
    ) -> CloudResponse:
        """``POST /v1.1/devices/{device_id}/commands``; never retried here."""
        body = {"command": command, "parameter": parameter, "commandType": command_type}
        return await self._request("POST", f"/devices/{device_id}/commands", body)

    async def list_devices(self) -> CloudResponse:
        """``GET /v1.1/devices``: the account's device list, used for discovery."""
        return await self._request("GET", "/devices")
