"""Custom exception hierarchy for pyswitchlink."""

from __future__ import annotations


class SwitchLinkError(Exception):
    """Base exception for all pyswitchlink errors."""


class SwitchLinkConfigError(SwitchLinkError):
    """Invalid or missing configuration."""


class TransportError(SwitchLinkError):
    """A transport (radio, cloud, webhook) could not deliver a payload."""

    def __init__(self, message: str, *, transport: str = "") -> None:
        self.transport = transport
        super().__init__(message)


class TransportUnavailableError(TransportError):
    """Required credential or transport is missing.

    The refresh cycle aborts without attempting anything and is not
    retried automatically.
    """


class TransportTimeoutError(TransportError):
    """A scan or request exceeded its bound."""


class CloudTransportError(TransportError):
    """HTTP-level failure talking to the cloud API (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message, transport="cloud")


class DecodeMismatchError(SwitchLinkError):
    """Payload model/type did not match the device it was routed to.

    Treated like a transport timeout for fallback purposes.
    """

    def __init__(self, message: str, *, expected: str = "", received: str = "") -> None:
        self.expected = expected
        self.received = received
        super().__init__(message)


class RemoteStatusError(SwitchLinkError):
    """Cloud API returned a non-success ``statusCode``."""

    def __init__(self, message: str, *, status_code: int, kind: str = "") -> None:
        self.status_code = status_code
        self.kind = kind
        super().__init__(message)


class HostUpdateError(SwitchLinkError):
    """Publishing a characteristic value to the host platform failed.

    The capability is skipped this cycle and retried on the next
    successful one.
    """

    def __init__(self, message: str, *, capability: str = "") -> None:
        self.capability = capability
        super().__init__(message)
