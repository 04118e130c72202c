"""pyswitchlink - Multi-transport status reconciliation for SwitchBot devices."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyswitchlink")
except PackageNotFoundError:
    __version__ = "0+local"
from pyswitchlink._cloud import SwitchBotCloudClient
from pyswitchlink._mqtt import MqttTelemetryPublisher
from pyswitchlink._radio import BleakRadioScanner
from pyswitchlink.commands import send_command
from pyswitchlink.config import DeviceConfig, LinkConfig, resolve_identity
from pyswitchlink.exceptions import (
    CloudTransportError,
    DecodeMismatchError,
    HostUpdateError,
    RemoteStatusError,
    SwitchLinkConfigError,
    SwitchLinkError,
    TransportError,
    TransportTimeoutError,
    TransportUnavailableError,
)
from pyswitchlink.ingestion.webhook import WebhookRouter, parse_webhook_body
from pyswitchlink.models import (
    BatteryStatus,
    CloudResponse,
    CommandResult,
    ContactState,
    DeviceIdentity,
    RadioAdvertisement,
    RetryPolicy,
    StateSource,
    StatusKind,
    TransportKind,
    WebhookEvent,
)
from pyswitchlink.orchestrator import CycleOutcome, CycleState, CycleStatus, RefreshCycle, RefreshOrchestrator
from pyswitchlink.reconciler import Reconciler, diff
from pyswitchlink.registry import DeviceRegistry
from pyswitchlink.state.events import NormalizedState, PublishedState

__all__ = [
    "__version__",
    "BatteryStatus",
    "BleakRadioScanner",
    "CloudResponse",
    "CloudTransportError",
    "CommandResult",
    "ContactState",
    "CycleOutcome",
    "CycleState",
    "CycleStatus",
    "DecodeMismatchError",
    "DeviceConfig",
    "DeviceIdentity",
    "DeviceRegistry",
    "HostUpdateError",
    "LinkConfig",
    "MqttTelemetryPublisher",
    "NormalizedState",
    "PublishedState",
    "RadioAdvertisement",
    "Reconciler",
    "RefreshCycle",
    "RefreshOrchestrator",
    "RemoteStatusError",
    "RetryPolicy",
    "StateSource",
    "StatusKind",
    "SwitchBotCloudClient",
    "SwitchLinkConfigError",
    "SwitchLinkError",
    "TransportError",
    "TransportKind",
    "TransportTimeoutError",
    "TransportUnavailableError",
    "WebhookEvent",
    "WebhookRouter",
    "diff",
    "parse_webhook_body",
    "resolve_identity",
    "send_command",
]
