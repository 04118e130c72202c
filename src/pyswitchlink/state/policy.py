"""Per-cycle transport selection policy.

This module contains *no* I/O. The orchestrator asks it which transports
to try, in order, and acts on the answer.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from pyswitchlink.models.identity import DeviceIdentity, TransportKind


class PlanKind(enum.StrEnum):
    UNAVAILABLE = "unavailable"
    FETCH = "fetch"
    OFFLINE = "offline"
    NOOP = "noop"


@dataclass(frozen=True)
class TransportPlan:
    """Ordered transports to attempt this cycle.

    ``chain`` never holds more than two entries: a primary transport and a
    single fallback hop.
    """

    kind: PlanKind
    chain: tuple[TransportKind, ...] = ()
    reason: str = ""


def select_transports(
    identity: DeviceIdentity,
    *,
    cloud_credentialed: bool,
    cloud_service_enabled: bool = True,
) -> TransportPlan:
    """Decide how to refresh *identity* this cycle.

    1. Cloud required (cloud enabled, radio not) but unusable -> unavailable.
    2. Radio enabled -> radio, with cloud as the one fallback hop if usable.
    3. Cloud enabled and usable -> cloud.
    4. Otherwise -> offline placeholders if the device is marked offline,
       else a logged no-op.
    """
    radio = identity.uses(TransportKind.RADIO)
    cloud = identity.uses(TransportKind.CLOUD)
    cloud_usable = cloud and cloud_credentialed and cloud_service_enabled

    if cloud and not radio and not cloud_usable:
        missing = "cloud service disabled" if not cloud_service_enabled else "no cloud credential stored"
        return TransportPlan(PlanKind.UNAVAILABLE, reason=missing)

    if radio:
        chain = (TransportKind.RADIO, TransportKind.CLOUD) if cloud_usable else (TransportKind.RADIO,)
        return TransportPlan(PlanKind.FETCH, chain=chain)

    if cloud_usable:
        return TransportPlan(PlanKind.FETCH, chain=(TransportKind.CLOUD,))

    transports = ", ".join(sorted(t.value for t in identity.transports)) or "none"
    if identity.offline:
        return TransportPlan(PlanKind.OFFLINE, reason=f"device marked offline (transports: {transports})")
    return TransportPlan(PlanKind.NOOP, reason=f"no pollable transport (transports: {transports})")
