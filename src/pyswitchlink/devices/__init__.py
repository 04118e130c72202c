"""Device pipelines, one per supported device type."""

from __future__ import annotations

from pyswitchlink.devices.base import DevicePipeline, Logger, verify_radio_model
from pyswitchlink.devices.contact import ContactPipeline
from pyswitchlink.devices.hygrometer import HygrometerPipeline
from pyswitchlink.devices.motion import MotionPipeline
from pyswitchlink.exceptions import SwitchLinkConfigError
from pyswitchlink.models.identity import DeviceIdentity

PIPELINES: dict[str, type[DevicePipeline]] = {
    HygrometerPipeline.kind: HygrometerPipeline,
    MotionPipeline.kind: MotionPipeline,
    ContactPipeline.kind: ContactPipeline,
}


def create_pipeline(identity: DeviceIdentity, logger: Logger | None = None) -> DevicePipeline:
    """Build the pipeline matching ``identity.model``."""
    pipeline_cls = PIPELINES.get(identity.model.pipeline)
    if pipeline_cls is None:
        raise SwitchLinkConfigError(f"Unsupported device type: {identity.device_type!r}")
    return pipeline_cls(identity, logger)


__all__ = [
    "ContactPipeline",
    "DevicePipeline",
    "HygrometerPipeline",
    "MotionPipeline",
    "PIPELINES",
    "create_pipeline",
    "verify_radio_model",
]
