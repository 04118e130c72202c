from __future__ import annotations

import logging

import pytest

from pyswitchlink._logging import device_logger
from pyswitchlink.config import resolve_identity


def test_device_logger_prefixes_type_and_name(caplog: pytest.LogCaptureFixture) -> None:
    identity = resolve_identity(
        {"deviceId": "AABBCCDDEEFF", "deviceType": "Meter", "configDeviceName": "Bedroom", "logging": "debug"}
    )
    logger = device_logger(identity)

    with caplog.at_level(logging.DEBUG, logger="pyswitchlink.device.AABBCCDDEEFF"):
        logger.debug("scan started")

    assert "Meter: Bedroom: scan started" in caplog.text


def test_logging_none_silences_device() -> None:
    identity = resolve_identity({"deviceId": "AABBCCDDEEFF", "deviceType": "Meter", "logging": "none"})
    logger = device_logger(identity)

    assert not logger.isEnabledFor(logging.CRITICAL)


def test_unknown_logging_option_falls_back_to_standard(caplog: pytest.LogCaptureFixture) -> None:
    identity = resolve_identity({"deviceId": "AABBCCDDEEFF", "deviceType": "Meter", "logging": "chatty"})

    with caplog.at_level(logging.WARNING):
        logger = device_logger(identity)

    assert logger.logger.level == logging.INFO
    assert "chatty" in caplog.text
