from __future__ import annotations

from typing import Any

import pytest

from pyswitchlink.config import resolve_identity
from pyswitchlink.devices import ContactPipeline, HygrometerPipeline, MotionPipeline, create_pipeline
from pyswitchlink.exceptions import DecodeMismatchError, SwitchLinkConfigError
from pyswitchlink.models import capabilities as cap
from pyswitchlink.models.capabilities import BatteryStatus, ContactState
from pyswitchlink.models.payloads import RAW_STATUS_PAYLOAD_ADAPTER, CloudResponse, RadioAdvertisement, WebhookEvent

DEVICE_ID = "AABBCCDDEEFF"
ADDRESS = "aa:bb:cc:dd:ee:ff"


def _pipeline(device_type: str, **extra: Any):
    identity = resolve_identity({"deviceId": DEVICE_ID, "deviceType": device_type, "connectionType": "BLE", **extra})
    return create_pipeline(identity)


def _advert(**fields: Any) -> RadioAdvertisement:
    return RadioAdvertisement.from_service_data(ADDRESS, fields, rssi=-60)


def test_create_pipeline_picks_variant_by_model() -> None:
    assert isinstance(_pipeline("WoIOSensor"), HygrometerPipeline)
    assert isinstance(_pipeline("Meter"), HygrometerPipeline)
    assert isinstance(_pipeline("Motion Sensor"), MotionPipeline)
    assert isinstance(_pipeline("Contact Sensor"), ContactPipeline)


def test_create_pipeline_rejects_unknown_device_type() -> None:
    with pytest.raises(SwitchLinkConfigError):
        _pipeline("Bot")


def test_radio_scenario_battery_humidity_temperature() -> None:
    pipeline = _pipeline("WoIOSensor")
    patch = pipeline.decode(_advert(model="w", modelName="WoIOSensorTH", battery=45, humidity=60, celsius=22))

    assert patch == {
        cap.BATTERY: 45,
        cap.LOW_BATTERY: BatteryStatus.NORMAL,
        cap.HUMIDITY: 60,
        cap.TEMPERATURE: 22,
    }


def test_radio_low_battery() -> None:
    pipeline = _pipeline("WoIOSensor")
    patch = pipeline.decode(_advert(model="w", modelName="WoIOSensorTH", battery=5))

    assert patch == {cap.BATTERY: 5, cap.LOW_BATTERY: BatteryStatus.LOW}


@pytest.mark.parametrize(
    ("model", "model_name"),
    [
        ("T", "WoSensorTH"),
        ("w", "WoSensorTH"),
        ("", ""),
    ],
)
def test_radio_model_mismatch_is_decode_failure(model: str, model_name: str) -> None:
    pipeline = _pipeline("WoIOSensor")
    with pytest.raises(DecodeMismatchError):
        pipeline.decode(_advert(model=model, modelName=model_name, battery=50))


def test_radio_out_of_range_values_are_clamped() -> None:
    pipeline = _pipeline("Meter")
    patch = pipeline.decode(_advert(model="T", modelName="WoSensorTH", humidity=130, celsius=140, battery=120))

    assert patch[cap.HUMIDITY] == 100
    assert patch[cap.TEMPERATURE] == 100
    assert patch[cap.BATTERY] == 100


def test_webhook_humidity_clamped_like_radio() -> None:
    pipeline = _pipeline("WoIOSensor", webhook=True)
    event = WebhookEvent(
        device_id=DEVICE_ID,
        context={"deviceMac": DEVICE_ID, "temperature": -400, "scale": "CELSIUS", "humidity": 999},
    )

    patch = pipeline.decode(event)

    assert patch[cap.HUMIDITY] == 100
    assert patch[cap.TEMPERATURE] == -273.15


def test_webhook_fahrenheit_converted_with_override() -> None:
    pipeline = _pipeline("WoIOSensor", webhook=True, convertUnitTo="celsius")
    event = WebhookEvent(device_id=DEVICE_ID, context={"temperature": 212, "scale": "FAHRENHEIT"})

    assert pipeline.decode(event) == {cap.TEMPERATURE: 100.0}


def test_cloud_partial_body_only_patches_reported_fields() -> None:
    pipeline = _pipeline("WoIOSensor")
    patch = pipeline.decode(CloudResponse(status_code=100, body={"temperature": 21.5}))

    assert patch == {cap.TEMPERATURE: 21.5}


def test_cloud_firmware_version_normalized() -> None:
    pipeline = _pipeline("Meter")
    patch = pipeline.decode(CloudResponse(status_code=100, body={"battery": 80, "version": "V1.3-1"}))

    assert patch[cap.FIRMWARE] == "1.3"
    assert patch[cap.BATTERY] == 80


def test_hidden_capabilities_are_not_decoded() -> None:
    pipeline = _pipeline("WoIOSensor", hide_humidity=True)
    patch = pipeline.decode(_advert(model="w", modelName="WoIOSensorTH", humidity=40, celsius=20))

    assert cap.HUMIDITY not in patch
    assert cap.HUMIDITY not in pipeline.exposed_capabilities
    assert patch[cap.TEMPERATURE] == 20


def test_hygrometer_offline_placeholders() -> None:
    assert _pipeline("Meter").offline_patch() == {cap.HUMIDITY: 50.0, cap.TEMPERATURE: 30.0}


def test_motion_cloud_decode() -> None:
    pipeline = _pipeline("Motion Sensor")
    patch = pipeline.decode(
        CloudResponse(
            status_code=100,
            body={"moveDetected": True, "brightness": "bright", "battery": 80, "version": "V2.1"},
        )
    )

    assert patch == {
        cap.MOTION: True,
        cap.LIGHT_LEVEL: 6001,
        cap.BATTERY: 80,
        cap.LOW_BATTERY: BatteryStatus.NORMAL,
        cap.FIRMWARE: "2.1",
    }


def test_motion_webhook_detection_state() -> None:
    pipeline = _pipeline("Motion Sensor", webhook=True)

    assert pipeline.decode(WebhookEvent(device_id=DEVICE_ID, context={"detectionState": "DETECTED"})) == {
        cap.MOTION: True
    }
    assert pipeline.decode(WebhookEvent(device_id=DEVICE_ID, context={"detectionState": "NOT_DETECTED"})) == {
        cap.MOTION: False
    }


def test_motion_light_level_respects_custom_lux_range() -> None:
    pipeline = _pipeline("Motion Sensor", set_minLux=10, set_maxLux=500)
    patch = pipeline.decode(_advert(model="s", modelName="WoPresence", movement=False, lightLevel="dark"))

    assert patch[cap.LIGHT_LEVEL] == 10
    assert patch[cap.MOTION] is False


def test_contact_radio_decode() -> None:
    pipeline = _pipeline("Contact Sensor")
    patch = pipeline.decode(
        _advert(model="d", modelName="WoContact", doorState="open", movement=False, battery=90, lightLevel="dark")
    )

    assert patch[cap.CONTACT] == ContactState.NOT_DETECTED
    assert patch[cap.MOTION] is False
    assert patch[cap.LIGHT_LEVEL] == 1


def test_contact_cloud_closed_and_timeout() -> None:
    pipeline = _pipeline("Contact Sensor")

    closed = pipeline.decode(CloudResponse(status_code=100, body={"openState": "close"}))
    timeout = pipeline.decode(CloudResponse(status_code=100, body={"openState": "timeOutNotClose"}))

    assert closed == {cap.CONTACT: ContactState.DETECTED}
    assert timeout == {cap.CONTACT: ContactState.NOT_DETECTED}


def test_raw_payload_union_discriminates_on_transport() -> None:
    payload = RAW_STATUS_PAYLOAD_ADAPTER.validate_python(
        {"transport": "cloud", "statusCode": 100, "message": "success", "body": {"humidity": 33}}
    )

    assert isinstance(payload, CloudResponse)
    assert _pipeline("Meter").decode(payload) == {cap.HUMIDITY: 33}
