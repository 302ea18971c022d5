"""
Tests for the simulator message codec.
"""

import json

import pytest

from pathmpc.errors import TelemetryError
from pathmpc.telemetry import (
    MANUAL_FRAME,
    Telemetry,
    decode_event,
    decode_frame,
    encode_steer,
    encode_telemetry,
    extract_payload,
    is_event_frame,
)

SAMPLE = {
    "ptsx": [1.0, 2.0, 3.0, 4.0],
    "ptsy": [0.0, 0.1, 0.2, 0.3],
    "x": 0.5,
    "y": -0.5,
    "psi": 0.1,
    "speed": 30,
    "steering_angle": 0.02,
    "throttle": 0.3,
}


def test_event_frame_detection():
    assert is_event_frame('42["telemetry",{}]')
    assert not is_event_frame("0{\"sid\":\"abc\"}")
    assert not is_event_frame("42")


def test_extract_payload():
    assert extract_payload('42["telemetry",{"x":1}]') == '["telemetry",{"x":1}]'
    assert extract_payload('42["telemetry",null]') is None
    assert extract_payload("42[\"telemetry\",") is None


def test_decode_event():
    event, data = decode_event('["telemetry",{"x":1}]')
    assert event == "telemetry"
    assert data == {"x": 1}
    with pytest.raises(TelemetryError):
        decode_event('["telemetry"')
    with pytest.raises(TelemetryError):
        decode_event('{"x":1}')


def test_encode_steer():
    frame = encode_steer({"steering_angle": 0.1, "throttle": 0.2})
    assert frame.startswith('42["steer",')
    assert json.loads(frame[2:]) == ["steer", {"steering_angle": 0.1, "throttle": 0.2}]


def test_manual_frame():
    assert MANUAL_FRAME == '42["manual",{}]'


def test_telemetry_from_payload():
    telemetry = Telemetry.from_payload(SAMPLE)
    assert telemetry.ptsx == (1.0, 2.0, 3.0, 4.0)
    assert telemetry.speed == 30.0
    assert isinstance(telemetry.speed, float)


def test_telemetry_survives_the_wire():
    telemetry = Telemetry.from_payload(SAMPLE)
    event, data = decode_event(extract_payload(encode_telemetry(telemetry)))
    assert event == "telemetry"
    assert Telemetry.from_payload(data) == telemetry


@pytest.mark.parametrize(
    "change",
    [
        {"x": None},
        {"speed": True},
        {"psi": "0.1"},
        {"ptsx": [1.0, 2.0]},
        {"ptsy": "abc"},
    ],
)
def test_malformed_telemetry_rejected(change):
    data = dict(SAMPLE)
    data.update(change)
    with pytest.raises(TelemetryError):
        Telemetry.from_payload(data)


def test_missing_field_rejected():
    data = dict(SAMPLE)
    del data["throttle"]
    with pytest.raises(TelemetryError):
        Telemetry.from_payload(data)


def test_decode_frame():
    assert decode_frame('42["telemetry",{"x":1}]') == ("telemetry", {"x": 1})
    assert decode_frame('42["telemetry",null]') is None
    assert decode_frame("2") is None
