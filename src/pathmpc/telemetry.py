"""
Simulator message codec.

The simulator talks Socket.IO: every event arrives as a text frame that
starts with ``42`` (``4`` = message, ``2`` = event) followed by a JSON array
``["<event>", {...}]``.  Frames whose payload is ``null`` mean the
simulator is in manual mode and expects a ``manual`` event back.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .errors import TelemetryError

EVENT_PREFIX = "42"
MANUAL_FRAME = '42["manual",{}]'


def is_event_frame(frame: str) -> bool:
    return len(frame) > 2 and frame.startswith(EVENT_PREFIX)


def extract_payload(frame: str) -> Optional[str]:
    """
    Returns the JSON array text of an event frame, or ``None`` if the frame
    carries ``null`` or no complete array.
    """
    if "null" in frame:
        return None
    start = frame.find("[")
    end = frame.rfind("}]")
    if start == -1 or end == -1:
        return None
    return frame[start : end + 2]


def decode_event(payload: str) -> Tuple[str, Dict[str, Any]]:
    try:
        message = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise TelemetryError(f"malformed event payload: {exc}") from exc
    if (
        not isinstance(message, list)
        or len(message) < 2
        or not isinstance(message[0], str)
        or not isinstance(message[1], dict)
    ):
        raise TelemetryError("event payload must be [name, {data}]")
    return message[0], message[1]


def decode_frame(frame: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """``(event, data)`` of an event frame, ``None`` if it carries no data."""
    if not is_event_frame(frame):
        return None
    payload = extract_payload(frame)
    if payload is None:
        return None
    return decode_event(payload)


def encode_steer(message: Dict[str, Any]) -> str:
    return EVENT_PREFIX + json.dumps(["steer", message], separators=(",", ":"))


def _number(data: Dict[str, Any], key: str) -> float:
    if key not in data:
        raise TelemetryError(f"telemetry is missing {key!r}")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TelemetryError(f"telemetry field {key!r} must be a number, got {value!r}")
    return float(value)


def _numbers(data: Dict[str, Any], key: str) -> List[float]:
    if key not in data:
        raise TelemetryError(f"telemetry is missing {key!r}")
    values = data[key]
    if not isinstance(values, list) or not all(
        isinstance(v, (int, float)) and not isinstance(v, bool) for v in values
    ):
        raise TelemetryError(f"telemetry field {key!r} must be a list of numbers")
    return [float(v) for v in values]


@dataclass(frozen=True)
class Telemetry:
    """
    One telemetry sample, map frame.

    ``steering_angle`` is the steering currently applied, in radians and in
    the model's polarity.  ``throttle`` is the applied normalised throttle.
    """

    ptsx: Tuple[float, ...]
    ptsy: Tuple[float, ...]
    x: float
    y: float
    psi: float
    speed: float
    steering_angle: float
    throttle: float

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Telemetry":
        ptsx = _numbers(data, "ptsx")
        ptsy = _numbers(data, "ptsy")
        if len(ptsx) != len(ptsy):
            raise TelemetryError(
                f"ptsx and ptsy differ in length ({len(ptsx)} vs {len(ptsy)})"
            )
        return cls(
            ptsx=tuple(ptsx),
            ptsy=tuple(ptsy),
            x=_number(data, "x"),
            y=_number(data, "y"),
            psi=_number(data, "psi"),
            speed=_number(data, "speed"),
            steering_angle=_number(data, "steering_angle"),
            throttle=_number(data, "throttle"),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "ptsx": list(self.ptsx),
            "ptsy": list(self.ptsy),
            "x": self.x,
            "y": self.y,
            "psi": self.psi,
            "speed": self.speed,
            "steering_angle": self.steering_angle,
            "throttle": self.throttle,
        }


def encode_telemetry(telemetry: Telemetry) -> str:
    """Frame as the simulator would send it; used by the harness and tests."""
    return EVENT_PREFIX + json.dumps(["telemetry", telemetry.to_payload()])
