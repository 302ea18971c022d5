"""
Closed-loop harness: a kinematic car on a spline track.

The environment exposes a gymnasium interface so the controller can be run
and scored like any other policy.  Motion uses the same kinematic model as
the optimizer (its position, heading and speed rows do not depend on the
reference), and every step emits the telemetry the simulator would send:
upcoming waypoints in the map frame plus pose, speed and applied actuation.
"""

from __future__ import annotations

from typing import Optional, Tuple

import gymnasium as gym
import numpy as np
from gymnasium import spaces
from scipy.interpolate import CubicSpline

from .config import HorizonConfig
from .kinematics import ACCEL, DELTA, PSI, STATE_DIM, V, X, Y, KinematicBicycleModel
from .telemetry import Telemetry

_NO_REFERENCE = np.zeros(4)


def sinusoidal_track(
    length: float = 3000.0,
    amplitude: float = 15.0,
    wavelength: float = 600.0,
    spacing: float = 10.0,
) -> np.ndarray:
    """Centre line ``y = A sin(2 pi x / wavelength)`` sampled every ``spacing``."""
    xs = np.arange(0.0, length + spacing, spacing)
    ys = amplitude * np.sin(2.0 * np.pi * xs / wavelength)
    return np.column_stack([xs, ys])


class KinematicTrackEnv(gym.Env):
    """
    Parameters
    ----------
    track : np.ndarray, optional
        ``(M, 2)`` centre-line points in driving order.
    horizon : HorizonConfig
        Supplies ``dt``, ``lf`` and the actuator ranges.
    steer_polarity : float
        Same polarity the driver uses to normalise its steering command.
    num_waypoints, waypoint_spacing : int, float
        Upcoming waypoints reported in the telemetry.
    off_track_distance : float
        Episode terminates once the lateral deviation exceeds this.
    max_steps : int
        Episode truncates after this many steps.
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        track: Optional[np.ndarray] = None,
        horizon: HorizonConfig = HorizonConfig(),
        steer_polarity: float = -1.0,
        num_waypoints: int = 8,
        waypoint_spacing: float = 12.0,
        off_track_distance: float = 8.0,
        max_steps: int = 500,
    ):
        track = sinusoidal_track() if track is None else np.asarray(track, dtype=float)
        if track.ndim != 2 or track.shape[1] != 2 or track.shape[0] < 4:
            raise ValueError("track must be an (M, 2) array with at least 4 points")

        self.horizon = horizon
        self.steer_polarity = steer_polarity
        self.num_waypoints = num_waypoints
        self.waypoint_spacing = waypoint_spacing
        self.off_track_distance = off_track_distance
        self.max_steps = max_steps
        self.model = KinematicBicycleModel(lf=horizon.lf, dt=horizon.dt)

        seg = np.hypot(np.diff(track[:, 0]), np.diff(track[:, 1]))
        arc = np.concatenate([[0.0], np.cumsum(seg)])
        self.track = track
        self.track_length = float(arc[-1])
        self._spline_x = CubicSpline(arc, track[:, 0])
        self._spline_y = CubicSpline(arc, track[:, 1])
        self._dense_s = np.linspace(0.0, self.track_length, int(self.track_length / 0.5) + 1)
        self._dense_xy = np.column_stack(
            [self._spline_x(self._dense_s), self._spline_y(self._dense_s)]
        )

        self.action_space = spaces.Box(low=-1.0, high=1.0, shape=(2,), dtype=np.float32)
        self.observation_space = spaces.Box(
            low=-np.inf, high=np.inf, shape=(6,), dtype=np.float64
        )

        self.state = np.zeros(STATE_DIM)
        self.actuation = np.zeros(2)
        self.steps = 0

    def centerline(self, s: np.ndarray) -> np.ndarray:
        return np.column_stack([self._spline_x(s), self._spline_y(s)])

    def _tangent(self, s: float) -> np.ndarray:
        t = np.array([self._spline_x(s, 1), self._spline_y(s, 1)], dtype=float)
        return t / max(np.linalg.norm(t), 1e-9)

    def _nearest(self, x: float, y: float) -> Tuple[float, float]:
        """Arc length of the closest centre-line point and signed deviation (left positive)."""
        d = self._dense_xy - np.array([x, y])
        idx = int(np.argmin(np.einsum("ij,ij->i", d, d)))
        s = float(self._dense_s[idx])
        tangent = self._tangent(s)
        offset = np.array([x, y]) - self._dense_xy[idx]
        lateral = float(tangent[0] * offset[1] - tangent[1] * offset[0])
        return s, lateral

    def _observation(self) -> np.ndarray:
        return np.array(
            [
                self.state[X],
                self.state[Y],
                self.state[PSI],
                self.state[V],
                self.actuation[DELTA],
                self.actuation[ACCEL],
            ]
        )

    def _info(self) -> dict:
        s, lateral = self._nearest(self.state[X], self.state[Y])
        ahead = np.clip(
            s + self.waypoint_spacing * np.arange(self.num_waypoints), 0.0, self.track_length
        )
        waypoints = self.centerline(ahead)
        return {
            "arc_length": s,
            "lateral_error": lateral,
            "ptsx": waypoints[:, 0].tolist(),
            "ptsy": waypoints[:, 1].tolist(),
        }

    def reset(self, seed: Optional[int] = None, options: Optional[dict] = None):
        """
        ``options`` may contain ``start_s`` (arc length), ``lateral_offset``
        (left positive), ``heading_offset`` and ``speed``.
        """
        super().reset(seed=seed)
        options = options or {}
        s0 = float(options.get("start_s", 0.0))
        lateral = float(options.get("lateral_offset", 0.0))
        speed = float(options.get("speed", self.horizon.ref_speed))

        tangent = self._tangent(s0)
        normal = np.array([-tangent[1], tangent[0]])
        position = self.centerline(np.array([s0]))[0] + lateral * normal
        heading = float(np.arctan2(tangent[1], tangent[0])) + float(
            options.get("heading_offset", 0.0)
        )

        self.state = np.array([position[0], position[1], heading, speed, 0.0, 0.0])
        self.actuation = np.zeros(2)
        self.steps = 0
        return self._observation(), self._info()

    def step(self, action):
        action = np.clip(np.asarray(action, dtype=float).reshape(2), -1.0, 1.0)
        delta = self.steer_polarity * action[0] * self.horizon.max_steer
        accel = action[1] * self.horizon.max_throttle
        self.actuation = np.array([delta, accel])

        moved = self.model.step(self.state, self.actuation, _NO_REFERENCE)
        self.state[[X, Y, PSI, V]] = moved[[X, Y, PSI, V]]
        self.steps += 1

        info = self._info()
        lateral = info["lateral_error"]
        reward = -lateral * lateral
        terminated = abs(lateral) > self.off_track_distance
        truncated = self.steps >= self.max_steps or (
            info["arc_length"] >= self.track_length - self.waypoint_spacing * self.num_waypoints
        )
        return self._observation(), reward, terminated, truncated, info

    def telemetry(self) -> Telemetry:
        info = self._info()
        return Telemetry(
            ptsx=tuple(info["ptsx"]),
            ptsy=tuple(info["ptsy"]),
            x=float(self.state[X]),
            y=float(self.state[Y]),
            psi=float(self.state[PSI]),
            speed=float(self.state[V]),
            steering_angle=float(self.actuation[DELTA]),
            throttle=float(self.actuation[ACCEL]),
        )
