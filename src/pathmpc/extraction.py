"""
Turns a converged optimization result into the command for this tick.

Only the first actuation pair is applied; the rest of the plan is shown as
the predicted path.  Nothing here optimizes or mutates the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .config import HorizonConfig
from .errors import OptimizationFailure
from .kinematics import ACCEL, DELTA, X, Y
from .optimizer import TrajectoryOptimizationResult

# Solvers may overshoot a bound by their feasibility tolerance.
BOUND_TOLERANCE = 1e-6


@dataclass(frozen=True)
class Solution:
    """
    Attributes
    ----------
    steer : float
        Normalised steering command in [-1, 1], in the vehicle's polarity.
    throttle : float
        Normalised throttle/brake command in [-1, 1].
    steer_angle : float
        Steering angle of the first transition in radians (model polarity).
    acceleration : float
        Acceleration of the first transition.
    predicted_path : tuple of (x, y)
        Predicted positions of steps 1 .. N-1, vehicle frame.
    states : np.ndarray
        Full predicted state trajectory, ``(N, 6)``.
    """

    steer: float
    throttle: float
    steer_angle: float
    acceleration: float
    predicted_path: Tuple[Tuple[float, float], ...]
    states: np.ndarray

    @property
    def path_xs(self) -> list:
        return [p[0] for p in self.predicted_path]

    @property
    def path_ys(self) -> list:
        return [p[1] for p in self.predicted_path]


def _checked_ratio(value: float, limit: float, name: str, result) -> float:
    ratio = value / limit
    if not np.isfinite(ratio) or abs(ratio) > 1.0 + BOUND_TOLERANCE:
        raise OptimizationFailure(
            f"{name} {value:.6g} outside [-{limit:.6g}, {limit:.6g}]", result
        )
    return float(np.clip(ratio, -1.0, 1.0))


def extract_solution(
    result: TrajectoryOptimizationResult,
    horizon: HorizonConfig,
    steer_polarity: float = -1.0,
) -> Solution:
    """
    Reads the command and the predicted path out of ``result``.

    Raises
    ------
    OptimizationFailure
        The result is flagged unsuccessful, its first actuation lies outside
        the actuator range, or the predicted path is not finite.
    """
    if not result.success:
        raise OptimizationFailure(f"cannot extract from a failed solve: {result.message}", result)
    if result.actuations.shape[0] < 1:
        raise OptimizationFailure("solution holds no actuation", result)

    delta = float(result.actuations[0, DELTA])
    accel = float(result.actuations[0, ACCEL])
    steer = steer_polarity * _checked_ratio(delta, horizon.max_steer, "steering angle", result)
    throttle = _checked_ratio(accel, horizon.max_throttle, "acceleration", result)

    path = result.states[1:, [X, Y]]
    if not np.all(np.isfinite(path)):
        raise OptimizationFailure("predicted path is not finite", result)

    return Solution(
        steer=steer,
        throttle=throttle,
        steer_angle=delta,
        acceleration=accel,
        predicted_path=tuple((float(x), float(y)) for x, y in path),
        states=result.states.copy(),
    )
