"""
Actuation latency compensation.

The command computed now only reaches the wheels ``latency`` seconds later,
so the controller is handed the state the vehicle will be in by then.  The
projection holds the currently applied actuation for the whole delay and
uses the same kinematic model as the optimizer.
"""

from __future__ import annotations

import numpy as np

from .errors import ConfigurationError
from .kinematics import KinematicBicycleModel, as_state


def project_state(
    state: np.ndarray,
    actuation: np.ndarray,
    coeffs: np.ndarray,
    latency: float,
    model: KinematicBicycleModel,
) -> np.ndarray:
    if latency < 0.0:
        raise ConfigurationError(f"latency must be >= 0, got {latency}")
    if latency == 0.0:
        return as_state(state).copy()
    return model.step(state, actuation, coeffs, dt=latency)
