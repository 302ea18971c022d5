"""
Kinematic bicycle model with reference-path error states.

The state is expressed in the vehicle frame of the current tick::

    [x, y, psi, v, cte, epsi]

and the actuation is ``[delta, a]`` (steering angle in radians, normalised
acceleration).  The transition is written once as a CasADi expression and
wrapped in a ``casadi.Function``.  The optimizer calls that function on
symbols to build its equality constraints, while the latency projection and
the simulator call it on numbers, so both evaluate exactly the same update.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import casadi as ca
import numpy as np

from .errors import ConfigurationError, InputShapeError

X, Y, PSI, V, CTE, EPSI = range(6)
DELTA, ACCEL = range(2)

STATE_DIM = 6
CONTROL_DIM = 2
NUM_COEFFS = 4

STATE_FIELDS = ("x", "y", "psi", "v", "cte", "epsi")
CONTROL_FIELDS = ("delta", "a")


def polyeval(coeffs: Any, x: Any) -> Any:
    """
    Evaluates ``sum(coeffs[i] * x**i)`` with Horner's scheme.

    Works on floats, NumPy arrays and CasADi symbols alike since only
    arithmetic operators are used.
    """
    n = len(coeffs) if not isinstance(coeffs, (ca.SX, ca.MX)) else coeffs.numel()
    result = coeffs[n - 1]
    for i in range(n - 2, -1, -1):
        result = result * x + coeffs[i]
    return result


def polyderiv(coeffs: Any, x: Any) -> Any:
    """First derivative of :func:`polyeval` with respect to ``x``."""
    n = len(coeffs) if not isinstance(coeffs, (ca.SX, ca.MX)) else coeffs.numel()
    if n < 2:
        return 0.0 * x
    result = (n - 1) * coeffs[n - 1]
    for i in range(n - 2, 0, -1):
        result = result * x + i * coeffs[i]
    return result


def as_state(values: Any) -> np.ndarray:
    return _as_vector(values, STATE_DIM, "state")


def as_coeffs(values: Any) -> np.ndarray:
    return _as_vector(values, NUM_COEFFS, "reference coefficients")


def as_actuation(values: Any) -> np.ndarray:
    return _as_vector(values, CONTROL_DIM, "actuation")


def _as_vector(values: Any, size: int, name: str) -> np.ndarray:
    try:
        vector = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InputShapeError(f"{name} is not numeric: {exc}") from exc
    if vector.ndim != 1 or vector.size != size:
        raise InputShapeError(
            f"{name} must have exactly {size} components, got shape {vector.shape}"
        )
    if not np.all(np.isfinite(vector)):
        raise InputShapeError(f"{name} contains non-finite values: {vector}")
    return vector


def _transition(state, actuation, coeffs, dt, lf: float):
    x = state[X]
    y = state[Y]
    psi = state[PSI]
    v = state[V]
    epsi = state[EPSI]
    delta = actuation[DELTA]
    a = actuation[ACCEL]

    yaw_change = v / lf * delta * dt
    psi_des = ca.atan(polyderiv(coeffs, x))
    return ca.vertcat(
        x + v * ca.cos(psi) * dt,
        y + v * ca.sin(psi) * dt,
        psi - yaw_change,
        v + a * dt,
        polyeval(coeffs, x) - y + v * ca.sin(epsi) * dt,
        psi - psi_des - yaw_change,
    )


@dataclass
class KinematicBicycleModel:
    """
    Discrete kinematic bicycle model.

    Parameters
    ----------
    lf : float
        Distance from the front axle to the centre of gravity.
    dt : float
        Default step duration.  ``step`` accepts an override, which the
        latency projection uses to advance by the actuation delay.
    """

    lf: float = 2.67
    dt: float = 0.1
    _step_fn: ca.Function = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.lf <= 0.0:
            raise ConfigurationError(f"lf must be positive, got {self.lf}")
        state = ca.SX.sym("state", STATE_DIM)
        actuation = ca.SX.sym("actuation", CONTROL_DIM)
        coeffs = ca.SX.sym("coeffs", NUM_COEFFS)
        dt = ca.SX.sym("dt")
        self._step_fn = ca.Function(
            "kinematic_step",
            [state, actuation, coeffs, dt],
            [_transition(state, actuation, coeffs, dt, self.lf)],
            ["state", "actuation", "coeffs", "dt"],
            ["next_state"],
        )

    @property
    def state_dim(self) -> int:
        return STATE_DIM

    @property
    def control_dim(self) -> int:
        return CONTROL_DIM

    @property
    def function(self) -> ca.Function:
        return self._step_fn

    def symbolic_step(self, state, actuation, coeffs, dt: Optional[float] = None):
        """Next state as a CasADi expression of the symbolic arguments."""
        return self._step_fn(state, actuation, coeffs, self.dt if dt is None else dt)

    def step(
        self,
        state: np.ndarray,
        actuation: np.ndarray,
        coeffs: np.ndarray,
        dt: Optional[float] = None,
    ) -> np.ndarray:
        """Numeric one-step update.  Returns a fresh array."""
        out = self._step_fn(
            as_state(state),
            as_actuation(actuation),
            as_coeffs(coeffs),
            self.dt if dt is None else float(dt),
        )
        return np.asarray(out.full(), dtype=float).reshape(-1)

    def rollout(
        self, state: np.ndarray, actuations: np.ndarray, coeffs: np.ndarray
    ) -> np.ndarray:
        """
        Applies ``actuations`` (shape ``(k, 2)``) in order.  Returns the
        ``(k + 1, 6)`` array of visited states, starting with ``state``.
        """
        actuations = np.asarray(actuations, dtype=float).reshape(-1, CONTROL_DIM)
        states = np.zeros((actuations.shape[0] + 1, STATE_DIM))
        states[0] = as_state(state)
        for k, actuation in enumerate(actuations):
            states[k + 1] = self.step(states[k], actuation, coeffs)
        return states
