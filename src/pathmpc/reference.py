"""
Reference path utilities: vehicle-frame transform and cubic fit.

Waypoints arrive in the map frame.  They are moved into the vehicle frame
(origin at the vehicle, x forward, y to the left) and fitted with a cubic
``y = c0 + c1 x + c2 x^2 + c3 x^3``, coefficients lowest degree first.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from numpy.polynomial import polynomial as P

from .errors import InputShapeError
from .kinematics import polyderiv, polyeval

__all__ = ["to_vehicle_frame", "fit_polynomial", "initial_errors", "polyeval", "polyderiv"]


def to_vehicle_frame(
    ptsx: Sequence[float],
    ptsy: Sequence[float],
    px: float,
    py: float,
    psi: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Translates by ``-(px, py)`` then rotates by ``-psi``."""
    ptsx = np.asarray(ptsx, dtype=float)
    ptsy = np.asarray(ptsy, dtype=float)
    if ptsx.shape != ptsy.shape or ptsx.ndim != 1:
        raise InputShapeError(
            f"waypoint x/y must be 1-D and of equal length, got {ptsx.shape} and {ptsy.shape}"
        )
    dx = ptsx - px
    dy = ptsy - py
    cos_psi = np.cos(psi)
    sin_psi = np.sin(psi)
    xs = dx * cos_psi + dy * sin_psi
    ys = dy * cos_psi - dx * sin_psi
    return xs, ys


def fit_polynomial(xs: np.ndarray, ys: np.ndarray, order: int = 3) -> np.ndarray:
    """
    Least-squares polynomial fit.

    Parameters
    ----------
    xs, ys : np.ndarray
        Sample points.  At least ``order + 1`` are required.
    order : int
        Polynomial degree.
    """
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    if order < 1:
        raise ValueError("order must be >= 1")
    if xs.shape != ys.shape or xs.ndim != 1:
        raise InputShapeError("xs and ys must be 1-D and of equal length")
    if xs.size < order + 1:
        raise InputShapeError(
            f"fitting a degree-{order} polynomial needs {order + 1} points, got {xs.size}"
        )
    if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
        raise InputShapeError("waypoints contain non-finite values")
    return np.asarray(P.polyfit(xs, ys, order), dtype=float)


def initial_errors(coeffs: np.ndarray) -> Tuple[float, float]:
    """
    Cross-track and heading error of a vehicle at the origin of its own
    frame, heading along +x.
    """
    cte = float(polyeval(coeffs, 0.0))
    epsi = float(-np.arctan(polyderiv(coeffs, 0.0)))
    return cte, epsi
