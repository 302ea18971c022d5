"""
Tests for the vehicle-frame transform and the reference fit.
"""

import numpy as np
import pytest

from pathmpc.errors import InputShapeError
from pathmpc.reference import fit_polynomial, initial_errors, to_vehicle_frame


def test_identity_pose_is_noop():
    xs, ys = to_vehicle_frame([1.0, 2.0], [3.0, -4.0], 0.0, 0.0, 0.0)
    np.testing.assert_allclose(xs, [1.0, 2.0])
    np.testing.assert_allclose(ys, [3.0, -4.0])


def test_heading_north():
    """Point ahead of a vehicle facing +y lands on the vehicle x axis."""
    xs, ys = to_vehicle_frame([10.0, 9.0], [21.0, 20.0], 10.0, 20.0, np.pi / 2)
    np.testing.assert_allclose(xs, [1.0, 0.0], atol=1e-12)
    # a point to the west is on the vehicle's left
    np.testing.assert_allclose(ys, [0.0, 1.0], atol=1e-12)


def test_mismatched_waypoints_rejected():
    with pytest.raises(InputShapeError):
        to_vehicle_frame([1.0, 2.0], [1.0], 0.0, 0.0, 0.0)


def test_fit_recovers_cubic():
    coeffs = np.array([0.5, -0.2, 0.03, -0.001])
    xs = np.linspace(0.0, 50.0, 8)
    ys = coeffs[0] + coeffs[1] * xs + coeffs[2] * xs ** 2 + coeffs[3] * xs ** 3
    np.testing.assert_allclose(fit_polynomial(xs, ys), coeffs, atol=1e-8)


def test_fit_needs_enough_points():
    with pytest.raises(InputShapeError):
        fit_polynomial([0.0, 1.0, 2.0], [0.0, 1.0, 4.0], 3)


def test_fit_rejects_non_finite():
    with pytest.raises(InputShapeError):
        fit_polynomial([0.0, 1.0, 2.0, np.nan], [0.0, 1.0, 4.0, 9.0])


def test_initial_errors():
    cte, epsi = initial_errors([2.0, 0.5, 0.1, 0.01])
    assert cte == pytest.approx(2.0)
    assert epsi == pytest.approx(-np.arctan(0.5))
