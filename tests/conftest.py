"""
Shared test doubles.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from pathmpc.backends import NonlinearSolver, SolverResult


class FailingSolver(NonlinearSolver):
    """Backend that never converges; hands back the initial guess."""

    name = "failing"

    def __init__(self):
        self.calls = 0

    def minimize(self, program, bounds, initial_guess, parameters):
        self.calls += 1
        return SolverResult(
            x=np.array(initial_guess, dtype=float),
            converged=False,
            status="stub did not converge",
            cost=0.0,
            iterations=0,
        )


@pytest.fixture
def failing_solver():
    return FailingSolver()
