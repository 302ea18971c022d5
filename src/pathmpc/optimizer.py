"""
Receding-horizon trajectory optimizer.

The program is transcribed once per configuration with direct multiple
shooting: every predicted state and every actuation is a decision variable,
and the kinematic model enters as equality constraints between consecutive
states.  Only the reference coefficients are program parameters; the
measured state is imposed through the variable bounds of the first state
block, so it comes back from the solver exactly as it went in.

Each call to :meth:`TrajectoryOptimizer.solve` formulates the numeric
bounds, picks an initial guess, runs the backend and validates what it got.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import casadi as ca
import numpy as np

from .backends import Bounds, NLPProgram, NonlinearSolver, make_solver
from .config import ControllerConfig
from .cost import cost_breakdown, trajectory_cost
from .errors import InputShapeError, OptimizationFailure
from .kinematics import (
    ACCEL,
    CONTROL_DIM,
    DELTA,
    NUM_COEFFS,
    STATE_DIM,
    KinematicBicycleModel,
    as_coeffs,
    as_state,
)
from .layout import DecisionLayout

logger = logging.getLogger(__name__)


@dataclass
class TrajectoryOptimizationResult:
    success: bool
    message: str
    cost: float
    states: np.ndarray
    actuations: np.ndarray
    raw_decision: np.ndarray
    iterations: int = -1
    solve_time_sec: float = 0.0


class TrajectoryOptimizer:
    """
    Formulates and solves the tracking NLP.

    Parameters
    ----------
    config : ControllerConfig
        Horizon, weights and solver options.  Never mutated.
    solver : NonlinearSolver, optional
        Backend; defaults to the one named by ``config.solver.backend``.
    """

    def __init__(
        self, config: ControllerConfig, solver: Optional[NonlinearSolver] = None
    ):
        self.config = config
        self.horizon = config.horizon
        self.model = KinematicBicycleModel(lf=self.horizon.lf, dt=self.horizon.dt)
        self.layout = DecisionLayout(
            state_dim=STATE_DIM,
            control_dim=CONTROL_DIM,
            num_steps=self.horizon.n_steps,
        )
        self.solver = solver if solver is not None else make_solver(config.solver)
        self.program = self._build_program()
        self._lower_template, self._upper_template = self._bound_templates()

    def _build_program(self) -> NLPProgram:
        layout = self.layout
        w = ca.SX.sym("w", layout.decision_dim)
        coeffs = ca.SX.sym("coeffs", NUM_COEFFS)

        states = ca.reshape(w[: layout.state_block], layout.state_dim, layout.num_steps).T
        controls = ca.reshape(
            w[layout.state_block :], layout.control_dim, layout.num_transitions
        ).T

        defects = []
        for t in range(layout.num_transitions):
            predicted = self.model.symbolic_step(states[t, :].T, controls[t, :].T, coeffs)
            defects.append(states[t + 1, :].T - predicted)
        g = ca.vertcat(*defects)

        objective = trajectory_cost(
            states, controls, self.config.weights, self.horizon.ref_speed
        )
        num_g = int(g.numel())
        return NLPProgram(
            decision=w,
            parameters=coeffs,
            objective=objective,
            constraints=g,
            constraint_lower=np.zeros(num_g),
            constraint_upper=np.zeros(num_g),
        )

    def _bound_templates(self):
        lower = np.full(self.layout.decision_dim, -np.inf)
        upper = np.full(self.layout.decision_dim, np.inf)
        steer = self.horizon.max_steer
        throttle = self.horizon.max_throttle
        for t in range(self.layout.num_transitions):
            lower[self.layout.control_offset(t, DELTA)] = -steer
            upper[self.layout.control_offset(t, DELTA)] = steer
            lower[self.layout.control_offset(t, ACCEL)] = -throttle
            upper[self.layout.control_offset(t, ACCEL)] = throttle
        return lower, upper

    def bounds(self, initial_state: np.ndarray) -> Bounds:
        lower = self._lower_template.copy()
        upper = self._upper_template.copy()
        first = self.layout.state_slice(0)
        lower[first] = initial_state
        upper[first] = initial_state
        return Bounds(lower=lower, upper=upper)

    def neutral_guess(self, initial_state: np.ndarray, coeffs: np.ndarray) -> np.ndarray:
        """Zero actuation with the dynamics rolled forward from the state."""
        controls = np.zeros((self.layout.num_transitions, self.layout.control_dim))
        states = self.model.rollout(initial_state, controls, coeffs)
        return self.layout.join(states, controls)

    def warm_guess(
        self,
        previous: TrajectoryOptimizationResult,
        initial_state: np.ndarray,
        coeffs: np.ndarray,
    ) -> np.ndarray:
        """
        Previous actuation plan advanced by one transition (the last one is
        repeated), clipped to the bounds and rolled forward from the new
        state so the guess is dynamically consistent.
        """
        controls = np.asarray(previous.actuations, dtype=float)
        if controls.shape != (self.layout.num_transitions, self.layout.control_dim):
            return self.neutral_guess(initial_state, coeffs)
        controls = np.vstack([controls[1:], controls[-1:]])
        controls[:, DELTA] = np.clip(controls[:, DELTA], -self.horizon.max_steer, self.horizon.max_steer)
        controls[:, ACCEL] = np.clip(
            controls[:, ACCEL], -self.horizon.max_throttle, self.horizon.max_throttle
        )
        states = self.model.rollout(initial_state, controls, coeffs)
        return self.layout.join(states, controls)

    def solve(
        self,
        initial_state,
        coeffs,
        initial_guess: Optional[np.ndarray] = None,
        warm_start: Optional[TrajectoryOptimizationResult] = None,
    ) -> TrajectoryOptimizationResult:
        """
        Solves one tick.

        Raises
        ------
        InputShapeError
            ``initial_state`` is not 6 finite values or ``coeffs`` not 4.
        OptimizationFailure
            The backend did not converge, the iterate is not finite, or the
            wall-clock budget was exceeded.  ``exc.result`` holds the
            best-known solution.
        """
        state = as_state(initial_state)
        coeffs = as_coeffs(coeffs)

        if initial_guess is not None:
            guess = np.asarray(initial_guess, dtype=float).reshape(-1)
            if guess.size != self.layout.decision_dim:
                raise InputShapeError(
                    f"initial guess must have {self.layout.decision_dim} entries, got {guess.size}"
                )
            guess = guess.copy()
            guess[self.layout.state_slice(0)] = state
        elif warm_start is not None:
            guess = self.warm_guess(warm_start, state, coeffs)
        else:
            guess = self.neutral_guess(state, coeffs)

        bounds = self.bounds(state)
        start = time.perf_counter()
        try:
            raw = self.solver.minimize(self.program, bounds, guess, coeffs)
        except RuntimeError as exc:
            raise OptimizationFailure(f"{self.solver.name} raised: {exc}") from exc
        elapsed = time.perf_counter() - start

        states, actuations = self.layout.split(raw.x)
        result = TrajectoryOptimizationResult(
            success=raw.converged,
            message=raw.status,
            cost=raw.cost,
            states=states,
            actuations=actuations,
            raw_decision=raw.x,
            iterations=raw.iterations,
            solve_time_sec=elapsed,
        )

        reason = None
        if not raw.converged:
            reason = f"{self.solver.name} did not converge: {raw.status}"
        elif not np.all(np.isfinite(raw.x)):
            reason = "solver returned non-finite values"
        elif (
            self.config.solver.time_budget_sec is not None
            and elapsed > self.config.solver.time_budget_sec
        ):
            reason = (
                f"solve took {elapsed * 1e3:.1f} ms, budget is "
                f"{self.config.solver.time_budget_sec * 1e3:.1f} ms"
            )
        if reason is not None:
            result.success = False
            logger.warning("Trajectory optimization failed after %d iterations: %s", raw.iterations, reason)
            raise OptimizationFailure(reason, result)

        logger.debug(
            "Solved in %.1f ms (%d iterations), cost %.3f",
            elapsed * 1e3,
            raw.iterations,
            raw.cost,
        )
        return result

    def cost_terms(self, result: TrajectoryOptimizationResult) -> dict:
        """Per-term cost totals of a solution, as plain floats."""
        terms = cost_breakdown(
            result.states, result.actuations, self.config.weights, self.horizon.ref_speed
        )
        return {name: float(value) for name, value in terms.items()}
