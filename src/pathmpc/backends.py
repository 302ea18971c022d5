"""
Nonlinear programming backends.

The optimizer describes its program symbolically (CasADi expressions over a
decision vector and a parameter vector) and hands it to any object that
implements :class:`NonlinearSolver`.  The backend only has to find a local
optimum and report honestly whether it converged; it knows nothing about
vehicles, costs or horizons.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, Tuple

import casadi as ca
import numpy as np
from scipy.optimize import Bounds as ScipyBounds
from scipy.optimize import minimize as scipy_minimize

from .config import SolverOptions
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

IPOPT_SUCCESS = ("Solve_Succeeded", "Solved_To_Acceptable_Level")


@dataclass(frozen=True)
class NLPProgram:
    """
    ``min f(w; p)  s.t.  g_lower <= g(w; p) <= g_upper``.

    Variable bounds are not part of the program because they change every
    tick (the first state block is pinned to the measurement).
    """

    decision: ca.SX
    parameters: ca.SX
    objective: ca.SX
    constraints: ca.SX
    constraint_lower: np.ndarray
    constraint_upper: np.ndarray

    @property
    def num_decision(self) -> int:
        return int(self.decision.numel())

    @property
    def num_constraints(self) -> int:
        return int(self.constraints.numel())


@dataclass(frozen=True)
class Bounds:
    lower: np.ndarray
    upper: np.ndarray


@dataclass
class SolverResult:
    x: np.ndarray
    converged: bool
    status: str
    cost: float
    iterations: int


class NonlinearSolver:
    """
    Capability interface for a local, gradient-based constrained optimizer.

    Implementations must be deterministic for fixed inputs and must not raise
    on non-convergence; they return the last iterate with
    ``converged=False`` instead.
    """

    name = "abstract"

    def minimize(
        self,
        program: NLPProgram,
        bounds: Bounds,
        initial_guess: np.ndarray,
        parameters: np.ndarray,
    ) -> SolverResult:
        raise NotImplementedError("This method should be overridden by subclasses.")


class IpoptSolver(NonlinearSolver):
    """Interior-point solver through ``casadi.nlpsol``."""

    name = "ipopt"

    def __init__(self, options: SolverOptions = SolverOptions()):
        self.options = options
        self._compiled: Dict[int, Tuple[NLPProgram, ca.Function]] = {}

    def _nlpsol_options(self) -> dict:
        return {
            "ipopt.print_level": self.options.print_level,
            "ipopt.max_iter": self.options.max_iter,
            "ipopt.max_cpu_time": self.options.max_cpu_time,
            "ipopt.tol": self.options.tol,
            "ipopt.sb": "yes",
            "print_time": 0,
            "error_on_fail": False,
        }

    def _solver_for(self, program: NLPProgram) -> ca.Function:
        key = id(program)
        if key not in self._compiled:
            nlp = {
                "x": program.decision,
                "p": program.parameters,
                "f": program.objective,
                "g": program.constraints,
            }
            solver = ca.nlpsol("path_mpc", "ipopt", nlp, self._nlpsol_options())
            self._compiled[key] = (program, solver)
            logger.debug(
                "Built IPOPT solver: %d variables, %d constraints",
                program.num_decision,
                program.num_constraints,
            )
        return self._compiled[key][1]

    def minimize(self, program, bounds, initial_guess, parameters) -> SolverResult:
        solver = self._solver_for(program)
        sol = solver(
            x0=initial_guess,
            p=parameters,
            lbx=bounds.lower,
            ubx=bounds.upper,
            lbg=program.constraint_lower,
            ubg=program.constraint_upper,
        )
        stats = solver.stats()
        status = str(stats.get("return_status", "unknown"))
        return SolverResult(
            x=np.asarray(sol["x"].full(), dtype=float).reshape(-1),
            converged=status in IPOPT_SUCCESS,
            status=status,
            cost=float(sol["f"]),
            iterations=int(stats.get("iter_count", -1)),
        )


class _CpuTimeExceeded(Exception):
    pass


class ScipySolver(NonlinearSolver):
    """
    Sequential least-squares QP (SciPy SLSQP) with CasADi derivatives.

    Fixed variables (equal lower and upper bound) are eliminated before the
    call and re-inserted afterwards, so pinned values come back untouched.
    ``max_cpu_time`` is checked after every iteration; running over returns
    the last iterate unconverged.
    """

    name = "slsqp"

    def __init__(self, options: SolverOptions = SolverOptions(backend="slsqp")):
        self.options = options
        self._compiled: Dict[int, Tuple[NLPProgram, Tuple[ca.Function, ...]]] = {}

    def _functions_for(self, program: NLPProgram) -> Tuple[ca.Function, ...]:
        key = id(program)
        if key not in self._compiled:
            w, p = program.decision, program.parameters
            fns = (
                ca.Function("f", [w, p], [program.objective]),
                ca.Function("grad_f", [w, p], [ca.gradient(program.objective, w)]),
                ca.Function("g", [w, p], [program.constraints]),
                ca.Function("jac_g", [w, p], [ca.jacobian(program.constraints, w)]),
            )
            self._compiled[key] = (program, fns)
        return self._compiled[key][1]

    def minimize(self, program, bounds, initial_guess, parameters) -> SolverResult:
        f_fn, grad_fn, g_fn, jac_fn = self._functions_for(program)
        lower = np.asarray(bounds.lower, dtype=float)
        upper = np.asarray(bounds.upper, dtype=float)
        fixed = lower == upper
        free = ~fixed
        template = np.clip(np.asarray(initial_guess, dtype=float), lower, upper)
        template[fixed] = lower[fixed]

        def expand(z: np.ndarray) -> np.ndarray:
            full = template.copy()
            full[free] = z
            return full

        def objective(z):
            return float(f_fn(expand(z), parameters))

        def gradient(z):
            return np.asarray(grad_fn(expand(z), parameters).full()).reshape(-1)[free]

        def g(z):
            return np.asarray(g_fn(expand(z), parameters).full()).reshape(-1)

        def jac(z):
            return np.asarray(jac_fn(expand(z), parameters).full())[:, free]

        lbg = np.asarray(program.constraint_lower, dtype=float)
        ubg = np.asarray(program.constraint_upper, dtype=float)
        eq = lbg == ubg
        has_lower = ~eq & np.isfinite(lbg)
        has_upper = ~eq & np.isfinite(ubg)

        constraints = []
        if eq.any():
            constraints.append(
                {"type": "eq", "fun": lambda z: g(z)[eq] - lbg[eq], "jac": lambda z: jac(z)[eq]}
            )
        if has_lower.any():
            constraints.append(
                {
                    "type": "ineq",
                    "fun": lambda z: g(z)[has_lower] - lbg[has_lower],
                    "jac": lambda z: jac(z)[has_lower],
                }
            )
        if has_upper.any():
            constraints.append(
                {
                    "type": "ineq",
                    "fun": lambda z: ubg[has_upper] - g(z)[has_upper],
                    "jac": lambda z: -jac(z)[has_upper],
                }
            )

        # SLSQP has no time limit of its own; the callback enforces max_cpu_time
        deadline = time.process_time() + self.options.max_cpu_time
        last = {"z": template[free].copy(), "nit": 0}

        def callback(z):
            last["z"] = np.array(z, dtype=float)
            last["nit"] += 1
            if time.process_time() > deadline:
                raise _CpuTimeExceeded

        try:
            result = scipy_minimize(
                objective,
                template[free],
                jac=gradient,
                method="SLSQP",
                bounds=ScipyBounds(lower[free], upper[free]),
                constraints=constraints,
                callback=callback,
                options={"maxiter": self.options.max_iter, "ftol": self.options.tol},
            )
        except _CpuTimeExceeded:
            x = expand(last["z"])
            return SolverResult(
                x=x,
                converged=False,
                status=f"cpu time limit of {self.options.max_cpu_time} s exceeded",
                cost=float(f_fn(x, parameters)),
                iterations=last["nit"],
            )
        x = expand(result.x)
        return SolverResult(
            x=x,
            converged=bool(result.success),
            status=str(result.message),
            cost=float(f_fn(x, parameters)),
            iterations=int(result.get("nit", -1)),
        )


def make_solver(options: SolverOptions) -> NonlinearSolver:
    if options.backend == "ipopt":
        return IpoptSolver(options)
    if options.backend == "slsqp":
        return ScipySolver(options)
    raise ConfigurationError(f"unknown solver backend {options.backend!r}")
