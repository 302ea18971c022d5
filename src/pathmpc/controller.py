"""
``solve(state, coeffs) -> Solution`` in one call.
"""

from __future__ import annotations

import logging
from typing import Optional

from .backends import NonlinearSolver
from .config import ControllerConfig
from .extraction import Solution, extract_solution
from .optimizer import TrajectoryOptimizationResult, TrajectoryOptimizer

logger = logging.getLogger(__name__)


class ModelPredictiveController:
    """
    Optimizer plus extractor.

    When ``config.solver.warm_start`` is set the last converged result seeds
    the next solve; otherwise every tick starts from the neutral guess and
    nothing is carried between calls.
    """

    def __init__(
        self, config: ControllerConfig, solver: Optional[NonlinearSolver] = None
    ):
        self.config = config
        self.optimizer = TrajectoryOptimizer(config, solver=solver)
        self.last_result: Optional[TrajectoryOptimizationResult] = None

    def solve(self, state, coeffs, steer_polarity: Optional[float] = None) -> Solution:
        polarity = (
            self.config.driver.steer_polarity if steer_polarity is None else steer_polarity
        )
        warm = self.last_result if self.config.solver.warm_start else None
        result = self.optimizer.solve(state, coeffs, warm_start=warm)
        solution = extract_solution(result, self.config.horizon, steer_polarity=polarity)
        if self.config.solver.warm_start:
            self.last_result = result
        return solution

    def reset(self) -> None:
        self.last_result = None
