"""
Model-predictive path tracking for a kinematic vehicle.

Each control tick solves a finite-horizon nonlinear program over a kinematic
bicycle model, given the vehicle state and a cubic reference path in the
vehicle frame, and returns the first steering/throttle command plus the
predicted trajectory.  The package exposes the model, the cost, the
transcription and its solver backends, the command extractor, and the glue
that turns simulator telemetry into commands.
"""

from .backends import IpoptSolver, NLPProgram, NonlinearSolver, ScipySolver, make_solver
from .config import (
    ControllerConfig,
    CostWeights,
    DriverConfig,
    HorizonConfig,
    SolverOptions,
    load_config,
)
from .controller import ModelPredictiveController
from .driver import DriveCommand, MPCDriver
from .errors import (
    ConfigurationError,
    InputShapeError,
    MPCError,
    OptimizationFailure,
    TelemetryError,
)
from .extraction import Solution, extract_solution
from .kinematics import KinematicBicycleModel
from .layout import DecisionLayout
from .optimizer import TrajectoryOptimizationResult, TrajectoryOptimizer

__all__ = [
    "IpoptSolver",
    "NLPProgram",
    "NonlinearSolver",
    "ScipySolver",
    "make_solver",
    "ControllerConfig",
    "CostWeights",
    "DriverConfig",
    "HorizonConfig",
    "SolverOptions",
    "load_config",
    "ModelPredictiveController",
    "DriveCommand",
    "MPCDriver",
    "ConfigurationError",
    "InputShapeError",
    "MPCError",
    "OptimizationFailure",
    "TelemetryError",
    "Solution",
    "extract_solution",
    "KinematicBicycleModel",
    "DecisionLayout",
    "TrajectoryOptimizationResult",
    "TrajectoryOptimizer",
]
