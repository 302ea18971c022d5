"""
Exceptions raised by the path-tracking controller.

Shape and configuration errors are fatal for the tick (or the process).
``OptimizationFailure`` is the only recoverable one: it carries the best
solution the solver produced so the caller can decide what to do with it.
"""

from __future__ import annotations

from typing import Any, Optional


class MPCError(Exception):
    """Base class for every error raised by :mod:`pathmpc`."""


class ConfigurationError(MPCError, ValueError):
    """A configuration value is non-physical or unknown."""


class InputShapeError(MPCError, ValueError):
    """State or coefficient vector has the wrong arity or non-finite values."""


class TelemetryError(MPCError, ValueError):
    """A simulator telemetry payload is missing fields or malformed."""


class OptimizationFailure(MPCError, RuntimeError):
    """
    The solver did not return a usable optimum.

    Attributes
    ----------
    result : TrajectoryOptimizationResult or None
        Best-known (possibly constraint-violating) solution.  ``None`` only
        when the failure happened before any solver iterate existed.
    """

    def __init__(self, message: str, result: Optional[Any] = None):
        super().__init__(message)
        self.result = result
