"""
Immutable controller configuration.

Everything the controller needs to know that does not change per tick lives
in one :class:`ControllerConfig` value: horizon geometry, cost weights,
solver options and the driver-side latency/fallback settings.  The value is
validated when it is built, so a non-physical setting is rejected at load
time instead of surfacing as a strange solve hours later.
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SOLVER_BACKENDS = ("ipopt", "slsqp")
FAILURE_POLICIES = ("hold", "brake")


@dataclass(frozen=True)
class HorizonConfig:
    """
    Prediction horizon and vehicle constants.

    Attributes
    ----------
    n_steps : int
        Number of predicted states N.  There are N - 1 actuation transitions.
    dt : float
        Duration of one step in seconds.
    lf : float
        Distance between the front axle and the centre of gravity.
    max_steer : float
        Steering angle bound in radians, applied symmetrically.
    max_throttle : float
        Acceleration bound, applied symmetrically (normalised throttle/brake).
    ref_speed : float
        Target speed held by the speed term of the cost.
    """

    n_steps: int = 10
    dt: float = 0.1
    lf: float = 2.67
    max_steer: float = float(np.deg2rad(25.0))
    max_throttle: float = 1.0
    ref_speed: float = 40.0

    def __post_init__(self) -> None:
        if not _is_integer(self.n_steps) or self.n_steps < 2:
            raise ConfigurationError(f"n_steps must be an integer >= 2, got {self.n_steps}")
        _require_positive("dt", self.dt)
        _require_positive("lf", self.lf)
        _require_positive("max_steer", self.max_steer)
        _require_positive("max_throttle", self.max_throttle)
        if not np.isfinite(self.ref_speed):
            raise ConfigurationError("ref_speed must be finite")


@dataclass(frozen=True)
class CostWeights:
    """Relative weights of the cost terms.  Ride quality versus tracking."""

    cte: float = 2000.0
    epsi: float = 2000.0
    speed: float = 1.0
    steer: float = 5.0
    throttle: float = 5.0
    steer_rate: float = 200.0
    throttle_rate: float = 10.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not np.isfinite(value) or value < 0.0:
                raise ConfigurationError(
                    f"cost weight {f.name!r} must be finite and >= 0, got {value}"
                )


@dataclass(frozen=True)
class SolverOptions:
    backend: str = "ipopt"
    max_iter: int = 200
    max_cpu_time: float = 0.5
    tol: float = 1e-8
    print_level: int = 0
    # wall-clock limit per solve, checked after the solver returns
    time_budget_sec: Optional[float] = None
    warm_start: bool = False

    def __post_init__(self) -> None:
        if self.backend not in SOLVER_BACKENDS:
            raise ConfigurationError(
                f"unknown solver backend {self.backend!r}, expected one of {SOLVER_BACKENDS}"
            )
        if not _is_integer(self.max_iter) or self.max_iter < 1:
            raise ConfigurationError(f"max_iter must be an integer >= 1, got {self.max_iter}")
        _require_positive("max_cpu_time", self.max_cpu_time)
        _require_positive("tol", self.tol)
        if self.time_budget_sec is not None:
            _require_positive("time_budget_sec", self.time_budget_sec)


@dataclass(frozen=True)
class DriverConfig:
    """
    Settings of the per-tick glue around the controller.

    ``latency_sec`` is the single, total actuation latency.  It is used to
    project the measured state forward and, when
    ``emulate_actuation_delay`` is set, as the delay a transport should hold
    the reply for.
    """

    latency_sec: float = 0.1
    steer_polarity: float = -1.0
    emulate_actuation_delay: bool = True
    failure_policy: str = "hold"
    poly_order: int = 3

    def __post_init__(self) -> None:
        if not np.isfinite(self.latency_sec) or self.latency_sec < 0.0:
            raise ConfigurationError(f"latency_sec must be >= 0, got {self.latency_sec}")
        if self.steer_polarity not in (-1.0, 1.0):
            raise ConfigurationError("steer_polarity must be +1 or -1")
        if self.failure_policy not in FAILURE_POLICIES:
            raise ConfigurationError(
                f"unknown failure policy {self.failure_policy!r}, expected one of {FAILURE_POLICIES}"
            )
        if self.poly_order != 3:
            raise ConfigurationError("the controller consumes cubic references, poly_order must be 3")


@dataclass(frozen=True)
class ControllerConfig:
    horizon: HorizonConfig = field(default_factory=HorizonConfig)
    weights: CostWeights = field(default_factory=CostWeights)
    solver: SolverOptions = field(default_factory=SolverOptions)
    driver: DriverConfig = field(default_factory=DriverConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ControllerConfig":
        """
        Builds a config from a nested mapping (the parsed YAML document).

        Missing sections and keys keep their defaults.  ``horizon`` accepts
        ``max_steer_deg`` in place of ``max_steer``.
        """
        data = dict(data or {})
        sections = {
            "horizon": HorizonConfig,
            "weights": CostWeights,
            "solver": SolverOptions,
            "driver": DriverConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ConfigurationError(f"unknown configuration sections: {sorted(unknown)}")

        kwargs = {}
        for name, section_cls in sections.items():
            values = dict(data.get(name) or {})
            if name == "horizon" and "max_steer_deg" in values:
                if "max_steer" in values:
                    raise ConfigurationError("give either max_steer or max_steer_deg, not both")
                values["max_steer"] = float(np.deg2rad(values.pop("max_steer_deg")))
            kwargs[name] = _build_section(section_cls, name, values)
        return cls(**kwargs)


def load_config(path: Union[str, Path, None] = None) -> ControllerConfig:
    """Loads a YAML configuration file.  ``None`` returns the defaults."""
    if path is None:
        return ControllerConfig()
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"configuration file {path} not found")
    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"cannot parse {path}: {exc}") from exc
    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    config = ControllerConfig.from_dict(data)
    logger.info("Loaded controller configuration from %s", path)
    return config


def _build_section(section_cls, name: str, values: Dict[str, Any]):
    known = {f.name for f in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(f"unknown keys in section {name!r}: {sorted(unknown)}")
    try:
        return section_cls(**values)
    except TypeError as exc:
        raise ConfigurationError(f"invalid values in section {name!r}: {exc}") from exc


def _require_positive(name: str, value: float) -> None:
    if not np.isfinite(value) or value <= 0.0:
        raise ConfigurationError(f"{name} must be > 0, got {value}")


def _is_integer(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)
