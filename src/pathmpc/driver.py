"""
Per-tick glue between the simulator and the controller.

For every telemetry sample the driver

1. moves the waypoints into the vehicle frame and fits the cubic reference,
2. derives the cross-track and heading errors at the vehicle origin,
3. projects the state forward by the declared actuation latency,
4. solves, and
5. packages the command together with the predicted and reference paths.

What to do when the optimizer fails is the caller's decision, so it lives
here and not in the controller: ``hold`` repeats the previous command,
``brake`` keeps the previous steering and applies full brake.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from .config import ControllerConfig
from .controller import ModelPredictiveController
from .errors import OptimizationFailure
from .latency import project_state
from .reference import fit_polynomial, initial_errors, to_vehicle_frame
from .telemetry import (
    MANUAL_FRAME,
    Telemetry,
    decode_frame,
    encode_steer,
    is_event_frame,
)

logger = logging.getLogger(__name__)


@dataclass
class DriveCommand:
    steering_angle: float
    throttle: float
    mpc_x: List[float] = field(default_factory=list)
    mpc_y: List[float] = field(default_factory=list)
    next_x: List[float] = field(default_factory=list)
    next_y: List[float] = field(default_factory=list)
    converged: bool = True

    def to_message(self) -> Dict[str, Any]:
        return {
            "steering_angle": self.steering_angle,
            "throttle": self.throttle,
            "mpc_x": self.mpc_x,
            "mpc_y": self.mpc_y,
            "next_x": self.next_x,
            "next_y": self.next_y,
        }


class MPCDriver:
    def __init__(
        self,
        config: ControllerConfig,
        controller: Optional[ModelPredictiveController] = None,
    ):
        self.config = config
        self.controller = controller if controller is not None else ModelPredictiveController(config)
        self.model = self.controller.optimizer.model
        self.last_command: Optional[DriveCommand] = None
        self.failures = 0

    @property
    def reply_delay_sec(self) -> float:
        """How long a transport should hold the reply to emulate actuation lag."""
        if self.config.driver.emulate_actuation_delay:
            return self.config.driver.latency_sec
        return 0.0

    def vehicle_state(self, telemetry: Telemetry, coeffs: np.ndarray) -> np.ndarray:
        """State handed to the optimizer: vehicle frame, latency-projected."""
        cte, epsi = initial_errors(coeffs)
        state = np.array([0.0, 0.0, 0.0, telemetry.speed, cte, epsi])
        actuation = np.array([telemetry.steering_angle, telemetry.throttle])
        return project_state(
            state, actuation, coeffs, self.config.driver.latency_sec, self.model
        )

    def step(self, telemetry: Telemetry) -> DriveCommand:
        xs, ys = to_vehicle_frame(
            telemetry.ptsx, telemetry.ptsy, telemetry.x, telemetry.y, telemetry.psi
        )
        coeffs = fit_polynomial(xs, ys, self.config.driver.poly_order)
        state = self.vehicle_state(telemetry, coeffs)

        try:
            solution = self.controller.solve(state, coeffs)
        except OptimizationFailure as exc:
            self.failures += 1
            command = self._fallback(xs, ys)
            logger.warning(
                "MPC failed (%s); applying %r policy: steer=%.3f throttle=%.3f",
                exc,
                self.config.driver.failure_policy,
                command.steering_angle,
                command.throttle,
            )
            self.last_command = command
            return command

        command = DriveCommand(
            steering_angle=solution.steer,
            throttle=solution.throttle,
            mpc_x=solution.path_xs,
            mpc_y=solution.path_ys,
            next_x=xs.tolist(),
            next_y=ys.tolist(),
        )
        self.last_command = command
        return command

    def _fallback(self, xs: np.ndarray, ys: np.ndarray) -> DriveCommand:
        previous = self.last_command
        steer = previous.steering_angle if previous is not None else 0.0
        if self.config.driver.failure_policy == "brake":
            throttle = -1.0
        else:
            throttle = previous.throttle if previous is not None else 0.0
        return DriveCommand(
            steering_angle=steer,
            throttle=throttle,
            next_x=xs.tolist(),
            next_y=ys.tolist(),
            converged=False,
        )

    def handle_frame(self, frame: str) -> Optional[str]:
        """
        Reply for one simulator frame: a steer event for telemetry, the
        manual event when the frame carries no data, ``None`` otherwise.
        """
        if not is_event_frame(frame):
            return None
        decoded = decode_frame(frame)
        if decoded is None:
            return MANUAL_FRAME
        event, data = decoded
        if event != "telemetry":
            return None
        command = self.step(Telemetry.from_payload(data))
        return encode_steer(command.to_message())
