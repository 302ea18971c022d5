"""
Offsets of the flat decision vector.

The vector holds N predicted states followed by N - 1 actuation pairs::

    [ s_0 | s_1 | ... | s_{N-1} | u_0 | u_1 | ... | u_{N-2} ]

    s_t = [x, y, psi, v, cte, epsi]   at  state_dim * t
    u_t = [delta, a]                  at  state_block + control_dim * t
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class DecisionLayout:
    state_dim: int
    control_dim: int
    num_steps: int

    @property
    def num_transitions(self) -> int:
        return self.num_steps - 1

    @property
    def state_block(self) -> int:
        return self.state_dim * self.num_steps

    @property
    def control_block(self) -> int:
        return self.control_dim * self.num_transitions

    @property
    def decision_dim(self) -> int:
        return self.state_block + self.control_block

    def state_offset(self, step: int, field: int = 0) -> int:
        if not 0 <= step < self.num_steps:
            raise IndexError(f"step {step} outside [0, {self.num_steps})")
        if not 0 <= field < self.state_dim:
            raise IndexError(f"state field {field} outside [0, {self.state_dim})")
        return self.state_dim * step + field

    def control_offset(self, transition: int, field: int = 0) -> int:
        if not 0 <= transition < self.num_transitions:
            raise IndexError(f"transition {transition} outside [0, {self.num_transitions})")
        if not 0 <= field < self.control_dim:
            raise IndexError(f"control field {field} outside [0, {self.control_dim})")
        return self.state_block + self.control_dim * transition + field

    def state_slice(self, step: int) -> slice:
        start = self.state_offset(step)
        return slice(start, start + self.state_dim)

    def control_slice(self, transition: int) -> slice:
        start = self.control_offset(transition)
        return slice(start, start + self.control_dim)

    def split(self, decision: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Returns ``states (N, state_dim)`` and ``controls (N-1, control_dim)``."""
        decision = np.asarray(decision, dtype=float).reshape(-1)
        if decision.size != self.decision_dim:
            raise ValueError(
                f"decision vector has {decision.size} entries, layout expects {self.decision_dim}"
            )
        states = decision[: self.state_block].reshape(self.num_steps, self.state_dim)
        controls = decision[self.state_block :].reshape(self.num_transitions, self.control_dim)
        return states, controls

    def join(self, states: np.ndarray, controls: np.ndarray) -> np.ndarray:
        states = np.asarray(states, dtype=float)
        controls = np.asarray(controls, dtype=float)
        if states.shape != (self.num_steps, self.state_dim):
            raise ValueError(f"states must have shape {(self.num_steps, self.state_dim)}")
        if controls.shape != (self.num_transitions, self.control_dim):
            raise ValueError(f"controls must have shape {(self.num_transitions, self.control_dim)}")
        return np.concatenate([states.reshape(-1), controls.reshape(-1)])
