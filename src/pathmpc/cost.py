"""
Scalar objective over a decision trajectory.

The cost is additive over the horizon.  ``states`` is indexed as
``states[t, field]`` and ``actuations`` as ``actuations[t, field]``, which
both NumPy arrays and CasADi matrices support, so the same function builds
the symbolic objective and scores a numeric solution.
"""

from __future__ import annotations

from typing import Any, Dict

from .config import CostWeights
from .kinematics import ACCEL, CTE, DELTA, EPSI, V


def cost_breakdown(
    states: Any, actuations: Any, weights: CostWeights, ref_speed: float
) -> Dict[str, Any]:
    """
    Returns the weighted total of every cost term.

    Tracking terms are summed over all ``N`` steps, magnitude terms over the
    ``N - 1`` transitions and rate terms over the ``N - 2`` pairs of
    consecutive transitions.
    """
    num_steps = states.shape[0]
    num_transitions = actuations.shape[0]

    terms = {
        "cte": 0.0,
        "epsi": 0.0,
        "speed": 0.0,
        "steer": 0.0,
        "throttle": 0.0,
        "steer_rate": 0.0,
        "throttle_rate": 0.0,
    }
    for t in range(num_steps):
        terms["cte"] += weights.cte * states[t, CTE] ** 2
        terms["epsi"] += weights.epsi * states[t, EPSI] ** 2
        terms["speed"] += weights.speed * (states[t, V] - ref_speed) ** 2

    for t in range(num_transitions):
        terms["steer"] += weights.steer * actuations[t, DELTA] ** 2
        terms["throttle"] += weights.throttle * actuations[t, ACCEL] ** 2

    for t in range(num_transitions - 1):
        terms["steer_rate"] += (
            weights.steer_rate * (actuations[t + 1, DELTA] - actuations[t, DELTA]) ** 2
        )
        terms["throttle_rate"] += (
            weights.throttle_rate * (actuations[t + 1, ACCEL] - actuations[t, ACCEL]) ** 2
        )
    return terms


def trajectory_cost(
    states: Any, actuations: Any, weights: CostWeights, ref_speed: float
) -> Any:
    total = 0.0
    for value in cost_breakdown(states, actuations, weights, ref_speed).values():
        total = total + value
    return total
