"""Plots of predicted paths and closed-loop runs."""

from __future__ import annotations

from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from .extraction import Solution


def plot_prediction(
    solution: Solution,
    next_x: Sequence[float],
    next_y: Sequence[float],
    show: bool = False,
):
    """Predicted path (green) against the reference waypoints (yellow), vehicle frame."""
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(next_x, next_y, "-o", color="gold", markersize=3, label="Reference")
    ax.plot(
        [0.0] + solution.path_xs,
        [0.0] + solution.path_ys,
        "-o",
        color="green",
        markersize=3,
        label="MPC prediction",
    )
    ax.scatter(0.0, 0.0, color="black", marker="^", label="Vehicle")
    ax.set_xlabel("x forward")
    ax.set_ylabel("y left")
    ax.set_title(f"steer={solution.steer:+.3f}  throttle={solution.throttle:+.3f}")
    ax.axis("equal")
    ax.legend()
    fig.tight_layout()
    if show:
        plt.show()
    return fig


def plot_run(
    positions: np.ndarray,
    track: np.ndarray,
    lateral_errors: Optional[Sequence[float]] = None,
    commands: Optional[np.ndarray] = None,
    show: bool = False,
):
    """
    Driven path on the map plus, when given, lateral error and the
    ``(steer, throttle)`` command history.
    """
    positions = np.asarray(positions)
    rows = 1 + int(lateral_errors is not None) + int(commands is not None)
    fig, axes = plt.subplots(rows, 1, figsize=(9, 3 * rows + 1), squeeze=False)
    axes = axes[:, 0]

    ax = axes[0]
    ax.plot(track[:, 0], track[:, 1], "--", color="gray", label="Track")
    ax.plot(positions[:, 0], positions[:, 1], color="tab:blue", label="Vehicle")
    ax.scatter(positions[0, 0], positions[0, 1], color="g", marker="o", label="Start")
    ax.scatter(positions[-1, 0], positions[-1, 1], color="r", marker="*", label="End")
    ax.set_xlabel("x (map)")
    ax.set_ylabel("y (map)")
    ax.legend()

    row = 1
    if lateral_errors is not None:
        axes[row].plot(lateral_errors)
        axes[row].set_ylabel("lateral error")
        axes[row].grid(True)
        row += 1
    if commands is not None:
        commands = np.asarray(commands)
        axes[row].plot(commands[:, 0], label="steer")
        axes[row].plot(commands[:, 1], label="throttle")
        axes[row].set_ylim(-1.05, 1.05)
        axes[row].set_xlabel("tick")
        axes[row].legend()
        axes[row].grid(True)

    fig.tight_layout()
    if show:
        plt.show()
    return fig
