#!/usr/bin/env python3
"""
Solves a single tick and plots the predicted path against the reference.

The vehicle state and reference coefficients are given on the command line,
so the effect of a weight or horizon change can be inspected without
running a whole drive.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from pathmpc.config import load_config
from pathmpc.controller import ModelPredictiveController
from pathmpc.kinematics import polyeval
from pathmpc.plotting import plot_prediction


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Plot one MPC prediction.")
    parser.add_argument("--config", default=None, help="YAML controller configuration.")
    parser.add_argument(
        "--state",
        type=float,
        nargs=6,
        default=[0.0, 0.0, 0.0, 40.0, 0.0, 0.0],
        metavar=("X", "Y", "PSI", "V", "CTE", "EPSI"),
    )
    parser.add_argument(
        "--coeffs",
        type=float,
        nargs=4,
        default=[0.0, 0.0, 0.0, 0.0],
        metavar=("C0", "C1", "C2", "C3"),
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO)
    config = load_config(args.config)
    controller = ModelPredictiveController(config)
    solution = controller.solve(args.state, args.coeffs)
    print(f"steer={solution.steer:+.4f} throttle={solution.throttle:+.4f}")

    horizon_x = config.horizon.ref_speed * config.horizon.dt * config.horizon.n_steps
    ref_x = np.linspace(0.0, max(horizon_x, 1.0), 20)
    ref_y = polyeval(np.asarray(args.coeffs), ref_x)
    plot_prediction(solution, ref_x, ref_y, show=True)


if __name__ == "__main__":
    main()
