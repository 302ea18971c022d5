#!/usr/bin/env python3
"""
Drives the kinematic track environment with the MPC driver.

Every tick the environment's telemetry goes through the same path a
simulator frame would take (waypoint transform, cubic fit, latency
projection, solve), and the normalised command is applied for one step.
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
from pathmpc.driver import MPCDriver
from pathmpc.sim import KinematicTrackEnv


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Closed-loop MPC run on a sinusoidal track.")
    parser.add_argument("--config", default=None, help="YAML controller configuration.")
    parser.add_argument("--steps", type=int, default=300, help="Maximum number of ticks.")
    parser.add_argument("--lateral-offset", type=float, default=0.0, help="Initial offset (left positive).")
    parser.add_argument("--plot", action="store_true", help="Plot the run when done.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every tick.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log = logging.getLogger("run_track")

    config = load_config(args.config)
    driver = MPCDriver(config)
    env = KinematicTrackEnv(
        horizon=config.horizon,
        steer_polarity=config.driver.steer_polarity,
        max_steps=args.steps,
    )
    _, info = env.reset(options={"lateral_offset": args.lateral_offset})

    positions = [env.state[:2].copy()]
    lateral_errors = [info["lateral_error"]]
    commands = []
    for tick in range(args.steps):
        command = driver.step(env.telemetry())
        _, _, terminated, truncated, info = env.step([command.steering_angle, command.throttle])
        positions.append(env.state[:2].copy())
        lateral_errors.append(info["lateral_error"])
        commands.append((command.steering_angle, command.throttle))
        log.debug(
            "tick %d steer=%+.3f throttle=%+.3f lateral=%+.3f",
            tick,
            command.steering_angle,
            command.throttle,
            info["lateral_error"],
        )
        if terminated:
            log.warning("Left the track at tick %d", tick)
            break
        if truncated:
            break

    errors = np.abs(lateral_errors)
    log.info(
        "Finished after %d ticks: mean |lateral| %.3f, max %.3f, solver failures %d",
        len(commands),
        float(errors.mean()),
        float(errors.max()),
        driver.failures,
    )

    if args.plot:
        from pathmpc.plotting import plot_run

        plot_run(np.array(positions), env.track, lateral_errors, np.array(commands), show=True)


if __name__ == "__main__":
    main()
