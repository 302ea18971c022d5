"""
Tests for the closed-loop track environment.
"""

import numpy as np
import pytest

from pathmpc.config import ControllerConfig, DriverConfig
from pathmpc.driver import MPCDriver
from pathmpc.sim import KinematicTrackEnv, sinusoidal_track


def _straight_track():
    xs = np.arange(0.0, 1000.0, 10.0)
    return np.column_stack([xs, np.zeros_like(xs)])


def test_sinusoidal_track_shape():
    track = sinusoidal_track(length=100.0, spacing=10.0)
    assert track.shape == (11, 2)
    assert track[0, 1] == pytest.approx(0.0)


def test_reset_and_step_shapes():
    env = KinematicTrackEnv(track=_straight_track())
    obs, info = env.reset(options={"start_s": 20.0})
    assert obs.shape == (6,)
    assert len(info["ptsx"]) == env.num_waypoints
    assert info["lateral_error"] == pytest.approx(0.0, abs=1e-6)

    obs, reward, terminated, truncated, info = env.step([0.0, 0.0])
    assert obs.shape == (6,)
    assert obs[0] == pytest.approx(24.0)
    assert reward == pytest.approx(0.0, abs=1e-9)
    assert not terminated
    assert not truncated


def test_lateral_offset_is_left_positive():
    env = KinematicTrackEnv(track=_straight_track())
    _, info = env.reset(options={"start_s": 50.0, "lateral_offset": 2.0})
    assert env.state[1] == pytest.approx(2.0)
    assert info["lateral_error"] == pytest.approx(2.0, abs=1e-6)


def test_steering_command_polarity():
    """A positive normalised steer turns left with the default polarity."""
    env = KinematicTrackEnv(track=_straight_track())
    env.reset(options={"start_s": 50.0})
    env.step([1.0, 0.0])
    assert env.state[2] > 0.0


def test_runs_off_track_terminate():
    env = KinematicTrackEnv(track=_straight_track(), off_track_distance=1.0)
    env.reset(options={"start_s": 50.0, "lateral_offset": 0.9})
    terminated = False
    for _ in range(20):
        _, _, terminated, _, _ = env.step([1.0, 0.0])
        if terminated:
            break
    assert terminated


def test_telemetry_mirrors_state():
    env = KinematicTrackEnv(track=_straight_track())
    env.reset(options={"start_s": 50.0, "speed": 25.0})
    telemetry = env.telemetry()
    assert telemetry.speed == pytest.approx(25.0)
    assert len(telemetry.ptsx) == len(telemetry.ptsy) == env.num_waypoints


def test_closed_loop_recovers_from_offset():
    config = ControllerConfig(driver=DriverConfig(latency_sec=0.0))
    driver = MPCDriver(config)
    env = KinematicTrackEnv(track=_straight_track(), horizon=config.horizon)
    _, info = env.reset(options={"start_s": 50.0, "lateral_offset": 1.5})

    for _ in range(40):
        command = driver.step(env.telemetry())
        _, _, terminated, truncated, info = env.step([command.steering_angle, command.throttle])
        assert not terminated
        if truncated:
            break
    assert abs(info["lateral_error"]) < 1.0
    assert driver.failures == 0


def test_closed_loop_follows_curved_track():
    config = ControllerConfig(driver=DriverConfig(latency_sec=0.0))
    driver = MPCDriver(config)
    env = KinematicTrackEnv(horizon=config.horizon)
    env.reset(options={"start_s": 10.0})

    worst = 0.0
    for _ in range(40):
        command = driver.step(env.telemetry())
        _, _, terminated, truncated, info = env.step([command.steering_angle, command.throttle])
        assert not terminated
        worst = max(worst, abs(info["lateral_error"]))
    assert worst < 3.0
