"""
Tests for configuration validation and YAML loading.
"""

import numpy as np
import pytest
import yaml

from pathmpc.config import (
    ControllerConfig,
    CostWeights,
    DriverConfig,
    HorizonConfig,
    SolverOptions,
    load_config,
)
from pathmpc.errors import ConfigurationError


def test_defaults_match_reference_vehicle():
    """Default horizon is the reference vehicle setup."""
    config = ControllerConfig()
    assert config.horizon.n_steps == 10
    assert config.horizon.dt == pytest.approx(0.1)
    assert config.horizon.lf == pytest.approx(2.67)
    assert config.horizon.max_steer == pytest.approx(np.deg2rad(25.0))
    assert config.horizon.ref_speed == pytest.approx(40.0)
    assert config.solver.backend == "ipopt"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_steps": 1},
        {"n_steps": 0},
        {"n_steps": 2.5},
        {"n_steps": 10.0},
        {"n_steps": True},
        {"dt": 0.0},
        {"dt": -0.1},
        {"lf": 0.0},
        {"max_steer": 0.0},
        {"max_steer": -0.2},
        {"max_throttle": 0.0},
        {"ref_speed": float("nan")},
    ],
)
def test_non_physical_horizon_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        HorizonConfig(**kwargs)


def test_negative_weight_rejected():
    with pytest.raises(ConfigurationError):
        CostWeights(cte=-1.0)


def test_zero_weight_allowed():
    assert CostWeights(speed=0.0).speed == 0.0


def test_unknown_backend_rejected():
    with pytest.raises(ConfigurationError):
        SolverOptions(backend="snopt")


def test_driver_options_validated():
    with pytest.raises(ConfigurationError):
        DriverConfig(latency_sec=-0.05)
    with pytest.raises(ConfigurationError):
        DriverConfig(steer_polarity=0.5)
    with pytest.raises(ConfigurationError):
        DriverConfig(failure_policy="coast")


def test_config_is_immutable():
    config = ControllerConfig()
    with pytest.raises(AttributeError):
        config.horizon.n_steps = 20


def test_from_dict_accepts_degrees():
    config = ControllerConfig.from_dict({"horizon": {"max_steer_deg": 20.0, "n_steps": 12}})
    assert config.horizon.max_steer == pytest.approx(np.deg2rad(20.0))
    assert config.horizon.n_steps == 12
    # untouched sections keep defaults
    assert config.weights == CostWeights()


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationError):
        ControllerConfig.from_dict({"horizon": {"steps": 10}})
    with pytest.raises(ConfigurationError):
        ControllerConfig.from_dict({"plant": {}})
    with pytest.raises(ConfigurationError):
        ControllerConfig.from_dict({"horizon": {"max_steer": 0.4, "max_steer_deg": 25.0}})


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "mpc.yaml"
    with open(path, "w") as f:
        yaml.dump(
            {
                "horizon": {"n_steps": 8, "dt": 0.05},
                "weights": {"cte": 1500.0},
                "solver": {"backend": "slsqp", "max_iter": 50},
                "driver": {"latency_sec": 0.0, "failure_policy": "brake"},
            },
            f,
        )
    config = load_config(path)
    assert config.horizon.n_steps == 8
    assert config.horizon.dt == pytest.approx(0.05)
    assert config.weights.cte == pytest.approx(1500.0)
    assert config.weights.epsi == pytest.approx(2000.0)
    assert config.solver.backend == "slsqp"
    assert config.driver.failure_policy == "brake"


def test_load_config_rejects_bad_values(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("horizon:\n  n_steps: 1\n")
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.yaml")


def test_load_config_none_returns_defaults():
    assert load_config(None) == ControllerConfig()


def test_shipped_config_loads():
    from pathlib import Path

    path = Path(__file__).resolve().parents[1] / "config" / "mpc.yaml"
    config = load_config(path)
    assert config.horizon.max_steer == pytest.approx(np.deg2rad(25.0))
    assert config.solver.time_budget_sec == pytest.approx(0.1)


@pytest.mark.parametrize(
    "data",
    [
        {"horizon": {"n_steps": 10.0}},
        {"solver": {"max_iter": 1.5}},
        {"solver": {"max_iter": 200.0}},
    ],
)
def test_counts_must_be_integers(data):
    with pytest.raises(ConfigurationError):
        ControllerConfig.from_dict(data)


def test_integer_counts_accepted():
    config = ControllerConfig.from_dict({"horizon": {"n_steps": 12}, "solver": {"max_iter": 50}})
    assert config.horizon.n_steps == 12
    assert config.solver.max_iter == 50
