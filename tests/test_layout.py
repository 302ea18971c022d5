"""
Tests for the decision vector layout.
"""

import numpy as np
import pytest

from pathmpc.layout import DecisionLayout


@pytest.fixture
def layout():
    return DecisionLayout(state_dim=6, control_dim=2, num_steps=10)


def test_sizes(layout):
    assert layout.num_transitions == 9
    assert layout.state_block == 60
    assert layout.control_block == 18
    assert layout.decision_dim == 78


def test_offsets(layout):
    assert layout.state_offset(0) == 0
    assert layout.state_offset(3, 4) == 22
    assert layout.control_offset(0) == 60
    assert layout.control_offset(8, 1) == 77
    assert layout.state_slice(2) == slice(12, 18)
    assert layout.control_slice(1) == slice(62, 64)


def test_out_of_range_offsets(layout):
    with pytest.raises(IndexError):
        layout.state_offset(10)
    with pytest.raises(IndexError):
        layout.control_offset(9)


def test_blocks_cover_vector_without_overlap(layout):
    seen = np.zeros(layout.decision_dim, dtype=int)
    for t in range(layout.num_steps):
        seen[layout.state_slice(t)] += 1
    for t in range(layout.num_transitions):
        seen[layout.control_slice(t)] += 1
    assert np.all(seen == 1)


def test_split_and_join(layout):
    decision = np.arange(layout.decision_dim, dtype=float)
    states, controls = layout.split(decision)
    assert states.shape == (10, 6)
    assert controls.shape == (9, 2)
    assert states[2, 4] == decision[layout.state_offset(2, 4)]
    assert controls[5, 1] == decision[layout.control_offset(5, 1)]
    np.testing.assert_array_equal(layout.join(states, controls), decision)


def test_split_rejects_wrong_size(layout):
    with pytest.raises(ValueError):
        layout.split(np.zeros(layout.decision_dim + 1))


def test_out_of_range_fields(layout):
    with pytest.raises(IndexError):
        layout.state_offset(0, 6)
    with pytest.raises(IndexError):
        layout.state_offset(0, -1)
    with pytest.raises(IndexError):
        layout.control_offset(0, 2)
