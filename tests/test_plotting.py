"""
Smoke tests for the plotting helpers (Agg backend, see conftest).
"""

import matplotlib.pyplot as plt
import numpy as np

from pathmpc.extraction import Solution
from pathmpc.plotting import plot_prediction, plot_run


def test_plot_prediction_returns_figure():
    solution = Solution(
        steer=0.1,
        throttle=0.2,
        steer_angle=-0.04,
        acceleration=0.2,
        predicted_path=((4.0, 0.0), (8.0, 0.1)),
        states=np.zeros((3, 6)),
    )
    fig = plot_prediction(solution, [0.0, 10.0, 20.0], [0.0, 0.2, 0.5])
    assert len(fig.axes) == 1
    plt.close(fig)


def test_plot_run_rows():
    positions = np.column_stack([np.arange(10.0), np.zeros(10)])
    track = np.column_stack([np.arange(12.0), np.zeros(12)])
    fig = plot_run(positions, track, lateral_errors=np.zeros(10), commands=np.zeros((10, 2)))
    assert len(fig.axes) == 3
    plt.close(fig)
