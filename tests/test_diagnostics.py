"""Tests for Monte Carlo diagnostics and plotting helpers."""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

from processes import OrnsteinUhlenbeckProcess, StochasticProcessArray
from utils.diagnostics import (
    compare_step_moments,
    evolve_samples,
    increment_correlation,
    moment_summary,
    simulate_paths,
)
from utils.visualization import (
    plot_correlation_matrix,
    plot_sample_paths,
    plot_terminal_distribution,
)

SEED = 2024


@pytest.fixture
def array():
    return StochasticProcessArray(
        [OrnsteinUhlenbeckProcess(0.5, 0.2, 0.1, 0.0), OrnsteinUhlenbeckProcess(1.0, 0.3, -0.1, 0.0)],
        [[1.0, 0.5], [0.5, 1.0]],
    )


class TestDiagnostics:
    def test_simulate_paths_shape_and_start(self, array):
        times = np.linspace(0.0, 1.0, 11)
        paths = simulate_paths(array, times, 20, np.random.default_rng(SEED))
        assert paths.shape == (20, 11, 2)
        np.testing.assert_allclose(paths[:, 0, :], np.tile([0.1, -0.1], (20, 1)))

    def test_simulate_paths_is_reproducible(self, array):
        times = [0.0, 0.5, 1.0]
        first = simulate_paths(array, times, 5, np.random.default_rng(SEED))
        second = simulate_paths(array, times, 5, np.random.default_rng(SEED))
        np.testing.assert_array_equal(first, second)

    def test_invalid_grid(self, array):
        rng = np.random.default_rng(SEED)
        with pytest.raises(ValueError):
            simulate_paths(array, [0.0], 5, rng)
        with pytest.raises(ValueError):
            simulate_paths(array, [0.0, 1.0, 0.5], 5, rng)

    def test_step_moments_agree(self, array):
        x0 = array.initial_values()
        samples = evolve_samples(array, 0.0, x0, 1.0, 5000, np.random.default_rng(SEED))
        table = compare_step_moments(array, 0.0, x0, 1.0, samples, labels=['a', 'b'])
        assert list(table.index) == ['a', 'b']
        assert np.all(np.abs(table['z_mean']) < 4.0)
        np.testing.assert_allclose(table['sample_var'], table['expected_var'], rtol=0.1)

    def test_increment_correlation(self, array):
        x0 = array.initial_values()
        samples = evolve_samples(array, 0.0, x0, 1.0, 5000, np.random.default_rng(SEED))
        corr = increment_correlation(x0, samples, labels=['a', 'b'])
        assert corr.loc['a', 'b'] == pytest.approx(0.5, abs=0.05)

    def test_moment_summary_columns(self):
        samples = np.random.default_rng(SEED).standard_normal((4000, 2))
        summary = moment_summary(samples, labels=['u', 'v'])
        assert list(summary.columns) == ['mean', 'std', 'skew', 'kurtosis', 'stderr']
        assert summary.loc['u', 'std'] == pytest.approx(1.0, abs=0.05)
        assert summary.loc['v', 'stderr'] == pytest.approx(summary.loc['v', 'std'] / np.sqrt(4000))

    def test_label_mismatch(self, array):
        samples = np.zeros((10, 2))
        with pytest.raises(ValueError):
            compare_step_moments(array, 0.0, [0.0, 0.0], 1.0, samples, labels=['only'])


class TestPlots:
    def test_plots_return_figures(self, array):
        times = np.linspace(0.0, 1.0, 6)
        paths = simulate_paths(array, times, 10, np.random.default_rng(SEED))

        fig = plot_sample_paths(times, paths, labels=['a', 'b'], show=False)
        assert len(fig.axes) == 2
        plt.close(fig)

        fig = plot_terminal_distribution(paths[:, -1, 0], expected_mean=0.0, expected_std=0.2,
                                         show=False)
        assert len(fig.axes) == 1
        plt.close(fig)

        corr = increment_correlation(paths[:, 0, :], paths[:, -1, :], labels=['a', 'b'])
        fig = plot_correlation_matrix(corr, show=False)
        assert len(fig.axes) == 2
        plt.close(fig)
