"""
Monte Carlo diagnostics for stochastic processes

Path generation from caller-seeded generators, and pandas summaries that
compare evolved samples with the analytic step moments of a process.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def _state_labels(process, labels: Optional[Sequence[str]]) -> List[str]:
    if labels is not None:
        if len(labels) != process.size():
            raise ValueError(f"expected {process.size()} labels, got {len(labels)}")
        return list(labels)
    return [f"x{i}" for i in range(process.size())]


def evolve_samples(process, t0: float, x0, dt: float, n_samples: int,
                   rng: np.random.Generator) -> np.ndarray:
    """
    Evolve n_samples independent copies of x0 over one step.

    Args:
        process: vector process (StochasticProcess)
        t0, x0, dt: step start time, start state and length
        n_samples: number of draws
        rng: numpy Generator supplying the standard normal increments

    Returns:
        (n_samples, size) array of terminal states
    """
    dw = rng.standard_normal((n_samples, process.factors()))
    return np.array([process.evolve(t0, x0, dt, dw[k]) for k in range(n_samples)])


def simulate_paths(process, times: Sequence[float], n_paths: int,
                   rng: np.random.Generator, x0=None) -> np.ndarray:
    """
    Simulate paths of a vector process on a time grid.

    Args:
        process: vector process (StochasticProcess)
        times: increasing grid, times[0] is the start time
        n_paths: number of paths
        rng: numpy Generator supplying the increments
        x0: start state (defaults to process.initial_values())

    Returns:
        (n_paths, len(times), size) array
    """
    times = np.asarray(times, dtype=float)
    if times.ndim != 1 or len(times) < 2:
        raise ValueError("time grid needs at least two points")
    if np.any(np.diff(times) <= 0.0):
        raise ValueError("time grid must be increasing")

    start = process.initial_values() if x0 is None else np.asarray(x0, dtype=float)
    paths = np.empty((n_paths, len(times), process.size()))
    paths[:, 0, :] = start
    for j in range(1, len(times)):
        t0, dt = times[j - 1], times[j] - times[j - 1]
        dw = rng.standard_normal((n_paths, process.factors()))
        for k in range(n_paths):
            paths[k, j] = process.evolve(t0, paths[k, j - 1], dt, dw[k])
    logger.debug("simulated %d paths of %s on %d dates", n_paths, process.name, len(times))
    return paths


def moment_summary(samples: np.ndarray, labels: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Mean, std, skew, excess kurtosis and standard error per state variable."""
    samples = np.atleast_2d(np.asarray(samples, dtype=float))
    frame = pd.DataFrame(samples, columns=labels)
    summary = pd.DataFrame({
        'mean': frame.mean(),
        'std': frame.std(ddof=1),
        'skew': frame.skew(),
        'kurtosis': frame.kurt(),
    })
    summary['stderr'] = summary['std'] / np.sqrt(len(frame))
    return summary


def compare_step_moments(process, t0: float, x0, dt: float, samples: np.ndarray,
                         labels: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Compare empirical one-step moments with process.expectation/covariance.

    Returns:
        DataFrame indexed by state variable with the analytic and empirical
        mean and variance and the z-score of the mean
    """
    labels = _state_labels(process, labels)
    samples = np.asarray(samples, dtype=float)
    expected = np.asarray(process.expectation(t0, x0, dt), dtype=float)
    cov = np.asarray(process.covariance(t0, x0, dt), dtype=float)

    stats = moment_summary(samples, labels)
    result = pd.DataFrame({
        'expected_mean': expected,
        'sample_mean': stats['mean'].values,
        'expected_var': np.diag(cov),
        'sample_var': stats['std'].values ** 2,
    }, index=labels)
    result['z_mean'] = (result['sample_mean'] - result['expected_mean']) / stats['stderr'].values
    return result


def increment_correlation(x0, samples: np.ndarray,
                          labels: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Empirical correlation of the increments samples - x0."""
    increments = np.asarray(samples, dtype=float) - np.asarray(x0, dtype=float)
    return pd.DataFrame(increments, columns=labels).corr()
