"""
Visualization utilities for simulated processes.

Plots for:
- Sample paths on a time grid
- Terminal distributions against analytic moments
- Correlation matrices
"""

from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

# Colour scheme
COLORS = {
    'primary': '#2E86AB',      # Blue
    'secondary': '#A23B72',    # Purple
    'accent': '#F18F01',       # Orange
    'success': '#06A77D',      # Green
    'danger': '#D00000',       # Red
    'gray': '#6C757D',         # Gray
}

plt.rcParams['figure.figsize'] = (12, 6)
plt.rcParams['font.size'] = 10
plt.rcParams['axes.labelsize'] = 11
plt.rcParams['axes.titlesize'] = 13
plt.rcParams['legend.fontsize'] = 10


def plot_sample_paths(
    times: Sequence[float],
    paths: np.ndarray,
    labels: Optional[Sequence[str]] = None,
    max_paths: int = 50,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (14, 8),
    save_path: Optional[str] = None,
    show: bool = True,
) -> plt.Figure:
    """
    Plot simulated paths, one panel per state variable.

    Args:
        times: time grid of the paths
        paths: (n_paths, len(times), size) array from simulate_paths
        labels: state variable names
        max_paths: number of individual paths drawn per panel
        title: figure title
        figsize: figure size (width, height)
        save_path: path to save figure (if provided)
        show: whether to display the plot

    Returns:
        Figure object
    """
    paths = np.asarray(paths, dtype=float)
    n_paths, _, size = paths.shape
    labels = list(labels) if labels is not None else [f"x{i}" for i in range(size)]

    fig, axes = plt.subplots(size, 1, figsize=figsize, sharex=True, squeeze=False)
    for i, ax in enumerate(axes[:, 0]):
        for k in range(min(n_paths, max_paths)):
            ax.plot(times, paths[k, :, i], color=COLORS['gray'], alpha=0.3, linewidth=0.7)
        mean = paths[:, :, i].mean(axis=0)
        lo, hi = np.percentile(paths[:, :, i], [5, 95], axis=0)
        ax.fill_between(times, lo, hi, color=COLORS['primary'], alpha=0.15, label='5%-95%')
        ax.plot(times, mean, color=COLORS['primary'], linewidth=2, label='mean')
        ax.set_ylabel(labels[i])
        ax.legend(loc='upper left')
        ax.grid(True, alpha=0.3)

    axes[-1, 0].set_xlabel('t (years)')
    fig.suptitle(title or f'{n_paths} simulated paths', fontweight='bold')
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    return fig


def plot_terminal_distribution(
    samples: np.ndarray,
    expected_mean: Optional[float] = None,
    expected_std: Optional[float] = None,
    label: str = 'x',
    bins: int = 60,
    figsize: Tuple[float, float] = (10, 6),
    save_path: Optional[str] = None,
    show: bool = True,
) -> plt.Figure:
    """Histogram of one state variable, with the analytic mean and +-1 std if given."""
    samples = np.asarray(samples, dtype=float).ravel()
    fig, ax = plt.subplots(figsize=figsize)
    ax.hist(samples, bins=bins, density=True, color=COLORS['primary'], alpha=0.6,
            edgecolor='white', label='samples')
    ax.axvline(samples.mean(), color=COLORS['accent'], linewidth=2, label='sample mean')
    if expected_mean is not None:
        ax.axvline(expected_mean, color=COLORS['success'], linestyle='--', linewidth=2,
                   label='analytic mean')
        if expected_std is not None:
            for sign in (-1, 1):
                ax.axvline(expected_mean + sign * expected_std, color=COLORS['success'],
                           linestyle=':', linewidth=1.5)
    ax.set_xlabel(label)
    ax.set_ylabel('density')
    ax.legend()
    ax.grid(True, alpha=0.3)
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    return fig


def plot_correlation_matrix(
    correlation: pd.DataFrame,
    title: str = 'Increment correlation',
    figsize: Tuple[float, float] = (7, 6),
    save_path: Optional[str] = None,
    show: bool = True,
) -> plt.Figure:
    """Heatmap of a correlation DataFrame, values annotated."""
    values = correlation.values
    fig, ax = plt.subplots(figsize=figsize)
    im = ax.imshow(values, cmap='RdBu_r', vmin=-1.0, vmax=1.0)
    ax.set_xticks(range(len(correlation.columns)))
    ax.set_xticklabels(correlation.columns)
    ax.set_yticks(range(len(correlation.index)))
    ax.set_yticklabels(correlation.index)
    for i in range(values.shape[0]):
        for j in range(values.shape[1]):
            ax.text(j, i, f'{values[i, j]:.2f}', ha='center', va='center', fontsize=9)
    fig.colorbar(im, ax=ax)
    ax.set_title(title, fontweight='bold')
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    return fig
