"""
Numerical helpers, diagnostics and plotting.
"""

from .linalg import (
    SalvagingAlgorithm,
    check_symmetry,
    cholesky_decomposition,
    normalize_pseudo_root,
    higham_nearest_correlation,
    pseudo_sqrt,
    rank_reduced_sqrt,
)
from .distributions import (
    cumulative_normal,
    inverse_cumulative_normal,
    NonCentralChiSquare,
    inverse_cumulative_poisson,
)
from .solvers import bracket_root, bounded_brent, brent_in_bracket
from .cache import MemoTable
from .diagnostics import (
    evolve_samples,
    simulate_paths,
    moment_summary,
    compare_step_moments,
    increment_correlation,
)

__all__ = [
    'SalvagingAlgorithm',
    'check_symmetry',
    'cholesky_decomposition',
    'normalize_pseudo_root',
    'higham_nearest_correlation',
    'pseudo_sqrt',
    'rank_reduced_sqrt',
    'cumulative_normal',
    'inverse_cumulative_normal',
    'NonCentralChiSquare',
    'inverse_cumulative_poisson',
    'bracket_root',
    'bounded_brent',
    'brent_in_bracket',
    'MemoTable',
    'evolve_samples',
    'simulate_paths',
    'moment_summary',
    'compare_step_moments',
    'increment_correlation',
]
