"""
Distributions used by exact sampling schemes

- non-central chi-square CDF and its bounded inverse
- inverse cumulative Poisson for jump counts
- standard normal CDF / inverse CDF shortcuts
"""

import numpy as np
from scipy import special
from scipy.stats import norm, poisson

from .solvers import brent_in_bracket

QL_EPSILON = np.finfo(float).eps


def cumulative_normal(x):
    return special.ndtr(x)


def inverse_cumulative_normal(p):
    return norm.ppf(p)


class NonCentralChiSquare:
    """
    Non-central chi-square law with `df` degrees of freedom and
    non-centrality `ncp`

    The inverse CDF doubles an upper bound starting from the mean (df + ncp)
    until it brackets the requested probability, then finishes with Brent.
    The doubling and the Brent iterations share one evaluation budget, so
    the inversion always terminates.
    """

    def __init__(self, df: float, ncp: float, max_evaluations: int = 100, accuracy: float = 1e-8):
        if df <= 0.0:
            raise ValueError(f"degrees of freedom must be positive, got {df}")
        if ncp < 0.0:
            raise ValueError(f"non-centrality must be non-negative, got {ncp}")
        self.df = float(df)
        self.ncp = float(ncp)
        self.max_evaluations = int(max_evaluations)
        self.accuracy = float(accuracy)

    def cdf(self, x: float) -> float:
        if x <= 0.0:
            return 0.0
        return float(special.chndtr(x, self.df, self.ncp))

    def mean(self) -> float:
        return self.df + self.ncp

    def variance(self) -> float:
        return 2.0 * (self.df + 2.0 * self.ncp)

    def inverse_cdf(self, p: float) -> float:
        """
        Quantile of the distribution

        Raises:
            ValueError: p outside [0, 1)
            RuntimeError: the evaluation budget is exhausted
        """
        if not 0.0 <= p < 1.0:
            raise ValueError(f"probability must lie in [0, 1), got {p}")

        upper = max(self.mean(), QL_EPSILON)
        evaluations = self.max_evaluations
        while self.cdf(upper) < p and evaluations > 0:
            upper *= 2.0
            evaluations -= 1
        if self.cdf(upper) < p:
            raise RuntimeError(
                f"unable to bracket the non-central chi-square quantile for p={p} "
                f"within {self.max_evaluations} evaluations"
            )

        lower = 0.0 if evaluations == self.max_evaluations else 0.5 * upper
        if self.cdf(lower) - p == 0.0:
            return lower
        return brent_in_bracket(
            lambda y: self.cdf(y) - p,
            self.accuracy,
            lower,
            upper,
            max_evaluations=max(evaluations, 1),
        )


def inverse_cumulative_poisson(u: float, mean: float) -> int:
    """Smallest n with P(N <= n) >= u for N ~ Poisson(mean)."""
    if mean < 0.0:
        raise ValueError(f"Poisson mean must be non-negative, got {mean}")
    if mean == 0.0:
        return 0
    return int(poisson.ppf(min(u, 1.0 - QL_EPSILON), mean))
