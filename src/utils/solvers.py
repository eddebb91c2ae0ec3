"""
Bounded one-dimensional root finding

Thin layer over scipy.optimize.brentq that adds the bracket search used by
the processes (start from a guess, widen by a step until the sign changes)
and turns every non-convergence into a RuntimeError with a budget attached.
"""

from typing import Callable, Optional

import numpy as np
from scipy.optimize import brentq


def bracket_root(
    f: Callable[[float], float],
    guess: float,
    step: float,
    lower_bound: Optional[float] = None,
    upper_bound: Optional[float] = None,
    max_evaluations: int = 100,
):
    """
    Find [a, b] with f(a) f(b) <= 0 by growing an interval around `guess`

    Returns:
        Tuple (a, b, evaluations_used)

    Raises:
        RuntimeError: no sign change found within `max_evaluations`
    """
    if step <= 0.0:
        raise ValueError(f"step must be positive, got {step}")

    def clip(x):
        if lower_bound is not None:
            x = max(x, lower_bound)
        if upper_bound is not None:
            x = min(x, upper_bound)
        return x

    a = clip(guess)
    b = clip(guess + step)
    fa, fb = f(a), f(b)
    evaluations = 2
    growth = 1.6

    while fa * fb > 0.0:
        if evaluations >= max_evaluations:
            raise RuntimeError(
                f"unable to bracket root in {max_evaluations} function evaluations "
                f"(last bracket [{a}, {b}], f values [{fa}, {fb}])"
            )
        if abs(fa) < abs(fb):
            a = clip(a + growth * (a - b))
            fa = f(a)
        else:
            b = clip(b + growth * (b - a))
            fb = f(b)
        evaluations += 1

    return min(a, b), max(a, b), evaluations


def bounded_brent(
    f: Callable[[float], float],
    accuracy: float,
    guess: float,
    step: float,
    lower_bound: Optional[float] = None,
    upper_bound: Optional[float] = None,
    max_evaluations: int = 100,
) -> float:
    """
    Brent root of f starting from `guess`, with a total evaluation budget

    The bracket search and the Brent iterations share `max_evaluations`.

    Raises:
        RuntimeError: bracketing or Brent iterations exhausted the budget
    """
    a, b, used = bracket_root(f, guess, step, lower_bound, upper_bound, max_evaluations)
    fa, fb = f(a), f(b)
    if fa == 0.0:
        return a
    if fb == 0.0:
        return b
    remaining = max(max_evaluations - used, 1)
    root = brentq(f, a, b, xtol=accuracy, maxiter=remaining)
    if not np.isfinite(root):
        raise RuntimeError(f"root finder returned a non-finite value ({root})")
    return float(root)


def brent_in_bracket(
    f: Callable[[float], float],
    accuracy: float,
    lower: float,
    upper: float,
    max_evaluations: int = 100,
) -> float:
    """Brent root of f on a known bracket [lower, upper]."""
    if max_evaluations < 1:
        raise RuntimeError("evaluation budget exhausted before root finding started")
    return float(brentq(f, lower, upper, xtol=accuracy, maxiter=max_evaluations))
