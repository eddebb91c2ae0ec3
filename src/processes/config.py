"""
Numerical settings shared by the processes

Iteration budgets and tolerances of the internal solvers, collected in one
dataclass so that a caller can tighten or relax them per process instance.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class NumericalConfig:
    """configs for the numerical internals of the processes"""
    epsilon: float = float(np.finfo(float).eps)
    # singular values below this are treated as noise in the joint driver map
    svd_threshold: float = float(np.sqrt(np.finfo(float).eps))
    # mean reversions below this use the zero-reversion limit formulas
    zero_reversion_threshold: float = 1e-4
    chi2_max_evaluations: int = 100
    chi2_accuracy: float = 1e-8
    brent_max_iterations: int = 100
    brent_accuracy: float = 1e-5
    # step used to turn the joint covariance into an instantaneous diffusion
    joint_diffusion_dt: float = 1e-3
    # upper limit for the adaptive loops of the exact Heston schemes
    max_doublings: int = 60


DEFAULT_CONFIG = NumericalConfig()
