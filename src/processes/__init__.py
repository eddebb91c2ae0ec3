"""
Stochastic Process Implementations

Drift/diffusion descriptions and discretized evolution for:
- Gaussian and square-root short rates (OU, CIR, Hull-White, G2++, GSR)
- Log-normal assets (GBM, generalized Black-Scholes, Merton jumps)
- Stochastic volatility (Heston, Bates, Heston SLV, GJR-GARCH)
- Correlated composites (process arrays, joint processes, hybrid Heston/Hull-White)
"""

from .base import (
    StochasticProcess,
    StochasticProcess1D,
    Process1DVectorView,
    as_vector_process,
)
from .config import NumericalConfig, DEFAULT_CONFIG
from .discretization import EulerDiscretization, EndEulerDiscretization

from .ornstein_uhlenbeck import OrnsteinUhlenbeckProcess
from .square_root import SquareRootProcess, CoxIngersollRossProcess, CIRDiscretization
from .gbm import GeometricBrownianMotionProcess
from .black_scholes import (
    GeneralizedBlackScholesProcess,
    BlackScholesProcess,
    BlackScholesMertonProcess,
    BlackProcess,
    GarmanKohlagenProcess,
)
from .merton import Merton76Process

# Stochastic volatility
from .heston import HestonProcess, HestonDiscretization
from .bates import BatesProcess
from .heston_slv import HestonSLVProcess
from .gjr_garch import GJRGARCHProcess, GJRGARCHDiscretization

# Short rates
from .hull_white import ForwardMeasureProcess1D, HullWhiteProcess, HullWhiteForwardProcess
from .g2 import G2Process
from .gsr_core import GsrProcessCore
from .gsr import GsrProcess
from .mf_state import MfStateProcess

# Composites
from .process_array import StochasticProcessArray
from .joint import JointStochasticProcess
from .hybrid_heston_hull_white import HybridHestonHullWhiteProcess, HybridDiscretization

__all__ = [
    # Contract
    'StochasticProcess',
    'StochasticProcess1D',
    'Process1DVectorView',
    'as_vector_process',
    'NumericalConfig',
    'DEFAULT_CONFIG',
    'EulerDiscretization',
    'EndEulerDiscretization',

    # Single-factor processes
    'OrnsteinUhlenbeckProcess',
    'SquareRootProcess',
    'CoxIngersollRossProcess',
    'CIRDiscretization',
    'GeometricBrownianMotionProcess',
    'GeneralizedBlackScholesProcess',
    'BlackScholesProcess',
    'BlackScholesMertonProcess',
    'BlackProcess',
    'GarmanKohlagenProcess',
    'Merton76Process',

    # Stochastic volatility
    'HestonProcess',
    'HestonDiscretization',
    'BatesProcess',
    'HestonSLVProcess',
    'GJRGARCHProcess',
    'GJRGARCHDiscretization',

    # Short rates
    'ForwardMeasureProcess1D',
    'HullWhiteProcess',
    'HullWhiteForwardProcess',
    'G2Process',
    'GsrProcessCore',
    'GsrProcess',
    'MfStateProcess',

    # Composites
    'StochasticProcessArray',
    'JointStochasticProcess',
    'HybridHestonHullWhiteProcess',
    'HybridDiscretization',
]
