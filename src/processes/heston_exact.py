"""
Broadie-Kaya exact sampling helpers for the Heston model

The integrated variance int_t^{t+dt} v_s ds, conditional on the variance
at both ends of the step, has the characteristic function of Broadie and
Kaya (2006), formula 13, written here in Lord's continuous form that needs
no branch correction. Its CDF is recovered by Fourier inversion with one of
three quadratures, and the exact scheme then inverts the CDF by root
finding.

References:
    Broadie, M. and Kaya, O. (2006). Exact simulation of stochastic
    volatility and other affine jump diffusion processes. Operations
    Research 54(2).
    Lord, R. (2008). Efficient pricing algorithms for exotic derivatives.
    PhD thesis, Erasmus University Rotterdam.
"""
import numpy as np
from numpy.polynomial.laguerre import laggauss
from scipy import integrate, special

from utils.distributions import inverse_cumulative_normal

QL_EPSILON = np.finfo(float).eps
M_2_PI = 2.0 / np.pi

_LAGUERRE_ORDER = 128
_TRAPEZOIDAL_STEP = 0.05
CDF_TOLERANCE = 1e-4


def phi(process, a, nu_0: float, nu_t: float, dt: float):
    """
    Characteristic function of int v ds given v(t0) = nu_0, v(t0+dt) = nu_t,
    evaluated at the (complex) argument a.

    Args:
        a: scalar or array of arguments

    Returns:
        complex for a scalar argument, otherwise a complex array shaped like a
    """
    theta, kappa, sigma = process.theta, process.kappa, process.sigma
    sigma2 = sigma * sigma
    a = np.asarray(a, dtype=complex)

    ga = np.sqrt(kappa * kappa - 2.0 * sigma2 * 1j * a)
    d = 4.0 * theta * kappa / sigma2
    nu = 0.5 * d - 1.0

    e_dt = np.exp(-ga * dt)
    e_half = np.exp(-0.5 * ga * dt)
    z = ga * e_half / (1.0 - e_dt)
    log_z = -0.5 * ga * dt + np.log(ga / (1.0 - e_dt))

    alpha = 4.0 * ga * e_half / (sigma2 * (1.0 - e_dt))
    beta = 4.0 * kappa * np.exp(-0.5 * kappa * dt) / (sigma2 * (1.0 - np.exp(-kappa * dt)))

    tmp1 = np.exp(-0.5 * dt * (ga - kappa))
    tmp2 = 1.0 - np.exp(-kappa * dt)
    tmp3 = kappa * (1.0 - e_dt)
    tp1 = (nu_0 + nu_t) / sigma2
    tp2 = kappa * (1.0 + np.exp(-kappa * dt)) / (1.0 - np.exp(-kappa * dt))
    tp3 = ga * (1.0 + e_dt) / (1.0 - e_dt)
    tmp4 = np.exp(tp1 * (tp2 - tp3))
    tmp5 = np.exp(nu * log_z) / z ** nu

    if nu_t > 1e-8 and nu_0 > 1e-8:
        root = np.sqrt(nu_0 * nu_t)
        za, zb = alpha * root, beta * root
        # exponentially scaled Bessel functions keep the ratio finite
        ratio = (special.ive(nu, za) / special.ive(nu, zb)
                 * np.exp(np.abs(za.real) - abs(zb)))
    else:
        ratio = (alpha / beta) ** nu

    value = ga * tmp1 * tmp2 / tmp3 * tmp4 * tmp5 * ratio
    if value.ndim == 0:
        return complex(value)
    return value


def sine_integral(x):
    """Si(x) = int_0^x sin(t)/t dt, elementwise for arrays."""
    si = special.sici(x)[0]
    if np.ndim(si) == 0:
        return float(si)
    return si


def cornish_fisher_eps(process, nu_0: float, nu_t: float, dt: float, eps: float) -> float:
    """
    Cornish-Fisher estimate of the point u_eps with 1 - F(u_eps) < eps,
    from the first four moments obtained by finite differences of phi.
    """
    d = 1e-2
    p2, p1, p0, pm1, pm2 = phi(process, np.array([-2j, -1j, 0.0, 1j, 2j]) * d,
                               nu_0, nu_t, dt).real

    avg = (pm2 - 8 * pm1 + 8 * p1 - p2) / (12 * d)
    m2 = (-pm2 + 16 * pm1 - 30 * p0 + 16 * p1 - p2) / (12 * d * d)
    var = m2 - avg * avg
    std_dev = np.sqrt(var)

    m3 = (-0.5 * pm2 + pm1 - p1 + 0.5 * p2) / (d * d * d)
    skew = (m3 - 3 * var * avg - avg ** 3) / (var * std_dev)

    m4 = (pm2 - 4 * pm1 + 6 * p0 - 4 * p1 + p2) / d ** 4
    kurt = (m4 - 4 * m3 * avg + 6 * m2 * avg * avg - 3 * avg ** 4) / (var * var)

    q = inverse_cumulative_normal(1 - eps)
    w = (q + (q * q - 1) / 6 * skew + (q ** 3 - 3 * q) / 24 * (kurt - 3)
         - (2 * q ** 3 - 5 * q) / 36 * skew * skew)
    return float(avg + w * std_dev)


def integration_cutoff(process, nu_0: float, nu_t: float, dt: float,
                       max_doublings: int = 60, eps: float = CDF_TOLERANCE) -> float:
    """
    Upper frequency of the Fourier inversion: the first u_eps * 2^k / 2
    with |phi(u) / u| <= eps, starting from the Cornish-Fisher u_eps.

    The cutoff does not depend on the CDF argument, so callers solving for
    a quantile compute it once per step and pass it on.

    Raises:
        RuntimeError: if phi has not decayed after max_doublings doublings
    """
    u_eps = min(100.0, max(0.1, cornish_fisher_eps(process, nu_0, nu_t, dt, eps)))
    upper = u_eps / 2.0
    for _ in range(max_doublings):
        if abs(phi(process, upper, nu_0, nu_t, dt) / upper) <= eps:
            return upper
        upper *= 2.0
    raise RuntimeError(f"characteristic function did not decay within {max_doublings} doublings")


def _ch(process, x, u, nu_0, nu_t, dt):
    return M_2_PI * np.sin(u * x) / u * phi(process, u, nu_0, nu_t, dt).real


def _trapezoidal_cdf(process, x, nu_0, nu_t, dt, upper, eps):
    # Si-weighted trapezoidal rule on the grid u_j = j h, truncated at the
    # first term with 2/pi |phi(u_j)| / j <= eps and never beyond upper
    h = _TRAPEZOIDAL_STEP
    n = max(1, int(np.ceil(upper / h)))
    j = np.arange(1, n + 1)
    u = h * j

    f = phi(process, u, nu_0, nu_t, dt)
    si = sine_integral(x * (u + 0.5 * h))
    si_prev = np.concatenate(([sine_integral(0.5 * h * x)], si[:-1]))

    small = np.flatnonzero(M_2_PI * np.abs(f) / j <= eps)
    last = small[0] + 1 if small.size else n
    total = M_2_PI * (si_prev[0] + np.sum(f.real[:last] * (si[:last] - si_prev[:last])))
    return float(min(1.0, max(0.0, total)))


def cdf_integrated_variance(process, x: float, nu_0: float, nu_t: float, dt: float,
                            scheme, max_doublings: int = 60, upper: float = None) -> float:
    """
    P(int v ds <= x | v(t0) = nu_0, v(t0+dt) = nu_t)

    Args:
        scheme: one of the BROADIE_KAYA_* members of HestonDiscretization
            selecting the Fourier inversion (adaptive "Lobatto" quadrature,
            Gauss-Laguerre, or trapezoidal rule on the sine integral)
        max_doublings: bound on the search for the frequency cutoff
        upper: precomputed integration_cutoff for (nu_0, nu_t, dt)
    """
    from .heston import HestonDiscretization

    eps = CDF_TOLERANCE
    if upper is None:
        upper = integration_cutoff(process, nu_0, nu_t, dt, max_doublings, eps)
    if x >= upper:
        return 1.0

    if scheme == HestonDiscretization.BROADIE_KAYA_EXACT_SCHEME_TRAPEZOIDAL:
        return _trapezoidal_cdf(process, x, nu_0, nu_t, dt, upper, eps)

    if scheme == HestonDiscretization.BROADIE_KAYA_EXACT_SCHEME_LAGUERRE:
        nodes, weights = laggauss(_LAGUERRE_ORDER)
        keep = weights > 0.0
        u = nodes[keep]
        total = np.sum(weights[keep] * np.exp(u) * _ch(process, x, u, nu_0, nu_t, dt))
        return float(min(1.0, max(0.0, total)))

    if scheme == HestonDiscretization.BROADIE_KAYA_EXACT_SCHEME_LOBATTO:
        value, _ = integrate.quad(lambda u: _ch(process, x, u, nu_0, nu_t, dt),
                                  QL_EPSILON, upper, epsabs=eps, limit=200)
        return float(min(1.0, max(0.0, value)))

    raise ValueError(f"unknown integration method: {scheme}")
