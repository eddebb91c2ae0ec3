"""
Matrix square roots for correlation and covariance matrices

Pseudo square roots S with S S^T = M for symmetric matrices that should be,
but numerically may not quite be, positive semi-definite. A salvaging
algorithm repairs the spectrum before the root is taken:

    - NONE:      no repair, negative eigenvalues are an error
    - SPECTRAL:  negative eigenvalues floored at zero, rows rescaled
    - HIGHAM:    nearest correlation matrix (alternating projections)
    - PRINCIPAL: symmetric principal square root

References:
    Rebonato, R. and Jäckel, P. (1999). The most general methodology to
    create a valid correlation matrix for risk management and option
    pricing purposes. Journal of Risk 2(2).
    Higham, N. (2002). Computing the nearest correlation matrix.
    IMA Journal of Numerical Analysis 22.
"""

import logging
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)

QL_EPSILON = np.finfo(float).eps


class SalvagingAlgorithm(Enum):
    NONE = "none"
    SPECTRAL = "spectral"
    HIGHAM = "higham"
    PRINCIPAL = "principal"


def check_symmetry(matrix: np.ndarray) -> None:
    """Raise ValueError unless `matrix` is square and symmetric."""
    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"non square matrix: {matrix.shape}")
    if not np.allclose(matrix, matrix.T, rtol=1e-12, atol=1e-14):
        i, j = np.unravel_index(np.argmax(np.abs(matrix - matrix.T)), matrix.shape)
        raise ValueError(
            f"non symmetric matrix: [{i}][{j}]={matrix[i, j]}, "
            f"[{j}][{i}]={matrix[j, i]}"
        )


def _sorted_eigh(matrix: np.ndarray):
    """Eigen-decomposition with eigenvalues in decreasing order."""
    eigenvalues, eigenvectors = np.linalg.eigh(matrix)
    order = np.argsort(eigenvalues)[::-1]
    return eigenvalues[order], eigenvectors[:, order]


def cholesky_decomposition(matrix: np.ndarray, flexible: bool = False) -> np.ndarray:
    """
    Lower-triangular Cholesky factor L with L L^T = matrix

    With flexible=True positive semi-definite input is accepted: a
    non-positive pivot yields a zero column instead of an error.
    """
    matrix = np.asarray(matrix, dtype=float)
    check_symmetry(matrix)
    size = matrix.shape[0]
    result = np.zeros((size, size))

    for i in range(size):
        for j in range(i, size):
            s = matrix[i, j] - np.dot(result[i, :i], result[j, :i])
            if i == j:
                if not flexible and s <= 0.0:
                    raise ValueError("input matrix is not positive definite")
                result[i, i] = np.sqrt(max(s, 0.0))
            else:
                pivot = result[i, i]
                result[j, i] = 0.0 if np.isclose(pivot, 0.0, rtol=0.0, atol=1e-300) else s / pivot
    return result


def normalize_pseudo_root(matrix: np.ndarray, pseudo: np.ndarray) -> np.ndarray:
    """
    Rescale each row of `pseudo` so that (pseudo pseudo^T) has the diagonal
    of `matrix`. Rows with zero norm are left untouched.
    """
    if matrix.shape[0] != pseudo.shape[0]:
        raise ValueError(
            f"matrix/pseudo mismatch: matrix rows are {matrix.shape[0]} "
            f"while pseudo rows are {pseudo.shape[0]}"
        )
    norms = np.sum(pseudo * pseudo, axis=1)
    result = pseudo.copy()
    positive = norms > 0.0
    result[positive] *= np.sqrt(np.diag(matrix)[positive] / norms[positive])[:, None]
    return result


def _norm_inf(matrix: np.ndarray) -> float:
    return float(np.max(np.sum(np.abs(matrix), axis=1)))


def _project_to_psd(matrix: np.ndarray) -> np.ndarray:
    eigenvalues, eigenvectors = _sorted_eigh(matrix)
    return eigenvectors @ np.diag(np.maximum(eigenvalues, 0.0)) @ eigenvectors.T


def higham_nearest_correlation(
    matrix: np.ndarray,
    max_iterations: int = 40,
    tolerance: float = 1e-6,
) -> np.ndarray:
    """
    Nearest correlation matrix by Higham's alternating projections

    Alternates between the PSD cone (with Dykstra's correction) and the
    unit-diagonal affine set. Stops after `max_iterations` even when the
    relative change is still above `tolerance`; only meaningful for
    correlation matrices.
    """
    Y = np.array(matrix, dtype=float)
    X = Y.copy()
    delta_s = np.zeros_like(Y)
    last_x, last_y = X.copy(), Y.copy()

    for iteration in range(max_iterations):
        R = Y - delta_s
        X = _project_to_psd(R)
        delta_s = X - R
        Y = X.copy()
        np.fill_diagonal(Y, 1.0)

        change = max(
            _norm_inf(X - last_x) / _norm_inf(X),
            _norm_inf(Y - last_y) / _norm_inf(Y),
            _norm_inf(Y - X) / _norm_inf(Y),
        )
        if change <= tolerance:
            logger.debug("Higham iteration converged after %d steps", iteration + 1)
            break
        last_x, last_y = X, Y

    upper = np.triu(Y)
    return upper + np.triu(Y, 1).T


def pseudo_sqrt(
    matrix: np.ndarray,
    salvaging: SalvagingAlgorithm = SalvagingAlgorithm.NONE,
) -> np.ndarray:
    """
    Pseudo square root S of a symmetric matrix M, S S^T = M

    Args:
        matrix: symmetric (size x size) matrix
        salvaging: repair applied when M is not positive semi-definite

    Returns:
        (size x size) matrix S

    Raises:
        ValueError: non-symmetric input, or negative eigenvalues without
            a salvaging algorithm able to repair them
    """
    matrix = np.asarray(matrix, dtype=float)
    check_symmetry(matrix)
    eigenvalues, eigenvectors = _sorted_eigh(matrix)

    if salvaging == SalvagingAlgorithm.NONE:
        if eigenvalues[-1] < -1e-16:
            raise ValueError(f"negative eigenvalue(s) ({eigenvalues[-1]})")
        return cholesky_decomposition(matrix, flexible=True)

    if salvaging == SalvagingAlgorithm.SPECTRAL:
        if eigenvalues[-1] < 0.0:
            logger.debug("flooring negative eigenvalue %g at zero", eigenvalues[-1])
        root = eigenvectors @ np.diag(np.sqrt(np.maximum(eigenvalues, 0.0)))
        return normalize_pseudo_root(matrix, root)

    if salvaging == SalvagingAlgorithm.HIGHAM:
        adjusted = higham_nearest_correlation(matrix)
        return cholesky_decomposition(adjusted, flexible=True)

    if salvaging == SalvagingAlgorithm.PRINCIPAL:
        if eigenvalues[-1] < -10 * QL_EPSILON:
            raise ValueError(f"negative eigenvalue(s) ({eigenvalues[-1]})")
        sqrt_values = np.sqrt(np.maximum(eigenvalues, 0.0))
        root = eigenvectors @ np.diag(sqrt_values) @ eigenvectors.T
        return 0.5 * (root + root.T)

    raise ValueError(f"unknown salvaging algorithm: {salvaging}")


def rank_reduced_sqrt(
    matrix: np.ndarray,
    max_rank: int,
    component_retained_percentage: float,
    salvaging: SalvagingAlgorithm = SalvagingAlgorithm.NONE,
) -> np.ndarray:
    """
    Rank-reduced pseudo square root of a symmetric matrix

    Keeps the leading eigen-directions until `component_retained_percentage`
    of the eigenvalue sum is explained (at least one, at most `max_rank`)
    and rescales rows to the original diagonal.

    Returns:
        (size x retained) matrix, retained <= max_rank
    """
    matrix = np.asarray(matrix, dtype=float)
    check_symmetry(matrix)
    if component_retained_percentage <= 0.0:
        raise ValueError("no eigenvalues retained")
    if component_retained_percentage > 1.0:
        raise ValueError("percentage to be retained > 100%")
    if max_rank < 1:
        raise ValueError("max rank required < 1")

    size = matrix.shape[0]
    eigenvalues, eigenvectors = _sorted_eigh(matrix)

    if salvaging == SalvagingAlgorithm.NONE:
        if eigenvalues[-1] < -1e-16:
            raise ValueError(f"negative eigenvalue(s) ({eigenvalues[-1]})")
    elif salvaging == SalvagingAlgorithm.SPECTRAL:
        eigenvalues = np.maximum(eigenvalues, 0.0)
    elif salvaging == SalvagingAlgorithm.HIGHAM:
        eigenvalues, eigenvectors = _sorted_eigh(higham_nearest_correlation(matrix))
    else:
        raise ValueError(f"unknown or invalid salvaging algorithm: {salvaging}")

    enough = component_retained_percentage * np.sum(eigenvalues)
    if component_retained_percentage == 1.0:
        # numerical glitches might cause some factors to be discarded
        enough *= 1.1

    components = eigenvalues[0]
    retained = 1
    while components < enough and retained < size:
        components += eigenvalues[retained]
        retained += 1
    retained = min(retained, max_rank)

    root = eigenvectors[:, :retained] * np.sqrt(np.maximum(eigenvalues[:retained], 0.0))
    return normalize_pseudo_root(matrix, root)
