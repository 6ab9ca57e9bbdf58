"""
Utility functions for PyEndgame.

Double-precision linear algebra shared by the numeric traits and the
tracker.
"""

import warnings

import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve, svdvals


def solve_linear_system(jac: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """Solve a linear system using LU with fallback to least squares.

    Args:
        jac: Jacobian matrix (m x n), typically square
        rhs: Right-hand side vector (m,)

    Returns:
        Solution vector x minimizing ||Jx - rhs||.
    """
    jac = np.asarray(jac, dtype=complex)
    rhs = np.asarray(rhs, dtype=complex)
    if jac.shape[0] == jac.shape[1]:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", LinAlgWarning)
            lu, piv = lu_factor(jac)
        if np.all(np.abs(np.diag(lu)) > 0):
            return lu_solve((lu, piv), rhs)
    # Singular or rectangular
    return np.linalg.lstsq(jac, rhs, rcond=None)[0]


def inverse_norm_estimate(jac: np.ndarray) -> float:
    """Frobenius norm of the inverse of a square matrix.

    Computed from the singular values, so it is exact up to roundoff for
    well-conditioned matrices and degrades gracefully otherwise.  Returns
    ``inf`` for a numerically singular matrix.
    """
    sigma = svdvals(np.asarray(jac, dtype=complex))
    if sigma.size == 0 or sigma[-1] == 0:
        return float('inf')
    return float(np.sqrt(np.sum(1.0 / sigma**2)))


def geometric_times(start_time: complex,
                    target_time: complex,
                    factor: float,
                    count: int) -> list:
    """Times ``target + factor**k * (start - target)`` for k = 0..count-1."""
    return [target_time + factor**k * (start_time - target_time) for k in range(count)]
