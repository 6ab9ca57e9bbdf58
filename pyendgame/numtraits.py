"""
Numeric traits for PyEndgame.

A traits object describes one precision level: how many decimal digits its
scalars carry, how to convert values into its representation, and the
elementary and linear-algebra operations needed by the AMP criteria, the
Hermite extrapolator and the tracker.  Every routine that needs precision
information receives a traits object explicitly; there is no global
precision setting.

Double precision works on numpy complex128 arrays.  Multiple precision keeps
mpmath numbers in numpy object arrays so the same array expressions work at
both levels.
"""

import math
from typing import Any, Iterable, Tuple, Union

import mpmath
import numpy as np

from pyendgame.exceptions import InvalidDomainInput
from pyendgame.utils import inverse_norm_estimate, solve_linear_system

# Digits reported for IEEE double, matching the precision switch-over point.
DOUBLE_DIGITS = 16


class PrecisionTraits:
    """Interface shared by all precision levels."""

    name = "abstract"

    def num_digits(self) -> int:
        raise NotImplementedError

    def epsilon(self):
        raise NotImplementedError

    def scalar(self, value):
        raise NotImplementedError

    def real(self, value):
        raise NotImplementedError

    def array(self, values: Iterable) -> np.ndarray:
        raise NotImplementedError

    def matrix(self, values) -> np.ndarray:
        raise NotImplementedError

    def zeros(self, shape: Union[int, Tuple[int, ...]]) -> np.ndarray:
        raise NotImplementedError

    def root(self, value, n: int):
        raise NotImplementedError

    def norm(self, vector):
        raise NotImplementedError

    def matrix_norm(self, matrix):
        raise NotImplementedError

    def inverse_norm_estimate(self, matrix):
        raise NotImplementedError

    def solve(self, matrix, rhs) -> np.ndarray:
        raise NotImplementedError

    def is_finite(self, vector) -> bool:
        raise NotImplementedError

    def _log10(self, value):
        raise NotImplementedError

    def log10(self, value):
        """Base-10 logarithm of a positive real.

        Raises:
            InvalidDomainInput: if ``value`` is zero, negative or NaN.
        """
        value = self.real(value)
        if value != value or value <= 0:
            raise InvalidDomainInput(f"log10 requires a positive argument, got {value}")
        return self._log10(value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(digits={self.num_digits()})"


class DoublePrecision(PrecisionTraits):
    """Hardware double precision (numpy complex128)."""

    name = "double"

    def num_digits(self) -> int:
        return DOUBLE_DIGITS

    def epsilon(self) -> float:
        return float(np.finfo(np.float64).eps)

    def scalar(self, value) -> complex:
        return complex(value)

    def real(self, value) -> float:
        return float(value)

    def array(self, values: Iterable) -> np.ndarray:
        return np.array([complex(v) for v in values], dtype=complex)

    def matrix(self, values) -> np.ndarray:
        return np.array([[complex(v) for v in row] for row in values], dtype=complex)

    def zeros(self, shape) -> np.ndarray:
        return np.zeros(shape, dtype=complex)

    def root(self, value, n: int) -> complex:
        return complex(value) ** (1.0 / n)

    def norm(self, vector) -> float:
        return float(np.linalg.norm(np.asarray(vector, dtype=complex)))

    def matrix_norm(self, matrix) -> float:
        return float(np.linalg.norm(np.asarray(matrix, dtype=complex)))

    def inverse_norm_estimate(self, matrix) -> float:
        return inverse_norm_estimate(matrix)

    def solve(self, matrix, rhs) -> np.ndarray:
        return solve_linear_system(matrix, rhs)

    def is_finite(self, vector) -> bool:
        return bool(np.all(np.isfinite(np.asarray(vector, dtype=complex))))

    def _log10(self, value: float) -> float:
        return math.log10(value)


class MultiplePrecision(PrecisionTraits):
    """Arbitrary precision backed by a private mpmath context.

    Args:
        digits: Number of decimal digits carried by every scalar.
    """

    name = "multiple"

    def __init__(self, digits: int):
        if int(digits) < 1:
            raise ValueError(f"digits must be positive, got {digits}")
        self.digits = int(digits)
        self.ctx = mpmath.MPContext()
        self.ctx.dps = self.digits

    def num_digits(self) -> int:
        return self.digits

    def epsilon(self):
        return self.ctx.eps

    def scalar(self, value):
        return self.ctx.mpc(value)

    def real(self, value):
        return self.ctx.mpf(value)

    def array(self, values: Iterable) -> np.ndarray:
        return np.array([self.ctx.mpc(v) for v in values], dtype=object)

    def matrix(self, values) -> np.ndarray:
        return np.array([[self.ctx.mpc(v) for v in row] for row in values], dtype=object)

    def zeros(self, shape) -> np.ndarray:
        return np.full(shape, self.ctx.mpc(0), dtype=object)

    def root(self, value, n: int):
        return self.ctx.root(self.ctx.mpc(value), n)

    def norm(self, vector):
        return self.ctx.norm([self.ctx.mpc(v) for v in vector], 2)

    def _to_mp_matrix(self, matrix):
        return self.ctx.matrix([[self.ctx.mpc(v) for v in row] for row in matrix])

    def matrix_norm(self, matrix):
        return self.ctx.mnorm(self._to_mp_matrix(matrix), 'f')

    def inverse_norm_estimate(self, matrix):
        try:
            inverse = self.ctx.inverse(self._to_mp_matrix(matrix))
        except ZeroDivisionError:
            return self.ctx.inf
        return self.ctx.mnorm(inverse, 'f')

    def solve(self, matrix, rhs) -> np.ndarray:
        A = self._to_mp_matrix(matrix)
        b = self.ctx.matrix([self.ctx.mpc(v) for v in rhs])
        try:
            x = self.ctx.lu_solve(A, b)
        except ZeroDivisionError as exc:
            raise np.linalg.LinAlgError(str(exc)) from exc
        return np.array([x[i] for i in range(x.rows)], dtype=object)

    def is_finite(self, vector) -> bool:
        return not any(self.ctx.isinf(v) or self.ctx.isnan(v) for v in vector)

    def _log10(self, value):
        return self.ctx.log10(value)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, MultiplePrecision) and other.digits == self.digits

    def __hash__(self) -> int:
        return hash(("multiple", self.digits))


DOUBLE_PRECISION = DoublePrecision()


def precision_for_digits(digits: int) -> PrecisionTraits:
    """Cheapest precision level carrying at least ``digits`` decimal digits."""
    if digits <= DOUBLE_DIGITS:
        return DOUBLE_PRECISION
    return MultiplePrecision(digits)
