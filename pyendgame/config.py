"""
Configuration objects for PyEndgame.

Both configurations are immutable once built and may be shared by every
path tracked in a run.
"""

import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from pyendgame.numtraits import DOUBLE_DIGITS


def _known_options(cls, options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in (options or {}).items() if key in names}


@dataclass(frozen=True)
class AMPConfig:
    """Settings for adaptive multiple precision.

    Attributes:
        safety_digits_1: Safety margin for Criteria A and B.
        safety_digits_2: Safety margin for Criterion C.
        epsilon: Bound on the growth of error in a linear solve.  A
            pessimistic bound is 2^n, n^2 is typical.
        Phi: Bound on the error in evaluating the Jacobian, d(d-1)C.
        Psi: Bound on the error in evaluating the system, dC.
        maximum_precision: Largest number of digits the tracker may use.
    """

    # Defaults are from_bounds(1, 5, 1000)
    safety_digits_1: int = 1
    safety_digits_2: int = 1
    epsilon: float = 1.0
    Phi: float = 20000.0
    Psi: float = 5000.0
    maximum_precision: int = 300

    def __post_init__(self):
        for name in ('safety_digits_1', 'safety_digits_2'):
            value = getattr(self, name)
            if int(value) != value or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        for name in ('epsilon', 'Phi', 'Psi'):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0):
                raise ValueError(f"{name} must be a positive finite number, got {value!r}")
        if self.maximum_precision < DOUBLE_DIGITS:
            raise ValueError(
                f"maximum_precision must be at least {DOUBLE_DIGITS}, got {self.maximum_precision}")

    @classmethod
    def from_bounds(cls,
                    num_variables: int,
                    degree_bound: float,
                    coefficient_bound: float,
                    **kwargs) -> 'AMPConfig':
        """Build a config from bounds on the system being tracked.

        Args:
            num_variables: Number of variables n.
            degree_bound: Bound d on the degrees of the polynomials.
            coefficient_bound: Bound C on the sum of absolute values of the
                coefficients of any one polynomial.
            **kwargs: Remaining AMPConfig fields.
        """
        # Phi must stay positive, so linear systems are bounded as quadratics
        degree_bound = max(float(degree_bound), 2.0)
        return cls(epsilon=float(num_variables) ** 2,
                   Phi=degree_bound * (degree_bound - 1) * coefficient_bound,
                   Psi=degree_bound * coefficient_bound,
                   **kwargs)

    @classmethod
    def from_options(cls, options: Optional[Dict[str, Any]] = None) -> 'AMPConfig':
        return cls(**_known_options(cls, options))


@dataclass(frozen=True)
class EndgameConfig:
    """Settings for the power-series endgame.

    Attributes:
        final_tolerance: Two endpoint estimates closer than this agree.
        max_cycle_number: Largest trial cycle number.
        num_sample_points: Fewest Hermite nodes used for one estimate.
        max_window_size: Samples kept by the window; older ones are dropped.
        sample_factor: Contraction of the distance to the target time
            between consecutive samples.
        min_track_time: The endgame gives up before sampling closer than
            this to the target time.
        max_norm: Samples with a larger norm stop the endgame.
    """

    final_tolerance: float = 1e-11
    max_cycle_number: int = 6
    num_sample_points: int = 1
    max_window_size: int = 16
    sample_factor: float = 0.5
    min_track_time: float = 1e-11
    max_norm: float = 1e5

    def __post_init__(self):
        if not self.final_tolerance > 0:
            raise ValueError(f"final_tolerance must be positive, got {self.final_tolerance!r}")
        if self.max_cycle_number < 1:
            raise ValueError(f"max_cycle_number must be positive, got {self.max_cycle_number!r}")
        if self.num_sample_points < 1:
            raise ValueError(f"num_sample_points must be positive, got {self.num_sample_points!r}")
        if not 0 < self.sample_factor < 1:
            raise ValueError(f"sample_factor must lie in (0, 1), got {self.sample_factor!r}")
        if not self.min_track_time > 0:
            raise ValueError(f"min_track_time must be positive, got {self.min_track_time!r}")
        if not self.max_norm > 0:
            raise ValueError(f"max_norm must be positive, got {self.max_norm!r}")
        needed = self.hermite_points(self.max_cycle_number) + 1
        if self.max_window_size < needed:
            raise ValueError(
                f"max_window_size must be at least {needed} to test cycle number "
                f"{self.max_cycle_number}, got {self.max_window_size}")

    def hermite_points(self, cycle_number: int) -> int:
        """Hermite nodes used by the coarser estimate for ``cycle_number``."""
        return max(cycle_number, self.num_sample_points)

    @classmethod
    def from_options(cls, options: Optional[Dict[str, Any]] = None) -> 'EndgameConfig':
        return cls(**_known_options(cls, options))
