"""
Adaptive multiple precision criteria.

Criteria A, B and C from Bates, Hauenstein, Sommese and Wampler,
"Adaptive multiprecision path tracking" (SIAM J. Numer. Anal., 2008) and
"Stepsize control for adaptive multiprecision path tracking" (2009).

Each criterion compares the number of decimal digits carried by the current
precision with a right-hand side built from Jacobian norms, tolerances and
the constants of an AMPConfig.  True means the check passed and the current
precision is adequate; False means the precision or the step size has to
change.

``norm_J_inverse`` is always an estimate.  A poor estimate moves the
right-hand sides by a few digits, which the safety digits absorb; it never
changes the comparisons themselves.
"""

import math
from typing import List, NamedTuple, Optional

import numpy as np

from pyendgame.config import AMPConfig
from pyendgame.exceptions import InvalidDomainInput, PrecisionInadequate
from pyendgame.numtraits import DOUBLE_PRECISION, PrecisionTraits


def criterion_a_rhs(norm_J, norm_J_inverse, config: AMPConfig,
                    traits: PrecisionTraits = DOUBLE_PRECISION):
    """Right-hand side of Criterion A."""
    norm_J = traits.real(norm_J)
    norm_J_inverse = traits.real(norm_J_inverse)
    return config.safety_digits_1 + traits.log10(
        norm_J_inverse * traits.real(config.epsilon) * (norm_J + traits.real(config.Phi)))


def criterion_a(norm_J, norm_J_inverse, config: AMPConfig,
                traits: PrecisionTraits = DOUBLE_PRECISION) -> bool:
    """Check AMP Criterion A.

    Precision is adequate for the linear solve inside the corrector given the
    conditioning of the Jacobian.

    Args:
        norm_J: Matrix norm of the Jacobian.
        norm_J_inverse: Estimate of the norm of the inverse of the Jacobian.
        config: Adaptive multiple precision settings.
        traits: Precision currently used by the tracker.

    Returns:
        True if the criterion is satisfied.
    """
    return traits.num_digits() > criterion_a_rhs(norm_J, norm_J_inverse, config, traits)


def compute_d(norm_J, norm_J_inverse, config: AMPConfig,
              traits: PrecisionTraits = DOUBLE_PRECISION):
    """The expression D from the AMP papers, used by Criterion B."""
    norm_J = traits.real(norm_J)
    norm_J_inverse = traits.real(norm_J_inverse)
    epsilon = traits.real(config.epsilon)
    return traits.log10(
        norm_J_inverse * ((2 + epsilon) * norm_J + epsilon * traits.real(config.Phi)) + 1)


def criterion_b_rhs(norm_J, norm_J_inverse,
                    num_newton_iterations_remaining: int,
                    tracking_tolerance,
                    norm_of_latest_newton_residual,
                    config: AMPConfig,
                    traits: PrecisionTraits = DOUBLE_PRECISION):
    """Right-hand side of Criterion B.

    Args:
        norm_J: Matrix norm of the Jacobian.
        norm_J_inverse: Estimate of the norm of the inverse of the Jacobian.
        num_newton_iterations_remaining: Newton iterations still to perform.
        tracking_tolerance: Tolerance to which the path is tracked.
        norm_of_latest_newton_residual: Length of the latest Newton step.
        config: Adaptive multiple precision settings.
        traits: Precision currently used by the tracker.

    Raises:
        InvalidDomainInput: if no iterations remain, or a logarithm argument
            is not positive.
    """
    if num_newton_iterations_remaining <= 0:
        raise InvalidDomainInput(
            f"num_newton_iterations_remaining must be positive, got {num_newton_iterations_remaining}")
    return (config.safety_digits_1
            + compute_d(norm_J, norm_J_inverse, config, traits)
            + (-traits.log10(tracking_tolerance) + traits.log10(norm_of_latest_newton_residual))
            / num_newton_iterations_remaining)


def criterion_b(norm_J, norm_J_inverse,
                num_newton_iterations_remaining: int,
                tracking_tolerance,
                norm_of_latest_newton_residual,
                config: AMPConfig,
                traits: PrecisionTraits = DOUBLE_PRECISION) -> bool:
    """Check AMP Criterion B.

    Enough digits remain to finish the expected Newton iterations and still
    reach the tracking tolerance.
    """
    return traits.num_digits() > criterion_b_rhs(
        norm_J, norm_J_inverse, num_newton_iterations_remaining,
        tracking_tolerance, norm_of_latest_newton_residual, config, traits)


def _norm_of_point(z, traits: PrecisionTraits):
    if isinstance(z, (np.ndarray, list, tuple)):
        return traits.norm(z)
    return traits.real(z)


def criterion_c_rhs(norm_J_inverse, z, tracking_tolerance, config: AMPConfig,
                    traits: PrecisionTraits = DOUBLE_PRECISION):
    """Right-hand side of Criterion C.

    Args:
        norm_J_inverse: Estimate of the norm of the inverse of the Jacobian.
        z: The current space point, or its precomputed norm.
        tracking_tolerance: Tolerance to which the path is tracked.
        config: Adaptive multiple precision settings.
        traits: Precision currently used by the tracker.
    """
    norm_z = _norm_of_point(z, traits)
    return (config.safety_digits_2
            - traits.log10(tracking_tolerance)
            + traits.log10(traits.real(norm_J_inverse) * traits.real(config.Psi) + norm_z))


def criterion_c(norm_J_inverse, z, tracking_tolerance, config: AMPConfig,
                traits: PrecisionTraits = DOUBLE_PRECISION) -> bool:
    """Check AMP Criterion C.

    Precision is adequate for the absolute size of the current point.
    """
    return traits.num_digits() > criterion_c_rhs(norm_J_inverse, z, tracking_tolerance, config, traits)


class AMPCriteriaResult(NamedTuple):
    """Outcome of Criteria A, B and C; ``b`` is None when B was not evaluated."""
    a: bool
    b: Optional[bool]
    c: bool

    @property
    def passed(self) -> bool:
        return self.a and self.b is not False and self.c

    @property
    def failed_criteria(self) -> List[str]:
        return [name for name, ok in zip('ABC', self) if ok is False]


def _right_hand_sides(norm_J, norm_J_inverse, z, tracking_tolerance, config, traits,
                      num_newton_iterations_remaining, norm_of_latest_newton_residual):
    rhs_a = criterion_a_rhs(norm_J, norm_J_inverse, config, traits)
    rhs_b = None
    if num_newton_iterations_remaining is not None and norm_of_latest_newton_residual is not None:
        rhs_b = criterion_b_rhs(norm_J, norm_J_inverse, num_newton_iterations_remaining,
                                tracking_tolerance, norm_of_latest_newton_residual, config, traits)
    rhs_c = criterion_c_rhs(norm_J_inverse, z, tracking_tolerance, config, traits)
    return rhs_a, rhs_b, rhs_c


def check_amp_criteria(norm_J, norm_J_inverse, z, tracking_tolerance,
                       config: AMPConfig,
                       traits: PrecisionTraits = DOUBLE_PRECISION,
                       num_newton_iterations_remaining: Optional[int] = None,
                       norm_of_latest_newton_residual=None) -> AMPCriteriaResult:
    """Evaluate all three criteria at once.

    Criterion B is only evaluated when both the remaining iteration count and
    the latest Newton residual are given.
    """
    rhs_a, rhs_b, rhs_c = _right_hand_sides(
        norm_J, norm_J_inverse, z, tracking_tolerance, config, traits,
        num_newton_iterations_remaining, norm_of_latest_newton_residual)
    digits = traits.num_digits()
    return AMPCriteriaResult(a=digits > rhs_a,
                             b=None if rhs_b is None else digits > rhs_b,
                             c=digits > rhs_c)


def minimum_digits_required(norm_J, norm_J_inverse, z, tracking_tolerance,
                            config: AMPConfig,
                            traits: PrecisionTraits = DOUBLE_PRECISION,
                            num_newton_iterations_remaining: Optional[int] = None,
                            norm_of_latest_newton_residual=None) -> int:
    """Smallest digit count for which every evaluated criterion passes."""
    sides = [rhs for rhs in _right_hand_sides(
        norm_J, norm_J_inverse, z, tracking_tolerance, config, traits,
        num_newton_iterations_remaining, norm_of_latest_newton_residual) if rhs is not None]
    largest = float(max(sides))
    if math.isinf(largest):
        return config.maximum_precision + 1
    return max(int(math.floor(largest)) + 1, 1)


def require_adequate_precision(norm_J, norm_J_inverse, z, tracking_tolerance,
                               config: AMPConfig,
                               traits: PrecisionTraits = DOUBLE_PRECISION,
                               num_newton_iterations_remaining: Optional[int] = None,
                               norm_of_latest_newton_residual=None) -> AMPCriteriaResult:
    """Like check_amp_criteria, but raise when any criterion fails.

    Raises:
        PrecisionInadequate: carrying the failed criteria and the number of
            digits that would satisfy all of them.
    """
    result = check_amp_criteria(norm_J, norm_J_inverse, z, tracking_tolerance, config, traits,
                                num_newton_iterations_remaining, norm_of_latest_newton_residual)
    if not result.passed:
        digits = minimum_digits_required(norm_J, norm_J_inverse, z, tracking_tolerance, config,
                                         traits, num_newton_iterations_remaining,
                                         norm_of_latest_newton_residual)
        failed = result.failed_criteria
        raise PrecisionInadequate(
            f"AMP criteria {', '.join(failed)} failed at {traits.num_digits()} digits; "
            f"{digits} required",
            failed_criteria=failed,
            digits_required=digits)
    return result
