"""
Exception types for PyEndgame.

The AMP criteria, the Hermite extrapolator and the endgame driver report
failures through these types.  None of them is retried inside the
library; the caller decides whether to raise precision, take more samples
or give up on the path.
"""

from typing import Iterable, Optional


class EndgameError(Exception):
    """Base class for all errors raised by PyEndgame."""


class PrecisionInadequate(EndgameError):
    """One or more of the AMP criteria failed at the current precision."""

    def __init__(self,
                 message: str,
                 failed_criteria: Iterable[str] = (),
                 digits_required: Optional[int] = None):
        super().__init__(message)
        self.failed_criteria = tuple(failed_criteria)
        self.digits_required = digits_required


class NumericalDegeneracy(EndgameError, ArithmeticError):
    """A divided difference would divide by a zero or near-zero time gap."""


class InvalidDomainInput(EndgameError, ValueError):
    """A non-positive or NaN value was passed where a logarithm is taken."""


class CycleNumberExceeded(EndgameError):
    """No trial cycle number up to the configured maximum converged."""

    def __init__(self, message: str, max_cycle_number: Optional[int] = None):
        super().__init__(message)
        self.max_cycle_number = max_cycle_number


class InsufficientSamples(EndgameError, ValueError):
    """Extrapolation was requested before enough samples were collected."""
