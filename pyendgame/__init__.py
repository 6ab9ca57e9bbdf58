"""
PyEndgame: adaptive precision criteria and the power-series endgame for
homotopy continuation.

This library decides whether the precision used while tracking a solution
path is sufficient, and near the end of the path extrapolates the (possibly
singular) endpoint from samples, estimating the cycle number of the branch.
"""

__version__ = "0.1.0"

from pyendgame.exceptions import (
    EndgameError,
    PrecisionInadequate,
    NumericalDegeneracy,
    InvalidDomainInput,
    CycleNumberExceeded,
    InsufficientSamples,
)

from pyendgame.numtraits import (
    PrecisionTraits,
    DoublePrecision,
    MultiplePrecision,
    DOUBLE_PRECISION,
    precision_for_digits,
)

from pyendgame.config import AMPConfig, EndgameConfig

from pyendgame.amp_criteria import (
    criterion_a,
    criterion_b,
    criterion_b_rhs,
    criterion_c,
    criterion_c_rhs,
    compute_d,
    check_amp_criteria,
    AMPCriteriaResult,
)

from pyendgame.samples import Sample, SampleWindow
from pyendgame.interpolation import DividedDifferenceTable, divided_difference_table, hermite_interpolate_and_solve

from pyendgame.endgame import (
    EndgameStatus,
    EndgameResult,
    EndpointEstimate,
    PowerSeriesEndgame,
    search_cycle_number,
    run_power_series_endgame,
)

from pyendgame.homotopy import NumericHomotopy, StraightLineHomotopy
from pyendgame.tracking import HomotopyTracker, TrackResult, TrackingStatus, track_path, track_paths

# Note: plotting depends on the optional matplotlib extra, so
# pyendgame.visualization is not imported here.

__all__ = [
    "EndgameError",
    "PrecisionInadequate",
    "NumericalDegeneracy",
    "InvalidDomainInput",
    "CycleNumberExceeded",
    "InsufficientSamples",
    "PrecisionTraits",
    "DoublePrecision",
    "MultiplePrecision",
    "DOUBLE_PRECISION",
    "precision_for_digits",
    "AMPConfig",
    "EndgameConfig",
    "criterion_a",
    "criterion_b",
    "criterion_b_rhs",
    "criterion_c",
    "criterion_c_rhs",
    "compute_d",
    "check_amp_criteria",
    "AMPCriteriaResult",
    "Sample",
    "SampleWindow",
    "DividedDifferenceTable",
    "divided_difference_table",
    "hermite_interpolate_and_solve",
    "EndgameStatus",
    "EndgameResult",
    "EndpointEstimate",
    "PowerSeriesEndgame",
    "search_cycle_number",
    "run_power_series_endgame",
    "NumericHomotopy",
    "StraightLineHomotopy",
    "HomotopyTracker",
    "TrackResult",
    "TrackingStatus",
    "track_path",
    "track_paths",
]
