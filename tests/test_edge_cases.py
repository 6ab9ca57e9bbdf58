"""
Test edge cases and error handling for PyEndgame.

This ensures the library behaves gracefully in unusual situations
and provides helpful error messages.
"""

import math

import numpy as np
import pytest

from pyendgame import (
    AMPConfig,
    DOUBLE_PRECISION,
    EndgameConfig,
    EndgameStatus,
    InsufficientSamples,
    InvalidDomainInput,
    PowerSeriesEndgame,
    PrecisionInadequate,
    SampleWindow,
    check_amp_criteria,
    hermite_interpolate_and_solve,
    search_cycle_number,
)
from pyendgame.amp_criteria import minimum_digits_required, require_adequate_precision


class TestCriteriaEdgeCases:
    """Boundary behaviour of the AMP criteria."""

    def test_singular_jacobian_needs_unbounded_precision(self):
        config = AMPConfig()
        result = check_amp_criteria(1.0, float('inf'), 1.0, 1e-8, config)
        assert not result.a
        assert not result.c
        assert minimum_digits_required(1.0, float('inf'), 1.0, 1e-8, config) == config.maximum_precision + 1

    def test_zero_point_is_allowed(self):
        """Criterion C only needs norm_J_inverse * Psi + ||z|| to be positive."""
        config = AMPConfig()
        assert check_amp_criteria(1.0, 1.0, np.zeros(2), 1e-8, config).c

    def test_nan_inputs_rejected(self):
        with pytest.raises(InvalidDomainInput):
            check_amp_criteria(float('nan'), 1.0, 1.0, 1e-8, AMPConfig())

    def test_error_message_names_criteria(self):
        with pytest.raises(PrecisionInadequate, match="C failed at 16 digits"):
            require_adequate_precision(1.0, 1.0, 1e20, 1e-8, AMPConfig())

    def test_safety_digits_shift_threshold(self):
        """Each safety digit moves the right-hand side by exactly one."""
        loose = AMPConfig(safety_digits_2=0)
        strict = AMPConfig(safety_digits_2=3)
        d_loose = minimum_digits_required(1.0, 1.0, 1e5, 1e-8, loose)
        d_strict = minimum_digits_required(1.0, 1.0, 1e5, 1e-8, strict)
        assert d_strict - d_loose == 3


class TestInterpolationEdgeCases:
    """Unusual inputs to the extrapolator."""

    def test_constant_samples(self):
        times = [0.3, 0.2, 0.1]
        samples = [np.array([4.0 - 1j])] * 3
        derivatives = [np.array([0.0])] * 3
        value = hermite_interpolate_and_solve(0.0, 3, times, samples, derivatives)
        assert np.allclose(value, [4.0 - 1j])

    def test_empty_input(self):
        with pytest.raises(InsufficientSamples):
            hermite_interpolate_and_solve(0.0, 1, [], [], [])

    def test_widely_spread_magnitudes(self):
        """Times spanning many orders of magnitude stay non-degenerate."""
        times = [1.0, 1e-6]
        samples = [np.array([1 + t]) for t in times]
        derivatives = [np.array([1.0])] * 2
        value = hermite_interpolate_and_solve(0.0, 2, times, samples, derivatives)
        assert abs(value[0] - 1.0) < 1e-12


class TestEndgameEdgeCases:
    """Failures of the endgame driver."""

    def test_singular_derivative(self):
        class SingularTracker:
            traits = DOUBLE_PRECISION

            def derivative(self, time, point):
                raise np.linalg.LinAlgError("singular Jacobian")

            def track(self, start_time, target_time, start_point):
                raise AssertionError("never reached")

        result = PowerSeriesEndgame(SingularTracker()).run(0.1, [1.0])
        assert result.status == EndgameStatus.TRACKER_FAILED
        assert "singular Jacobian" in result.message

    def test_small_window_keeps_working(self, exact_tracker, square_root_path):
        """A window just large enough for the largest trial still converges."""
        config = EndgameConfig(final_tolerance=1e-8, max_cycle_number=2, max_window_size=3)
        endgame = PowerSeriesEndgame(exact_tracker(*square_root_path), config)
        result = endgame.run(0.1, square_root_path[0](0.1))
        assert result.success
        assert len(endgame.window) == 3

    def test_search_on_empty_window(self):
        search = search_cycle_number(SampleWindow(), EndgameConfig())
        assert search.status == EndgameStatus.COLLECTING_SAMPLES
        assert search.trials == []

    def test_endgame_is_reusable(self, exact_tracker, square_root_path):
        """State from one run does not leak into the next."""
        endgame = PowerSeriesEndgame(exact_tracker(*square_root_path),
                                     EndgameConfig(final_tolerance=1e-8))
        first = endgame.run(0.1, square_root_path[0](0.1))
        second = endgame.run(0.2, square_root_path[0](0.2))
        assert first.num_samples == second.num_samples == 3
        assert len(second.estimates) == 1
        assert math.isclose(second.time, 0.05)
