"""
Tests for the power-series endgame.

The trackers used here read points off closed-form paths (see conftest.py),
so the cycle numbers and endpoints are known exactly.
"""

import numpy as np
import pytest

from pyendgame import (
    CycleNumberExceeded,
    EndgameConfig,
    EndgameError,
    EndgameStatus,
    MultiplePrecision,
    NumericalDegeneracy,
    PowerSeriesEndgame,
    PrecisionInadequate,
    SampleWindow,
    TrackingStatus,
    run_power_series_endgame,
    search_cycle_number,
)
from pyendgame.endgame import EndgameResult, to_s_plane
from pyendgame.utils import geometric_times

CONFIG = EndgameConfig(final_tolerance=1e-8)


def _fill_window(path, derivative, times, target_time=0.0):
    window = SampleWindow(target_time, max_size=CONFIG.max_window_size)
    for t in times:
        window.append(t, np.array(path(t), dtype=complex), np.array(derivative(t), dtype=complex))
    return window


class TestSPlane:
    """Test the change of variables s = (t - t*)^(1/c)."""

    def test_chain_rule(self):
        window = _fill_window(lambda t: [t], lambda t: [3.0], [0.04])
        s_times, points, s_derivatives = to_s_plane(window.newest(1), 2, 0.0)
        assert np.isclose(s_times[0], 0.2)
        assert np.isclose(s_derivatives[0][0], 3.0 * 2 * 0.2)
        assert np.isclose(points[0][0], 0.04)

    def test_cycle_one_is_identity(self):
        window = _fill_window(lambda t: [t], lambda t: [3.0], [0.04])
        s_times, _, s_derivatives = to_s_plane(window.newest(1), 1, 0.0)
        assert np.isclose(s_times[0], 0.04)
        assert np.isclose(s_derivatives[0][0], 3.0)


class TestCycleNumberSearch:
    """Test search_cycle_number on prepared windows."""

    def test_single_sample_collects(self, linear_path):
        window = _fill_window(*linear_path, [0.1])
        search = search_cycle_number(window, CONFIG)
        assert search.status == EndgameStatus.COLLECTING_SAMPLES
        assert search.estimate is None
        assert search.cycle_number is None

    def test_nonsingular_path(self, linear_path):
        window = _fill_window(*linear_path, [0.1, 0.05])
        search = search_cycle_number(window, CONFIG)
        assert search.status == EndgameStatus.CONVERGED
        assert search.cycle_number == 1
        assert np.allclose(search.estimate.point, [2.0, 1.0])

    def test_cycle_two_needs_three_samples(self, square_root_path):
        window = _fill_window(*square_root_path, [0.1, 0.05])
        search = search_cycle_number(window, CONFIG)
        assert search.status == EndgameStatus.COLLECTING_SAMPLES
        assert len(search.trials) == 1

        window.append(0.025, square_root_path[0](0.025), square_root_path[1](0.025))
        search = search_cycle_number(window, CONFIG)
        assert search.status == EndgameStatus.CONVERGED
        assert search.cycle_number == 2
        assert abs(search.estimate.point[0] - 1.0) < 1e-10
        assert [trial.cycle_number for trial in search.trials] == [1, 2]
        assert search.trials[0].difference > CONFIG.final_tolerance

    def test_cycle_three(self):
        path = (lambda t: [5 - complex(t) ** (1 / 3)],
                lambda t: [-(1 / 3) * complex(t) ** (-2 / 3)])
        window = _fill_window(*path, geometric_times(0.1, 0.0, 0.5, 4))
        search = search_cycle_number(window, CONFIG)
        assert search.status == EndgameStatus.CONVERGED
        assert search.cycle_number == 3
        assert abs(search.estimate.point[0] - 5.0) < 1e-9

    @pytest.mark.parametrize("cycle_number", [1, 2, 3])
    def test_converges_from_twice_cycle_number_samples(self, cycle_number):
        """Exact samples of x = 3 + 2 t^(1/k), 2k of them, give cycle number k."""
        k = cycle_number
        path = (lambda t: [3 + 2 * complex(t) ** (1 / k)],
                lambda t: [(2 / k) * complex(t) ** (1 / k - 1)])
        window = _fill_window(*path, geometric_times(0.1, 0.0, 0.5, 2 * k))
        search = search_cycle_number(window, CONFIG)
        assert search.status == EndgameStatus.CONVERGED
        assert search.cycle_number == k
        assert abs(search.estimate.point[0] - 3.0) < 1e-8

    def test_exhausted_cycle_numbers(self):
        path = (lambda t: [complex(t) ** 0.25], lambda t: [0.25 * complex(t) ** -0.75])
        config = EndgameConfig(final_tolerance=1e-8, max_cycle_number=2)
        window = _fill_window(*path, geometric_times(0.1, 0.0, 0.5, 4))
        search = search_cycle_number(window, config)
        assert search.status == EndgameStatus.CYCLE_NUMBER_EXCEEDED
        assert len(search.trials) == 2
        best = min(search.trials, key=lambda trial: trial.difference)
        assert search.estimate is best.fine

    def test_degenerate_times(self, linear_path):
        t0 = 0.1
        t1 = np.nextafter(t0, 0.0)
        window = _fill_window(*linear_path, [t0, t1])
        search = search_cycle_number(window, CONFIG)
        assert search.status == EndgameStatus.NUMERICAL_DEGENERACY

    def test_nonzero_target_time(self, square_root_path):
        """Paths may end at any time; only the distance to it matters."""
        path, derivative = square_root_path
        window = _fill_window(lambda t: path(t - 1.0), lambda t: derivative(t - 1.0),
                              [1.1, 1.05, 1.025], target_time=1.0)
        search = search_cycle_number(window, CONFIG)
        assert search.status == EndgameStatus.CONVERGED
        assert search.cycle_number == 2
        assert abs(search.estimate.point[0] - 1.0) < 1e-9


class TestPowerSeriesEndgame:
    """Test the endgame driver."""

    def test_nonsingular_endpoint(self, exact_tracker, linear_path):
        tracker = exact_tracker(*linear_path)
        result = PowerSeriesEndgame(tracker, CONFIG).run(0.1, linear_path[0](0.1))

        assert result.success
        assert result.status == EndgameStatus.CONVERGED
        assert result.cycle_number == 1
        assert result.num_samples == 2
        assert np.allclose(result.point, [2.0, 1.0])
        assert tracker.calls == [(0.1, 0.05)]
        result.raise_for_status()

    def test_singular_endpoint(self, exact_tracker, square_root_path):
        tracker = exact_tracker(*square_root_path)
        result = PowerSeriesEndgame(tracker, CONFIG).run(0.1, square_root_path[0](0.1))

        assert result.status == EndgameStatus.CONVERGED
        assert result.cycle_number == 2
        assert result.num_samples == 3
        assert abs(result.point[0] - 1.0) < 1e-10
        assert result.as_dict()['singular']

    def test_samples_follow_geometric_sequence(self, exact_tracker):
        path = (lambda t: [np.exp(t)], lambda t: [np.exp(t)])
        tracker = exact_tracker(*path)
        config = EndgameConfig(final_tolerance=1e-8, sample_factor=0.25)
        endgame = PowerSeriesEndgame(tracker, config)
        result = endgame.run(0.2, path[0](0.2))

        assert result.success
        assert abs(result.point[0] - 1.0) < 1e-7
        expected = geometric_times(0.2, 0.0, 0.25, result.num_samples)
        assert np.allclose(endgame.window.times, expected[-len(endgame.window):])

    def test_cycle_number_exceeded(self, exact_tracker):
        path = (lambda t: [complex(t) ** 0.25], lambda t: [0.25 * complex(t) ** -0.75])
        config = EndgameConfig(final_tolerance=1e-8, max_cycle_number=3)
        result = PowerSeriesEndgame(exact_tracker(*path), config).run(0.1, path[0](0.1))

        assert result.status == EndgameStatus.CYCLE_NUMBER_EXCEEDED
        assert not result.success
        assert result.cycle_number is None
        assert abs(result.time) * config.sample_factor < config.min_track_time
        with pytest.raises(CycleNumberExceeded) as info:
            result.raise_for_status()
        assert info.value.max_cycle_number == 3

    def test_min_track_time(self, exact_tracker, square_root_path):
        config = EndgameConfig(final_tolerance=1e-8, min_track_time=0.04)
        result = PowerSeriesEndgame(exact_tracker(*square_root_path), config).run(
            0.1, square_root_path[0](0.1))

        assert result.status == EndgameStatus.MIN_TRACK_TIME_REACHED
        assert result.num_samples == 2
        with pytest.raises(EndgameError):
            result.raise_for_status()

    def test_insufficient_precision(self, failing_tracker, square_root_path):
        tracker = failing_tracker(*square_root_path, fail_below=0.04,
                                  status=TrackingStatus.PRECISION_INADEQUATE, digits_required=25)
        endgame = PowerSeriesEndgame(tracker, CONFIG)
        result = endgame.run(0.1, square_root_path[0](0.1))

        assert result.status == EndgameStatus.INSUFFICIENT_PRECISION
        assert result.digits_required == 25
        assert result.time == 0.05
        assert np.allclose(result.point, square_root_path[0](0.05))
        assert len(endgame.window) == 0
        with pytest.raises(PrecisionInadequate) as info:
            result.raise_for_status()
        assert info.value.digits_required == 25

    def test_tracker_failure(self, failing_tracker, linear_path):
        tracker = failing_tracker(*linear_path, fail_below=1.0,
                                  status=TrackingStatus.STEP_SIZE_TOO_SMALL)
        result = PowerSeriesEndgame(tracker, CONFIG).run(0.1, linear_path[0](0.1))

        assert result.status == EndgameStatus.TRACKER_FAILED
        assert "STEP_SIZE_TOO_SMALL" in result.message
        with pytest.raises(EndgameError):
            result.raise_for_status()

    def test_max_norm(self, exact_tracker):
        path = (lambda t: [1 / t], lambda t: [-1 / t**2])
        config = EndgameConfig(final_tolerance=1e-8, max_norm=15.0)
        result = PowerSeriesEndgame(exact_tracker(*path), config).run(0.1, path[0](0.1))

        assert result.status == EndgameStatus.SECURITY_MAX_NORM_REACHED
        assert result.time == 0.05

    def test_multiple_precision(self, exact_tracker):
        traits = MultiplePrecision(40)
        ctx = traits.ctx
        path = (lambda t: [1 + ctx.sqrt(t)], lambda t: [1 / (2 * ctx.sqrt(t))])
        tracker = exact_tracker(*path, traits=traits)
        result = PowerSeriesEndgame(tracker).run(ctx.mpf('0.1'), path[0](ctx.mpf('0.1')))

        assert result.status == EndgameStatus.CONVERGED
        assert result.cycle_number == 2
        assert abs(result.point[0] - 1) < traits.real('1e-30')

    def test_verbose_output(self, exact_tracker, linear_path, capsys):
        PowerSeriesEndgame(exact_tracker(*linear_path), CONFIG, verbose=True).run(
            0.1, linear_path[0](0.1))
        captured = capsys.readouterr()
        assert "Starting power series endgame" in captured.out
        assert "CONVERGED" in captured.out


class TestEndgameResult:
    """Test result reporting."""

    def test_as_dict(self, exact_tracker, square_root_path):
        point, info = run_power_series_endgame(
            exact_tracker(*square_root_path), square_root_path[0](0.1), 0.1,
            options={'final_tolerance': 1e-8})

        assert abs(point[0] - 1.0) < 1e-10
        assert info['success']
        assert info['status'] == 'CONVERGED'
        assert info['cycle_number'] == 2
        assert info['num_samples'] == 3
        assert len(info['predictions']) >= 1

    def test_numerical_degeneracy_raises(self):
        result = EndgameResult(EndgameStatus.NUMERICAL_DEGENERACY, np.zeros(1), 0.1,
                               message="times coincide")
        with pytest.raises(NumericalDegeneracy):
            result.raise_for_status()

    def test_repr(self):
        result = EndgameResult(EndgameStatus.CONVERGED, np.zeros(1), 0.1, cycle_number=1)
        assert "CONVERGED" in repr(result)
