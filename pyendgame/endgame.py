"""
Endgame module for PyEndgame.

This module implements the power-series endgame for paths whose endpoint may
be singular.  Near the target time t* a path with cycle number c is a power
series in s = (t - t*)^(1/c); in the s-plane the samples lie on an analytic
curve, and Hermite extrapolation to s = 0 estimates the endpoint.  The cycle
number is unknown, so it is searched for: trial cycle numbers are accepted
when two extrapolations from different sample counts agree.
"""

from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from pyendgame.config import EndgameConfig
from pyendgame.exceptions import (
    CycleNumberExceeded,
    EndgameError,
    NumericalDegeneracy,
    PrecisionInadequate,
)
from pyendgame.interpolation import hermite_interpolate_and_solve
from pyendgame.numtraits import DOUBLE_PRECISION, PrecisionTraits
from pyendgame.samples import Sample, SampleWindow
from pyendgame.tracking import TrackingStatus


class EndgameStatus(Enum):
    """Status of an endgame procedure."""
    COLLECTING_SAMPLES = 0
    EXTRAPOLATING = 1
    CONVERGED = 2
    INSUFFICIENT_PRECISION = 3
    CYCLE_NUMBER_EXCEEDED = 4
    NUMERICAL_DEGENERACY = 5
    MIN_TRACK_TIME_REACHED = 6
    TRACKER_FAILED = 7
    SECURITY_MAX_NORM_REACHED = 8


class EndpointEstimate(NamedTuple):
    """One extrapolated endpoint and how it was obtained."""
    point: np.ndarray
    cycle_number: int
    window_size: int
    time: Any


class CycleNumberTrial(NamedTuple):
    cycle_number: int
    coarse: EndpointEstimate
    fine: EndpointEstimate
    difference: Any


class CycleNumberSearch(NamedTuple):
    """Outcome of one pass of search_cycle_number over a window."""
    status: EndgameStatus
    estimate: Optional[EndpointEstimate]
    trials: List[CycleNumberTrial]

    @property
    def cycle_number(self) -> Optional[int]:
        return self.estimate.cycle_number if self.estimate is not None else None


def to_s_plane(samples: Sequence[Sample],
               cycle_number: int,
               target_time,
               traits: PrecisionTraits = DOUBLE_PRECISION) -> Tuple[list, list, list]:
    """Rewrite samples in terms of s = (t - target_time)^(1/cycle_number).

    Derivatives follow the chain rule, dx/ds = dx/dt * c * s^(c-1).

    Returns:
        (s_times, points, s_derivatives)
    """
    target = traits.scalar(target_time)
    s_times, points, s_derivatives = [], [], []
    for sample in samples:
        s = traits.root(traits.scalar(sample.time) - target, cycle_number)
        s_times.append(s)
        points.append(traits.array(sample.point))
        s_derivatives.append(traits.array(sample.derivative) * (cycle_number * s ** (cycle_number - 1)))
    return s_times, points, s_derivatives


def extrapolate_at_target(samples: Sequence[Sample],
                          cycle_number: int,
                          num_sample_points: int,
                          target_time,
                          traits: PrecisionTraits = DOUBLE_PRECISION) -> EndpointEstimate:
    """Estimate the endpoint from the newest ``num_sample_points`` samples.

    Raises:
        InsufficientSamples: if fewer samples are given.
        NumericalDegeneracy: if two sample times (nearly) coincide.
    """
    s_times, points, s_derivatives = to_s_plane(
        list(samples)[-num_sample_points:], cycle_number, target_time, traits)
    point = hermite_interpolate_and_solve(
        0, num_sample_points, s_times, points, s_derivatives, traits)
    return EndpointEstimate(point, cycle_number, num_sample_points, samples[-1].time)


def search_cycle_number(window: SampleWindow,
                        config: EndgameConfig,
                        traits: PrecisionTraits = DOUBLE_PRECISION) -> CycleNumberSearch:
    """Search for a cycle number whose extrapolations agree.

    For each trial cycle number c = 1 .. max_cycle_number, the endpoint is
    extrapolated from the newest m = config.hermite_points(c) samples and
    from the newest m + 1.  The first c for which the two estimates are
    within ``config.final_tolerance`` wins.

    Args:
        window: Samples collected so far.
        config: Endgame settings.
        traits: Precision of the samples.

    Returns:
        A CycleNumberSearch whose status is CONVERGED, COLLECTING_SAMPLES
        (the window is too short for the next trial), NUMERICAL_DEGENERACY
        or CYCLE_NUMBER_EXCEEDED.  In the last case the estimate is the
        trial whose two extrapolations agreed best.
    """
    trials: List[CycleNumberTrial] = []
    for cycle_number in range(1, config.max_cycle_number + 1):
        num_points = config.hermite_points(cycle_number)
        if len(window) < num_points + 1:
            return CycleNumberSearch(EndgameStatus.COLLECTING_SAMPLES, None, trials)

        samples = window.newest(num_points + 1)
        try:
            coarse = extrapolate_at_target(samples, cycle_number, num_points, window.target_time, traits)
            fine = extrapolate_at_target(samples, cycle_number, num_points + 1, window.target_time, traits)
        except NumericalDegeneracy:
            return CycleNumberSearch(EndgameStatus.NUMERICAL_DEGENERACY, None, trials)

        difference = traits.norm(fine.point - coarse.point)
        trials.append(CycleNumberTrial(cycle_number, coarse, fine, difference))
        if difference < config.final_tolerance:
            return CycleNumberSearch(EndgameStatus.CONVERGED, fine, trials)

    best = min(trials, key=lambda trial: trial.difference)
    return CycleNumberSearch(EndgameStatus.CYCLE_NUMBER_EXCEEDED, best.fine, trials)


class EndgameResult:
    """Final outcome of one endgame run.

    Attributes:
        status: Terminal EndgameStatus.
        point: Endpoint estimate on success; otherwise the best estimate
            available, or the last point tracked to.
        time: Time of the last sample taken.
        cycle_number: Cycle number of the accepted estimate, if any.
        estimates: Endpoint estimates produced along the way.
        num_samples: Number of samples taken.
        digits_required: Digits requested by the tracker when the status is
            INSUFFICIENT_PRECISION.
        message: Human-readable reason for a failure.
        max_cycle_number: Largest cycle number the search tried.
    """

    def __init__(self,
                 status: EndgameStatus,
                 point: np.ndarray,
                 time,
                 cycle_number: Optional[int] = None,
                 estimates: Optional[List[EndpointEstimate]] = None,
                 num_samples: int = 0,
                 digits_required: Optional[int] = None,
                 message: str = "",
                 max_cycle_number: Optional[int] = None):
        self.status = status
        self.point = point
        self.time = time
        self.cycle_number = cycle_number
        self.estimates = estimates if estimates is not None else []
        self.num_samples = num_samples
        self.digits_required = digits_required
        self.message = message
        self.max_cycle_number = max_cycle_number

    @property
    def success(self) -> bool:
        return self.status == EndgameStatus.CONVERGED

    def raise_for_status(self):
        """Raise the exception matching a failed status; no-op on success."""
        if self.success:
            return
        if self.status == EndgameStatus.CYCLE_NUMBER_EXCEEDED:
            raise CycleNumberExceeded(self.message, max_cycle_number=self.max_cycle_number)
        if self.status == EndgameStatus.INSUFFICIENT_PRECISION:
            raise PrecisionInadequate(self.message, digits_required=self.digits_required)
        if self.status == EndgameStatus.NUMERICAL_DEGENERACY:
            raise NumericalDegeneracy(self.message)
        raise EndgameError(f"{self.status.name}: {self.message}")

    def as_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'status': self.status.name,
            'singular': self.cycle_number is not None and self.cycle_number > 1,
            'cycle_number': self.cycle_number,
            'time': self.time,
            'num_samples': self.num_samples,
            'digits_required': self.digits_required,
            'message': self.message,
            'predictions': [estimate.point for estimate in self.estimates],
        }

    def __repr__(self) -> str:
        return (f"EndgameResult(status={self.status.name}, cycle_number={self.cycle_number}, "
                f"num_samples={self.num_samples})")


class PowerSeriesEndgame:
    """
    Power-series endgame driver.

    The endgame samples the path on the geometric sequence
    t* + f^k (t0 - t*), keeps the samples in a window and runs the cycle
    number search after each one.

    The tracker is any object providing ``traits``,
    ``track(start_time, target_time, start_point)`` returning a TrackResult,
    and ``derivative(time, point)`` returning dx/dt.  A fixed-precision
    tracker gives a fixed-precision endgame; an adaptive one reports
    precision failures, which end the run with INSUFFICIENT_PRECISION so the
    caller can raise precision and start again from the last good sample.
    """

    def __init__(self, tracker, config: Optional[EndgameConfig] = None, verbose: bool = False):
        self.tracker = tracker
        self.config = config if config is not None else EndgameConfig()
        self.verbose = verbose

        self.status = EndgameStatus.COLLECTING_SAMPLES
        self.window: Optional[SampleWindow] = None
        self.estimates: List[EndpointEstimate] = []
        self.last_search: Optional[CycleNumberSearch] = None

    @property
    def traits(self) -> PrecisionTraits:
        return self.tracker.traits

    def _finish(self, status: EndgameStatus, point, time,
                digits_required: Optional[int] = None, message: str = "") -> EndgameResult:
        self.status = status
        cycle_number = None
        if status == EndgameStatus.CONVERGED:
            cycle_number = self.estimates[-1].cycle_number
        if self.verbose:
            print(f"Power series endgame finished: {status.name} after {len(self.window)} samples"
                  + (f", cycle number {cycle_number}" if cycle_number is not None else ""))
        return EndgameResult(status, point, time,
                             cycle_number=cycle_number,
                             estimates=list(self.estimates),
                             num_samples=self._num_samples,
                             digits_required=digits_required,
                             message=message,
                             max_cycle_number=self.config.max_cycle_number)

    def _take_sample(self, time, point):
        derivative = self.tracker.derivative(time, point)
        self.window.append(time, point, derivative)
        self._num_samples += 1

    def run(self, start_time, start_point, target_time=0.0) -> EndgameResult:
        """Run the endgame from ``start_time`` until a terminal status.

        Args:
            start_time: Time at which the endgame takes over from tracking.
            start_point: Point on the path at ``start_time``.
            target_time: Time of the (possibly singular) endpoint.

        Returns:
            An EndgameResult.
        """
        cfg = self.config
        traits = self.traits
        self.window = SampleWindow(target_time, max_size=cfg.max_window_size)
        self.estimates = []
        self.last_search = None
        self.status = EndgameStatus.COLLECTING_SAMPLES
        self._num_samples = 0

        time = start_time
        point = traits.array(start_point)
        if self.verbose:
            print(f"Starting power series endgame at t={time}")

        try:
            self._take_sample(time, point)
        except np.linalg.LinAlgError as exc:
            return self._finish(EndgameStatus.TRACKER_FAILED, point, time,
                                message=f"derivative failed: {exc}")

        while True:
            self.status = EndgameStatus.EXTRAPOLATING
            search = search_cycle_number(self.window, cfg, traits)
            self.last_search = search

            if search.estimate is not None:
                self.estimates.append(search.estimate)
            if search.status == EndgameStatus.CONVERGED:
                return self._finish(EndgameStatus.CONVERGED, search.estimate.point, time)
            if search.status == EndgameStatus.NUMERICAL_DEGENERACY:
                return self._finish(EndgameStatus.NUMERICAL_DEGENERACY, self._best_point(point), time,
                                    message="sample times too close to form divided differences")
            if search.status == EndgameStatus.COLLECTING_SAMPLES:
                self.status = EndgameStatus.COLLECTING_SAMPLES

            if self.window.distance(time) * cfg.sample_factor < cfg.min_track_time:
                if search.status == EndgameStatus.CYCLE_NUMBER_EXCEEDED:
                    return self._finish(
                        EndgameStatus.CYCLE_NUMBER_EXCEEDED, self._best_point(point), time,
                        message=f"no cycle number up to {cfg.max_cycle_number} converged")
                return self._finish(EndgameStatus.MIN_TRACK_TIME_REACHED, self._best_point(point), time,
                                    message="reached the minimum track time")

            next_time = target_time + cfg.sample_factor * (time - target_time)
            result = self.tracker.track(time, next_time, point)
            if result.status == TrackingStatus.PRECISION_INADEQUATE:
                self.window.clear()
                return self._finish(EndgameStatus.INSUFFICIENT_PRECISION, point, time,
                                    digits_required=result.digits_required,
                                    message=f"AMP criteria {', '.join(result.failed_criteria)} failed "
                                            f"at {traits.num_digits()} digits")
            if not result.success:
                return self._finish(EndgameStatus.TRACKER_FAILED, self._best_point(point), time,
                                    message=f"tracker stopped with {result.status.name}")

            time, point = next_time, result.point
            if traits.norm(point) > cfg.max_norm:
                return self._finish(EndgameStatus.SECURITY_MAX_NORM_REACHED, point, time,
                                    message=f"sample norm exceeded {cfg.max_norm}")
            try:
                self._take_sample(time, point)
            except np.linalg.LinAlgError as exc:
                return self._finish(EndgameStatus.TRACKER_FAILED, self._best_point(point), time,
                                    message=f"derivative failed: {exc}")

    def _best_point(self, fallback):
        return self.estimates[-1].point if self.estimates else fallback


def run_power_series_endgame(tracker,
                             point: np.ndarray,
                             t,
                             options: Optional[Dict[str, Any]] = None,
                             target_time=0.0,
                             verbose: bool = False) -> Tuple[np.ndarray, Dict[str, Any]]:
    """
    Run the power-series endgame from a given point and time value.

    This is a convenience function for using the power-series endgame.

    Args:
        tracker: Tracker providing ``traits``, ``track`` and ``derivative``
        point: Current point on the path
        t: Current t value
        options: Optional EndgameConfig fields
        target_time: Time of the endpoint
        verbose: Whether to print progress

    Returns:
        Tuple of (end_point, result_info)
    """
    endgame = PowerSeriesEndgame(tracker, EndgameConfig.from_options(options), verbose=verbose)
    result = endgame.run(t, point, target_time=target_time)
    return result.point, result.as_dict()
