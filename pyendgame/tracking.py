"""
Path tracking module for PyEndgame.

This module implements a predictor-corrector tracker that consults the AMP
criteria at every Newton iteration, and drivers that hand each path over to
the power-series endgame near the target time, raising precision whenever
the criteria ask for it.
"""

import time
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import numpy as np
from tqdm.auto import tqdm

from pyendgame.amp_criteria import require_adequate_precision
from pyendgame.config import AMPConfig, EndgameConfig
from pyendgame.exceptions import PrecisionInadequate
from pyendgame.numtraits import DOUBLE_PRECISION, PrecisionTraits, precision_for_digits


class TrackingStatus(Enum):
    """Status of one call to HomotopyTracker.track."""
    SUCCESS = 0
    PRECISION_INADEQUATE = 1
    STEP_SIZE_TOO_SMALL = 2
    SINGULAR_JACOBIAN = 3
    DIVERGED = 4
    MAX_STEPS_REACHED = 5


class TrackResult(NamedTuple):
    """Outcome of tracking one segment.

    On failure ``point`` and ``time`` are the last point successfully
    reached, so tracking can resume from there.
    """
    status: TrackingStatus
    point: np.ndarray
    time: Any
    steps: int = 0
    newton_iterations: int = 0
    digits_required: Optional[int] = None
    failed_criteria: Tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.status == TrackingStatus.SUCCESS


class _Correction(NamedTuple):
    point: np.ndarray
    converged: bool
    iterations: int
    precision_error: Optional[PrecisionInadequate] = None


def euler_predictor(t_current, t_target, point: np.ndarray, tangent: np.ndarray) -> np.ndarray:
    """Euler predictor step.

    Args:
        t_current: Current parameter value
        t_target: Target parameter value
        point: Current point
        tangent: dx/dt at the current point

    Returns:
        Predicted point at t_target
    """
    return point + (t_target - t_current) * tangent


class HomotopyTracker:
    """
    Predictor-corrector tracker at one fixed precision.

    With an AMPConfig, Criteria A, B and C are checked after every Newton
    iteration.  A failure of Criterion B alone shrinks the step; any failure
    of A or C stops tracking with PRECISION_INADEQUATE and the number of
    digits needed.  Without an AMPConfig no criteria are checked.

    Step sizes are fractions of the length of the segment being tracked, so
    the same settings serve the long initial segment and the short
    geometric segments of the endgame.

    Args:
        homotopy: Object with evaluate, jacobian_x and deriv_t
        traits: Precision to track in
        amp_config: Adaptive precision settings, or None
        tol: Newton step length at which the corrector stops
        min_step_size: Smallest step, as a fraction of the segment
        max_step_size: Largest step, as a fraction of the segment
        max_newton_iterations: Newton iterations allowed per step
        max_steps: Steps allowed per segment
        max_norm: Points larger than this count as diverged
    """

    def __init__(self,
                 homotopy,
                 traits: PrecisionTraits = DOUBLE_PRECISION,
                 amp_config: Optional[AMPConfig] = None,
                 tol: float = 1e-10,
                 min_step_size: float = 1e-6,
                 max_step_size: float = 0.1,
                 max_newton_iterations: int = 5,
                 max_steps: int = 10000,
                 max_norm: float = 1e8):
        self.homotopy = homotopy
        self.traits = traits
        self.amp_config = amp_config
        self.tol = tol
        self.min_step_size = min_step_size
        self.max_step_size = max_step_size
        self.max_newton_iterations = max_newton_iterations
        self.max_steps = max_steps
        self.max_norm = max_norm

    def with_precision(self, traits: PrecisionTraits) -> 'HomotopyTracker':
        """A tracker identical to this one but working in ``traits``."""
        return HomotopyTracker(self.homotopy, traits, self.amp_config,
                               tol=self.tol,
                               min_step_size=self.min_step_size,
                               max_step_size=self.max_step_size,
                               max_newton_iterations=self.max_newton_iterations,
                               max_steps=self.max_steps,
                               max_norm=self.max_norm)

    def _jacobian(self, point, t) -> np.ndarray:
        return self.traits.matrix(self.homotopy.jacobian_x(point, t))

    def derivative(self, time, point) -> np.ndarray:
        """dx/dt = -(dH/dx)^-1 dH/dt at (point, time).

        Raises:
            numpy.linalg.LinAlgError: if the Jacobian cannot be solved with.
        """
        traits = self.traits
        t = traits.scalar(time)
        point = traits.array(point)
        deriv_t = traits.array(self.homotopy.deriv_t(point, t))
        return traits.solve(self._jacobian(point, t), -deriv_t)

    def _correct(self, predicted: np.ndarray, t) -> _Correction:
        traits = self.traits
        current = predicted
        for i in range(self.max_newton_iterations):
            H_val = traits.array(self.homotopy.evaluate(current, t))
            jac = self._jacobian(current, t)
            try:
                delta = traits.solve(jac, -H_val)
            except np.linalg.LinAlgError:
                return _Correction(current, False, i + 1)
            current = current + delta
            step_norm = traits.norm(delta)

            if self.amp_config is not None:
                remaining = self.max_newton_iterations - i - 1
                use_b = remaining > 0 and step_norm > 0
                try:
                    require_adequate_precision(
                        traits.matrix_norm(jac), traits.inverse_norm_estimate(jac),
                        current, self.tol, self.amp_config, traits,
                        num_newton_iterations_remaining=remaining if use_b else None,
                        norm_of_latest_newton_residual=step_norm if use_b else None)
                except PrecisionInadequate as exc:
                    if exc.failed_criteria == ('B',):
                        return _Correction(current, False, i + 1)
                    return _Correction(current, False, i + 1, exc)

            if step_norm < self.tol:
                return _Correction(current, True, i + 1)
        return _Correction(current, False, self.max_newton_iterations)

    def track(self, start_time, target_time, start_point) -> TrackResult:
        """Track from (start_point, start_time) to target_time.

        Returns:
            A TrackResult; on failure it holds the last point reached.
        """
        traits = self.traits
        t = traits.scalar(start_time)
        target = traits.scalar(target_time)
        current = traits.array(start_point)
        length = abs(target - t)
        step_size = self.max_step_size
        steps = 0
        newton_iters = 0

        while t != target:
            steps += 1
            if steps > self.max_steps:
                return TrackResult(TrackingStatus.MAX_STEPS_REACHED, current, t, steps, newton_iters)

            remaining = abs(target - t)
            h = step_size * length
            t_next = target if h >= remaining else t + (target - t) * (h / remaining)

            try:
                tangent = self.derivative(t, current)
            except np.linalg.LinAlgError:
                return TrackResult(TrackingStatus.SINGULAR_JACOBIAN, current, t, steps, newton_iters)

            predicted = euler_predictor(t, t_next, current, tangent)
            correction = self._correct(predicted, t_next)
            newton_iters += correction.iterations

            if correction.precision_error is not None:
                error = correction.precision_error
                return TrackResult(TrackingStatus.PRECISION_INADEQUATE, current, t, steps, newton_iters,
                                   digits_required=error.digits_required,
                                   failed_criteria=error.failed_criteria)

            if correction.converged:
                current, t = correction.point, t_next
                if not traits.is_finite(current) or traits.norm(current) > self.max_norm:
                    return TrackResult(TrackingStatus.DIVERGED, current, t, steps, newton_iters)
                # Increase step size if Newton converges quickly
                if correction.iterations <= 2:
                    step_size = min(self.max_step_size, step_size * 1.5)
            else:
                step_size = step_size / 2
                if step_size < self.min_step_size:
                    return TrackResult(TrackingStatus.STEP_SIZE_TOO_SMALL, current, t, steps, newton_iters)

        return TrackResult(TrackingStatus.SUCCESS, current, t, steps, newton_iters)


def _raise_precision(tracker: HomotopyTracker, digits_required: Optional[int]) -> Optional[HomotopyTracker]:
    current = tracker.traits.num_digits()
    digits = max(digits_required or 0, current + 1)
    if digits > tracker.amp_config.maximum_precision:
        return None
    return tracker.with_precision(precision_for_digits(digits))


def track_path(homotopy,
               start_point: np.ndarray,
               start_time: complex = 1.0,
               target_time: complex = 0.0,
               endgame_boundary: float = 0.1,
               traits: PrecisionTraits = DOUBLE_PRECISION,
               amp_config: Optional[AMPConfig] = None,
               tol: float = 1e-10,
               use_endgame: bool = True,
               endgame_options: Optional[Dict[str, Any]] = None,
               verbose: bool = False,
               **tracker_options) -> Tuple[np.ndarray, Dict[str, Any]]:
    """Track one path to ``target_time``, finishing with the endgame.

    The path is tracked to ``endgame_boundary`` (a time between start and
    target) and handed to the power-series endgame.  With an AMPConfig,
    precision failures in either phase raise the precision and resume from
    the last good point, up to ``amp_config.maximum_precision`` digits.

    Args:
        homotopy: Object with evaluate, jacobian_x and deriv_t
        start_point: Solution at start_time
        start_time: Start of the path (1 for a straight-line homotopy)
        target_time: End of the path
        endgame_boundary: Time at which the endgame takes over
        traits: Initial precision
        amp_config: Adaptive precision settings, or None for fixed precision
        tol: Newton tolerance of the tracker
        use_endgame: Whether to use the endgame for the final approach
        endgame_options: EndgameConfig fields
        verbose: Whether to print progress
        **tracker_options: Further HomotopyTracker arguments

    Returns:
        Tuple of (end_point, path_info)
    """
    # Import here to avoid circular import
    from pyendgame.endgame import EndgameStatus, PowerSeriesEndgame

    tracker = HomotopyTracker(homotopy, traits, amp_config, tol=tol, **tracker_options)
    endgame_config = EndgameConfig.from_options(endgame_options)

    path_info = {
        'success': False,
        'singular': False,
        'steps': 0,
        'newton_iters': 0,
        'precision_increases': 0,
        'precision_digits': traits.num_digits(),
        'endgame_used': False,
        'cycle_number': None,
        'status': None,
    }

    t = start_time
    current = tracker.traits.array(start_point)
    boundary = endgame_boundary if use_endgame else target_time

    def raise_precision(digits_required):
        new_tracker = _raise_precision(tracker, digits_required)
        if new_tracker is not None:
            path_info['precision_increases'] += 1
            path_info['precision_digits'] = new_tracker.traits.num_digits()
            if verbose:
                print(f"Raising precision to {new_tracker.traits.num_digits()} digits at t={t}")
        return new_tracker

    # Tracking phase
    while t != boundary:
        result = tracker.track(t, boundary, current)
        path_info['steps'] += result.steps
        path_info['newton_iters'] += result.newton_iterations
        t, current = result.time, result.point
        if result.success:
            t = boundary
            break
        if result.status == TrackingStatus.PRECISION_INADEQUATE and amp_config is not None:
            tracker = raise_precision(result.digits_required)
            if tracker is not None:
                continue
            path_info['status'] = 'PRECISION_LIMIT_REACHED'
        else:
            path_info['status'] = result.status.name
        if verbose:
            print(f"Path tracking stopped at t={t}: {path_info['status']}")
        return current, path_info

    if not use_endgame:
        path_info['success'] = True
        path_info['status'] = TrackingStatus.SUCCESS.name
        return current, path_info

    # Endgame phase
    path_info['endgame_used'] = True
    while True:
        endgame = PowerSeriesEndgame(tracker, endgame_config, verbose=verbose)
        outcome = endgame.run(t, current, target_time=target_time)
        path_info['status'] = outcome.status.name
        if outcome.status == EndgameStatus.INSUFFICIENT_PRECISION and amp_config is not None:
            t, current = outcome.time, outcome.point
            tracker = raise_precision(outcome.digits_required)
            if tracker is not None:
                continue
            path_info['status'] = 'PRECISION_LIMIT_REACHED'
        break

    path_info['success'] = outcome.success
    path_info['cycle_number'] = outcome.cycle_number
    path_info['singular'] = outcome.cycle_number is not None and outcome.cycle_number > 1
    path_info['endgame'] = outcome.as_dict()
    return outcome.point, path_info


def track_paths(homotopy,
                start_points: List[np.ndarray],
                verbose: bool = False,
                **options) -> Tuple[List[np.ndarray], List[Dict[str, Any]]]:
    """Track solution paths from a list of start points.

    Paths are independent: each gets its own tracker and endgame state, and
    only the homotopy and the configuration objects are shared.

    Args:
        homotopy: Object with evaluate, jacobian_x and deriv_t
        start_points: Start solution vectors
        verbose: Whether to print progress information
        **options: Passed on to track_path

    Returns:
        Tuple of (end_points, path_results).
    """
    n_paths = len(start_points)
    end_points: List[np.ndarray] = []
    path_results: List[Dict[str, Any]] = []

    if verbose:
        print(f"Tracking {n_paths} paths...")
        pbar = tqdm(total=n_paths)

    start = time.time()
    for i, start_point in enumerate(start_points):
        end_point, path_info = track_path(homotopy, start_point, verbose=False, **options)
        path_info['path_index'] = i
        end_points.append(end_point)
        path_results.append(path_info)
        if verbose:
            pbar.update(1)

    if verbose:
        pbar.close()
        elapsed = time.time() - start
        success_count = sum(info['success'] for info in path_results)
        print(f"Path tracking complete: {success_count}/{n_paths} successful paths "
              f"in {elapsed:.2f} seconds")
    return end_points, path_results
