"""
Shared fixtures for the PyEndgame tests.
"""

import numpy as np
import pytest

from pyendgame import DOUBLE_PRECISION, TrackResult, TrackingStatus


class ExactPathTracker:
    """Tracker stand-in that reads points off a known closed-form path."""

    def __init__(self, path, derivative, traits=DOUBLE_PRECISION):
        self.path = path
        self.path_derivative = derivative
        self.traits = traits
        self.calls = []

    def track(self, start_time, target_time, start_point):
        self.calls.append((start_time, target_time))
        point = self.traits.array(self.path(target_time))
        return TrackResult(TrackingStatus.SUCCESS, point, target_time, 1, 0)

    def derivative(self, time, point):
        return self.traits.array(self.path_derivative(time))


class FailingTracker(ExactPathTracker):
    """Follows the path until ``fail_below``, then reports ``status``."""

    def __init__(self, path, derivative, fail_below, status, digits_required=None):
        super().__init__(path, derivative)
        self.fail_below = fail_below
        self.status = status
        self.digits_required = digits_required

    def track(self, start_time, target_time, start_point):
        if abs(target_time) < self.fail_below:
            return TrackResult(self.status, self.traits.array(start_point), start_time, 1, 3,
                               digits_required=self.digits_required,
                               failed_criteria=('C',) if self.digits_required else ())
        return super().track(start_time, target_time, start_point)


@pytest.fixture
def exact_tracker():
    """Factory for trackers following a closed-form path."""
    return ExactPathTracker


@pytest.fixture
def failing_tracker():
    return FailingTracker


@pytest.fixture
def linear_path():
    """x(t) = (2 + 3t, 1 - t), a cycle number 1 path ending at (2, 1)."""
    return (lambda t: [2 + 3 * t, 1 - t],
            lambda t: [3, -1])


@pytest.fixture
def square_root_path():
    """x(t) = 1 + t^(1/2), a cycle number 2 path ending at 1."""
    return (lambda t: [1 + np.sqrt(complex(t))],
            lambda t: [0.5 / np.sqrt(complex(t))])
