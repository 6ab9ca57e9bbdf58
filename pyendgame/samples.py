"""
Sample windows for the power-series endgame.

The tracker produces one (time, point, derivative) sample per accepted step
as the path approaches the target time.  A window keeps them in the order
they were produced, oldest first, so the newest sample is always last.
"""

from collections import deque
from typing import Iterator, List, NamedTuple, Optional

import numpy as np

from pyendgame.exceptions import InsufficientSamples


def _frozen_copy(values) -> np.ndarray:
    array = np.array(values, copy=True)
    if array.ndim != 1:
        raise ValueError(f"Sample vectors must be one-dimensional, got shape {array.shape}")
    array.setflags(write=False)
    return array


class Sample(NamedTuple):
    """One point on the path together with dx/dt at that time."""
    time: complex
    point: np.ndarray
    derivative: np.ndarray


class SampleWindow:
    """Time-ordered samples approaching ``target_time``.

    Args:
        target_time: The (possibly singular) time the path is heading to.
        max_size: Keep at most this many samples, dropping the oldest.
    """

    def __init__(self, target_time: complex = 0.0, max_size: Optional[int] = None):
        self.target_time = target_time
        self.max_size = max_size
        self._samples = deque(maxlen=max_size)
        self.dimension = None

    def append(self, time, point, derivative) -> Sample:
        """Add a sample closer to the target than every sample held so far.

        Raises:
            ValueError: if dimensions disagree or the sample does not move
                closer to the target time.
        """
        point = _frozen_copy(point)
        derivative = _frozen_copy(derivative)
        if point.shape != derivative.shape:
            raise ValueError(
                f"point and derivative differ in length: {point.shape[0]} vs {derivative.shape[0]}")
        if self.dimension is not None and point.shape[0] != self.dimension:
            raise ValueError(
                f"Sample of dimension {point.shape[0]} added to a window of dimension {self.dimension}")
        if self._samples and not self.distance(time) < self.distance(self._samples[-1].time):
            raise ValueError(
                f"Samples must approach the target time; t={time} is no closer than "
                f"t={self._samples[-1].time}")

        sample = Sample(time, point, derivative)
        self._samples.append(sample)
        self.dimension = point.shape[0]
        return sample

    def distance(self, time) -> float:
        """Distance from ``time`` to the target time."""
        return abs(time - self.target_time)

    def newest(self, count: int) -> List[Sample]:
        """The ``count`` most recent samples, oldest of them first."""
        if count < 1:
            raise ValueError(f"count must be positive, got {count}")
        if count > len(self._samples):
            raise InsufficientSamples(
                f"Requested {count} samples but the window holds {len(self._samples)}")
        return list(self._samples)[-count:]

    @property
    def newest_sample(self) -> Sample:
        return self.newest(1)[0]

    @property
    def times(self) -> list:
        return [s.time for s in self._samples]

    @property
    def points(self) -> list:
        return [s.point for s in self._samples]

    @property
    def derivatives(self) -> list:
        return [s.derivative for s in self._samples]

    def clear(self):
        """Drop every sample, e.g. after a change of precision."""
        self._samples.clear()
        self.dimension = None

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def __getitem__(self, index) -> Sample:
        return self._samples[index]

    def __repr__(self) -> str:
        return f"SampleWindow({len(self)} samples, target_time={self.target_time})"
