"""
Hermite interpolation for the endgames.

Given sample times, the points at those times and the derivatives dx/dt
there, build the Hermite divided-difference table and evaluate the
interpolating polynomial at a target time.  The endgame compares such
extrapolations to estimate the endpoint of a path and its cycle number.
"""

from typing import List, NamedTuple, Sequence

import numpy as np

from pyendgame.exceptions import InsufficientSamples, NumericalDegeneracy
from pyendgame.numtraits import DOUBLE_PRECISION, PrecisionTraits


class DividedDifferenceTable(NamedTuple):
    """Hermite divided differences of a set of samples.

    ``nodes`` lists every sample time twice.  ``values[i, j]`` is the
    divided difference over nodes ``i-j .. i`` (a vector), so the diagonal
    holds the coefficients of the Newton form.
    """
    nodes: List
    values: np.ndarray

    @property
    def size(self) -> int:
        return len(self.nodes)

    def evaluate(self, target_time) -> np.ndarray:
        """Evaluate the Hermite polynomial at ``target_time`` (Horner form)."""
        result = self.values[self.size - 1, self.size - 1]
        for k in range(self.size - 2, -1, -1):
            result = result * (target_time - self.nodes[k]) + self.values[k, k]
        return np.array(result, copy=True)


def _time_difference(nodes: Sequence, i: int, k: int, traits: PrecisionTraits):
    difference = nodes[i] - nodes[k]
    scale = max(abs(nodes[i]), abs(nodes[k]))
    if abs(difference) <= traits.epsilon() * scale:
        raise NumericalDegeneracy(
            f"Sample times {nodes[k]} and {nodes[i]} coincide; cannot form a divided difference")
    return difference


def divided_difference_table(times: Sequence,
                             samples: Sequence,
                             derivatives: Sequence,
                             traits: PrecisionTraits = DOUBLE_PRECISION) -> DividedDifferenceTable:
    """Build the Hermite divided-difference table.

    Each sample contributes two rows, the first carrying its value and the
    second its value together with its derivative.

    Args:
        times: Sample times t_0 .. t_{N-1}.
        samples: Points x(t_i).
        derivatives: Derivatives dx/dt at t_i.
        traits: Precision of the computation.

    Returns:
        A read-only table of shape (2N, 2N, dim).

    Raises:
        NumericalDegeneracy: if two sample times (nearly) coincide.
        ValueError: on mismatched lengths or dimensions.
    """
    num_points = len(times)
    if num_points == 0:
        raise InsufficientSamples("At least one sample is needed")
    if len(samples) != num_points or len(derivatives) != num_points:
        raise ValueError("times, samples and derivatives must have the same length")

    points = [traits.array(s) for s in samples]
    slopes = [traits.array(d) for d in derivatives]
    dim = len(points[0])
    if any(len(p) != dim for p in points) or any(len(d) != dim for d in slopes):
        raise ValueError("All samples and derivatives must share one dimension")

    size = 2 * num_points
    nodes = [traits.scalar(t) for t in times for _ in range(2)]
    table = traits.zeros((size, size, dim))

    for i in range(num_points):
        table[2*i, 0] = points[i]
        table[2*i + 1, 0] = points[i]
        table[2*i + 1, 1] = slopes[i]

    for i in range(1, num_points):
        table[2*i, 1] = (table[2*i, 0] - table[2*i - 1, 0]) / _time_difference(nodes, 2*i, 2*i - 1, traits)

    for j in range(2, size):
        for i in range(j, size):
            table[i, j] = (table[i, j - 1] - table[i - 1, j - 1]) / _time_difference(nodes, i, i - j, traits)

    table.setflags(write=False)
    return DividedDifferenceTable(nodes, table)


def hermite_interpolate_and_solve(target_time,
                                  num_sample_points: int,
                                  times: Sequence,
                                  samples: Sequence,
                                  derivatives: Sequence,
                                  traits: PrecisionTraits = DOUBLE_PRECISION) -> np.ndarray:
    """Estimate x(target_time) by Hermite interpolation.

    Only the newest ``num_sample_points`` entries (the end of each sequence)
    are used.  If the samples lie on a polynomial of degree below
    ``2 * num_sample_points``, the result is that polynomial evaluated at
    ``target_time`` up to roundoff.

    Args:
        target_time: Time at which to evaluate.
        num_sample_points: Number of samples to interpolate through.
        times: Sample times, newest last.
        samples: Points at those times.
        derivatives: dx/dt at those times.
        traits: Precision of the computation.

    Raises:
        InsufficientSamples: if fewer than ``num_sample_points`` are given.
        NumericalDegeneracy: if two of the chosen times (nearly) coincide.
    """
    if num_sample_points < 1:
        raise ValueError(f"num_sample_points must be positive, got {num_sample_points}")
    for name, sequence in (('times', times), ('samples', samples), ('derivatives', derivatives)):
        if len(sequence) < num_sample_points:
            raise InsufficientSamples(
                f"Need {num_sample_points} {name}, only {len(sequence)} provided")

    table = divided_difference_table(list(times)[-num_sample_points:],
                                     list(samples)[-num_sample_points:],
                                     list(derivatives)[-num_sample_points:],
                                     traits)
    return table.evaluate(traits.scalar(target_time))
