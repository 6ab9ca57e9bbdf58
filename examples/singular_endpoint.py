"""
Example demonstrating the power-series endgame on a singular endpoint.

The target system is
- x^2 = 0 (a double root at x = 0)
- y = 1

tracked from the start system x^2 = 1, y = 1 with a straight-line homotopy.
Both paths end at the double root with cycle number 2.  Near t = 0 the
Jacobian becomes singular, so adaptive precision raises the number of
digits before the endgame finishes.
"""

import sys
import os
import time

import numpy as np

# Add the parent directory to the path so we can import pyendgame
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pyendgame import AMPConfig, StraightLineHomotopy, track_paths


def target(v):
    x, y = v
    return [x**2, y - 1]


def target_jacobian(v):
    x, y = v
    return [[2 * x, 0], [0, 1]]


def start(v):
    x, y = v
    return [x**2 - 1, y - 1]


def start_jacobian(v):
    x, y = v
    return [[2 * x, 0], [0, 1]]


def main():
    """Run the singular endpoint example."""
    print("PyEndgame Singular Endpoint Example")
    print("===================================")

    homotopy = StraightLineHomotopy(target, target_jacobian, start, start_jacobian)
    start_points = [np.array([1.0, 1.0]), np.array([-1.0, 1.0])]

    # Bounds for the AMP constants: 2 variables, degree 2, coefficients summing to 2
    amp_config = AMPConfig.from_bounds(2, 2, 2.0)

    start_time = time.time()
    end_points, results = track_paths(homotopy, start_points,
                                      amp_config=amp_config,
                                      endgame_options={'final_tolerance': 1e-10},
                                      verbose=True)
    solve_time = time.time() - start_time
    print(f"\nTracking completed in {solve_time:.3f} seconds")

    for point, info in zip(end_points, results):
        values = ", ".join(f"{complex(v):.3e}" for v in point)
        print(f"\nPath {info['path_index'] + 1}: [{values}]")
        print(f"  status: {info['status']}")
        print(f"  cycle number: {info['cycle_number']}")
        print(f"  precision: {info['precision_digits']} digits "
              f"({info['precision_increases']} increases)")
        if 'endgame' in info:
            print(f"  endgame samples: {info['endgame']['num_samples']}")


if __name__ == "__main__":
    main()
