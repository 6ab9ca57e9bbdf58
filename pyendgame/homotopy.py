"""
Homotopies consumed by the tracker.

A homotopy provides H(x, t), its Jacobian with respect to x and its
derivative with respect to t.  How the underlying system is represented and
evaluated is up to the caller; these classes only combine callables.  The
callables receive the point as an array at whatever precision the tracker
is using and should build their results from its entries.
"""

from typing import Callable

import numpy as np


class NumericHomotopy:
    """
    A homotopy H(x, t) given directly by callables.

    Args:
        evaluate: (x, t) -> H(x, t)
        jacobian_x: (x, t) -> dH/dx
        deriv_t: (x, t) -> dH/dt
    """

    def __init__(self,
                 evaluate: Callable[[np.ndarray, complex], np.ndarray],
                 jacobian_x: Callable[[np.ndarray, complex], np.ndarray],
                 deriv_t: Callable[[np.ndarray, complex], np.ndarray]):
        self._evaluate = evaluate
        self._jacobian_x = jacobian_x
        self._deriv_t = deriv_t

    def evaluate(self, point: np.ndarray, t) -> np.ndarray:
        return self._evaluate(point, t)

    def jacobian_x(self, point: np.ndarray, t) -> np.ndarray:
        return self._jacobian_x(point, t)

    def deriv_t(self, point: np.ndarray, t) -> np.ndarray:
        return self._deriv_t(point, t)


class StraightLineHomotopy:
    """
    The homotopy H(x, t) = (1-t) f(x) + t * gamma * g(x).

    t = 1 is the start system g, t = 0 the target system f.

    Args:
        target: x -> f(x)
        target_jacobian: x -> df/dx
        start: x -> g(x)
        start_jacobian: x -> dg/dx
        gamma: Random complex number for the homotopy
    """

    def __init__(self,
                 target: Callable[[np.ndarray], np.ndarray],
                 target_jacobian: Callable[[np.ndarray], np.ndarray],
                 start: Callable[[np.ndarray], np.ndarray],
                 start_jacobian: Callable[[np.ndarray], np.ndarray],
                 gamma: complex = 0.6+0.8j):
        self.target = target
        self.target_jacobian = target_jacobian
        self.start = start
        self.start_jacobian = start_jacobian
        self.gamma = gamma

    def evaluate(self, point: np.ndarray, t) -> np.ndarray:
        f_val = np.asarray(self.target(point))
        g_val = np.asarray(self.start(point))
        return (1 - t) * f_val + t * self.gamma * g_val

    def jacobian_x(self, point: np.ndarray, t) -> np.ndarray:
        jac_f = np.asarray(self.target_jacobian(point))
        jac_g = np.asarray(self.start_jacobian(point))
        return (1 - t) * jac_f + t * self.gamma * jac_g

    def deriv_t(self, point: np.ndarray, t) -> np.ndarray:
        # dH/dt = -f(x) + gamma*g(x)
        f_val = np.asarray(self.target(point))
        g_val = np.asarray(self.start(point))
        return -f_val + self.gamma * g_val
