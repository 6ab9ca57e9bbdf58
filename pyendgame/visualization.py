"""
Visualization module for PyEndgame.

This module provides functions to visualize endgame samples and the
convergence of endpoint estimates.  It needs the optional matplotlib
dependency.
"""

from typing import Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np

from pyendgame.endgame import EndgameResult
from pyendgame.samples import SampleWindow


def plot_sample_window(window: SampleWindow,
                       var_idx: int = 0,
                       title: Optional[str] = None,
                       figsize: Tuple[int, int] = (10, 8),
                       estimate: Optional[np.ndarray] = None) -> plt.Figure:
    """Plot the samples of an endgame window in the complex plane.

    Args:
        window: Samples collected by the endgame
        var_idx: Index of the variable to plot (default: 0)
        title: Plot title (default: auto-generated)
        figsize: Figure size
        estimate: Optional endpoint estimate to mark

    Returns:
        The created matplotlib figure
    """
    values = [complex(sample.point[var_idx]) for sample in window]
    distances = [float(window.distance(sample.time)) for sample in window]

    fig, ax = plt.subplots(figsize=figsize)
    scatter = ax.scatter([z.real for z in values], [z.imag for z in values],
                         c=np.log10(distances), cmap='viridis', s=30, alpha=0.7)
    cbar = plt.colorbar(scatter, ax=ax)
    cbar.set_label('log10 |t - t*|')
    ax.plot([z.real for z in values], [z.imag for z in values], 'k-', alpha=0.3)

    if estimate is not None:
        z = complex(estimate[var_idx])
        ax.plot(z.real, z.imag, 'r*', markersize=14, label='Endpoint estimate')
        ax.legend()

    ax.set_xlabel('Real Part')
    ax.set_ylabel('Imaginary Part')
    if title is None:
        title = f'Endgame Samples (Variable {var_idx})'
    ax.set_title(title)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig


def plot_estimate_convergence(result: EndgameResult,
                              title: Optional[str] = None,
                              figsize: Tuple[int, int] = (10, 6)) -> plt.Figure:
    """Plot distances between consecutive endpoint estimates.

    Args:
        result: Outcome of an endgame run
        title: Plot title (default: auto-generated)
        figsize: Figure size

    Returns:
        The created matplotlib figure
    """
    points = [np.array([complex(v) for v in estimate.point]) for estimate in result.estimates]
    differences = [float(np.linalg.norm(b - a)) for a, b in zip(points, points[1:])]

    fig, ax = plt.subplots(figsize=figsize)
    if differences:
        ax.semilogy(range(1, len(differences) + 1), differences, 'o-')
    ax.set_xlabel('Estimate')
    ax.set_ylabel('Distance to previous estimate')
    if title is None:
        title = f'Endpoint Estimates ({result.status.name})'
    ax.set_title(title)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig
