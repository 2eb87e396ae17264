# fieldheat/postprocess/visualization.py
"""
Lightweight plotting helpers for transient runs.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
import matplotlib.pyplot as plt

__all__ = ["plot_temperature_history"]


def _c64(x):
    return np.ascontiguousarray(np.asarray(x, dtype=np.float64))


def plot_temperature_history(
    time_s: Iterable[float],
    max_temperature_K: Iterable[float],
    *,
    max_heating_power: Iterable[float] | None = None,
    ax: plt.Axes | None = None,
    title: str | None = "Maximum temperature",
) -> Tuple[plt.Figure, plt.Axes]:
    """
    Plot Tmax(t) with time in ps; optionally the max Joule density on a
    secondary axis.

    Returns
    -------
    fig, ax : matplotlib Figure and Axes
    """
    t_ps = _c64(time_s) * 1e12
    T = _c64(max_temperature_K)

    if ax is None:
        fig, ax = plt.subplots(figsize=(6.0, 4.0))
    else:
        fig = ax.figure

    ax.plot(t_ps, T, lw=1.8, color="tab:red", label="T_max")
    ax.set_xlabel("t [ps]")
    ax.set_ylabel("T_max [K]")
    ax.grid(True, alpha=0.3)

    if max_heating_power is not None:
        ax2 = ax.twinx()
        ax2.plot(t_ps, _c64(max_heating_power), lw=1.2, ls="--", color="tab:blue", label="max p_J")
        ax2.set_ylabel("max p_J [W/nm^3]")

    if title:
        ax.set_title(title)
    fig.tight_layout()
    return fig, ax
