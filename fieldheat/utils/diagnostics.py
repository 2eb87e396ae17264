"""
fieldheat/utils/diagnostics.py

Targeted, low-noise diagnostics for the coupled conduction/heat loop.
Import and call these from solvers/workflows when debug=True.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


def _fmt_range(x: np.ndarray, name: str) -> str:
    if x.size == 0:
        return f"{name}: (empty)"
    return f"{name}∈[{np.min(x):+.3e},{np.max(x):+.3e}]"


def log_state_summary(
    *,
    phi: np.ndarray,
    T: Optional[np.ndarray] = None,
    resid: Optional[np.ndarray] = None,
    prefix: str = "[diag]",
) -> None:
    """Print compact ranges for the two fields."""
    msg = [prefix, _fmt_range(phi, "φ")]
    if T is not None:
        msg.append(_fmt_range(T, "T"))
    if resid is not None:
        msg.append(f"||res||_inf={float(np.linalg.norm(resid, ord=np.inf)):.3e}")
    print(" | ".join(msg))


def log_solver_summary(
    *,
    field: str,
    converged: bool,
    iters: int,
    res_norm: float,
    max_iter: int,
    preconditioner: str,
    prefix: str = "[cg]",
) -> None:
    print(
        f"{prefix} {field} done | converged={converged} | iters={iters}/{max_iter} | "
        f"||r||_2={res_norm:.3e} | pc={preconditioner}"
    )


def log_step(
    *,
    step: int,
    time_s: float,
    current_iters: int,
    heat_iters: int,
    max_temperature: float,
    max_heating_power: float,
    prefix: str = "[step]",
) -> None:
    """
    Compact log for each time step. Called by solver/time_integration.py.
    """
    print(
        f"{prefix} {step:04d} t={time_s:.3e} s | CG φ={current_iters} T={heat_iters} | "
        f"Tmax={max_temperature:.2f} K | max p_J={max_heating_power:.3e} W/nm^3"
    )


def log_interface_summary(
    *,
    kind: str,
    matched: int,
    total: int,
    prefix: str = "[diag]",
) -> None:
    """Tiny summary of how many interface faces received a value."""
    pct = 100.0 * matched / total if total else 100.0
    print(f"{prefix} interface {kind} | {matched}/{total} faces mapped ({pct:.1f}%)")
