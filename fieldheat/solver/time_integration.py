# -*- coding: utf-8 -*-
"""
Time integration of the lagged current/heat coupling (θ-method).

One step:
  1. assemble + solve conduction with the latest temperature,
  2. assemble + solve heat with the chosen scheme (θ=1 implicit Euler,
     θ=1/2 Crank–Nicolson), coefficients taken at the pre-step temperature.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from ..utils import diagnostics as diag
from ..utils import logger as log
from .linear import SolverControl

if TYPE_CHECKING:  # pragma: no cover
    from ..models.currents_and_heating import CurrentsAndHeating

__all__ = ["ThetaMethod", "get_scheme", "StepRecord", "advance", "run_transient"]


@dataclass(frozen=True)
class ThetaMethod:
    theta: float = 1.0  # 1.0: backward Euler
    name: str = "euler"


_SCHEMES: Dict[str, ThetaMethod] = {
    "euler": ThetaMethod(1.0, "euler"),
    "crank_nicolson": ThetaMethod(0.5, "crank_nicolson"),
}


def get_scheme(name: str) -> ThetaMethod:
    key = name.strip().lower().replace("-", "_")
    if key in ("implicit_euler", "euler_implicit", "backward_euler"):
        key = "euler"
    if key in ("cn", "cranknicolson"):
        key = "crank_nicolson"
    try:
        return _SCHEMES[key]
    except KeyError:
        raise ValueError(f"Unknown time scheme: {name!r} (expected 'euler' or 'crank_nicolson')") from None


@dataclass(slots=True)
class StepRecord:
    step: int
    time: float                 # [s], end of the step
    current_iterations: int
    heat_iterations: int
    max_temperature: float      # [K]
    max_heating_power: float    # [W/nm^3]

    def as_dict(self) -> dict:
        return asdict(self)


def advance(
    model: "CurrentsAndHeating",
    control: Optional[SolverControl] = None,
    *,
    step: int = 0,
    time: float = 0.0,
) -> StepRecord:
    """One coupled step; `time` is the time at the start of the step."""
    control = control or SolverControl()

    model.assemble_current_system()
    it_current = model.solve_current(control.max_iter, control.tol, control.pc_ssor, control.ssor_param)

    max_power = model.assemble_heating_system()
    it_heat = model.solve_heat(control.max_iter, control.tol, control.pc_ssor, control.ssor_param)

    rec = StepRecord(
        step=step,
        time=time + model.time_step,
        current_iterations=it_current,
        heat_iterations=it_heat,
        max_temperature=model.get_max_temperature(),
        max_heating_power=max_power,
    )
    if log.is_verbose():
        diag.log_step(
            step=rec.step, time_s=rec.time, current_iters=rec.current_iterations,
            heat_iters=rec.heat_iterations, max_temperature=rec.max_temperature,
            max_heating_power=rec.max_heating_power,
        )
    return rec


def run_transient(
    model: "CurrentsAndHeating",
    n_steps: int,
    control: Optional[SolverControl] = None,
    on_step: Optional[Callable[[StepRecord], None]] = None,
    *,
    t0: float = 0.0,
) -> List[StepRecord]:
    """Advance `n_steps` times; `on_step` sees every record as it is produced."""
    if n_steps < 0:
        raise ValueError(f"n_steps must be >= 0, got {n_steps}")
    history: List[StepRecord] = []
    t = float(t0)
    for k in range(1, int(n_steps) + 1):
        rec = advance(model, control, step=k, time=t)
        t = rec.time
        history.append(rec)
        if on_step is not None:
            on_step(rec)
    if history:
        log.info(f"Transient done: {len(history)} steps, t={t:.3e} s, "
                 f"Tmax={history[-1].max_temperature:.2f} K")
    return history
