# -*- coding: utf-8 -*-
"""
Single-run workflow wiring config → model → time loop → results.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from fieldheat.io.config import (
    RunConfig,
    build_materials,
    build_mesh,
    build_solver_control,
    build_time,
    load_config,
    material_constants,
)
from fieldheat.io.results import write_history_csv, write_metrics
from fieldheat.models.currents_and_heating import CurrentsAndHeating
from fieldheat.postprocess.thermal_metrics import summarize
from fieldheat.solver.time_integration import StepRecord, run_transient
from fieldheat.utils import diagnostics as diag
from fieldheat.utils import logger as log

__all__ = ["build_model", "write_run_outputs", "run_from_config"]


def build_model(cfg: RunConfig) -> CurrentsAndHeating:
    """Model with mesh, field states, boundary data and initial temperature set."""
    time = build_time(cfg)
    rho_cp, ambient = material_constants(cfg)
    model = CurrentsAndHeating(
        build_materials(cfg),
        time_step=time.time_step,
        scheme=time.scheme,
        rho_cp=rho_cp,
        ambient_temperature=ambient,
    )
    model.import_mesh(build_mesh(cfg))
    model.setup_current_system()
    model.setup_heating_system()
    if time.initial_temperature is not None:
        model.set_initial_temperature(time.initial_temperature)

    b = cfg.section("boundary")
    if "field_values" in b:
        model.set_field_bc(b["field_values"])
    else:
        model.set_uniform_field_bc(float(b.get("uniform_field", 1.0)))
    if "emission_current" in b or "nottingham_heat" in b:
        if not ("emission_current" in b and "nottingham_heat" in b):
            raise ValueError("boundary.emission_current and boundary.nottingham_heat go together")
        model.set_emission_bc(b["emission_current"], b["nottingham_heat"])
    return model


def write_run_outputs(
    model: CurrentsAndHeating,
    history: Sequence[StepRecord],
    out_dir: Path,
    *,
    plot: bool = False,
) -> Path:
    """
    history.csv, metrics.json, fields_current.npz, fields_heating.npz and
    (with `plot`) temperature_history.png under `out_dir`.
    """
    out_dir = Path(out_dir)
    write_history_csv(out_dir, [rec.as_dict() for rec in history])
    metrics = summarize(model)
    metrics.update({"scheme": model.scheme.name, "time_step_s": model.time_step, "n_steps": len(history),
                    "final_time_s": history[-1].time if history else 0.0})
    write_metrics(out_dir, metrics)
    model.output_results_current(out_dir / "fields_current.npz")
    model.output_results_heating(out_dir / "fields_heating.npz")

    if plot and history:
        from fieldheat.postprocess.visualization import plot_temperature_history

        fig, _ax = plot_temperature_history(
            [r.time for r in history],
            [r.max_temperature for r in history],
            max_heating_power=[r.max_heating_power for r in history],
        )
        fig.savefig(out_dir / "temperature_history.png", dpi=150)
        log.info(f"[ok] wrote {out_dir / 'temperature_history.png'}")
    return out_dir


def run_from_config(cfg_path: Path, out_dir: Optional[Path] = None) -> Path:
    """Run the transient described by `cfg_path`; returns the output directory."""
    cfg_path = Path(cfg_path)
    cfg = load_config(cfg_path)
    out = cfg.section("output")
    log.set_verbose(bool(out.get("verbose", False)))
    if out_dir is None:
        out_dir = cfg.resolve(out["dir"]) if "dir" in out else Path("runs") / cfg_path.stem
    out_dir = Path(out_dir)

    model = build_model(cfg)
    time = build_time(cfg)
    control = build_solver_control(cfg)
    log.info(f"[run] {cfg_path.name}: {model.mesh.n_cells} cells, scheme={time.scheme}, "
             f"dt={time.time_step:.3e} s, {time.n_steps} steps")

    history = run_transient(model, time.n_steps, control)
    if log.is_verbose():
        diag.log_state_summary(phi=model.current.solution, T=model.heat.solution, prefix="[run]")

    write_run_outputs(model, history, out_dir, plot=bool(out.get("plot", False)))
    log.info(f"[run] saved results at {out_dir}")
    return out_dir
