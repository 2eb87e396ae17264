# fieldheat/main.py
"""
fieldheat main entrypoint.

Usage examples:
    fieldheat run configs/slab.yaml
    fieldheat slab --field 9 --steps 50 --scheme crank_nicolson
    python -m fieldheat.main slab --help
"""

from __future__ import annotations

from dataclasses import dataclass
import argparse
from pathlib import Path
import sys

from .geometry.mesh import build_box_mesh
from .models.currents_and_heating import CurrentsAndHeating
from .solver.linear import SolverControl
from .solver.time_integration import run_transient
from .utils import logger as log
from .workflows.run_transient import run_from_config, write_run_outputs

__all__ = ["main"]


# ------------------------------ slab subcommand -----------------------------


@dataclass(slots=True)
class _SlabArgs:
    width_nm: float
    height_nm: float
    nx: int
    ny: int
    field_V_nm: float
    dt_s: float
    steps: int
    scheme: str
    out_dir: str
    plot: bool
    verbose: bool


def _add_slab_subparser(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    p = subparsers.add_parser("slab", help="2-D emitting slab under a uniform field")
    p.add_argument("--width", type=float, default=40.0, help="Slab width [nm]")
    p.add_argument("--height", type=float, default=40.0, help="Slab height [nm]")
    p.add_argument("--nx", type=int, default=8, help="Cells along x")
    p.add_argument("--ny", type=int, default=8, help="Cells along y")
    p.add_argument("--field", type=float, default=8.0, help="Uniform surface field [V/nm]")
    p.add_argument("--dt", type=float, default=1e-12, help="Time step [s]")
    p.add_argument("--steps", type=int, default=20, help="Number of time steps")
    p.add_argument("--scheme", choices=["euler", "crank_nicolson"], default="euler")
    p.add_argument("--out", default="runs/slab", help="Output directory")
    p.add_argument("--plot", action="store_true", help="Write temperature_history.png")
    p.add_argument("--verbose", action="store_true", help="Per-step and solver prints")
    p.set_defaults(cmd="slab")
    return p


def _run_slab(args: _SlabArgs) -> None:
    log.set_verbose(args.verbose)
    model = CurrentsAndHeating(time_step=args.dt_s, scheme=args.scheme)
    model.import_mesh(build_box_mesh((0.0, 0.0), (args.width_nm, args.height_nm), (args.nx, args.ny)))
    model.setup_current_system()
    model.setup_heating_system()
    model.set_uniform_field_bc(args.field_V_nm)

    history = run_transient(model, args.steps, SolverControl())

    out = write_run_outputs(model, history, Path(args.out_dir), plot=args.plot)
    print(f"[ok] wrote {out}  (Tmax={model.get_max_temperature():.2f} K)")


# ------------------------------ run subcommand ------------------------------


def _add_run_subparser(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    p = subparsers.add_parser("run", help="Transient run from a YAML config")
    p.add_argument("config", type=Path, help="YAML run configuration")
    p.add_argument("--out", type=Path, default=None, help="Override output directory")
    p.set_defaults(cmd="run")
    return p


# --------------------------------- main() ------------------------------------


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="fieldheat: coupled current/heat in field emitters")
    sub = parser.add_subparsers(dest="cmd")
    _add_slab_subparser(sub)
    _add_run_subparser(sub)

    ns = parser.parse_args(sys.argv[1:] if argv is None else argv)
    if ns.cmd == "run":
        try:
            run_from_config(ns.config, ns.out)
        except (OSError, ValueError) as exc:
            log.error(str(exc))
            return 1
        return 0
    if ns.cmd == "slab":
        _run_slab(
            _SlabArgs(
                width_nm=ns.width,
                height_nm=ns.height,
                nx=ns.nx,
                ny=ns.ny,
                field_V_nm=ns.field,
                dt_s=ns.dt,
                steps=ns.steps,
                scheme=str(ns.scheme),
                out_dir=str(ns.out),
                plot=bool(ns.plot),
                verbose=bool(ns.verbose),
            )
        )
        return 0

    parser.error("Unknown command (try: run, slab)")
    return 2


if __name__ == "__main__":
    sys.exit(main())
