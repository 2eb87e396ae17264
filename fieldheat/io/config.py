# fieldheat/io/config.py
# -*- coding: utf-8 -*-
"""
YAML → mesh, materials, boundary data, time and solver settings.

Schema (minimal, example):

mesh:
  lower: [0, 0]            # nm; 2 or 3 entries
  upper: [40, 40]
  divisions: [8, 8]
  # file: conductor.npz    # alternatively: arrays "vertices" and "cells"

materials:
  resistivity: data/rho.dat          # optional; placeholder copper otherwise
  emission: data/emission.dat
  emission_layout: compact           # or spreadsheet
  nottingham: data/nottingham.dat
  nottingham_layout: compact
  temperature_window: [200, 1400]
  rho_cp: 3.4496e-21                 # J/(K nm^3)
  ambient_temperature: 300           # K

boundary:
  uniform_field: 8.0                 # V/nm
  # field_values: [...]              # per interface face, traversal order

time:
  scheme: euler                      # or crank_nicolson
  time_step: 1.0e-12                 # s
  n_steps: 100
  initial_temperature: 300           # K

solver:
  max_iter: 2000
  tol: 1.0e-9
  pc_ssor: true
  ssor_param: 1.2

output:
  dir: runs/slab
  plot: true
  verbose: false

Relative paths are resolved against the YAML file's directory.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import yaml

from ..geometry.mesh import Mesh, build_box_mesh
from ..materials.database import PhysicalQuantities
from ..solver.linear import SolverControl
from ..solver.time_integration import get_scheme
from ..utils import logger as log
from ..utils.constants import AMBIENT_TEMPERATURE, CU_RHO_CP, T_VALID_MAX, T_VALID_MIN

__all__ = [
    "RunConfig",
    "TimeSpec",
    "load_config",
    "build_mesh",
    "build_materials",
    "material_constants",
    "build_time",
    "build_solver_control",
]


@dataclass
class RunConfig:
    raw: dict
    path: Path

    def section(self, key: str) -> dict:
        sec = self.raw.get(key) or {}
        if not isinstance(sec, dict):
            raise ValueError(f"Section '{key}' must be a mapping")
        return sec

    def resolve(self, p: str | Path) -> Path:
        p = Path(p)
        return p if p.is_absolute() else self.path.parent / p


@dataclass(frozen=True)
class TimeSpec:
    scheme: str
    time_step: float
    n_steps: int
    initial_temperature: Optional[float] = None


def load_config(path: Path) -> RunConfig:
    data = yaml.safe_load(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("Top-level YAML must be a mapping")
    _validate_minimum(data)
    return RunConfig(raw=data, path=Path(path))


def build_mesh(cfg: RunConfig) -> Mesh:
    m = cfg.section("mesh")
    if "file" in m:
        with np.load(cfg.resolve(m["file"])) as npz:
            return Mesh.from_arrays(npz["vertices"], npz["cells"])
    for key in ("lower", "upper", "divisions"):
        if key not in m:
            raise ValueError(f"mesh.{key} is required when mesh.file is not given")
    return build_box_mesh(
        [float(v) for v in m["lower"]],
        [float(v) for v in m["upper"]],
        [int(n) for n in m["divisions"]],
    )


def build_materials(cfg: RunConfig) -> PhysicalQuantities:
    m = cfg.section("materials")
    window = m.get("temperature_window", [T_VALID_MIN, T_VALID_MAX])
    if len(window) != 2:
        raise ValueError("materials.temperature_window must have two entries")
    pq = PhysicalQuantities.placeholder_copper(temperature_window=(float(window[0]), float(window[1])))

    # a failed load keeps the placeholder table and is reported by the loader
    if "resistivity" in m and not pq.load_resistivity_data(cfg.resolve(m["resistivity"])):
        log.warn("Using placeholder resistivity table")
    if "emission" in m and not pq.load_emission_data(
        cfg.resolve(m["emission"]), m.get("emission_layout", "compact")
    ):
        log.warn("Using placeholder emission grid")
    if "nottingham" in m and not pq.load_nottingham_data(
        cfg.resolve(m["nottingham"]), m.get("nottingham_layout", "compact")
    ):
        log.warn("Using placeholder Nottingham grid")
    return pq


def material_constants(cfg: RunConfig) -> tuple[float, float]:
    """(rho_cp, ambient_temperature)."""
    m = cfg.section("materials")
    rho_cp = float(m.get("rho_cp", CU_RHO_CP))
    ambient = float(m.get("ambient_temperature", AMBIENT_TEMPERATURE))
    if rho_cp <= 0.0:
        raise ValueError("materials.rho_cp must be positive")
    return rho_cp, ambient


def build_time(cfg: RunConfig) -> TimeSpec:
    t = cfg.section("time")
    scheme = get_scheme(str(t.get("scheme", "euler"))).name
    dt = float(t.get("time_step", 1e-12))
    n_steps = int(t.get("n_steps", 1))
    if dt <= 0.0:
        raise ValueError("time.time_step must be positive")
    if n_steps < 0:
        raise ValueError("time.n_steps must be >= 0")
    T0 = t.get("initial_temperature")
    return TimeSpec(scheme, dt, n_steps, None if T0 is None else float(T0))


def build_solver_control(cfg: RunConfig) -> SolverControl:
    s = cfg.section("solver")
    return SolverControl(
        max_iter=int(s.get("max_iter", 2000)),
        tol=float(s.get("tol", 1e-9)),
        pc_ssor=bool(s.get("pc_ssor", True)),
        ssor_param=float(s.get("ssor_param", 1.2)),
    )


def _validate_minimum(cfg: dict) -> None:
    for key in ("mesh", "time"):
        if key not in cfg:
            raise ValueError(f"Missing top-level key: {key}")
