# fieldheat/tests/test_config_workflow.py
from __future__ import annotations

import json
import textwrap

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from fieldheat.io.config import (
    build_materials,
    build_mesh,
    build_solver_control,
    build_time,
    load_config,
)
from fieldheat.io.results import read_history_csv
from fieldheat.main import main
from fieldheat.materials.database import PhysicalQuantities
from fieldheat.workflows.run_transient import run_from_config

_CONFIG = """
mesh:
  lower: [0.0, 0.0]
  upper: [20.0, 20.0]
  divisions: [4, 4]
materials:
  ambient_temperature: 300.0
boundary:
  uniform_field: 10.0
time:
  scheme: crank_nicolson
  time_step: 1.0e-13
  n_steps: 3
solver:
  tol: 1.0e-7
output:
  dir: out
  plot: true
"""


def _write(tmp_path, text: str, name: str = "run.yaml"):
    path = tmp_path / name
    path.write_text(textwrap.dedent(text))
    return path


def test_load_config_sections(tmp_path):
    cfg = load_config(_write(tmp_path, _CONFIG))
    mesh = build_mesh(cfg)
    assert (mesh.n_cells, mesh.n_vertices) == (16, 25)
    time = build_time(cfg)
    assert (time.scheme, time.n_steps) == ("crank_nicolson", 3)
    assert time.time_step == 1e-13
    control = build_solver_control(cfg)
    assert control.tol == 1e-7 and control.max_iter == 2000 and control.pc_ssor


def test_config_errors(tmp_path):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, "mesh: {lower: [0, 0]}\n"))
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, "- a\n- b\n", "list.yaml"))
    cfg = load_config(_write(tmp_path, "mesh: {lower: [0, 0]}\ntime: {scheme: leapfrog}\n", "bad.yaml"))
    with pytest.raises(ValueError):
        build_time(cfg)
    with pytest.raises(ValueError):
        build_mesh(cfg)


def test_missing_table_falls_back_to_placeholder(tmp_path):
    text = """
    mesh: {lower: [0, 0], upper: [1, 1], divisions: [1, 1]}
    time: {n_steps: 1}
    materials:
      resistivity: nowhere.dat
      emission: nowhere.dat
    """
    pq = build_materials(load_config(_write(tmp_path, text)))
    reference = PhysicalQuantities.placeholder_copper()
    assert pq.sigma(500.0) == pytest.approx(reference.sigma(500.0))
    assert pq.emission_current(8.0, 500.0) == pytest.approx(reference.emission_current(8.0, 500.0))


def test_run_from_config_writes_outputs(tmp_path):
    out = run_from_config(_write(tmp_path, _CONFIG))
    assert out == tmp_path / "out"
    for name in ("metrics.json", "history.csv", "fields_current.npz",
                 "fields_heating.npz", "temperature_history.png"):
        assert (out / name).is_file(), name

    hist = read_history_csv(out / "history.csv")
    assert list(hist["step"]) == [1, 2, 3]
    assert np.all(hist["max_temperature"] >= 300.0)
    metrics = json.loads((out / "metrics.json").read_text())
    assert metrics["scheme"] == "crank_nicolson"
    assert metrics["emitted_current_A"] > 0.0
    assert metrics["joule_power_W"] > 0.0


def test_cli(tmp_path):
    out = tmp_path / "slab"
    assert main(["slab", "--nx", "4", "--ny", "4", "--steps", "2", "--out", str(out)]) == 0
    assert json.loads((out / "metrics.json").read_text())["scheme"] == "euler"
    assert len(read_history_csv(out / "history.csv")) == 2
    assert main(["run", str(tmp_path / "missing.yaml")]) == 1
