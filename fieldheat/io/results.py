# -*- coding: utf-8 -*-
"""
Results IO helpers.

Write:
  * metrics.json          (run-level KPIs)
  * fields_*.npz          (nodal fields on the mesh)
  * history.csv           (one row per time step)

This keeps on-disk layout stable for post-processing and reports.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

import numpy as np
import pandas as pd

__all__ = ["write_metrics", "save_fields_npz", "write_history_csv", "read_history_csv"]


def write_metrics(run_dir: Path, metrics: Dict[str, Any]) -> Path:
    run_dir = Path(run_dir)
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / "metrics.json"
    with open(out, "w") as f:
        json.dump(metrics, f, indent=2, sort_keys=True)
    return out


def save_fields_npz(run_dir: Path, name: str = "fields.npz", **arrays) -> Path:
    """
    Save arrays for viz (e.g., vertices, cells, phi, T, current density).
    """
    run_dir = Path(run_dir)
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / name
    np.savez_compressed(out, **arrays)
    return out


def write_history_csv(run_dir: Path, records: Iterable[Mapping[str, Any]], name: str = "history.csv") -> Path:
    """One row per step record (dicts or StepRecord.as_dict())."""
    run_dir = Path(run_dir)
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / name
    pd.DataFrame.from_records(list(records)).to_csv(out, index=False)
    return out


def read_history_csv(path: Path) -> pd.DataFrame:
    return pd.read_csv(path)
