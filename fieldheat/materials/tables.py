# fieldheat/materials/tables.py
"""
Tabulated scalar functions of one or two variables.

- SampleTable: sorted (x, y) samples; piecewise-linear value + blended
  finite-difference derivative.
- InterpolationGrid: uniform 2-D grid, row-major (x outer, y inner);
  bilinear value.

All lookups clamp instead of extrapolating, so nonlinear coefficients stay
bounded while a solver iterates outside the tabulated range.

File formats
------------
samples      : whitespace separated "x y" pairs, one per line.
compact      : "xmin xmax xnum", "ymin ymax ynum", then xnum*ynum values;
               '%' comment lines, blank lines and lines without digits skipped.
spreadsheet  : "x y z" triples; y varies fastest; ynum inferred from the row
               count before x first changes.

Public API (stable):
    SampleTable, InterpolationGrid
    load_samples(path) -> SampleTable
    load_grid(path, layout="compact") -> InterpolationGrid
    write_compact_grid(path, grid) -> None
    linear(x, table), linear_derivative(x, table), bilinear(x, y, grid)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import numpy as np

__all__ = [
    "SampleTable",
    "InterpolationGrid",
    "GridLayout",
    "load_samples",
    "load_grid",
    "write_compact_grid",
    "linear",
    "linear_derivative",
    "bilinear",
]

GridLayout = Literal["compact", "spreadsheet"]

_EPS = 1e-10


def _c64(x) -> np.ndarray:
    # keeps 0-d input 0-d so scalar queries come back as floats
    return np.asarray(x, dtype=np.float64)


def _scalar_or_array(a):
    a = np.asarray(a)
    return float(a) if a.ndim == 0 else a


# ---------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SampleTable:
    """
    Sorted samples y(x).

    Attributes
    ----------
    x : np.ndarray
        Abscissae, strictly increasing, at least two samples.
    y : np.ndarray
        Ordinates, same length as x.
    """

    x: np.ndarray
    y: np.ndarray

    def __post_init__(self) -> None:
        x = _c64(self.x)
        y = _c64(self.y)
        if x.ndim != 1 or x.shape != y.shape:
            raise ValueError(f"sample arrays must be 1-D and equal length, got {x.shape} and {y.shape}")
        if x.size < 2:
            raise ValueError("a sample table needs at least two samples")
        if np.any(np.diff(x) <= 0.0):
            raise ValueError("sample abscissae must be strictly increasing")
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)

    @property
    def x_min(self) -> float:
        return float(self.x[0])

    @property
    def x_max(self) -> float:
        return float(self.x[-1])

    def sample_derivatives(self) -> np.ndarray:
        """Finite-difference derivative at every sample (one-sided at the ends)."""
        x, y = self.x, self.y
        d = np.empty_like(y)
        d[0] = (y[1] - y[0]) / (x[1] - x[0])
        d[-1] = (y[-1] - y[-2]) / (x[-1] - x[-2])
        if x.size > 2:
            d[1:-1] = (y[2:] - y[:-2]) / (x[2:] - x[:-2])
        return d


@dataclass(frozen=True, slots=True)
class InterpolationGrid:
    """
    Values on a uniform (x, y) grid, flattened with index xi*ynum + yi.
    """

    xmin: float
    xmax: float
    xnum: int
    ymin: float
    ymax: float
    ynum: int
    v: np.ndarray

    def __post_init__(self) -> None:
        v = _c64(self.v).ravel()
        xnum, ynum = int(self.xnum), int(self.ynum)
        if xnum < 2 or ynum < 2:
            raise ValueError(f"grid needs at least 2x2 nodes, got {xnum}x{ynum}")
        if xnum * ynum != v.size:
            raise ValueError(f"grid size mismatch: xnum*ynum={xnum * ynum} but {v.size} values")
        if not (self.xmax > self.xmin and self.ymax > self.ymin):
            raise ValueError("grid extents must satisfy max > min on both axes")
        object.__setattr__(self, "xnum", xnum)
        object.__setattr__(self, "ynum", ynum)
        object.__setattr__(self, "xmin", float(self.xmin))
        object.__setattr__(self, "xmax", float(self.xmax))
        object.__setattr__(self, "ymin", float(self.ymin))
        object.__setattr__(self, "ymax", float(self.ymax))
        object.__setattr__(self, "v", v)

    @property
    def dx(self) -> float:
        # number of intervals = number of nodes - 1
        return (self.xmax - self.xmin) / (self.xnum - 1)

    @property
    def dy(self) -> float:
        return (self.ymax - self.ymin) / (self.ynum - 1)

    def as_matrix(self) -> np.ndarray:
        """Values reshaped to (xnum, ynum)."""
        return self.v.reshape(self.xnum, self.ynum)

    @classmethod
    def from_function(cls, f, xmin: float, xmax: float, xnum: int,
                      ymin: float, ymax: float, ynum: int) -> "InterpolationGrid":
        """Tabulate f(x, y) (vectorised) on the uniform grid."""
        xs = np.linspace(xmin, xmax, int(xnum))
        ys = np.linspace(ymin, ymax, int(ynum))
        X, Y = np.meshgrid(xs, ys, indexing="ij")
        return cls(xmin, xmax, xnum, ymin, ymax, ynum, _c64(f(X, Y)).ravel())


# ---------------------------------------------------------------------
# File IO
# ---------------------------------------------------------------------


def _contains_digit(line: str) -> bool:
    return any(ch.isdigit() for ch in line)


def load_samples(path: str | Path) -> SampleTable:
    """Read whitespace separated (x, y) pairs. Raises OSError / ValueError."""
    xs: list[float] = []
    ys: list[float] = []
    with open(path) as f:
        for line in f:
            parts = line.split()
            if len(parts) < 2 or line.lstrip().startswith("%"):
                continue
            try:
                x, y = float(parts[0]), float(parts[1])
            except ValueError:
                continue
            xs.append(x)
            ys.append(y)
    return SampleTable(np.array(xs), np.array(ys))


def _load_compact(path: str | Path) -> InterpolationGrid:
    header: list[tuple[float, float, int]] = []
    values: list[float] = []
    with open(path) as f:
        for line in f:
            if line.startswith("%") or not line.strip() or not _contains_digit(line):
                continue
            parts = line.split()
            if len(header) < 2:
                lo, hi, num = parts[:3]
                header.append((float(lo), float(hi), int(float(num))))
            else:
                values.extend(float(p) for p in parts)
    if len(header) < 2:
        raise ValueError(f"{path}: missing grid header lines")
    (xmin, xmax, xnum), (ymin, ymax, ynum) = header
    return InterpolationGrid(xmin, xmax, xnum, ymin, ymax, ynum, np.array(values))


def _load_spreadsheet(path: str | Path) -> InterpolationGrid:
    rows: list[tuple[float, float, float]] = []
    with open(path) as f:
        for line in f:
            if line.startswith("%") or not line.strip():
                continue
            x, y, z = (float(p) for p in line.split()[:3])
            rows.append((x, y, z))
    if not rows:
        raise ValueError(f"{path}: no data rows")

    data = np.array(rows)
    changes = np.flatnonzero(data[1:, 0] != data[:-1, 0])
    ynum = int(changes[0] + 1) if changes.size else data.shape[0]
    xnum = data.shape[0] // ynum
    return InterpolationGrid(
        xmin=data[0, 0], xmax=data[-1, 0], xnum=xnum,
        ymin=data[0, 1], ymax=data[-1, 1], ynum=ynum,
        v=data[: xnum * ynum, 2],
    )


def load_grid(path: str | Path, layout: GridLayout = "compact") -> InterpolationGrid:
    """Read a 2-D grid in either supported layout. Raises OSError / ValueError."""
    if layout == "compact":
        return _load_compact(path)
    if layout == "spreadsheet":
        return _load_spreadsheet(path)
    raise ValueError(f"Unknown grid layout: {layout!r} (expected 'compact' or 'spreadsheet')")


def write_compact_grid(path: str | Path, grid: InterpolationGrid, comment: str | None = None) -> None:
    """Write grid in the compact layout understood by load_grid(..., 'compact')."""
    with open(path, "w") as f:
        if comment:
            for line in comment.splitlines():
                f.write(f"% {line}\n")
        f.write(f"{grid.xmin:.17g} {grid.xmax:.17g} {grid.xnum:d}\n")
        f.write(f"{grid.ymin:.17g} {grid.ymax:.17g} {grid.ynum:d}\n")
        for val in grid.v:
            f.write(f"{val:.17g}\n")


# ---------------------------------------------------------------------
# Interpolation
# ---------------------------------------------------------------------


def linear(x, table: SampleTable):
    """Piecewise-linear y(x); constant extrapolation beyond the end samples."""
    # np.interp locates the bracket by binary search and clamps at both ends
    out = np.interp(_c64(x), table.x, table.y)
    return _scalar_or_array(np.asarray(out))


def linear_derivative(x, table: SampleTable):
    """
    dy/dx blended linearly between the finite-difference estimates of the two
    bracketing samples.

    NB: outside the table the true derivative is zero, but here the end
    estimates are carried over the clamped bounds instead.
    """
    xs = table.x
    xq = _c64(x)
    xq = np.where(xq <= xs[0], xs[0] + _EPS, xq)
    xq = np.where(xq >= xs[-1], xs[-1], xq)

    it = np.searchsorted(xs, xq, side="left")
    it = np.clip(it, 1, xs.size - 1)
    itp = it - 1

    d = table.sample_derivatives()
    w = (xq - xs[itp]) / (xs[it] - xs[itp])
    return _scalar_or_array(d[itp] + (d[it] - d[itp]) * w)


def bilinear(x, y, grid: InterpolationGrid):
    """Four-corner bilinear blend on a uniform grid, clamped to [min, max)."""
    xq = _c64(x)
    yq = _c64(y)
    xq, yq = np.broadcast_arrays(xq, yq)

    xq = np.where(xq <= grid.xmin, grid.xmin, xq)
    xq = np.where(xq >= grid.xmax, grid.xmax - _EPS, xq)
    yq = np.where(yq <= grid.ymin, grid.ymin, yq)
    yq = np.where(yq >= grid.ymax, grid.ymax - _EPS, yq)

    # index of the grid square containing (x, y) and coordinates on the unit square
    sx = (xq - grid.xmin) / grid.dx
    sy = (yq - grid.ymin) / grid.dy
    xi = np.clip(sx.astype(np.int64), 0, grid.xnum - 2)
    yi = np.clip(sy.astype(np.int64), 0, grid.ynum - 2)
    xc = sx - xi
    yc = sy - yi

    v = grid.v
    yn = grid.ynum
    out = (
        v[xi * yn + yi] * (1.0 - xc) * (1.0 - yc)
        + v[(xi + 1) * yn + yi] * xc * (1.0 - yc)
        + v[xi * yn + yi + 1] * (1.0 - xc) * yc
        + v[(xi + 1) * yn + yi + 1] * xc * yc
    )
    return _scalar_or_array(np.asarray(out))
