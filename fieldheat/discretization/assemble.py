# fieldheat/discretization/assemble.py
"""
Global assembly helpers shared by the conduction and heat assemblers.

- FieldState: DoF handler + solution/old_solution + CSR matrix + rhs.
- scatter_matrix / scatter_vector: local [nc, nv(, nv)] blocks -> global.
- interpolate_boundary_values / apply_boundary_values: Dirichlet rows by
  symmetric elimination (diagonal kept, so CG still sees an SPD matrix).

Public API (stable):
    FieldState
    scatter_matrix(cell_dofs, local, n_dofs) -> csr_matrix
    scatter_vector(cell_dofs, local, n_dofs) -> ndarray
    interpolate_boundary_values(dof_handler, boundary_id, value) -> (dofs, values)
    apply_boundary_values(A, x, b, dofs, values) -> (A, b)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

import numpy as np
import scipy.sparse as sp

from .dofs import DofHandler

__all__ = [
    "FieldState",
    "scatter_matrix",
    "scatter_vector",
    "interpolate_boundary_values",
    "apply_boundary_values",
]


def _to_f64(x) -> np.ndarray:
    """Return a C-contiguous float64 ndarray without copying if possible."""
    a = np.asarray(x, dtype=np.float64)
    if not a.flags["C_CONTIGUOUS"]:
        a = np.ascontiguousarray(a)
    return a


@dataclass(slots=True)
class FieldState:
    """
    Discrete state of one scalar field.

    `old_solution` is refreshed from `solution` right before each solve, so
    after a solve it holds the previous step's values.
    """

    dof_handler: DofHandler
    solution: np.ndarray
    old_solution: np.ndarray
    matrix: sp.csr_matrix = field(default=None)  # type: ignore[assignment]
    rhs: np.ndarray = field(default=None)        # type: ignore[assignment]

    @classmethod
    def constant(cls, dof_handler: DofHandler, value: float) -> "FieldState":
        n = dof_handler.n_dofs
        return cls(
            dof_handler=dof_handler,
            solution=np.full(n, float(value)),
            old_solution=np.full(n, float(value)),
            matrix=sp.csr_matrix((n, n)),
            rhs=np.zeros(n),
        )

    @property
    def n_dofs(self) -> int:
        return self.dof_handler.n_dofs

    def local(self, which: str = "solution") -> np.ndarray:
        """Cell-local DoF values [nc, nv] of `solution` or `old_solution`."""
        vec = self.solution if which == "solution" else self.old_solution
        return vec[self.dof_handler.cell_dofs]


# ---------------------------------------------------------------------
# Scatter
# ---------------------------------------------------------------------


def scatter_matrix(cell_dofs: np.ndarray, local: np.ndarray, n_dofs: int) -> sp.csr_matrix:
    """Sum local matrices [nc, nv, nv] into a global CSR matrix."""
    nv = cell_dofs.shape[1]
    rows = np.repeat(cell_dofs, nv, axis=1).ravel()
    cols = np.tile(cell_dofs, (1, nv)).ravel()
    # duplicates are summed by the COO -> CSR conversion
    return sp.coo_matrix((local.ravel(), (rows, cols)), shape=(n_dofs, n_dofs)).tocsr()


def scatter_vector(cell_dofs: np.ndarray, local: np.ndarray, n_dofs: int) -> np.ndarray:
    """Sum local vectors [n, nv] into a global vector."""
    out = np.zeros(n_dofs)
    np.add.at(out, cell_dofs.ravel(), local.ravel())
    return out


# ---------------------------------------------------------------------
# Dirichlet rows
# ---------------------------------------------------------------------


def interpolate_boundary_values(
    dof_handler: DofHandler,
    boundary_id: int,
    value: float | Callable[[np.ndarray], np.ndarray],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    DoFs on `boundary_id` and their prescribed values. `value` is a constant
    or a vectorised function of the support points [n, dim].
    """
    dofs = dof_handler.boundary_dofs(boundary_id)
    if callable(value):
        vals = _to_f64(value(dof_handler.support_points()[dofs]))
    else:
        vals = np.full(dofs.size, float(value))
    return dofs, vals


def apply_boundary_values(
    A: sp.spmatrix,
    x: np.ndarray,
    b: np.ndarray,
    dofs: np.ndarray,
    values: np.ndarray,
    *,
    eliminate_columns: bool = True,
) -> Tuple[sp.csr_matrix, np.ndarray]:
    """
    Impose x[dofs] = values on A x = b.

    Rows (and columns) of fixed DoFs are zeroed, the diagonal entry is kept
    (replaced by the mean |diagonal| where it is zero), and b is adjusted so
    the constrained system has the prescribed values as exact solution.
    `x` is updated in place with the prescribed values.
    """
    A = sp.csr_matrix(A, dtype=np.float64, copy=True)
    b = _to_f64(b).copy()
    dofs = np.asarray(dofs, dtype=np.int64)
    values = _to_f64(values)
    if dofs.size == 0:
        return A, b

    n = A.shape[0]
    diag = A.diagonal()
    nonzero = np.abs(diag[diag != 0.0])
    fallback = float(nonzero.mean()) if nonzero.size else 1.0
    d = diag[dofs].copy()
    d[d == 0.0] = fallback

    if eliminate_columns:
        x_fixed = np.zeros(n)
        x_fixed[dofs] = values
        b -= A @ x_fixed

    keep = np.ones(n)
    keep[dofs] = 0.0
    D_keep = sp.diags(keep)
    if eliminate_columns:
        A = D_keep @ A @ D_keep
    else:
        A = D_keep @ A
    fixed_diag = np.zeros(n)
    fixed_diag[dofs] = d
    A = (A + sp.diags(fixed_diag)).tocsr()
    A.eliminate_zeros()

    b[dofs] = d * values
    x[dofs] = values
    return A, b
