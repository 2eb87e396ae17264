# -*- coding: utf-8 -*-
"""
Linear solver backend: conjugate gradients on SPD systems, optionally
SSOR-preconditioned. Keep the API tiny so the backend can be swapped later.

Public API (stable):
    SolverControl(max_iter=2000, tol=1e-9, pc_ssor=True, ssor_param=1.2)
    ssor_preconditioner(A, omega) -> LinearOperator
    solve_cg(A, b, x0, control, label="") -> (x, iterations, converged)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import LinearOperator, cg, spsolve_triangular

from ..utils import diagnostics as diag
from ..utils import logger as log

__all__ = ["SolverControl", "ssor_preconditioner", "solve_cg"]


@dataclass(slots=True)
class SolverControl:
    max_iter: int = 2000
    tol: float = 1e-9           # absolute, on the residual 2-norm
    pc_ssor: bool = True
    ssor_param: float = 1.2     # relaxation ω in (0, 2)

    def __post_init__(self) -> None:
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be >= 1, got {self.max_iter}")
        if not (0.0 < self.ssor_param < 2.0):
            raise ValueError(f"ssor_param must lie in (0, 2), got {self.ssor_param}")


def ssor_preconditioner(A: sp.spmatrix, omega: float = 1.2) -> LinearOperator:
    """
    Symmetric SOR preconditioner for A = L + D + U:

      P^-1 r = (2-ω)/ω · (D/ω + U)^-1 (D/ω) (D/ω + L)^-1 r
    """
    A = sp.csr_matrix(A)
    Dw = A.diagonal() / omega
    lower = (sp.tril(A, k=-1) + sp.diags(Dw)).tocsr()
    upper = (sp.triu(A, k=1) + sp.diags(Dw)).tocsr()
    scale = (2.0 - omega) / omega

    def apply(r: np.ndarray) -> np.ndarray:
        r = np.ravel(r)
        y = spsolve_triangular(lower, r, lower=True)
        z = spsolve_triangular(upper, Dw * y, lower=False)
        return scale * z

    return LinearOperator(A.shape, matvec=apply, dtype=np.float64)


def solve_cg(
    A: sp.spmatrix,
    b: np.ndarray,
    x0: Optional[np.ndarray] = None,
    control: Optional[SolverControl] = None,
    label: str = "",
) -> Tuple[np.ndarray, int, bool]:
    """
    CG from initial guess x0. Returns (x, iterations, converged); a failure to
    converge within max_iter is reported as a warning, not raised.
    """
    control = control or SolverControl()
    A = sp.csr_matrix(A)
    b = np.asarray(b, dtype=np.float64)
    M = ssor_preconditioner(A, control.ssor_param) if control.pc_ssor else None

    iterations = 0

    def _count(_xk) -> None:
        nonlocal iterations
        iterations += 1

    x, info = cg(A, b, x0=x0, rtol=0.0, atol=control.tol, maxiter=control.max_iter,
                 M=M, callback=_count)
    if info < 0:
        raise RuntimeError(f"CG breakdown on {label or 'system'} (info={info})")
    converged = info == 0
    res_norm = float(np.linalg.norm(b - A @ x))
    if not converged:
        log.warn(f"CG on {label or 'system'} did not converge in {control.max_iter} iterations "
                 f"(||r||_2={res_norm:.3e}, tol={control.tol:.1e})")
    if log.is_verbose():
        diag.log_solver_summary(
            field=label or "system", converged=converged, iters=iterations, res_norm=res_norm,
            max_iter=control.max_iter, preconditioner="ssor" if control.pc_ssor else "none",
        )
    return x, iterations, converged
