# fieldheat/tests/test_linear_solver.py
from __future__ import annotations

import numpy as np
import pytest
import scipy.sparse as sp
from scipy.sparse.linalg import spsolve

from fieldheat.discretization.assemble import apply_boundary_values
from fieldheat.solver.linear import SolverControl, ssor_preconditioner, solve_cg


def _laplacian(n: int = 60) -> sp.csr_matrix:
    main = np.full(n, 2.0)
    off = np.full(n - 1, -1.0)
    return sp.diags([off, main, off], [-1, 0, 1], format="csr") + sp.identity(n, format="csr") * 0.01


def test_ssor_and_plain_cg_agree_with_direct():
    A = _laplacian()
    b = np.sin(np.linspace(0.0, 3.0, A.shape[0]))
    ref = spsolve(A.tocsc(), b)

    x_ssor, it_ssor, ok_ssor = solve_cg(A, b, np.zeros_like(b), SolverControl(tol=1e-10))
    x_cg, it_cg, ok_cg = solve_cg(A, b, np.zeros_like(b), SolverControl(tol=1e-10, pc_ssor=False))
    assert ok_ssor and ok_cg
    np.testing.assert_allclose(x_ssor, ref, rtol=1e-7, atol=1e-8)
    np.testing.assert_allclose(x_cg, ref, rtol=1e-7, atol=1e-8)
    assert 0 < it_ssor <= it_cg


def test_ssor_is_symmetric_positive():
    A = _laplacian(20)
    M = ssor_preconditioner(A, 1.2)
    P = np.column_stack([M.matvec(e) for e in np.eye(20)])
    np.testing.assert_allclose(P, P.T, atol=1e-12)
    assert np.all(np.linalg.eigvalsh(0.5 * (P + P.T)) > 0.0)


def test_non_convergence_is_reported_not_raised():
    A = _laplacian()
    b = np.ones(A.shape[0])
    x, iters, converged = solve_cg(A, b, None, SolverControl(max_iter=2, tol=1e-14))
    assert not converged
    assert iters <= 2
    assert np.all(np.isfinite(x))


def test_zero_rhs_takes_no_iterations():
    A = _laplacian(10)
    x, iters, converged = solve_cg(A, np.zeros(10), np.zeros(10))
    assert converged and iters == 0
    np.testing.assert_array_equal(x, 0.0)


def test_invalid_relaxation_rejected():
    with pytest.raises(ValueError):
        SolverControl(ssor_param=2.0)


def test_boundary_elimination_keeps_symmetry_and_values():
    A = _laplacian(8)
    b = np.ones(8)
    x = np.zeros(8)
    A2, b2 = apply_boundary_values(A, x, b, np.array([0, 7]), np.array([3.0, -1.0]))
    assert abs(A2 - A2.T).max() == 0.0
    sol = spsolve(A2.tocsc(), b2)
    np.testing.assert_allclose(sol[[0, 7]], [3.0, -1.0])
    np.testing.assert_allclose(x[[0, 7]], [3.0, -1.0])
    # interior rows still solve the original equations
    np.testing.assert_allclose((A @ sol - b)[1:-1], 0.0, atol=1e-12)
