# fieldheat/tests/test_fe.py
from __future__ import annotations

import math

import numpy as np

from fieldheat.discretization.dofs import DofHandler
from fieldheat.discretization.fe import CellValues, FaceValues, gauss_rule, shape_grads, shape_values
from fieldheat.geometry.mesh import BoundaryId, Mesh, build_box_mesh, interface_faces

# quad with non-parallel sides, area 2.375 by the shoelace formula
_QUAD = np.array([[0.0, 0.0], [2.0, 0.0], [0.5, 1.0], [2.5, 1.5]])


def test_gauss_rule_exact_for_cubics():
    pts, w = gauss_rule(2, 2)
    assert pts.shape == (4, 2)
    assert math.isclose(w.sum(), 1.0)
    # ∫_0^1 ∫_0^1 x^3 y^2 = 1/12
    assert math.isclose(np.sum(w * pts[:, 0] ** 3 * pts[:, 1] ** 2), 1.0 / 12.0, rel_tol=1e-12)


def test_shape_functions_partition_of_unity():
    pts, _ = gauss_rule(3, 3)
    np.testing.assert_allclose(shape_values(pts).sum(axis=1), 1.0)
    np.testing.assert_allclose(shape_grads(pts).sum(axis=1), 0.0, atol=1e-14)
    # nodal property at the reference vertices
    corners = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    np.testing.assert_allclose(shape_values(corners), np.eye(4), atol=1e-15)


def test_mass_sums_to_volume():
    mesh = build_box_mesh((0.0, 0.0), (3.0, 2.0), (3, 2))
    cv = CellValues(mesh)
    assert math.isclose(cv.JxW.sum(), 6.0, rel_tol=1e-12)
    assert math.isclose(cv.mass().sum(), 6.0, rel_tol=1e-12)

    mesh3 = build_box_mesh((0.0, 0.0, 0.0), (1.0, 2.0, 3.0), (2, 1, 3))
    assert math.isclose(CellValues(mesh3).mass().sum(), 6.0, rel_tol=1e-12)


def test_distorted_quad_area_and_linear_gradient():
    mesh = Mesh.from_arrays(_QUAD, [[0, 1, 2, 3]])
    cv = CellValues(mesh)
    assert math.isclose(cv.JxW.sum(), 2.375, rel_tol=1e-12)
    u = 3.0 * _QUAD[:, 0] - 2.0 * _QUAD[:, 1]
    grads = cv.gradients(u[mesh.cells])
    np.testing.assert_allclose(grads, np.broadcast_to([3.0, -2.0], grads.shape), atol=1e-12)
    # stiffness annihilates constants
    np.testing.assert_allclose(cv.stiffness(2.0)[0] @ np.ones(4), 0.0, atol=1e-12)


def test_face_measures():
    mesh = build_box_mesh((0.0, 0.0), (3.0, 2.0), (3, 2))
    fv = FaceValues(mesh, interface_faces(mesh))
    # left 2 + right 2 + top 3
    assert math.isclose(fv.area().sum(), 7.0, rel_tol=1e-12)

    mesh3 = build_box_mesh((0.0, 0.0, 0.0), (1.0, 2.0, 3.0), (1, 1, 1))
    fv3 = FaceValues(mesh3, [(0, 0), (0, 2), (0, 4)])
    np.testing.assert_allclose(fv3.area(), [6.0, 3.0, 2.0], rtol=1e-12)


def test_dof_numberings_share_cells():
    mesh = build_box_mesh((0.0, 0.0), (4.0, 4.0), (4, 4))
    natural = DofHandler(mesh, "natural")
    rcm = DofHandler(mesh, "cuthill_mckee")
    assert natural.n_dofs == rcm.n_dofs == 25
    assert sorted(rcm.vertex_to_dof.tolist()) == list(range(25))
    # same vertex behind the same (cell, local vertex) in both numberings
    np.testing.assert_allclose(
        natural.support_points()[natural.cell_dofs], rcm.support_points()[rcm.cell_dofs]
    )
    assert rcm.boundary_dofs(BoundaryId.BASE).size == 5
