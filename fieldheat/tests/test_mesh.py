# fieldheat/tests/test_mesh.py
from __future__ import annotations

import numpy as np
import pytest

from fieldheat.geometry.mesh import BoundaryId, Mesh, build_box_mesh, interface_faces
from fieldheat.models.currents_and_heating import CurrentsAndHeating

_UNIT_SQUARE = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])


def test_box_mesh_2d_markers_and_order():
    mesh = build_box_mesh((0.0, 0.0), (2.0, 1.0), (2, 1))
    assert (mesh.n_vertices, mesh.n_cells, mesh.dim) == (6, 2, 2)
    assert len(mesh.boundary_faces()) == 6
    assert mesh.faces_with_id(BoundaryId.BASE) == [(0, 2), (1, 2)]
    # traversal order: cells first, then local faces
    assert interface_faces(mesh) == [(0, 0), (0, 3), (1, 1), (1, 3)]
    np.testing.assert_allclose(mesh.face_centroid(1, 3), [1.5, 1.0])
    # interior face carries no marker
    assert (0, 1) not in mesh.boundary_ids


def test_box_mesh_3d_counts():
    mesh = build_box_mesh((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), (2, 2, 2))
    assert (mesh.n_vertices, mesh.n_cells) == (27, 8)
    assert len(mesh.boundary_faces()) == 24
    assert len(mesh.faces_with_id(BoundaryId.BASE)) == 4
    assert len(interface_faces(mesh)) == 20


def test_unused_vertices_are_dropped():
    vertices = np.vstack([_UNIT_SQUARE[:2], [[5.0, 5.0]], _UNIT_SQUARE[2:]])
    mesh = Mesh.from_arrays(vertices, [[0, 1, 3, 4]])
    assert mesh.n_vertices == 4
    np.testing.assert_array_equal(mesh.cells, [[0, 1, 2, 3]])
    np.testing.assert_allclose(mesh.vertices, _UNIT_SQUARE)


def test_inverted_cell_is_reoriented():
    mesh = Mesh.from_arrays(_UNIT_SQUARE, [[1, 0, 3, 2]])
    np.testing.assert_array_equal(mesh.cells, [[0, 1, 2, 3]])
    assert mesh.faces_with_id(BoundaryId.BASE) == [(0, 2)]


def test_custom_classifier():
    mesh = build_box_mesh(
        (0.0, 0.0), (1.0, 1.0), (1, 1),
        classifier=lambda c: BoundaryId.INTERFACE if c[1] > 0.5 else BoundaryId.BASE,
    )
    assert interface_faces(mesh) == [(0, 3)]
    assert len(mesh.faces_with_id(BoundaryId.BASE)) == 3


@pytest.mark.parametrize(
    "cells",
    [
        [[0, 1, 2, 7]],        # out of range
        [[0, 1, 2]],           # wrong arity
        [[0, 1, 1, 3]],        # repeated vertex
    ],
)
def test_malformed_mesh_raises(cells):
    with pytest.raises(ValueError):
        Mesh.from_arrays(_UNIT_SQUARE, cells)


def test_import_mesh_directly_reports_failure():
    model = CurrentsAndHeating()
    assert model.import_mesh_directly(_UNIT_SQUARE, [[0, 1, 2, 9]]) is False
    assert model.mesh is None
    assert model.import_mesh_directly(_UNIT_SQUARE, [[0, 1, 2, 3]]) is True
    assert model.mesh.n_cells == 1
