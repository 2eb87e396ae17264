# fieldheat/discretization/dofs.py
"""
Vertex-based DoF numbering for Q1 fields.

Two fields on one mesh get independent handlers (and possibly different
numberings) but share the mesh's cell order, so `cell_dofs` of both handlers
are aligned row by row.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import reverse_cuthill_mckee

from ..geometry.mesh import Mesh

__all__ = ["DofHandler", "Numbering"]

Numbering = Literal["natural", "cuthill_mckee"]


def _vertex_graph(mesh: Mesh) -> sp.csr_matrix:
    nv = mesh.cells.shape[1]
    rows = np.repeat(mesh.cells, nv, axis=1).ravel()
    cols = np.tile(mesh.cells, (1, nv)).ravel()
    data = np.ones(rows.size, dtype=np.int32)
    return sp.coo_matrix((data, (rows, cols)), shape=(mesh.n_vertices,) * 2).tocsr()


class DofHandler:
    """One scalar DoF per mesh vertex."""

    def __init__(self, mesh: Mesh, numbering: Numbering = "natural") -> None:
        self.mesh = mesh
        self.numbering = numbering
        n = mesh.n_vertices
        if numbering == "natural":
            self.vertex_to_dof = np.arange(n, dtype=np.int64)
        elif numbering == "cuthill_mckee":
            order = reverse_cuthill_mckee(_vertex_graph(mesh), symmetric_mode=True)
            self.vertex_to_dof = np.empty(n, dtype=np.int64)
            self.vertex_to_dof[order] = np.arange(n, dtype=np.int64)
        else:
            raise ValueError(f"Unknown DoF numbering: {numbering!r}")
        self.dof_to_vertex = np.argsort(self.vertex_to_dof)
        self.cell_dofs = self.vertex_to_dof[mesh.cells]    # [nc, nv]

    @property
    def n_dofs(self) -> int:
        return int(self.vertex_to_dof.size)

    def support_points(self) -> np.ndarray:
        """Coordinates of every DoF, in DoF order [n_dofs, dim]."""
        return self.mesh.vertices[self.dof_to_vertex]

    def boundary_dofs(self, boundary_id: int) -> np.ndarray:
        """Sorted DoFs on faces carrying `boundary_id`."""
        return np.sort(self.vertex_to_dof[self.mesh.boundary_vertices(boundary_id)])
