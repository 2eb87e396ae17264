# fieldheat/physics/conduction.py
r"""
Steady current conduction in the conductor.

Weak form (Q1, Gauss degree+1):
  ∫ σ(T) ∇φ·∇v dx = ∫_interface j_em v ds,     φ = 0 on the base.

T is the latest temperature, read at the same quadrature points through the
heat field's own DoF numbering (cells line up between the two handlers).
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..boundaries.interface import InterfaceConditions
from ..discretization.assemble import (
    FieldState,
    apply_boundary_values,
    interpolate_boundary_values,
    scatter_matrix,
    scatter_vector,
)
from ..discretization.fe import CellValues, FaceValues
from ..geometry.mesh import BoundaryId, Mesh, interface_faces

__all__ = ["ConductionAssembler"]


class ConductionAssembler:
    def __init__(
        self,
        mesh: Mesh,
        conditions: InterfaceConditions,
        *,
        cell_values: Optional[CellValues] = None,
        face_values: Optional[FaceValues] = None,
        base_potential: float = 0.0,
    ) -> None:
        self.conditions = conditions
        self.cell_values = cell_values or CellValues(mesh)
        self.face_values = face_values or FaceValues(mesh, interface_faces(mesh))
        self.base_potential = float(base_potential)

    def assemble(self, current: FieldState, heat: FieldState) -> None:
        """Fill current.matrix / current.rhs and fix the base potential."""
        cv, fv = self.cell_values, self.face_values
        pq = self.conditions.pq
        n = current.n_dofs
        cdofs = current.dof_handler.cell_dofs

        T_q = cv.values(heat.local())
        sigma = np.asarray(pq.sigma(T_q))
        A = scatter_matrix(cdofs, cv.stiffness(sigma), n)

        b = np.zeros(n)
        if fv.n_faces:
            T_f = fv.values(heat.solution[heat.dof_handler.cell_dofs[fv.cells]])
            j_em = self.conditions.emission_current(fv.faces, T_f)
            b += scatter_vector(cdofs[fv.cells], fv.load(j_em), n)

        dofs, vals = interpolate_boundary_values(current.dof_handler, BoundaryId.BASE, self.base_potential)
        current.matrix, current.rhs = apply_boundary_values(A, current.solution, b, dofs, vals)
