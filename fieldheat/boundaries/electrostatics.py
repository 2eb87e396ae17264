# fieldheat/boundaries/electrostatics.py
"""
Vacuum-side electrostatic solution as seen by the conductor.

The vacuum Laplace solve itself lives outside this package; all that is
needed here is its mesh (with the shared interface marked INTERFACE) and the
nodal potential. `interface_field_samples` evaluates |∇φ| with a one-point
face rule at every interface face of the vacuum mesh.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple

import numpy as np

from ..discretization.fe import FaceValues
from ..geometry.mesh import BoundaryId, Mesh

__all__ = ["VacuumField", "interface_field_samples"]


@dataclass(slots=True)
class VacuumField:
    """Vacuum mesh plus potential [V] at its vertices (vertex order)."""

    mesh: Mesh
    potential: np.ndarray

    def __post_init__(self) -> None:
        self.potential = np.asarray(self.potential, dtype=np.float64).ravel()
        if self.potential.size != self.mesh.n_vertices:
            raise ValueError(
                f"potential has {self.potential.size} values for {self.mesh.n_vertices} vertices"
            )

    @classmethod
    def from_function(cls, mesh: Mesh, phi: Callable[[np.ndarray], np.ndarray]) -> "VacuumField":
        """Nodal interpolant of a vectorised potential phi(points[n, dim])."""
        return cls(mesh, phi(mesh.vertices))


def interface_field_samples(
    vacuum: VacuumField,
    boundary_id: int = BoundaryId.INTERFACE,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    (face centroids [n, dim], |E| [n] in V/nm) for the vacuum's interface
    faces, in vacuum traversal order.
    """
    faces = vacuum.mesh.faces_with_id(boundary_id)
    fv = FaceValues(vacuum.mesh, faces, n_points=1)
    u_local = vacuum.potential[vacuum.mesh.cells[fv.cells]] if faces else np.zeros((0, 2 ** vacuum.mesh.dim))
    grad = fv.gradients(u_local)[:, 0, :]
    centroids = fv.q_points[:, 0, :]
    return centroids, np.linalg.norm(grad, axis=1)
