# fieldheat/models/currents_and_heating.py
"""
Coupled current + heat model of a field-emitting conductor.

Owns the mesh, the two field states (potential and temperature, each with its
own DoF numbering), the interface boundary data and the material model, and
exposes the operations a driver needs: boundary-condition setters, assembly,
solves, point queries and result export.

Typical use
-----------
    model = CurrentsAndHeating(PhysicalQuantities.placeholder_copper())
    model.import_mesh(build_box_mesh((0, 0), (40, 40), (8, 8)))
    model.setup_current_system(); model.setup_heating_system()
    model.set_timestep(1e-12); model.set_uniform_field_bc(8.0)
    run_transient(model, 100)

Public API (stable):
    CurrentsAndHeating
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence

import numpy as np

from ..boundaries.electrostatics import VacuumField, interface_field_samples
from ..boundaries.interface import (
    InterfaceConditions,
    build_from_field_samples,
    build_from_ordered_values,
)
from ..discretization.assemble import FieldState
from ..discretization.dofs import DofHandler, Numbering
from ..discretization.fe import CellValues, FaceValues, shape_grads
from ..geometry.mesh import Mesh, interface_faces
from ..io.results import save_fields_npz
from ..materials.database import PhysicalQuantities
from ..physics.conduction import ConductionAssembler
from ..physics.heat import HeatAssembler, make_heat_assembler
from ..solver.linear import SolverControl, solve_cg
from ..solver.time_integration import ThetaMethod, get_scheme
from ..utils import logger as log
from ..utils.constants import AMBIENT_TEMPERATURE, CU_RHO_CP

__all__ = ["CurrentsAndHeating"]


class CurrentsAndHeating:
    """
    Parameters
    ----------
    pq : PhysicalQuantities, optional
        Material model (placeholder copper tables if omitted). Shared by
        reference with the assemblers.
    time_step : float
        Δt [s].
    scheme : str
        "euler" or "crank_nicolson"; used by assemble_heating_system().
    rho_cp, ambient_temperature : float
        Volumetric heat capacity [J/(K nm^3)] and base temperature [K].
    current_numbering, heat_numbering : str
        DoF numbering of the potential / temperature fields.
    """

    def __init__(
        self,
        pq: Optional[PhysicalQuantities] = None,
        *,
        time_step: float = 1e-12,
        scheme: str = "euler",
        rho_cp: float = CU_RHO_CP,
        ambient_temperature: float = AMBIENT_TEMPERATURE,
        current_numbering: Numbering = "natural",
        heat_numbering: Numbering = "cuthill_mckee",
    ) -> None:
        self.pq = pq if pq is not None else PhysicalQuantities.placeholder_copper()
        self.conditions = InterfaceConditions(self.pq)
        self.time_step = 0.0
        self.set_timestep(time_step)
        self.scheme: ThetaMethod = get_scheme(scheme)
        self.rho_cp = float(rho_cp)
        self.ambient_temperature = float(ambient_temperature)
        self.current_numbering = current_numbering
        self.heat_numbering = heat_numbering

        self.mesh: Optional[Mesh] = None
        self.current: Optional[FieldState] = None
        self.heat: Optional[FieldState] = None
        self.max_heating_power = 0.0

        self._cell_values: Optional[CellValues] = None
        self._face_values: Optional[FaceValues] = None
        self._conduction: Optional[ConductionAssembler] = None
        self._heat_assemblers: dict[float, HeatAssembler] = {}

    # ------------------------------------------------------------------
    # Mesh
    # ------------------------------------------------------------------

    def import_mesh(self, mesh: Mesh) -> None:
        """Take a marked mesh; field states must be set up again afterwards."""
        self.mesh = mesh
        self.current = None
        self.heat = None
        self._cell_values = None
        self._face_values = None
        self._conduction = None
        self._heat_assemblers = {}

    def import_mesh_directly(self, vertices, cells, classifier=None) -> bool:
        """Build the mesh from raw arrays (with clean-up); False if that fails."""
        try:
            mesh = Mesh.from_arrays(vertices, cells, classifier=classifier)
        except ValueError as exc:
            log.error(f"Mesh import failed: {exc}")
            return False
        self.import_mesh(mesh)
        return True

    def _require_mesh(self) -> Mesh:
        if self.mesh is None:
            raise RuntimeError("No mesh imported; call import_mesh() first")
        return self.mesh

    def _require_fields(self) -> tuple[FieldState, FieldState]:
        if self.current is None or self.heat is None:
            raise RuntimeError("Field states missing; call setup_current_system() and setup_heating_system()")
        return self.current, self.heat

    # ------------------------------------------------------------------
    # Set-up
    # ------------------------------------------------------------------

    def setup_current_system(self) -> None:
        mesh = self._require_mesh()
        self.current = FieldState.constant(DofHandler(mesh, self.current_numbering), 0.0)
        log.debug(f"Current system: {self.current.n_dofs} DoFs")

    def setup_heating_system(self) -> None:
        mesh = self._require_mesh()
        self.heat = FieldState.constant(DofHandler(mesh, self.heat_numbering), self.ambient_temperature)
        log.debug(f"Heating system: {self.heat.n_dofs} DoFs")

    def set_timestep(self, time_step: float) -> None:
        if not time_step > 0.0:
            raise ValueError(f"time step must be positive, got {time_step}")
        self.time_step = float(time_step)

    def set_scheme(self, scheme: str) -> None:
        self.scheme = get_scheme(scheme)

    def set_physical_quantities(self, pq: PhysicalQuantities) -> None:
        self.pq = pq
        self.conditions.pq = pq

    def set_initial_temperature(self, value: float | Callable[[np.ndarray], np.ndarray]) -> None:
        """Constant or vectorised T(points[n, dim]); sets solution and old_solution."""
        _, heat = self._require_fields()
        if callable(value):
            T = np.asarray(value(heat.dof_handler.support_points()), dtype=np.float64)
        else:
            T = np.full(heat.n_dofs, float(value))
        heat.solution[:] = T
        heat.old_solution[:] = T

    # ------------------------------------------------------------------
    # Interface boundary data
    # ------------------------------------------------------------------

    def set_uniform_field_bc(self, efield: float) -> None:
        """Same field [V/nm] on every interface face; drops any per-face field."""
        self.conditions.set_uniform_field(efield)

    def set_field_bc(self, efields: Sequence[float] | np.ndarray) -> None:
        """Per-face field in interface traversal order (see get_surface_nodes)."""
        self.conditions.set_field_map(build_from_ordered_values(self._require_mesh(), efields))

    def set_field_bc_from_samples(self, centroids: np.ndarray, efields: np.ndarray, eps: float = 1e-9) -> None:
        """Per-face field matched by face centroid."""
        self.conditions.set_field_map(
            build_from_field_samples(self._require_mesh(), centroids, efields, eps=eps)
        )

    def set_field_bc_from_vacuum(self, vacuum: VacuumField, eps: float = 1e-9) -> None:
        centroids, efields = interface_field_samples(vacuum)
        self.set_field_bc_from_samples(centroids, efields, eps=eps)

    def set_emission_bc(self, emission_currents: Sequence[float], nottingham_heats: Sequence[float]) -> None:
        """Externally computed j_em [A/nm^2] and q_N [W/nm^2], interface traversal order."""
        mesh = self._require_mesh()
        self.conditions.set_emission(
            build_from_ordered_values(mesh, emission_currents),
            build_from_ordered_values(mesh, nottingham_heats),
        )

    def clear_emission_bc(self) -> None:
        self.conditions.clear_emission()

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def _fe_values(self) -> tuple[CellValues, FaceValues]:
        mesh = self._require_mesh()
        if self._cell_values is None:
            self._cell_values = CellValues(mesh)
            self._face_values = FaceValues(mesh, interface_faces(mesh))
        return self._cell_values, self._face_values

    def _heat_assembler(self, scheme: ThetaMethod) -> HeatAssembler:
        asm = self._heat_assemblers.get(scheme.theta)
        if asm is None or asm.rho_cp != self.rho_cp or asm.ambient_temperature != self.ambient_temperature:
            cv, fv = self._fe_values()
            asm = make_heat_assembler(
                scheme, self._require_mesh(), self.conditions,
                rho_cp=self.rho_cp, ambient_temperature=self.ambient_temperature,
                cell_values=cv, face_values=fv,
            )
            self._heat_assemblers[scheme.theta] = asm
        return asm

    def assemble_current_system(self) -> None:
        current, heat = self._require_fields()
        if self._conduction is None:
            cv, fv = self._fe_values()
            self._conduction = ConductionAssembler(
                self._require_mesh(), self.conditions, cell_values=cv, face_values=fv,
            )
        self._conduction.assemble(current, heat)

    def _assemble_heat(self, scheme: ThetaMethod) -> float:
        current, heat = self._require_fields()
        self.max_heating_power = self._heat_assembler(scheme).assemble(heat, current, self.time_step)
        return self.max_heating_power

    def assemble_heating_system_euler_implicit(self) -> float:
        return self._assemble_heat(get_scheme("euler"))

    def assemble_heating_system_crank_nicolson(self) -> float:
        return self._assemble_heat(get_scheme("crank_nicolson"))

    def assemble_heating_system(self) -> float:
        """Assemble with the configured scheme; returns the max Joule density."""
        return self._assemble_heat(self.scheme)

    # ------------------------------------------------------------------
    # Solves
    # ------------------------------------------------------------------

    @staticmethod
    def _solve(state: FieldState, label: str, control: SolverControl) -> int:
        state.old_solution[:] = state.solution
        x, iterations, _ = solve_cg(state.matrix, state.rhs, state.solution, control, label=label)
        state.solution[:] = x
        return iterations

    def solve_current(self, max_iter: int = 2000, tol: float = 1e-9,
                      pc_ssor: bool = True, ssor_param: float = 1.2) -> int:
        current, _ = self._require_fields()
        return self._solve(current, "potential", SolverControl(max_iter, tol, pc_ssor, ssor_param))

    def solve_heat(self, max_iter: int = 2000, tol: float = 1e-9,
                   pc_ssor: bool = True, ssor_param: float = 1.2) -> int:
        _, heat = self._require_fields()
        return self._solve(heat, "temperature", SolverControl(max_iter, tol, pc_ssor, ssor_param))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_temperature(self, cell_indexes: Sequence[int], vert_indexes: Sequence[int]) -> np.ndarray:
        """Temperature at local vertex vert_indexes[i] of cell cell_indexes[i]."""
        _, heat = self._require_fields()
        c = np.asarray(cell_indexes, dtype=np.int64)
        v = np.asarray(vert_indexes, dtype=np.int64)
        return heat.solution[heat.dof_handler.cell_dofs[c, v]]

    def _potential_gradient(self, c: np.ndarray, v: np.ndarray) -> np.ndarray:
        """∇φ of cell c[i]'s interpolant at its local vertex v[i]. Shape [n, dim]."""
        current, _ = self._require_fields()
        mesh = self._require_mesh()
        dim = mesh.dim

        xi = ((v[:, None] >> np.arange(dim)) & 1).astype(np.float64)   # reference corner
        dN = shape_grads(xi)                                     # [n, nv, dim]
        X = mesh.vertices[mesh.cells[c]]                         # [n, nv, dim]
        J = np.einsum("nvi,nvj->nij", X, dN)
        grads = np.einsum("nji,nvj->nvi", np.linalg.inv(J), dN)
        phi_local = current.solution[current.dof_handler.cell_dofs[c]]
        return np.einsum("nvi,nv->ni", grads, phi_local)

    def get_current(self, cell_indexes: Sequence[int], vert_indexes: Sequence[int]) -> np.ndarray:
        """
        Current density -σ(T)∇φ [A/nm^2] at the given cell vertices, with ∇φ
        taken from the cell's interpolant at that vertex. Shape [n, dim].
        """
        c = np.asarray(cell_indexes, dtype=np.int64).reshape(-1)
        v = np.asarray(vert_indexes, dtype=np.int64).reshape(-1)
        sigma = np.asarray(self.pq.sigma(self.get_temperature(c, v)))
        return -sigma[:, None] * self._potential_gradient(c, v)

    def get_surface_nodes(self) -> np.ndarray:
        """Centroids of the interface faces, in traversal order [n, dim]."""
        mesh = self._require_mesh()
        faces = interface_faces(mesh)
        if not faces:
            return np.zeros((0, mesh.dim))
        return np.array([mesh.face_centroid(c, f) for c, f in faces])

    def get_max_temperature(self) -> float:
        _, heat = self._require_fields()
        return float(np.max(heat.solution))

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _vertex_values(self, state: FieldState) -> np.ndarray:
        return state.solution[state.dof_handler.vertex_to_dof]

    def _vertex_field(self) -> np.ndarray:
        """E = -∇φ per vertex, averaged over the cells sharing it [n_vertices, dim]."""
        mesh = self._require_mesh()
        n_cells, nv = mesh.cells.shape
        c = np.repeat(np.arange(n_cells), nv)
        v = np.tile(np.arange(nv), n_cells)
        total = np.zeros((mesh.n_vertices, mesh.dim))
        np.add.at(total, mesh.cells.ravel(), -self._potential_gradient(c, v))
        count = np.bincount(mesh.cells.ravel(), minlength=mesh.n_vertices)
        return total / np.maximum(count, 1)[:, None]

    def output_results_current(self, path: str | Path) -> bool:
        """Potential and field [V/nm] per vertex, with the temperature for reference."""
        current, heat = self._require_fields()
        mesh = self._require_mesh()
        path = Path(path)
        try:
            save_fields_npz(
                path.parent, name=path.name,
                vertices=mesh.vertices, cells=mesh.cells,
                potential=self._vertex_values(current),
                field=self._vertex_field(),
                temperature=self._vertex_values(heat),
            )
        except OSError as exc:
            log.warn(f"Couldn't write current results to {path}: {exc}")
            return False
        return True

    def output_results_heating(self, path: str | Path) -> bool:
        """Temperature and conductivity σ(T) per vertex."""
        _, heat = self._require_fields()
        mesh = self._require_mesh()
        path = Path(path)
        T = self._vertex_values(heat)
        try:
            save_fields_npz(
                path.parent, name=path.name,
                vertices=mesh.vertices, cells=mesh.cells,
                temperature=T,
                sigma=np.asarray(self.pq.sigma(T)),
                max_heating_power=np.float64(self.max_heating_power),
            )
        except OSError as exc:
            log.warn(f"Couldn't write heating results to {path}: {exc}")
            return False
        return True
