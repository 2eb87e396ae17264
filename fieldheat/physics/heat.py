# fieldheat/physics/heat.py
r"""
Transient heat equation with Joule and Nottingham sources.

Strong form:
  ρc ∂T/∂t = ∇·(κ(T) ∇T) + σ(T) |∇φ|²,   κ ∂T/∂n = q_N on the interface,
  T = T_ambient on the base.

Both schemes lag the coefficients at the pre-step temperature T_prev:

  implicit Euler (γ = Δt/ρc)
    (M + γ K_κ) T = M T_prev + γ ∫σ|∇φ|² v + γ ∫ q_N v

  Crank–Nicolson (k = Δt/2ρc)
    (M + k K_κ) T = M T_prev + k ∫σ(|∇φ|² + |∇φ_old|²) v
                    - k ∫κ ∇T_prev·∇v + 2k ∫ q_N v

max_heating_power is the largest quadrature value of the (time-averaged)
Joule density; it is diagnostic only.
"""

from __future__ import annotations

from typing import Dict, Optional, Type, Union

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
from ..solver.time_integration import ThetaMethod, get_scheme
from ..utils.constants import AMBIENT_TEMPERATURE, CU_RHO_CP

__all__ = [
    "joule_heat",
    "HeatAssembler",
    "EulerImplicitHeatAssembler",
    "CrankNicolsonHeatAssembler",
    "make_heat_assembler",
]


def joule_heat(J: np.ndarray, E: np.ndarray) -> np.ndarray:
    """Volumetric Joule heating J·E along the last axis."""
    return np.sum(np.asarray(J) * np.asarray(E), axis=-1)


class HeatAssembler:
    """Common set-up for the two heat schemes."""

    name = "base"
    theta: float

    def __init__(
        self,
        mesh: Mesh,
        conditions: InterfaceConditions,
        *,
        rho_cp: float = CU_RHO_CP,
        ambient_temperature: float = AMBIENT_TEMPERATURE,
        cell_values: Optional[CellValues] = None,
        face_values: Optional[FaceValues] = None,
    ) -> None:
        self.conditions = conditions
        self.rho_cp = float(rho_cp)
        self.ambient_temperature = float(ambient_temperature)
        self.cell_values = cell_values or CellValues(mesh)
        self.face_values = face_values or FaceValues(mesh, interface_faces(mesh))
        self.max_heating_power = 0.0

    # ---- pieces shared by both schemes ----------------------------------

    def _coefficients(self, heat: FieldState):
        T_q = self.cell_values.values(heat.local())
        pq = self.conditions.pq
        return T_q, np.asarray(pq.kappa(T_q)), np.asarray(pq.sigma(T_q))

    def _joule(self, sigma: np.ndarray, phi_local: np.ndarray) -> np.ndarray:
        E = -self.cell_values.gradients(phi_local)
        return joule_heat(sigma[..., None] * E, E)

    def _nottingham_load(self, heat: FieldState, scale: float) -> np.ndarray:
        fv = self.face_values
        n = heat.n_dofs
        if not fv.n_faces:
            return np.zeros(n)
        hdofs = heat.dof_handler.cell_dofs[fv.cells]
        T_f = fv.values(heat.solution[hdofs])
        q_n = self.conditions.nottingham_heat(fv.faces, T_f)
        return scatter_vector(hdofs, fv.load(scale * q_n), n)

    def _finish(self, heat: FieldState, A, b) -> None:
        dofs, vals = interpolate_boundary_values(heat.dof_handler, BoundaryId.BASE, self.ambient_temperature)
        heat.matrix, heat.rhs = apply_boundary_values(A, heat.solution, b, dofs, vals)

    def assemble(self, heat: FieldState, current: FieldState, time_step: float) -> float:
        raise NotImplementedError


class EulerImplicitHeatAssembler(HeatAssembler):
    name = "euler"
    theta = 1.0

    def assemble(self, heat: FieldState, current: FieldState, time_step: float) -> float:
        cv = self.cell_values
        gamma = float(time_step) / self.rho_cp
        n = heat.n_dofs
        hdofs = heat.dof_handler.cell_dofs

        T_q, kappa, sigma = self._coefficients(heat)
        p_joule = self._joule(sigma, current.local())

        A = scatter_matrix(hdofs, cv.mass() + gamma * cv.stiffness(kappa), n)
        b = scatter_vector(hdofs, cv.load(T_q + gamma * p_joule), n)
        b += self._nottingham_load(heat, gamma)

        self.max_heating_power = float(p_joule.max(initial=0.0))
        self._finish(heat, A, b)
        return self.max_heating_power


class CrankNicolsonHeatAssembler(HeatAssembler):
    name = "crank_nicolson"
    theta = 0.5

    def assemble(self, heat: FieldState, current: FieldState, time_step: float) -> float:
        cv = self.cell_values
        k = float(time_step) / (2.0 * self.rho_cp)
        n = heat.n_dofs
        hdofs = heat.dof_handler.cell_dofs

        T_q, kappa, sigma = self._coefficients(heat)
        grad_T = cv.gradients(heat.local())
        p_sum = self._joule(sigma, current.local()) + self._joule(sigma, current.local("old_solution"))

        A = scatter_matrix(hdofs, cv.mass() + k * cv.stiffness(kappa), n)
        local_b = cv.load(T_q + k * p_sum) - k * cv.grad_load(kappa[..., None] * grad_T)
        b = scatter_vector(hdofs, local_b, n)
        b += self._nottingham_load(heat, 2.0 * k)

        self.max_heating_power = float((0.5 * p_sum).max(initial=0.0))
        self._finish(heat, A, b)
        return self.max_heating_power


_ASSEMBLERS: Dict[float, Type[HeatAssembler]] = {
    EulerImplicitHeatAssembler.theta: EulerImplicitHeatAssembler,
    CrankNicolsonHeatAssembler.theta: CrankNicolsonHeatAssembler,
}


def make_heat_assembler(
    scheme: Union[str, ThetaMethod], mesh: Mesh, conditions: InterfaceConditions, **kwargs
) -> HeatAssembler:
    """Assembler for a scheme name or a ThetaMethod, selected by its θ."""
    method = get_scheme(scheme) if isinstance(scheme, str) else scheme
    try:
        cls = _ASSEMBLERS[method.theta]
    except KeyError:
        raise ValueError(f"No heat assembler for theta={method.theta} (supported: {sorted(_ASSEMBLERS)})") from None
    return cls(mesh, conditions, **kwargs)
