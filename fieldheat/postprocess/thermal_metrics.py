# -*- coding: utf-8 -*-
"""
Thermal/electrical KPIs of a solved model: total emitted current, total
Joule power and the thermal resistance Rθ = ΔT / P.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from ..discretization.fe import CellValues, FaceValues
from ..geometry.mesh import interface_faces
from ..physics.heat import joule_heat

if TYPE_CHECKING:  # pragma: no cover
    from ..models.currents_and_heating import CurrentsAndHeating

__all__ = ["rtheta", "emitted_current_total", "joule_power_total", "summarize"]


def rtheta(delta_T: float, power_W: float) -> float:
    return delta_T / max(power_W, 1e-30)


def emitted_current_total(model: "CurrentsAndHeating") -> float:
    """∫_interface j_em ds [A] at the current temperature."""
    mesh, heat = model.mesh, model.heat
    faces = interface_faces(mesh)
    if not faces:
        return 0.0
    fv = FaceValues(mesh, faces)
    T_f = fv.values(heat.solution[heat.dof_handler.cell_dofs[fv.cells]])
    j = model.conditions.emission_current(faces, T_f)
    return float(np.sum(j * fv.JxW))


def joule_power_total(model: "CurrentsAndHeating") -> float:
    """∫ σ(T)|∇φ|² dx [W]."""
    cv = CellValues(model.mesh)
    T_q = cv.values(model.heat.local())
    sigma = np.asarray(model.pq.sigma(T_q))
    E = -cv.gradients(model.current.local())
    p = joule_heat(sigma[..., None] * E, E)
    return float(np.sum(p * cv.JxW))


def summarize(model: "CurrentsAndHeating") -> dict:
    """Scalar metrics for metrics.json."""
    t_max = model.get_max_temperature()
    p_joule = joule_power_total(model)
    return {
        "max_temperature_K": t_max,
        "emitted_current_A": emitted_current_total(model),
        "joule_power_W": p_joule,
        "rtheta_K_per_W": rtheta(t_max - model.ambient_temperature, p_joule),
        "max_heating_power_W_per_nm3": float(model.max_heating_power),
        "n_dofs_current": int(model.current.n_dofs),
        "n_dofs_heat": int(model.heat.n_dofs),
    }
