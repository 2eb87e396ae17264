# fieldheat/tests/test_conduction_heat.py
"""Coupled current/heat checks on small 2-D slabs.
Run with:  pytest -q
"""
from __future__ import annotations

import math

import numpy as np
import pytest

from fieldheat.geometry.mesh import BoundaryId, build_box_mesh, interface_faces
from fieldheat.materials.database import PhysicalQuantities
from fieldheat.models.currents_and_heating import CurrentsAndHeating
from fieldheat.physics.heat import (
    CrankNicolsonHeatAssembler,
    EulerImplicitHeatAssembler,
    make_heat_assembler,
)
from fieldheat.solver.linear import SolverControl
from fieldheat.solver.time_integration import ThetaMethod, advance, run_transient

AMBIENT = 300.0
CONTROL = SolverControl(tol=1e-7)


def _model(mesh, pq=None, **kwargs) -> CurrentsAndHeating:
    model = CurrentsAndHeating(pq or PhysicalQuantities.placeholder_copper(), **kwargs)
    model.import_mesh(mesh)
    model.setup_current_system()
    model.setup_heating_system()
    return model


def _vertex_temperature(model: CurrentsAndHeating) -> np.ndarray:
    return model.heat.solution[model.heat.dof_handler.vertex_to_dof]


def _frozen_emitter(dt: float, scheme: str) -> CurrentsAndHeating:
    """Constant coefficients, fixed emission, no Nottingham flux: a linear heat problem."""
    pq = PhysicalQuantities.placeholder_copper(temperature_window=(AMBIENT, AMBIENT))
    mesh = build_box_mesh((0.0, 0.0), (40.0, 40.0), (4, 4))
    model = _model(mesh, pq, time_step=dt, scheme=scheme)
    n_faces = len(interface_faces(mesh))
    model.set_emission_bc(np.full(n_faces, 1e-4), np.zeros(n_faces))
    # settle the potential first so the old potential is consistent at step one
    model.assemble_current_system()
    model.solve_current(tol=1e-13)
    return model


def test_potential_grounded_on_base():
    model = _model(build_box_mesh((0.0, 0.0), (40.0, 40.0), (4, 4)))
    model.set_uniform_field_bc(8.0)
    model.assemble_current_system()
    iters = model.solve_current()
    base = model.current.dof_handler.boundary_dofs(BoundaryId.BASE)
    assert iters > 0
    np.testing.assert_array_equal(model.current.solution[base], 0.0)
    # emission current enters through the surface, so φ rises away from the base
    assert model.current.solution.max() > 0.0
    np.testing.assert_array_equal(model.current.old_solution, 0.0)


def test_slab_cools_monotonically_without_sources():
    mesh = build_box_mesh((0.0, 0.0), (20.0, 5.0), (4, 1))
    model = _model(mesh, time_step=1e-12)
    n_faces = len(interface_faces(mesh))
    model.set_emission_bc(np.zeros(n_faces), np.zeros(n_faces))
    model.set_initial_temperature(600.0)

    t_max = [model.get_max_temperature()]
    history = run_transient(model, 10, CONTROL, on_step=lambda rec: t_max.append(rec.max_temperature))

    assert len(history) == 10
    assert np.all(np.diff(t_max) <= 1e-6)
    assert t_max[-1] < 600.0
    np.testing.assert_array_equal(model.current.solution, 0.0)
    base = model.heat.dof_handler.boundary_dofs(BoundaryId.BASE)
    np.testing.assert_allclose(model.heat.solution[base], AMBIENT)
    assert history[-1].max_heating_power == 0.0
    assert math.isclose(history[-1].time, 10e-12)


def test_crank_nicolson_more_accurate_than_euler():
    t_end = 20 * 1e-14
    ref = _frozen_emitter(t_end / 160, "crank_nicolson")
    run_transient(ref, 160, CONTROL)
    euler = _frozen_emitter(1e-14, "euler")
    run_transient(euler, 20, CONTROL)
    cn = _frozen_emitter(1e-14, "crank_nicolson")
    run_transient(cn, 20, CONTROL)

    T_ref = _vertex_temperature(ref)
    assert T_ref.max() > AMBIENT + 1.0
    err_euler = np.abs(_vertex_temperature(euler) - T_ref).max()
    err_cn = np.abs(_vertex_temperature(cn) - T_ref).max()
    assert err_cn < err_euler


def test_schemes_share_the_steady_state():
    euler = _frozen_emitter(1e-12, "euler")
    run_transient(euler, 200, CONTROL)
    cn = _frozen_emitter(1e-12, "crank_nicolson")
    run_transient(cn, 200, CONTROL)
    T_e, T_c = _vertex_temperature(euler), _vertex_temperature(cn)
    assert T_e.max() > AMBIENT + 1.0
    np.testing.assert_allclose(T_c, T_e, rtol=0.0, atol=1e-3)


def test_uniform_field_assembly_is_idempotent():
    model = _model(build_box_mesh((0.0, 0.0), (40.0, 40.0), (4, 4)))
    model.set_uniform_field_bc(8.0)
    model.assemble_current_system()
    A1, b1 = model.current.matrix.copy(), model.current.rhs.copy()

    model.set_field_bc(np.linspace(2.0, 9.0, len(interface_faces(model.mesh))))
    model.set_uniform_field_bc(8.0)
    model.set_uniform_field_bc(8.0)
    model.assemble_current_system()
    assert abs(model.current.matrix - A1).max() == 0.0
    np.testing.assert_array_equal(model.current.rhs, b1)


def test_get_current_from_linear_potential():
    mesh = build_box_mesh((0.0, 0.0), (20.0, 10.0), (2, 2))
    model = _model(mesh)
    phi = -2.0 * mesh.vertices[:, 1] + 0.5 * mesh.vertices[:, 0]
    model.current.solution[model.current.dof_handler.vertex_to_dof] = phi

    cells, verts = [0, 1, 3, 2], [0, 3, 1, 2]
    J = model.get_current(cells, verts)
    sigma = model.pq.sigma(AMBIENT)
    np.testing.assert_allclose(J, np.tile([-0.5 * sigma, 2.0 * sigma], (4, 1)), rtol=1e-12)
    np.testing.assert_allclose(model.get_temperature(cells, verts), AMBIENT)


def test_initial_temperature_profile_and_heating_step():
    mesh = build_box_mesh((0.0, 0.0), (40.0, 40.0), (4, 4))
    model = _model(mesh, time_step=1e-13, scheme="crank_nicolson")
    model.set_initial_temperature(lambda p: AMBIENT + 2.0 * p[:, 1])
    assert math.isclose(model.get_max_temperature(), AMBIENT + 80.0)
    model.set_uniform_field_bc(15.0)
    rec = advance(model, CONTROL, step=1)
    assert rec.max_heating_power > 0.0
    assert rec.current_iterations > 0


def test_operations_require_setup():
    model = CurrentsAndHeating()
    with pytest.raises(RuntimeError):
        model.setup_current_system()
    model.import_mesh(build_box_mesh((0.0, 0.0), (1.0, 1.0), (1, 1)))
    with pytest.raises(RuntimeError):
        model.assemble_current_system()
    with pytest.raises(ValueError):
        model.set_timestep(0.0)
    with pytest.raises(ValueError):
        model.set_scheme("rk4")


def test_result_export(tmp_path):
    model = _model(build_box_mesh((0.0, 0.0), (4.0, 4.0), (2, 2)))
    phi = 0.5 * model.mesh.vertices[:, 0] - 2.0 * model.mesh.vertices[:, 1]
    model.current.solution[model.current.dof_handler.vertex_to_dof] = phi
    assert model.output_results_current(tmp_path / "current.npz") is True
    assert model.output_results_heating(tmp_path / "heat.npz") is True
    with np.load(tmp_path / "heat.npz") as data:
        np.testing.assert_allclose(data["temperature"], AMBIENT)
        assert data["cells"].shape == (4, 4)
        np.testing.assert_allclose(data["sigma"], model.pq.sigma(AMBIENT))
    with np.load(tmp_path / "current.npz") as data:
        np.testing.assert_allclose(data["potential"], phi)
        # E = -grad(phi) at every vertex
        np.testing.assert_allclose(data["field"], np.tile([-0.5, 2.0], (9, 1)), atol=1e-12)

    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    assert model.output_results_current(blocker / "current.npz") is False


def test_heat_assembler_selected_by_theta():
    mesh = build_box_mesh((0.0, 0.0), (4.0, 4.0), (2, 2))
    model = _model(mesh)
    cond = model.conditions
    assert isinstance(make_heat_assembler("euler", mesh, cond), EulerImplicitHeatAssembler)
    assert isinstance(make_heat_assembler(ThetaMethod(0.5, "cn"), mesh, cond), CrankNicolsonHeatAssembler)
    with pytest.raises(ValueError):
        make_heat_assembler(ThetaMethod(0.3, "theta_0.3"), mesh, cond)

    model.set_scheme("crank_nicolson")
    model.assemble_heating_system()
    assert set(model._heat_assemblers) == {0.5}
