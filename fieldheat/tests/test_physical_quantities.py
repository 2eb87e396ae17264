# fieldheat/tests/test_physical_quantities.py
from __future__ import annotations

import math

import numpy as np
import pytest

from fieldheat.materials.database import PhysicalQuantities
from fieldheat.utils.constants import LORENTZ


def test_placeholder_resistivity_and_sigma():
    pq = PhysicalQuantities.placeholder_copper()
    # 1.72e-8 Ohm·m at 293 K -> 17.2 Ohm·nm
    assert math.isclose(pq.resistivity(293.0), 17.2, rel_tol=1e-9)
    assert math.isclose(pq.sigma(293.0), 1.0 / 17.2, rel_tol=1e-9)
    assert math.isclose(pq.kappa(500.0), LORENTZ * 500.0 * pq.sigma(500.0), rel_tol=1e-12)


def test_transport_coefficients_clamp_to_window():
    pq = PhysicalQuantities.placeholder_copper()
    assert pq.sigma(100.0) == pq.sigma(200.0)
    assert pq.sigma(5000.0) == pq.sigma(1400.0)
    # kappa uses the clamped temperature in the Wiedemann–Franz prefactor too
    assert math.isclose(pq.kappa(50.0), LORENTZ * 200.0 * pq.sigma(200.0), rel_tol=1e-12)

    frozen = PhysicalQuantities.placeholder_copper(temperature_window=(300.0, 300.0))
    np.testing.assert_allclose(frozen.kappa(np.array([250.0, 800.0])), frozen.kappa(300.0))


def test_derivatives_match_finite_differences():
    pq = PhysicalQuantities.placeholder_copper()
    T = 600.0
    fd_sigma = (pq.sigma(T + 1.0) - pq.sigma(T - 1.0)) / 2.0
    fd_kappa = (pq.kappa(T + 1.0) - pq.kappa(T - 1.0)) / 2.0
    assert math.isclose(pq.dsigma(T), fd_sigma, rel_tol=1e-4)
    assert math.isclose(pq.dkappa(T), fd_kappa, rel_tol=1e-4)
    assert pq.dsigma(T) < 0.0


def test_emission_and_nottingham():
    pq = PhysicalQuantities.placeholder_copper()
    j5, j10 = pq.emission_current(5.0, 500.0), pq.emission_current(10.0, 500.0)
    assert 0.0 < j5 < j10
    # zero field is clamped to the lowest tabulated field, not NaN
    j0 = pq.emission_current(0.0, 500.0)
    assert np.isfinite(j0) and j0 > 0.0
    E = pq.nottingham_energy(5.0, 900.0)
    assert math.isclose(pq.nottingham_heat(5.0, 900.0), -E * pq.emission_current(5.0, 900.0))


def test_failed_load_keeps_previous_table(tmp_path):
    pq = PhysicalQuantities.placeholder_copper()
    before = pq.resistivity(700.0)
    assert pq.load_resistivity_data(tmp_path / "missing.dat") is False
    assert pq.load_emission_data(tmp_path / "missing.dat") is False
    assert pq.resistivity(700.0) == before


def test_load_resistivity_replaces_table(tmp_path):
    path = tmp_path / "rho.dat"
    path.write_text("200 1e-8\n1400 2e-8\n")
    pq = PhysicalQuantities.placeholder_copper()
    assert pq.load_resistivity_data(path) is True
    assert math.isclose(pq.resistivity(800.0), 15.0, rel_tol=1e-12)


def test_export_tables(tmp_path):
    pq = PhysicalQuantities.placeholder_copper()
    assert pq.export_tables(tmp_path) is True
    for name in ("rho_file.txt", "sigma_file.txt", "kappa_file.txt",
                 "emission_file.txt", "nottingham_file.txt", "emission_grid.dat"):
        assert (tmp_path / name).is_file()
    assert pq.export_tables(tmp_path / "does-not-exist") is False


def test_invalid_window_raises():
    with pytest.raises(ValueError):
        PhysicalQuantities.placeholder_copper(temperature_window=(500.0, 400.0))


def test_default_construction_answers_queries(tmp_path):
    pq = PhysicalQuantities()
    ref = PhysicalQuantities.placeholder_copper()
    assert pq.load_resistivity_data(tmp_path / "missing.dat") is False
    assert pq.load_nottingham_data(tmp_path / "missing.dat") is False
    assert isinstance(pq.sigma(300.0), float)
    assert pq.sigma(300.0) == ref.sigma(300.0)
    assert pq.kappa(300.0) == ref.kappa(300.0)
    assert pq.emission_current(5.0, 600.0) == ref.emission_current(5.0, 600.0)
    assert isinstance(pq.nottingham_heat(5.0, 600.0), float)
