# fieldheat/materials/database.py
"""
Temperature- and field-dependent properties of the emitter material.

- Units: nm, s, K, V, A (see utils/constants.py).
- Transport coefficients come from a resistivity-vs-temperature table
  (Ohm·m, scaled to Ohm·nm), clamped to a validity window before lookup.
- Emission current and Nottingham energy come from 2-D grids over
  (ln F, T) with F in V/nm.
- placeholder_copper() tabulates non-credible placeholder laws so the
  package runs without data files; load real tables with load_*_data().

Public API (stable):
    PhysicalQuantities
        resistivity(T), resistivity_derivative(T)
        sigma(T), dsigma(T), kappa(T), dkappa(T)
        emission_current(F, T), nottingham_energy(F, T), nottingham_heat(F, T)
        load_resistivity_data(path), load_emission_data(path, layout),
        load_nottingham_data(path, layout) -> bool
        export_tables(out_dir) -> bool
        placeholder_copper() -> PhysicalQuantities

Notes:
- dsigma/dkappa are not consumed by the lagged assemblers; they are kept
  for a future Newton coupling.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from ..utils import logger as log
from ..utils.constants import (
    EMISSION_SCALE, K_B_EV, LORENTZ, RESISTIVITY_SCALE, T_VALID_MAX, T_VALID_MIN,
)
from .tables import (
    GridLayout,
    InterpolationGrid,
    SampleTable,
    bilinear,
    linear,
    linear_derivative,
    load_grid,
    load_samples,
    write_compact_grid,
)

__all__ = ["PhysicalQuantities"]


def _c64(x) -> np.ndarray:
    # keeps 0-d input 0-d so scalar queries come back as floats
    return np.asarray(x, dtype=np.float64)


def _scalar_or_array(a):
    a = np.asarray(a)
    return float(a) if a.ndim == 0 else a


# ---------------------------------------------------------------------
# Placeholder laws (non-credible!)
# ---------------------------------------------------------------------

_CU_RHO_293_OHM_M = 1.72e-8
_CU_ALPHA_PER_K = 3.9e-3
_CU_WORK_FUNCTION_EV = 4.5

# Fowler–Nordheim constants for F in V/nm
_FN_A = 1.541434e-6        # A·eV/V^2
_FN_B = 6.830890           # eV^(-3/2)·V/nm


def _placeholder_resistivity() -> SampleTable:
    T = np.linspace(100.0, 1500.0, 57)
    rho = _CU_RHO_293_OHM_M * (1.0 + _CU_ALPHA_PER_K * (T - 293.0))
    return SampleTable(T, np.maximum(rho, 1e-10))


def _placeholder_emission() -> InterpolationGrid:
    phi = _CU_WORK_FUNCTION_EV

    def ln_j_Am2(lnF, T):
        F = np.exp(lnF)
        return np.log(_FN_A * (F * 1e9) ** 2 / phi) - _FN_B * phi ** 1.5 / F + 0.0 * T

    return InterpolationGrid.from_function(
        ln_j_Am2, np.log(0.5), np.log(20.0), 64, 200.0, 1400.0, 25,
    )


def _placeholder_nottingham() -> InterpolationGrid:
    phi = _CU_WORK_FUNCTION_EV

    def energy_eV(lnF, T):
        # sign flips at the inversion temperature ~ 567 F / sqrt(phi) [K]
        T_inv = 567.0 * np.exp(lnF) / np.sqrt(phi)
        return K_B_EV * (T - T_inv)

    return InterpolationGrid.from_function(
        energy_eV, np.log(0.5), np.log(20.0), 64, 200.0, 1400.0, 25,
    )


# ---------------------------------------------------------------------
# Main object
# ---------------------------------------------------------------------


class PhysicalQuantities:
    """
    Tabulated material model shared (by reference) between assemblers.
    Omitted tables default to the placeholder copper ones.

    Parameters
    ----------
    resistivity : SampleTable, optional
        ρ(T) in Ohm·m.
    emission : InterpolationGrid, optional
        ln J[A/m^2] over (ln F[V/nm], T[K]).
    nottingham : InterpolationGrid, optional
        Nottingham energy [eV] over (ln F[V/nm], T[K]).
    temperature_window : (float, float)
        Clamp applied to T before σ/κ lookups.
    """

    def __init__(
        self,
        resistivity: Optional[SampleTable] = None,
        emission: Optional[InterpolationGrid] = None,
        nottingham: Optional[InterpolationGrid] = None,
        *,
        temperature_window: Tuple[float, float] = (T_VALID_MIN, T_VALID_MAX),
        lorentz: float = LORENTZ,
    ) -> None:
        lo, hi = float(temperature_window[0]), float(temperature_window[1])
        if hi < lo:
            raise ValueError(f"temperature_window must satisfy min <= max, got {temperature_window}")
        # missing tables start as the placeholder ones so queries always answer
        self.resistivity_data = resistivity if resistivity is not None else _placeholder_resistivity()
        self.emission_grid = emission if emission is not None else _placeholder_emission()
        self.nottingham_grid = nottingham if nottingham is not None else _placeholder_nottingham()
        self.temperature_window = (lo, hi)
        self.lorentz = float(lorentz)

    @classmethod
    def placeholder_copper(cls, **kwargs) -> "PhysicalQuantities":
        """Self-contained placeholder tables (linear ρ(T), Fowler–Nordheim J)."""
        return cls(**kwargs)

    # -------------------------- loading ----------------------------------

    def load_resistivity_data(self, path: str | Path) -> bool:
        try:
            self.resistivity_data = load_samples(path)
        except OSError:
            log.error(f'Couldn\'t open "{path}"')
            return False
        except ValueError as exc:
            log.error(f'Malformed resistivity table "{path}": {exc}')
            return False
        return True

    def _load_grid(self, path: str | Path, layout: GridLayout) -> Optional[InterpolationGrid]:
        try:
            return load_grid(path, layout)
        except OSError:
            log.error(f'Couldn\'t open "{path}"')
        except ValueError as exc:
            log.error(f'Malformed grid "{path}": {exc}')
        return None

    def load_emission_data(self, path: str | Path, layout: GridLayout = "compact") -> bool:
        grid = self._load_grid(path, layout)
        if grid is None:
            return False
        self.emission_grid = grid
        return True

    def load_nottingham_data(self, path: str | Path, layout: GridLayout = "compact") -> bool:
        grid = self._load_grid(path, layout)
        if grid is None:
            return False
        self.nottingham_grid = grid
        return True

    # ----------------------- transport coefficients ----------------------

    def _clamp(self, T) -> np.ndarray:
        lo, hi = self.temperature_window
        return np.clip(_c64(T), lo, hi)

    def resistivity(self, T):
        """ρ(T) [Ohm·nm], no clamping beyond the table's own."""
        return _scalar_or_array(np.asarray(linear(T, self.resistivity_data)) * RESISTIVITY_SCALE)

    def resistivity_derivative(self, T):
        """dρ/dT [Ohm·nm/K]."""
        return _scalar_or_array(
            np.asarray(linear_derivative(T, self.resistivity_data)) * RESISTIVITY_SCALE
        )

    def sigma(self, T):
        """Electrical conductivity [1/(Ohm·nm)]."""
        rho = np.asarray(self.resistivity(self._clamp(T)))
        return _scalar_or_array(1.0 / rho)

    def dsigma(self, T):
        """dσ/dT = -ρ'/ρ²."""
        Tc = self._clamp(T)
        rho = np.asarray(self.resistivity(Tc))
        return _scalar_or_array(-np.asarray(self.resistivity_derivative(Tc)) / (rho * rho))

    def kappa(self, T):
        """Thermal conductivity (Wiedemann–Franz) [W/(nm·K)]."""
        Tc = self._clamp(T)
        return _scalar_or_array(self.lorentz * Tc * np.asarray(self.sigma(Tc)))

    def dkappa(self, T):
        """dκ/dT = L (σ + T σ')."""
        Tc = self._clamp(T)
        return _scalar_or_array(
            self.lorentz * (np.asarray(self.sigma(Tc)) + Tc * np.asarray(self.dsigma(Tc)))
        )

    # --------------------------- emission --------------------------------

    @staticmethod
    def _log_field(F) -> np.ndarray:
        # ln(0) = -inf is clamped to the grid's lower edge by bilinear()
        with np.errstate(divide="ignore"):
            return np.log(np.abs(_c64(F)))

    def emission_current(self, F, T):
        """Field-emission current density [A/nm^2]."""
        lnJ = np.asarray(bilinear(self._log_field(F), T, self.emission_grid))
        return _scalar_or_array(np.exp(lnJ) * EMISSION_SCALE)

    def nottingham_energy(self, F, T):
        """Mean energy deposited per emitted electron [eV]."""
        return bilinear(self._log_field(F), T, self.nottingham_grid)

    def nottingham_heat(self, F, T):
        """Nottingham heat flux into the surface [W/nm^2]."""
        return _scalar_or_array(
            -np.asarray(self.nottingham_energy(F, T)) * np.asarray(self.emission_current(F, T))
        )

    # ---------------------------- export ---------------------------------

    def export_tables(self, out_dir: str | Path, temperature: float = 500.0) -> bool:
        """
        Write ρ/σ/κ (with derivatives) vs T and emission/Nottingham vs F
        at a fixed temperature as text columns.
        """
        out = Path(out_dir)
        if not out.is_dir():
            log.error(f"Can't access {out}")
            return False
        log.info(f'Outputting physical quantities to "{out}"')

        T = np.arange(100.0, 1500.0, 5.0)
        F = np.arange(0.01, 10.0, 0.01)
        Tf = np.full_like(F, float(temperature))
        try:
            np.savetxt(out / "rho_file.txt",
                       np.column_stack([T, self.resistivity(T), self.resistivity_derivative(T)]),
                       fmt="%.5e")
            np.savetxt(out / "sigma_file.txt",
                       np.column_stack([T, self.sigma(T), self.dsigma(T)]), fmt="%.5e")
            np.savetxt(out / "kappa_file.txt",
                       np.column_stack([T, self.kappa(T), self.dkappa(T)]), fmt="%.5e")
            np.savetxt(out / "emission_file.txt",
                       np.column_stack([F, Tf, self.emission_current(F, Tf)]),
                       fmt=["%.5e", "%.5e", "%.16e"])
            np.savetxt(out / "nottingham_file.txt",
                       np.column_stack([F, Tf, self.nottingham_energy(F, Tf)]),
                       fmt=["%.5e", "%.5e", "%.16e"])
            write_compact_grid(out / "emission_grid.dat", self.emission_grid,
                               comment="ln J [A/m^2] over (ln F [V/nm], T [K])")
            write_compact_grid(out / "nottingham_grid.dat", self.nottingham_grid,
                               comment="Nottingham energy [eV] over (ln F [V/nm], T [K])")
        except OSError as exc:
            log.error(f"Writing tables to {out} failed: {exc}")
            return False
        return True
