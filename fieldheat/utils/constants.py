# fieldheat/utils/constants.py
from __future__ import annotations

__all__ = [
    "LORENTZ", "CU_RHO_CP", "AMBIENT_TEMPERATURE", "K_B_EV",
    "RESISTIVITY_SCALE", "EMISSION_SCALE", "T_VALID_MIN", "T_VALID_MAX",
]

# Units: nm, s, K, V, A
LORENTZ = 2.443e-8              # Wiedemann–Franz Lorenz number [W·Ohm/K^2]
CU_RHO_CP = 3.4496e-21          # volumetric heat capacity of copper [J/(K·nm^3)]
AMBIENT_TEMPERATURE = 300.0     # temperature held on the base boundary [K]
K_B_EV = 8.617333262e-5         # Boltzmann constant [eV/K]

RESISTIVITY_SCALE = 1.0e9       # tabulated Ohm·m -> Ohm·nm
EMISSION_SCALE = 1.0e-18        # tabulated A/m^2 -> A/nm^2

# validity window of the tabulated transport coefficients [K]
T_VALID_MIN = 200.0
T_VALID_MAX = 1400.0
