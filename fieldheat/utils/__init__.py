# fieldheat/utils/__init__.py
from __future__ import annotations
from .constants import (
    LORENTZ, CU_RHO_CP, AMBIENT_TEMPERATURE, K_B_EV,
    RESISTIVITY_SCALE, EMISSION_SCALE, T_VALID_MIN, T_VALID_MAX,
)

__all__ = [
    "LORENTZ", "CU_RHO_CP", "AMBIENT_TEMPERATURE", "K_B_EV",
    "RESISTIVITY_SCALE", "EMISSION_SCALE", "T_VALID_MIN", "T_VALID_MAX",
]
