# fieldheat/boundaries/interface.py
"""
Per-face boundary data on the conductor/vacuum interface.

An InterfaceMap is one of
  - empty     : no data, callers fall back to a computed value;
  - uniform   : one scalar for every face, nothing stored per face;
  - per_face  : FaceId -> value; looking up a face that is not stored is a
                mesh/data mismatch and raises KeyError.

InterfaceConditions bundles the three maps the assemblers read (electric
field, emission current density, Nottingham heat flux) and resolves the
fallbacks through PhysicalQuantities.

Public API (stable):
    InterfaceMap.empty(), .uniform(v), .per_face(mapping), .lookup(face)
    build_from_field_samples(mesh, centroids, values, eps=1e-9) -> InterfaceMap
    build_from_ordered_values(mesh, values) -> InterfaceMap
    InterfaceConditions(pq)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Mapping, Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from ..geometry.mesh import FaceId, Mesh, interface_faces
from ..materials.database import PhysicalQuantities
from ..utils import diagnostics as diag
from ..utils import logger as log

__all__ = [
    "InterfaceMap",
    "InterfaceConditions",
    "build_from_field_samples",
    "build_from_ordered_values",
]

MapKind = Literal["empty", "uniform", "per_face"]


@dataclass(frozen=True, slots=True)
class InterfaceMap:
    kind: MapKind
    value: Optional[float] = None
    mapping: Mapping[FaceId, float] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "InterfaceMap":
        return cls("empty")

    @classmethod
    def uniform(cls, value: float) -> "InterfaceMap":
        return cls("uniform", value=float(value))

    @classmethod
    def per_face(cls, mapping: Mapping[FaceId, float]) -> "InterfaceMap":
        # an empty per-face map carries no information: same as no data
        if not mapping:
            return cls.empty()
        frozen = MappingProxyType({(int(c), int(f)): float(v) for (c, f), v in mapping.items()})
        return cls("per_face", mapping=frozen)

    @property
    def is_empty(self) -> bool:
        return self.kind == "empty"

    def __len__(self) -> int:
        return len(self.mapping)

    def lookup(self, face: FaceId) -> Optional[float]:
        """Stored value, the uniform scalar, or None (caller falls back)."""
        if self.kind == "per_face":
            return self.mapping[face]
        if self.kind == "uniform":
            return self.value
        return None

    def lookup_many(self, faces: Sequence[FaceId]) -> Optional[np.ndarray]:
        if self.kind == "per_face":
            return np.array([self.mapping[f] for f in faces], dtype=np.float64)
        if self.kind == "uniform":
            return np.full(len(faces), self.value, dtype=np.float64)
        return None


# ---------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------


def build_from_field_samples(
    mesh: Mesh,
    centroids: np.ndarray,
    values: np.ndarray,
    eps: float = 1e-9,
) -> InterfaceMap:
    """
    Match every interface face to the first sample (in sample order) whose
    centroid lies within `eps` of the face centroid. Unmatched faces are
    reported and left out of the map.
    """
    centroids = np.asarray(centroids, dtype=np.float64).reshape(-1, mesh.dim)
    values = np.asarray(values, dtype=np.float64).ravel()
    if centroids.shape[0] != values.size:
        raise ValueError(f"{centroids.shape[0]} sample centroids but {values.size} values")

    faces = interface_faces(mesh)
    mapping: dict[FaceId, float] = {}
    tree = cKDTree(centroids) if values.size else None
    for fid in faces:
        c = mesh.face_centroid(*fid)
        hits = tree.query_ball_point(c, r=eps) if tree is not None else []
        if hits:
            mapping[fid] = float(values[min(hits)])
        else:
            log.error(f"No field sample for interface face {fid}: "
                      "probably a mismatch between conductor and vacuum meshes")
    if log.is_verbose():
        diag.log_interface_summary(kind="field", matched=len(mapping), total=len(faces))
    return InterfaceMap.per_face(mapping)


def build_from_ordered_values(mesh: Mesh, values: Sequence[float] | np.ndarray) -> InterfaceMap:
    """Values given in interface traversal order (same order as the surface nodes)."""
    values = np.asarray(values, dtype=np.float64).ravel()
    faces = interface_faces(mesh)
    if values.size != len(faces):
        raise ValueError(f"expected {len(faces)} interface values, got {values.size}")
    return InterfaceMap.per_face(dict(zip(faces, values.tolist())))


# ---------------------------------------------------------------------
# Lookup with fallbacks
# ---------------------------------------------------------------------


class InterfaceConditions:
    """
    The three interface maps plus the material model used for fallbacks.

    Fallback chain:
      efield            : field map, else the uniform field (default 1 V/nm)
      emission_current  : emission map, else J(F, T) from the tables
      nottingham_heat   : Nottingham map, else -E_N(F, T) J(F, T)
    """

    def __init__(self, pq: PhysicalQuantities, uniform_field: float = 1.0) -> None:
        self.pq = pq
        self.field = InterfaceMap.uniform(uniform_field)
        self.emission = InterfaceMap.empty()
        self.nottingham = InterfaceMap.empty()
        self._uniform_field = float(uniform_field)

    # ---- setters (each one replaces the map) ---------------------------

    def set_uniform_field(self, value: float) -> None:
        self._uniform_field = float(value)
        self.field = InterfaceMap.uniform(value)

    def set_field_map(self, field_map: InterfaceMap) -> None:
        self.field = field_map

    def set_emission(self, emission: InterfaceMap, nottingham: InterfaceMap) -> None:
        self.emission = emission
        self.nottingham = nottingham

    def clear_emission(self) -> None:
        self.emission = InterfaceMap.empty()
        self.nottingham = InterfaceMap.empty()

    # ---- lookups -------------------------------------------------------

    def efield(self, faces: Sequence[FaceId]) -> np.ndarray:
        """Field magnitude per face [nf] (V/nm)."""
        out = self.field.lookup_many(faces)
        if out is None:
            out = np.full(len(faces), self._uniform_field)
        return out

    def emission_current(self, faces: Sequence[FaceId], T: np.ndarray) -> np.ndarray:
        """Emission current density [nf, nq] (A/nm^2) at face quadrature temperatures T."""
        T = np.asarray(T, dtype=np.float64)
        stored = self.emission.lookup_many(faces)
        if stored is not None:
            return np.broadcast_to(stored[:, None], T.shape).copy()
        F = self.efield(faces)[:, None]
        return np.asarray(self.pq.emission_current(np.broadcast_to(F, T.shape), T), dtype=np.float64)

    def nottingham_heat(self, faces: Sequence[FaceId], T: np.ndarray) -> np.ndarray:
        """Nottingham heat flux [nf, nq] (W/nm^2) at face quadrature temperatures T."""
        T = np.asarray(T, dtype=np.float64)
        stored = self.nottingham.lookup_many(faces)
        if stored is not None:
            return np.broadcast_to(stored[:, None], T.shape).copy()
        F = self.efield(faces)[:, None]
        return np.asarray(self.pq.nottingham_heat(np.broadcast_to(F, T.shape), T), dtype=np.float64)
