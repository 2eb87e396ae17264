# fieldheat/geometry/mesh.py
"""
Unstructured quadrilateral (2-D) / hexahedral (3-D) mesh of the conductor.

Conventions
-----------
- Cell vertices are listed lexicographically: local vertex v sits at reference
  coordinate bit (v >> d) & 1 along axis d (v = i + 2 j + 4 k).
- Local face f lies on reference axis f // 2 at side f % 2; its vertices are
  the local vertices whose bit on that axis equals the side.
- A face identity is (cell index, local face index). "Traversal order" means
  cells in index order, then local faces in index order.
- Every boundary face carries exactly one marker (INTERFACE or BASE);
  interior faces carry none.

Public API (stable):
    BoundaryId, FaceId
    Mesh(vertices, cells, boundary_ids)
    Mesh.from_arrays(vertices, cells, classifier=None) -> Mesh
    mark_boundary(mesh, classifier=None) -> None
    build_box_mesh(lower, upper, divisions) -> Mesh
    interface_faces(mesh) -> list[FaceId]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

__all__ = [
    "BoundaryId",
    "FaceId",
    "Mesh",
    "face_local_vertices",
    "mark_boundary",
    "build_box_mesh",
    "interface_faces",
]

FaceId = Tuple[int, int]
Classifier = Callable[[np.ndarray], int]


class BoundaryId(IntEnum):
    INTERFACE = 1   # conductor/vacuum surface carrying emission
    BASE = 2        # heat-sinked, grounded bottom


def _c64(x) -> np.ndarray:
    return np.ascontiguousarray(np.asarray(x, dtype=np.float64))


def face_local_vertices(dim: int, face: int) -> np.ndarray:
    """Local vertex indices of reference face `face`, in lexicographic order."""
    axis, side = divmod(face, 2)
    return np.array([v for v in range(2 ** dim) if (v >> axis) & 1 == side], dtype=np.int64)


def _orientation(vertices: np.ndarray, cells: np.ndarray) -> np.ndarray:
    """Jacobian determinant of every cell at its reference centre."""
    dim = vertices.shape[1]
    nv = 2 ** dim
    bits = np.array([[(v >> d) & 1 for d in range(dim)] for v in range(nv)], dtype=np.float64)
    # dN/dxi at the centre: +-1/2^(dim-1) with the sign of the vertex bit
    dN = (2.0 * bits - 1.0) / 2 ** (dim - 1)
    J = np.einsum("cvi,vj->cij", vertices[cells], dN)
    return np.linalg.det(J)


# ---------------------------------------------------------------------
# Mesh container
# ---------------------------------------------------------------------


@dataclass(slots=True)
class Mesh:
    """
    Conforming Q1 mesh.

    Attributes
    ----------
    vertices : (n_vertices, dim) float array [nm]
    cells : (n_cells, 2**dim) int array, lexicographic vertex order
    boundary_ids : dict FaceId -> BoundaryId
    """

    vertices: np.ndarray
    cells: np.ndarray
    boundary_ids: Dict[FaceId, int] = field(default_factory=dict)
    _boundary_faces: Optional[List[FaceId]] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.vertices = _c64(self.vertices)
        self.cells = np.ascontiguousarray(np.asarray(self.cells, dtype=np.int64))

    # ---- sizes ----------------------------------------------------------

    @property
    def dim(self) -> int:
        return int(self.vertices.shape[1])

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def n_cells(self) -> int:
        return int(self.cells.shape[0])

    @property
    def faces_per_cell(self) -> int:
        return 2 * self.dim

    # ---- topology -------------------------------------------------------

    def face_vertices(self, cell: int, face: int) -> np.ndarray:
        return self.cells[cell, face_local_vertices(self.dim, face)]

    def face_centroid(self, cell: int, face: int) -> np.ndarray:
        return self.vertices[self.face_vertices(cell, face)].mean(axis=0)

    def boundary_faces(self) -> List[FaceId]:
        """Faces owned by exactly one cell, in traversal order."""
        if self._boundary_faces is None:
            counts: Dict[Tuple[int, ...], int] = {}
            keyed: List[Tuple[FaceId, Tuple[int, ...]]] = []
            for c in range(self.n_cells):
                for f in range(self.faces_per_cell):
                    key = tuple(sorted(self.face_vertices(c, f).tolist()))
                    counts[key] = counts.get(key, 0) + 1
                    keyed.append(((c, f), key))
            self._boundary_faces = [fid for fid, key in keyed if counts[key] == 1]
        return self._boundary_faces

    def faces_with_id(self, boundary_id: int) -> List[FaceId]:
        """Boundary faces carrying `boundary_id`, in traversal order."""
        return [fid for fid in self.boundary_faces() if self.boundary_ids.get(fid) == boundary_id]

    def boundary_vertices(self, boundary_id: int) -> np.ndarray:
        """Sorted unique vertex indices touching faces with `boundary_id`."""
        faces = self.faces_with_id(boundary_id)
        if not faces:
            return np.zeros(0, dtype=np.int64)
        return np.unique(np.concatenate([self.face_vertices(c, f) for c, f in faces]))

    # ---- construction ---------------------------------------------------

    @classmethod
    def from_arrays(
        cls,
        vertices: Sequence[Sequence[float]] | np.ndarray,
        cells: Sequence[Sequence[int]] | np.ndarray,
        *,
        classifier: Optional[Classifier] = None,
    ) -> "Mesh":
        """
        Validate raw arrays, drop unused vertices, re-orient inverted cells
        and mark the boundary. Raises ValueError on malformed input.
        """
        V = _c64(vertices)
        C = np.asarray(cells)
        if V.ndim != 2 or V.shape[1] not in (2, 3):
            raise ValueError(f"vertices must have shape (n, 2) or (n, 3), got {V.shape}")
        dim = V.shape[1]
        if C.ndim != 2 or C.shape[1] != 2 ** dim or C.shape[0] == 0:
            raise ValueError(f"cells must have shape (m, {2 ** dim}) with m > 0, got {C.shape}")
        if not np.issubdtype(C.dtype, np.integer):
            if not np.all(np.mod(C, 1) == 0):
                raise ValueError("cell vertex indices must be integers")
        C = C.astype(np.int64)
        if C.min() < 0 or C.max() >= V.shape[0]:
            raise ValueError("cell vertex index out of range")
        if any(len(set(row)) != row.size for row in C):
            raise ValueError("a cell references the same vertex twice")

        # delete unused vertices, renumbering the rest in their original order
        used = np.unique(C)
        if used.size != V.shape[0]:
            remap = np.full(V.shape[0], -1, dtype=np.int64)
            remap[used] = np.arange(used.size)
            V = V[used]
            C = remap[C]

        # flip cells of negative orientation by mirroring the first reference axis
        det = _orientation(V, C)
        if np.any(np.abs(det) <= 1e-14 * np.max(np.abs(det), initial=1.0)):
            raise ValueError("degenerate cell (zero Jacobian at centre)")
        flip = det < 0.0
        if np.any(flip):
            perm = np.arange(2 ** dim) ^ 1
            C[flip] = C[flip][:, perm]

        mesh = cls(V, C)
        mark_boundary(mesh, classifier)
        return mesh


# ---------------------------------------------------------------------
# Boundary marking
# ---------------------------------------------------------------------


def mark_boundary(mesh: Mesh, classifier: Optional[Classifier] = None) -> None:
    """
    Assign a BoundaryId to every boundary face.

    Default rule: faces whose centroid lies on the minimum of the last
    coordinate are BASE, all others INTERFACE. A custom `classifier` gets
    the face centroid and returns the marker.
    """
    faces = mesh.boundary_faces()
    if classifier is None:
        z = mesh.vertices[:, -1]
        z_min = float(z.min())
        tol = 1e-9 * max(float(z.max() - z_min), 1.0)

        def classifier(centroid: np.ndarray) -> int:
            return BoundaryId.BASE if abs(centroid[-1] - z_min) <= tol else BoundaryId.INTERFACE

    mesh.boundary_ids = {fid: BoundaryId(classifier(mesh.face_centroid(*fid))) for fid in faces}


def interface_faces(mesh: Mesh) -> List[FaceId]:
    """Interface faces in traversal order (the order of ordered BC values)."""
    return mesh.faces_with_id(BoundaryId.INTERFACE)


# ---------------------------------------------------------------------
# Structured builder
# ---------------------------------------------------------------------


def build_box_mesh(
    lower: Sequence[float],
    upper: Sequence[float],
    divisions: Sequence[int],
    *,
    classifier: Optional[Classifier] = None,
) -> Mesh:
    """
    Axis-aligned box split into prod(divisions) cells.

    The face at the minimum of the last axis becomes BASE, the rest INTERFACE
    (unless a classifier is supplied).
    """
    lo = _c64(lower)
    hi = _c64(upper)
    div = [int(n) for n in divisions]
    dim = lo.size
    if dim not in (2, 3) or hi.size != dim or len(div) != dim:
        raise ValueError("lower, upper and divisions must all have length 2 or 3")
    if any(n < 1 for n in div) or np.any(hi <= lo):
        raise ValueError("box needs upper > lower and at least one division per axis")

    axes = [np.linspace(lo[d], hi[d], div[d] + 1) for d in range(dim)]
    # vertex index = i + (nx+1) j + (nx+1)(ny+1) k, x fastest
    grids = np.meshgrid(*axes, indexing="ij")
    vertices = np.column_stack([g.ravel(order="F") for g in grids])

    shape = [n + 1 for n in div]
    strides = np.cumprod([1] + shape[:-1])
    base = np.meshgrid(*[np.arange(n) for n in div], indexing="ij")
    base_idx = sum(b.ravel(order="F") * s for b, s in zip(base, strides))

    offsets = np.array(
        [sum(((v >> d) & 1) * strides[d] for d in range(dim)) for v in range(2 ** dim)],
        dtype=np.int64,
    )
    cells = base_idx[:, None] + offsets[None, :]
    return Mesh.from_arrays(vertices, cells, classifier=classifier)
