# fieldheat/discretization/fe.py
"""
Q1 Lagrange element on quads/hexes with tensor-product Gauss quadrature.

Everything is evaluated for all cells (or faces) at once; the leading axis
of every array is the cell (face) axis, so two fields living on the same mesh
line up index by index.

Shapes
------
nc : cells, nf : faces, nq : quadrature points, nv = 2**dim local vertices

Public API (stable):
    gauss_rule(n_points, dim) -> (points[nq, dim], weights[nq]) on [0, 1]^dim
    shape_values(xi) -> [nq, nv]
    shape_grads(xi)  -> [nq, nv, dim]
    CellValues(mesh, n_points=2)
    FaceValues(mesh, faces, n_points=2)
"""

from __future__ import annotations

import itertools
from typing import Sequence, Tuple

import numpy as np

from ..geometry.mesh import FaceId, Mesh

__all__ = ["gauss_rule", "shape_values", "shape_grads", "CellValues", "FaceValues"]


def _bits(dim: int) -> np.ndarray:
    return np.array([[(v >> d) & 1 for d in range(dim)] for v in range(2 ** dim)], dtype=np.float64)


def gauss_rule(n_points: int, dim: int) -> Tuple[np.ndarray, np.ndarray]:
    """Tensor Gauss–Legendre rule on the unit cube; first axis varies fastest."""
    x, w = np.polynomial.legendre.leggauss(int(n_points))
    x = 0.5 * (x + 1.0)
    w = 0.5 * w
    if dim == 0:
        return np.zeros((1, 0)), np.ones(1)
    idx = list(itertools.product(range(x.size), repeat=dim))
    # itertools varies the last index fastest, reverse so axis 0 is fastest
    pts = np.array([[x[i] for i in reversed(t)] for t in idx])
    wts = np.array([np.prod([w[i] for i in t]) for t in idx])
    return pts, wts


def shape_values(xi: np.ndarray) -> np.ndarray:
    xi = np.atleast_2d(np.asarray(xi, dtype=np.float64))
    b = _bits(xi.shape[1])
    # product over axes of x (bit 1) or 1 - x (bit 0)
    f = np.where(b[None, :, :] == 1.0, xi[:, None, :], 1.0 - xi[:, None, :])
    return np.prod(f, axis=2)


def shape_grads(xi: np.ndarray) -> np.ndarray:
    xi = np.atleast_2d(np.asarray(xi, dtype=np.float64))
    dim = xi.shape[1]
    b = _bits(dim)
    f = np.where(b[None, :, :] == 1.0, xi[:, None, :], 1.0 - xi[:, None, :])
    df = np.where(b[None, :, :] == 1.0, 1.0, -1.0) * np.ones_like(f)
    out = np.empty(f.shape, dtype=np.float64)
    for d in range(dim):
        g = f.copy()
        g[:, :, d] = df[:, :, d]
        out[:, :, d] = np.prod(g, axis=2)
    return out


def _physical_gradients(X: np.ndarray, dN: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Jacobians [n, nq, dim, dim] and physical gradients [n, nq, nv, dim].

    X : [n, nv, dim] vertex coordinates; dN : [nq, nv, dim] or [n, nq, nv, dim].
    """
    if dN.ndim == 3:
        J = np.einsum("cvi,qvj->cqij", X, dN)
        invJ = np.linalg.inv(J)
        grads = np.einsum("cqji,qvj->cqvi", invJ, dN)
    else:
        J = np.einsum("cvi,cqvj->cqij", X, dN)
        invJ = np.linalg.inv(J)
        grads = np.einsum("cqji,cqvj->cqvi", invJ, dN)
    return J, grads


# ---------------------------------------------------------------------
# Cell values
# ---------------------------------------------------------------------


class CellValues:
    """Shape values, physical gradients and JxW at all cell quadrature points."""

    def __init__(self, mesh: Mesh, n_points: int = 2) -> None:
        dim = mesh.dim
        self.points, self.weights = gauss_rule(n_points, dim)
        self.N = shape_values(self.points)                   # [nq, nv]
        dN = shape_grads(self.points)                        # [nq, nv, dim]
        X = mesh.vertices[mesh.cells]                        # [nc, nv, dim]
        J, self.grads = _physical_gradients(X, dN)           # grads [nc, nq, nv, dim]
        detJ = np.linalg.det(J)
        if np.any(detJ <= 0.0):
            raise ValueError("non-positive Jacobian at a cell quadrature point")
        self.JxW = detJ * self.weights[None, :]              # [nc, nq]
        self.q_points = np.einsum("qv,cvi->cqi", self.N, X)  # [nc, nq, dim]

    @property
    def n_q_points(self) -> int:
        return int(self.weights.size)

    def values(self, u_local: np.ndarray) -> np.ndarray:
        """Field values at quadrature points from local DoF values [nc, nv]."""
        return u_local @ self.N.T

    def gradients(self, u_local: np.ndarray) -> np.ndarray:
        """Field gradients [nc, nq, dim] from local DoF values [nc, nv]."""
        return np.einsum("cqvi,cv->cqi", self.grads, u_local)

    def mass(self, coef: np.ndarray | float = 1.0) -> np.ndarray:
        """Local matrices ∫ c N_i N_j [nc, nv, nv]."""
        w = self.JxW * coef
        return np.einsum("qi,qj,cq->cij", self.N, self.N, w)

    def stiffness(self, coef: np.ndarray | float = 1.0) -> np.ndarray:
        """Local matrices ∫ c ∇N_i·∇N_j [nc, nv, nv]."""
        w = self.JxW * coef
        return np.einsum("cqid,cqjd,cq->cij", self.grads, self.grads, w)

    def load(self, f: np.ndarray) -> np.ndarray:
        """Local vectors ∫ f N_i from quadrature values f [nc, nq]."""
        return np.einsum("qi,cq->ci", self.N, self.JxW * f)

    def grad_load(self, g: np.ndarray) -> np.ndarray:
        """Local vectors ∫ g·∇N_i from quadrature vectors g [nc, nq, dim]."""
        return np.einsum("cqid,cqd,cq->ci", self.grads, g, self.JxW)


# ---------------------------------------------------------------------
# Face values
# ---------------------------------------------------------------------


class FaceValues:
    """
    Shape values (of the owning cell), JxW and gradients at quadrature points
    of a list of faces.
    """

    def __init__(self, mesh: Mesh, faces: Sequence[FaceId], n_points: int = 2) -> None:
        dim = mesh.dim
        self.faces = list(faces)
        fpts, fw = gauss_rule(n_points, dim - 1)
        self.weights = fw
        nf, nq, nv = len(self.faces), fw.size, 2 ** dim
        self.cells = np.array([c for c, _ in self.faces], dtype=np.int64)

        xi = np.empty((nf, nq, dim))
        tangent_axes = np.empty((nf, dim - 1), dtype=np.int64)
        for k, (_, f) in enumerate(self.faces):
            axis, side = divmod(f, 2)
            others = [d for d in range(dim) if d != axis]
            xi[k][:, others] = fpts
            xi[k][:, axis] = float(side)
            tangent_axes[k] = others

        flat = xi.reshape(nf * nq, dim) if nf else np.zeros((0, dim))
        self.N = shape_values(flat).reshape(nf, nq, nv)
        dN = shape_grads(flat).reshape(nf, nq, nv, dim)
        X = mesh.vertices[mesh.cells[self.cells]] if nf else np.zeros((0, nv, dim))
        if nf:
            J, self.grads = _physical_gradients(X, dN)
            T = np.take_along_axis(J, tangent_axes[:, None, None, :].repeat(nq, 1).repeat(dim, 2), axis=3)
            # surface measure of the face parametrisation: sqrt(det(T^T T))
            measure = np.sqrt(np.linalg.det(np.einsum("fqki,fqkj->fqij", T, T)))
            self.JxW = measure * fw[None, :]
            self.q_points = np.einsum("fqv,fvi->fqi", self.N, X)
        else:
            self.grads = np.zeros((0, nq, nv, dim))
            self.JxW = np.zeros((0, nq))
            self.q_points = np.zeros((0, nq, dim))

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def n_q_points(self) -> int:
        return int(self.weights.size)

    def values(self, u_local: np.ndarray) -> np.ndarray:
        """Values [nf, nq] from owning-cell DoF values [nf, nv]."""
        return np.einsum("fqv,fv->fq", self.N, u_local)

    def gradients(self, u_local: np.ndarray) -> np.ndarray:
        """Gradients [nf, nq, dim] from owning-cell DoF values [nf, nv]."""
        return np.einsum("fqvi,fv->fqi", self.grads, u_local)

    def load(self, g: np.ndarray) -> np.ndarray:
        """Local vectors ∫_face g N_i [nf, nv] from quadrature values g [nf, nq]."""
        return np.einsum("fqi,fq->fi", self.N, self.JxW * g)

    def area(self) -> np.ndarray:
        return self.JxW.sum(axis=1)
