"""Tetrahedral elastic energy terms: linear (as-rigid-as-possible) and hyperelastic."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque

import numpy as np

from .energy_term import EnergyTerm, Lame, Triplet

_SELECTOR = np.array(
    [
        [-1.0, -1.0, -1.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ]
)


def _mat3(vec):
    """Column-major 9-vector to 3x3 matrix."""
    return np.asarray(vec, dtype=float).ravel().reshape((3, 3), order="F")


def _vec9(mat):
    """3x3 matrix to column-major 9-vector."""
    return np.asarray(mat, dtype=float).reshape(9, order="F")


def _diag_sum(mat):
    """Sum of the diagonal entries of a square matrix."""
    return float(np.diagonal(np.asarray(mat, dtype=float)).sum())


def create_tets_from_mesh(verts, inds, lame, vertex_offset=0, term_type=None):
    """Create one energy term per tetrahedron of a mesh.

    ``verts`` holds three coordinates per vertex and ``inds`` four vertex
    indices per tet. The terms index the global vertex array, shifted by
    ``vertex_offset``.
    """
    if term_type is None:
        term_type = TetEnergyTerm
    points = np.asarray(verts, dtype=float).reshape(-1, 3)
    tets = np.asarray(inds, dtype=int).reshape(-1, 4)
    return [
        term_type(
            tuple(int(i) + int(vertex_offset) for i in tet),
            points[tet],
            lame,
        )
        for tet in tets
    ]


class TetEnergyTerm(EnergyTerm):
    """Linear tetrahedral elasticity projected onto rotations."""

    def __init__(self, tet, verts, lame):
        self.tet = tuple(int(i) for i in tet)
        if len(self.tet) != 4:
            raise ValueError("a tet needs exactly four vertex indices")
        self.lame = lame
        points = np.asarray(verts, dtype=float).reshape(4, 3)
        edges = np.column_stack(
            [points[1] - points[0], points[2] - points[0], points[3] - points[0]]
        )
        volume = float(np.linalg.det(edges)) / 6.0
        if volume < 0:
            raise ValueError("inverted initial tet")
        try:
            self.edges_inv = np.linalg.inv(edges)
        except np.linalg.LinAlgError as exc:
            raise ValueError("degenerate initial tet") from exc
        self._volume = volume
        self._weight = float(np.sqrt(lame.bulk_modulus() * volume))
        self._zi = None

    @property
    def dim(self):
        return 9

    @property
    def weight(self):
        return self._weight

    @property
    def volume(self):
        return self._volume

    def _last_z(self):
        if self._zi is None:
            raise RuntimeError("no proximal update has been made yet")
        return self._zi

    def local_reduction(self):
        dt = (_SELECTOR @ self.edges_inv).T
        rows = (0, 3, 6)
        cols = [3 * v for v in self.tet]
        return [
            Triplet(rows[r] + j, cols[c] + j, float(dt[r, c]))
            for r in range(3)
            for c in range(4)
            for j in range(3)
        ]

    def prox(self, W, zi, vi):
        zi = np.asarray(zi, dtype=float).ravel().copy()
        self._zi = zi.copy()
        F = _mat3(zi)
        u, _, vt = np.linalg.svd(F)
        signs = np.ones(3)
        if np.linalg.det(F) < 1e-16:
            signs[2] = -1.0
        proj = u @ np.diag(signs) @ vt
        # Valid because weight**2 == k * volume.
        return 0.5 * (_vec9(proj) + zi)

    def strain_limit_energy(self, zi):
        raise RuntimeError("tet terms have no strain-limiting energy")

    def local_energy(self, F):
        vec = np.asarray(F, dtype=float).ravel()
        s = np.linalg.svd(_mat3(vec), compute_uv=False)
        diff = self._last_z() - vec
        k = self.lame.bulk_modulus()
        return 0.5 * k * self.volume * (float(np.sum((s - 1.0) ** 2)) + float(diff @ diff))

    def local_energy_lbfgs(self, F):
        s = np.linalg.svd(_mat3(F), compute_uv=False)
        k = self.lame.bulk_modulus()
        return 0.5 * k * self.volume * float(np.sum((s - 1.0) ** 2))

    def _elastic_gradient(self, vec):
        mat = _mat3(vec)
        u, _, vt = np.linalg.svd(mat)
        k = self.lame.bulk_modulus()
        return _vec9(k * self.volume * (mat - u @ vt))

    def local_gradient(self, F):
        vec = np.asarray(F, dtype=float).ravel()
        return self._elastic_gradient(vec) + vec - self._last_z()

    def local_get_gradient(self, F, grad):
        return self._elastic_gradient(np.asarray(F, dtype=float).ravel())


class HyperElasticProx(ABC):
    """Local proximal problem of a hyperelastic material.

    Minimises ``vol * (U(x) + k/2 * |vi - x|^2)`` over the 9-vector ``x``.
    """

    def __init__(self, lame):
        self.mu = lame.mu
        self.lam = lame.lam
        self.k = lame.bulk_modulus()
        self.vol = 0.0
        self.W = np.zeros((9, 9))
        self.vi = np.zeros(9)
        self.x0 = np.zeros(3)

    def configure(self, W, vi, vol):
        self.W = np.asarray(W, dtype=float)
        self.vi = np.asarray(vi, dtype=float).ravel().copy()
        self.vol = float(vol)

    def converged(self, x0, x1, grad):
        return bool(
            np.linalg.norm(grad) < 1e-10
            or np.linalg.norm(np.asarray(x0) - np.asarray(x1)) < 1e-10
        )

    @abstractmethod
    def energy_density(self, x):
        """Strain energy density U at the column-major 9-vector ``x``."""

    @abstractmethod
    def u_gradient(self, F):
        """Gradient of U with respect to the 3x3 matrix ``F``."""

    def value(self, x):
        x = np.asarray(x, dtype=float).ravel()
        diff = self.vi - x
        return self.energy_density(x) + 0.5 * self.k * float(diff @ diff)

    def value_lbfgs(self, x):
        return self.energy_density(x)

    def gradient(self, x):
        """Return ``(vol * value(x), gradient)`` of the scaled objective."""
        x = np.asarray(x, dtype=float).ravel()
        grad = _vec9(self.u_gradient(_mat3(x)))
        grad = self.vol * (grad + self.k * (x - self.vi))
        return self.vol * self.value(x), grad


class NHProx(HyperElasticProx):
    """Compressible Neo-Hookean material."""

    def energy_density(self, x):
        F = _mat3(x)
        J = float(np.linalg.det(F))
        i1 = _diag_sum(F.T @ F)
        with np.errstate(divide="ignore", invalid="ignore"):
            log_i3 = float(np.log(J * J))
        t1 = 0.5 * self.mu * (i1 - log_i3 - 3.0)
        t2 = 0.125 * self.lam * log_i3 * log_i3
        return t1 + t2

    def u_gradient(self, F):
        F = np.asarray(F, dtype=float)
        f_inv_t = np.linalg.inv(F).T
        J = float(np.linalg.det(F))
        with np.errstate(divide="ignore", invalid="ignore"):
            log_j = float(np.log(J))
        return self.mu * (F - f_inv_t) + self.lam * log_j * f_inv_t


class StVKProx(HyperElasticProx):
    """St. Venant-Kirchhoff material."""

    @staticmethod
    def _green_strain(F):
        return 0.5 * (F.T @ F - np.eye(3))

    def energy_density(self, x):
        E = self._green_strain(_mat3(x))
        tr = _diag_sum(E)
        return self.mu * _diag_sum(E.T @ E) + 0.5 * self.lam * tr * tr

    def u_gradient(self, F):
        F = np.asarray(F, dtype=float)
        E = self._green_strain(F)
        return F @ (2.0 * self.mu * E + self.lam * _diag_sum(E) * np.eye(3))


def _minimize_lbfgs(problem, x, max_iters=100, history=6):
    """Minimise ``problem.gradient`` with L-BFGS and a backtracking line search."""
    x = np.asarray(x, dtype=float).ravel().copy()
    fx, g = problem.gradient(x)
    pairs = deque(maxlen=history)
    for _ in range(max_iters):
        g_norm = float(np.linalg.norm(g))
        if g_norm == 0.0:
            break
        q = g.copy()
        alphas = []
        for s, y, rho in reversed(pairs):
            a = rho * float(s @ q)
            q -= a * y
            alphas.append(a)
        if pairs:
            s, y, _ = pairs[-1]
            q *= float(s @ y) / float(y @ y)
        else:
            q /= max(1.0, g_norm)
        for (s, y, rho), a in zip(pairs, reversed(alphas)):
            b = rho * float(y @ q)
            q += s * (a - b)
        d = -q
        gd = float(g @ d)
        if gd >= 0.0:
            d = -g / max(1.0, g_norm)
            gd = float(g @ d)

        step = 1.0
        while True:
            x_new = x + step * d
            f_new, g_new = problem.gradient(x_new)
            if f_new <= fx + 1e-4 * step * gd:
                break
            step *= 0.5
            if step < 1e-12:
                return x

        s = x_new - x
        y = g_new - g
        sy = float(s @ y)
        if sy > 1e-16:
            pairs.append((s, y, 1.0 / sy))
        done = problem.converged(x, x_new, g_new)
        x, fx, g = x_new, f_new, g_new
        if done:
            break
    return x


class HyperElasticTet(TetEnergyTerm):
    """A tet whose local step minimises a hyperelastic proximal problem."""

    prox_type: type = HyperElasticProx

    def __init__(self, tet, verts, lame):
        super().__init__(tet, verts, lame)
        self.problem = self.prox_type(lame)

    def prox(self, W, zi, vi):
        self.problem.configure(W, vi, self.volume)
        return _minimize_lbfgs(self.problem, zi)

    def strain_limit_energy(self, zi):
        raise RuntimeError("hyperelastic tet terms have no strain-limiting energy")

    def local_energy(self, F):
        return self.problem.value(F) * self.volume

    def local_energy_lbfgs(self, F):
        return self.problem.value_lbfgs(F) * self.volume

    def local_gradient(self, F):
        return self.problem.gradient(F)[1]

    def local_get_gradient(self, F, grad):
        return _vec9(self.volume * self.problem.u_gradient(_mat3(F)))


class NeoHookeanTet(HyperElasticTet):
    """Neo-Hookean tetrahedron."""

    prox_type = NHProx


class StVKTet(HyperElasticTet):
    """St. Venant-Kirchhoff tetrahedron."""

    prox_type = StVKProx


__all__ = [
    "Lame",
    "create_tets_from_mesh",
    "TetEnergyTerm",
    "HyperElasticProx",
    "NHProx",
    "StVKProx",
    "HyperElasticTet",
    "NeoHookeanTet",
    "StVKTet",
]