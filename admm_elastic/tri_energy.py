"""Triangle (membrane) elastic energy terms with optional strain limiting."""

from __future__ import annotations

import numpy as np

from .energy_term import EnergyTerm, Triplet

_SELECTOR = np.array(
    [
        [-1.0, -1.0],
        [1.0, 0.0],
        [0.0, 1.0],
    ]
)


def _mat32(vec):
    """Column-major 6-vector to 3x2 matrix."""
    return np.asarray(vec, dtype=float).ravel().reshape((3, 2), order="F")


def _vec6(mat):
    """3x2 matrix to column-major 6-vector."""
    return np.asarray(mat, dtype=float).reshape(6, order="F")


def _normalized(v):
    norm = np.linalg.norm(v)
    return v / norm if norm > 0.0 else v.copy()


def create_tris_from_mesh(verts, inds, lame, vertex_offset=0, term_type=None):
    """Create one energy term per triangle of a mesh.

    ``verts`` holds three coordinates per vertex and ``inds`` three vertex
    indices per triangle. The terms index the global vertex array, shifted
    by ``vertex_offset``.
    """
    if term_type is None:
        term_type = TriEnergyTerm
    points = np.asarray(verts, dtype=float).reshape(-1, 3)
    tris = np.asarray(inds, dtype=int).reshape(-1, 3)
    return [
        term_type(
            tuple(int(i) + int(vertex_offset) for i in tri),
            points[tri],
            lame,
        )
        for tri in tris
    ]


class TriEnergyTerm(EnergyTerm):
    """Linear triangle elasticity projected onto rotations, with strain limits."""

    def __init__(self, tri, verts, lame):
        self.tri = tuple(int(i) for i in tri)
        if len(self.tri) != 3:
            raise ValueError("a triangle needs exactly three vertex indices")
        if lame.limit_min > 1.0:
            raise ValueError("strain limit min should be in (-inf, 1]")
        if lame.limit_max < 1.0:
            raise ValueError("strain limit max should be in [1, inf)")
        self.lame = lame

        points = np.asarray(verts, dtype=float).reshape(3, 3)
        e12 = points[1] - points[0]
        e13 = points[2] - points[0]
        n1 = _normalized(e12)
        n2 = _normalized(e13 - float(e13 @ n1) * n1)
        basis = np.column_stack([n1, n2])
        edges = np.column_stack([e12, e13])
        local = basis.T @ edges
        area = 0.5 * float(np.linalg.det(local))
        if area < 0:
            raise ValueError("inverted initial triangle")
        try:
            self.rest_pose = np.linalg.inv(local)
        except np.linalg.LinAlgError as exc:
            raise ValueError("degenerate initial triangle") from exc
        self._area = area
        self._weight = float(np.sqrt(lame.bulk_modulus() * area))

    @property
    def dim(self):
        return 6

    @property
    def weight(self):
        return self._weight

    @property
    def volume(self):
        return self._area

    @property
    def _check_strain(self):
        return self.lame.limit_min > 0.0 or self.lame.limit_max < 99.0

    def local_reduction(self):
        d = _SELECTOR @ self.rest_pose
        cols = [3 * v for v in self.tri]
        triplets = []
        for i in range(3):
            for j in range(3):
                triplets.append(Triplet(i, cols[j] + i, float(d[j, 0])))
                triplets.append(Triplet(3 + i, cols[j] + i, float(d[j, 1])))
        return triplets

    @staticmethod
    def _averaged_singular_values(zi):
        u, s, vt = np.linalg.svd(_mat32(zi), full_matrices=True)
        # Valid because weight**2 == k * area.
        return u, 0.5 * (1.0 + s), vt

    def prox(self, W, zi, vi):
        u, sigma, vt = self._averaged_singular_values(zi)
        if self._check_strain:
            lo, hi = self.lame.limit_min, self.lame.limit_max
            clamped = sigma.copy()
            clamped[sigma < lo] = lo
            clamped[sigma > hi] = hi
            sigma = clamped
        return _vec6(u[:, :2] @ np.diag(sigma) @ vt)

    def strain_limit_energy(self, zi):
        _, sigma, _ = self._averaged_singular_values(zi)
        if not self._check_strain:
            return 0.0
        lo, hi = self.lame.limit_min, self.lame.limit_max
        energy = 0.0
        for value in sigma:
            if value < lo:
                energy += lo - value
            if value > hi:
                energy += value - hi
        return float(energy)

    def local_energy(self, F):
        mat = _mat32(F)
        u, _, vt = np.linalg.svd(mat, full_matrices=True)
        proj = u[:, :2] @ vt
        k = self.lame.bulk_modulus()
        return 0.5 * k * self.volume * float(np.sum((mat - proj) ** 2))

    def local_energy_lbfgs(self, F):
        return self.local_energy(F)

    def local_gradient(self, F):
        raise RuntimeError("triangle terms provide no gradient")

    def local_get_gradient(self, F, grad):
        raise RuntimeError("triangle terms provide no gradient")