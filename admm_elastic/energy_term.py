"""Material constants and the base class for ADMM energy terms."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np
from scipy.sparse import issparse


class Triplet(NamedTuple):
    """One (row, column, value) entry of a sparse matrix."""

    row: int
    col: int
    value: float


@dataclass
class Lame:
    """Lame parameters with optional hard strain limits.

    ``limit_min`` ranges over (-inf, 1] and ``limit_max`` over [1, inf);
    a maximum above 99 effectively means no limit.
    """

    mu: float = 0.0
    lam: float = 0.0
    limit_min: float = -100.0
    limit_max: float = 100.0

    @classmethod
    def from_youngs_poisson(cls, youngs, poisson):
        """Build from Young's modulus (Pa) and Poisson's ratio."""
        mu = youngs / (2.0 * (1.0 + poisson))
        lam = youngs * poisson / ((1.0 + poisson) * (1.0 - 2.0 * poisson))
        return cls(mu=mu, lam=lam)

    @classmethod
    def rubber(cls):
        return cls.from_youngs_poisson(10000000, 0.499)

    @classmethod
    def soft_rubber(cls):
        return cls.from_youngs_poisson(10000000, 0.399)

    @classmethod
    def very_soft_rubber(cls):
        return cls.from_youngs_poisson(1000000, 0.299)

    def bulk_modulus(self):
        return self.lam + (2.0 / 3.0) * self.mu


def _row_product(matrix, start, stop, x):
    return np.asarray(matrix[start:stop] @ x, dtype=float).ravel()


def _diag_block(matrix, start, stop):
    block = matrix[start:stop, start:stop]
    if issparse(block):
        block = block.toarray()
    return np.asarray(block, dtype=float)


class EnergyTerm(ABC):
    """A term of the ADMM objective acting on a slice of the global z/u vectors.

    The term owns the rows ``[first_row, first_row + dim)`` of the global
    reduction matrix, assigned by :meth:`reduction`.
    """

    _g_index: int | None = None

    @property
    @abstractmethod
    def dim(self):
        """Dimension of the term's deformation gradient."""

    @property
    @abstractmethod
    def weight(self):
        """Scalar ADMM weight of the term."""

    @property
    @abstractmethod
    def volume(self):
        """Volume (or area) the term represents."""

    def _segment(self):
        if self._g_index is None:
            raise RuntimeError("energy term has no rows yet; call reduction() first")
        return slice(self._g_index, self._g_index + self.dim)

    def reduction(self, first_row):
        """Assign global rows and return (triplets, weights) for this term."""
        local = self.local_reduction()
        w = self.weight
        if w <= 0.0:
            raise ValueError("energy term weight must be positive")
        self._g_index = int(first_row)
        triplets = [
            Triplet(t.row + self._g_index, t.col, t.value)
            for t in (Triplet(*t) for t in local)
        ]
        return triplets, [w] * self.dim

    def update_z(self, D, W_inv, W, x, z, u, c):
        """Local step: update this term's slice of ``z`` in place."""
        seg = self._segment()
        dix = _row_product(D, seg.start, seg.stop, x)
        vi = dix + u[seg] - c[seg]
        zi = _diag_block(W_inv, seg.start, seg.stop) @ vi
        vi = zi.copy()
        wi = _diag_block(W, seg.start, seg.stop)
        z[seg] = self.prox(wi, zi, vi)

    def update_u(self, D, W, x, z, u, c):
        """Dual step: update this term's slice of ``u`` in place."""
        seg = self._segment()
        dix = _row_product(D, seg.start, seg.stop, x)
        wz = _diag_block(W, seg.start, seg.stop) @ z[seg]
        u[seg] = u[seg] + (dix - wz - c[seg])

    def global_energy(self, x):
        return self.local_energy(np.array(x[self._segment()], dtype=float))

    def all_energy(self, x):
        return self.local_energy_lbfgs(np.array(x[self._segment()], dtype=float))

    def sl_energy(self, z):
        return self.strain_limit_energy(np.array(z[self._segment()], dtype=float))

    def global_gradient(self, D, x):
        seg = self._segment()
        return self.local_gradient(_row_product(D, seg.start, seg.stop, x))

    def all_gradient(self, z, grad):
        """Write this term's gradient into its slice of ``grad``."""
        seg = self._segment()
        zi = np.array(z[seg], dtype=float)
        grad[seg] = self.local_get_gradient(zi, np.array(grad[seg], dtype=float))

    @abstractmethod
    def local_reduction(self):
        """Return the local (row, col, value) entries of the reduction matrix."""

    @abstractmethod
    def prox(self, W, zi, vi):
        """Return the proximal update of ``zi``."""

    @abstractmethod
    def strain_limit_energy(self, zi):
        """Return the strain-limiting violation energy of ``zi``."""

    @abstractmethod
    def local_energy(self, F):
        """Return the energy at deformation gradient ``F``."""

    @abstractmethod
    def local_energy_lbfgs(self, F):
        """Return the energy used by first-order solvers."""

    @abstractmethod
    def local_gradient(self, F):
        """Return the gradient at ``F``."""

    @abstractmethod
    def local_get_gradient(self, F, grad):
        """Return the elastic gradient at ``F`` given the previous ``grad``."""