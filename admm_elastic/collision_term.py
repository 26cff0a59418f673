"""Hard collision constraint expressed as an energy term."""

from __future__ import annotations

import math

import numpy as np

from .collider import PassivePayload
from .energy_term import EnergyTerm, Lame, Triplet


class Collision(EnergyTerm):
    """Keeps a vertex outside passive obstacles: zero energy outside, infinite inside."""

    def __init__(self, idx, constraint_set):
        self.idx = int(idx)
        self.constraints = constraint_set
        self.active = True
        # A strong rubber keeps the weight on the scale of elastic terms.
        self._weight = math.sqrt(Lame.soft_rubber().bulk_modulus() * 2.0)
        self._volume = 2.0

    @property
    def dim(self):
        return 3

    @property
    def weight(self):
        return self._weight

    @property
    def volume(self):
        return self._volume

    def local_reduction(self):
        col = 3 * self.idx
        return [Triplet(k, col + k, 1.0) for k in range(3)]

    def prox(self, W, zi, vi):
        pos = np.asarray(zi, dtype=float).ravel().copy()
        payload = PassivePayload(self.idx)
        for obj in self.constraints.collider.passive_objs:
            obj.signed_distance(pos, payload)
        if payload.dx < 0:
            return np.asarray(payload.point, dtype=float).copy()
        return pos

    def strain_limit_energy(self, zi):
        raise RuntimeError("a collision constraint has no strain-limiting energy")

    def local_energy(self, F):
        raise RuntimeError("a collision constraint has no finite energy")

    def local_energy_lbfgs(self, F):
        raise RuntimeError("a collision constraint has no finite energy")

    def local_gradient(self, F):
        raise RuntimeError("a hard constraint has no gradient")

    def local_get_gradient(self, F, grad):
        raise RuntimeError("a hard constraint has no gradient")