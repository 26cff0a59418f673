"""Hard pin constraint expressed as an energy term."""

from __future__ import annotations

import math

import numpy as np

from .energy_term import EnergyTerm, Lame, Triplet


class SpringPin(EnergyTerm):
    """Pins a vertex to a location: zero energy when satisfied, infinite otherwise."""

    def __init__(self, idx, pin):
        self.idx = int(idx)
        self.pin = np.asarray(pin, dtype=float).ravel().copy()
        if self.pin.size != 3:
            raise ValueError("pin location needs 3 components")
        self.active = True
        # A very stiff rubber keeps the pin weight on the scale of elastic terms.
        self._weight = math.sqrt(Lame.rubber().bulk_modulus() * 2.0)

    @property
    def dim(self):
        return 3

    @property
    def weight(self):
        return self._weight

    @property
    def volume(self):
        return 0.0

    def local_reduction(self):
        col = 3 * self.idx
        return [Triplet(k, col + k, 1.0) for k in range(3)]

    def prox(self, W, zi, vi):
        if self.active:
            return self.pin.copy()
        return np.asarray(zi, dtype=float).ravel().copy()

    def strain_limit_energy(self, zi):
        raise RuntimeError("a pin has no strain-limiting energy")

    def local_energy(self, F):
        raise RuntimeError("a pin has no finite energy")

    def local_energy_lbfgs(self, F):
        raise RuntimeError("a pin has no finite energy")

    def local_gradient(self, F):
        raise RuntimeError("a hard constraint has no gradient")

    def local_get_gradient(self, F, grad):
        return np.zeros(np.size(grad))