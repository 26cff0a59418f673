"""Forces applied explicitly to velocities before the implicit solve."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

_ALPHA_N = 1000.0
_NODE_SHARE = 0.33


class ExplicitForce(ABC):
    """A force that updates velocities in place before optimisation."""

    @abstractmethod
    def project(self, dt, x, v, m):
        """Apply the force over ``dt`` to the flat velocity array ``v`` in place."""


class WindForce(ExplicitForce):
    """Aerodynamic normal drag on a set of triangles, relative to a wind velocity."""

    def __init__(self, tris, direction=(0.0, 0.0, 0.0)):
        self.tris = [int(i) for i in tris]
        if len(self.tris) % 3:
            raise ValueError("triangle index list length must be a multiple of 3")
        self.direction = np.asarray(direction, dtype=float).ravel().copy()

    def project(self, dt, x, v, m):
        pos = np.asarray(x, dtype=float).reshape(-1, 3)
        vel = v.reshape(-1, 3)
        for a, b, c in zip(self.tris[0::3], self.tris[1::3], self.tris[2::3]):
            corners = (a, b, c)
            curr_v = (vel[a] + vel[b] + vel[c]) / 3.0
            v_r = curr_v - self.direction

            n = np.cross(pos[b] - pos[a], pos[c] - pos[a])
            n_len = float(np.linalg.norm(n))
            normal = n / n_len if n_len > 0.0 else n
            area = 0.5 * n_len

            v_n = float(normal @ v_r)
            force = -_ALPHA_N * area * v_n * abs(v_n) * normal
            force = force * _NODE_SHARE * dt
            for idx in corners:
                vel[idx] += force