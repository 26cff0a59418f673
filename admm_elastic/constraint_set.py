"""Pins, collisions and the linear constraint matrix built from collision hits."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np
from scipy.sparse import csr_matrix

from .collider import Collider


@dataclass
class ConstraintSet:
    """Constraint data shared between the solver and its energy terms.

    ``C`` and ``c`` describe the equality constraints ``C x = c``; they are
    only valid after :meth:`make_matrix` has been called.
    """

    constraint_w: float = 1.0
    collider: Collider = field(default_factory=Collider)
    pins: dict = field(default_factory=dict)
    collisions: dict = field(default_factory=dict)
    C: csr_matrix = field(default_factory=lambda: csr_matrix((0, 0)))
    Ct: csr_matrix = field(default_factory=lambda: csr_matrix((0, 0)))
    c: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def make_matrix(self, dof, add_passive_collisions, add_dynamic_collisions):
        """Build ``C``, ``Ct`` and ``c`` from the collider's current hits.

        Each hit owns one row. A vertex already constrained by an earlier
        hit gets no further entries. Returns ``(C, c)``.
        """
        passive = self.collider.passive_hits if add_passive_collisions else []
        dynamic = self.collider.dynamic_hits if add_dynamic_collisions else []
        n_p = len(passive)
        ck = math.sqrt(max(0.0, self.constraint_w))
        c_rows = n_p + len(dynamic)
        constrained = [0.0] * (dof // 3)

        rhs = np.zeros(c_rows)
        rows: list[int] = []
        cols: list[int] = []
        vals: list[float] = []

        def claim(hit):
            v = hit.vert_idx
            if constrained[v]:
                return False
            if hit.dx < constrained[v]:
                constrained[v] = hit.dx
            return True

        def add_vertex(ci, vert, normal, scale):
            for k in range(3):
                rows.append(ci)
                cols.append(vert * 3 + k)
                vals.append(scale * normal[k])

        for ci, hit in enumerate(passive):
            if not claim(hit):
                continue
            normal = np.asarray(hit.normal, dtype=float)
            rhs[ci] = ck * float(normal @ np.asarray(hit.point, dtype=float))
            add_vertex(ci, hit.vert_idx, normal, ck)

        for i, hit in enumerate(dynamic):
            if not claim(hit):
                continue
            ci = i + n_p
            normal = np.asarray(hit.normal, dtype=float)
            add_vertex(ci, hit.vert_idx, normal, ck)
            for face_vert, bary in zip(hit.face, hit.barys):
                add_vertex(ci, int(face_vert), normal, -ck * float(bary))

        self.C = csr_matrix((vals, (rows, cols)), shape=(c_rows, dof))
        self.C.sum_duplicates()
        self.Ct = self.C.T.tocsr()
        self.c = rhs
        return self.C, self.c