"""Signed (rotation-preserving) singular value decomposition of 3x3 matrices."""

from __future__ import annotations

from typing import NamedTuple

import numpy as np


class SignedSVD(NamedTuple):
    """Singular values with U and V as proper rotations."""

    s: np.ndarray
    u: np.ndarray
    v: np.ndarray


def signed_svd(f):
    """Decompose a 3x3 matrix as ``u @ diag(s) @ v.T`` with det(u), det(v) >= 0.

    Reflections are folded into the sign of the last singular value.
    """
    mat = np.asarray(f, dtype=float)
    if mat.shape != (3, 3):
        raise ValueError(f"expected a 3x3 matrix, got shape {mat.shape}")
    u, s, vt = np.linalg.svd(mat)
    v = vt.T.copy()
    s = s.copy()

    if np.linalg.det(u) < 0.0:
        u[:, 2] = -u[:, 2]
        s[2] = -s[2]

    if np.linalg.det(v) < 0.0:
        v[:, 2] = -v[:, 2]
        s[2] = -s[2]

    return SignedSVD(s, u, v)