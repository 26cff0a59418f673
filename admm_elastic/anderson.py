"""Anderson acceleration for fixed-point iterations."""

from __future__ import annotations

import numpy as np

_EPS = 1e-14


class AndersonAcceleration:
    """Anderson acceleration over a window of ``m`` previous iterates.

    The variable vector has ``total_dim`` entries. Only its first
    ``effective_dim`` entries are used to compute the combination
    coefficients. Methods taking two vectors treat the first as the head
    (effective) part and the second as the tail of the full vector.
    """

    def __init__(self, m, total_dim, effective_dim):
        if m <= 0:
            raise ValueError("window size m must be positive")
        if not 0 <= effective_dim <= total_dim:
            raise ValueError("effective_dim must lie between 0 and total_dim")
        self.m = int(m)
        self.total_dim = int(total_dim)
        self.effective_dim = int(effective_dim)
        self._iter = -1
        self._col = -1

        self._u = np.zeros(self.total_dim)
        self._f = np.zeros(self.effective_dim)
        self._df = np.zeros((self.effective_dim, self.m))
        self._df_scale = np.zeros(self.m)
        self._g = np.zeros(self.total_dim)
        self._dg = np.zeros((self.total_dim, self.m))
        self._normal = np.zeros((self.m, self.m))
        self._theta = np.zeros(self.m)

    @property
    def iteration(self):
        """Number of iterations since the last init or reset (-1 before init)."""
        return self._iter

    def _assign(self, target, parts):
        if len(parts) == 1:
            vec = np.asarray(parts[0], dtype=float).ravel()
            if vec.size != self.total_dim:
                raise ValueError(
                    f"expected a vector of size {self.total_dim}, got {vec.size}"
                )
            target[:] = vec
        elif len(parts) == 2:
            head = np.asarray(parts[0], dtype=float).ravel()
            tail = np.asarray(parts[1], dtype=float).ravel()
            if head.size + tail.size > self.total_dim:
                raise ValueError("head and tail exceed the total dimension")
            target[: head.size] = head
            target[self.total_dim - tail.size:] = tail
        else:
            raise TypeError("expected one vector or a (head, tail) pair")

    def init(self, *args):
        """Start a new sequence from the given initial iterate."""
        if len(args) == 2:
            total = np.size(args[0]) + np.size(args[1])
            if total != self.total_dim:
                raise ValueError(
                    f"expected a total size of {self.total_dim}, got {total}"
                )
        self._assign(self._u, args)
        self._iter = 0
        self._col = 0

    def reset(self, *args):
        """Discard the history and restart from the given iterate."""
        self._assign(self._u, args)
        self._iter = 0
        self._col = 0

    def replace(self, *args):
        """Overwrite the current iterate without touching the history."""
        self._assign(self._u, args)

    def compute(self, *args):
        """Feed the fixed-point map value and return the accelerated iterate.

        Given one vector, returns one vector; given a (head, tail) pair,
        returns the accelerated (head, tail) pair of the same sizes.
        """
        self._assign(self._g, args)
        self._compute_impl()
        if len(args) == 1:
            return self._u.copy()
        n_head = np.size(args[0])
        n_tail = np.size(args[1])
        return self._u[:n_head].copy(), self._u[self.total_dim - n_tail:].copy()

    def _compute_impl(self):
        if self._iter < 0:
            raise RuntimeError("AndersonAcceleration used before init()")
        e = self.effective_dim
        g = self._g
        f = g[:e] - self._u[:e]
        self._f = f

        if self._iter == 0:
            self._df[:, 0] = -f
            self._dg[:, 0] = -g
            self._u = g.copy()
        else:
            col = self._col
            self._df[:, col] += f
            self._dg[:, col] += g

            scale = max(_EPS, float(np.linalg.norm(self._df[:, col])))
            self._df_scale[col] = scale
            self._df[:, col] /= scale

            m_k = min(self.m, self._iter)
            if m_k == 1:
                self._theta[0] = 0.0
                sq_norm = float(self._df[:, col] @ self._df[:, col])
                self._normal[0, 0] = sq_norm
                df_norm = np.sqrt(sq_norm)
                if df_norm > _EPS:
                    self._theta[0] = (self._df[:, col] / df_norm) @ (f / df_norm)
            else:
                window = self._df[:, :m_k]
                new_inner = window.T @ self._df[:, col]
                self._normal[col, :m_k] = new_inner
                self._normal[:m_k, col] = new_inner
                rhs = window.T @ f
                self._theta[:m_k] = np.linalg.lstsq(
                    self._normal[:m_k, :m_k], rhs, rcond=None
                )[0]

            coeffs = self._theta[:m_k] / self._df_scale[:m_k]
            self._u = g - self._dg[:, :m_k] @ coeffs

            col = (col + 1) % self.m
            self._col = col
            self._df[:, col] = -f
            self._dg[:, col] = -g

        self._iter += 1