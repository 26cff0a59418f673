"""Convergence logging against a known reference solution."""

from __future__ import annotations

import time

import numpy as np


class SolverLog:
    """Tracks relative error and run time per iteration.

    Only records anything once ``x_star`` (the true solution) has the same
    size as the iterates passed in, so a simulation is run once to obtain
    the solution and then again with it set.
    """

    def __init__(self):
        self.errors: list[float] = []
        self.runtimes: list[float] = []
        self.final_r: float | None = None
        self.x_star = np.zeros(1)
        self._x0 = None
        self._start = time.perf_counter()

    def _skip(self, x):
        return np.size(self.x_star) != np.size(x)

    def _elapsed_ms(self):
        return (time.perf_counter() - self._start) * 1000.0

    def reset(self):
        self.errors.clear()
        self.runtimes.clear()
        self._start = time.perf_counter()

    def add(self, x):
        """Record the relative error of iterate ``x``."""
        if self._skip(x):
            return
        x = np.asarray(x, dtype=float).ravel()
        if not self.errors:
            self.runtimes.append(0.0)
            self._start = time.perf_counter()
            self._x0 = x.copy()
        else:
            self.runtimes.append(self._elapsed_ms())
        star = np.asarray(self.x_star, dtype=float).ravel()
        numer = np.linalg.norm(star - x)
        denom = np.linalg.norm(star - self._x0)
        with np.errstate(divide="ignore", invalid="ignore"):
            self.errors.append(float(np.float64(numer) / np.float64(denom)))

    def finalize(self, A, x, b):
        """Store the final residual norm ``||A x - b||``."""
        if self._skip(x):
            return
        x = np.asarray(x, dtype=float).ravel()
        r = np.asarray(A @ x, dtype=float).ravel() - np.asarray(b, dtype=float).ravel()
        self.final_r = float(np.linalg.norm(r))