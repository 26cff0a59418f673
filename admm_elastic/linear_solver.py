"""Linear solvers for the global step of the ADMM iteration."""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod

import numpy as np
from scipy.sparse import csc_matrix, issparse
from scipy.sparse.linalg import factorized

from .solver_log import SolverLog


class LinearSolver(ABC):
    """Solves ``A x = b`` for a system matrix set with :meth:`update_system`."""

    def __init__(self):
        self.logger = SolverLog()

    @abstractmethod
    def update_system(self, A):
        """Set (and preprocess) the system matrix."""

    @abstractmethod
    def solve(self, b):
        """Return the solution ``x`` of ``A x = b``."""

    @staticmethod
    def is_zero(x):
        """True if ``|x|`` is below the smallest normal double."""
        return abs(x) < sys.float_info.min


class LDLTSolver(LinearSolver):
    """Direct solver that factorises the system matrix once per update."""

    def __init__(self):
        super().__init__()
        self.A = None
        self._solve = None

    def update_system(self, A):
        """Factorise the square, non-empty matrix ``A``."""
        rows, cols = A.shape
        if rows != cols or rows == 0:
            raise ValueError("bad dimensions in system matrix")
        self.A = csc_matrix(A) if issparse(A) else csc_matrix(np.asarray(A, dtype=float))
        self._solve = factorized(self.A)

    def solve(self, b):
        if self._solve is None:
            raise RuntimeError("no system matrix; call update_system() first")
        rhs = np.asarray(b, dtype=float).ravel()
        if rhs.size != self.A.shape[0]:
            raise ValueError(
                f"right-hand side has size {rhs.size}, expected {self.A.shape[0]}"
            )
        return np.asarray(self._solve(rhs), dtype=float)