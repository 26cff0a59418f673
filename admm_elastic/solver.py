"""The ADMM time integrator for elastic bodies with hard pins and collisions."""

from __future__ import annotations

import dataclasses
import sys
import time
from pathlib import Path

import numpy as np
from scipy.sparse import csr_matrix

from .anderson import AndersonAcceleration
from .collision_term import Collision
from .constraint_set import ConstraintSet
from .linear_solver import LDLTSolver
from .settings import AccelerationType, RuntimeData, Settings

_CONVERGED = 1e-20
_FALLBACK_TIMESTEP = 1.0 / 24.0


def _elapsed_ms(start):
    return (time.perf_counter() - start) * 1000.0


def _diag(values):
    values = np.asarray(values, dtype=float)
    n = values.size
    idx = np.arange(n)
    return csr_matrix((values, (idx, idx)), shape=(n, n))


def _selector(nodes, dof):
    """Sparse matrix scattering 3 values per listed node into a dof-sized vector."""
    nodes = np.asarray(nodes, dtype=int)
    n = 3 * nodes.size
    rows = (3 * nodes[:, None] + np.arange(3)).ravel()
    cols = np.arange(n)
    return csr_matrix((np.ones(n), (rows, cols)), shape=(dof, n))


def _as_points(points):
    if points is None:
        return []
    result = []
    for p in points:
        arr = np.asarray(p, dtype=float).ravel()
        if arr.size != 3:
            raise ValueError("each point needs 3 components")
        result.append(arr.copy())
    return result


class Solver:
    """ADMM solver stepping node positions and velocities through time.

    Node data is stored flat with three values per node. Pinned nodes are
    removed from the unknowns; only free nodes take part in the solve.
    When ``result_dir`` is given, per-iteration residuals of each step are
    written there.
    """

    def __init__(self, result_dir=None):
        self.result_dir = None if result_dir is None else Path(result_dir)
        self.x = np.zeros(0)
        self.v = np.zeros(0)
        self.masses = np.zeros(0)
        self.surface_inds: list[int] = []
        self.ext_forces: list = []
        self.energyterms: list = []
        self.settings = Settings()
        self.constraints = ConstraintSet()
        self.initialized = False
        self.iter_num = 0

        self.step_prim_residual: list[float] = []
        self.step_comb_residual: list[float] = []
        self.is_reject: list[int] = []

        self.positive_pin = np.ones(0, dtype=int)
        self.x_pin = np.zeros(0)
        self.x_free = np.zeros(0)
        self.system_matrix = None

        self._runtime = RuntimeData()
        self._collision_energies: dict[int, Collision] = {}
        self._linsolver = None
        self._S_fix = None
        self._S_free = None
        self._D = None
        self._Dt = None
        self._C = None
        self._W = None
        self._W_inv = None
        self._M = None
        self._Dt_Wt_W = None
        self._w_diag = np.zeros(0)
        self._dt2 = 0.0

    # Node data

    def add_nodes(self, x, m):
        """Append nodes (3 positions and 3 masses each); return the node count."""
        x = np.asarray(x, dtype=float).ravel()
        m = np.asarray(m, dtype=float).ravel()
        if x.size != m.size:
            raise ValueError("positions and masses must have the same size")
        if x.size % 3:
            raise ValueError("node data needs three values per node")
        self.x = np.concatenate([self.x, x])
        self.v = np.concatenate([self.v, np.zeros(x.size)])
        self.masses = np.concatenate([self.masses, m])
        return self.x.size // 3

    def _node_position(self, idx):
        n_nodes = self.x.size // 3
        if not 0 <= idx < n_nodes:
            raise IndexError(f"node index {idx} out of range")
        return self.x[3 * idx: 3 * idx + 3].copy()

    def _pin_positions(self):
        pinned = sorted(self.constraints.pins)
        if not pinned:
            return np.zeros(0)
        return np.concatenate([self.constraints.pins[i] for i in pinned])

    # Pins and collisions

    def reset_fix_free_s_matrix(self):
        """Rebuild the selection matrices for pinned and free nodes."""
        dof = self.x.size
        n_nodes = dof // 3
        pinned = sorted(self.constraints.pins)
        for idx in pinned:
            if not 0 <= idx < n_nodes:
                raise ValueError(f"pinned node {idx} out of range")
        positive = np.ones(n_nodes, dtype=int)
        positive[pinned] = 0
        self.positive_pin = positive
        self._S_fix = _selector(pinned, dof)
        self._S_free = _selector(np.flatnonzero(positive), dof)
        self.x_pin = self._pin_positions()

    def set_pins(self, inds, points=None):
        """Pin nodes to points, or in place when ``points`` is empty.

        After initialization the set of pinned nodes may not change; only
        their locations.
        """
        inds = [int(i) for i in inds]
        pts = _as_points(points)
        dof = self.x.size
        in_place = len(pts) != len(inds)
        if (dof == 0 and in_place) or (in_place and pts):
            raise ValueError("bad pin input")
        if self.initialized and set(inds) != set(self.constraints.pins):
            raise ValueError("pinned nodes cannot change after initialization")

        pins = {}
        for i, idx in enumerate(inds):
            pins[idx] = self._node_position(idx) if in_place else pts[i]
        self.constraints.pins = pins

        if self.initialized:
            self.reset_fix_free_s_matrix()
        else:
            self.x_pin = self._pin_positions()

    def set_collisions(self, inds, points=None):
        """Mark nodes for collision handling, at points or in place."""
        inds = [int(i) for i in inds]
        pts = _as_points(points)
        dof = self.x.size
        in_place = len(pts) != len(inds)
        if (dof == 0 and in_place) or (in_place and pts):
            raise ValueError("bad collision input")

        collisions = {}
        for i, idx in enumerate(inds):
            collisions[idx] = self._node_position(idx) if in_place else pts[i]
        self.constraints.collisions = collisions

        if self.initialized:
            for term in self._collision_energies.values():
                term.active = True

    def add_obstacle(self, obj):
        self.constraints.collider.add_passive_obj(obj)

    def add_dynamic_collider(self, obj):
        self.constraints.collider.add_dynamic_obj(obj)

    # Setup

    def initialize(self, settings=None):
        """Build the global matrices and factorise the system."""
        self.settings = dataclasses.replace(settings) if settings is not None else Settings()
        s = self.settings
        dof = self.x.size

        if s.timestep_s <= 0.0:
            print(
                f"\n**Solver Error: timestep set to {s.timestep_s}s, changing to 1/24s.",
                file=sys.stderr,
            )
            s.timestep_s = _FALLBACK_TIMESTEP
        if not (self.masses.size == dof and dof >= 3):
            raise ValueError("problem with node data")
        self.v = np.zeros(dof)

        for idx in sorted(self.constraints.collisions):
            term = Collision(idx, self.constraints)
            self._collision_energies[idx] = term
            self.energyterms.append(term)

        self.reset_fix_free_s_matrix()
        free = self.positive_pin > 0
        self.x_free = np.zeros(3 * int(free.sum()))

        rows, cols, vals, weights = [], [], [], []
        for term in self.energyterms:
            triplets, w = term.reduction(len(weights))
            weights.extend(w)
            for t in triplets:
                rows.append(t.row)
                cols.append(t.col)
                vals.append(t.value)
        n_rows = len(weights)
        self._w_diag = np.asarray(weights, dtype=float)
        D = csr_matrix((vals, (rows, cols)), shape=(n_rows, dof))

        M = _diag(self.masses.reshape(-1, 3)[free].ravel())
        W = _diag(self._w_diag)
        W_inv = _diag(1.0 / self._w_diag)
        dt2 = s.timestep_s * s.timestep_s

        self._C = (-(W @ D @ self._S_fix)).tocsr()
        self._D = (W @ D @ self._S_free).tocsr()
        self._Dt = self._D.T.tocsr()
        self._Dt_Wt_W = (s.penalty * dt2 * self._Dt).tocsr()
        self.system_matrix = (M + self._Dt_Wt_W @ self._D).tocsr()
        self._W = W
        self._W_inv = W_inv
        self._M = M
        self._dt2 = dt2

        self._linsolver = LDLTSolver()
        if s.constraint_w > 0.0:
            self.constraints.constraint_w = s.constraint_w
        self._linsolver.update_system(self.system_matrix)

        if s.verbose >= 1:
            print(f"{dof // 3} nodes, {len(self.energyterms)} energy terms")
        self.initialized = True

    # Time stepping

    def _update_z(self, x, z, u, c):
        for term in self.energyterms:
            term.update_z(self._D, self._W_inv, self._W, x, z, u, c)

    def _update_u(self, x, z, u, c):
        for term in self.energyterms:
            term.update_u(self._D, self._W, x, z, u, c)

    def _global_step(self, m_xbar, z, u, c):
        rhs = m_xbar + self._Dt_Wt_W @ (self._W @ z + c - u)
        return self._linsolver.solve(rhs)

    def _primal(self, x, z, c):
        return self._D @ x - self._W @ z - c

    def step(self):
        """Advance the simulation by one time step."""
        if not self.initialized:
            raise RuntimeError("solver is not initialized; call initialize() first")
        s = self.settings
        if s.verbose > 0:
            print(f"\nSimulating with dt: {s.timestep_s}s...", end="", flush=True)

        dt = s.timestep_s
        self._runtime = RuntimeData()
        rt = self._runtime

        for force in self.ext_forces:
            force.project(dt, self.x, self.v, self.masses)

        free = self.positive_pin > 0
        vel = self.v.reshape(-1, 3)
        if abs(s.gravity) > 0:
            vel[free, 1] += dt * s.gravity
        self.x_free = (self.x.reshape(-1, 3) + dt * vel)[free].ravel()

        x_bar = self.x_free.copy()
        m_xbar = self._M @ x_bar
        curr_x = x_bar.copy()

        c_fix = np.asarray(self._C @ self.x_pin, dtype=float)
        curr_z = np.array(self._W_inv @ (self._D @ x_bar - c_fix), dtype=float)
        curr_u = np.zeros(curr_z.size)
        zu_size = curr_z.size
        prev_prim = 1e20

        start = time.perf_counter()
        self._update_z(curr_x, curr_z, curr_u, c_fix)
        curr_x = self._global_step(m_xbar, curr_z, curr_u, c_fix)
        self._update_u(curr_x, curr_z, curr_u, c_fix)
        default_u = curr_u.copy()
        default_x = curr_x.copy()
        rt.initialization_ms += _elapsed_ms(start)

        anderson = s.acceleration_type == AccelerationType.ANDERSON
        accelerator = None
        if anderson and s.anderson_m > 0:
            accelerator = AndersonAcceleration(s.anderson_m, curr_x.size + zu_size, zu_size)
            accelerator.init(curr_u, curr_x)

        s_i = 0
        while s_i < s.admm_iters:
            start = time.perf_counter()
            self._update_z(curr_x, curr_z, curr_u, c_fix)
            prim = float(np.linalg.norm(self._primal(curr_x, curr_z, c_fix)))
            rt.local_ms += _elapsed_ms(start)

            start = time.perf_counter()
            if accelerator is not None and prev_prim < prim:
                curr_u = default_u.copy()
                curr_x = default_x.copy()
                accelerator.reset(curr_u, curr_x)
                self._update_z(curr_x, curr_z, curr_u, c_fix)
                prim = float(np.linalg.norm(self._primal(curr_x, curr_z, c_fix)))
                self.is_reject.append(1)
            else:
                self.is_reject.append(0)
            rt.acceleration_ms += _elapsed_ms(start)

            last_x = curr_x
            prev_prim = prim

            start = time.perf_counter()
            curr_x = self._global_step(m_xbar, curr_z, curr_u, c_fix)
            rt.global_ms += _elapsed_ms(start)

            prim_vec = self._primal(curr_x, curr_z, c_fix)
            dual_vec = self._D @ (curr_x - last_x)
            comb = float(prim_vec @ prim_vec) + float(dual_vec @ dual_vec)
            if comb < _CONVERGED:
                break

            start = time.perf_counter()
            self._update_u(curr_x, curr_z, curr_u, c_fix)
            rt.local_ms += _elapsed_ms(start)

            start = time.perf_counter()
            if anderson:
                default_u = curr_u.copy()
                default_x = curr_x.copy()
                if accelerator is not None:
                    curr_u, curr_x = accelerator.compute(default_u, default_x)
            rt.acceleration_ms += _elapsed_ms(start)

            self.step_prim_residual.append(prim)
            self.step_comb_residual.append(comb)
            rt.step_time.append(rt.local_ms + rt.global_ms + rt.acceleration_ms)
            s_i += 1

        solved = default_x if anderson else curr_x
        actual_x = np.asarray(self._S_free @ solved + self._S_fix @ self.x_pin, dtype=float)
        self.v = (actual_x - self.x) * (1.0 / dt)
        self.x = actual_x

        if s.verbose > 0:
            print(rt.report(s))

        self.iter_num = s_i + 1
        self.save()

    # Output and queries

    def runtime_data(self):
        """Runtime data from the last time step."""
        return self._runtime

    def save_matrix(self, filename):
        """Write the global system matrix as dense text."""
        if self.system_matrix is None:
            raise RuntimeError("no system matrix; call initialize() first")
        np.savetxt(filename, self.system_matrix.toarray())

    def save(self):
        """Write and clear the per-iteration residual history of the last step.

        Returns the records as (step time, primal, combined, rejected) tuples.
        """
        s = self.settings
        if s.acceleration_type:
            name = f"residual-{s.anderson_m}.txt"
        else:
            name = "residual-no.txt"
        records = list(
            zip(
                self._runtime.step_time,
                self.step_prim_residual,
                self.step_comb_residual,
                self.is_reject,
            )
        )
        if self.result_dir is not None:
            self.result_dir.mkdir(parents=True, exist_ok=True)
            with open(self.result_dir / name, "w") as fh:
                for t, prim, comb, rej in records:
                    fh.write(f"{t:.16g}\t{prim:.16g}\t{comb:.16g}\t{rej}\n")
        self.step_prim_residual.clear()
        self.step_comb_residual.clear()
        self.is_reject.clear()
        self._runtime.step_time.clear()
        return records

    def reset_settings(self, acceleration_type):
        """Switch the acceleration type."""
        self.settings.acceleration_type = AccelerationType(acceleration_type)
        if self.settings.verbose > 0:
            kind = (
                "anderson."
                if self.settings.acceleration_type == AccelerationType.ANDERSON
                else "no acceleration."
            )
            print(f"acceleration_type = {kind}")

    def calc_function(self, curr_x):
        """Inertial energy 0.5 * (x - x_free)^T M (x - x_free)."""
        if self._M is None:
            raise RuntimeError("solver is not initialized; call initialize() first")
        d = np.asarray(curr_x, dtype=float).ravel() - self.x_free
        return 0.5 * float(d @ (self._M @ d))