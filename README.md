# admm_elastic

A library for simulating deformable bodies. Each time step is solved with the
alternating direction method of multipliers (ADMM). Anderson acceleration is
optional. Pins and obstacle contacts are treated as hard constraints.

## Installation

```
pip install .
pip install ".[test]"   # with pytest, to run the tests
```

The package depends on numpy and scipy.

## What it contains

### Solver

`admm_elastic.solver.Solver(result_dir=None)` holds the node data as flat
arrays with three values per node: `x`, `v` and `masses`.

- `add_nodes(x, m)` appends nodes and returns the node count.
- `set_pins(inds, points)` pins nodes. If `points` is empty, nodes are pinned
  in place. After `initialize`, the pin locations may change but the set of
  pinned nodes may not.
- `set_collisions(inds, points)` adds a `Collision` term for each listed node
  when the solver is initialized.
- `add_obstacle(obj)` and `add_dynamic_collider(obj)` register collision
  objects.
- `initialize(settings)` builds the reduction, weight and mass matrices. It
  also factorises the global system with an `LDLTSolver`.
- `step()` advances one time step.
- `runtime_data()` returns the `RuntimeData` timings of the last step.
- `save()` returns the per-iteration residual history and clears it. If a
  `result_dir` was given, it also writes the history there as
  `residual-<m>.txt` or `residual-no.txt`.
- `save_matrix(filename)` writes the global system matrix as text.
- `calc_function(x)` returns the inertial energy.
- `reset_settings(acceleration_type)` switches the acceleration mode.

### Settings

`admm_elastic.settings` provides `Settings`, `AccelerationType` (`NOACC`,
`ANDERSON`) and `RuntimeData`.

`Settings` holds these fields:

- `timestep_s`
- `verbose`
- `admm_iters`
- `gravity`
- `constraint_w`
- `anderson_m`
- `penalty`
- `acceleration_type`

`Settings.parse_args(argv)` reads these options from an argument list:
`-dt`, `-v`, `-it`, `-g`, `-ck`, `-a`, `-am` and `-ap`. It returns `True` if
help was requested. `Settings.help()` prints the option summary.

`load_state(file_name, file_name2, n_z, n_x)` reads saved ADMM state back
from two text files.

### Energy terms

These terms all derive from `admm_elastic.energy_term.EnergyTerm`:

- `tet_energy.TetEnergyTerm`: linear tetrahedra, projected onto rotations.
- `tet_energy.NeoHookeanTet` and `tet_energy.StVKTet`: hyperelastic
  tetrahedra. Their local step is minimised by L-BFGS over `NHProx` or
  `StVKProx`.
- `tri_energy.TriEnergyTerm`: triangles with strain limits taken from
  `Lame.limit_min` and `Lame.limit_max`.
- `spring.SpringPin` and `collision_term.Collision`: hard constraints.

Material constants come from `Lame`:

- `Lame.rubber()`
- `Lame.soft_rubber()`
- `Lame.very_soft_rubber()`
- `Lame.from_youngs_poisson(youngs, poisson)`

`create_tets_from_mesh` and `create_tris_from_mesh` turn flat vertex and index
arrays into lists of terms.

### Collisions and constraints

`admm_elastic.obstacles` provides analytic obstacles that report a signed
distance:

- `Floor`
- `SlideFloor`
- `Sphere`
- `PlaneAndHalfSphere`
- `Cylinder`

`admm_elastic.collider.Collider` runs detection over vertices and collects
`PassivePayload` and `DynamicPayload` hits.
`ConstraintSet.make_matrix(dof, ...)` turns those hits into the rows of a
sparse constraint system `C x = c`.

### Explicit forces

`explicit_force.WindForce(tris, direction)` applies aerodynamic normal drag to
a set of triangles. It updates the velocities in place before each implicit
solve.

### Numerics

- `anderson.AndersonAcceleration`: a standalone fixed-point accelerator.
- `fast_svd.signed_svd`: a 3×3 SVD whose `u` and `v` are rotations.
- `linear_solver.LDLTSolver`: a factorised sparse solver.
- `solver_log.SolverLog`: records relative error against a known solution.

## Example

```python
import numpy as np

from admm_elastic.energy_term import Lame
from admm_elastic.obstacles import Floor
from admm_elastic.settings import Settings
from admm_elastic.solver import Solver
from admm_elastic.tet_energy import TetEnergyTerm, create_tets_from_mesh

# One tetrahedron above a floor.
verts = np.array([0.0, 0.0, 0.0,
                  1.0, 0.0, 0.0,
                  0.0, 1.0, 0.0,
                  0.0, 0.0, 1.0])
inds = np.array([0, 1, 2, 3])
masses = np.ones_like(verts)

solver = Solver("results")
solver.add_nodes(verts, masses)
solver.energyterms.extend(
    create_tets_from_mesh(verts, inds, Lame.rubber(), 0, TetEnergyTerm)
)
solver.add_obstacle(Floor(-1.0))
solver.set_collisions([0, 1, 2, 3], [])

solver.initialize(Settings(admm_iters=50, verbose=0))
for _ in range(10):
    solver.step()
print(solver.x.reshape(-1, 3))
```

## Anderson acceleration on its own

`AndersonAcceleration(m, total_dim, effective_dim)` accelerates any
fixed-point iteration `u ← g(u)`:

1. Call `init(u0)` with the starting point.
2. On each iteration, pass `g(u)` to `compute`. It returns the accelerated
   iterate.
3. Call `reset(u)` to drop the history and restart from `u`.

You can also pass each vector as a `(head, tail)` pair. In that case only the
head is used to compute the combination coefficients.

## What it does not do

This is a library only. It has:

- no command-line program;
- no rendering or viewer window;
- no loading of mesh files.

Meshes must be given as flat arrays. No concrete dynamic (self-collision)
collider is included. `DynamicCollision` is an abstract base for you to
implement.