import numpy as np
import pytest

from admm_elastic.collision_term import Collision
from admm_elastic.constraint_set import ConstraintSet
from admm_elastic.energy_term import Lame
from admm_elastic.obstacles import Floor


@pytest.fixture
def floor_constraints():
    cs = ConstraintSet()
    cs.collider.add_passive_obj(Floor(0.0))
    return cs


def test_weight_and_volume(floor_constraints):
    term = Collision(3, floor_constraints)
    assert term.dim == 3
    assert term.volume == 2.0
    assert term.weight ** 2 == pytest.approx(Lame.soft_rubber().bulk_modulus() * 2.0)


def test_reduction_selects_vertex(floor_constraints):
    term = Collision(3, floor_constraints)
    entries = sorted((t.row, t.col, t.value) for t in term.local_reduction())
    assert entries == [(0, 9, 1.0), (1, 10, 1.0), (2, 11, 1.0)]


def test_prox_projects_penetrating_point(floor_constraints):
    term = Collision(0, floor_constraints)
    out = term.prox(None, np.array([1.0, -0.5, 2.0]), None)
    np.testing.assert_allclose(out, [1.0, 0.0, 2.0])


def test_prox_keeps_free_point(floor_constraints):
    term = Collision(0, floor_constraints)
    z = np.array([1.0, 0.5, 2.0])
    np.testing.assert_allclose(term.prox(None, z, None), z)


def test_prox_without_obstacles_is_identity():
    term = Collision(0, ConstraintSet())
    z = np.array([1.0, -5.0, 2.0])
    np.testing.assert_allclose(term.prox(None, z, None), z)


def test_update_z_writes_projection(floor_constraints):
    term = Collision(1, floor_constraints)
    triplets, weights = term.reduction(0)
    D = np.zeros((3, 6))
    for row, col, value in triplets:
        D[row, col] = value
    w = weights[0]
    W = np.eye(3) * w
    W_inv = np.eye(3) / w
    x = np.array([0.0, 0.0, 0.0, 4.0, -1.0, 5.0])
    z = np.zeros(3)
    term.update_z(D, W_inv, W, x, z, np.zeros(3), np.zeros(3))
    assert z[1] == pytest.approx(0.0)
    assert z[0] == pytest.approx(4.0 / w)


def test_energy_and_gradient_raise(floor_constraints):
    term = Collision(0, floor_constraints)
    for call in (
        lambda: term.local_energy(np.zeros(3)),
        lambda: term.local_energy_lbfgs(np.zeros(3)),
        lambda: term.strain_limit_energy(np.zeros(3)),
        lambda: term.local_gradient(np.zeros(3)),
        lambda: term.local_get_gradient(np.zeros(3), np.zeros(3)),
    ):
        with pytest.raises(RuntimeError):
            call()