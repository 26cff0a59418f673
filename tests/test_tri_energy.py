import numpy as np
import pytest

from admm_elastic.energy_term import Lame
from admm_elastic.tri_energy import TriEnergyTerm, create_tris_from_mesh

REST = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])


def _reduction_matrix(term, n_verts):
    mat = np.zeros((6, 3 * n_verts))
    for row, col, value in term.local_reduction():
        mat[row, col] += value
    return mat


def _rest_gradient(term, points):
    mat = _reduction_matrix(term, len(points))
    return mat @ np.asarray(points, dtype=float).ravel()


def test_area_and_weight():
    lame = Lame.rubber()
    term = TriEnergyTerm((0, 1, 2), REST, lame)
    assert term.dim == 6
    assert term.volume == pytest.approx(0.5)
    assert term.weight ** 2 == pytest.approx(lame.bulk_modulus() * term.volume)


def test_rest_deformation_is_orthonormal():
    term = TriEnergyTerm((0, 1, 2), REST, Lame.rubber())
    F = _rest_gradient(term, REST).reshape((3, 2), order="F")
    np.testing.assert_allclose(F.T @ F, np.eye(2), atol=1e-12)


def test_rest_energy_zero_and_prox_fixed_point():
    term = TriEnergyTerm((0, 1, 2), REST, Lame.rubber())
    z = _rest_gradient(term, REST)
    assert term.local_energy(z) == pytest.approx(0.0, abs=1e-9)
    assert term.local_energy_lbfgs(z) == pytest.approx(0.0, abs=1e-9)
    np.testing.assert_allclose(term.prox(None, z, z), z, atol=1e-12)
    assert term.strain_limit_energy(z) == 0.0


def test_stretched_energy_positive():
    term = TriEnergyTerm((0, 1, 2), REST, Lame.rubber())
    z = 2.0 * _rest_gradient(term, REST)
    assert term.local_energy(z) > 0.0


def test_prox_clamps_to_strain_limit():
    lame = Lame.from_youngs_poisson(50, 0.1)
    lame.limit_min = 0.95
    lame.limit_max = 1.05
    term = TriEnergyTerm((0, 1, 2), REST, lame)
    z = 2.0 * _rest_gradient(term, REST)
    out = term.prox(None, z, z)
    s = np.linalg.svd(out.reshape((3, 2), order="F"), compute_uv=False)
    np.testing.assert_allclose(s, [lame.limit_max, lame.limit_max])
    assert term.strain_limit_energy(z) > 0.0


def test_prox_without_limits_averages_toward_rotation():
    term = TriEnergyTerm((0, 1, 2), REST, Lame.rubber())
    z = 3.0 * _rest_gradient(term, REST)
    out = term.prox(None, z, z)
    np.testing.assert_allclose(out, 0.5 * (z + z / 3.0), atol=1e-12)


def test_bad_limits_raise():
    low = Lame.rubber()
    low.limit_min = 1.5
    with pytest.raises(ValueError):
        TriEnergyTerm((0, 1, 2), REST, low)
    high = Lame.rubber()
    high.limit_max = 0.5
    with pytest.raises(ValueError):
        TriEnergyTerm((0, 1, 2), REST, high)


def test_gradient_raises():
    term = TriEnergyTerm((0, 1, 2), REST, Lame.rubber())
    with pytest.raises(RuntimeError):
        term.local_gradient(np.zeros(6))
    with pytest.raises(RuntimeError):
        term.local_get_gradient(np.zeros(6), np.zeros(6))


def test_create_from_mesh_offsets_indices():
    verts = np.vstack([REST, [[1.0, 1.0, 0.0]]]).ravel()
    inds = [0, 1, 2, 1, 3, 2]
    terms = create_tris_from_mesh(verts, inds, Lame.rubber(), vertex_offset=5)
    assert [t.tri for t in terms] == [(5, 6, 7), (6, 8, 7)]
    assert all(t.volume > 0 for t in terms)


def test_reduction_assigns_global_rows():
    term = TriEnergyTerm((0, 1, 2), REST, Lame.rubber())
    triplets, weights = term.reduction(4)
    assert min(t.row for t in triplets) == 4
    assert max(t.row for t in triplets) == 9
    assert weights == [term.weight] * 6