import numpy as np
import pytest

from admm_elastic.anderson import AndersonAcceleration


def _affine_problem():
    rng = np.random.default_rng(7)
    a = np.diag([0.9, 0.8, 0.5, -0.7]) + 0.02 * rng.standard_normal((4, 4))
    b = rng.standard_normal(4)
    fixed = np.linalg.solve(np.eye(4) - a, b)
    return a, b, fixed


def test_rejects_non_positive_window():
    with pytest.raises(ValueError):
        AndersonAcceleration(0, 4, 4)


def test_compute_before_init_raises():
    acc = AndersonAcceleration(2, 3, 3)
    with pytest.raises(RuntimeError):
        acc.compute(np.ones(3))


def test_init_checks_size():
    acc = AndersonAcceleration(2, 3, 3)
    with pytest.raises(ValueError):
        acc.init(np.ones(4))
    with pytest.raises(ValueError):
        acc.init(np.ones(1), np.ones(1))


def test_first_compute_returns_map_value():
    acc = AndersonAcceleration(3, 4, 4)
    acc.init(np.zeros(4))
    g = np.array([1.0, -2.0, 3.0, 0.5])
    np.testing.assert_array_equal(acc.compute(g), g)
    assert acc.iteration == 1


def test_converges_on_affine_map_faster_than_plain_iteration():
    a, b, fixed = _affine_problem()
    u0 = np.zeros(4)

    acc = AndersonAcceleration(5, 4, 4)
    acc.init(u0)
    u = u0.copy()
    plain = u0.copy()
    for _ in range(12):
        u = acc.compute(a @ u + b)
        plain = a @ plain + b

    err_acc = np.linalg.norm(u - fixed)
    err_plain = np.linalg.norm(plain - fixed)
    assert err_acc < 1e-8
    assert err_acc < err_plain


def test_window_of_one_still_converges():
    a, b, fixed = _affine_problem()
    acc = AndersonAcceleration(1, 4, 4)
    u = np.zeros(4)
    acc.init(u)
    for _ in range(60):
        u = acc.compute(a @ u + b)
    assert np.linalg.norm(u - fixed) < 1e-6


def test_split_interface_matches_single_vector():
    a, b, _ = _affine_problem()
    single = AndersonAcceleration(3, 4, 4)
    split = AndersonAcceleration(3, 4, 4)
    u = np.zeros(4)
    single.init(u)
    split.init(u[:1], u[1:])
    us = u.copy()
    head, tail = u[:1].copy(), u[1:].copy()
    for _ in range(6):
        us = single.compute(a @ us + b)
        g = a @ np.concatenate([head, tail]) + b
        head, tail = split.compute(g[:1], g[1:])
        assert head.shape == (1,) and tail.shape == (3,)
        np.testing.assert_allclose(np.concatenate([head, tail]), us)


def test_reset_restarts_history():
    a, b, _ = _affine_problem()
    acc = AndersonAcceleration(3, 4, 4)
    u = np.zeros(4)
    acc.init(u)
    for _ in range(3):
        u = acc.compute(a @ u + b)
    acc.reset(u)
    assert acc.iteration == 0
    g = a @ u + b
    np.testing.assert_array_equal(acc.compute(g), g)


def test_replace_equals_init_from_replaced_vector():
    a, b, _ = _affine_problem()
    start = np.full(4, 0.3)
    first = AndersonAcceleration(2, 4, 4)
    second = AndersonAcceleration(2, 4, 4)
    first.init(start)
    second.init(np.zeros(4))
    second.replace(start)
    u1 = start.copy()
    u2 = start.copy()
    for _ in range(5):
        u1 = first.compute(a @ u1 + b)
        u2 = second.compute(a @ u2 + b)
    np.testing.assert_allclose(u1, u2)


def test_effective_part_drives_partial_problem():
    # Tail component follows the head exactly; only the head is effective.
    acc = AndersonAcceleration(2, 2, 1)
    u = np.array([0.0, 0.0])
    acc.init(u[:1], u[1:])
    head, tail = u[:1], u[1:]
    for _ in range(10):
        g_head = 0.5 * head + 1.0
        head, tail = acc.compute(g_head, 2.0 * g_head)
    assert head[0] == pytest.approx(2.0, abs=1e-10)
    assert tail[0] == pytest.approx(2.0 * head[0], abs=1e-9)