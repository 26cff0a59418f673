import numpy as np

from admm_elastic.solver_log import SolverLog


def test_skips_when_reference_size_differs():
    log = SolverLog()
    log.add(np.zeros(3))
    log.finalize(np.eye(3), np.zeros(3), np.zeros(3))
    assert log.errors == []
    assert log.runtimes == []
    assert log.final_r is None


def test_relative_errors():
    log = SolverLog()
    log.x_star = np.array([1.0, 1.0, 1.0])
    log.add(np.zeros(3))
    log.add(np.array([0.5, 0.5, 0.5]))
    log.add(np.ones(3))
    assert log.errors[0] == 1.0
    assert np.isclose(log.errors[1], 0.5)
    assert log.errors[2] == 0.0


def test_runtimes_start_at_zero_and_grow():
    log = SolverLog()
    log.x_star = np.ones(2)
    for _ in range(3):
        log.add(np.zeros(2))
    assert log.runtimes[0] == 0.0
    assert len(log.runtimes) == 3
    assert log.runtimes[1] >= 0.0
    assert log.runtimes[2] >= log.runtimes[1]


def test_finalize_residual():
    log = SolverLog()
    log.x_star = np.zeros(2)
    A = np.array([[2.0, 0.0], [0.0, 3.0]])
    x = np.array([1.0, 1.0])
    b = np.array([2.0, 3.0])
    log.finalize(A, x, b)
    assert log.final_r == 0.0
    log.finalize(A, x, np.zeros(2))
    assert np.isclose(log.final_r, np.linalg.norm(A @ x))


def test_reset_clears_history():
    log = SolverLog()
    log.x_star = np.ones(1)
    log.add(np.zeros(1))
    log.reset()
    assert log.errors == []
    assert log.runtimes == []
    log.add(np.array([3.0]))
    assert log.errors == [1.0]