import numpy as np
import pytest

from plugnmf.convergence import normalized_residual
from plugnmf.updaters import (
    FastHALSUpdater,
    GCDUpdater,
    HALSUpdater,
    MUUpdater,
    NullUpdater,
    Updater,
    make_updater,
)

ALL_UPDATERS = [NullUpdater, MUUpdater, HALSUpdater, FastHALSUpdater, GCDUpdater]


def random_factors(rng, n, m, r):
    return np.abs(rng.uniform(-1, 1, size=(n, r))), np.abs(rng.uniform(-1, 1, size=(r, m)))


@pytest.mark.parametrize("updater_cls", ALL_UPDATERS)
def test_non_negativity_after_update(updater_cls, X, rng):
    U, V = random_factors(rng, 10, 20, 3)
    updater = updater_cls()
    for _ in range(5):
        updater.update(X, U, V)
        assert U.shape == (10, 3) and V.shape == (3, 20)
        assert np.all(np.isfinite(U)) and np.all(np.isfinite(V))
        assert np.all(U >= 0) and np.all(V >= 0)


@pytest.mark.parametrize("updater_cls", ALL_UPDATERS)
@pytest.mark.parametrize(
    "shapes",
    [((10, 3), (2, 20)), ((9, 3), (3, 20)), ((10, 3), (3, 19))],
)
def test_shape_mismatch_fails_without_mutation(updater_cls, shapes, X, rng):
    U = rng.random(shapes[0])
    V = rng.random(shapes[1])
    U0, V0 = U.copy(), V.copy()
    with pytest.raises(ValueError):
        updater_cls().update(X, U, V)
    np.testing.assert_array_equal(U, U0)
    np.testing.assert_array_equal(V, V0)


def test_mu_fixed_point(exact_X, factors):
    U, V = (A.copy() for A in factors)
    MUUpdater().update(exact_X, U, V)
    np.testing.assert_allclose(U, factors[0], rtol=1e-10)
    np.testing.assert_allclose(V, factors[1], rtol=1e-10)


def test_mu_single_step_matches_rule(X, rng):
    U, V = random_factors(rng, 10, 20, 3)
    U_expected = U * (X @ V.T) / (U @ V @ V.T)
    V_expected = V * (U_expected.T @ X) / (U_expected.T @ U_expected @ V)
    MUUpdater().update(X, U, V)
    np.testing.assert_allclose(U, U_expected)
    np.testing.assert_allclose(V, V_expected)


def test_hals_rank_one_is_exact_alternating_step(X, rng):
    U, V = random_factors(rng, 10, 20, 1)
    v = V[0].copy()
    u_expected = np.maximum(0, X @ v / (v @ v))
    v_expected = np.maximum(0, X.T @ u_expected / (u_expected @ u_expected))
    updater = HALSUpdater()
    updater.update(X, U, V)
    np.testing.assert_allclose(U[:, 0], u_expected)
    np.testing.assert_allclose(V[0], v_expected)
    np.testing.assert_allclose(updater.residual_, X - U @ V, atol=1e-12)


def test_fast_hals_clamps_at_eps(rng):
    # the unconstrained V[0, 4:] update is negative, it must end up at eps
    X = np.zeros((6, 8))
    X[:, :4] = 1.0
    U = np.ones((6, 2))
    V = np.zeros((2, 8))
    V[0, :4] = 1.0
    V[1, 4:] = 1.0
    V[1, :4] = 0.5
    updater = FastHALSUpdater(eps=1e-3)
    updater.update(X, U, V)
    assert np.all(U >= 1e-3) and np.all(V >= 1e-3)
    assert updater.B_.shape == (2, 2)
    assert updater.A_.shape == (8, 2)


def test_fast_hals_rejects_negative_eps():
    with pytest.raises(ValueError):
        FastHALSUpdater(eps=-1)


def test_gcd_candidates(X, rng):
    U, V = random_factors(rng, 10, 20, 3)
    U0 = U.copy()
    S, D = GCDUpdater().candidates(X, U, V)
    np.testing.assert_array_equal(U, U0)
    B = V @ V.T
    A = U @ B - X @ V.T
    d = np.diag(B)
    S_expected = np.maximum(U - A / d, 0) - U
    np.testing.assert_allclose(S, S_expected)
    np.testing.assert_allclose(D, -A * S_expected - 0.5 * d * S_expected**2)
    assert np.all(U + S >= 0)
    assert np.all(D >= -1e-12)


def test_gcd_inner_loops_bounds_commits_per_row(X, rng):
    U, V = random_factors(rng, 10, 20, 3)
    U0 = U.copy()
    GCDUpdater(inner_loops=1).update(X, U, V)
    changed = np.count_nonzero(U != U0, axis=1)
    assert np.all(changed <= 1)
    assert np.any(changed == 1)


def test_gcd_greedy_step_takes_best_coordinate(X, rng):
    U, V = random_factors(rng, 10, 20, 3)
    S, D = GCDUpdater().candidates(X, U, V)
    U0 = U.copy()
    GCDUpdater(inner_loops=1, tol=0).update(X, U, V)
    for i in range(U.shape[0]):
        j = np.argmax(D[i])
        np.testing.assert_allclose(U[i, j], U0[i, j] + S[i, j])


@pytest.mark.parametrize("updater_cls", [MUUpdater, HALSUpdater, GCDUpdater])
def test_objective_is_non_increasing(updater_cls, rng):
    X = rng.random((20, 30))
    U, V = random_factors(rng, 20, 30, 4)
    updater = updater_cls()
    errors = [normalized_residual(X, U, V)]
    for _ in range(50):
        updater.update(X, U, V)
        errors.append(normalized_residual(X, U, V))
    errors = np.array(errors)
    assert np.all(np.diff(errors) <= 1e-12 * errors[:-1])
    assert errors[-1] < errors[0]


def test_fast_hals_decreases_objective(rng):
    X = rng.random((20, 30))
    U, V = random_factors(rng, 20, 30, 4)
    e0 = normalized_residual(X, U, V)
    updater = FastHALSUpdater()
    for _ in range(20):
        updater.update(X, U, V)
    assert normalized_residual(X, U, V) < e0


def test_null_updater_leaves_factors(X, rng):
    U, V = random_factors(rng, 10, 20, 3)
    U0, V0 = U.copy(), V.copy()
    NullUpdater().update(X, U, V)
    np.testing.assert_array_equal(U, U0)
    np.testing.assert_array_equal(V, V0)


def test_base_updater_is_abstract(X):
    with pytest.raises(NotImplementedError):
        Updater().update(X, None, None)


def test_make_updater():
    assert isinstance(make_updater("MU"), MUUpdater)
    updater = make_updater("FastHALS", eps=1e-6)
    assert updater.eps == 1e-6
    updater = make_updater("GCD", inner_loops=2, tol=0.1)
    assert (updater.inner_loops, updater.tol) == (2, 0.1)
    with pytest.raises(ValueError):
        make_updater("ALS")
