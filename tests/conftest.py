import numpy as np
import pytest


@pytest.fixture
def rng():
    return np.random.default_rng(47)


@pytest.fixture
def X(rng):
    # 10 x 20 random non-negative data
    return np.abs(rng.uniform(-1, 1, size=(10, 20)))


@pytest.fixture
def factors(rng):
    U = rng.uniform(0.5, 1.5, size=(30, 3))
    V = rng.uniform(0.5, 1.5, size=(3, 40))
    return U, V


@pytest.fixture
def exact_X(factors):
    U, V = factors
    return U @ V
