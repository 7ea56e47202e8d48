import itertools

import numpy as np
import pytest

from tspopt import Instance


def brute_force(instance):
    """Optimal tour cost by enumerating every tour that starts at city 0."""
    n = instance.size()
    cost = instance.lookup
    best = float('inf')
    for perm in itertools.permutations(range(1, n)):
        order = (0,) + perm
        total = sum(cost(order[p - 1], order[p]) for p in range(n))
        best = min(best, total)
    return best


def random_euclidean(n, seed, metric='EUC_2D', scale=100.0):
    rng = np.random.default_rng(seed)
    coords = rng.uniform(0.0, scale, size=(n, 2))
    return Instance.from_coordinates(coords, metric, name=f'rand{n}_{seed}')


def random_symmetric(n, seed, high=50):
    rng = np.random.default_rng(seed)
    m = rng.integers(1, high, size=(n, n)).astype(float)
    m = np.triu(m, 1)
    m = m + m.T
    return Instance.from_matrix(m, name=f'sym{n}_{seed}')


def random_asymmetric(n, seed, high=50):
    rng = np.random.default_rng(seed)
    m = rng.integers(1, high, size=(n, n)).astype(float)
    np.fill_diagonal(m, 0.0)
    return Instance.from_matrix(m, name=f'asym{n}_{seed}')


@pytest.fixture
def square():
    coords = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
    return Instance.from_coordinates(coords, 'EUCLIDEAN', name='square')


@pytest.fixture
def euclidean30():
    return random_euclidean(30, seed=7)


@pytest.fixture
def asymmetric12():
    return random_asymmetric(12, seed=3)
