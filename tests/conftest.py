import numpy as np
import pytest

from pytspanneal import DistanceModel


UNIT_SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]


def is_perimeter(tour):
    # Square corners are numbered around the boundary, so sides join i and i +/- 1 (mod 4)
    return all((abs(int(a) - int(b)) % 2) == 1 for a, b in zip(tour[:-1], tour[1:]))


@pytest.fixture
def square_model():
    prices = np.ones((4, 4)) - np.eye(4)
    return DistanceModel(UNIT_SQUARE, prices)


@pytest.fixture
def inverse_square_model():
    # Sides are expensive and diagonals are cheap, the reverse of distance
    prices = np.array([
        [0.0, 2.0, 1.0, 2.0],
        [2.0, 0.0, 2.0, 1.0],
        [1.0, 2.0, 0.0, 2.0],
        [2.0, 1.0, 2.0, 0.0],
    ])
    return DistanceModel(UNIT_SQUARE, prices)


@pytest.fixture
def random_model():
    rng = np.random.default_rng(1234)
    n = 12
    coords = rng.random((n, 2)) * 100.0
    prices = rng.random((n, n)) * 50.0
    prices = (prices + prices.T) / 2
    np.fill_diagonal(prices, 0.0)
    return DistanceModel(coords, prices)


@pytest.fixture
def random_tour(random_model):
    rng = np.random.default_rng(99)
    order = rng.permutation(random_model.n_cities)
    return np.append(order, order[0])
