import numpy as np
import pytest

from tspopt.errors import InvalidInstanceError
from tspopt.metrics import METRIC_DIMENSIONS, distance_matrix, nint, pair_cost_function


def test_nint():
    assert nint(2.5) == 3
    assert nint(2.49) == 2


def test_euc_2d_rounds():
    d = distance_matrix([(0, 0), (3, 4), (1, 1)], 'EUC_2D')
    assert d[0, 1] == 5
    assert d[0, 2] == 1  # sqrt(2) rounds down
    assert np.all(np.diag(d) == 0)


def test_ceil_2d():
    d = distance_matrix([(0, 0), (1, 1)], 'CEIL_2D')
    assert d[0, 1] == 2


def test_manhattan_and_max():
    pts = [(0, 0), (3, 4)]
    assert distance_matrix(pts, 'MAN_2D')[0, 1] == 7
    assert distance_matrix(pts, 'MAX_2D')[0, 1] == 4


def test_att_rounds_up():
    # sqrt(100 / 10) = 3.16 -> nint 3 < 3.16 -> 4
    d = distance_matrix([(0, 0), (10, 0)], 'ATT')
    assert d[0, 1] == 4
    assert pair_cost_function([(0, 0), (10, 0)], 'ATT')(0, 1) == 4


def test_geo_one_degree_of_longitude():
    d = distance_matrix([(0.0, 0.0), (0.0, 1.0)], 'GEO')
    assert d[0, 1] == 112
    assert pair_cost_function([(0.0, 0.0), (0.0, 1.0)], 'GEO')(0, 1) == 112


def test_3d_metrics():
    pts = [(0, 0, 0), (1, 2, 2)]
    assert distance_matrix(pts, 'EUC_3D')[0, 1] == 3
    assert distance_matrix(pts, 'MAN_3D')[0, 1] == 5
    assert distance_matrix(pts, 'MAX_3D')[0, 1] == 2


@pytest.mark.parametrize('metric', sorted(METRIC_DIMENSIONS))
def test_pair_function_matches_matrix(metric):
    rng = np.random.default_rng(11)
    coords = rng.uniform(0, 60, size=(12, METRIC_DIMENSIONS[metric]))
    dense = distance_matrix(coords, metric)
    fn = pair_cost_function(coords, metric)
    for i in range(12):
        for j in range(12):
            if i != j:
                assert fn(i, j) == pytest.approx(dense[i, j])


def test_bad_coordinates():
    with pytest.raises(InvalidInstanceError):
        distance_matrix([(0, 0), (1, float('nan'))], 'EUC_2D')
    with pytest.raises(InvalidInstanceError):
        distance_matrix([(0,), (1,)], 'EUC_2D')
