import numpy as np
import pytest

from tspopt import InvalidInstanceError, load_instance
from tspopt.parsers import parse_tsp_dat, read_tsplib

EUC_FILE = """NAME : tiny5
COMMENT : five cities: a test
TYPE : TSP
DIMENSION : 5
EDGE_WEIGHT_TYPE : EUC_2D
NODE_COORD_SECTION
1 0 0
2 3 4
3 6 0
4 3 -4
5 3 0
EOF
"""

EXPLICIT_FILE = """NAME: explicit4
TYPE: TSP
DIMENSION: 4
EDGE_WEIGHT_TYPE: EXPLICIT
EDGE_WEIGHT_FORMAT: {fmt}
EDGE_WEIGHT_SECTION
{body}
EOF
"""

EXPECTED4 = np.array([[0, 1, 2, 3], [1, 0, 4, 5], [2, 4, 0, 6], [3, 5, 6, 0]], dtype=float)

LAYOUTS = {
    'UPPER_ROW': '1 2 3\n4 5\n6',
    'LOWER_ROW': '1\n2 4\n3 5 6',
    'UPPER_DIAG_ROW': '0 1 2 3\n0 4 5\n0 6\n0',
    'LOWER_DIAG_ROW': '0\n1 0\n2 4 0\n3 5 6 0',
    'UPPER_COL': '1\n2 4\n3 5 6',
    'LOWER_COL': '1 2 3\n4 5\n6',
    'UPPER_DIAG_COL': '0\n1 0\n2 4 0\n3 5 6 0',
    'LOWER_DIAG_COL': '0 1 2 3\n0 4 5\n0 6\n0',
    'FULL_MATRIX': '0 1 2 3\n1 0 4 5\n2 4 0 6\n3 5 6 0',
}

ATSP_FILE = """NAME: small3
TYPE: ATSP
DIMENSION: 3
EDGE_WEIGHT_TYPE: EXPLICIT
EDGE_WEIGHT_FORMAT: FULL_MATRIX
EDGE_WEIGHT_SECTION
9999 1 9
9 9999 1
1 9 9999
EOF
"""

DAT_FILE = """# converted instance
set NODES := 1 2 3 4 ;

param dist :
        1       2       3       4 :=
   1       0      10      15      20
   2      10       0      35      25
   3      15      35       0      30
   4      20      25      30       0
;
"""


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_read_euc_2d(tmp_path):
    inst = read_tsplib(write(tmp_path, 'tiny5.tsp', EUC_FILE))
    assert inst.name == 'tiny5'
    assert inst.size() == 5
    assert inst.cost(0, 1) == 5
    assert inst.cost(0, 2) == 6
    assert inst.cost(1, 3) == 8
    assert inst.is_symmetric


@pytest.mark.parametrize('fmt', sorted(LAYOUTS))
def test_explicit_layouts(tmp_path, fmt):
    text = EXPLICIT_FILE.format(fmt=fmt, body=LAYOUTS[fmt])
    inst = load_instance(write(tmp_path, 'e4.tsp', text))
    assert np.array_equal(inst.matrix(), EXPECTED4)


def test_atsp_diagonal_zeroed(tmp_path):
    inst = load_instance(write(tmp_path, 'small3.atsp', ATSP_FILE))
    assert not inst.is_symmetric
    assert inst.cost(0, 0) == 0
    assert inst.cost(0, 1) == 1
    assert inst.cost(1, 0) == 9


def test_wrong_weight_count(tmp_path):
    text = EXPLICIT_FILE.format(fmt='UPPER_ROW', body='1 2 3 4 5')
    with pytest.raises(InvalidInstanceError):
        load_instance(write(tmp_path, 'bad.tsp', text))


def test_unsupported_weight_type(tmp_path):
    text = EUC_FILE.replace('EUC_2D', 'XRAY1')
    with pytest.raises(InvalidInstanceError):
        load_instance(write(tmp_path, 'xray.tsp', text))


def test_missing_dimension(tmp_path):
    text = EUC_FILE.replace('DIMENSION : 5\n', '')
    with pytest.raises(InvalidInstanceError):
        load_instance(write(tmp_path, 'nodim.tsp', text))


def test_missing_coordinates(tmp_path):
    text = EUC_FILE.replace('5 3 0\n', '')
    with pytest.raises(InvalidInstanceError):
        load_instance(write(tmp_path, 'short.tsp', text))


def test_negative_explicit_weight(tmp_path):
    text = EXPLICIT_FILE.format(fmt='UPPER_ROW', body='1 2 3\n4 -5\n6')
    with pytest.raises(InvalidInstanceError):
        load_instance(write(tmp_path, 'neg.tsp', text))


def test_ampl_dat(tmp_path):
    path = write(tmp_path, 'four.dat', DAT_FILE)
    dist = parse_tsp_dat(path)
    assert dist.shape == (4, 4)
    inst = load_instance(path)
    assert inst.name == 'four'
    assert inst.cost(1, 3) == 25
    assert inst.cost(3, 1) == 25


def test_ampl_dat_not_square(tmp_path):
    text = DAT_FILE.replace('   4      20      25      30       0\n', '')
    with pytest.raises(InvalidInstanceError):
        load_instance(write(tmp_path, 'three.dat', text))


def test_unknown_extension(tmp_path):
    with pytest.raises(InvalidInstanceError):
        load_instance(write(tmp_path, 'x.txt', 'hello'))
