import json

import pandas as pd
import pytest

from tspopt import cli

SQUARE_DAT = """set NODES := 1 2 3 4 ;

param dist :
        1       2       3       4 :=
   1       0       1       2       1
   2       1       0       1       2
   3       2       1       0       1
   4       1       2       1       0
;
"""

PENTAGON_TSP = """NAME: pent
TYPE: TSP
DIMENSION: 6
EDGE_WEIGHT_TYPE: EUC_2D
NODE_COORD_SECTION
1 0 0
2 10 0
3 20 5
4 10 10
5 0 10
6 -5 5
EOF
"""


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / 'square.dat').write_text(SQUARE_DAT)
    (tmp_path / 'pent.tsp').write_text(PENTAGON_TSP)
    (tmp_path / 'broken.tsp').write_text('NAME: broken\n')
    return tmp_path


def test_single_file_json(data_dir, capsys):
    assert cli.main(['--file', str(data_dir / 'square.dat'), '--json']) == 0
    out = json.loads(capsys.readouterr().out)
    assert len(out) == 1
    assert out[0]['instance'] == 'square.dat'
    assert out[0]['cost'] == 4
    assert out[0]['status'] == 'feasible'


def test_exact_mode_text_output(data_dir, capsys):
    assert cli.main(['--file', str(data_dir / 'pent.tsp'), '--mode', 'exact']) == 0
    out = capsys.readouterr().out
    assert 'pent.tsp' in out
    assert 'status=optimal' in out


def test_batch_reports_errors_and_continues(data_dir, capsys):
    assert cli.main(['--all', '--data-dir', str(data_dir), '--summary']) == 0
    out = capsys.readouterr().out
    assert 'broken.tsp' in out and 'PARSE_ERROR' in out
    assert 'square.dat' in out
    assert 'Summary:' in out


def test_default_is_all(data_dir, capsys):
    cli.main(['--data-dir', str(data_dir)])
    out = capsys.readouterr().out
    assert '[info] No --pattern or --all specified' in out


def test_max_n_skips(data_dir, capsys):
    cli.main(['--pattern', '*.tsp', '--data-dir', str(data_dir), '--max-n', '5'])
    out = capsys.readouterr().out
    assert 'Skipped (>= max-n=5)' in out
    assert 'pent.tsp (n=6)' in out


def test_max_n_from_environment(monkeypatch):
    monkeypatch.setenv('TSPOPT_MAX_N', '17')
    assert cli.build_parser().parse_args([]).max_n == 17
    monkeypatch.setenv('TSPOPT_MAX_N', 'many')
    assert cli.build_parser().parse_args([]).max_n is None


def test_csv_output(data_dir, tmp_path, capsys):
    out_csv = tmp_path / 'results.csv'
    cli.main(['--pattern', '*.dat', '--data-dir', str(data_dir), '--construction', 'greedy',
              '--no-oropt', '--output', str(out_csv)])
    df = pd.read_csv(out_csv)
    assert list(df['instance']) == ['square.dat']
    assert df.loc[0, 'method'] == 'greedy_edge+2opt'
    assert sorted(int(c) for c in df.loc[0, 'tour'].split()) == [0, 1, 2, 3]


def test_invalid_config_reported(data_dir, capsys):
    assert cli.main(['--file', str(data_dir / 'square.dat'), '--k', '0']) == 2
    assert '[error]' in capsys.readouterr().out


def test_iter_instances_requires_selection(tmp_path):
    with pytest.raises(ValueError):
        list(cli.iter_instances(str(tmp_path), None, False))
