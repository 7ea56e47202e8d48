import pandas as pd
import pytest

from tspopt.analysis import benchmark
from tspopt.solver import Mode, SolverConfig

TSP_TEMPLATE = """NAME: {name}
TYPE: TSP
DIMENSION: {n}
EDGE_WEIGHT_TYPE: EUC_2D
NODE_COORD_SECTION
{coords}
EOF
"""


def write_instance(tmp_path, name, points):
    coords = '\n'.join(f"{i + 1} {x} {y}" for i, (x, y) in enumerate(points))
    path = tmp_path / f"{name}.tsp"
    path.write_text(TSP_TEMPLATE.format(name=name, n=len(points), coords=coords))
    return str(path)


@pytest.fixture
def instances(tmp_path):
    square = [(0, 0), (10, 0), (10, 10), (0, 10), (5, -3)]
    zigzag = [(0, 0), (7, 3), (14, 0), (21, 3), (28, 0), (28, 9), (14, 12), (0, 9)]
    return [write_instance(tmp_path, 'house', square), write_instance(tmp_path, 'zigzag', zigzag)]


def test_load_bks(tmp_path):
    path = tmp_path / 'bks.txt'
    path.write_text("# best known\nhouse 46\nzigzag: 90.5\nbroken x\n\n")
    assert benchmark.load_bks(str(path)) == {'house': 46.0, 'zigzag': 90.5}
    assert benchmark.load_bks(str(tmp_path / 'missing.txt')) == {}


def test_run_benchmark_frame(instances):
    configs = {'nn': SolverConfig(), 'greedy': SolverConfig(construction='greedy')}
    df = benchmark.run_benchmark(instances, configs, runs=2, bks={'house': 40.0})
    assert len(df) == 2 * 2 * 2
    assert set(df['config']) == {'nn', 'greedy'}
    assert set(df['run']) == {1, 2}
    house = df[df['instance'] == 'house']
    assert (house['gap_percent'] >= 0).all()
    assert df[df['instance'] == 'zigzag']['gap_percent'].isna().all()


def test_run_benchmark_exact_and_max_n(instances):
    df = benchmark.run_benchmark(instances, {'nn': SolverConfig()}, mode=Mode.EXACT, max_n=6)
    assert list(df['instance']) == ['house']
    assert df.loc[0, 'status'] == 'optimal'


def test_run_benchmark_skips_unreadable(tmp_path, instances, capsys):
    bad = tmp_path / 'bad.tsp'
    bad.write_text('NAME: bad\n')
    df = benchmark.run_benchmark([str(bad)] + instances, {'nn': SolverConfig()})
    assert set(df['instance']) == {'house', 'zigzag'}
    assert '[warn] Could not load' in capsys.readouterr().out


def test_summarize(instances):
    df = benchmark.run_benchmark(instances, runs=1, bks={'house': 40.0, 'zigzag': 80.0})
    summary = benchmark.summarize(df)
    assert set(summary['config']) == set(benchmark.DEFAULT_CONFIGS)
    assert (summary['instances'] == 2).all()
    assert (summary['gap_std'] >= 0).all()


def test_friedman_test():
    rows = []
    for i, inst in enumerate(['a', 'b', 'c', 'd']):
        for j, cfg in enumerate(['x', 'y', 'z']):
            rows.append({'instance': inst, 'config': cfg, 'cost': 100 + 10 * j + i})
    stat, p = benchmark.friedman_test(pd.DataFrame(rows))
    assert stat > 0
    assert 0 <= p <= 1
    assert benchmark.friedman_test(pd.DataFrame(rows[:6])) is not None
    two_configs = [r for r in rows if r['config'] != 'z']
    assert benchmark.friedman_test(pd.DataFrame(two_configs)) is None


def test_main_writes_results(instances, tmp_path, capsys):
    out_dir = tmp_path / 'out'
    code = benchmark.main(['--pattern', '*.tsp', '--data-dir', str(tmp_path), '--runs', '1',
                           '--configs', 'nn_2opt,greedy_2opt_oropt', '--out-dir', str(out_dir),
                           '--bks-file', str(tmp_path / 'none.txt')])
    assert code == 0
    detailed = pd.read_csv(out_dir / 'benchmark_results.csv')
    assert len(detailed) == 4
    assert (out_dir / 'benchmark_summary.csv').exists()


def test_main_unknown_config(instances, tmp_path, capsys):
    code = benchmark.main(['--all', '--data-dir', str(tmp_path), '--configs', 'nope'])
    assert code == 2
