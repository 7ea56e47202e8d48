#!/usr/bin/env python3
"""
Solver benchmark

Runs several solver configurations over a set of instances, collects one row
per (instance, configuration, run) in a DataFrame, computes the gap to the
best known solution when a BKS file is given, and compares configurations
with a Friedman test.
"""
from __future__ import annotations

import argparse
import dataclasses
import glob
import logging
import os
from typing import Dict, Iterable, List, Optional

import pandas as pd
from scipy.stats import friedmanchisquare

from ..errors import TSPError
from ..parsers import load_instance
from ..solver import Mode, Solver, SolverConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIGS: Dict[str, SolverConfig] = {
    'nn_2opt': SolverConfig(construction='nearest', use_or_opt=False),
    'nn_2opt_oropt': SolverConfig(construction='nearest'),
    'greedy_2opt_oropt': SolverConfig(construction='greedy'),
}


def load_bks(bks_file: str) -> Dict[str, float]:
    """Load best known solutions: one ``name value`` pair per line, ``#`` comments."""
    bks: Dict[str, float] = {}
    if not bks_file or not os.path.exists(bks_file):
        return bks
    with open(bks_file, 'r') as f:
        for line in f:
            line = line.split('#', 1)[0].strip()
            parts = line.replace(':', ' ').split()
            if len(parts) < 2:
                continue
            try:
                bks[parts[0]] = float(parts[1])
            except ValueError:
                continue
    return bks


def extract_instance_name(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


def run_benchmark(paths: Iterable[str], configs: Optional[Dict[str, SolverConfig]] = None,
                  runs: int = 1, bks: Optional[Dict[str, float]] = None,
                  mode: Mode = Mode.HEURISTIC, max_n: Optional[int] = None) -> pd.DataFrame:
    """Solve every instance with every configuration ``runs`` times.

    Run ``r`` shifts the start city by ``r`` so repeated nearest-neighbor runs
    differ. Instances that fail to load or solve are reported and skipped.
    """
    configs = configs or DEFAULT_CONFIGS
    bks = bks or {}
    rows: List[dict] = []
    for path in paths:
        name = extract_instance_name(path)
        try:
            instance = load_instance(path)
        except (OSError, TSPError) as e:
            print(f"[warn] Could not load {path}: {e}")
            continue
        n = instance.size()
        if max_n is not None and n >= max_n:
            logger.debug("Skipping %s (n=%d >= %d)", name, n, max_n)
            continue
        best_known = bks.get(name)
        print(f"Instance {name}  size={n}  BKS={best_known if best_known is not None else 'unknown'}")
        for label, base in configs.items():
            for run in range(runs):
                cfg = dataclasses.replace(base, start_city=(base.start_city + run) % n)
                try:
                    result = Solver(cfg).solve(instance, mode)
                except TSPError as e:
                    print(f"  [warn] {label} run={run + 1} failed: {e}")
                    continue
                gap = None
                if best_known:
                    gap = (result.cost - best_known) / best_known * 100.0
                rows.append({
                    'instance': name,
                    'n': n,
                    'config': label,
                    'run': run + 1,
                    'cost': result.cost,
                    'status': result.status.value,
                    'lower_bound': result.lower_bound,
                    'bks': best_known,
                    'gap_percent': gap,
                    'moves': result.stats.moves_applied,
                    'nodes': result.stats.nodes_explored,
                    'total_time': result.stats.elapsed,
                })
                print(f"  {label:20s} run={run + 1} cost={result.cost:12.2f} time={result.stats.elapsed:6.3f}s")
    columns = ['instance', 'n', 'config', 'run', 'cost', 'status', 'lower_bound', 'bks',
               'gap_percent', 'moves', 'nodes', 'total_time']
    return pd.DataFrame(rows, columns=columns)


def summarize(df: pd.DataFrame) -> pd.DataFrame:
    """Per-configuration cost, gap and runtime statistics."""
    df = df.copy()
    df['gap_percent'] = pd.to_numeric(df['gap_percent'], errors='coerce')
    summary = df.groupby('config').agg(
        instances=('instance', 'nunique'),
        runs=('run', 'count'),
        cost_mean=('cost', 'mean'),
        gap_mean=('gap_percent', 'mean'),
        gap_median=('gap_percent', 'median'),
        gap_std=('gap_percent', 'std'),
        time_mean=('total_time', 'mean'),
        time_std=('total_time', 'std'),
    ).reset_index()
    # std is NaN for single observations
    summary['gap_std'] = summary['gap_std'].fillna(0)
    summary['time_std'] = summary['time_std'].fillna(0)
    return summary


def friedman_test(df: pd.DataFrame, value: str = 'cost'):
    """Friedman test over per-instance means; None when fewer than 3 configs or 2 instances."""
    piv = df.groupby(['instance', 'config'])[value].mean().unstack('config').dropna()
    if piv.shape[1] < 3 or piv.shape[0] < 2:
        return None
    stat, p = friedmanchisquare(*[piv[c] for c in piv.columns])
    return float(stat), float(p)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="tspopt solver benchmark")
    parser.add_argument('--data-dir', default='dat/tsp', help='Directory containing instance files')
    parser.add_argument('--pattern', help='Glob pattern for instances (e.g., "gr*.tsp")')
    parser.add_argument('--all', action='store_true', help='Run every .tsp/.dat file in directory')
    parser.add_argument('--max-n', type=int, help='Maximum number of cities')
    parser.add_argument('--configs', default=','.join(DEFAULT_CONFIGS),
                        help=f"Comma-separated configurations from: {', '.join(DEFAULT_CONFIGS)}")
    parser.add_argument('--mode', choices=[m.value for m in Mode], default=Mode.HEURISTIC.value)
    parser.add_argument('--runs', type=int, default=3, help='Number of runs per configuration')
    parser.add_argument('--limit', type=float, help='Time limit per solve in seconds')
    parser.add_argument('--bks-file', default='tsplib_bks.txt', help='Best known solutions file')
    parser.add_argument('--out-dir', default='results/benchmark', help='Output directory')
    args = parser.parse_args(argv)

    if args.pattern:
        instances = glob.glob(os.path.join(args.data_dir, args.pattern))
    elif args.all:
        instances = [p for ext in ('*.tsp', '*.dat') for p in glob.glob(os.path.join(args.data_dir, ext))]
    else:
        print("Specify --pattern or --all")
        return 2
    instances = sorted(instances)
    if not instances:
        print("No instances found")
        return 1

    configs = {}
    for label in (c.strip() for c in args.configs.split(',')):
        if label not in DEFAULT_CONFIGS:
            print(f"[error] Unknown configuration {label!r}")
            return 2
        configs[label] = dataclasses.replace(DEFAULT_CONFIGS[label], time_budget=args.limit)

    df = run_benchmark(instances, configs, runs=args.runs, bks=load_bks(args.bks_file),
                       mode=Mode(args.mode), max_n=args.max_n)
    if df.empty:
        print("No results")
        return 1
    os.makedirs(args.out_dir, exist_ok=True)
    detailed = os.path.join(args.out_dir, 'benchmark_results.csv')
    df.to_csv(detailed, index=False)
    summary = summarize(df)
    summary.to_csv(os.path.join(args.out_dir, 'benchmark_summary.csv'), index=False)
    print("\nSummary:")
    print(summary.to_string(index=False))
    test = friedman_test(df)
    if test is not None:
        print(f"\nFriedman cost: stat={test[0]:.4f} p={test[1]:.3e}")
    print(f"\n[info] Results written to {args.out_dir}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
