#!/usr/bin/env python3
"""Command-line front-end for tspopt.

Solves one instance or a batch of instances from a directory and prints one
line per instance. TSPLIB ``.tsp`` / ``.atsp`` and AMPL ``.dat`` files are
accepted.

CLI examples:
    tspopt --file data/gr21.tsp
    tspopt --pattern 'gr*.tsp' --construction greedy --limit 10
    tspopt --all --data-dir dat/tsp --mode exact --max-n 40 --output results.csv
"""
from __future__ import annotations

import argparse
import glob
import json
import logging
import os
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from .errors import TSPError
from .parsers import load_instance
from .solver import Mode, Solver, SolverConfig, TourResult

INSTANCE_EXTENSIONS = ('*.tsp', '*.atsp', '*.dat')


def iter_instances(data_dir: str, pattern: Optional[str], all_flag: bool) -> Iterable[str]:
    if pattern:
        for p in sorted(glob.glob(os.path.join(data_dir, pattern))):
            yield p
        return
    if all_flag:
        paths = []
        for ext in INSTANCE_EXTENSIONS:
            paths.extend(glob.glob(os.path.join(data_dir, ext)))
        for p in sorted(paths):
            yield p
        return
    raise ValueError("Provide --pattern or --all")


def default_max_n() -> Optional[int]:
    value = os.environ.get('TSPOPT_MAX_N')
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        print(f"[warn] Ignoring TSPOPT_MAX_N={value!r} (not an integer)")
        return None


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="TSP tour optimisation (construction + 2-opt/Or-opt, or exact branch-and-bound)")
    ap.add_argument('--data-dir', default='dat/tsp')
    ap.add_argument('--file', help='Solve a single instance file (overrides pattern/all)')
    ap.add_argument('--pattern', help='Filename or glob pattern (e.g., gr21.tsp or gr*.tsp)')
    ap.add_argument('--all', action='store_true', help='Run every instance in the directory')
    ap.add_argument('--mode', choices=[m.value for m in Mode], default=Mode.HEURISTIC.value)
    ap.add_argument('--construction', choices=['nearest', 'greedy'], default='nearest')
    ap.add_argument('--k', type=int, default=10, help='Neighbor list size')
    ap.add_argument('--limit', type=float, help='Time limit in seconds per instance')
    ap.add_argument('--node-limit', type=int, help='Branch-and-bound node limit (exact mode)')
    ap.add_argument('--start', type=int, default=0, help='Start city for nearest neighbor')
    ap.add_argument('--no-oropt', action='store_true', help='Disable Or-opt moves')
    ap.add_argument('--summary', action='store_true')
    ap.add_argument('--max-n', type=int, default=default_max_n(),
                    help='Only solve instances with fewer than max-n cities (env TSPOPT_MAX_N)')
    ap.add_argument('--json', action='store_true', help='Emit JSON array of results to stdout instead of plain text lines')
    ap.add_argument('--output', help='Write results to this CSV file')
    ap.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return ap


def config_from_args(args) -> SolverConfig:
    return SolverConfig(construction=args.construction, neighbor_list_size=args.k,
                        time_budget=args.limit, node_budget=args.node_limit,
                        start_city=args.start, use_or_opt=not args.no_oropt)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

    try:
        solver = Solver(config_from_args(args))
    except TSPError as e:
        print(f"[error] {e}")
        return 2

    if args.file:
        targets = [args.file]
    else:
        if not args.pattern and not args.all:
            args.all = True
            if not args.json:
                print("[info] No --pattern or --all specified; defaulting to all instances in", args.data_dir)
        targets = list(iter_instances(args.data_dir, args.pattern, args.all))
    if not targets and not args.json:
        print(f"[warn] No instances found in {args.data_dir}")

    results: List[TourResult] = []
    skipped: List[Tuple[str, int]] = []
    failures = 0
    for path in targets:
        name = os.path.basename(path)
        try:
            instance = load_instance(path)
        except (OSError, TSPError) as e:
            failures += 1
            if not args.json:
                print(f"{name:20s} PARSE_ERROR {e}")
            continue
        if args.max_n is not None and instance.size() >= args.max_n:
            skipped.append((name, instance.size()))
            continue
        try:
            result = solver.solve(instance, args.mode)
        except TSPError as e:
            failures += 1
            if not args.json:
                print(f"{name:20s} ERROR {e}")
            continue
        result.instance_name = name
        results.append(result)
        if not args.json:
            bound = '' if result.lower_bound is None else f" bound={result.lower_bound:12.2f}"
            print(f"{name:20s} cost={result.cost:12.2f}{bound} time={result.stats.elapsed:6.3f}s "
                  f"status={result.status.value} method={result.method}")

    records = [r.to_dict() for r in results]
    if args.output and records:
        df = pd.DataFrame(records)
        df['tour'] = df['tour'].apply(lambda t: ' '.join(map(str, t)))
        df.to_csv(args.output, index=False)
        if not args.json:
            print(f"[info] Wrote {len(records)} results to {args.output}")
    if args.json:
        print(json.dumps(records))
    else:
        if args.summary and results:
            print("\nSummary:")
            df = pd.DataFrame(records)
            print(df[['instance', 'n', 'cost', 'status', 'elapsed', 'moves_applied', 'nodes_explored']].to_string(index=False))
        if skipped:
            print(f"\nSkipped (>= max-n={args.max_n}):")
            for nm, sz in skipped:
                print(f"  {nm} (n={sz})")
    return 1 if failures and not results else 0


if __name__ == '__main__':
    raise SystemExit(main())
