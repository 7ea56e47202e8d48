"""AMPL ``.dat`` distance matrices (``set NODES`` + ``param dist :`` table)."""
from __future__ import annotations

import os
from typing import List

import numpy as np

from ..errors import InvalidInstanceError
from ..instance import Instance


def parse_tsp_dat(path: str) -> np.ndarray:
    """Parse AMPL .dat with 'set NODES' and 'param dist :' matrix."""
    with open(path, 'r') as f:
        content = f.read().splitlines()
    rows: List[List[float]] = []
    nodes = None
    in_matrix = False
    header_consumed = False
    for line in content:
        line = line.split('#', 1)[0].strip()
        if not line:
            continue
        if line.startswith('set NODES'):
            body = line.split(':=', 1)[1] if ':=' in line else ''
            nodes = len(body.replace(';', ' ').split())
            continue
        if line.startswith('param dist'):
            in_matrix = True
            # Column header may sit on the same line: "param dist : 1 2 3 :="
            header_consumed = ':=' in line
            continue
        if not in_matrix:
            continue
        if line.startswith(';'):
            break
        if not header_consumed:
            header_consumed = True
            continue
        done = line.endswith(';')
        parts = line.rstrip(';').split()
        if parts:
            try:
                rows.append([float(x) for x in parts[1:]])
            except ValueError as e:
                raise InvalidInstanceError(f"Non-numeric distance in {path}: {e}") from e
        if done:
            break
    if not rows:
        raise InvalidInstanceError(f"No 'param dist' table found in {path}")
    widths = {len(r) for r in rows}
    if len(widths) != 1 or widths.pop() != len(rows):
        raise InvalidInstanceError(f"Distance matrix not square in {path}")
    if nodes is not None and nodes != len(rows):
        raise InvalidInstanceError(f"{path}: set NODES has {nodes} entries but the matrix has {len(rows)} rows")
    dist = np.array(rows, dtype=float)
    np.fill_diagonal(dist, 0.0)
    return dist


def read_ampl_dat(path: str) -> Instance:
    name = os.path.splitext(os.path.basename(path))[0]
    return Instance.from_matrix(parse_tsp_dat(path), name=name)
