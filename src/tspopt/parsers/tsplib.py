"""TSPLIB ``.tsp`` / ``.atsp`` reader.

Coordinate instances (NODE_COORD_SECTION) are built with the matching
distance function; EXPLICIT instances are read from EDGE_WEIGHT_SECTION in
any of the TSPLIB matrix layouts.
"""
from __future__ import annotations

import os
from typing import Dict, List, Tuple

import numpy as np

from ..errors import InvalidInstanceError
from ..instance import Instance
from ..metrics import METRIC_DIMENSIONS

# Column-wise layouts list the same entries as the transposed row-wise ones
EXPLICIT_FORMATS = {
    'FULL_MATRIX': None,
    'UPPER_ROW': ('upper', 1),
    'LOWER_ROW': ('lower', -1),
    'UPPER_DIAG_ROW': ('upper', 0),
    'LOWER_DIAG_ROW': ('lower', 0),
    'UPPER_COL': ('lower', -1),
    'LOWER_COL': ('upper', 1),
    'UPPER_DIAG_COL': ('lower', 0),
    'LOWER_DIAG_COL': ('upper', 0),
}


def _is_keyword(token: str) -> bool:
    return token == 'EOF' or token.endswith('_SECTION')


def parse_tsplib(text: str, source: str = '<string>') -> Tuple[Dict[str, str], Dict[str, List[List[str]]]]:
    """Split TSPLIB text into header fields and raw section rows."""
    header: Dict[str, str] = {}
    sections: Dict[str, List[List[str]]] = {}
    current = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        first = line.split()[0].rstrip(':')
        if _is_keyword(first):
            if first == 'EOF':
                break
            current = first
            sections[current] = []
            # A few files put data on the keyword line itself
            rest = line.split(':', 1)[1].split() if ':' in line else line.split()[1:]
            if rest:
                sections[current].append(rest)
            continue
        if current is not None:
            sections[current].append(line.split())
        elif ':' in line:
            key, value = line.split(':', 1)
            header[key.strip().upper()] = value.strip()
        else:
            raise InvalidInstanceError(f"Unexpected line in {source}: {line!r}")
    return header, sections


def _explicit_matrix(values: List[str], n: int, fmt: str, source: str) -> np.ndarray:
    if fmt not in EXPLICIT_FORMATS:
        raise InvalidInstanceError(f"Unsupported EDGE_WEIGHT_FORMAT {fmt!r} in {source}")
    try:
        data = np.array([float(v) for v in values], dtype=float)
    except ValueError as e:
        raise InvalidInstanceError(f"Non-numeric edge weight in {source}: {e}") from e

    layout = EXPLICIT_FORMATS[fmt]
    if layout is None:
        if data.size != n * n:
            raise InvalidInstanceError(f"{source}: FULL_MATRIX expects {n * n} weights, got {data.size}")
        dist = data.reshape(n, n).copy()
    else:
        side, k = layout
        rows, cols = np.triu_indices(n, k) if side == 'upper' else np.tril_indices(n, k)
        if data.size != rows.size:
            raise InvalidInstanceError(f"{source}: {fmt} expects {rows.size} weights, got {data.size}")
        dist = np.zeros((n, n))
        dist[rows, cols] = data
        dist[cols, rows] = data
    # ATSP files put a large sentinel on the diagonal
    np.fill_diagonal(dist, 0.0)
    return dist


def _coordinates(rows: List[List[str]], n: int, metric: str, source: str) -> np.ndarray:
    dims = METRIC_DIMENSIONS[metric]
    coords = np.full((n, dims), np.nan)
    seen = 0
    for parts in rows:
        if len(parts) < dims + 1:
            raise InvalidInstanceError(f"{source}: malformed coordinate line {' '.join(parts)!r}")
        try:
            node = int(parts[0])
            values = [float(x) for x in parts[1:dims + 1]]
        except ValueError as e:
            raise InvalidInstanceError(f"{source}: bad coordinate line {' '.join(parts)!r}: {e}") from e
        if not 1 <= node <= n:
            raise InvalidInstanceError(f"{source}: node id {node} outside 1..{n}")
        coords[node - 1] = values
        seen += 1
    if seen != n or np.isnan(coords).any():
        raise InvalidInstanceError(f"{source}: expected {n} coordinates, found {seen}")
    return coords


def read_tsplib(path: str) -> Instance:
    with open(path, 'r') as f:
        text = f.read()
    return tsplib_instance(text, source=path)


def tsplib_instance(text: str, source: str = '<string>') -> Instance:
    header, sections = parse_tsplib(text, source)
    name = header.get('NAME') or os.path.splitext(os.path.basename(source))[0]
    try:
        n = int(header['DIMENSION'])
    except (KeyError, ValueError):
        raise InvalidInstanceError(f"Could not find a valid DIMENSION in {source}") from None
    weight_type = header.get('EDGE_WEIGHT_TYPE', 'EXPLICIT').upper()

    if weight_type == 'EXPLICIT':
        if 'EDGE_WEIGHT_SECTION' not in sections:
            raise InvalidInstanceError(f"{source}: EXPLICIT instance without EDGE_WEIGHT_SECTION")
        values = [tok for row in sections['EDGE_WEIGHT_SECTION'] for tok in row]
        fmt = header.get('EDGE_WEIGHT_FORMAT', 'FULL_MATRIX').upper()
        return Instance.from_matrix(_explicit_matrix(values, n, fmt, source), name=name)

    if weight_type not in METRIC_DIMENSIONS:
        raise InvalidInstanceError(f"Unsupported EDGE_WEIGHT_TYPE {weight_type!r} in {source}")
    if 'NODE_COORD_SECTION' not in sections:
        raise InvalidInstanceError(f"{source}: {weight_type} instance without NODE_COORD_SECTION")
    coords = _coordinates(sections['NODE_COORD_SECTION'], n, weight_type, source)
    return Instance.from_coordinates(coords, weight_type, name=name)
