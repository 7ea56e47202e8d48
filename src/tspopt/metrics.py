"""TSPLIB95 distance functions.

Each metric comes in two forms: a vectorised builder that returns the dense
``(n, n)`` matrix for a coordinate array, and a scalar pair function used by
lazily evaluated instances that are too large to materialise.
"""
from __future__ import annotations

import math
from typing import Callable, Dict, List, Sequence

import numpy as np
from scipy.spatial.distance import cdist

from .errors import InvalidInstanceError

# TSPLIB95 constants; GEO uses PI truncated to six decimals
GEO_PI = 3.141592
EARTH_RADIUS = 6378.388

METRIC_DIMENSIONS: Dict[str, int] = {
    'EUC_2D': 2,
    'EUC_3D': 3,
    'CEIL_2D': 2,
    'MAN_2D': 2,
    'MAN_3D': 3,
    'MAX_2D': 2,
    'MAX_3D': 3,
    'ATT': 2,
    'GEO': 2,
    'EUCLIDEAN': 2,
}

PairCost = Callable[[int, int], float]


def nint(x: float) -> int:
    """Nearest integer as defined in TSPLIB95 (expects x >= 0)."""
    return int(x + 0.5)


def _check_coords(coords, metric: str) -> np.ndarray:
    if metric not in METRIC_DIMENSIONS:
        raise InvalidInstanceError(f"Unsupported metric: {metric}")
    arr = np.asarray(coords, dtype=float)
    if arr.ndim != 2 or arr.shape[0] == 0:
        raise InvalidInstanceError(f"Coordinates must be a non-empty (n, d) array, got shape {arr.shape}")
    dims = METRIC_DIMENSIONS[metric]
    if arr.shape[1] < dims:
        raise InvalidInstanceError(f"{metric} needs {dims} coordinates per city, got {arr.shape[1]}")
    if not np.all(np.isfinite(arr)):
        raise InvalidInstanceError("Coordinates contain NaN or infinite values")
    return arr[:, :dims]


def geo_radians(coords: np.ndarray) -> np.ndarray:
    """Convert TSPLIB DDD.MM latitude/longitude pairs to radians."""
    deg = np.trunc(coords)
    minutes = coords - deg
    return GEO_PI * (deg + 5.0 * minutes / 3.0) / 180.0


def distance_matrix(coords, metric: str = 'EUC_2D') -> np.ndarray:
    """Dense cost matrix for ``coords`` under a TSPLIB metric."""
    pts = _check_coords(coords, metric)

    if metric in ('EUC_2D', 'EUC_3D'):
        dist = np.floor(cdist(pts, pts, 'euclidean') + 0.5)
    elif metric == 'EUCLIDEAN':
        dist = cdist(pts, pts, 'euclidean')
    elif metric == 'CEIL_2D':
        dist = np.ceil(cdist(pts, pts, 'euclidean'))
    elif metric in ('MAN_2D', 'MAN_3D'):
        dist = np.floor(cdist(pts, pts, 'cityblock') + 0.5)
    elif metric in ('MAX_2D', 'MAX_3D'):
        dist = np.floor(cdist(pts, pts, 'chebyshev') + 0.5)
    elif metric == 'ATT':
        rij = np.sqrt(cdist(pts, pts, 'sqeuclidean') / 10.0)
        tij = np.floor(rij + 0.5)
        dist = np.where(tij < rij, tij + 1.0, tij)
    else:  # GEO
        rad = geo_radians(pts)
        lat, lon = rad[:, 0], rad[:, 1]
        q1 = np.cos(lon[:, None] - lon[None, :])
        q2 = np.cos(lat[:, None] - lat[None, :])
        q3 = np.cos(lat[:, None] + lat[None, :])
        inner = np.clip(0.5 * ((1.0 + q1) * q2 - (1.0 - q1) * q3), -1.0, 1.0)
        dist = np.floor(EARTH_RADIUS * np.arccos(inner) + 1.0)

    np.fill_diagonal(dist, 0.0)
    return dist


def pair_cost_function(coords, metric: str = 'EUC_2D') -> PairCost:
    """Scalar ``cost(i, j)`` closure over ``coords``; nothing is precomputed per pair."""
    pts = _check_coords(coords, metric)
    if metric == 'GEO':
        pts = geo_radians(pts)
    rows: List[Sequence[float]] = pts.tolist()

    def euclid(i: int, j: int) -> float:
        return math.sqrt(sum((a - b) ** 2 for a, b in zip(rows[i], rows[j])))

    if metric in ('EUC_2D', 'EUC_3D'):
        def cost(i: int, j: int) -> float:
            return float(nint(euclid(i, j)))
    elif metric == 'EUCLIDEAN':
        cost = euclid
    elif metric == 'CEIL_2D':
        def cost(i: int, j: int) -> float:
            return float(math.ceil(euclid(i, j)))
    elif metric in ('MAN_2D', 'MAN_3D'):
        def cost(i: int, j: int) -> float:
            return float(nint(sum(abs(a - b) for a, b in zip(rows[i], rows[j]))))
    elif metric in ('MAX_2D', 'MAX_3D'):
        def cost(i: int, j: int) -> float:
            return float(nint(max(abs(a - b) for a, b in zip(rows[i], rows[j]))))
    elif metric == 'ATT':
        def cost(i: int, j: int) -> float:
            (x1, y1), (x2, y2) = rows[i], rows[j]
            rij = math.sqrt(((x1 - x2) ** 2 + (y1 - y2) ** 2) / 10.0)
            tij = nint(rij)
            return float(tij + 1 if tij < rij else tij)
    else:
        def cost(i: int, j: int) -> float:
            if i == j:
                return 0.0
            (lat1, lon1), (lat2, lon2) = rows[i], rows[j]
            q1 = math.cos(lon1 - lon2)
            q2 = math.cos(lat1 - lat2)
            q3 = math.cos(lat1 + lat2)
            inner = max(-1.0, min(1.0, 0.5 * ((1.0 + q1) * q2 - (1.0 - q1) * q3)))
            return float(int(EARTH_RADIUS * math.acos(inner) + 1.0))

    return cost
