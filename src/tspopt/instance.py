"""Immutable cost model over the cities ``0 .. n-1``."""
from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from .errors import InvalidInstanceError, OutOfRangeError
from .metrics import distance_matrix, pair_cost_function

logger = logging.getLogger(__name__)

# Coordinate instances up to this size are materialised as a dense matrix
DENSE_LIMIT = 2000


class Instance:
    """A TSP instance: ``n`` cities and a non-negative cost for every ordered pair.

    Backed either by a dense read-only matrix or by a pair function evaluated
    on demand. Nothing is mutated after construction, so an instance can be
    shared between threads without locking.
    """

    def __init__(self, n: int, matrix: Optional[np.ndarray] = None,
                 cost_fn: Optional[Callable[[int, int], float]] = None,
                 symmetric: Optional[bool] = None, integral: Optional[bool] = None,
                 name: str = ''):
        if (matrix is None) == (cost_fn is None):
            raise InvalidInstanceError("Provide exactly one of a cost matrix or a cost function")
        if n < 1:
            raise InvalidInstanceError(f"Instance needs at least one city, got n={n}")
        self.n = int(n)
        self.name = name
        self._fn = cost_fn
        self._matrix = None
        self._rows = None
        if matrix is not None:
            self._matrix = self._validate_matrix(matrix, self.n)
            # Nested lists index several times faster than numpy scalars
            self._rows = self._matrix.tolist()
            if symmetric is None:
                symmetric = bool(np.array_equal(self._matrix, self._matrix.T))
            if integral is None:
                integral = bool(np.all(self._matrix == np.round(self._matrix)))
        self._symmetric = bool(symmetric) if symmetric is not None else True
        self._integral = bool(integral) if integral is not None else False

    @staticmethod
    def _validate_matrix(matrix, n: int) -> np.ndarray:
        arr = np.array(matrix, dtype=float)
        if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
            raise InvalidInstanceError(f"Cost matrix must be square, got shape {arr.shape}")
        if arr.shape[0] != n:
            raise InvalidInstanceError(f"Cost matrix has {arr.shape[0]} rows but n={n}")
        if not np.all(np.isfinite(arr)):
            raise InvalidInstanceError("Cost matrix contains NaN or infinite values")
        if np.any(arr < 0):
            raise InvalidInstanceError("Cost matrix contains negative values")
        if np.any(np.diag(arr) != 0):
            raise InvalidInstanceError("Cost matrix diagonal must be zero")
        arr.setflags(write=False)
        return arr

    # -- constructors -------------------------------------------------------

    @classmethod
    def from_matrix(cls, matrix, name: str = '') -> 'Instance':
        try:
            arr = np.asarray(matrix, dtype=float)
        except (TypeError, ValueError) as e:
            raise InvalidInstanceError(f"Cost matrix is not numeric: {e}") from e
        if arr.ndim != 2:
            raise InvalidInstanceError(f"Cost matrix must be square, got shape {arr.shape}")
        return cls(arr.shape[0], matrix=arr, name=name)

    @classmethod
    def from_coordinates(cls, coords, metric: str = 'EUC_2D', dense: Optional[bool] = None,
                         name: str = '') -> 'Instance':
        """Instance from city coordinates under a TSPLIB metric (all metrics are symmetric)."""
        n = len(coords)
        if dense is None:
            dense = n <= DENSE_LIMIT
        integral = metric != 'EUCLIDEAN'
        if dense:
            return cls(n, matrix=distance_matrix(coords, metric), symmetric=True,
                       integral=integral, name=name)
        logger.debug("Using lazy %s costs for %d cities", metric, n)
        return cls(n, cost_fn=pair_cost_function(coords, metric), symmetric=True,
                   integral=integral, name=name)

    @classmethod
    def from_function(cls, n: int, fn: Callable[[int, int], float], symmetric: bool = True,
                      integral: bool = False, name: str = '') -> 'Instance':
        """Instance backed by an arbitrary pair function. The caller vouches for its contract."""
        return cls(n, cost_fn=fn, symmetric=symmetric, integral=integral, name=name)

    # -- queries ------------------------------------------------------------

    def size(self) -> int:
        return self.n

    def __len__(self) -> int:
        return self.n

    @property
    def is_symmetric(self) -> bool:
        return self._symmetric

    @property
    def is_integral(self) -> bool:
        return self._integral

    @property
    def is_dense(self) -> bool:
        return self._matrix is not None

    def cost(self, i: int, j: int) -> float:
        """Travel cost from ``i`` to ``j``."""
        n = self.n
        if not (0 <= i < n and 0 <= j < n):
            raise OutOfRangeError(f"City index out of range for n={n}: ({i}, {j})")
        return self.lookup(i, j)

    def lookup(self, i: int, j: int) -> float:
        """Unchecked cost lookup for inner loops."""
        if self._rows is not None:
            return self._rows[i][j]
        if i == j:
            return 0.0
        value = self._fn(i, j)
        if not (0.0 <= value < float('inf')):
            raise InvalidInstanceError(f"Cost function returned {value!r} for ({i}, {j})")
        return value

    def matrix(self) -> np.ndarray:
        """Dense ``(n, n)`` cost matrix (read-only; built on demand for lazy instances)."""
        if self._matrix is not None:
            return self._matrix
        n = self.n
        out = np.empty((n, n), dtype=float)
        for i in range(n):
            for j in range(n):
                out[i, j] = self.lookup(i, j)
        out.setflags(write=False)
        return out

    def row(self, i: int) -> np.ndarray:
        """Costs from ``i`` to every city as a float array."""
        if self._matrix is not None:
            return self._matrix[i]
        return np.array([self.lookup(i, j) for j in range(self.n)], dtype=float)

    def __repr__(self) -> str:
        kind = 'dense' if self.is_dense else 'lazy'
        sym = 'sym' if self._symmetric else 'asym'
        label = f"{self.name!r}, " if self.name else ''
        return f"Instance({label}n={self.n}, {kind}, {sym})"
