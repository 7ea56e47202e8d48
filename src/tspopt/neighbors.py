"""Candidate neighbor lists: the k cheapest other cities of every city."""
from __future__ import annotations

from typing import Tuple

import numpy as np

from .errors import InvalidParameterError
from .instance import Instance


class NeighborLists:
    """Per-city candidate lists, ascending by cost with ties broken by lower index."""

    def __init__(self, table: np.ndarray):
        table = np.asarray(table, dtype=np.int64)
        table.setflags(write=False)
        self._table = table
        self._lists: Tuple[Tuple[int, ...], ...] = tuple(tuple(row) for row in table.tolist())

    @classmethod
    def build(cls, instance: Instance, k: int) -> 'NeighborLists':
        n = instance.size()
        if k < 1 or k >= n:
            raise InvalidParameterError(f"Neighbor list size must satisfy 1 <= k < n (k={k}, n={n})")
        table = np.empty((n, k), dtype=np.int64)
        idx = np.arange(n)
        for i in range(n):
            row = np.array(instance.row(i), dtype=float)
            # lexsort: last key is primary -> cost first, then index
            order = np.lexsort((idx, row))
            order = order[order != i]
            table[i] = order[:k]
        return cls(table)

    @classmethod
    def full(cls, instance: Instance) -> 'NeighborLists':
        return cls.build(instance, instance.size() - 1)

    @property
    def k(self) -> int:
        return self._table.shape[1]

    @property
    def table(self) -> np.ndarray:
        return self._table

    def neighbors(self, city: int) -> Tuple[int, ...]:
        return self._lists[city]

    __getitem__ = neighbors

    def __len__(self) -> int:
        return len(self._lists)

    def candidate_edges(self, instance: Instance):
        """Undirected candidate edges ``(cost, i, j)`` with ``i < j``, deduplicated and sorted."""
        seen = set()
        edges = []
        symmetric = instance.is_symmetric
        for i, row in enumerate(self._lists):
            for j in row:
                a, b = (i, j) if i < j else (j, i)
                if (a, b) in seen:
                    continue
                seen.add((a, b))
                if symmetric:
                    w = instance.lookup(a, b)
                else:
                    w = 0.5 * (instance.lookup(a, b) + instance.lookup(b, a))
                edges.append((w, a, b))
        edges.sort()
        return edges
