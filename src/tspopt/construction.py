"""Construction heuristics: nearest neighbor and greedy edge."""
from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from .errors import ConstructionError, InvalidParameterError
from .instance import Instance
from .neighbors import NeighborLists
from .tour import Tour

logger = logging.getLogger(__name__)


class UnionFind:
    """Disjoint sets with path halving and union by size."""

    def __init__(self, n: int):
        self.parent = list(range(n))
        self.size = [1] * n

    def find(self, x: int) -> int:
        parent = self.parent
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    def union(self, a: int, b: int) -> bool:
        """Merge the sets of ``a`` and ``b``; False if they were already joined."""
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        if self.size[ra] < self.size[rb]:
            ra, rb = rb, ra
        self.parent[rb] = ra
        self.size[ra] += self.size[rb]
        return True


def _nearest_unvisited(instance: Instance, current: int, visited: np.ndarray) -> int:
    if instance.is_dense:
        row = np.where(visited, np.inf, instance.matrix()[current])
        return int(np.argmin(row))
    cost = instance.lookup
    best, best_cost = -1, float('inf')
    for j in np.flatnonzero(~visited).tolist():
        c = cost(current, j)
        if c < best_cost:
            best, best_cost = j, c
    return best


def nearest_neighbor(instance: Instance, neighbors: Optional[NeighborLists] = None,
                     start: int = 0) -> Tour:
    """Nearest-neighbor tour from ``start``.

    Neighbor lists are tried first; when every listed city is already visited
    the remaining cities are scanned. Ties go to the lower city index.
    """
    n = instance.size()
    if not 0 <= start < n:
        raise InvalidParameterError(f"Start city {start} out of range for n={n}")
    visited = np.zeros(n, dtype=bool)
    visited[start] = True
    order = [start]
    current = start
    scans = 0
    for _ in range(n - 1):
        nxt = -1
        if neighbors is not None:
            for c in neighbors.neighbors(current):
                if not visited[c]:
                    nxt = c
                    break
        if nxt < 0:
            nxt = _nearest_unvisited(instance, current, visited)
            scans += 1
        visited[nxt] = True
        order.append(nxt)
        current = nxt
    logger.debug("Nearest neighbor from %d: %d full scans", start, scans)
    return Tour.from_order(order)


def _pair_cost(instance: Instance, a: int, b: int) -> float:
    if instance.is_symmetric:
        return instance.lookup(a, b)
    return 0.5 * (instance.lookup(a, b) + instance.lookup(b, a))


def _orient(instance: Instance, order: List[int]) -> List[int]:
    """Pick the cheaper direction of a cycle (only differs for asymmetric costs)."""
    if instance.is_symmetric or len(order) < 3:
        return order
    backward = [order[0]] + order[:0:-1]
    forward_tour = Tour.from_order(order)
    if Tour.from_order(backward).total_cost(instance) < forward_tour.total_cost(instance):
        return backward
    return order


def greedy_edge(instance: Instance, neighbors: NeighborLists,
                complete_fragments: bool = False) -> Tour:
    """Greedy-edge tour over the neighbor-list candidate edges.

    Edges are taken cheapest first while both endpoints have degree < 2 and a
    union-find confirms they join two different fragments, so no sub-cycle can
    close before the final edge. Raises ConstructionError when the candidates
    run out before a Hamiltonian path is formed, unless ``complete_fragments``
    asks for the leftover fragments to be joined cheapest endpoint pair first.
    """
    n = instance.size()
    if n < 3:
        return Tour.from_order(range(n))
    if len(neighbors) != n:
        raise InvalidParameterError(f"Neighbor lists cover {len(neighbors)} cities, instance has {n}")

    degree = [0] * n
    adj: List[List[int]] = [[] for _ in range(n)]
    uf = UnionFind(n)
    chosen = 0

    def take(edges) -> int:
        added = 0
        for _, a, b in edges:
            if chosen + added == n - 1:
                break
            if degree[a] >= 2 or degree[b] >= 2:
                continue
            if not uf.union(a, b):
                continue
            adj[a].append(b)
            adj[b].append(a)
            degree[a] += 1
            degree[b] += 1
            added += 1
        return added

    chosen += take(neighbors.candidate_edges(instance))

    if chosen < n - 1:
        if not complete_fragments:
            raise ConstructionError(
                f"Greedy edge placed only {chosen} of {n - 1} path edges from "
                f"{neighbors.k}-nearest candidates")
        ends = [c for c in range(n) if degree[c] < 2]
        logger.debug("Greedy edge: joining %d fragment endpoints", len(ends))
        pairs = sorted((_pair_cost(instance, a, b), a, b)
                       for idx, a in enumerate(ends) for b in ends[idx + 1:])
        chosen += take(pairs)

    if chosen != n - 1:
        raise ConstructionError(f"Greedy edge ended with {chosen} path edges for n={n}")

    # Walk the Hamiltonian path from one end; the closing edge joins its two ends
    start = next(c for c in range(n) if degree[c] == 1)
    order = [start]
    prev, cur = -1, start
    while len(order) < n:
        nxt = adj[cur][0] if adj[cur][0] != prev else adj[cur][1]
        order.append(nxt)
        prev, cur = cur, nxt
    return Tour.from_order(_orient(instance, order))
