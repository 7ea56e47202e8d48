"""Held-Karp lower bound: minimum 1-trees with Lagrangian node penalties.

A 1-tree is a spanning tree on every city except a special one (the last
city), plus the two cheapest edges joining the special city to the tree.
Every tour is a 1-tree, so a minimum 1-tree bounds the optimal tour from
below. Node penalties ``pi`` turn edge costs into ``c_ij + pi_i + pi_j``; the
value ``w(T) - 2 * sum(pi)`` is still a lower bound for any ``pi``, and
subgradient ascent on ``pi`` (raising it where the 1-tree degree exceeds two)
pushes the bound toward the Held-Karp value and the tree toward a tour.

Forced-included edges are given priority in the tree and forced-excluded
edges are never used. ``InfeasibleError`` means no 1-tree satisfies the
constraints.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .errors import InfeasibleError, InvalidParameterError, OutOfRangeError
from .instance import Instance

Edge = Tuple[int, int]

INITIAL_ALPHA = 2.0
ROOT_BETA = 0.99
NODE_BETA = 0.9
# Rounding slack when lifting a bound to the next integer
INTEGRAL_SLACK = 1e-6


def normalize_edge(i: int, j: int) -> Edge:
    return (i, j) if i < j else (j, i)


@dataclass
class OneTreeBound:
    """Result of a bound computation.

    ``edges``, ``degrees`` and ``penalties`` describe the 1-tree that produced
    the best bound. ``value`` is rounded up when all costs are integral.
    """
    value: float
    edges: List[Edge]
    degrees: List[int]
    penalties: np.ndarray
    is_tour: bool
    tour_cost: Optional[float]
    iterations: int


def _edge_masks(n: int, included: Iterable[Edge], excluded: Iterable[Edge]):
    inc = np.zeros((n, n), dtype=bool)
    exc = np.zeros((n, n), dtype=bool)
    for mask, edges in ((inc, included), (exc, excluded)):
        for i, j in edges:
            if not (0 <= i < n and 0 <= j < n):
                raise OutOfRangeError(f"Edge ({i}, {j}) out of range for n={n}")
            if i == j:
                raise InvalidParameterError(f"Self-loop ({i}, {j}) cannot be constrained")
            mask[i, j] = mask[j, i] = True
    if np.any(inc & exc):
        raise InfeasibleError("An edge is both forced and excluded")
    forced_degree = inc.sum(axis=1)
    if np.any(forced_degree > 2):
        raise InfeasibleError(f"City {int(np.argmax(forced_degree))} has more than two forced edges")
    np.fill_diagonal(exc, True)
    return inc, exc


def min_one_tree(weights: np.ndarray, included: np.ndarray, excluded: np.ndarray):
    """Minimum 1-tree under ``weights`` honouring the forced/excluded masks.

    Returns ``(edges, total_weight)``. Raises InfeasibleError when a city is
    unreachable, forced edges close a cycle, or the special city cannot get
    two edges.
    """
    n = weights.shape[0]
    special = n - 1
    m = n - 1
    finite = np.abs(weights[np.isfinite(weights)])
    offset = 2.0 * (float(finite.max()) if finite.size else 0.0) + 1.0

    # Selection weights: forced edges below everything, excluded edges unusable
    select = np.where(included, weights - offset, weights)
    select = np.where(excluded, np.inf, select)
    sub = select[:m, :m]

    edges: List[Edge] = []
    total = 0.0
    in_tree = np.zeros(m, dtype=bool)
    in_tree[0] = True
    key = sub[0].copy()
    parent = np.zeros(m, dtype=np.int64)
    for _ in range(m - 1):
        masked = np.where(in_tree, np.inf, key)
        v = int(np.argmin(masked))
        if not np.isfinite(masked[v]):
            raise InfeasibleError("Excluded edges disconnect the cities")
        in_tree[v] = True
        u = int(parent[v])
        edges.append(normalize_edge(u, v))
        total += weights[u, v]
        row = sub[v]
        better = (~in_tree) & (row < key)
        key[better] = row[better]
        parent[better] = v

    # Every forced edge among the tree cities must have made it into the tree
    forced_sub = np.argwhere(np.triu(included[:m, :m], 1))
    if len(forced_sub):
        chosen = set(edges)
        for i, j in forced_sub.tolist():
            if (i, j) not in chosen:
                raise InfeasibleError(f"Forced edges close a cycle through ({i}, {j})")

    forced = np.flatnonzero(included[special, :m]).tolist()
    allowed = np.flatnonzero(~excluded[special, :m])
    free = [j for j in allowed.tolist() if j not in forced]
    free.sort(key=lambda j: (weights[special, j], j))
    attach = (forced + free)[:2]
    if len(attach) < 2:
        raise InfeasibleError(f"Special city {special} has fewer than two admissible edges")
    for j in attach:
        edges.append(normalize_edge(j, special))
        total += weights[special, j]
    return edges, total


def _degrees(n: int, edges: List[Edge]) -> np.ndarray:
    flat = np.array(edges, dtype=np.int64).ravel()
    return np.bincount(flat, minlength=n)


def held_karp_bound(instance: Instance, included: Iterable[Edge] = (), excluded: Iterable[Edge] = (),
                    penalties: Optional[np.ndarray] = None, upper_bound: float = math.inf,
                    max_iterations: int = 100, alpha: float = INITIAL_ALPHA, beta: float = ROOT_BETA,
                    integral: Optional[bool] = None, costs: Optional[np.ndarray] = None) -> OneTreeBound:
    """Subgradient-optimised 1-tree bound for ``instance`` under edge constraints.

    Stops after ``max_iterations`` 1-trees, when the step size vanishes, when
    a 1-tree is a tour, or as soon as the bound reaches ``upper_bound``.
    """
    if not instance.is_symmetric:
        raise InvalidParameterError("The 1-tree bound requires a symmetric instance")
    n = instance.size()
    if n < 3:
        raise InvalidParameterError(f"The 1-tree bound needs at least 3 cities, got {n}")
    if max_iterations < 1:
        raise InvalidParameterError(f"max_iterations must be >= 1, got {max_iterations}")
    if integral is None:
        integral = instance.is_integral
    cost = instance.matrix() if costs is None else costs
    inc, exc = _edge_masks(n, included, excluded)

    pi = np.zeros(n) if penalties is None else np.array(penalties, dtype=float)
    best_value = -math.inf
    best_edges: List[Edge] = []
    best_degrees = None
    best_pi = pi
    iterations = 0

    while True:
        weights = cost + pi[:, None] + pi[None, :]
        edges, total = min_one_tree(weights, inc, exc)
        iterations += 1
        value = total - 2.0 * float(pi.sum())
        degrees = _degrees(n, edges)

        if value > best_value:
            best_value, best_edges, best_degrees, best_pi = value, edges, degrees, pi.copy()

        if np.all(degrees == 2):
            tour_cost = float(sum(cost[i, j] for i, j in edges))
            return OneTreeBound(tour_cost, edges, degrees.tolist(), pi.copy(), True, tour_cost, iterations)

        if value >= upper_bound or iterations >= max_iterations:
            break

        subgradient = degrees - 2
        norm = float(np.dot(subgradient, subgradient))
        target = upper_bound if math.isfinite(upper_bound) else value + 0.01 * abs(value) + 1.0
        step = alpha * (target - value) / norm
        if step <= 1e-9 * max(1.0, abs(value)):
            break
        pi = pi + step * subgradient
        alpha *= beta

    bound = best_value
    if integral:
        bound = float(math.ceil(bound - INTEGRAL_SLACK))
    return OneTreeBound(bound, best_edges, best_degrees.tolist(), best_pi, False, None, iterations)


def one_tree_bound(instance: Instance) -> float:
    """Plain minimum 1-tree cost, without penalty adjustment."""
    return held_karp_bound(instance, max_iterations=1, integral=False).value
