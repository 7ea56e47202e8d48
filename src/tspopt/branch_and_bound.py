"""Depth-first branch-and-bound over Held-Karp 1-tree bounds."""
from __future__ import annotations

import logging
import math
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

import numpy as np

from .budget import Budget
from .errors import InfeasibleError, InvalidParameterError
from .instance import Instance
from .lower_bound import NODE_BETA, ROOT_BETA, Edge, OneTreeBound, held_karp_bound, normalize_edge
from .tour import Tour

logger = logging.getLogger(__name__)

DEFAULT_ROOT_ITERATIONS = 300
DEFAULT_NODE_ITERATIONS = 40


@dataclass
class SearchNode:
    included: FrozenSet[Edge]
    excluded: FrozenSet[Edge]
    penalties: Optional[np.ndarray] = None
    depth: int = 0
    parent: Optional['SearchNode'] = None
    bound: Optional[float] = None


@dataclass
class BranchStats:
    nodes_explored: int = 0
    nodes_pruned: int = 0
    infeasible_nodes: int = 0
    one_trees: int = 0
    incumbent_updates: int = 0
    max_depth: int = 0


@dataclass
class BranchAndBoundOutcome:
    tour: Optional[Tour]
    cost: float
    optimal: bool
    root_bound: Optional[float]
    stats: BranchStats = field(default_factory=BranchStats)


class Incumbent:
    """Best tour found so far. ``offer`` is an atomic compare-and-set."""

    def __init__(self):
        self._lock = threading.Lock()
        self.order: Optional[List[int]] = None
        self.cost = math.inf

    def offer(self, order: List[int], cost: float, epsilon: float = 0.0) -> bool:
        with self._lock:
            if cost < self.cost - epsilon:
                self.order = list(order)
                self.cost = cost
                return True
            return False

    def snapshot(self) -> Tuple[Optional[List[int]], float]:
        with self._lock:
            return (None if self.order is None else list(self.order)), self.cost


def order_from_edges(n: int, edges) -> List[int]:
    """City order of the Hamiltonian cycle given by ``edges``, starting at 0."""
    adj: Dict[int, List[int]] = defaultdict(list)
    for i, j in edges:
        adj[i].append(j)
        adj[j].append(i)
    order = [0]
    prev, cur = -1, 0
    for _ in range(n - 1):
        a, b = adj[cur]
        prev, cur = cur, (b if a == prev else a)
        order.append(cur)
    return order


def _walk(adj, start: int, came_from: int, target: int) -> Tuple[int, int, bool]:
    """Follow forced edges from ``start`` away from ``came_from``.

    Returns ``(end, cities, closed)`` where ``closed`` means the walk came
    back to ``target``.
    """
    prev, cur, count = came_from, start, 1
    while True:
        onward = [x for x in adj[cur] if x != prev]
        if not onward:
            return cur, count, False
        nxt = onward[0]
        if nxt == target:
            return cur, count, True
        prev, cur = cur, nxt
        count += 1


class BranchAndBound:
    """Exact search for symmetric instances.

    Nodes are kept on an explicit stack; the exclusion child is pushed last
    so it is explored first. The search stops early when the node budget or
    the time budget runs out, in which case the outcome is not optimal.
    """

    def __init__(self, instance: Instance, root_iterations: int = DEFAULT_ROOT_ITERATIONS,
                 node_iterations: int = DEFAULT_NODE_ITERATIONS, node_budget: Optional[int] = None,
                 epsilon: float = 1e-7, budget: Optional[Budget] = None):
        if not instance.is_symmetric:
            raise InvalidParameterError("Branch-and-bound requires a symmetric instance")
        if instance.size() < 3:
            raise InvalidParameterError(f"Branch-and-bound needs at least 3 cities, got {instance.size()}")
        if root_iterations < 1 or node_iterations < 1:
            raise InvalidParameterError("Subgradient iteration counts must be >= 1")
        if node_budget is not None and node_budget < 0:
            raise InvalidParameterError(f"node_budget must be >= 0, got {node_budget}")
        self.instance = instance
        self.n = instance.size()
        self.root_iterations = root_iterations
        self.node_iterations = node_iterations
        self.node_budget = node_budget
        self.epsilon = epsilon
        self.budget = budget if budget is not None else Budget()
        self.incumbent = Incumbent()
        self._costs = instance.matrix()
        self._integral = instance.is_integral

    @classmethod
    def from_config(cls, instance: Instance, config, budget: Optional[Budget] = None) -> 'BranchAndBound':
        return cls(instance, root_iterations=config.root_iterations,
                   node_iterations=config.node_iterations, node_budget=config.node_budget,
                   epsilon=config.epsilon, budget=budget)

    def _bound(self, node: SearchNode) -> OneTreeBound:
        root = node.depth == 0
        return held_karp_bound(
            self.instance, node.included, node.excluded, penalties=node.penalties,
            upper_bound=self.incumbent.cost,
            max_iterations=self.root_iterations if root else self.node_iterations,
            beta=ROOT_BETA if root else NODE_BETA, integral=self._integral, costs=self._costs)

    def _branch_edge(self, bound: OneTreeBound, node: SearchNode) -> Edge:
        degrees = bound.degrees
        city = max(range(self.n), key=lambda c: (degrees[c], -c))
        pi = bound.penalties
        best, best_cost = None, -math.inf
        for edge in sorted(bound.edges):
            if city not in edge or edge in node.included:
                continue
            i, j = edge
            modified = self._costs[i, j] + pi[i] + pi[j]
            if modified > best_cost:
                best, best_cost = edge, modified
        return best

    def _include_child(self, node: SearchNode, edge: Edge, penalties) -> Optional[SearchNode]:
        included = node.included | {edge}
        adj: Dict[int, List[int]] = defaultdict(list)
        for a, b in included:
            adj[a].append(b)
            adj[b].append(a)
        i, j = edge
        if len(adj[i]) > 2 or len(adj[j]) > 2:
            return None

        excluded = set(node.excluded)
        end_i, count_i, closed = _walk(adj, i, j, j)
        if closed:
            if count_i + 1 < self.n:
                return None
        else:
            end_j, count_j, _ = _walk(adj, j, i, i)
            if count_i + count_j >= 3 and count_i + count_j < self.n:
                excluded.add(normalize_edge(end_i, end_j))

        for city in (i, j):
            if len(adj[city]) == 2:
                for other in range(self.n):
                    e = normalize_edge(city, other)
                    if other != city and e not in included:
                        excluded.add(e)
        return SearchNode(frozenset(included), frozenset(excluded), penalties,
                          node.depth + 1, node)

    def run(self, initial_tour: Optional[Tour] = None) -> BranchAndBoundOutcome:
        stats = BranchStats()
        if initial_tour is not None:
            self.incumbent.offer(initial_tour.to_order(), initial_tour.total_cost(self.instance))
        root_bound = None
        complete = True
        stack = [SearchNode(frozenset(), frozenset())]

        while stack:
            if self.budget.expired() or (self.node_budget is not None
                                         and stats.nodes_explored >= self.node_budget):
                complete = False
                break
            node = stack.pop()
            stats.nodes_explored += 1
            stats.max_depth = max(stats.max_depth, node.depth)
            try:
                bound = self._bound(node)
            except InfeasibleError as e:
                logger.debug("Infeasible node at depth %d: %s", node.depth, e)
                stats.infeasible_nodes += 1
                continue
            stats.one_trees += bound.iterations
            node.bound = bound.value
            if node.depth == 0:
                root_bound = bound.value
                logger.debug("Root bound %.6g (incumbent %.6g)", bound.value, self.incumbent.cost)

            if bound.is_tour:
                if self.incumbent.offer(order_from_edges(self.n, bound.edges), bound.tour_cost, self.epsilon):
                    stats.incumbent_updates += 1
                    logger.debug("New incumbent %.6g at depth %d", bound.tour_cost, node.depth)
                continue
            if bound.value >= self.incumbent.cost - self.epsilon:
                stats.nodes_pruned += 1
                continue

            edge = self._branch_edge(bound, node)
            include = self._include_child(node, edge, bound.penalties)
            if include is not None:
                stack.append(include)
            stack.append(SearchNode(node.included, node.excluded | {edge}, bound.penalties,
                                    node.depth + 1, node))
            # Children carry their own penalty copies
            node.penalties = None

        order, cost = self.incumbent.snapshot()
        tour = Tour.from_order(order) if order is not None else None
        optimal = complete and tour is not None
        logger.info("Branch-and-bound %s: %d nodes, %d pruned, %d infeasible, cost %.6g",
                    'complete' if complete else 'stopped', stats.nodes_explored,
                    stats.nodes_pruned, stats.infeasible_nodes, cost)
        return BranchAndBoundOutcome(tour, cost, optimal, root_bound, stats)
