"""Solver entry point: heuristic or exact tour optimisation for one instance."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import List, Optional, Union

from .branch_and_bound import DEFAULT_NODE_ITERATIONS, DEFAULT_ROOT_ITERATIONS, BranchAndBound
from .budget import Budget
from .construction import greedy_edge, nearest_neighbor
from .errors import ConstructionError, InvalidParameterError
from .instance import Instance
from .local_search import DEFAULT_EPSILON, LocalSearch
from .neighbors import NeighborLists
from .tour import Tour

logger = logging.getLogger(__name__)

# Exact solves above this size are allowed but may take very long
EXACT_SIZE_WARNING = 60


class Mode(Enum):
    HEURISTIC = 'heuristic'
    EXACT = 'exact'


class Status(Enum):
    OPTIMAL = 'optimal'
    BOUNDED_SUBOPTIMAL = 'bounded_suboptimal'
    FEASIBLE = 'feasible'


class Construction(Enum):
    NEAREST_NEIGHBOR = 'nearest_neighbor'
    GREEDY_EDGE = 'greedy_edge'

    @classmethod
    def _missing_(cls, value):
        aliases = {'nearest': cls.NEAREST_NEIGHBOR, 'nn': cls.NEAREST_NEIGHBOR,
                   'greedy': cls.GREEDY_EDGE, 'ge': cls.GREEDY_EDGE}
        if isinstance(value, str):
            return aliases.get(value.lower().replace('-', '_'))
        return None


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value.lower() if isinstance(value, str) else value)
    except ValueError:
        choices = ', '.join(m.value for m in enum_cls)
        raise InvalidParameterError(f"Unknown {enum_cls.__name__.lower()} {value!r} (expected one of: {choices})") from None


@dataclass
class SolverConfig:
    construction: Union[Construction, str] = Construction.NEAREST_NEIGHBOR
    neighbor_list_size: int = 10
    time_budget: Optional[float] = None
    node_budget: Optional[int] = None
    move_budget: Optional[int] = None
    start_city: int = 0
    use_or_opt: bool = True
    max_segment: int = 3
    epsilon: float = DEFAULT_EPSILON
    root_iterations: int = DEFAULT_ROOT_ITERATIONS
    node_iterations: int = DEFAULT_NODE_ITERATIONS

    def __post_init__(self):
        self.construction = _coerce(Construction, self.construction)
        if self.neighbor_list_size < 1:
            raise InvalidParameterError(f"neighbor_list_size must be >= 1, got {self.neighbor_list_size}")
        if self.time_budget is not None and self.time_budget < 0:
            raise InvalidParameterError(f"time_budget must be >= 0, got {self.time_budget}")
        for name in ('node_budget', 'move_budget'):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidParameterError(f"{name} must be >= 0, got {value}")
        if self.start_city < 0:
            raise InvalidParameterError(f"start_city must be >= 0, got {self.start_city}")
        if self.max_segment < 1:
            raise InvalidParameterError(f"max_segment must be >= 1, got {self.max_segment}")
        if self.epsilon < 0:
            raise InvalidParameterError(f"epsilon must be >= 0, got {self.epsilon}")
        if self.root_iterations < 1 or self.node_iterations < 1:
            raise InvalidParameterError("root_iterations and node_iterations must be >= 1")


@dataclass
class SearchStats:
    nodes_explored: int = 0
    nodes_pruned: int = 0
    infeasible_nodes: int = 0
    one_trees: int = 0
    moves_applied: int = 0
    two_opt_moves: int = 0
    or_opt_moves: int = 0
    construction_time: float = 0.0
    improvement_time: float = 0.0
    search_time: float = 0.0
    elapsed: float = 0.0


@dataclass
class TourResult:
    tour: List[int]
    cost: float
    status: Status
    method: str
    lower_bound: Optional[float] = None
    stats: SearchStats = field(default_factory=SearchStats)
    instance_name: str = ''

    @property
    def gap(self) -> Optional[float]:
        """Relative gap between cost and lower bound, None without a bound."""
        if self.lower_bound is None:
            return None
        if self.cost == 0:
            return 0.0
        return max(0.0, (self.cost - self.lower_bound) / self.cost)

    def to_dict(self) -> dict:
        out = {
            'instance': self.instance_name,
            'n': len(self.tour),
            'cost': self.cost,
            'status': self.status.value,
            'method': self.method,
            'lower_bound': self.lower_bound,
            'gap': self.gap,
            'tour': list(self.tour),
        }
        out.update(asdict(self.stats))
        return out


class Solver:
    """Runs the configured pipeline on an instance.

    Heuristic mode builds a tour and improves it with 2-opt / Or-opt. Exact
    mode uses that tour as the first incumbent of a branch-and-bound search.
    """

    def __init__(self, config: Optional[SolverConfig] = None):
        self.config = config if config is not None else SolverConfig()

    def solve(self, instance: Instance, mode: Union[Mode, str] = Mode.HEURISTIC,
              cancel_event: Optional[threading.Event] = None) -> TourResult:
        mode = _coerce(Mode, mode)
        cfg = self.config
        n = instance.size()
        if mode is Mode.EXACT and not instance.is_symmetric:
            raise InvalidParameterError("Exact mode supports symmetric instances only")
        if cfg.start_city >= n:
            raise InvalidParameterError(f"start_city {cfg.start_city} out of range for n={n}")

        budget = Budget(cfg.time_budget, cancel_event)
        if n <= 3:
            return self._trivial(instance, budget)
        if mode is Mode.EXACT and n > EXACT_SIZE_WARNING:
            logger.warning("Exact solve of %d cities may not finish in reasonable time", n)

        stats = SearchStats()
        tour, method = self._heuristic(instance, budget, stats)
        if mode is Mode.HEURISTIC:
            cost = tour.total_cost(instance)
            stats.elapsed = budget.elapsed()
            logger.info("%s: %s cost=%.6g in %.3fs", instance.name or 'instance', method, cost, stats.elapsed)
            return TourResult(tour.to_order(), cost, Status.FEASIBLE, method, None, stats, instance.name)

        t0 = time.perf_counter()
        bnb = BranchAndBound.from_config(instance, cfg, budget)
        outcome = bnb.run(tour)
        stats.search_time = time.perf_counter() - t0
        stats.nodes_explored = outcome.stats.nodes_explored
        stats.nodes_pruned = outcome.stats.nodes_pruned
        stats.infeasible_nodes = outcome.stats.infeasible_nodes
        stats.one_trees = outcome.stats.one_trees
        stats.elapsed = budget.elapsed()

        best = outcome.tour
        cost = best.total_cost(instance)
        if outcome.optimal:
            status, lower = Status.OPTIMAL, cost
        else:
            status, lower = Status.BOUNDED_SUBOPTIMAL, outcome.root_bound
            if lower is not None:
                lower = min(lower, cost)
        logger.info("%s: exact %s cost=%.6g bound=%s in %.3fs", instance.name or 'instance',
                    status.value, cost, lower, stats.elapsed)
        return TourResult(best.to_order(), cost, status, method + '+branch_and_bound',
                          lower, stats, instance.name)

    def _trivial(self, instance: Instance, budget: Budget) -> TourResult:
        n = instance.size()
        order = list(range(n))
        if n == 3 and not instance.is_symmetric:
            backward = [0, 2, 1]
            if Tour.from_order(backward).total_cost(instance) < Tour.from_order(order).total_cost(instance):
                order = backward
        cost = Tour.from_order(order).total_cost(instance)
        stats = SearchStats(elapsed=budget.elapsed())
        return TourResult(order, cost, Status.OPTIMAL, 'trivial', cost, stats, instance.name)

    def _construct(self, instance: Instance, neighbors: NeighborLists) -> Tour:
        cfg = self.config
        if cfg.construction is Construction.NEAREST_NEIGHBOR:
            return nearest_neighbor(instance, neighbors, start=cfg.start_city)
        try:
            return greedy_edge(instance, neighbors)
        except ConstructionError as e:
            logger.warning("%s; retrying greedy edge with full candidate lists", e)
            return greedy_edge(instance, NeighborLists.full(instance))

    def _heuristic(self, instance: Instance, budget: Budget, stats: SearchStats):
        cfg = self.config
        n = instance.size()
        t0 = time.perf_counter()
        neighbors = NeighborLists.build(instance, min(cfg.neighbor_list_size, n - 1))
        tour = self._construct(instance, neighbors)
        t1 = time.perf_counter()
        stats.construction_time = t1 - t0
        logger.debug("Construction %s: cost %.6g", cfg.construction.value, tour.total_cost(instance))

        search = LocalSearch(instance, neighbors, use_or_opt=cfg.use_or_opt,
                             max_segment=cfg.max_segment, epsilon=cfg.epsilon,
                             budget=budget, max_moves=cfg.move_budget)
        ls = search.run(tour)
        stats.improvement_time = time.perf_counter() - t1
        stats.moves_applied = ls.moves
        stats.two_opt_moves = ls.two_opt_moves
        stats.or_opt_moves = ls.or_opt_moves

        parts = [cfg.construction.value]
        if search.use_two_opt:
            parts.append('2opt')
        if search.use_or_opt:
            parts.append('oropt')
        return tour, '+'.join(parts)


def solve(instance: Instance, mode: Union[Mode, str] = Mode.HEURISTIC,
          config: Optional[SolverConfig] = None,
          cancel_event: Optional[threading.Event] = None) -> TourResult:
    """Solve ``instance`` with a one-off :class:`Solver`."""
    return Solver(config).solve(instance, mode, cancel_event)
