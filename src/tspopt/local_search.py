"""Neighbor-list 2-opt and Or-opt with don't-look bits.

Active cities sit in a FIFO queue with a membership flag per city (the
don't-look bit is the cleared flag). A city is popped, its moves are tried,
and it stays inactive unless an improving move touches it again. The search
ends at a local optimum (empty queue) or when the move/time budget runs out.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import List, Optional

from .budget import Budget
from .errors import InvalidParameterError, InvalidTourError
from .instance import Instance
from .neighbors import NeighborLists
from .tour import Tour

logger = logging.getLogger(__name__)

DEFAULT_EPSILON = 1e-7


@dataclass
class LocalSearchStats:
    moves: int = 0
    two_opt_moves: int = 0
    or_opt_moves: int = 0
    evaluations: int = 0
    interrupted: bool = False


class LocalSearch:
    """First-improvement local search restricted to neighbor-list candidates.

    2-opt needs symmetric costs (a reversal changes the cost of the reversed
    path otherwise) and is switched off for asymmetric instances; Or-opt then
    only inserts segments in their original direction.
    """

    def __init__(self, instance: Instance, neighbors: NeighborLists,
                 use_two_opt: bool = True, use_or_opt: bool = True, max_segment: int = 3,
                 epsilon: float = DEFAULT_EPSILON, budget: Optional[Budget] = None,
                 max_moves: Optional[int] = None):
        if len(neighbors) != instance.size():
            raise InvalidParameterError(
                f"Neighbor lists cover {len(neighbors)} cities, instance has {instance.size()}")
        if max_segment < 1:
            raise InvalidParameterError(f"max_segment must be >= 1, got {max_segment}")
        if epsilon < 0:
            raise InvalidParameterError(f"epsilon must be >= 0, got {epsilon}")
        if max_moves is not None and max_moves < 0:
            raise InvalidParameterError(f"max_moves must be >= 0, got {max_moves}")
        self.instance = instance
        self.neighbors = neighbors
        self.symmetric = instance.is_symmetric
        self.use_two_opt = use_two_opt and self.symmetric
        self.use_or_opt = use_or_opt
        self.max_segment = max_segment
        self.epsilon = epsilon
        self.budget = budget
        self.max_moves = max_moves
        self._cost = instance.lookup
        self._lists = [neighbors.neighbors(c) for c in range(instance.size())]

    def _stop(self, stats: LocalSearchStats) -> bool:
        if self.max_moves is not None and stats.moves >= self.max_moves:
            return True
        return self.budget is not None and self.budget.expired()

    def run(self, tour: Tour) -> LocalSearchStats:
        """Improve ``tour`` in place until no candidate move improves it."""
        n = tour.n
        if n != self.instance.size():
            raise InvalidTourError(f"Tour has {n} cities but the instance has {self.instance.size()}")
        stats = LocalSearchStats()
        if n < 4:
            return stats

        queue = deque(tour.order)
        active = bytearray(b'\x01') * n
        while queue:
            if self._stop(stats):
                stats.interrupted = True
                break
            c1 = queue.popleft()
            active[c1] = 0
            touched = None
            if self.use_two_opt:
                touched = self._two_opt(tour, c1, stats)
                if touched:
                    stats.two_opt_moves += 1
            if touched is None and self.use_or_opt:
                touched = self._or_opt(tour, c1, stats)
                if touched:
                    stats.or_opt_moves += 1
            if touched is None:
                continue
            stats.moves += 1
            for c in touched:
                if not active[c]:
                    active[c] = 1
                    queue.append(c)

        logger.debug("Local search: %d moves (%d 2-opt, %d or-opt), %d evaluations%s",
                     stats.moves, stats.two_opt_moves, stats.or_opt_moves, stats.evaluations,
                     ", interrupted" if stats.interrupted else "")
        return stats

    def _two_opt(self, tour: Tour, c1: int, stats: LocalSearchStats) -> Optional[List[int]]:
        cost, eps = self._cost, self.epsilon
        for succ_side in (True, False):
            c2 = tour.next(c1) if succ_side else tour.prev(c1)
            d12 = cost(c1, c2)
            for c3 in self._lists[c2]:
                d23 = cost(c2, c3)
                if d23 >= d12:
                    break
                # c4 sits on the side of c3 that keeps a single cycle
                c4 = tour.prev(c3) if succ_side else tour.next(c3)
                if c4 == c2 or c3 == c1:
                    continue
                stats.evaluations += 1
                delta = d23 + cost(c1, c4) - d12 - cost(c3, c4)
                if delta < -eps:
                    if succ_side:
                        tour.reverse_segment(c2, c4)
                    else:
                        tour.reverse_segment(c4, c2)
                    return [c1, c2, c3, c4]
        return None

    def _segments(self, tour: Tour, c1: int):
        """Segments of 1..max_segment cities starting or ending at ``c1``."""
        limit = min(self.max_segment, tour.n - 3)
        last = c1
        for length in range(1, limit + 1):
            if length > 1:
                last = tour.next(last)
            yield c1, last
        first = c1
        for length in range(2, limit + 1):
            first = tour.prev(first)
            yield first, c1

    def _or_opt(self, tour: Tour, c1: int, stats: LocalSearchStats) -> Optional[List[int]]:
        cost, eps = self._cost, self.epsilon
        for first, last in self._segments(tour, c1):
            p, nx = tour.prev(first), tour.next(last)
            removed = cost(p, first) + cost(last, nx) - cost(p, nx)
            if removed <= eps:
                continue
            for end in (first, last):
                for t in self._lists[end]:
                    if cost(end, t) >= removed:
                        break
                    if tour.between(first, t, last):
                        continue
                    # Insert with ``end`` next to t, on either side of t
                    for t_before in (True, False):
                        if t_before:
                            a, b = t, (nx if t == p else tour.next(t))
                            head = end
                        else:
                            a, b = (p if t == nx else tour.prev(t)), t
                            head = first if end == last else last
                        reverse = head != first
                        if reverse and not self.symmetric:
                            continue
                        tail = last if head == first else first
                        stats.evaluations += 1
                        delta = cost(a, head) + cost(tail, b) - cost(a, b) - removed
                        if delta < -eps:
                            if a == p:
                                tour.reverse_segment(first, last)
                            else:
                                tour.move_segment(first, last, a, reverse=reverse)
                            return [p, nx, first, last, a, b]
        return None


def improve(tour: Tour, instance: Instance, neighbors: NeighborLists, **kwargs) -> LocalSearchStats:
    """Run :class:`LocalSearch` on ``tour`` in place."""
    return LocalSearch(instance, neighbors, **kwargs).run(tour)
