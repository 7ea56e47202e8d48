"""Array-based tour with a position index.

The tour is stored as ``order`` (city at each position) and ``pos`` (position
of each city). Reversals and segment moves rewrite only the shorter of the two
equivalent position ranges, so a reversal costs O(min(len, n - len)).
"""
from __future__ import annotations

import operator
from typing import Iterable, Iterator, List, Optional, Tuple

from .errors import InvalidTourError, OutOfRangeError


class Tour:
    """A Hamiltonian cycle over cities ``0 .. n-1``."""

    __slots__ = ('order', 'pos', 'n')

    def __init__(self, order: List[int], pos: List[int]):
        self.order = order
        self.pos = pos
        self.n = len(order)

    @classmethod
    def from_order(cls, sequence: Iterable[int]) -> 'Tour':
        order = list(sequence)
        n = len(order)
        if n == 0:
            raise InvalidTourError("A tour needs at least one city")
        pos = [-1] * n
        for p, city in enumerate(order):
            try:
                city = operator.index(city)
            except TypeError:
                raise InvalidTourError(f"Tour entries must be integers, got {city!r}") from None
            if not 0 <= city < n:
                raise InvalidTourError(f"City {city} out of range for a tour of {n} cities")
            if pos[city] != -1:
                raise InvalidTourError(f"City {city} appears more than once")
            pos[city] = p
            order[p] = city
        return cls(order, pos)

    def _check(self, city: int) -> None:
        if not 0 <= city < self.n:
            raise OutOfRangeError(f"City {city} out of range for a tour of {self.n} cities")

    # -- traversal ----------------------------------------------------------

    def successor(self, city: int) -> int:
        self._check(city)
        p = self.pos[city] + 1
        return self.order[p if p < self.n else 0]

    def predecessor(self, city: int) -> int:
        self._check(city)
        return self.order[self.pos[city] - 1]

    def position(self, city: int) -> int:
        self._check(city)
        return self.pos[city]

    def next(self, city: int) -> int:
        """Unchecked successor."""
        p = self.pos[city] + 1
        return self.order[p if p < self.n else 0]

    def prev(self, city: int) -> int:
        """Unchecked predecessor."""
        return self.order[self.pos[city] - 1]

    def path_length(self, a: int, b: int) -> int:
        """Number of cities on the forward path from ``a`` to ``b`` inclusive."""
        return (self.pos[b] - self.pos[a]) % self.n + 1

    def between(self, a: int, b: int, c: int) -> bool:
        """True if ``b`` lies on the forward path from ``a`` to ``c``."""
        pa, pb, pc = self.pos[a], self.pos[b], self.pos[c]
        if pa <= pc:
            return pa <= pb <= pc
        return pb >= pa or pb <= pc

    # -- mutation -----------------------------------------------------------

    def _reverse_positions(self, i: int, length: int) -> None:
        order, pos, n = self.order, self.pos, self.n
        j = i + length - 1
        for _ in range(length // 2):
            ii, jj = i % n, j % n
            ci, cj = order[ii], order[jj]
            order[ii], order[jj] = cj, ci
            pos[cj], pos[ci] = ii, jj
            i += 1
            j -= 1

    def reverse_segment(self, a: int, b: int) -> None:
        """Reverse the forward path from ``a`` to ``b`` inclusive.

        Reverses the complementary path instead when it is shorter; for
        symmetric costs both give the same cyclic tour.
        """
        self._check(a)
        self._check(b)
        length = self.path_length(a, b)
        if 2 * length <= self.n:
            self._reverse_positions(self.pos[a], length)
        else:
            rest = self.n - length
            if rest > 1:
                self._reverse_positions(self.pos[b] + 1, rest)

    def _write(self, start: int, cities: List[int]) -> None:
        order, pos, n = self.order, self.pos, self.n
        for offset, city in enumerate(cities):
            p = (start + offset) % n
            order[p] = city
            pos[city] = p

    def _forward(self, a: int, b: int) -> List[int]:
        start, length, n = self.pos[a], self.path_length(a, b), self.n
        if start + length <= n:
            return self.order[start:start + length]
        return self.order[start:] + self.order[:start + length - n]

    def move_segment(self, first: int, last: int, after: int, reverse: bool = False) -> None:
        """Move the forward path ``first..last`` between ``after`` and its successor.

        ``after`` must lie outside the segment and must not be the segment's
        predecessor. With ``reverse`` the segment is inserted back to front.
        """
        for city in (first, last, after):
            self._check(city)
        seg_len = self.path_length(first, last)
        if seg_len >= self.n - 1 or self.path_length(first, after) <= seg_len:
            raise InvalidTourError(f"Cannot move segment {first}..{last} after {after}")
        if after == self.prev(first):
            raise InvalidTourError(f"City {after} already precedes segment {first}..{last}")
        segment = self._forward(first, last)
        if reverse:
            segment.reverse()
        before = self.next(after)
        # Two equivalent rewrites: [seg][next(last)..after] or [before..prev(first)][seg]
        right_len = self.path_length(self.next(last), after)
        left_len = self.path_length(before, self.prev(first))
        if right_len <= left_len:
            start = self.pos[first]
            self._write(start, self._forward(self.next(last), after) + segment)
        else:
            start = self.pos[before]
            self._write(start, segment + self._forward(before, self.prev(first)))

    # -- whole-tour queries -------------------------------------------------

    def total_cost(self, instance) -> float:
        order, n = self.order, self.n
        if instance.size() != n:
            raise InvalidTourError(f"Tour has {n} cities but the instance has {instance.size()}")
        cost = instance.lookup
        return float(sum(cost(order[p - 1], order[p]) for p in range(n)))

    def to_order(self, start: Optional[int] = None) -> List[int]:
        """Cities in traversal order, optionally rotated to begin at ``start``."""
        if start is None:
            return list(self.order)
        self._check(start)
        p = self.pos[start]
        return self.order[p:] + self.order[:p]

    def edges(self) -> List[Tuple[int, int]]:
        order = self.order
        return [(order[p - 1], order[p]) for p in range(1, self.n)] + [(order[-1], order[0])]

    def undirected_edges(self) -> set:
        return {(a, b) if a < b else (b, a) for a, b in self.edges()}

    def same_cycle(self, other: 'Tour') -> bool:
        """Equal as undirected cycles (ignores rotation and direction)."""
        if self.n != other.n:
            return False
        if self.n <= 2:
            return set(self.order) == set(other.order)
        return self.undirected_edges() == other.undirected_edges()

    def is_valid(self) -> bool:
        return sorted(self.order) == list(range(self.n)) and all(
            self.order[self.pos[c]] == c for c in range(self.n))

    def copy(self) -> 'Tour':
        return Tour(list(self.order), list(self.pos))

    def __len__(self) -> int:
        return self.n

    def __iter__(self) -> Iterator[int]:
        return iter(self.order)

    def __repr__(self) -> str:
        if self.n <= 12:
            return f"Tour({self.order})"
        return f"Tour(n={self.n})"
