"""Time / cancellation budget polled by long-running loops."""
from __future__ import annotations

import threading
import time
from typing import Optional


class Budget:
    """Wall-clock deadline plus an optional cancel event.

    Loops call :meth:`expired` at each iteration boundary and wind down with
    their best result when it returns True.
    """

    def __init__(self, time_limit: Optional[float] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.start = time.perf_counter()
        self.time_limit = time_limit
        self.deadline = None if time_limit is None else self.start + time_limit
        self.cancel_event = cancel_event

    def expired(self) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            return True
        return self.deadline is not None and time.perf_counter() >= self.deadline

    def elapsed(self) -> float:
        return time.perf_counter() - self.start

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.perf_counter())
