"""
Discrete-event scheduler.

Callbacks run to completion in timestamp order; ties fire in scheduling
order. There is no cancellation: a callback that should no longer act must
check its own state when it fires.
"""
from __future__ import annotations

import heapq
import itertools
from typing import Any, Callable, List, Optional, Tuple


class Simulator:
    def __init__(self, logger: Optional[Callable[[str, str], None]] = None):
        self._logger = logger or (lambda level, msg: None)
        self._now = 0.0
        self._seq = itertools.count()
        self._events: List[Tuple[float, int, Callable[..., None], tuple]] = []
        self._stopped = False
        self.events_run = 0

    @property
    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return len(self._events)

    def schedule(self, delay_s: float, callback: Callable[..., None], *args: Any) -> None:
        if delay_s < 0:
            raise ValueError(f"cannot schedule into the past (delay={delay_s})")
        heapq.heappush(self._events, (self._now + float(delay_s), next(self._seq), callback, args))

    def schedule_now(self, callback: Callable[..., None], *args: Any) -> None:
        self.schedule(0.0, callback, *args)

    def stop(self) -> None:
        """Stop run() after the current callback returns."""
        self._stopped = True

    def run(self, until: Optional[float] = None) -> None:
        """Run events in order until the queue drains, stop() is called, or `until` is passed."""
        self._stopped = False
        while self._events and not self._stopped:
            t, _, callback, args = self._events[0]
            if until is not None and t > until:
                self._now = float(until)
                break
            heapq.heappop(self._events)
            self._now = t
            callback(*args)
            self.events_run += 1
        else:
            if until is not None and not self._stopped and self._now < until:
                self._now = float(until)
        self._logger("debug", f"[Simulator] run stopped at t={self._now:.9f}s, {self.pending} pending")
