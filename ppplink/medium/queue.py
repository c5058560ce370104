from __future__ import annotations

from collections import deque
from typing import Deque, Optional


class DropTailQueue:
    """
    Bounded FIFO that refuses new frames when full.

    Mirrors a non-blocking backpressure policy: enqueue() never evicts,
    it returns False and the caller drops the frame.
    """

    def __init__(self, max_packets: int = 100):
        if max_packets < 1:
            raise ValueError("max_packets must be >= 1")
        self.max_packets = int(max_packets)
        self._q: Deque[bytes] = deque()
        self.enqueued = 0
        self.dequeued = 0
        self.dropped = 0

    def enqueue(self, frame: bytes) -> bool:
        if len(self._q) >= self.max_packets:
            self.dropped += 1
            return False
        self._q.append(bytes(frame))
        self.enqueued += 1
        return True

    def dequeue(self) -> Optional[bytes]:
        if not self._q:
            return None
        self.dequeued += 1
        return self._q.popleft()

    def peek(self) -> Optional[bytes]:
        return self._q[0] if self._q else None

    def __len__(self) -> int:
        return len(self._q)

    @property
    def is_full(self) -> bool:
        return len(self._q) >= self.max_packets

    @property
    def n_bytes(self) -> int:
        return sum(len(f) for f in self._q)
