"""
Receive error models.

RateErrorModel draws from a numpy Generator so runs are reproducible
from a seed.
"""
from __future__ import annotations

from typing import Iterable, Literal

import numpy as np

Unit = Literal["packet", "byte", "bit"]


class RateErrorModel:
    """Corrupts each frame with a fixed probability per packet, byte or bit."""

    def __init__(
        self,
        rate: float = 0.0,
        unit: Unit = "packet",
        *,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ):
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"rate must be within [0, 1], got {rate}")
        if unit not in ("packet", "byte", "bit"):
            raise ValueError(f"unknown error unit '{unit}'")
        self.rate = float(rate)
        self.unit = unit
        self.rng = rng or np.random.default_rng(seed)
        self.enabled = True

    def frame_error_probability(self, frame: bytes) -> float:
        if self.unit == "packet":
            return self.rate
        n = len(frame) * (8 if self.unit == "bit" else 1)
        return float(1.0 - np.power(1.0 - self.rate, n))

    def is_corrupt(self, frame: bytes) -> bool:
        if not self.enabled or self.rate <= 0.0:
            return False
        return bool(self.rng.random() < self.frame_error_probability(frame))


class ListErrorModel:
    """Corrupts the frames received at the given 0-based arrival indices."""

    def __init__(self, indices: Iterable[int]):
        self.indices = frozenset(int(i) for i in indices)
        self._seen = 0
        self.enabled = True

    def is_corrupt(self, frame: bytes) -> bool:
        idx = self._seen
        self._seen += 1
        return self.enabled and idx in self.indices
