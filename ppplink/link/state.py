"""
Transmit state representation.

LinkState is immutable (frozen dataclass) so transitions stay pure.
The Phase enum is the single-slot transmitter: READY or BUSY.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class Phase(Enum):
    """Transmitter phases."""

    # Nothing on the wire; the next frame may start immediately
    READY = auto()

    # A frame occupies the transmit slot until its completion event fires
    BUSY = auto()


@dataclass(frozen=True)
class LinkState:
    """
    Immutable transmitter state.

    current_frame is the TransmitSlot: non-empty exactly when phase is BUSY.
    """

    phase: Phase = Phase.READY
    current_frame: bytes | None = None

    # Configuration (copied from LinkConfig at device construction)
    data_rate_bps: int = 32768
    interframe_gap_s: float = 0.0

    frames_sent: int = 0

    def tx_time(self, frame: bytes) -> float:
        """Seconds needed to serialize frame at data_rate_bps."""
        return len(frame) * 8 / float(self.data_rate_bps)
