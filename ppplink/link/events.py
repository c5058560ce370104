"""
Events are inputs to the transmit state machine.

The device turns its own calls (send, scheduled completion) into events.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Event:
    """Base class for all link events."""
    pass


@dataclass(frozen=True)
class FrameAvailable(Event):
    """A frame has been dequeued and should start transmitting."""
    frame: bytes


@dataclass(frozen=True)
class TransmitComplete(Event):
    """The scheduled completion time of the in-flight frame has arrived."""
    pass
