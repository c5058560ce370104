"""
Actions are outputs from the transmit state machine.

The device executes actions against its channel, scheduler, queue and
trace hooks.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Action:
    """Base class for all link actions."""
    pass


# === Channel ===

@dataclass(frozen=True)
class BeginTransmission(Action):
    """Hand the frame to the channel; it occupies the wire for tx_time_s."""
    frame: bytes
    tx_time_s: float


# === Scheduler ===

@dataclass(frozen=True)
class ScheduleCompletion(Action):
    """Fire TransmitComplete after delay_s (tx time plus inter-frame gap)."""
    delay_s: float


# === Queue ===

@dataclass(frozen=True)
class PullNextFrame(Action):
    """Dequeue the next frame, if any, and feed it back as FrameAvailable."""
    pass


# === Tracing ===

@dataclass(frozen=True)
class Trace(Action):
    """Fire a trace source ("PhyTxBegin", "PhyTxEnd", ...)."""
    source: str
    frame: bytes


# === Logging ===

@dataclass(frozen=True)
class Log(Action):
    """Emit a log message."""
    level: str  # "debug", "info", "warn", "error"
    message: str
