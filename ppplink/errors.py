"""
Error taxonomy for the link device.

Per-frame conditions (MalformedFrame, CorruptPayload, QueueOverflow) are
caught by the device, traced and counted; callers only see a boolean.
UnsupportedProtocol and StateViolation are deployment or invariant bugs and
propagate.
"""
from __future__ import annotations


class LinkError(Exception):
    """Base class for all link device errors."""
    pass


class MalformedFrame(LinkError, ValueError):
    """Buffer is shorter than its declared headers, or a header does not parse."""
    pass


class CorruptPayload(LinkError, ValueError):
    """Codec could not validate a payload it was asked to decode."""
    pass


class QueueOverflow(LinkError):
    """Transmit queue refused a frame."""
    pass


class UnsupportedProtocol(LinkError):
    """Protocol number outside the closed tag set."""

    def __init__(self, value: int, kind: str = "PPP"):
        self.value = value
        self.kind = kind
        super().__init__(f"{kind} protocol number 0x{value:04x} not defined")


class StateViolation(LinkError, RuntimeError):
    """Transmit state machine received an event it must never see."""
    pass
