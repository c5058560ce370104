"""
Collaborator interfaces consumed by the link device.

The device only depends on these protocols; medium/ also ships minimal
reference implementations so a full link can be simulated.
All methods are non-blocking.
"""
from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, runtime_checkable


# (device, packet, ether_protocol, remote_address) -> None
ReceiveCallback = Callable[[Any, bytes, int, str], None]


@runtime_checkable
class IQueue(Protocol):
    """FIFO transmit queue."""

    # Returns True if queued, False on overflow.
    def enqueue(self, frame: bytes) -> bool: ...
    # Returns None when empty.
    def dequeue(self) -> Optional[bytes]: ...
    def __len__(self) -> int: ...


@runtime_checkable
class IChannel(Protocol):
    """Point-to-point medium carrying frames between exactly two devices."""

    def attach(self, device: Any) -> None: ...

    # Returns False if the medium refuses the frame (e.g. peer not attached).
    def transmit_start(self, frame: bytes, src: Any, tx_time_s: float) -> bool: ...

    def get_peer(self, device: Any) -> Any: ...


@runtime_checkable
class IErrorModel(Protocol):
    """Receive-side corruption model, consulted once per inbound frame."""

    def is_corrupt(self, frame: bytes) -> bool: ...


@runtime_checkable
class IScheduler(Protocol):
    """Fire-and-forget timed callbacks; no cancellation handle."""

    @property
    def now(self) -> float: ...

    def schedule(self, delay_s: float, callback: Callable[..., None], *args: Any) -> None: ...
