"""
Link construction helpers.

install() wires two devices, two drop-tail queues and a channel on a shared
scheduler. udp_packet() builds the network-layer packet an upper layer would
hand to PointToPointDevice.send().
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .config import ChannelConfig, LinkConfig
from .device import PointToPointDevice
from .headers import HeaderChain, HeaderStack
from .medium import IScheduler, PointToPointChannel

LEFT_ADDRESS = "00:00:00:00:00:01"
RIGHT_ADDRESS = "00:00:00:00:00:02"


@dataclass
class Link:
    left: PointToPointDevice
    right: PointToPointDevice
    channel: PointToPointChannel


def install(
    scheduler: IScheduler,
    left: LinkConfig | None = None,
    right: LinkConfig | None = None,
    channel: ChannelConfig | None = None,
    logger: Optional[Callable[[str, str], None]] = None,
) -> Link:
    """Create and attach both ends of a point-to-point link."""
    left = left or LinkConfig(address=LEFT_ADDRESS)
    right = right or LinkConfig(address=RIGHT_ADDRESS)
    channel = channel or ChannelConfig()

    ch = PointToPointChannel(scheduler, delay_s=channel.delay_s, logger=logger)
    a = PointToPointDevice(scheduler, left, logger=logger)
    b = PointToPointDevice(scheduler, right, logger=logger)
    a.attach(ch)
    b.attach(ch)
    return Link(left=a, right=b, channel=ch)


def udp_packet(
    payload: bytes,
    *,
    source: str = "10.1.1.1",
    destination: str = "10.1.1.2",
    source_port: int = 49153,
    destination_port: int = 9,
    seq: int = 0,
    ts_ns: int = 0,
    udp_checksum: bool = False,
) -> bytes:
    """IP | UDP | SeqTs | payload, with consistent lengths and checksums."""
    chain = HeaderChain.create(
        source, destination, source_port, destination_port,
        seq=seq, ts_ns=ts_ns, udp_checksum=udp_checksum,
    )
    return HeaderStack.rebuild(chain, payload)
