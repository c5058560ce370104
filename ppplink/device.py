"""
Point-to-point device - composes rewriter, state machine and medium.

The device bridges the pure transmit state machine to concrete
collaborators:
- FrameRewriter (header surgery + codec)
- Queue, Channel, ErrorModel, Scheduler (medium/)
- Upper-layer receive callbacks and trace sinks

Per-frame failures (malformed, corrupt, overflow) are dropped here: one
trace, one counter, one warn line, and a False/no delivery for the caller.
UnsupportedProtocol and StateViolation are fatal for this device: they are
logged, the device stops carrying traffic, and the exception propagates.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

from .codecs import ICodec, make_codec
from .config import LinkConfig
from .errors import (
    CorruptPayload,
    LinkError,
    MalformedFrame,
    QueueOverflow,
    StateViolation,
    UnsupportedProtocol,
)
from .headers import PppHeader
from .link import (
    Action,
    BeginTransmission,
    Event,
    FrameAvailable,
    LinkState,
    LinkStateMachine,
    Log,
    Phase,
    PullNextFrame,
    ScheduleCompletion,
    Trace,
    TransmitComplete,
)
from .medium import DropTailQueue, IChannel, IErrorModel, IQueue, IScheduler, ReceiveCallback
from .protocols import ether_to_ppp, ppp_to_ether
from .rewriter import FrameRewriter

# Trace sources, named after where the frame is in the device
TRACE_SOURCES = (
    "MacTx",           # accepted from the upper layer (after rewriting)
    "MacTxDrop",       # dropped before transmission
    "MacPromiscRx",
    "MacRx",           # handed to the upper layer
    "PhyTxBegin",
    "PhyTxEnd",
    "PhyTxDrop",       # refused by the channel
    "PhyRxEnd",
    "PhyRxDrop",       # corrupt or malformed on receive
    "Sniffer",
    "PromiscSniffer",
)

_FATAL = (UnsupportedProtocol, StateViolation)


class PointToPointDevice:
    """
    Link device with transparent payload compression.

    Usage:
        sim = Simulator()
        dev = PointToPointDevice(sim, LinkConfig(compression_enabled=True))
        dev.attach(channel)
        dev.set_receive_callback(lambda dev, pkt, proto, remote: ...)
        dev.on_trace = lambda source, frame: ...
        dev.send(ipv4_packet, "00:00:00:00:00:02", 0x0800)
    """

    def __init__(
        self,
        scheduler: IScheduler,
        config: LinkConfig | None = None,
        *,
        queue: IQueue | None = None,
        codec: ICodec | None = None,
        logger: Callable[[str, str], None] | None = None,
    ):
        self._config = config or LinkConfig()
        self._scheduler = scheduler
        self._logger = logger or (lambda level, msg: None)

        self._queue: IQueue = queue if queue is not None else DropTailQueue(self._config.queue_max_packets)
        self._codec: ICodec = codec if codec is not None else make_codec(
            self._config.codec, self._config.codec_config(), self._logger
        )
        self._rewriter = FrameRewriter(
            codec=self._codec,
            compression_enabled=self._config.compression_enabled,
            decompression_enabled=self._config.decompression_enabled,
            logger=self._logger,
        )

        # Transmitter state
        self._state = LinkState(
            data_rate_bps=self._config.data_rate_bps,
            interframe_gap_s=self._config.interframe_gap_s,
        )

        self._channel: IChannel | None = None
        self._error_model: IErrorModel | None = None
        self._link_up = False
        self._disposed = False
        self._fault: LinkError | None = None
        self._carried_traffic = False

        # Callbacks
        self._rx_callback: ReceiveCallback | None = None
        self._promisc_callback: ReceiveCallback | None = None
        self._link_change_callbacks: list[Callable[[], None]] = []
        self.on_trace: Callable[[str, bytes], None] | None = None

        self.counters = {
            "tx_frames": 0,
            "tx_compressed": 0,
            "tx_link_down": 0,
            "tx_malformed": 0,
            "tx_queue_overflow": 0,
            "tx_channel_refused": 0,
            "rx_frames": 0,
            "rx_decompressed": 0,
            "rx_corrupt_medium": 0,
            "rx_corrupt_payload": 0,
            "rx_malformed": 0,
            "rx_delivered": 0,
        }

    # === Properties ===

    @property
    def config(self) -> LinkConfig:
        return self._config

    @property
    def state(self) -> LinkState:
        """Current transmitter state (read-only)."""
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def queue(self) -> IQueue:
        return self._queue

    @property
    def codec(self) -> ICodec:
        return self._codec

    @property
    def channel(self) -> IChannel | None:
        return self._channel

    @property
    def address(self) -> str:
        return self._config.address

    @property
    def mtu(self) -> int:
        return self._config.mtu

    @property
    def is_link_up(self) -> bool:
        return self._link_up

    @property
    def compression_enabled(self) -> bool:
        return self._config.compression_enabled

    @property
    def decompression_enabled(self) -> bool:
        return self._config.decompression_enabled

    @property
    def fault(self) -> LinkError | None:
        """The fatal error that stopped this device, if any."""
        return self._fault

    # === Configuration ===

    def set_compression(self, enabled: bool) -> None:
        self._check_configurable("compression")
        self._config = replace(self._config, compression_enabled=bool(enabled))
        self._rewriter.compression_enabled = bool(enabled)
        self._logger("info", f"[Device] {self.address} compression={'on' if enabled else 'off'}")

    def set_decompression(self, enabled: bool) -> None:
        self._check_configurable("decompression")
        self._config = replace(self._config, decompression_enabled=bool(enabled))
        self._rewriter.decompression_enabled = bool(enabled)
        self._logger("info", f"[Device] {self.address} decompression={'on' if enabled else 'off'}")

    def _check_configurable(self, what: str) -> None:
        if self._carried_traffic:
            raise RuntimeError(f"{what} is fixed once the device has carried traffic")

    def set_queue(self, queue: IQueue) -> None:
        self._queue = queue

    def set_receive_error_model(self, em: IErrorModel | None) -> None:
        self._error_model = em

    def set_receive_callback(self, cb: ReceiveCallback | None) -> None:
        self._rx_callback = cb

    def set_promisc_receive_callback(self, cb: ReceiveCallback | None) -> None:
        self._promisc_callback = cb

    def add_link_change_callback(self, cb: Callable[[], None]) -> None:
        self._link_change_callbacks.append(cb)

    # === Link lifecycle ===

    def attach(self, channel: IChannel) -> bool:
        self._channel = channel
        channel.attach(self)
        # The device is up as soon as it is attached; the channel refuses
        # frames until the peer is attached too.
        self._notify_link_up()
        return True

    def _notify_link_up(self) -> None:
        self._link_up = True
        for cb in self._link_change_callbacks:
            cb()

    def get_remote(self) -> str:
        """Address of the device at the other end of the channel."""
        if self._channel is None:
            raise RuntimeError("device is not attached to a channel")
        peer = self._channel.get_peer(self)
        if peer is None:
            raise RuntimeError("channel has no peer device")
        return peer.address

    def _peer_address(self) -> str:
        # Empty when there is no peer to attribute the frame to
        peer = self._channel.get_peer(self) if self._channel is not None else None
        return peer.address if peer is not None else ""

    def dispose(self) -> None:
        """Detach from collaborators; completion events still in flight become no-ops."""
        self._disposed = True
        self._link_up = False
        self._channel = None
        self._error_model = None
        self._state = replace(self._state, current_frame=None)
        self._logger("info", f"[Device] {self.address} disposed")

    # === Send path ===

    def send(self, packet: bytes, dest: str, protocol_number: int) -> bool:
        """
        Queue a network-layer packet for transmission.

        Returns False if the frame was dropped (link down, malformed,
        queue full, channel refused). Raises UnsupportedProtocol for an
        EtherType outside the closed set.
        """
        packet = bytes(packet)
        if self._disposed or self._fault is not None:
            self._drop("MacTxDrop", packet, "tx_link_down", "device disposed or faulted")
            return False
        self._carried_traffic = True

        try:
            tag = ether_to_ppp(protocol_number)
        except UnsupportedProtocol as exc:
            self._fail(exc)
            raise

        if not self._link_up:
            self._drop("MacTxDrop", packet, "tx_link_down", "link down")
            return False

        frame = PppHeader.add(packet, tag)
        try:
            frame = self._rewriter.rewrite_for_send(frame)
        except MalformedFrame as exc:
            self._drop("MacTxDrop", frame, "tx_malformed", exc)
            return False
        except _FATAL as exc:
            self._fail(exc)
            raise

        self._trace("MacTx", frame)
        self._logger("debug", f"[Device] {self.address} -> {dest} proto=0x{protocol_number:04x} {len(frame)}B")

        if not self._queue.enqueue(frame):
            self._drop("MacTxDrop", frame, "tx_queue_overflow", QueueOverflow("transmit queue full"))
            return False

        # Only frames that made it into the queue count as sent
        self.counters["tx_frames"] += 1
        if PppHeader.peek(frame) != tag:
            self.counters["tx_compressed"] += 1

        if self._state.phase == Phase.READY:
            nxt = self._queue.dequeue()
            if nxt is None:
                return True
            self._trace("Sniffer", nxt)
            self._trace("PromiscSniffer", nxt)
            return self._feed(FrameAvailable(nxt))
        return True

    # === Receive path ===

    def receive(self, frame: bytes) -> None:
        """Called by the channel when a frame has fully arrived."""
        frame = bytes(frame)
        if self._disposed or self._fault is not None:
            self._logger("debug", f"[Device] {self.address} ignoring frame after dispose/fault")
            return
        self._carried_traffic = True
        self.counters["rx_frames"] += 1

        if self._error_model is not None and self._error_model.is_corrupt(frame):
            self._drop("PhyRxDrop", frame, "rx_corrupt_medium", "error model")
            return

        observed = frame
        try:
            frame = self._rewriter.rewrite_for_receive(frame)
        except CorruptPayload as exc:
            self._drop("PhyRxDrop", observed, "rx_corrupt_payload", exc)
            return
        except MalformedFrame as exc:
            self._drop("PhyRxDrop", observed, "rx_malformed", exc)
            return
        except _FATAL as exc:
            self._fail(exc)
            raise

        if PppHeader.peek(frame) != PppHeader.peek(observed):
            self.counters["rx_decompressed"] += 1

        self._trace("Sniffer", frame)
        self._trace("PromiscSniffer", frame)
        self._trace("PhyRxEnd", frame)

        tag, packet = PppHeader.remove(frame)
        protocol = ppp_to_ether(tag)
        remote = self._peer_address()

        if self._promisc_callback is not None:
            self._trace("MacPromiscRx", frame)
            self._promisc_callback(self, packet, protocol, remote)

        self._trace("MacRx", frame)
        self.counters["rx_delivered"] += 1
        if self._rx_callback is not None:
            self._rx_callback(self, packet, protocol, remote)

    # === State machine plumbing ===

    def _feed(self, event: Event) -> bool:
        """Step the transmit machine and execute its actions; returns the channel verdict."""
        try:
            new_state, actions = LinkStateMachine.step(self._state, event)
        except StateViolation as exc:
            self._fail(exc)
            raise
        self._state = new_state

        ok = True
        for action in actions:
            ok = self._execute(action) and ok
        return ok

    def _execute(self, action: Action) -> bool:
        """Execute a single action."""

        match action:
            case Log(level, message):
                self._logger(level, message)

            case Trace(source, frame):
                self._trace(source, frame)

            case ScheduleCompletion(delay_s):
                self._scheduler.schedule(delay_s, self._transmit_complete)

            case BeginTransmission(frame, tx_time_s):
                if self._channel is None:
                    self._trace("PhyTxDrop", frame)
                    self.counters["tx_channel_refused"] += 1
                    return False
                if not self._channel.transmit_start(frame, self, tx_time_s):
                    self._trace("PhyTxDrop", frame)
                    self.counters["tx_channel_refused"] += 1
                    self._logger("warn", f"[Device] {self.address} channel refused {len(frame)}B frame")
                    return False

            case PullNextFrame():
                nxt = self._queue.dequeue()
                if nxt is None:
                    self._logger("debug", "[Device] No pending frames in device queue after tx complete")
                    return True
                self._trace("Sniffer", nxt)
                self._trace("PromiscSniffer", nxt)
                return self._feed(FrameAvailable(nxt))

            case _:
                self._logger("warn", f"[Device] Unknown action: {action}")

        return True

    def _transmit_complete(self) -> None:
        # State is checked when the event fires, not when it was scheduled.
        if self._disposed or self._fault is not None:
            self._logger("debug", "[Device] stale transmit-complete event ignored")
            return
        self._feed(TransmitComplete())

    # === Drops, faults, traces ===

    def _drop(self, source: str, frame: bytes, counter: str, reason: Any) -> None:
        self.counters[counter] += 1
        self._trace(source, frame)
        self._logger("warn", f"[Device] {self.address} {source} ({counter}): {reason}")

    def _fail(self, exc: LinkError) -> None:
        self._fault = exc
        self._logger("error", f"[Device] {self.address} fatal {type(exc).__name__}: {exc}")

    def _trace(self, source: str, frame: bytes) -> None:
        if self.on_trace is not None:
            self.on_trace(source, frame)
