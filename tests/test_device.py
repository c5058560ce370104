"""
End-to-end tests: two devices on a simulated channel.
"""
from __future__ import annotations

import pytest

from ppplink import (
    DropTailQueue,
    ETHER_IPV4,
    ETHER_IPV6,
    HeaderStack,
    LinkConfig,
    ListErrorModel,
    PPP_IPV4,
    PPP_IPV4_COMPRESSED,
    PPP_IPV6_COMPRESSED,
    Phase,
    PointToPointChannel,
    PointToPointDevice,
    PppHeader,
    RateErrorModel,
    UnsupportedProtocol,
    udp_packet,
)
from ppplink.codecs import CODEC_MAGIC
from ppplink.helper import LEFT_ADDRESS, RIGHT_ADDRESS

TEXT = b"Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 20


def _seq(packet: bytes) -> int:
    chain, _ = HeaderStack.strip(packet)
    return chain.seqts.seq


class TestPlainLink:
    """Compression disabled on both ends."""

    def test_delivery(self, sim, make_link):
        link = make_link(left={"data_rate_bps": 8000}, delay_s=0.005)
        packet = udp_packet(bytes(range(64)))

        assert link.left.send(packet, RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        assert len(link.delivered) == 1
        pkt, proto, remote, t = link.delivered[0]
        assert pkt == packet
        assert proto == ETHER_IPV4
        assert remote == LEFT_ADDRESS
        # 106-byte frame at 8000 bit/s plus 5 ms propagation
        assert t == pytest.approx(106 * 8 / 8000 + 0.005)

    def test_wire_frame_is_plain(self, sim, make_link):
        link = make_link()
        packet = udp_packet(bytes(range(64)))
        link.left.send(packet, RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        (wire,) = link.left_traces.frames("PhyTxBegin")
        assert wire == PppHeader.add(packet, PPP_IPV4)
        assert link.left.counters["tx_compressed"] == 0

    def test_trace_order(self, sim, make_link):
        link = make_link()
        link.left.send(udp_packet(b"abc"), RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        assert [s for s, _ in link.left_traces.events] == [
            "MacTx", "Sniffer", "PromiscSniffer", "PhyTxBegin", "PhyTxEnd",
        ]
        assert [s for s, _ in link.right_traces.events] == [
            "Sniffer", "PromiscSniffer", "PhyRxEnd", "MacRx",
        ]

    def test_interframe_gap(self, sim, make_link):
        link = make_link(left={"data_rate_bps": 8000, "interframe_gap_s": 0.01}, delay_s=0.005)
        packet = udp_packet(bytes(range(64)))
        link.left.send(packet, RIGHT_ADDRESS, ETHER_IPV4)
        link.left.send(packet, RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        tx = 106 * 8 / 8000
        times = [t for (_, _, _, t) in link.delivered]
        assert times == pytest.approx([tx + 0.005, 2 * tx + 0.01 + 0.005])

    def test_full_duplex(self, sim, make_link):
        link = make_link()
        got_left = []
        link.left.set_receive_callback(lambda dev, pkt, proto, remote: got_left.append(remote))

        link.left.send(udp_packet(b"to right"), RIGHT_ADDRESS, ETHER_IPV4)
        link.right.send(udp_packet(b"to left"), LEFT_ADDRESS, ETHER_IPV4)
        sim.run()

        assert got_left == [RIGHT_ADDRESS]
        assert len(link.delivered) == 1


class TestCompressedLink:
    """Compression on the sender, decompression on the receiver."""

    def test_ipv4_roundtrip(self, sim, make_link):
        link = make_link(left={"compression_enabled": True}, right={"decompression_enabled": True})
        packet = udp_packet(TEXT, seq=9)

        assert link.left.send(packet, RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        (wire,) = link.left_traces.frames("PhyTxBegin")
        assert PppHeader.peek(wire) == PPP_IPV4_COMPRESSED
        assert len(wire) < len(packet)

        ((pkt, proto, _, _),) = link.delivered
        assert pkt == packet
        assert proto == ETHER_IPV4
        assert link.left.counters["tx_compressed"] == 1
        assert link.right.counters["rx_decompressed"] == 1

    def test_ipv6_roundtrip(self, sim, make_link):
        link = make_link(left={"compression_enabled": True}, right={"decompression_enabled": True})
        packet = udp_packet(TEXT, source="2001:db8::1", destination="2001:db8::2", udp_checksum=True)

        link.left.send(packet, RIGHT_ADDRESS, ETHER_IPV6)
        sim.run()

        (wire,) = link.left_traces.frames("PhyTxBegin")
        assert PppHeader.peek(wire) == PPP_IPV6_COMPRESSED
        assert link.delivered[0][:2] == (packet, ETHER_IPV6)

    def test_receiver_without_decompression(self, sim, make_link, log):
        """The compressed frame is delivered as observed, under the plain EtherType."""
        link = make_link(left={"compression_enabled": True}, logger=log)
        packet = udp_packet(TEXT)

        link.left.send(packet, RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        (wire,) = link.left_traces.frames("PhyTxBegin")
        ((pkt, proto, _, _),) = link.delivered
        assert pkt == wire[PppHeader.SIZE:]
        assert proto == ETHER_IPV4
        _, payload = HeaderStack.strip(pkt)
        assert payload.startswith(CODEC_MAGIC)
        assert link.right.counters["rx_decompressed"] == 0
        assert any("decompression disabled" in m for m in log.at("warn"))

    def test_many_packets_in_order(self, sim, make_link, rng):
        link = make_link(left={"compression_enabled": True}, right={"decompression_enabled": True})
        packets = [udp_packet(rng.bytes(int(rng.integers(0, 600))), seq=i) for i in range(30)]
        for p in packets:
            assert link.left.send(p, RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        assert [d[0] for d in link.delivered] == packets
        assert link.left.state.frames_sent == 30
        assert link.left.phase == Phase.READY
        assert len(link.left.queue) == 0


class TestUncompressibleFrames:
    """Frames the codec cannot take are still carried, with their plain tag."""

    def test_tcp_packet(self, sim, make_link):
        link = make_link(left={"compression_enabled": True}, right={"decompression_enabled": True})
        packet = udp_packet(TEXT)
        packet = packet[:9] + bytes([6]) + packet[10:]

        assert link.left.send(packet, RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        (wire,) = link.left_traces.frames("PhyTxBegin")
        assert PppHeader.peek(wire) == PPP_IPV4
        assert link.delivered[0][:2] == (packet, ETHER_IPV4)
        assert link.left.counters["tx_malformed"] == 0
        assert link.left.counters["tx_compressed"] == 0

    def test_incompressible_packet_at_size_limit(self, sim, make_link, rng):
        link = make_link(
            left={"compression_enabled": True, "data_rate_bps": 10_000_000},
            right={"decompression_enabled": True},
        )
        chain, _ = HeaderStack.strip(udp_packet(b""))
        packet = udp_packet(rng.bytes(chain.max_payload))

        assert link.left.send(packet, RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        assert link.delivered[0][0] == packet
        assert link.left.counters["tx_malformed"] == 0
        assert link.left.counters["tx_frames"] == 1


class TestTransmitQueue:
    """Single transmit slot in front of a drop-tail queue."""

    def test_one_frame_on_the_wire(self, sim, make_link):
        link = make_link()
        for i in range(3):
            link.left.send(udp_packet(b"x", seq=i), RIGHT_ADDRESS, ETHER_IPV4)

        assert link.left.phase == Phase.BUSY
        assert link.left_traces.count("PhyTxBegin") == 1
        assert len(link.left.queue) == 2

        sim.run()
        assert link.left_traces.count("PhyTxBegin") == 3
        assert [_seq(d[0]) for d in link.delivered] == [0, 1, 2]

    def test_overflow_while_busy(self, sim, make_link):
        link = make_link(left={"queue_max_packets": 1})

        assert link.left.send(udp_packet(b"a"), RIGHT_ADDRESS, ETHER_IPV4)   # on the wire
        assert link.left.send(udp_packet(b"b"), RIGHT_ADDRESS, ETHER_IPV4)   # queued
        assert not link.left.send(udp_packet(b"c"), RIGHT_ADDRESS, ETHER_IPV4)

        assert link.left.counters["tx_queue_overflow"] == 1
        assert link.left.counters["tx_frames"] == 2
        assert link.left_traces.count("MacTxDrop") == 1
        assert link.left.phase == Phase.BUSY
        assert len(link.left.queue) == 1

        sim.run()
        assert len(link.delivered) == 2


class TestReceiveDrops:
    """Every dropped inbound frame is traced once and never delivered."""

    def test_error_model_drop(self, sim, make_link):
        link = make_link()
        link.right.set_receive_error_model(ListErrorModel([0]))
        link.left.send(udp_packet(b"first", seq=0), RIGHT_ADDRESS, ETHER_IPV4)
        link.left.send(udp_packet(b"second", seq=1), RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        assert [_seq(d[0]) for d in link.delivered] == [1]
        assert link.right_traces.count("PhyRxDrop") == 1
        assert link.right_traces.count("MacRx") == 1
        assert link.right.counters["rx_corrupt_medium"] == 1

    def test_rate_error_model_accounting(self, sim, make_link):
        link = make_link()
        link.right.set_receive_error_model(RateErrorModel(0.3, seed=5))
        for i in range(40):
            link.left.send(udp_packet(b"p", seq=i), RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        dropped = link.right.counters["rx_corrupt_medium"]
        assert dropped + len(link.delivered) == 40
        assert link.right_traces.count("PhyRxDrop") == dropped

    def test_corrupt_payload(self, make_link):
        link = make_link(right={"decompression_enabled": True})
        frame = PppHeader.add(udp_packet(b"not a codec payload"), PPP_IPV4_COMPRESSED)

        link.right.receive(frame)

        assert link.delivered == []
        assert link.right.counters["rx_corrupt_payload"] == 1
        assert link.right_traces.frames("PhyRxDrop") == [frame]

    @pytest.mark.parametrize("frame", [b"\x00", PppHeader.add(b"\x00" * 10, PPP_IPV4_COMPRESSED)])
    def test_malformed(self, make_link, frame):
        link = make_link(right={"decompression_enabled": True})
        link.right.receive(frame)

        assert link.delivered == []
        assert link.right.counters["rx_malformed"] == 1
        assert link.right_traces.count("PhyRxDrop") == 1


class TestSendDrops:
    def test_link_down(self, sim):
        dev = PointToPointDevice(sim)
        assert not dev.is_link_up
        assert not dev.send(udp_packet(b"x"), RIGHT_ADDRESS, ETHER_IPV4)
        assert dev.counters["tx_link_down"] == 1

    def test_malformed_with_compression(self, make_link):
        link = make_link(left={"compression_enabled": True})
        assert not link.left.send(b"\x45" + b"\x00" * 10, RIGHT_ADDRESS, ETHER_IPV4)
        assert link.left.counters["tx_malformed"] == 1
        assert link.left_traces.count("MacTxDrop") == 1
        assert link.left.phase == Phase.READY

    def test_channel_without_peer(self, sim):
        ch = PointToPointChannel(sim)
        dev = PointToPointDevice(sim)
        dev.attach(ch)
        traces = []
        dev.on_trace = lambda source, frame: traces.append(source)

        assert not dev.send(udp_packet(b"x"), RIGHT_ADDRESS, ETHER_IPV4)
        assert "PhyTxDrop" in traces
        assert dev.counters["tx_channel_refused"] == 1

        sim.run()
        assert dev.phase == Phase.READY


class TestFatalErrors:
    """UnsupportedProtocol propagates and stops the device."""

    def test_unsupported_ethertype(self, make_link, log):
        link = make_link(logger=log)
        with pytest.raises(UnsupportedProtocol):
            link.left.send(udp_packet(b"x"), RIGHT_ADDRESS, 0x0806)

        assert isinstance(link.left.fault, UnsupportedProtocol)
        assert log.at("error")
        assert not link.left.send(udp_packet(b"x"), RIGHT_ADDRESS, ETHER_IPV4)

    def test_unsupported_tag_on_receive(self, make_link):
        link = make_link()
        with pytest.raises(UnsupportedProtocol):
            link.right.receive(b"\xc0\x21" + udp_packet(b"x"))

        assert link.right.fault is not None
        link.right.receive(PppHeader.add(udp_packet(b"x"), PPP_IPV4))
        assert link.delivered == []


class TestLifecycle:
    def test_dispose_with_frame_in_flight(self, sim, make_link):
        """The completion event scheduled before dispose() is a no-op when it fires."""
        link = make_link()
        link.left.send(udp_packet(b"x"), RIGHT_ADDRESS, ETHER_IPV4)
        link.left.dispose()
        sim.run()

        assert link.left_traces.count("PhyTxEnd") == 0
        assert len(link.delivered) == 1
        assert not link.left.send(udp_packet(b"x"), RIGHT_ADDRESS, ETHER_IPV4)

    def test_flags_fixed_after_traffic(self, sim, make_link):
        link = make_link()
        link.left.set_compression(True)
        link.right.set_decompression(True)
        assert link.left.compression_enabled
        assert link.right.decompression_enabled

        link.left.send(udp_packet(TEXT), RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        with pytest.raises(RuntimeError):
            link.left.set_compression(False)
        with pytest.raises(RuntimeError):
            link.right.set_decompression(False)
        assert link.delivered[0][0] == udp_packet(TEXT)

    def test_link_change_callback(self, sim):
        calls = []
        dev = PointToPointDevice(sim, LinkConfig(address=LEFT_ADDRESS))
        dev.add_link_change_callback(lambda: calls.append(dev.is_link_up))
        dev.attach(PointToPointChannel(sim))
        assert calls == [True]

    def test_receive_without_channel(self, sim):
        """A device with no peer still delivers, with an empty remote address."""
        dev = PointToPointDevice(sim, LinkConfig(address=RIGHT_ADDRESS))
        got = []
        dev.set_receive_callback(lambda d, pkt, proto, remote: got.append((pkt, proto, remote)))
        packet = udp_packet(b"x")

        dev.receive(PppHeader.add(packet, PPP_IPV4))
        assert got == [(packet, ETHER_IPV4, "")]

    def test_get_remote(self, sim, make_link):
        link = make_link()
        assert link.left.get_remote() == RIGHT_ADDRESS
        with pytest.raises(RuntimeError):
            PointToPointDevice(sim).get_remote()

    def test_promiscuous_callback(self, sim, make_link):
        link = make_link()
        seen = []
        link.right.set_promisc_receive_callback(lambda dev, pkt, proto, remote: seen.append(proto))
        link.left.send(udp_packet(b"x"), RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        assert seen == [ETHER_IPV4]
        assert link.right_traces.count("MacPromiscRx") == 1
        assert len(link.delivered) == 1

    def test_custom_codec(self, sim, spy_codec):
        codec = spy_codec()
        a = PointToPointDevice(sim, LinkConfig(address=LEFT_ADDRESS, compression_enabled=True), codec=codec)
        b = PointToPointDevice(sim, LinkConfig(address=RIGHT_ADDRESS, decompression_enabled=True), codec=codec)
        ch = PointToPointChannel(sim)
        a.attach(ch)
        b.attach(ch)
        got = []
        b.set_receive_callback(lambda dev, pkt, proto, remote: got.append(pkt))

        a.send(udp_packet(b"hello"), RIGHT_ADDRESS, ETHER_IPV4)
        sim.run()

        assert got == [udp_packet(b"hello")]
        assert (codec.encode_calls, codec.decode_calls) == (1, 1)
        assert a.codec is codec

    def test_replacement_queue(self, sim, make_link):
        link = make_link()
        queue = DropTailQueue(2)
        link.left.set_queue(queue)
        for i in range(4):
            link.left.send(udp_packet(b"q", seq=i), RIGHT_ADDRESS, ETHER_IPV4)

        assert link.left.queue is queue
        assert queue.dropped == 1
        sim.run()
        assert [_seq(d[0]) for d in link.delivered] == [0, 1, 2]
        assert queue.dequeued == 3
