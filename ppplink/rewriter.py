"""
FrameRewriter - header surgery around the payload codec.

Outbound:   PPP(plain) | chain | payload
        ->  PPP(compressed) | chain' | encode(payload)

Inbound is the mirror image. chain' is the same HeaderChain with every
declared-length field and checksum recomputed for the new payload size.

The rewriter only raises; deciding what a failure means for the frame
(drop, trace, count) is the device's job.
"""
from __future__ import annotations

from typing import Callable, Optional

from .codecs import ICodec
from .headers import HeaderStack, PppHeader
from .protocols import (
    PLAIN_TAGS,
    check_tag,
    compressed_variant,
    family_of,
    is_compressed,
    plain_variant,
)


class FrameRewriter:
    """
    Usage:
        rw = FrameRewriter(codec=DeflateCodec(), compression_enabled=True)
        wire = rw.rewrite_for_send(PppHeader.add(packet, PPP_IPV4))
        frame = peer_rw.rewrite_for_receive(wire)
    """

    def __init__(
        self,
        codec: ICodec,
        compression_enabled: bool = False,
        decompression_enabled: bool = False,
        logger: Optional[Callable[[str, str], None]] = None,
    ):
        self.codec = codec
        self.compression_enabled = compression_enabled
        self.decompression_enabled = decompression_enabled
        self._logger = logger or (lambda level, msg: None)

    # === Outbound ===

    def rewrite_for_send(self, frame: bytes) -> bytes:
        """
        Return the frame to put on the wire.

        Frames that cannot be compressed (not UDP, IPv4 options, payload
        too large before or after encoding) go out unchanged. Raises
        UnsupportedProtocol for a tag outside the closed set and
        MalformedFrame if a compressible frame cannot hold its header chain.
        """
        frame = bytes(frame)
        tag = check_tag(PppHeader.peek(frame))

        if not self.compression_enabled or tag not in PLAIN_TAGS:
            return frame

        family = family_of(tag)
        _, packet = PppHeader.remove(frame)
        if not HeaderStack.carries_udp(packet, family):
            self._logger("debug", f"[Rewriter] TX 0x{tag:04x} not UDP/SeqTs, sending uncompressed")
            return frame
        chain, payload = HeaderStack.strip(packet, family)

        if len(payload) > self.codec.max_payload:
            self._logger(
                "warn",
                f"[Rewriter] payload {len(payload)}B exceeds codec limit "
                f"{self.codec.max_payload}B, sending uncompressed",
            )
            return frame

        encoded = self.codec.encode(payload)
        if len(encoded) > chain.max_payload:
            self._logger(
                "warn",
                f"[Rewriter] encoded payload {len(encoded)}B overflows {family.name} length "
                f"fields (max {chain.max_payload}B), sending uncompressed",
            )
            return frame

        out_tag = compressed_variant(tag)
        out = PppHeader.add(HeaderStack.rebuild(chain, encoded), out_tag)

        self._logger(
            "debug",
            f"[Rewriter] TX 0x{tag:04x}->0x{out_tag:04x} payload {len(payload)}->{len(encoded)}B "
            f"frame {len(frame)}->{len(out)}B",
        )
        return out

    # === Inbound ===

    def rewrite_for_receive(self, frame: bytes) -> bytes:
        """
        Return the frame as it looked before the peer rewrote it.

        The link header is kept so trace sinks see complete frames; the
        device strips it before delivery. Raises UnsupportedProtocol,
        MalformedFrame or CorruptPayload.
        """
        frame = bytes(frame)
        tag = check_tag(PppHeader.peek(frame))

        if not is_compressed(tag):
            return frame

        if not self.decompression_enabled:
            # Misconfiguration on this side: hand the frame on as observed.
            self._logger(
                "warn",
                f"[Rewriter] RX compressed frame 0x{tag:04x} but decompression disabled; passing through",
            )
            return frame

        family = family_of(tag)
        _, packet = PppHeader.remove(frame)
        chain, encoded = HeaderStack.strip(packet, family)
        payload = self.codec.decode(encoded)

        out_tag = plain_variant(tag)
        out = PppHeader.add(HeaderStack.rebuild(chain, payload), out_tag)

        self._logger(
            "debug",
            f"[Rewriter] RX 0x{tag:04x}->0x{out_tag:04x} payload {len(encoded)}->{len(payload)}B",
        )
        return out
