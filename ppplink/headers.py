"""
Typed sub-headers and the HeaderStack that strips/rebuilds them.

Encapsulation order on the wire:

    PPP | IPv4 or IPv6 | UDP | SeqTs | payload

The link (PPP) header is handled separately from the HeaderChain because the
device adds and removes it on every frame, while the chain is only unwrapped
when the codec is involved.

All functions take and return immutable ``bytes``; nothing is edited in place.
"""
from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass, replace
from typing import ClassVar, Tuple, Union

from .errors import MalformedFrame
from .protocols import Family

PPP_HDR = struct.Struct(">H")                 # protocol
IPV4_HDR = struct.Struct(">BBHHHBBH4s4s")     # ver/ihl, tos, total_len, id, flags/frag, ttl, proto, csum, src, dst
IPV6_HDR = struct.Struct(">IHBB16s16s")       # ver/tc/flow, payload_len, next_header, hop_limit, src, dst
UDP_HDR = struct.Struct(">HHHH")              # sport, dport, length, checksum
SEQTS_HDR = struct.Struct(">IQ")              # seq, timestamp (ns)

IPPROTO_UDP = 17


def internet_checksum(data: bytes) -> int:
    """RFC 1071 one's complement sum."""
    if len(data) % 2:
        data = data + b"\x00"
    total = 0
    for (word,) in struct.iter_unpack(">H", data):
        total += word
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


# =============================================================================
# Link header
# =============================================================================

@dataclass(frozen=True)
class PppHeader:
    """Point-to-point link header: a single 16-bit protocol field."""

    protocol: int

    SIZE: ClassVar[int] = PPP_HDR.size

    def serialize(self) -> bytes:
        return PPP_HDR.pack(self.protocol & 0xFFFF)

    @classmethod
    def parse(cls, frame: bytes) -> "PppHeader":
        if len(frame) < cls.SIZE:
            raise MalformedFrame(f"frame too short for link header: {len(frame)} bytes")
        (protocol,) = PPP_HDR.unpack_from(frame, 0)
        return cls(protocol=protocol)

    # ---- frame helpers ------------------------------------------------------
    @classmethod
    def add(cls, packet: bytes, protocol: int) -> bytes:
        return cls(protocol).serialize() + bytes(packet)

    @classmethod
    def peek(cls, frame: bytes) -> int:
        return cls.parse(frame).protocol

    @classmethod
    def remove(cls, frame: bytes) -> Tuple[int, bytes]:
        return cls.parse(frame).protocol, bytes(frame[cls.SIZE:])


# =============================================================================
# Network headers
# =============================================================================

@dataclass(frozen=True)
class Ipv4Header:
    source: bytes
    destination: bytes
    payload_size: int = 0
    protocol: int = IPPROTO_UDP
    ttl: int = 64
    tos: int = 0
    identification: int = 0
    flags_fragment: int = 0
    # Same convention as UDP: a zero header checksum on the wire stays zero.
    checksum_enabled: bool = True

    SIZE: ClassVar[int] = IPV4_HDR.size
    FAMILY: ClassVar[Family] = Family.IPV4
    # total_length covers the header itself
    MAX_PAYLOAD: ClassVar[int] = 0xFFFF - IPV4_HDR.size

    @property
    def declared_length(self) -> int:
        return self.SIZE + self.payload_size

    def serialize(self) -> bytes:
        total = self.declared_length
        if total > 0xFFFF:
            raise MalformedFrame(f"IPv4 total length {total} exceeds 65535")
        fields = [
            0x45, self.tos, total, self.identification, self.flags_fragment,
            self.ttl, self.protocol, 0, self.source, self.destination,
        ]
        if not self.checksum_enabled:
            return IPV4_HDR.pack(*fields)
        fields[7] = internet_checksum(IPV4_HDR.pack(*fields))
        return IPV4_HDR.pack(*fields)

    @classmethod
    def parse(cls, data: bytes) -> "Ipv4Header":
        if len(data) < cls.SIZE:
            raise MalformedFrame(f"buffer too short for IPv4 header: {len(data)} bytes")
        (ver_ihl, tos, total, ident, flags_frag, ttl, proto, csum,
         src, dst) = IPV4_HDR.unpack_from(data, 0)
        if ver_ihl >> 4 != 4:
            raise MalformedFrame(f"not an IPv4 header (version={ver_ihl >> 4})")
        if ver_ihl & 0x0F != 5:
            raise MalformedFrame("IPv4 options are not supported")
        if total < cls.SIZE:
            raise MalformedFrame(f"IPv4 total length {total} smaller than header")
        return cls(
            source=src,
            destination=dst,
            payload_size=total - cls.SIZE,
            protocol=proto,
            ttl=ttl,
            tos=tos,
            identification=ident,
            flags_fragment=flags_frag,
            checksum_enabled=csum != 0,
        )

    def pseudo_header(self, upper_length: int) -> bytes:
        return struct.pack(">4s4sBBH", self.source, self.destination, 0, self.protocol, upper_length)


@dataclass(frozen=True)
class Ipv6Header:
    source: bytes
    destination: bytes
    payload_size: int = 0
    next_header: int = IPPROTO_UDP
    hop_limit: int = 64
    traffic_class: int = 0
    flow_label: int = 0

    SIZE: ClassVar[int] = IPV6_HDR.size
    FAMILY: ClassVar[Family] = Family.IPV6
    MAX_PAYLOAD: ClassVar[int] = 0xFFFF

    @property
    def declared_length(self) -> int:
        return self.SIZE + self.payload_size

    @property
    def protocol(self) -> int:
        return self.next_header

    def serialize(self) -> bytes:
        if self.payload_size > 0xFFFF:
            raise MalformedFrame(f"IPv6 payload length {self.payload_size} exceeds 65535")
        first = (6 << 28) | ((self.traffic_class & 0xFF) << 20) | (self.flow_label & 0xFFFFF)
        return IPV6_HDR.pack(first, self.payload_size, self.next_header, self.hop_limit,
                             self.source, self.destination)

    @classmethod
    def parse(cls, data: bytes) -> "Ipv6Header":
        if len(data) < cls.SIZE:
            raise MalformedFrame(f"buffer too short for IPv6 header: {len(data)} bytes")
        first, plen, nh, hops, src, dst = IPV6_HDR.unpack_from(data, 0)
        if first >> 28 != 6:
            raise MalformedFrame(f"not an IPv6 header (version={first >> 28})")
        return cls(
            source=src,
            destination=dst,
            payload_size=plen,
            next_header=nh,
            hop_limit=hops,
            traffic_class=(first >> 20) & 0xFF,
            flow_label=first & 0xFFFFF,
        )

    def pseudo_header(self, upper_length: int) -> bytes:
        return struct.pack(">16s16sI3xB", self.source, self.destination, upper_length, self.next_header)


NetworkHeader = Union[Ipv4Header, Ipv6Header]

_NETWORK_HEADERS = {
    Family.IPV4: Ipv4Header,
    Family.IPV6: Ipv6Header,
}


# =============================================================================
# Transport and sequencing headers
# =============================================================================

@dataclass(frozen=True)
class UdpHeader:
    source_port: int
    destination_port: int
    payload_size: int = 0
    # A zero checksum on the wire means "not computed"; it stays zero.
    checksum_enabled: bool = False

    SIZE: ClassVar[int] = UDP_HDR.size

    @property
    def declared_length(self) -> int:
        return self.SIZE + self.payload_size

    def serialize(self, network: NetworkHeader | None = None, body: bytes = b"") -> bytes:
        length = self.declared_length
        if length > 0xFFFF:
            raise MalformedFrame(f"UDP length {length} exceeds 65535")
        raw = UDP_HDR.pack(self.source_port, self.destination_port, length, 0)
        if not self.checksum_enabled or network is None:
            return raw
        csum = internet_checksum(network.pseudo_header(length) + raw + body)
        return UDP_HDR.pack(self.source_port, self.destination_port, length, csum or 0xFFFF)

    @classmethod
    def parse(cls, data: bytes) -> "UdpHeader":
        if len(data) < cls.SIZE:
            raise MalformedFrame(f"buffer too short for UDP header: {len(data)} bytes")
        sport, dport, length, csum = UDP_HDR.unpack_from(data, 0)
        if length < cls.SIZE:
            raise MalformedFrame(f"UDP length {length} smaller than header")
        return cls(sport, dport, payload_size=length - cls.SIZE, checksum_enabled=csum != 0)


@dataclass(frozen=True)
class SeqTsHeader:
    """Sequence number plus transmit timestamp, as stamped by the traffic source."""

    seq: int = 0
    ts_ns: int = 0

    SIZE: ClassVar[int] = SEQTS_HDR.size

    def serialize(self) -> bytes:
        return SEQTS_HDR.pack(self.seq & 0xFFFFFFFF, self.ts_ns & 0xFFFFFFFFFFFFFFFF)

    @classmethod
    def parse(cls, data: bytes) -> "SeqTsHeader":
        if len(data) < cls.SIZE:
            raise MalformedFrame(f"buffer too short for SeqTs header: {len(data)} bytes")
        seq, ts = SEQTS_HDR.unpack_from(data, 0)
        return cls(seq=seq, ts_ns=ts)


# =============================================================================
# HeaderChain / HeaderStack
# =============================================================================

@dataclass(frozen=True)
class HeaderChain:
    """The network/transport/sequencing headers around an application payload."""

    network: NetworkHeader
    udp: UdpHeader
    seqts: SeqTsHeader

    @property
    def family(self) -> Family:
        return self.network.FAMILY

    @property
    def size(self) -> int:
        return self.network.SIZE + UdpHeader.SIZE + SeqTsHeader.SIZE

    @property
    def max_payload(self) -> int:
        """Largest payload rebuild() can wrap without overflowing a 16-bit length field."""
        return self.network.MAX_PAYLOAD - UdpHeader.SIZE - SeqTsHeader.SIZE

    @classmethod
    def create(
        cls,
        source: str,
        destination: str,
        source_port: int,
        destination_port: int,
        *,
        seq: int = 0,
        ts_ns: int = 0,
        udp_checksum: bool = False,
    ) -> "HeaderChain":
        """Build a chain from textual addresses; the family follows the addresses."""
        src = ipaddress.ip_address(source)
        dst = ipaddress.ip_address(destination)
        if src.version != dst.version:
            raise ValueError("source and destination must be the same IP version")
        header_cls = Ipv4Header if src.version == 4 else Ipv6Header
        return cls(
            network=header_cls(source=src.packed, destination=dst.packed),
            udp=UdpHeader(source_port, destination_port, checksum_enabled=udp_checksum),
            seqts=SeqTsHeader(seq=seq, ts_ns=ts_ns),
        )


class HeaderStack:
    """
    Strip and rebuild a HeaderChain.

    strip() removes headers in encapsulation order; rebuild() adds them back
    in reverse order, rewriting every declared-length field (UDP length, IPv4
    total length / IPv6 payload length) and every enabled checksum for the new
    payload. A checksum that was zero on the wire stays zero.
    """

    @staticmethod
    def min_size(family: Family) -> int:
        return _NETWORK_HEADERS[family].SIZE + UdpHeader.SIZE + SeqTsHeader.SIZE

    @staticmethod
    def carries_udp(packet: bytes, family: Family = Family.IPV4) -> bool:
        """
        False for a well-formed network header that strip() cannot unwrap:
        IPv4 with options, or a transport other than UDP. Raises MalformedFrame
        if the network header itself does not parse.
        """
        packet = bytes(packet)
        if (family is Family.IPV4 and len(packet) >= Ipv4Header.SIZE
                and packet[0] >> 4 == 4 and packet[0] & 0x0F > 5):
            return False
        network = _NETWORK_HEADERS[family].parse(packet)
        return network.protocol == IPPROTO_UDP

    @staticmethod
    def strip(frame: bytes, family: Family = Family.IPV4) -> Tuple[HeaderChain, bytes]:
        frame = bytes(frame)
        need = HeaderStack.min_size(family)
        if len(frame) < need:
            raise MalformedFrame(
                f"frame too short for {family.name} header chain: {len(frame)} < {need} bytes"
            )

        header_cls = _NETWORK_HEADERS[family]
        network = header_cls.parse(frame)
        if network.declared_length != len(frame):
            raise MalformedFrame(
                f"{family.name} declared length {network.declared_length} != buffer {len(frame)}"
            )
        if network.protocol != IPPROTO_UDP:
            raise MalformedFrame(f"unsupported transport protocol {network.protocol}")
        off = network.SIZE

        udp = UdpHeader.parse(frame[off:])
        if udp.declared_length != network.payload_size:
            raise MalformedFrame(
                f"UDP length {udp.declared_length} != network payload {network.payload_size}"
            )
        off += UdpHeader.SIZE

        seqts = SeqTsHeader.parse(frame[off:])
        off += SeqTsHeader.SIZE

        return HeaderChain(network=network, udp=udp, seqts=seqts), frame[off:]

    @staticmethod
    def rebuild(chain: HeaderChain, payload: bytes) -> bytes:
        body = chain.seqts.serialize() + bytes(payload)
        udp = replace(chain.udp, payload_size=len(body))
        network = replace(chain.network, payload_size=udp.declared_length)
        return network.serialize() + udp.serialize(network, body) + body
