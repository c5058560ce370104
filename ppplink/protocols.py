"""
Link protocol numbers.

The PPP protocol field is drawn from a closed set of four values: a plain and
a compressed variant for each of the two network families. The compressed
variant sets bit 0x4000 of the plain number, so the tag alone tells the
receiver both the family and whether the payload must be decoded.
"""
from __future__ import annotations

from enum import Enum

from .errors import UnsupportedProtocol

COMPRESSED_BIT = 0x4000

# PPP protocol field values
PPP_IPV4 = 0x0021
PPP_IPV4_COMPRESSED = PPP_IPV4 | COMPRESSED_BIT   # 0x4021
PPP_IPV6 = 0x0057
PPP_IPV6_COMPRESSED = PPP_IPV6 | COMPRESSED_BIT   # 0x4057

# EtherType values used by upper layers
ETHER_IPV4 = 0x0800
ETHER_IPV4_COMPRESSED = 0x0801
ETHER_IPV6 = 0x86DD

PLAIN_TAGS = frozenset({PPP_IPV4, PPP_IPV6})
COMPRESSED_TAGS = frozenset({PPP_IPV4_COMPRESSED, PPP_IPV6_COMPRESSED})
ALL_TAGS = PLAIN_TAGS | COMPRESSED_TAGS


class Family(Enum):
    """Network families a link frame can carry."""
    IPV4 = PPP_IPV4
    IPV6 = PPP_IPV6


_ETHER_TO_PPP = {
    ETHER_IPV4: PPP_IPV4,
    ETHER_IPV4_COMPRESSED: PPP_IPV4_COMPRESSED,
    ETHER_IPV6: PPP_IPV6,
}

_PPP_TO_ETHER = {
    PPP_IPV4: ETHER_IPV4,
    PPP_IPV4_COMPRESSED: ETHER_IPV4,
    PPP_IPV6: ETHER_IPV6,
    PPP_IPV6_COMPRESSED: ETHER_IPV6,
}


def check_tag(tag: int) -> int:
    """Return tag unchanged, or raise UnsupportedProtocol."""
    if tag not in ALL_TAGS:
        raise UnsupportedProtocol(tag)
    return tag


def ether_to_ppp(proto: int) -> int:
    try:
        return _ETHER_TO_PPP[proto]
    except KeyError:
        raise UnsupportedProtocol(proto, kind="Ether") from None


def ppp_to_ether(tag: int) -> int:
    try:
        return _PPP_TO_ETHER[tag]
    except KeyError:
        raise UnsupportedProtocol(tag) from None


def is_compressed(tag: int) -> bool:
    return check_tag(tag) in COMPRESSED_TAGS


def compressed_variant(tag: int) -> int:
    """Plain tag -> compressed tag. Already-compressed tags are returned as is."""
    return check_tag(tag) | COMPRESSED_BIT


def plain_variant(tag: int) -> int:
    """Compressed tag -> plain tag. Plain tags are returned as is."""
    return check_tag(tag) & ~COMPRESSED_BIT


def family_of(tag: int) -> Family:
    return Family(plain_variant(tag))
