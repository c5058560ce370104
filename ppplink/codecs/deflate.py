"""
zlib-based payload codec.

Encoded layout:

    magic[2] | original_len[u32] | zlib stream

The magic is the plain IPv4 PPP number, so a decoder can tell an encoded
payload apart from arbitrary bytes independently of the link-header tag.
"""
from __future__ import annotations

import struct
import zlib
from typing import Callable, Optional

from ..errors import CorruptPayload
from ..protocols import PPP_IPV4
from .icodec import CodecConfig

CODEC_MAGIC = struct.pack(">H", PPP_IPV4)
_PREFIX = struct.Struct(">2sI")


def _check_plain(data: bytes, max_payload: int) -> bytes:
    data = bytes(data)
    if len(data) > max_payload:
        raise ValueError(f"payload of {len(data)} bytes exceeds codec maximum {max_payload}")
    return data


def _split_prefix(data: bytes, max_payload: int) -> tuple[int, bytes]:
    if len(data) < _PREFIX.size:
        raise CorruptPayload(f"encoded payload truncated: {len(data)} bytes")
    magic, size = _PREFIX.unpack_from(data, 0)
    if magic != CODEC_MAGIC:
        raise CorruptPayload(f"bad codec magic {magic.hex()}")
    if size > max_payload:
        raise CorruptPayload(f"declared size {size} exceeds decode capacity {max_payload}")
    return size, bytes(data[_PREFIX.size:])


class DeflateCodec:
    """zlib deflate with a self-describing prefix."""

    name = "deflate"

    def __init__(self, cfg: CodecConfig | None = None,
                 logger: Optional[Callable[[str, str], None]] = None):
        self.cfg = cfg or CodecConfig()
        if not 0 <= self.cfg.level <= 9:
            raise ValueError(f"zlib level must be 0..9, got {self.cfg.level}")
        self.log = logger or (lambda lvl, msg: None)

    @property
    def max_payload(self) -> int:
        return self.cfg.max_payload

    def encode(self, data: bytes) -> bytes:
        data = _check_plain(data, self.max_payload)
        out = _PREFIX.pack(CODEC_MAGIC, len(data)) + zlib.compress(data, self.cfg.level)
        self.log("debug", f"[Deflate] encoded {len(data)} -> {len(out)} bytes")
        return out

    def decode(self, data: bytes) -> bytes:
        size, stream = _split_prefix(data, self.max_payload)

        # Bound the output: one byte past max_payload is enough to detect overflow.
        d = zlib.decompressobj()
        try:
            out = d.decompress(stream, self.max_payload + 1)
        except zlib.error as exc:
            raise CorruptPayload(f"zlib stream invalid: {exc}") from exc
        if len(out) > self.max_payload or d.unconsumed_tail:
            raise CorruptPayload(f"inflated size exceeds decode capacity {self.max_payload}")
        if not d.eof:
            raise CorruptPayload("zlib stream truncated")
        if d.unused_data:
            raise CorruptPayload(f"{len(d.unused_data)} trailing bytes after zlib stream")
        if len(out) != size:
            raise CorruptPayload(f"inflated {len(out)} bytes, header declared {size}")

        self.log("debug", f"[Deflate] decoded {len(data)} -> {len(out)} bytes")
        return out
