from __future__ import annotations

from typing import Callable, Optional

from ..errors import CorruptPayload
from .deflate import _PREFIX, CODEC_MAGIC, _check_plain, _split_prefix
from .icodec import CodecConfig


class PassThroughCodec:
    """
    Frames the payload exactly like DeflateCodec but does not compress it.

    Useful for exercising tag signalling and length recomputation without
    paying for zlib, and as the reference "pluggable" codec in tests.
    """

    name = "passthrough"

    def __init__(self, cfg: CodecConfig | None = None,
                 logger: Optional[Callable[[str, str], None]] = None):
        self.cfg = cfg or CodecConfig()
        self.log = logger or (lambda lvl, msg: None)

    @property
    def max_payload(self) -> int:
        return self.cfg.max_payload

    def encode(self, data: bytes) -> bytes:
        data = _check_plain(data, self.max_payload)
        return _PREFIX.pack(CODEC_MAGIC, len(data)) + data

    def decode(self, data: bytes) -> bytes:
        size, body = _split_prefix(data, self.max_payload)
        if len(body) != size:
            raise CorruptPayload(f"body is {len(body)} bytes, header declared {size}")
        return body
