from __future__ import annotations

from typing import Callable, Optional, Type

from .icodec import CodecConfig, ICodec, DEFAULT_MAX_PAYLOAD
from .deflate import DeflateCodec, CODEC_MAGIC
from .passthrough import PassThroughCodec

# registry
_CODECS: dict[str, Type[ICodec]] = {
    "deflate": DeflateCodec,
    "zlib": DeflateCodec,
    "passthrough": PassThroughCodec,
}


def make_codec(name: str, cfg: CodecConfig | None = None,
               logger: Optional[Callable[[str, str], None]] = None) -> ICodec:
    cls = _CODECS.get(name.lower())
    if not cls:
        raise ValueError(f"Unsupported codec '{name}'. Available: {list(_CODECS)}")
    return cls(cfg=cfg, logger=logger)  # type: ignore[call-arg]


__all__ = [
    "CodecConfig",
    "ICodec",
    "DEFAULT_MAX_PAYLOAD",
    "CODEC_MAGIC",
    "DeflateCodec",
    "PassThroughCodec",
    "make_codec",
]
