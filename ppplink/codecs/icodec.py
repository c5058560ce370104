from __future__ import annotations
from typing import Protocol, runtime_checkable
from dataclasses import dataclass

DEFAULT_MAX_PAYLOAD = 65535


@dataclass(frozen=True)
class CodecConfig:
    max_payload: int = DEFAULT_MAX_PAYLOAD   # largest plaintext encode() accepts / decode() may produce
    level: int = 9                           # zlib level; ignored by codecs that don't compress
    # add codec-specific fields as needed


@runtime_checkable
class ICodec(Protocol):
    """
    Reversible byte transform applied to the application payload.

    decode(encode(x)) == x for every len(x) <= max_payload.
    encode() may grow its input; callers must not assume it shrinks.
    decode() raises CorruptPayload for anything encode() did not produce.
    """

    name: str
    max_payload: int

    def encode(self, data: bytes) -> bytes: ...
    def decode(self, data: bytes) -> bytes: ...
