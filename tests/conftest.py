"""
Pytest configuration for ppplink tests.

This file provides fixtures and utilities for testing.
"""
import pytest
import sys
from pathlib import Path

import numpy as np

# Ensure ppplink package is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from ppplink import (
    ChannelConfig,
    LinkConfig,
    PassThroughCodec,
    PppHeader,
    Simulator,
    install,
    udp_packet,
)
from ppplink.helper import LEFT_ADDRESS, RIGHT_ADDRESS


class RecordingLogger:
    """Collects (level, message) pairs emitted through a logger callable."""

    def __init__(self):
        self.records: list[tuple[str, str]] = []

    def __call__(self, level: str, msg: str) -> None:
        self.records.append((level, msg))

    def at(self, level: str) -> list[str]:
        return [m for (lvl, m) in self.records if lvl == level]


class TraceRecorder:
    """Collects (source, frame) pairs fired through a device's on_trace."""

    def __init__(self):
        self.events: list[tuple[str, bytes]] = []

    def __call__(self, source: str, frame: bytes) -> None:
        self.events.append((source, frame))

    def frames(self, source: str) -> list[bytes]:
        return [f for (s, f) in self.events if s == source]

    def count(self, source: str) -> int:
        return len(self.frames(source))


class SpyCodec(PassThroughCodec):
    """PassThroughCodec that counts how often it is called."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.encode_calls = 0
        self.decode_calls = 0

    def encode(self, data: bytes) -> bytes:
        self.encode_calls += 1
        return super().encode(data)

    def decode(self, data: bytes) -> bytes:
        self.decode_calls += 1
        return super().decode(data)


@pytest.fixture
def rng():
    """Deterministic numpy generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def log():
    return RecordingLogger()


@pytest.fixture
def sim():
    return Simulator()


@pytest.fixture
def ipv4_frame():
    """Factory: PPP(IPv4) | IPv4 | UDP | SeqTs | payload."""
    def _make(payload: bytes, **kw) -> bytes:
        return PppHeader.add(udp_packet(payload, **kw), 0x0021)
    return _make


@pytest.fixture
def make_link(sim):
    """Factory for a two-device link with trace recorders and delivery lists."""
    def _make(left: dict | None = None, right: dict | None = None,
              delay_s: float = 0.0, logger=None):
        left_cfg = LinkConfig(**{"address": LEFT_ADDRESS, **(left or {})})
        right_cfg = LinkConfig(**{"address": RIGHT_ADDRESS, **(right or {})})
        link = install(sim, left_cfg, right_cfg, ChannelConfig(delay_s=delay_s), logger=logger)

        link.left_traces = TraceRecorder()
        link.right_traces = TraceRecorder()
        link.left.on_trace = link.left_traces
        link.right.on_trace = link.right_traces

        link.delivered = []
        link.right.set_receive_callback(
            lambda dev, pkt, proto, remote: link.delivered.append((pkt, proto, remote, sim.now))
        )
        return link
    return _make


@pytest.fixture
def spy_codec():
    """Factory for call-counting pass-through codecs."""
    return SpyCodec
