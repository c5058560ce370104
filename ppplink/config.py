"""
Device and scenario configuration.

LinkConfig carries everything a device reads at construction, including the
per-device compression flags. Scenarios are YAML files:

    seed: 7
    channel:
      delay_s: 0.002
    left:
      data_rate_bps: 5000000
      compression_enabled: true
    right:
      decompression_enabled: true
    traffic:
      packets: 20
      payload_size: 512
      payload: text        # text | zeros | random
    error_rate: 0.0

A JSON object in the PPPLINK_CFG environment variable is merged on top.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict

import yaml

from .codecs import CodecConfig, DEFAULT_MAX_PAYLOAD

ENV_VAR = "PPPLINK_CFG"

DEFAULT_DATA_RATE_BPS = 32768
DEFAULT_MTU = 1500
BROADCAST_ADDRESS = "ff:ff:ff:ff:ff:ff"


@dataclass(frozen=True)
class LinkConfig:
    data_rate_bps: int = DEFAULT_DATA_RATE_BPS
    interframe_gap_s: float = 0.0
    mtu: int = DEFAULT_MTU
    address: str = BROADCAST_ADDRESS
    compression_enabled: bool = False
    decompression_enabled: bool = False
    codec: str = "deflate"
    codec_level: int = 9
    max_payload: int = DEFAULT_MAX_PAYLOAD
    queue_max_packets: int = 100

    def __post_init__(self) -> None:
        if self.data_rate_bps <= 0:
            raise ValueError("data_rate_bps must be > 0")
        if self.interframe_gap_s < 0:
            raise ValueError("interframe_gap_s must be >= 0")
        if self.queue_max_packets < 1:
            raise ValueError("queue_max_packets must be >= 1")

    def codec_config(self) -> CodecConfig:
        return CodecConfig(max_payload=self.max_payload, level=self.codec_level)

    @classmethod
    def from_dict(cls, d: Dict[str, Any] | None) -> "LinkConfig":
        d = dict(d or {})
        known = {f.name: f for f in fields(cls)}
        unknown = set(d) - set(known)
        if unknown:
            raise ValueError(f"Unknown link config keys: {sorted(unknown)}")
        kw: Dict[str, Any] = {}
        for name, value in d.items():
            default = getattr(cls, name)
            if isinstance(default, bool):
                kw[name] = _to_bool(value)
            elif isinstance(default, int):
                kw[name] = int(value)
            elif isinstance(default, float):
                kw[name] = float(value)
            else:
                kw[name] = str(value)
        return cls(**kw)


@dataclass(frozen=True)
class ChannelConfig:
    delay_s: float = 0.0


@dataclass(frozen=True)
class TrafficConfig:
    packets: int = 10
    payload_size: int = 256
    payload: str = "text"
    interval_s: float = 0.0


@dataclass(frozen=True)
class Scenario:
    left: LinkConfig = field(default_factory=LinkConfig)
    right: LinkConfig = field(default_factory=LinkConfig)
    channel: ChannelConfig = field(default_factory=ChannelConfig)
    traffic: TrafficConfig = field(default_factory=TrafficConfig)
    error_rate: float = 0.0
    seed: int | None = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any] | None) -> "Scenario":
        d = dict(d or {})
        seed = d.get("seed")
        return cls(
            left=LinkConfig.from_dict(d.get("left")),
            right=LinkConfig.from_dict(d.get("right")),
            channel=ChannelConfig(**(d.get("channel") or {})),
            traffic=TrafficConfig(**(d.get("traffic") or {})),
            error_rate=float(d.get("error_rate", 0.0)),
            seed=int(seed) if seed is not None else None,
        )


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        v = value.strip().lower()
        if v in {"1", "true", "yes", "on"}:
            return True
        if v in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    return bool(value)


def _deep_merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in extra.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def merged_cfg(base: Dict[str, Any] | None) -> Dict[str, Any]:
    """Merge base cfg with optional JSON in PPPLINK_CFG."""
    cfg: Dict[str, Any] = dict(base or {})
    env_cfg = os.environ.get(ENV_VAR)
    if not env_cfg:
        return cfg
    try:
        parsed = json.loads(env_cfg)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{ENV_VAR} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError(f"{ENV_VAR} must hold a JSON object")
    return _deep_merge(cfg, parsed)


def load_scenario(path: str | Path) -> Scenario:
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: scenario must be a mapping")
    return Scenario.from_dict(merged_cfg(raw))


def load_link_config(path: str | Path) -> LinkConfig:
    """Load a single device's LinkConfig from a YAML mapping."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: link config must be a mapping")
    return LinkConfig.from_dict(merged_cfg(raw))
