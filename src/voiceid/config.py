"""Configuration defaults for feature extraction and speaker matching."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

from .errors import ConfigurationError

EMBEDDING_DIM = 128
NUM_MFCC = 13


def _ensure_numeric_range(
    name: str,
    value: float,
    *,
    ge: float | None = None,
    gt: float | None = None,
    le: float | None = None,
    lt: float | None = None,
) -> None:
    """Validate numeric range constraints for configuration fields."""

    if ge is not None and value < ge:
        raise ConfigurationError(f"{name} must be >= {ge}", {"field": name, "value": value})
    if gt is not None and value <= gt:
        raise ConfigurationError(f"{name} must be > {gt}", {"field": name, "value": value})
    if le is not None and value > le:
        raise ConfigurationError(f"{name} must be <= {le}", {"field": name, "value": value})
    if lt is not None and value >= lt:
        raise ConfigurationError(f"{name} must be < {lt}", {"field": name, "value": value})


def _is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


def float_env(name: str) -> float | None:
    val = os.getenv(name)
    if val is None or not val.strip():
        return None
    try:
        return float(val)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be a number", {"field": name, "value": val}
        ) from exc


@dataclass(frozen=True)
class FeatureConfig:
    """Framing and spectral parameters shared by every utterance."""

    sample_rate: int = 16000
    frame_size: int = 512
    hop_size: int = 256
    num_filters: int = 26
    num_mfcc: int = NUM_MFCC
    min_freq: float = 300.0
    max_freq: float = 8000.0
    # Frames quieter than this RMS are treated as pauses or background noise.
    silence_rms: float = 0.01
    pitch_min_hz: float = 50.0
    pitch_max_hz: float = 400.0
    log_floor: float = 1e-10

    def __post_init__(self) -> None:
        _ensure_numeric_range("sample_rate", self.sample_rate, gt=0)
        if not _is_power_of_two(int(self.frame_size)):
            raise ConfigurationError(
                "frame_size must be a power of two", {"frame_size": self.frame_size}
            )
        _ensure_numeric_range("hop_size", self.hop_size, gt=0, le=self.frame_size)
        # Profiles and the embedding layout are fixed at NUM_MFCC coefficients.
        if self.num_mfcc != NUM_MFCC:
            raise ConfigurationError(
                f"num_mfcc must be {NUM_MFCC}", {"field": "num_mfcc", "value": self.num_mfcc}
            )
        _ensure_numeric_range("num_filters", self.num_filters, ge=self.num_mfcc)
        _ensure_numeric_range("min_freq", self.min_freq, ge=0)
        _ensure_numeric_range("max_freq", self.max_freq, gt=self.min_freq)
        _ensure_numeric_range("silence_rms", self.silence_rms, ge=0)
        _ensure_numeric_range("pitch_min_hz", self.pitch_min_hz, gt=0)
        _ensure_numeric_range("pitch_max_hz", self.pitch_max_hz, gt=self.pitch_min_hz)
        _ensure_numeric_range("log_floor", self.log_floor, gt=0)


@dataclass(frozen=True)
class MatchConfig:
    """Decision thresholds for the owner → known → session → new ladder."""

    owner_threshold: float = 0.82
    known_threshold: float = 0.75
    session_threshold: float = 0.75
    suggestion_threshold: float = 0.60
    max_suggestions: int = 3
    session_history: int = 10
    silence_energy: float = 0.01

    def __post_init__(self) -> None:
        for name in ("owner_threshold", "known_threshold", "session_threshold"):
            _ensure_numeric_range(name, getattr(self, name), ge=-1.0, le=1.0)
        _ensure_numeric_range(
            "suggestion_threshold", self.suggestion_threshold, ge=-1.0, le=self.known_threshold
        )
        _ensure_numeric_range("max_suggestions", self.max_suggestions, ge=0)
        _ensure_numeric_range("session_history", self.session_history, ge=1)
        _ensure_numeric_range("silence_energy", self.silence_energy, ge=0)

    @classmethod
    def from_env(cls) -> MatchConfig:
        """Build a config honouring ``VOICEID_*_THRESHOLD`` overrides."""

        overrides: dict[str, Any] = {}
        for name, env in (
            ("owner_threshold", "VOICEID_OWNER_THRESHOLD"),
            ("known_threshold", "VOICEID_KNOWN_THRESHOLD"),
            ("session_threshold", "VOICEID_SESSION_THRESHOLD"),
        ):
            value = float_env(env)
            if value is not None:
                overrides[name] = value
        return cls(**overrides)


def build_config(
    base: FeatureConfig | MatchConfig, overrides: Mapping[str, Any] | None = None
) -> FeatureConfig | MatchConfig:
    """Return ``base`` with ``overrides`` applied, ignoring ``None`` values."""

    if not overrides:
        return base
    known = {f.name for f in fields(base)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys: {', '.join(unknown)}", {"keys": unknown}
        )
    cleaned = {k: v for k, v in overrides.items() if v is not None}
    return replace(base, **cleaned)


__all__ = [
    "EMBEDDING_DIM",
    "NUM_MFCC",
    "FeatureConfig",
    "MatchConfig",
    "build_config",
    "float_env",
]
