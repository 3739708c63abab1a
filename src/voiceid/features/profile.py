"""Utterance-level MFCC statistics."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from ..config import NUM_MFCC, FeatureConfig
from ..dsp.framing import validate_audio, voiced_frames, zero_crossing_rate
from ..dsp.mel import mel_filterbank
from ..errors import InvalidInputError
from .mfcc import FrameFeatures, extract_frame_features


def _zeros() -> tuple[float, ...]:
    return (0.0,) * NUM_MFCC


@dataclass(frozen=True)
class MFCCProfile:
    """Fixed-size summary of one utterance (or an average of several)."""

    mfcc_means: tuple[float, ...] = field(default_factory=_zeros)
    mfcc_stds: tuple[float, ...] = field(default_factory=_zeros)
    pitch_mean: float = 0.0
    pitch_std: float = 0.0
    energy_mean: float = 0.0
    energy_std: float = 0.0
    spectral_centroid_mean: float = 0.0
    zero_crossing_rate: float = 0.0

    def __post_init__(self) -> None:
        for name in ("mfcc_means", "mfcc_stds"):
            values = tuple(float(v) for v in getattr(self, name))
            if len(values) != NUM_MFCC:
                raise InvalidInputError(
                    f"{name} must hold {NUM_MFCC} coefficients", {name: len(values)}
                )
            object.__setattr__(self, name, values)

    def is_silent(self, threshold: float = 0.01) -> bool:
        return self.energy_mean < threshold

    def to_dict(self) -> dict[str, Any]:
        return {
            "mfccMeans": list(self.mfcc_means),
            "mfccStds": list(self.mfcc_stds),
            "pitchMean": self.pitch_mean,
            "pitchStd": self.pitch_std,
            "energyMean": self.energy_mean,
            "energyStd": self.energy_std,
            "spectralCentroidMean": self.spectral_centroid_mean,
            "zeroCrossingRate": self.zero_crossing_rate,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MFCCProfile:
        try:
            return cls(
                mfcc_means=tuple(data["mfccMeans"]),
                mfcc_stds=tuple(data["mfccStds"]),
                pitch_mean=float(data["pitchMean"]),
                pitch_std=float(data["pitchStd"]),
                energy_mean=float(data["energyMean"]),
                energy_std=float(data["energyStd"]),
                spectral_centroid_mean=float(data["spectralCentroidMean"]),
                zero_crossing_rate=float(data["zeroCrossingRate"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidInputError("malformed MFCC profile", {"error": repr(exc)}) from exc


def silence_profile(zcr: float = 0.0) -> MFCCProfile:
    """All-zero profile that still carries the raw signal's zero-crossing rate."""

    return MFCCProfile(zero_crossing_rate=float(zcr))


def aggregate_profile(frames: Sequence[FrameFeatures], zcr: float) -> MFCCProfile:
    """Reduce per-frame features to means and population standard deviations.

    Pitch statistics only use voiced frames; energy and centroid use every
    frame that survived the silence gate.
    """

    if not frames:
        return silence_profile(zcr)
    mfcc = np.stack([f.mfcc for f in frames])
    energy = np.array([f.energy for f in frames], dtype=np.float64)
    centroid = np.array([f.centroid for f in frames], dtype=np.float64)
    pitches = np.array([f.pitch for f in frames if f.voiced], dtype=np.float64)

    return MFCCProfile(
        mfcc_means=tuple(mfcc.mean(axis=0)),
        mfcc_stds=tuple(mfcc.std(axis=0)),
        pitch_mean=float(pitches.mean()) if pitches.size else 0.0,
        pitch_std=float(pitches.std()) if pitches.size else 0.0,
        energy_mean=float(energy.mean()),
        energy_std=float(energy.std()),
        spectral_centroid_mean=float(centroid.mean()),
        zero_crossing_rate=float(zcr),
    )


def extract_profile(
    audio: Sequence[float] | np.ndarray,
    sample_rate: int,
    cfg: FeatureConfig | None = None,
) -> MFCCProfile:
    """Run framing → FFT → Mel → DCT over one utterance and aggregate."""

    cfg = cfg or FeatureConfig()
    signal = validate_audio(audio, sample_rate)
    filterbank = mel_filterbank(
        cfg.frame_size, int(sample_rate), cfg.num_filters, cfg.min_freq, cfg.max_freq
    )
    frames, rms = voiced_frames(signal, cfg.frame_size, cfg.hop_size, cfg.silence_rms)
    features = [
        extract_frame_features(frame, energy, filterbank, cfg) for frame, energy in zip(frames, rms)
    ]
    return aggregate_profile(features, zero_crossing_rate(signal))


def average_profiles(profiles: Sequence[MFCCProfile]) -> MFCCProfile:
    """Field-by-field mean of several profiles."""

    if not profiles:
        raise InvalidInputError("cannot average an empty list of profiles", {"profiles": 0})
    count = len(profiles)
    return MFCCProfile(
        mfcc_means=tuple(np.mean([p.mfcc_means for p in profiles], axis=0)),
        mfcc_stds=tuple(np.mean([p.mfcc_stds for p in profiles], axis=0)),
        pitch_mean=sum(p.pitch_mean for p in profiles) / count,
        pitch_std=sum(p.pitch_std for p in profiles) / count,
        energy_mean=sum(p.energy_mean for p in profiles) / count,
        energy_std=sum(p.energy_std for p in profiles) / count,
        spectral_centroid_mean=sum(p.spectral_centroid_mean for p in profiles) / count,
        zero_crossing_rate=sum(p.zero_crossing_rate for p in profiles) / count,
    )


__all__ = [
    "MFCCProfile",
    "silence_profile",
    "aggregate_profile",
    "extract_profile",
    "average_profiles",
]
