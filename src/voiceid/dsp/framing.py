"""Slicing utterances into analysis frames and basic time-domain measures."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache

import librosa
import numpy as np

from ..errors import InvalidInputError


def validate_audio(audio: Sequence[float] | np.ndarray, sample_rate: int) -> np.ndarray:
    """Return ``audio`` as a contiguous mono float32 array.

    Raises :class:`InvalidInputError` for an empty buffer, a non-positive
    sample rate or a multi-dimensional array.
    """

    if sample_rate is None or int(sample_rate) <= 0:
        raise InvalidInputError("sample_rate must be positive", {"sample_rate": sample_rate})
    arr = np.ascontiguousarray(audio, dtype=np.float32)
    if arr.ndim != 1:
        raise InvalidInputError("audio must be a mono 1-D buffer", {"shape": list(arr.shape)})
    if arr.size == 0:
        raise InvalidInputError("audio buffer is empty", {"samples": 0})
    return arr


@lru_cache(maxsize=8)
def _hamming(n: int) -> np.ndarray:
    if n == 1:
        window = np.ones(1, dtype=np.float64)
    else:
        i = np.arange(n, dtype=np.float64)
        window = 0.54 - 0.46 * np.cos(2.0 * np.pi * i / (n - 1))
    window.setflags(write=False)
    return window


def hamming_window(n: int) -> np.ndarray:
    """Symmetric Hamming taper ``0.54 - 0.46 cos(2πi/(N-1))`` (read-only, cached)."""

    if n <= 0:
        raise InvalidInputError("window length must be positive", {"length": n})
    return _hamming(int(n))


def frame_signal(audio: np.ndarray, frame_size: int = 512, hop_size: int = 256) -> np.ndarray:
    """Return full-length frames as rows of a ``(n_frames, frame_size)`` array.

    Frames starting where a whole ``frame_size`` no longer fits are dropped;
    the tail is never zero-padded.
    """

    if len(audio) < frame_size:
        return np.empty((0, frame_size), dtype=np.float32)
    return librosa.util.frame(audio, frame_length=frame_size, hop_length=hop_size).T


def frame_rms(frames: np.ndarray) -> np.ndarray:
    if frames.size == 0:
        return np.empty(0, dtype=np.float64)
    return np.sqrt(np.mean(frames.astype(np.float64) ** 2, axis=1))


def voiced_frames(
    audio: np.ndarray, frame_size: int, hop_size: int, silence_rms: float
) -> tuple[np.ndarray, np.ndarray]:
    """Return frames whose RMS reaches ``silence_rms`` together with that RMS."""

    frames = frame_signal(audio, frame_size, hop_size)
    rms = frame_rms(frames)
    keep = rms >= silence_rms
    return frames[keep], rms[keep]


def zero_crossing_rate(signal: np.ndarray) -> float:
    """Fraction of adjacent sample pairs that change sign (``>= 0`` vs ``< 0``)."""

    if len(signal) == 0:
        return 0.0
    negative = np.asarray(signal) < 0
    crossings = int(np.count_nonzero(negative[1:] != negative[:-1]))
    return crossings / len(signal)


def resample_audio(audio: np.ndarray, from_rate: int, to_rate: int) -> np.ndarray:
    """Linearly interpolate ``audio`` from ``from_rate`` to ``to_rate``.

    Same-rate calls return the input object untouched.
    """

    if from_rate == to_rate:
        return audio
    if from_rate <= 0 or to_rate <= 0:
        raise InvalidInputError(
            "sample rates must be positive", {"from_rate": from_rate, "to_rate": to_rate}
        )
    src = np.asarray(audio, dtype=np.float32)
    if src.size == 0:
        return src
    ratio = from_rate / to_rate
    new_length = int(round(src.size / ratio))
    positions = np.arange(new_length, dtype=np.float64) * ratio
    lower = np.floor(positions).astype(np.int64)
    lower = np.minimum(lower, src.size - 1)
    upper = np.minimum(lower + 1, src.size - 1)
    t = positions - lower
    out = src[lower] * (1.0 - t) + src[upper] * t
    return out.astype(np.float32)


__all__ = [
    "validate_audio",
    "hamming_window",
    "frame_signal",
    "frame_rms",
    "voiced_frames",
    "zero_crossing_rate",
    "resample_audio",
]
