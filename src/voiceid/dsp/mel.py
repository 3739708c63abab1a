"""Triangular Mel filterbanks, built once per configuration and shared."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import librosa
import numpy as np

from ..errors import InvalidInputError
from ..logger import logger


def hz_to_mel(freq: float | np.ndarray) -> float | np.ndarray:
    """HTK Mel scale, ``2595 * log10(1 + f / 700)``."""

    return librosa.hz_to_mel(freq, htk=True)


def mel_to_hz(mel: float | np.ndarray) -> float | np.ndarray:
    return librosa.mel_to_hz(mel, htk=True)


@dataclass(frozen=True, eq=False)
class MelFilterbank:
    """Immutable filter weights of shape ``(num_filters, fft_size // 2 + 1)``."""

    fft_size: int
    sample_rate: int
    num_filters: int
    min_freq: float
    max_freq: float
    weights: np.ndarray

    @property
    def key(self) -> tuple[int, int, int, float, float]:
        return (self.fft_size, self.sample_rate, self.num_filters, self.min_freq, self.max_freq)

    def apply(self, power: np.ndarray) -> np.ndarray:
        if power.shape[-1] != self.weights.shape[1]:
            raise InvalidInputError(
                "power spectrum length does not match filterbank",
                {"power_bins": int(power.shape[-1]), "filter_bins": int(self.weights.shape[1])},
            )
        return self.weights @ power


def _build_weights(
    fft_size: int, sample_rate: int, num_filters: int, min_freq: float, max_freq: float
) -> np.ndarray:
    n_bins = fft_size // 2 + 1
    mel_points = np.linspace(hz_to_mel(min_freq), hz_to_mel(max_freq), num_filters + 2)
    freq_points = mel_to_hz(mel_points)
    bin_points = np.floor((fft_size + 1) * freq_points / sample_rate).astype(np.int64)

    if bin_points[-1] >= n_bins + 1:
        raise InvalidInputError(
            "max_freq lies above the Nyquist bin for this sample rate",
            {"sample_rate": sample_rate, "max_freq": max_freq, "fft_size": fft_size},
        )

    weights = np.zeros((num_filters, n_bins), dtype=np.float64)
    for i in range(num_filters):
        start, center, end = bin_points[i], bin_points[i + 1], bin_points[i + 2]
        for j in range(start, center):
            weights[i, j] = (j - start) / (center - start)
        for j in range(center, min(end, n_bins)):
            weights[i, j] = (end - j) / (end - center)

    empty = np.flatnonzero(~weights.any(axis=1))
    if empty.size:
        raise InvalidInputError(
            "degenerate Mel filters for this sample rate",
            {
                "sample_rate": sample_rate,
                "fft_size": fft_size,
                "empty_filters": empty.tolist(),
            },
        )
    return weights


def mel_filterbank(
    fft_size: int,
    sample_rate: int,
    num_filters: int = 26,
    min_freq: float = 300.0,
    max_freq: float = 8000.0,
) -> MelFilterbank:
    """Return the shared filterbank for this configuration.

    Construction is a pure function of its arguments, so a race between two
    threads building the same key only wastes one computation.
    """

    return _cached_filterbank(
        int(fft_size), int(sample_rate), int(num_filters), float(min_freq), float(max_freq)
    )


@lru_cache(maxsize=16)
def _cached_filterbank(
    fft_size: int, sample_rate: int, num_filters: int, min_freq: float, max_freq: float
) -> MelFilterbank:
    weights = _build_weights(fft_size, sample_rate, num_filters, min_freq, max_freq)
    weights.setflags(write=False)
    logger.debug(
        "Built Mel filterbank fft=%d sr=%d filters=%d (%.0f-%.0f Hz)",
        fft_size,
        sample_rate,
        num_filters,
        min_freq,
        max_freq,
    )
    return MelFilterbank(
        fft_size=fft_size,
        sample_rate=sample_rate,
        num_filters=num_filters,
        min_freq=min_freq,
        max_freq=max_freq,
        weights=weights,
    )


__all__ = ["MelFilterbank", "hz_to_mel", "mel_to_hz", "mel_filterbank"]
