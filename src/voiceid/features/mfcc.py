"""Per-frame cepstral, pitch and spectral features."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import fft as sp_fft

from ..config import FeatureConfig
from ..dsp.framing import hamming_window
from ..dsp.mel import MelFilterbank
from ..dsp.spectral import power_spectrum, spectral_centroid


@dataclass(frozen=True, eq=False)
class FrameFeatures:
    mfcc: np.ndarray
    pitch: float
    energy: float
    centroid: float

    @property
    def voiced(self) -> bool:
        return self.pitch > 0.0


def dct_ii(values: np.ndarray, num_coeffs: int) -> np.ndarray:
    """First ``num_coeffs`` terms of ``Σ x[i] cos(πk(2i+1) / 2n)``."""

    # scipy's unnormalised DCT-II carries an extra factor of two.
    return sp_fft.dct(np.asarray(values, dtype=np.float64), type=2, norm=None)[:num_coeffs] / 2.0


def log_mel_energies(
    power: np.ndarray, filterbank: MelFilterbank, floor: float = 1e-10
) -> np.ndarray:
    return np.log(np.maximum(filterbank.apply(power), floor))


def estimate_pitch(
    frame: np.ndarray, sample_rate: int, min_hz: float = 50.0, max_hz: float = 400.0
) -> float:
    """Autocorrelation pitch estimate in Hz, or ``0.0`` if nothing correlates.

    Lags span ``sr / max_hz`` to ``sr / min_hz``; the lag with the largest
    positive ``Σ x[i] x[i + lag]`` wins, earliest lag on ties.
    """

    x = np.asarray(frame, dtype=np.float64)
    min_lag = int(np.floor(sample_rate / max_hz))
    max_lag = min(int(np.floor(sample_rate / min_hz)), x.shape[0] - 1)
    if min_lag < 1 or max_lag < min_lag:
        return 0.0
    lags = np.arange(min_lag, max_lag + 1)
    corr = np.array([np.dot(x[:-lag], x[lag:]) for lag in lags])
    best = int(np.argmax(corr))
    if corr[best] <= 0.0:
        return 0.0
    return float(sample_rate / lags[best])


def extract_frame_features(
    frame: np.ndarray,
    energy: float,
    filterbank: MelFilterbank,
    cfg: FeatureConfig,
) -> FrameFeatures:
    """Compute MFCCs, pitch and spectral centroid for one non-silent frame.

    Pitch runs on the raw frame; MFCCs and centroid use the Hamming-windowed
    power spectrum.  Pitch outside ``(pitch_min_hz, pitch_max_hz)`` is
    reported as ``0.0`` (unvoiced).
    """

    power = power_spectrum(frame, hamming_window(frame.shape[0]))
    mfcc = dct_ii(log_mel_energies(power, filterbank, cfg.log_floor), cfg.num_mfcc)
    pitch = estimate_pitch(frame, filterbank.sample_rate, cfg.pitch_min_hz, cfg.pitch_max_hz)
    if not cfg.pitch_min_hz < pitch < cfg.pitch_max_hz:
        pitch = 0.0
    return FrameFeatures(
        mfcc=mfcc,
        pitch=pitch,
        energy=float(energy),
        centroid=spectral_centroid(power, filterbank.sample_rate),
    )


__all__ = [
    "FrameFeatures",
    "dct_ii",
    "log_mel_energies",
    "estimate_pitch",
    "extract_frame_features",
]
