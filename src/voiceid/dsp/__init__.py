from __future__ import annotations

from .framing import (
    frame_rms,
    frame_signal,
    hamming_window,
    resample_audio,
    validate_audio,
    voiced_frames,
    zero_crossing_rate,
)
from .mel import MelFilterbank, hz_to_mel, mel_filterbank, mel_to_hz
from .spectral import fft_inplace, power_spectrum, spectral_centroid

__all__ = [
    "MelFilterbank",
    "fft_inplace",
    "frame_rms",
    "frame_signal",
    "hamming_window",
    "hz_to_mel",
    "mel_filterbank",
    "mel_to_hz",
    "power_spectrum",
    "resample_audio",
    "spectral_centroid",
    "validate_audio",
    "voiced_frames",
    "zero_crossing_rate",
]
