from __future__ import annotations

from .mfcc import FrameFeatures, dct_ii, estimate_pitch, extract_frame_features, log_mel_energies
from .profile import (
    MFCCProfile,
    aggregate_profile,
    average_profiles,
    extract_profile,
    silence_profile,
)

__all__ = [
    "FrameFeatures",
    "MFCCProfile",
    "aggregate_profile",
    "average_profiles",
    "dct_ii",
    "estimate_pitch",
    "extract_frame_features",
    "extract_profile",
    "log_mel_energies",
    "silence_profile",
]
