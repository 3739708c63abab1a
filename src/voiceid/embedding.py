"""128-dimensional voiceprints derived from MFCC profiles."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from .config import EMBEDDING_DIM, NUM_MFCC
from .errors import InvalidInputError
from .features.profile import MFCCProfile


def validate_embedding(vector: Sequence[float] | np.ndarray, dim: int = EMBEDDING_DIM) -> np.ndarray:
    """Return ``vector`` as a float64 array, rejecting wrong lengths outright.

    Embeddings are never truncated or padded: a stored voiceprint of the wrong
    size means it came from a different extractor.
    """

    try:
        arr = np.asarray(vector, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("embedding must be numeric", {"expected": dim}) from exc
    if arr.ndim != 1 or arr.shape[0] != dim:
        raise InvalidInputError(
            f"embedding must be a flat vector of length {dim}",
            {"expected": dim, "shape": list(arr.shape)},
        )
    if not np.all(np.isfinite(arr)):
        raise InvalidInputError("embedding contains non-finite values", {"expected": dim})
    return arr


# 13 + 13 + 6 + 13 + 13 + 12 + 3
FEATURE_DIM = 4 * NUM_MFCC + (NUM_MFCC - 1) + 9


def _normalise(vec: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vec))
    if norm > 0.0:
        return vec / norm
    return vec


def generate_embedding(profile: MFCCProfile) -> np.ndarray:
    """Lay out a profile as a unit-norm 128-d vector.

    The silence profile produces an all-zero vector, which is returned as-is;
    callers must check for it rather than divide by its norm.
    """

    means = np.asarray(profile.mfcc_means, dtype=np.float64)
    stds = np.asarray(profile.mfcc_stds, dtype=np.float64)
    parts = [
        means,
        stds,
        [
            profile.pitch_mean / 400.0,
            profile.pitch_std / 100.0,
            profile.energy_mean,
            profile.energy_std,
            profile.spectral_centroid_mean / 4000.0,
            profile.zero_crossing_rate,
        ],
        means * 0.5,
        stds * 0.3,
        means[:-1] * means[1:] / 1000.0,
        [
            profile.pitch_mean * profile.energy_mean / 100.0,
            profile.pitch_std * profile.energy_std / 10.0,
            profile.spectral_centroid_mean * profile.pitch_mean / 100000.0,
        ],
    ]
    features = np.concatenate([np.asarray(p, dtype=np.float64) for p in parts])
    vec = np.zeros(EMBEDDING_DIM, dtype=np.float64)
    vec[:FEATURE_DIM] = features
    return _normalise(vec)


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine of the angle between ``a`` and ``b``; ``0.0`` if either is zero."""

    va = np.asarray(a, dtype=np.float64).reshape(-1)
    vb = np.asarray(b, dtype=np.float64).reshape(-1)
    if va.shape != vb.shape:
        raise InvalidInputError(
            "embeddings must have the same length",
            {"left": int(va.shape[0]), "right": int(vb.shape[0])},
        )
    denom = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denom <= 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def euclidean_distance(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    va = np.asarray(a, dtype=np.float64).reshape(-1)
    vb = np.asarray(b, dtype=np.float64).reshape(-1)
    if va.shape != vb.shape:
        raise InvalidInputError(
            "embeddings must have the same length",
            {"left": int(va.shape[0]), "right": int(vb.shape[0])},
        )
    return float(np.linalg.norm(va - vb))


def merge_embeddings(embeddings: Iterable[Sequence[float] | np.ndarray]) -> np.ndarray:
    """Combine voiceprints by summing them and renormalising the sum."""

    stacked = [validate_embedding(e) for e in embeddings]
    if not stacked:
        return np.zeros(EMBEDDING_DIM, dtype=np.float64)
    if len(stacked) == 1:
        return stacked[0]
    return _normalise(np.sum(stacked, axis=0))


def weighted_merge(
    existing: Sequence[float] | np.ndarray,
    sample: Sequence[float] | np.ndarray,
    sample_count: int,
    sample_weight: int = 1,
) -> np.ndarray:
    """Fold a new sample into a stored voiceprint.

    ``new = old * w + sample * (1 - w)`` with ``w = n / (n + 1)``, then
    renormalised.  ``sample_weight`` lets an already merged batch of ``k``
    samples count as ``k`` (``w = n / (n + k)``).  Older samples are never
    decayed.
    """

    if sample_count < 1 or sample_weight < 1:
        raise InvalidInputError(
            "sample counts must be >= 1",
            {"sample_count": sample_count, "sample_weight": sample_weight},
        )
    old = validate_embedding(existing)
    new = validate_embedding(sample)
    weight = sample_count / (sample_count + sample_weight)
    return _normalise(old * weight + new * (1.0 - weight))


__all__ = [
    "FEATURE_DIM",
    "cosine_similarity",
    "euclidean_distance",
    "generate_embedding",
    "merge_embeddings",
    "validate_embedding",
    "weighted_merge",
]
