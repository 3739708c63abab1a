"""Radix-2 FFT and the spectral measures derived from it."""

from __future__ import annotations

from functools import lru_cache

import numpy as np

from ..errors import InvalidInputError


@lru_cache(maxsize=8)
def _bit_reversal(n: int) -> np.ndarray:
    bits = n.bit_length() - 1
    idx = np.arange(n, dtype=np.int64)
    rev = np.zeros(n, dtype=np.int64)
    for b in range(bits):
        rev |= ((idx >> b) & 1) << (bits - 1 - b)
    rev.setflags(write=False)
    return rev


@lru_cache(maxsize=32)
def _twiddles(step: int) -> tuple[np.ndarray, np.ndarray]:
    angles = -2.0 * np.pi * np.arange(step // 2, dtype=np.float64) / step
    return np.cos(angles), np.sin(angles)


def fft_inplace(real: np.ndarray, imag: np.ndarray) -> None:
    """Cooley–Tukey radix-2 FFT overwriting ``real`` and ``imag``.

    Both arrays must be contiguous 1-D float buffers of the same power-of-two
    length.  The bit-reversal permutation runs first, then ``log2(n)``
    butterfly stages, each vectorised across all groups of that stage.
    """

    n = real.shape[0]
    if real.ndim != 1 or imag.shape != real.shape:
        raise InvalidInputError(
            "real and imag must be 1-D arrays of equal length",
            {"real": list(real.shape), "imag": list(imag.shape)},
        )
    if n == 0 or n & (n - 1):
        raise InvalidInputError("FFT length must be a power of two", {"length": n})
    if not (real.flags.c_contiguous and imag.flags.c_contiguous):
        raise InvalidInputError("FFT buffers must be contiguous", {"length": n})

    perm = _bit_reversal(n)
    real[:] = real[perm]
    imag[:] = imag[perm]

    step = 2
    while step <= n:
        half = step // 2
        cos, sin = _twiddles(step)
        re = real.reshape(-1, step)
        im = imag.reshape(-1, step)
        re_hi = re[:, half:].copy()
        im_hi = im[:, half:].copy()
        t_re = cos * re_hi - sin * im_hi
        t_im = sin * re_hi + cos * im_hi
        re_lo = re[:, :half].copy()
        im_lo = im[:, :half].copy()
        re[:, half:] = re_lo - t_re
        im[:, half:] = im_lo - t_im
        re[:, :half] = re_lo + t_re
        im[:, :half] = im_lo + t_im
        step *= 2


def power_spectrum(frame: np.ndarray, window: np.ndarray | None = None) -> np.ndarray:
    """Return ``|X[k]|²`` for ``k = 0 .. N/2`` of the (optionally windowed) frame."""

    real = np.array(frame, dtype=np.float64)
    if window is not None:
        if window.shape != real.shape:
            raise InvalidInputError(
                "window length does not match frame length",
                {"frame": real.shape[0], "window": window.shape[0]},
            )
        real *= window
    imag = np.zeros_like(real)
    fft_inplace(real, imag)
    bins = real.shape[0] // 2 + 1
    return real[:bins] ** 2 + imag[:bins] ** 2


def spectral_centroid(power: np.ndarray, sample_rate: int) -> float:
    """Power-weighted mean frequency of a half spectrum; ``0.0`` when silent."""

    total = float(np.sum(power))
    if total <= 0.0:
        return 0.0
    freqs = np.arange(power.shape[0], dtype=np.float64) * sample_rate / (2.0 * power.shape[0])
    return float(np.dot(freqs, power) / total)


__all__ = ["fft_inplace", "power_spectrum", "spectral_centroid"]
