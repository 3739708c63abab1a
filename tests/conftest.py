"""Shared synthetic-audio fixtures."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
import pytest

SR = 16000


def make_voice(
    f0: float,
    seed: int,
    duration: float = 1.0,
    sr: int = SR,
    formants: tuple[float, ...] = (500.0, 1500.0, 2500.0),
) -> np.ndarray:
    """Harmonic series shaped by Gaussian formant peaks plus a little noise."""

    rng = np.random.default_rng(seed)
    t = np.arange(int(duration * sr)) / sr
    signal = np.zeros_like(t)
    for k in range(1, 25):
        freq = k * f0
        if freq >= sr / 2:
            break
        gain = sum(np.exp(-0.5 * ((freq - f) / 200.0) ** 2) for f in formants) + 0.05
        signal += gain * np.sin(2 * np.pi * freq * t + rng.uniform(0, 2 * np.pi))
    signal /= np.max(np.abs(signal))
    signal = 0.5 * signal + 0.005 * rng.standard_normal(t.shape[0])
    return signal.astype(np.float32)


@pytest.fixture
def voice() -> Callable[..., np.ndarray]:
    return make_voice


@pytest.fixture
def sine() -> Callable[..., np.ndarray]:
    def _sine(freq: float, duration: float = 1.0, amplitude: float = 0.5, sr: int = SR) -> np.ndarray:
        t = np.arange(int(duration * sr)) / sr
        return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)

    return _sine
