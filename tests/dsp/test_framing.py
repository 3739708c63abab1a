from __future__ import annotations

import numpy as np
import pytest

from voiceid.dsp.framing import (
    frame_rms,
    frame_signal,
    hamming_window,
    resample_audio,
    validate_audio,
    voiced_frames,
    zero_crossing_rate,
)
from voiceid.errors import InvalidInputError


def test_hamming_window_shape_and_endpoints():
    window = hamming_window(512)

    assert window.shape == (512,)
    assert window[0] == pytest.approx(0.08)
    assert window[-1] == pytest.approx(0.08)
    assert window.max() == pytest.approx(1.0, abs=1e-4)
    np.testing.assert_allclose(window, window[::-1])
    assert not window.flags.writeable


def test_frame_signal_drops_partial_tail():
    audio = np.arange(1000, dtype=np.float32)

    frames = frame_signal(audio, 512, 256)

    # starts at 0 and 256; a frame at 512 would need 1024 samples
    assert frames.shape == (2, 512)
    assert frames[1, 0] == 256
    assert frames[1, -1] == 767


def test_frame_signal_short_buffer_yields_no_frames():
    frames = frame_signal(np.ones(100, dtype=np.float32), 512, 256)
    assert frames.shape == (0, 512)
    assert frame_rms(frames).size == 0


def test_voiced_frames_filters_quiet_frames():
    loud = 0.5 * np.ones(512, dtype=np.float32)
    quiet = 0.001 * np.ones(512, dtype=np.float32)
    audio = np.concatenate([loud, quiet, loud])

    frames, rms = voiced_frames(audio, 512, 512, 0.01)

    assert frames.shape == (2, 512)
    np.testing.assert_allclose(rms, [0.5, 0.5], rtol=1e-6)


def test_zero_crossing_rate_counts_sign_changes():
    assert zero_crossing_rate(np.array([1.0, -1.0, 1.0, -1.0])) == pytest.approx(0.75)
    assert zero_crossing_rate(np.array([0.0, 0.0, 1.0])) == 0.0
    assert zero_crossing_rate(np.array([])) == 0.0


def test_resample_same_rate_is_identity(voice):
    audio = voice(150.0, seed=3)

    out = resample_audio(audio, 16000, 16000)

    assert out is audio
    assert out.tobytes() == audio.tobytes()


def test_resample_halves_length_and_interpolates():
    audio = np.array([0.0, 1.0, 2.0, 3.0], dtype=np.float32)

    down = resample_audio(audio, 16000, 8000)
    up = resample_audio(audio, 8000, 16000)

    np.testing.assert_allclose(down, [0.0, 2.0])
    np.testing.assert_allclose(up, [0.0, 0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 3.0])


@pytest.mark.parametrize(
    "audio, sr",
    [(np.array([], dtype=np.float32), 16000), (np.ones(10), 0), (np.ones((2, 10)), 16000)],
)
def test_validate_audio_rejects_bad_input(audio, sr):
    with pytest.raises(InvalidInputError):
        validate_audio(audio, sr)
