from __future__ import annotations

import pytest

from voiceid.config import FeatureConfig, MatchConfig, build_config
from voiceid.errors import ConfigurationError


def test_defaults():
    features = FeatureConfig()
    match = MatchConfig()

    assert (features.frame_size, features.hop_size, features.num_filters) == (512, 256, 26)
    assert (features.min_freq, features.max_freq) == (300.0, 8000.0)
    assert (match.owner_threshold, match.known_threshold) == (0.82, 0.75)


@pytest.mark.parametrize(
    "overrides",
    [
        {"frame_size": 500},
        {"hop_size": 0},
        {"min_freq": 9000.0},
        {"num_mfcc": 40},
        {"num_mfcc": 12},
        {"num_filters": 10},
        {"pitch_max_hz": 10.0},
    ],
)
def test_feature_config_validation(overrides):
    with pytest.raises(ConfigurationError):
        FeatureConfig(**overrides)


def test_match_config_validation():
    with pytest.raises(ConfigurationError):
        MatchConfig(owner_threshold=1.5)
    with pytest.raises(ConfigurationError):
        MatchConfig(suggestion_threshold=0.9)


def test_match_config_from_env(monkeypatch):
    monkeypatch.setenv("VOICEID_OWNER_THRESHOLD", "0.9")
    monkeypatch.setenv("VOICEID_KNOWN_THRESHOLD", "")

    cfg = MatchConfig.from_env()

    assert cfg.owner_threshold == 0.9
    assert cfg.known_threshold == 0.75

    monkeypatch.setenv("VOICEID_SESSION_THRESHOLD", "high")
    with pytest.raises(ConfigurationError):
        MatchConfig.from_env()


def test_build_config_merges_overrides():
    cfg = build_config(MatchConfig(), {"known_threshold": 0.7, "owner_threshold": None})

    assert cfg.known_threshold == 0.7
    assert cfg.owner_threshold == 0.82
    with pytest.raises(ConfigurationError):
        build_config(MatchConfig(), {"nope": 1})
