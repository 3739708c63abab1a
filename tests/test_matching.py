from __future__ import annotations

import numpy as np
import pytest

from voiceid.config import MatchConfig
from voiceid.matching import (
    Candidate,
    MatchTier,
    decide_tier,
    rank_suggestions,
    score_records,
    score_sessions,
    session_label,
    silence_match,
)
from voiceid.records import VoiceRecord

CFG = MatchConfig()


def _cand(confidence: float, speaker_id: str = "x") -> Candidate:
    return Candidate(speaker_id, speaker_id.title(), confidence)


def _basis(index: int) -> np.ndarray:
    vec = np.zeros(128)
    vec[index] = 1.0
    return vec


def test_silence_wins_over_everything():
    tier = decide_tier(silent=True, owner=_cand(1.0), known=_cand(1.0), session=_cand(1.0), cfg=CFG)
    assert tier is MatchTier.SILENCE


def test_owner_is_never_shadowed_by_a_closer_known_speaker():
    tier = decide_tier(
        silent=False, owner=_cand(0.83), known=_cand(0.99), session=_cand(0.99), cfg=CFG
    )
    assert tier is MatchTier.OWNER


def test_owner_below_threshold_falls_through_to_known():
    tier = decide_tier(silent=False, owner=_cand(0.81), known=_cand(0.76), session=None, cfg=CFG)
    assert tier is MatchTier.KNOWN


def test_known_before_session():
    tier = decide_tier(silent=False, owner=None, known=_cand(0.75), session=_cand(0.99), cfg=CFG)
    assert tier is MatchTier.KNOWN


def test_session_then_new():
    assert (
        decide_tier(silent=False, owner=None, known=_cand(0.5), session=_cand(0.8), cfg=CFG)
        is MatchTier.SESSION
    )
    assert (
        decide_tier(silent=False, owner=None, known=_cand(0.5), session=_cand(0.7), cfg=CFG)
        is MatchTier.NEW
    )
    assert decide_tier(silent=False, owner=None, known=None, session=None, cfg=CFG) is MatchTier.NEW


def test_thresholds_are_configurable():
    strict = MatchConfig(owner_threshold=0.95, known_threshold=0.9, session_threshold=0.9)
    tier = decide_tier(silent=False, owner=_cand(0.9), known=_cand(0.85), session=None, cfg=strict)
    assert tier is MatchTier.NEW


def test_score_records_sorted_best_first():
    query = _basis(0) + 0.5 * _basis(1)
    records = [
        VoiceRecord("a", "A", _basis(1)),
        VoiceRecord("b", "B", _basis(0)),
    ]

    scored = score_records(query, records)

    assert [c.speaker_id for c in scored] == ["b", "a"]
    assert scored[0].record is records[1]


def test_score_sessions_uses_merged_history():
    sessions = {"session_1": [_basis(0), _basis(1)], "session_2": [], "session_3": [_basis(2)]}

    scored = score_sessions(_basis(0) + _basis(1), sessions)

    assert [c.speaker_id for c in scored] == ["session_1", "session_3"]
    assert scored[0].confidence == pytest.approx(1.0)
    assert scored[0].speaker_name == "Speaker 1"


def test_rank_suggestions_keeps_near_misses():
    candidates = [_cand(0.9, "a"), _cand(0.74, "b"), _cand(0.7, "c"), _cand(0.65, "d"), _cand(0.61, "e"), _cand(0.4, "f")]

    suggestions = rank_suggestions(candidates, CFG)

    assert [c.speaker_id for c in suggestions] == ["b", "c", "d"]


def test_silence_match_shape():
    match = silence_match()
    assert match.speaker_id == "silence"
    assert match.confidence == 0.0
    assert not match.is_owner
    assert match.is_silence
    assert match.to_dict()["tier"] == "silence"


def test_session_label():
    assert session_label("session_12") == "12"
    assert session_label("guest") == "Unknown"
