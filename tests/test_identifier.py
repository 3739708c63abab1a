"""End-to-end identification and enrollment scenarios."""

from __future__ import annotations

import numpy as np
import pytest

from voiceid.config import FeatureConfig
from voiceid.errors import (
    ConfigurationError,
    DuplicateOwnerError,
    InsufficientEnrollmentSamplesError,
    InvalidInputError,
    RecordNotFoundError,
)
from voiceid.identifier import VoiceIdentifier
from voiceid.matching import MatchTier
from voiceid.records import VoiceRecord
from voiceid.registry import EnrollAction, SpeakerRegistry


def _basis(*indices: int) -> np.ndarray:
    vec = np.zeros(128)
    vec[list(indices)] = 1.0
    return vec / np.linalg.norm(vec)


@pytest.fixture
def identifier() -> VoiceIdentifier:
    return VoiceIdentifier()


def test_silent_buffer_identifies_as_silence(identifier):
    for audio in (np.zeros(16000, dtype=np.float32), np.full(16000, 1e-4, dtype=np.float32)):
        match = identifier.identify(audio, 16000)

        assert match.speaker_id == "silence"
        assert match.confidence == 0.0
        assert not match.is_owner
    assert identifier.get_session_speaker_ids() == []


def test_novel_voice_without_records_becomes_session_speaker(identifier, voice):
    match = identifier.identify(voice(180.0, seed=11), 16000)

    assert match.tier is MatchTier.NEW
    assert match.speaker_id == "session_1"
    assert match.confidence == 1.0
    assert not match.is_owner
    assert identifier.get_session_speaker_ids() == ["session_1"]


def test_repeat_voice_matches_session_speaker(identifier, voice):
    audio = voice(180.0, seed=11)
    identifier.identify(audio, 16000)

    match = identifier.identify(audio, 16000)

    assert match.tier is MatchTier.SESSION
    assert match.speaker_id == "session_1"
    assert match.confidence == pytest.approx(1.0)

    identifier.reset_session()
    assert identifier.identify(audio, 16000).tier is MatchTier.NEW


def test_same_audio_as_owner_enrollment_matches_owner(identifier, voice):
    audio = voice(120.0, seed=2)
    record = identifier.enroll([audio], 16000, "owner", "Ada", is_owner=True)

    match = identifier.identify(audio, 16000)

    assert match.is_owner
    assert match.tier is MatchTier.OWNER
    assert match.speaker_id == "owner"
    assert match.speaker_name == "Ada"
    assert match.confidence == pytest.approx(1.0)
    assert match.record is record
    assert identifier.owner_confidence(audio, 16000) == pytest.approx(1.0)


def test_owner_enrolled_from_five_samples_matches_sixth(identifier, voice):
    samples = [voice(120.0 + i, seed=100 + i) for i in range(5)]
    record = identifier.enroll(samples, 16000, "owner", "Ada", is_owner=True)

    match = identifier.identify(voice(123.0, seed=200), 16000)

    assert record.sample_count == 5
    assert np.linalg.norm(record.embedding) == pytest.approx(1.0)
    assert match.is_owner
    assert match.confidence >= 0.82


def test_identify_resamples_to_configured_rate(identifier, voice):
    audio = voice(120.0, seed=2)
    identifier.enroll([audio], 16000, "owner", "Ada", is_owner=True)
    upsampled = np.interp(np.arange(32000) / 2.0, np.arange(16000), audio).astype(np.float32)

    match = identifier.identify(upsampled, 32000)

    assert match.is_owner


def test_second_owner_is_rejected(identifier, voice):
    identifier.enroll([voice(120.0, seed=1)], 16000, "ada", "Ada", is_owner=True)

    with pytest.raises(DuplicateOwnerError):
        identifier.enroll([voice(200.0, seed=2)], 16000, "bea", "Bea", is_owner=True)

    record = identifier.enroll(
        [voice(200.0, seed=2)], 16000, "bea", "Bea", is_owner=True, action=EnrollAction.UPDATE
    )
    assert record.is_owner
    assert not identifier.get_record("ada").is_owner


def test_enrollment_drops_quiet_samples(identifier, voice):
    quiet = np.zeros(16000, dtype=np.float32)

    record = identifier.enroll([quiet, voice(150.0, seed=4), quiet], 16000, "bob", "Bob")

    assert record.sample_count == 1


def test_enrollment_with_only_quiet_samples_fails(identifier):
    quiet = np.zeros(16000, dtype=np.float32)

    with pytest.raises(InsufficientEnrollmentSamplesError) as info:
        identifier.enroll([quiet, quiet], 16000, "bob", "Bob")

    assert info.value.context["submitted"] == 2
    assert identifier.get_record("bob") is None


def test_enrollment_embedding_is_merged_not_derived_from_average(identifier, voice):
    a, b = voice(110.0, seed=5), voice(210.0, seed=6)
    _, emb_a = identifier.analyze(a, 16000)
    _, emb_b = identifier.analyze(b, 16000)

    record = identifier.build_record([a, b], 16000, "x", "X")

    expected = (emb_a + emb_b) / np.linalg.norm(emb_a + emb_b)
    np.testing.assert_allclose(record.embedding, expected)


def test_merge_sample_updates_existing_record(identifier, voice):
    identifier.enroll([voice(150.0, seed=4)], 16000, "bob", "Bob")

    merged = identifier.merge_sample("bob", voice(152.0, seed=5), 16000)

    assert merged.sample_count == 2
    with pytest.raises(RecordNotFoundError):
        identifier.merge_sample("nobody", voice(150.0, seed=4), 16000)


def test_known_speaker_tier_and_owner_precedence():
    registry = SpeakerRegistry(
        [
            VoiceRecord("ada", "Ada", _basis(0), is_owner=True),
            VoiceRecord("bob", "Bob", _basis(1)),
        ]
    )
    identifier = VoiceIdentifier(registry)

    known = identifier.identify_embedding(_basis(1))
    owner = identifier.identify_embedding(_basis(0))

    assert known.tier is MatchTier.KNOWN
    assert known.speaker_id == "bob"
    assert not known.is_owner
    assert owner.tier is MatchTier.OWNER
    assert owner.is_owner


def test_new_speaker_gets_suggestions_for_near_misses():
    registry = SpeakerRegistry([VoiceRecord("bob", "Bob", _basis(0))])
    identifier = VoiceIdentifier(registry)
    # cosine 0.7 with bob: below the known threshold, above the suggestion floor
    query = 0.7 * _basis(0) + np.sqrt(1 - 0.49) * _basis(5)

    match = identifier.identify_embedding(query)

    assert match.tier is MatchTier.NEW
    assert [c.speaker_id for c in match.suggestions] == ["bob"]
    assert match.suggestions[0].confidence == pytest.approx(0.7)


def test_add_session_sample(identifier, voice):
    session_id = identifier.identify(voice(180.0, seed=11), 16000).speaker_id

    assert identifier.add_session_sample(session_id, voice(181.0, seed=12), 16000)
    assert not identifier.add_session_sample(session_id, np.zeros(16000), 16000)
    assert len(identifier.registry.session_embeddings()[session_id]) == 2


def test_identify_rejects_empty_buffer(identifier):
    with pytest.raises(InvalidInputError):
        identifier.identify(np.array([], dtype=np.float32), 16000)


def test_identify_embedding_rejects_wrong_length(identifier):
    with pytest.raises(InvalidInputError):
        identifier.identify_embedding(np.ones(64))


def test_unsupported_sample_rate_fails_at_construction():
    with pytest.raises((InvalidInputError, ConfigurationError)):
        VoiceIdentifier(feature_config=FeatureConfig(sample_rate=8000))


@pytest.mark.parametrize("sample_rate", [1, 8000, 12000])
def test_input_rate_below_mel_range_is_rejected(identifier, voice, sample_rate):
    audio = voice(150.0, seed=3)

    with pytest.raises(InvalidInputError):
        identifier.identify(audio, sample_rate)
    with pytest.raises(InvalidInputError):
        identifier.enroll([audio], sample_rate, "ada", "Ada")
    assert identifier.get_session_speaker_ids() == []
    assert identifier.get_record("ada") is None


def test_higher_input_rate_is_resampled(identifier, voice):
    match = identifier.identify(voice(150.0, seed=3, sr=32000), 32000)

    assert match.tier is MatchTier.NEW


def test_no_owner_confidence_is_zero(identifier, voice):
    assert not identifier.has_owner_voice()
    assert identifier.owner_confidence(voice(150.0, seed=1), 16000) == 0.0
