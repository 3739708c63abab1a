"""High level identify/enroll entry points over a :class:`SpeakerRegistry`."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import numpy as np

from .config import FeatureConfig, MatchConfig
from .dsp.framing import resample_audio, validate_audio
from .dsp.mel import mel_filterbank
from .embedding import cosine_similarity, generate_embedding, merge_embeddings, validate_embedding
from .errors import InsufficientEnrollmentSamplesError, RecordNotFoundError
from .features.profile import MFCCProfile, average_profiles, extract_profile
from .logger import logger
from .matching import (
    Candidate,
    MatchTier,
    SpeakerMatch,
    decide_tier,
    rank_suggestions,
    score_records,
    score_sessions,
    session_label,
    silence_match,
)
from .records import VoiceRecord
from .registry import EnrollAction, SpeakerRegistry, coerce_action


class VoiceIdentifier:
    """Identify and enroll speakers for one user.

    Audio is resampled to ``feature_config.sample_rate`` before feature
    extraction so every voiceprint in a registry is comparable.  Input rates
    too low to carry the Mel range are rejected rather than upsampled.
    """

    def __init__(
        self,
        registry: SpeakerRegistry | None = None,
        feature_config: FeatureConfig | None = None,
        match_config: MatchConfig | None = None,
    ) -> None:
        self.feature_config = feature_config or FeatureConfig()
        self.match_config = match_config or MatchConfig()
        self.registry = registry or SpeakerRegistry(
            session_history=self.match_config.session_history
        )
        cfg = self.feature_config
        # Fail fast on a sample rate the filterbank cannot serve.
        mel_filterbank(cfg.frame_size, cfg.sample_rate, cfg.num_filters, cfg.min_freq, cfg.max_freq)

    # ------------------------------------------------------------------
    # Feature pipeline
    # ------------------------------------------------------------------
    def analyze(
        self, audio: Sequence[float] | np.ndarray, sample_rate: int
    ) -> tuple[MFCCProfile, np.ndarray]:
        """Return the profile and voiceprint of one utterance."""

        signal = validate_audio(audio, sample_rate)
        cfg = self.feature_config
        # Nyquist of the input rate must cover the Mel range.
        mel_filterbank(cfg.frame_size, int(sample_rate), cfg.num_filters, cfg.min_freq, cfg.max_freq)
        signal = resample_audio(signal, int(sample_rate), cfg.sample_rate)
        profile = extract_profile(signal, cfg.sample_rate, cfg)
        return profile, generate_embedding(profile)

    def _is_silent(self, profile: MFCCProfile) -> bool:
        return profile.is_silent(self.match_config.silence_energy)

    # ------------------------------------------------------------------
    # Identification
    # ------------------------------------------------------------------
    def identify(self, audio: Sequence[float] | np.ndarray, sample_rate: int) -> SpeakerMatch:
        profile, embedding = self.analyze(audio, sample_rate)
        if self._is_silent(profile):
            return silence_match()
        return self.identify_embedding(embedding, profile)

    def identify_embedding(
        self, embedding: Sequence[float] | np.ndarray, profile: MFCCProfile | None = None
    ) -> SpeakerMatch:
        """Run the match ladder for a precomputed voiceprint.

        Without a profile, an all-zero voiceprint is treated as silence.
        """

        vec = validate_embedding(embedding)
        silent = self._is_silent(profile) if profile is not None else not np.any(vec)
        if silent:
            return silence_match()

        cfg = self.match_config
        with self.registry.lock:
            owner_record = self.registry.owner()
            owner = None
            if owner_record is not None:
                owner = Candidate(
                    owner_record.speaker_id,
                    owner_record.speaker_name,
                    cosine_similarity(vec, owner_record.embedding),
                    owner_record,
                )
            known = score_records(vec, self.registry.known_records())
            sessions = score_sessions(vec, self.registry.session_embeddings())
            tier = decide_tier(
                silent=False,
                owner=owner,
                known=known[0] if known else None,
                session=sessions[0] if sessions else None,
                cfg=cfg,
            )

            if tier is MatchTier.OWNER:
                match = SpeakerMatch(
                    owner.speaker_id,
                    owner.speaker_name,
                    owner.confidence,
                    True,
                    tier,
                    record=owner.record,
                )
            elif tier is MatchTier.KNOWN:
                best = known[0]
                match = SpeakerMatch(
                    best.speaker_id, best.speaker_name, best.confidence, False, tier, record=best.record
                )
            else:
                candidates = sorted(
                    [*known, *([owner] if owner else [])], key=lambda c: c.confidence, reverse=True
                )
                suggestions = rank_suggestions(candidates, cfg)
                if tier is MatchTier.SESSION:
                    best = sessions[0]
                    match = SpeakerMatch(
                        best.speaker_id,
                        best.speaker_name,
                        best.confidence,
                        False,
                        tier,
                        suggestions=suggestions,
                    )
                else:
                    speaker_id = self.registry.new_session_speaker(vec)
                    match = SpeakerMatch(
                        speaker_id,
                        f"Unknown Speaker {session_label(speaker_id)}",
                        1.0,
                        False,
                        tier,
                        suggestions=suggestions,
                    )

        logger.debug(
            "Identified %s via %s tier (confidence %.3f)",
            match.speaker_id,
            match.tier.value,
            match.confidence,
        )
        return match

    def owner_confidence(self, audio: Sequence[float] | np.ndarray, sample_rate: int) -> float:
        """Similarity of ``audio`` to the owner voiceprint, ``0.0`` without an owner."""

        owner = self.registry.owner()
        if owner is None:
            return 0.0
        _, embedding = self.analyze(audio, sample_rate)
        return cosine_similarity(embedding, owner.embedding)

    def has_owner_voice(self) -> bool:
        return self.registry.has_owner()

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------
    def build_record(
        self,
        samples: Iterable[Sequence[float] | np.ndarray],
        sample_rate: int,
        speaker_id: str,
        speaker_name: str,
        is_owner: bool = False,
    ) -> VoiceRecord:
        """Turn raw enrollment samples into a record without touching the registry.

        Samples too quiet to carry a voice are dropped.  Profiles of the kept
        samples are averaged field by field; their voiceprints are summed and
        renormalised (the voiceprint is not derived from the averaged profile).
        """

        profiles: list[MFCCProfile] = []
        embeddings: list[np.ndarray] = []
        submitted = 0
        for idx, sample in enumerate(samples):
            submitted += 1
            profile, embedding = self.analyze(sample, sample_rate)
            if self._is_silent(profile):
                logger.warning(
                    "Enrollment sample %d for %s is too quiet (energy %.4f), skipping",
                    idx,
                    speaker_id,
                    profile.energy_mean,
                )
                continue
            profiles.append(profile)
            embeddings.append(embedding)

        if not embeddings:
            raise InsufficientEnrollmentSamplesError(
                "No enrollment sample was loud enough to use",
                {"speaker_id": speaker_id, "submitted": submitted},
            )

        return VoiceRecord(
            speaker_id=speaker_id,
            speaker_name=speaker_name,
            embedding=merge_embeddings(embeddings),
            mfcc_profile=average_profiles(profiles),
            is_owner=is_owner,
            # Counts retained samples only; quiet samples skipped above add no
            # weight to later merges.
            sample_count=len(embeddings),
        )

    def enroll(
        self,
        samples: Iterable[Sequence[float] | np.ndarray],
        sample_rate: int,
        speaker_id: str,
        speaker_name: str,
        is_owner: bool = False,
        action: EnrollAction | str = EnrollAction.ENROLL,
    ) -> VoiceRecord:
        """Enroll ``samples`` and store the result; the caller persists the return value."""

        action = coerce_action(action)
        if action is not EnrollAction.UPDATE:
            # Reject a second owner before running the DSP over every sample.
            self.registry.check_owner(speaker_id, is_owner)
        record = self.build_record(samples, sample_rate, speaker_id, speaker_name, is_owner)
        return self.registry.apply(record, action)

    def merge_sample(
        self, speaker_id: str, audio: Sequence[float] | np.ndarray, sample_rate: int
    ) -> VoiceRecord:
        """Strengthen an existing record with one more utterance."""

        existing = self.registry.get_record(speaker_id)
        if existing is None:
            raise RecordNotFoundError("voice record not found", {"speaker_id": speaker_id})
        return self.enroll(
            [audio],
            sample_rate,
            speaker_id,
            existing.speaker_name,
            existing.is_owner,
            action=EnrollAction.MERGE,
        )

    # ------------------------------------------------------------------
    # Session & persistence boundary
    # ------------------------------------------------------------------
    def add_session_sample(
        self, session_id: str, audio: Sequence[float] | np.ndarray, sample_rate: int
    ) -> bool:
        """Add an utterance to a session speaker; silent audio is ignored."""

        profile, embedding = self.analyze(audio, sample_rate)
        if self._is_silent(profile):
            logger.debug("Ignoring silent sample for %s", session_id)
            return False
        self.registry.add_session_embedding(session_id, embedding)
        return True

    def reset_session(self) -> None:
        self.registry.reset_session()

    def get_session_speaker_ids(self) -> list[str]:
        return self.registry.get_session_speaker_ids()

    def load_records(self, records: Iterable[VoiceRecord | Mapping[str, Any]]) -> None:
        self.registry.load_records(records)

    def get_record(self, speaker_id: str) -> VoiceRecord | None:
        return self.registry.get_record(speaker_id)


__all__ = ["VoiceIdentifier"]
