"""Tiered decision ladder turning similarities into a speaker match.

The order is fixed: silence, then the owner, then other enrolled speakers,
then speakers seen earlier in this session, and finally a brand-new session
speaker.  The owner is checked on its own threshold before any other record
so that a merely similar known speaker can never shadow them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .config import MatchConfig
from .embedding import cosine_similarity, merge_embeddings
from .records import VoiceRecord

SILENCE_ID = "silence"


class MatchTier(str, Enum):
    SILENCE = "silence"
    OWNER = "owner"
    KNOWN = "known"
    SESSION = "session"
    NEW = "new"


@dataclass(frozen=True)
class Candidate:
    speaker_id: str
    speaker_name: str
    confidence: float
    record: VoiceRecord | None = None


@dataclass(frozen=True)
class SpeakerMatch:
    speaker_id: str
    speaker_name: str
    confidence: float
    is_owner: bool
    tier: MatchTier
    record: VoiceRecord | None = None
    suggestions: tuple[Candidate, ...] = ()

    @property
    def is_silence(self) -> bool:
        return self.tier is MatchTier.SILENCE

    @property
    def is_new_speaker(self) -> bool:
        return self.tier is MatchTier.NEW

    def to_dict(self) -> dict[str, object]:
        return {
            "speakerId": self.speaker_id,
            "speakerName": self.speaker_name,
            "confidence": self.confidence,
            "isOwner": self.is_owner,
            "tier": self.tier.value,
            "suggestions": [
                {"speakerId": c.speaker_id, "speakerName": c.speaker_name, "confidence": c.confidence}
                for c in self.suggestions
            ],
        }


def silence_match() -> SpeakerMatch:
    return SpeakerMatch(
        speaker_id=SILENCE_ID,
        speaker_name="Silence",
        confidence=0.0,
        is_owner=False,
        tier=MatchTier.SILENCE,
    )


def session_label(session_id: str) -> str:
    """``session_3`` → ``3``; anything else is returned unchanged."""

    _, _, suffix = session_id.partition("_")
    return suffix or "Unknown"


def score_records(embedding: np.ndarray, records: Iterable[VoiceRecord]) -> list[Candidate]:
    """Similarity against each record, best first."""

    scored = [
        Candidate(r.speaker_id, r.speaker_name, cosine_similarity(embedding, r.embedding), r)
        for r in records
    ]
    scored.sort(key=lambda c: c.confidence, reverse=True)
    return scored


def score_sessions(
    embedding: np.ndarray, sessions: Mapping[str, Sequence[np.ndarray]]
) -> list[Candidate]:
    """Similarity against each session speaker's merged voiceprint, best first."""

    scored = [
        Candidate(
            sid,
            f"Speaker {session_label(sid)}",
            cosine_similarity(embedding, merge_embeddings(history)),
        )
        for sid, history in sessions.items()
        if history
    ]
    scored.sort(key=lambda c: c.confidence, reverse=True)
    return scored


def decide_tier(
    *,
    silent: bool,
    owner: Candidate | None,
    known: Candidate | None,
    session: Candidate | None,
    cfg: MatchConfig,
) -> MatchTier:
    """Single decision function for the match ladder; each branch is terminal."""

    if silent:
        return MatchTier.SILENCE
    if owner is not None and owner.confidence >= cfg.owner_threshold:
        return MatchTier.OWNER
    if known is not None and known.confidence >= cfg.known_threshold:
        return MatchTier.KNOWN
    if session is not None and session.confidence >= cfg.session_threshold:
        return MatchTier.SESSION
    return MatchTier.NEW


def rank_suggestions(candidates: Sequence[Candidate], cfg: MatchConfig) -> tuple[Candidate, ...]:
    """Near misses worth offering for manual labelling."""

    near = [
        c
        for c in candidates
        if cfg.suggestion_threshold <= c.confidence < cfg.known_threshold
    ]
    return tuple(near[: cfg.max_suggestions])


__all__ = [
    "SILENCE_ID",
    "Candidate",
    "MatchTier",
    "SpeakerMatch",
    "decide_tier",
    "rank_suggestions",
    "score_records",
    "score_sessions",
    "session_label",
    "silence_match",
]
