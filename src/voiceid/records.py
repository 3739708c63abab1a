"""Durable voiceprint records exchanged with the persistence layer."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import numpy as np

from .embedding import validate_embedding
from .errors import InvalidInputError, attach_context
from .features.profile import MFCCProfile


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return utc_now()


@dataclass(frozen=True, eq=False)
class VoiceRecord:
    """One enrolled speaker.  The registry, not this type, enforces a single owner."""

    speaker_id: str
    speaker_name: str
    embedding: np.ndarray
    mfcc_profile: MFCCProfile = field(default_factory=MFCCProfile)
    is_owner: bool = False
    sample_count: int = 1
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.speaker_id:
            raise InvalidInputError("speaker_id is required", {"speaker_id": self.speaker_id})
        if int(self.sample_count) < 1:
            raise InvalidInputError(
                "sample_count must be >= 1",
                {"speaker_id": self.speaker_id, "sample_count": self.sample_count},
            )
        try:
            vec = validate_embedding(self.embedding).copy()
        except InvalidInputError as exc:
            raise attach_context(exc, {"speaker_id": self.speaker_id})
        vec.setflags(write=False)
        object.__setattr__(self, "embedding", vec)
        object.__setattr__(self, "sample_count", int(self.sample_count))
        object.__setattr__(self, "is_owner", bool(self.is_owner))

    def to_dict(self) -> dict[str, Any]:
        return {
            "speakerId": self.speaker_id,
            "speakerName": self.speaker_name,
            "embedding": self.embedding.tolist(),
            "mfccProfile": self.mfcc_profile.to_dict(),
            "isOwner": self.is_owner,
            "sampleCount": self.sample_count,
            "createdAt": self.created_at.isoformat(timespec="seconds"),
            "updatedAt": self.updated_at.isoformat(timespec="seconds"),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VoiceRecord:
        speaker_id = data.get("speakerId")
        embedding: Sequence[float] | None = data.get("embedding")
        if embedding is None:
            raise InvalidInputError("record has no embedding", {"speaker_id": speaker_id})
        profile_data = data.get("mfccProfile")
        profile = MFCCProfile.from_dict(profile_data) if profile_data else MFCCProfile()
        try:
            sample_count = int(data.get("sampleCount", 1))
            created_at = _parse_time(data.get("createdAt"))
            updated_at = _parse_time(data.get("updatedAt"))
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(
                "malformed voice record", {"speaker_id": speaker_id, "error": repr(exc)}
            ) from exc
        return cls(
            speaker_id=str(speaker_id or ""),
            speaker_name=str(data.get("speakerName") or "Unknown Speaker"),
            embedding=embedding,
            mfcc_profile=profile,
            is_owner=bool(data.get("isOwner", False)),
            sample_count=sample_count,
            created_at=created_at,
            updated_at=updated_at,
        )


__all__ = ["VoiceRecord", "utc_now"]
