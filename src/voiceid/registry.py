"""In-memory speaker registry for one user.

Holds the durable :class:`VoiceRecord` map (loaded from and returned to the
persistence layer by the caller) and the transient per-session voiceprints of
speakers that have not been given a durable identity yet.  All writes go
through one re-entrant lock so sample counts and the single-owner rule cannot
be lost to concurrent enrollments.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from dataclasses import replace
from enum import Enum
from typing import Any

import numpy as np

from .embedding import validate_embedding, weighted_merge
from .errors import DuplicateOwnerError, InvalidInputError, RecordNotFoundError
from .logger import logger
from .records import VoiceRecord, utc_now

SESSION_PREFIX = "session_"


class EnrollAction(str, Enum):
    ENROLL = "enroll"
    UPDATE = "update"
    MERGE = "merge"


def coerce_action(action: EnrollAction | str) -> EnrollAction:
    try:
        return EnrollAction(action)
    except ValueError as exc:
        raise InvalidInputError("unknown enrollment action", {"action": str(action)}) from exc


def _coerce_record(item: VoiceRecord | Mapping[str, Any]) -> VoiceRecord:
    if isinstance(item, VoiceRecord):
        return item
    if isinstance(item, Mapping):
        return VoiceRecord.from_dict(item)
    raise InvalidInputError("unsupported record type", {"type": type(item).__name__})


class SpeakerRegistry:
    def __init__(
        self,
        records: Iterable[VoiceRecord | Mapping[str, Any]] | None = None,
        *,
        session_history: int = 10,
    ) -> None:
        self._lock = threading.RLock()
        self._records: dict[str, VoiceRecord] = {}
        self._sessions: dict[str, list[np.ndarray]] = {}
        self._session_counter = 0
        self.session_history = int(session_history)
        if records is not None:
            self.load_records(records)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # ------------------------------------------------------------------
    # Durable records
    # ------------------------------------------------------------------
    def load_records(self, records: Iterable[VoiceRecord | Mapping[str, Any]]) -> None:
        """Replace the durable state with ``records``.

        Nothing is loaded if any record is malformed or more than one claims
        ownership.
        """

        loaded: dict[str, VoiceRecord] = {}
        owner_id: str | None = None
        for item in records:
            record = _coerce_record(item)
            if record.is_owner:
                if owner_id is not None and owner_id != record.speaker_id:
                    raise DuplicateOwnerError(
                        "more than one owner record supplied",
                        {"owner": owner_id, "speaker_id": record.speaker_id},
                    )
                owner_id = record.speaker_id
            loaded[record.speaker_id] = record
        with self._lock:
            self._records = loaded
        logger.info(
            "Loaded %d voice records, owner: %s", len(loaded), "yes" if owner_id else "no"
        )

    def get_record(self, speaker_id: str) -> VoiceRecord | None:
        with self._lock:
            return self._records.get(speaker_id)

    def has(self, speaker_id: str) -> bool:
        with self._lock:
            return speaker_id in self._records

    def records(self) -> list[VoiceRecord]:
        with self._lock:
            return list(self._records.values())

    def owner(self) -> VoiceRecord | None:
        with self._lock:
            return next((r for r in self._records.values() if r.is_owner), None)

    def has_owner(self) -> bool:
        return self.owner() is not None

    def known_records(self) -> list[VoiceRecord]:
        """Every durable record except the owner."""

        with self._lock:
            return [r for r in self._records.values() if not r.is_owner]

    def check_owner(self, speaker_id: str, is_owner: bool) -> None:
        """Raise :class:`DuplicateOwnerError` if ``speaker_id`` cannot become owner."""

        if not is_owner:
            return
        current = self.owner()
        if current is not None and current.speaker_id != speaker_id:
            raise DuplicateOwnerError(
                "Owner voice already enrolled. Use the update action to replace it.",
                {"owner": current.speaker_id, "speaker_id": speaker_id},
            )

    def apply(
        self, record: VoiceRecord, action: EnrollAction | str = EnrollAction.ENROLL
    ) -> VoiceRecord:
        action = coerce_action(action)
        if action is EnrollAction.UPDATE:
            return self.update_record(record)
        if action is EnrollAction.MERGE:
            return self.merge_record(record)
        return self.enroll_record(record)

    def enroll_record(self, record: VoiceRecord) -> VoiceRecord:
        """Create ``record`` or replace the voiceprint of an existing speaker.

        Replacing keeps the original creation time and adds the new samples to
        the stored sample count.
        """

        with self._lock:
            self.check_owner(record.speaker_id, record.is_owner)
            existing = self._records.get(record.speaker_id)
            if existing is not None:
                record = replace(
                    record,
                    sample_count=existing.sample_count + record.sample_count,
                    created_at=existing.created_at,
                    updated_at=utc_now(),
                )
            self._records[record.speaker_id] = record
        logger.info(
            "Enrolled speaker %s (%d samples, owner=%s)",
            record.speaker_id,
            record.sample_count,
            record.is_owner,
        )
        return record

    def update_record(self, record: VoiceRecord) -> VoiceRecord:
        """Full replacement; the only path allowed to move the owner flag."""

        with self._lock:
            if record.is_owner:
                current = self.owner()
                if current is not None and current.speaker_id != record.speaker_id:
                    self._records[current.speaker_id] = replace(
                        current, is_owner=False, updated_at=utc_now()
                    )
                    logger.info("Owner flag moved from %s to %s", current.speaker_id, record.speaker_id)
            existing = self._records.get(record.speaker_id)
            if existing is not None:
                record = replace(
                    record,
                    sample_count=existing.sample_count,
                    created_at=existing.created_at,
                    updated_at=utc_now(),
                )
            self._records[record.speaker_id] = record
        return record

    def merge_record(self, record: VoiceRecord) -> VoiceRecord:
        """Fold ``record``'s voiceprint into the stored one, weighted by sample count."""

        with self._lock:
            existing = self._records.get(record.speaker_id)
            if existing is None:
                return self.enroll_record(record)
            merged = weighted_merge(
                existing.embedding,
                record.embedding,
                existing.sample_count,
                sample_weight=record.sample_count,
            )
            updated = replace(
                existing,
                embedding=merged,
                mfcc_profile=record.mfcc_profile,
                speaker_name=record.speaker_name or existing.speaker_name,
                sample_count=existing.sample_count + record.sample_count,
                updated_at=utc_now(),
            )
            self._records[record.speaker_id] = updated
        logger.info(
            "Merged %d sample(s) into %s (now %d)",
            record.sample_count,
            updated.speaker_id,
            updated.sample_count,
        )
        return updated

    def remove_record(self, speaker_id: str) -> VoiceRecord:
        with self._lock:
            removed = self._records.pop(speaker_id, None)
        if removed is None:
            raise RecordNotFoundError("voice record not found", {"speaker_id": speaker_id})
        logger.info("Removed voice record %s", speaker_id)
        return removed

    # ------------------------------------------------------------------
    # Session speakers
    # ------------------------------------------------------------------
    def new_session_speaker(self, embedding: np.ndarray) -> str:
        vec = validate_embedding(embedding)
        with self._lock:
            self._session_counter += 1
            speaker_id = f"{SESSION_PREFIX}{self._session_counter}"
            self._sessions[speaker_id] = [vec]
        logger.debug("New session speaker %s", speaker_id)
        return speaker_id

    def add_session_embedding(self, speaker_id: str, embedding: np.ndarray) -> int:
        """Append a voiceprint to a session speaker, keeping the most recent ones."""

        vec = validate_embedding(embedding)
        with self._lock:
            history = self._sessions.get(speaker_id)
            if history is None:
                raise RecordNotFoundError("session speaker not found", {"speaker_id": speaker_id})
            history.append(vec)
            if len(history) > self.session_history:
                del history[: len(history) - self.session_history]
            return len(history)

    def session_embeddings(self) -> dict[str, list[np.ndarray]]:
        with self._lock:
            return {sid: list(history) for sid, history in self._sessions.items()}

    def get_session_speaker_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def reset_session(self) -> None:
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            self._session_counter = 0
        logger.debug("Session reset, dropped %d session speaker(s)", count)


__all__ = ["EnrollAction", "SESSION_PREFIX", "SpeakerRegistry", "coerce_action"]
