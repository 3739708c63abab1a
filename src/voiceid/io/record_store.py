"""JSON file persistence for voice records.

The identification core never writes storage itself; this store is the
small file-backed collaborator used by the CLI and by tests.  The document
layout is ``{"metadata": {...}, "speakers": {speakerId: record}}``; a bare
``{speakerId: record}`` mapping is also accepted on load.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..errors import VoiceIDError
from ..logger import logger
from ..records import VoiceRecord


class JSONRecordStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._metadata: dict[str, Any] = {}

    def _iso_now(self) -> str:
        return datetime.now(tz=UTC).isoformat(timespec="seconds")

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Record store load failed for %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Record store expected a JSON object at %s", self.path)
            return {}
        if "speakers" in data:
            meta = data.get("metadata")
            self._metadata = dict(meta) if isinstance(meta, dict) else {}
            speakers = data.get("speakers") or {}
            return speakers if isinstance(speakers, dict) else {}
        return data

    def load(self) -> list[VoiceRecord]:
        """Return every valid record; malformed entries are skipped with a warning."""

        records: list[VoiceRecord] = []
        for speaker_id, payload in self._read().items():
            if not isinstance(payload, dict):
                logger.warning("Skipping record %s: not an object", speaker_id)
                continue
            try:
                records.append(VoiceRecord.from_dict({"speakerId": speaker_id, **payload}))
            except VoiceIDError as exc:
                logger.warning("Skipping record %s: %s", speaker_id, exc)
        return records

    def save(self, records: Iterable[VoiceRecord]) -> None:
        """Atomically replace the file with ``records``."""

        speakers = {}
        for record in records:
            payload = record.to_dict()
            payload.pop("speakerId")
            speakers[record.speaker_id] = payload
        now = self._iso_now()
        self._metadata.setdefault("created_at", now)
        self._metadata["updated_at"] = now
        self._metadata["total_speakers"] = len(speakers)
        document = {"metadata": self._metadata, "speakers": speakers}

        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        try:
            temp_path.write_text(
                json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            temp_path.replace(self.path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
        logger.debug("Saved %d records to %s", len(speakers), self.path)


__all__ = ["JSONRecordStore"]
