from __future__ import annotations

from .record_store import JSONRecordStore

__all__ = ["JSONRecordStore"]
