# backend/rentfolio/services/local_cache.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import Settings, settings as default_settings
from ..db import SessionLocal
from ..domain.codec import CacheDecodeError, decode_payload, encode_payload
from ..domain.state import RentalState
from ..models import LocalStorageEntry

log = logging.getLogger("rentfolio.local_cache")


class LocalCache:
    """
    Durable key/value "local storage".

    Two keys: the Base64-wrapped JSON snapshot of every collection, and the
    tombstone id list. Corrupt values read back as None / empty.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, cfg: Optional[Settings] = None) -> None:
        self._session_factory = session_factory
        cfg = cfg or default_settings
        self.data_key = cfg.local_cache_key
        self.tombstone_key = cfg.tombstone_cache_key

    # ---------------- raw key/value ----------------

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as db:
            row = db.scalar(select(LocalStorageEntry).where(LocalStorageEntry.key == key))
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            row = db.get(LocalStorageEntry, key)
            if row is None:
                db.add(LocalStorageEntry(key=key, value=value, updated_at=datetime.utcnow()))
            else:
                row.value = value
                row.updated_at = datetime.utcnow()
            db.commit()

    # ---------------- snapshot ----------------

    def save_snapshot(self, state: RentalState) -> None:
        self.set(self.data_key, encode_payload(state.to_snapshot()))

    def load_snapshot(self) -> Optional[RentalState]:
        blob = self.get(self.data_key)
        if not blob:
            return None
        try:
            data = decode_payload(blob)
            if not isinstance(data, dict):
                raise CacheDecodeError("cached snapshot is not an object")
            return RentalState.from_snapshot(data)
        except ValueError as e:
            # CacheDecodeError and pydantic's ValidationError are both ValueErrors
            log.error("local cache unreadable, ignoring it: %s", e)
            return None

    # ---------------- tombstones ----------------

    def save_tombstones(self, ids: set[str]) -> None:
        self.set(self.tombstone_key, json.dumps(sorted(ids)))

    def load_tombstones(self) -> set[str]:
        raw = self.get(self.tombstone_key)
        if not raw:
            return set()
        try:
            data = json.loads(raw)
        except ValueError:
            log.error("tombstone list unreadable, starting empty")
            return set()
        if not isinstance(data, list):
            return set()
        return {str(x) for x in data}
