"""
database/live_cache.py

Process-local cache holding the live state of every match in progress.

Each entry is the JSON text of ``MatchState.to_dict()`` keyed by match id,
always read and written whole. Entries expire after ``ttl_seconds`` so
abandoned matches do not pile up in memory. Because the store lives inside
one process, gunicorn must run a single worker (see gunicorn.conf.py).
"""

import json
import logging
import threading
import time
from typing import Dict, Optional, Tuple

from engine.errors import InfrastructureError
from engine.match_state import MatchState

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 3600


def make_key(match_id) -> str:
    match_id = str(match_id).strip()
    if not match_id:
        raise ValueError("Match id must be non-empty")
    return f"live:{match_id}"


class LiveStateCache:
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        # key -> (expires_at_epoch, json text)
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    def load(self, match_id) -> Optional[MatchState]:
        key = make_key(match_id)
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            expires_at, blob = item
            if time.time() > expires_at:
                self._entries.pop(key, None)
                logger.info(f"[LiveCache] Expired live state for match {match_id}")
                return None

        try:
            return MatchState.from_dict(json.loads(blob))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"[LiveCache] Corrupt live state for match {match_id}: {e}", exc_info=True)
            raise InfrastructureError("Live match state could not be read") from e

    def store(self, match_id, state: MatchState) -> None:
        try:
            blob = json.dumps(state.to_dict())
        except (TypeError, ValueError) as e:
            logger.error(f"[LiveCache] Could not encode live state for match {match_id}: {e}", exc_info=True)
            raise InfrastructureError("Live match state could not be saved") from e

        with self._lock:
            self._entries[make_key(match_id)] = (time.time() + self.ttl_seconds, blob)

    def delete(self, match_id) -> bool:
        with self._lock:
            return self._entries.pop(make_key(match_id), None) is not None

    def purge_expired(self) -> int:
        now = time.time()
        with self._lock:
            expired = [k for k, (exp, _) in self._entries.items() if exp < now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"[LiveCache] Purged {len(expired)} expired live states")
        return len(expired)

    def __len__(self):
        with self._lock:
            return len(self._entries)
