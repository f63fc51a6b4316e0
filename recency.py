# recency.py
"""
Liveness inference for sources that only expose a "recently played" list.

The recently-played endpoint has no playing flag, so two polls are compared:
if the same song ID comes back and it was first seen less than one track
duration ago, it has plausibly been playing the whole time.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Tuple

from models import SongMarker, utcnow
from store import KeyValueStore

LOGGER = logging.getLogger(__name__)


class RecencyResolver:
    """Owns the last-seen-song marker stored under `key`."""

    def __init__(self, store: KeyValueStore, key: str, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.key = key
        self.clock = clock

    def load_marker(self):
        row = self.store.get(self.key)
        if not row:
            return None
        try:
            return SongMarker.from_dict(row)
        except (KeyError, TypeError, ValueError) as e:
            LOGGER.warning(f"Ignoring unreadable song marker under {self.key!r}: {e}")
            return None

    def resolve(self, song_id: str, duration_ms: int) -> Tuple[bool, datetime]:
        """Return (is_live, timestamp) for the latest song reported by the source."""
        now = self.clock()
        marker = self.load_marker()
        one_track_duration_ago = now - timedelta(milliseconds=duration_ms)

        if marker is None or marker.song_id != song_id:
            # A just-detected song can't be told apart from one already in progress
            self.store.put(self.key, SongMarker(song_id=song_id, observed_at=now).to_dict())
            LOGGER.debug(f"New song {song_id} observed at {now.isoformat()}")
            return False, now

        is_live = marker.observed_at > one_track_duration_ago
        LOGGER.debug(f"Song {song_id} seen again (first at {marker.observed_at.isoformat()}), live={is_live}")
        return is_live, marker.observed_at
