# music.py
"""
Music module - picks the most current track across sources and caches the result.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Tuple

from config import RESULT_CACHE_KEY, DEFAULT_CACHE_TTL, MAX_CACHE_TTL
from models import TrackSnapshot
from music_tracker import SpotifyTracker, AppleMusicTracker
from store import KeyValueStore

LOGGER = logging.getLogger(__name__)

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"


def resolve(spotify: TrackSnapshot, apple: TrackSnapshot) -> TrackSnapshot:
    """Spotify playback wins, then Apple Music playback, then whichever is more recent."""
    if spotify.is_playing:
        return spotify
    if apple.is_playing:
        return apple
    return spotify if spotify.timestamp >= apple.timestamp else apple


def cache_ttl(snapshot: TrackSnapshot) -> int:
    """Cache for one song length, capped at ten minutes."""
    if snapshot.duration_ms is not None:
        return min(snapshot.duration_ms // 1000, MAX_CACHE_TTL)
    return DEFAULT_CACHE_TTL


class MusicManager:
    """Handles all music-related operations."""

    def __init__(self, spotify: SpotifyTracker, apple: AppleMusicTracker, result_cache: KeyValueStore):
        self.spotify = spotify
        self.apple = apple
        self.result_cache = result_cache

    def read_cache(self) -> Optional[Dict[str, Any]]:
        try:
            return self.result_cache.get(RESULT_CACHE_KEY)
        except Exception as e:
            LOGGER.error(f"Error reading cached result: {e}")
            return None

    def evict(self) -> None:
        try:
            self.result_cache.delete(RESULT_CACHE_KEY)
        except Exception as e:
            LOGGER.error(f"Error evicting cached result: {e}")

    def write_cache(self, body: Dict[str, Any], ttl: int) -> None:
        try:
            self.result_cache.put(RESULT_CACHE_KEY, body, ttl=ttl)
            LOGGER.debug(f"Cached result for {ttl}s")
        except Exception as e:
            LOGGER.error(f"Error caching result: {e}")

    def fetch_all(self) -> Tuple[TrackSnapshot, TrackSnapshot]:
        """Query both sources concurrently; both results are needed before choosing."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="source") as pool:
            spotify_future = pool.submit(self.spotify.get_data)
            apple_future = pool.submit(self.apple.get_data)
            return spotify_future.result(), apple_future.result()

    def get_now_playing(self, no_cache: bool = False,
                        schedule: Optional[Callable[..., Any]] = None) -> Tuple[Dict[str, Any], str]:
        """
        Returns (response body, cache status). `schedule(fn, *args)` runs the cache
        write without holding up the response; without one the write happens inline.
        """
        if no_cache:
            LOGGER.info("Cache bypassed due to request parameter.")
            self.evict()
        else:
            cached = self.read_cache()
            if cached:
                LOGGER.info("Cache hit")
                return cached, CACHE_HIT

        spotify, apple = self.fetch_all()
        LOGGER.info(f"Spotify data: {spotify}")
        LOGGER.info(f"Apple Music data: {apple}")

        chosen = resolve(spotify, apple)
        body = chosen.to_dict()

        ttl = cache_ttl(chosen) if chosen.success else 0
        if ttl <= 0:
            # Failed lookups and sub-second tracks would expire before anyone read them
            LOGGER.debug("Result not cached")
        else:
            if schedule is not None:
                schedule(self.write_cache, body, ttl)
            else:
                self.write_cache(body, ttl)

        return body, CACHE_MISS
