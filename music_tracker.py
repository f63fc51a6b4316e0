# music_tracker.py
import logging
from datetime import datetime
from typing import Callable, Optional

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from auth import CredentialManager
from models import (TrackSnapshot, Source, SpotifyPlayback, AppleRecentTrack, utcnow,
                    TrackFetchError, CredentialFailure, UpstreamFailure)
from recency import RecencyResolver

LOGGER = logging.getLogger(__name__)

APPLE_RECENTLY_PLAYED_ENDPOINT = "https://api.music.apple.com/v1/me/recent/played/tracks?limit=1"


class SpotifyTracker:
    """Reads the live "currently playing" state from Spotify."""

    def __init__(self, credentials: CredentialManager, timeout: float = 10.0,
                 clock: Callable[[], datetime] = utcnow):
        self.credentials = credentials
        self.timeout = timeout
        self.clock = clock

    def create_client(self, access_token: str) -> spotipy.Spotify:
        return spotipy.Spotify(auth=access_token, requests_timeout=self.timeout,
                               retries=0, status_retries=0)

    def get_data(self) -> TrackSnapshot:
        try:
            return self.get_now_playing()
        except TrackFetchError as e:
            LOGGER.warning(f"Spotify lookup failed: {e}")
            return TrackSnapshot.failure(str(e), self.clock())
        except Exception as e:
            LOGGER.exception("Unexpected error while reading Spotify playback")
            return TrackSnapshot.failure(f"Failed to fetch from Spotify. {e}", self.clock())

    def get_now_playing(self) -> TrackSnapshot:
        access_token = self.credentials.spotify_access_token()
        if not access_token:
            raise CredentialFailure("Could not get access token for Spotify.")

        sp = self.create_client(access_token)
        try:
            current = sp.current_user_playing_track()
        except SpotifyException as e:
            reason = getattr(e, 'reason', None) or e.msg
            raise UpstreamFailure(f"Failed to fetch from Spotify. Status: {e.http_status} {reason}") from e
        except requests.RequestException as e:
            raise UpstreamFailure(f"Failed to fetch from Spotify. {e}") from e

        # Spotify answers 204 No Content when nothing is playing
        if not current:
            return TrackSnapshot.idle()

        playback = SpotifyPlayback.from_payload(current)
        return TrackSnapshot(
            success=True,
            source=Source.SPOTIFY,
            timestamp=playback.timestamp,
            duration_ms=playback.duration_ms,
            is_playing=playback.is_playing,
            title=playback.title,
            artist=', '.join(playback.artists),
            album=playback.album,
            album_image_url=playback.album_image_url,
            song_url=playback.song_url,
        )


class AppleMusicTracker:
    """Reads the most recently played Apple Music track and infers whether it is still playing."""

    def __init__(self, credentials: CredentialManager, resolver: RecencyResolver,
                 timeout: float = 10.0, session: Optional[requests.Session] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.credentials = credentials
        self.resolver = resolver
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock

    def get_data(self) -> TrackSnapshot:
        try:
            return self.get_recent_track()
        except TrackFetchError as e:
            LOGGER.warning(f"Apple Music lookup failed: {e}")
            return TrackSnapshot.failure(str(e), self.clock())
        except Exception as e:
            LOGGER.exception("Unexpected error while reading Apple Music history")
            return TrackSnapshot.failure(f"Failed to fetch from Apple Music. {e}", self.clock())

    def get_recent_track(self) -> TrackSnapshot:
        developer_token = self.credentials.apple_developer_token()
        user_token = self.credentials.apple_user_token()
        if not developer_token or not user_token:
            raise CredentialFailure("Could not generate Apple Developer Token.")

        try:
            response = self.session.get(
                APPLE_RECENTLY_PLAYED_ENDPOINT,
                headers={
                    'Authorization': f"Bearer {developer_token}",
                    'Music-User-Token': user_token,
                },
                timeout=self.timeout,
            )
            if response.status_code > 204 or not response.content:
                raise UpstreamFailure(
                    f"Failed to fetch from Apple Music. Status: {response.status_code} {response.reason}")
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            LOGGER.error(f"Apple Music API error: {e}")
            raise UpstreamFailure("Failed to fetch from Apple Music. Is the User Token valid?") from e

        track = AppleRecentTrack.from_payload(payload)
        is_live, timestamp = self.resolver.resolve(track.song_id, track.duration_ms)
        return self.format_song(track, is_live, timestamp)

    @staticmethod
    def format_song(track: AppleRecentTrack, is_live: bool, timestamp: datetime) -> TrackSnapshot:
        return TrackSnapshot(
            success=True,
            source=Source.APPLE_MUSIC,
            timestamp=timestamp,
            is_playing=is_live,
            duration_ms=track.duration_ms,
            title=track.title,
            artist=track.artist,
            album=track.album,
            album_image_url=track.album_image(),
            song_url=track.song_url,
        )
