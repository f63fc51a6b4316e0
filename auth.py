# auth.py
"""
Authentication module - turns stored secrets into short-lived upstream credentials.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

import jwt
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth

from config import Config
from models import utcnow

LOGGER = logging.getLogger(__name__)

APPLE_TOKEN_LIFETIME = timedelta(hours=1)


class CredentialManager:
    """Produces bearer credentials for Spotify and Apple Music, or None on failure."""

    def __init__(self, config: Config, clock: Callable[[], datetime] = utcnow):
        self.config = config
        self.clock = clock

    def create_spotify_oauth(self) -> Optional[SpotifyOAuth]:
        if not (self.config.spotify_client_id and self.config.spotify_client_secret):
            return None
        return SpotifyOAuth(
            client_id=self.config.spotify_client_id,
            client_secret=self.config.spotify_client_secret,
            redirect_uri=self.config.spotify_redirect_uri,
            scope="user-read-playback-state user-read-currently-playing",
            cache_handler=MemoryCacheHandler(),
            open_browser=False,
            requests_timeout=self.config.upstream_timeout,
        )

    def spotify_access_token(self) -> Optional[str]:
        """Exchange the stored refresh token for an access token."""
        spotify_oauth = self.create_spotify_oauth()
        if spotify_oauth is None or not self.config.spotify_refresh_token:
            LOGGER.warning("Cannot refresh Spotify token: Spotify credentials not configured.")
            return None
        try:
            token_info = spotify_oauth.refresh_access_token(self.config.spotify_refresh_token)
        except Exception as e:
            LOGGER.error(f"Error refreshing Spotify token: {e}")
            return None
        if not token_info or not token_info.get('access_token'):
            LOGGER.error("Spotify token response did not include an access token.")
            return None
        return token_info['access_token']

    def apple_developer_token(self) -> Optional[str]:
        """Mint a one-hour ES256 developer token signed with the stored private key."""
        if not (self.config.apple_team_id and self.config.apple_key_id and self.config.apple_private_key):
            LOGGER.warning("Cannot mint Apple Music token: Apple credentials not configured.")
            return None

        # Keys pasted into env files usually carry literal \n sequences
        private_key = self.config.apple_private_key.replace('\\n', '\n')
        issued_at = self.clock()
        claims = {
            'iss': self.config.apple_team_id,
            'iat': int(issued_at.timestamp()),
            'exp': int((issued_at + APPLE_TOKEN_LIFETIME).timestamp()),
        }
        try:
            return jwt.encode(claims, private_key, algorithm='ES256',
                              headers={'kid': self.config.apple_key_id})
        except Exception as e:
            LOGGER.error(f"Apple Music token generation error: {e}")
            return None

    def apple_user_token(self) -> Optional[str]:
        return self.config.apple_music_user_token
