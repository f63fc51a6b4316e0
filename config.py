# config.py
"""
Configuration module - reads credentials and runtime settings from the environment.
"""
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

RESULT_CACHE_KEY = "now_playing_result"
APPLE_STATE_KEY = "last_apple_song"

DEFAULT_CACHE_TTL = 120
MAX_CACHE_TTL = 600


def _env(*names: str, default: Optional[str] = None) -> Optional[str]:
    # Support either SPOTIFY_* or SPOTIPY_* names (backwards-compat)
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


@dataclass(frozen=True)
class Config:
    spotify_client_id: Optional[str] = None
    spotify_client_secret: Optional[str] = None
    spotify_refresh_token: Optional[str] = None
    spotify_redirect_uri: str = "http://localhost:8888/callback"

    apple_team_id: Optional[str] = None
    apple_key_id: Optional[str] = None
    apple_private_key: Optional[str] = None
    apple_music_user_token: Optional[str] = None

    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    store_backend: str = "memory"
    result_cache_table: str = "result_cache"
    state_cache_table: str = "apple_state_cache"

    upstream_timeout: float = 10.0
    log_level: str = "INFO"
    port: int = 8888

    @classmethod
    def from_env(cls) -> "Config":
        supabase_url = _env("SUPABASE_URL")
        supabase_anon_key = _env("SUPABASE_ANON_KEY")
        default_backend = "supabase" if supabase_url and supabase_anon_key else "memory"

        return cls(
            spotify_client_id=_env("SPOTIFY_CLIENT_ID", "SPOTIPY_CLIENT_ID"),
            spotify_client_secret=_env("SPOTIFY_CLIENT_SECRET", "SPOTIPY_CLIENT_SECRET"),
            spotify_refresh_token=_env("SPOTIFY_REFRESH_TOKEN"),
            spotify_redirect_uri=_env("SPOTIFY_REDIRECT_URI", "SPOTIPY_REDIRECT_URI",
                                      default="http://localhost:8888/callback"),
            apple_team_id=_env("APPLE_TEAM_ID"),
            apple_key_id=_env("APPLE_KEY_ID"),
            apple_private_key=_env("APPLE_PRIVATE_KEY"),
            apple_music_user_token=_env("APPLE_MUSIC_USER_TOKEN"),
            supabase_url=supabase_url,
            supabase_anon_key=supabase_anon_key,
            store_backend=_env("STORE_BACKEND", default=default_backend).lower(),
            result_cache_table=_env("RESULT_CACHE_TABLE", default="result_cache"),
            state_cache_table=_env("STATE_CACHE_TABLE", default="apple_state_cache"),
            upstream_timeout=float(_env("UPSTREAM_TIMEOUT", default="10")),
            log_level=_env("LOG_LEVEL", default="INFO").upper(),
            port=int(_env("PORT", default="8888")),
        )
