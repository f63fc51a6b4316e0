# models.py
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Any, Dict, List
from dataclasses import dataclass, field

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def from_epoch_ms(ms: float) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    return int(round(moment.timestamp() * 1000))


def isoformat(moment: datetime) -> str:
    """Render like JavaScript's Date.toISOString(), e.g. 2024-01-01T12:00:00.000Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_isoformat(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class TrackFetchError(Exception):
    """Base class for reasons a source could not produce a usable track."""


class CredentialFailure(TrackFetchError):
    """No usable bearer credential could be obtained."""


class UpstreamFailure(TrackFetchError):
    """Non-success HTTP status or malformed body from a source."""


class EmptyDataFailure(TrackFetchError):
    """Source answered but without track data usable for resolution."""


class Source(Enum):
    SPOTIFY = "Spotify"
    APPLE_MUSIC = "Apple Music"


@dataclass
class TrackSnapshot:
    success: bool
    is_playing: bool
    timestamp: datetime = EPOCH
    source: Optional[Source] = None
    duration_ms: Optional[int] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    album_image_url: Optional[str] = None
    song_url: Optional[str] = None
    error: Optional[str] = None

    @staticmethod
    def failure(error: str, now: Optional[datetime] = None) -> 'TrackSnapshot':
        return TrackSnapshot(success=False, is_playing=False, timestamp=now or utcnow(), error=error)

    @staticmethod
    def idle() -> 'TrackSnapshot':
        """A successful lookup with nothing playing."""
        return TrackSnapshot(success=True, is_playing=False, timestamp=EPOCH)

    def to_dict(self) -> Dict[str, Any]:
        body = {
            'success': self.success,
            'source': self.source.value if self.source else None,
            'timeStamp': isoformat(self.timestamp),
            'isPlaying': self.is_playing,
            'duration': self.duration_ms,
            'title': self.title,
            'artist': self.artist,
            'album': self.album,
            'albumImageUrl': self.album_image_url,
            'songUrl': self.song_url,
            'error': self.error,
        }
        return {k: v for k, v in body.items() if v is not None}


@dataclass
class SongMarker:
    """Last song ID seen from a source and when it was first observed."""
    song_id: str
    observed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {'songId': self.song_id, 'cachedAt': to_epoch_ms(self.observed_at)}

    @staticmethod
    def from_dict(row: Dict[str, Any]) -> 'SongMarker':
        return SongMarker(song_id=str(row['songId']), observed_at=from_epoch_ms(float(row['cachedAt'])))


@dataclass
class SpotifyPlayback:
    is_playing: bool
    timestamp: datetime
    duration_ms: int
    title: str
    artists: List[str] = field(default_factory=list)
    album: Optional[str] = None
    album_image_url: Optional[str] = None
    song_url: Optional[str] = None

    @staticmethod
    def from_payload(payload: Dict[str, Any]) -> 'SpotifyPlayback':
        item = payload.get('item')
        if not item:
            raise EmptyDataFailure("Spotify returned no track for the current playback.")
        try:
            album = item.get('album') or {}
            images = album.get('images') or []
            return SpotifyPlayback(
                is_playing=bool(payload['is_playing']),
                timestamp=from_epoch_ms(payload['timestamp']),
                duration_ms=int(item['duration_ms']),
                title=item['name'],
                artists=[artist['name'] for artist in item.get('artists', [])],
                album=album.get('name'),
                album_image_url=images[0]['url'] if images else None,
                song_url=(item.get('external_urls') or {}).get('spotify'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise EmptyDataFailure(f"Spotify returned an incomplete track: {e}") from e


@dataclass
class AppleRecentTrack:
    song_id: str
    duration_ms: int
    title: str
    artist: Optional[str] = None
    album: Optional[str] = None
    artwork_url: Optional[str] = None
    song_url: Optional[str] = None

    @staticmethod
    def from_payload(payload: Dict[str, Any]) -> 'AppleRecentTrack':
        data = payload.get('data') if isinstance(payload, dict) else None
        if not data:
            raise EmptyDataFailure("Apple Music returned no recently played tracks.")
        try:
            song = data[0]
            attributes = song['attributes']
            duration = int(attributes['durationInMillis'])
            artwork = attributes.get('artwork') or {}
            track = AppleRecentTrack(
                song_id=str(song['id']),
                duration_ms=duration,
                title=attributes['name'],
                artist=attributes.get('artistName'),
                album=attributes.get('albumName'),
                artwork_url=artwork.get('url'),
                song_url=attributes.get('url'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise EmptyDataFailure(f"Apple Music returned an incomplete track: {e}") from e
        if track.duration_ms <= 0:
            raise EmptyDataFailure("Apple Music returned a track without a duration.")
        return track

    def album_image(self, size: int = 500) -> Optional[str]:
        if not self.artwork_url:
            return None
        return self.artwork_url.replace('{w}', str(size)).replace('{h}', str(size))
