# store.py
"""
Key-value persistence used for the result cache and the last-seen-song marker.
"""
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from config import Config
from models import utcnow, parse_isoformat


class KeyValueStore(ABC):
    """get(key) -> value | None; put(key, value, ttl); delete(key). Values must be JSON-compatible."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def put(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemoryStore(KeyValueStore):
    """In-process store for tests and local development."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self._data: Dict[str, Tuple[Any, Optional[datetime]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self.clock():
                del self._data[key]
                return None
            return value

    def put(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = self.clock() + timedelta(seconds=ttl) if ttl is not None else None
        with self._lock:
            self._data[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SupabaseStore(KeyValueStore):
    """
    Rows of a Supabase table shaped (key text primary key, value jsonb, expires_at timestamptz null).
    Expired rows are ignored on read and replaced on the next write.
    """

    def __init__(self, client, table: str, clock: Callable[[], datetime] = utcnow):
        self.client = client
        self.table = table
        self.clock = clock

    def get(self, key: str) -> Optional[Any]:
        res = self.client.table(self.table).select('value,expires_at').eq('key', key).execute()
        if not res.data:
            return None
        row = res.data[0]
        expires_at = row.get('expires_at')
        if expires_at and parse_isoformat(expires_at) <= self.clock():
            return None
        return row.get('value')

    def put(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = (self.clock() + timedelta(seconds=ttl)).astimezone(timezone.utc) if ttl is not None else None
        payload = {
            'key': key,
            'value': value,
            'expires_at': expires_at.isoformat() if expires_at else None,
        }
        self.client.table(self.table).upsert(payload).execute()

    def delete(self, key: str) -> None:
        self.client.table(self.table).delete().eq('key', key).execute()


def create_stores(config: Config) -> Tuple[KeyValueStore, KeyValueStore]:
    """Build the (result cache, song state) pair for the configured backend."""
    if config.store_backend == "supabase":
        from supabase_client import get_supabase
        client = get_supabase(config.supabase_url, config.supabase_anon_key)
        return (SupabaseStore(client, config.result_cache_table),
                SupabaseStore(client, config.state_cache_table))
    if config.store_backend == "memory":
        return MemoryStore(), MemoryStore()
    raise ValueError(f"Unknown STORE_BACKEND: {config.store_backend}")
