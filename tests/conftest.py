import pytest
from datetime import datetime, timedelta, timezone

from models import TrackSnapshot
from recency import RecencyResolver
from store import MemoryStore
from tasks import BackgroundTasks


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start=datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


class FakeCredentials:
    def __init__(self, spotify="spotify-token", developer="dev-token", user="user-token"):
        self.spotify = spotify
        self.developer = developer
        self.user = user

    def spotify_access_token(self):
        return self.spotify

    def apple_developer_token(self):
        return self.developer

    def apple_user_token(self):
        return self.user


class StubTracker:
    """Stands in for a source adapter; counts how often it was asked."""

    def __init__(self, snapshot: TrackSnapshot):
        self.snapshot = snapshot
        self.calls = 0

    def get_data(self):
        self.calls += 1
        return self.snapshot


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state_store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def result_store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def resolver(state_store, clock):
    return RecencyResolver(state_store, "last_apple_song", clock=clock)


@pytest.fixture
def background():
    tasks = BackgroundTasks()
    yield tasks
    tasks.shutdown()
