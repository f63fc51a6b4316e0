from datetime import timedelta

from models import isoformat
from store import MemoryStore, SupabaseStore, create_stores
from config import Config


def test_memory_store_expires_entries(clock):
    store = MemoryStore(clock=clock)
    store.put("k", {"a": 1}, ttl=10)

    clock.advance(9)
    assert store.get("k") == {"a": 1}
    clock.advance(1)
    assert store.get("k") is None


def test_memory_store_without_ttl_keeps_value(clock):
    store = MemoryStore(clock=clock)
    store.put("k", "v")
    clock.advance(10 ** 6)
    assert store.get("k") == "v"
    store.delete("k")
    assert store.get("k") is None


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, table, action, payload=None):
        self.table = table
        self.action = action
        self.payload = payload
        self.key = None

    def select(self, columns):
        return self

    def eq(self, column, value):
        assert column == "key"
        self.key = value
        return self

    def execute(self):
        rows = self.table.rows
        if self.action == "select":
            return FakeResult([rows[self.key]] if self.key in rows else [])
        if self.action == "upsert":
            rows[self.payload["key"]] = self.payload
            return FakeResult([self.payload])
        if self.action == "delete":
            rows.pop(self.key, None)
            return FakeResult([])


class FakeTable:
    def __init__(self):
        self.rows = {}

    def select(self, columns):
        return FakeQuery(self, "select")

    def upsert(self, payload):
        return FakeQuery(self, "upsert", payload)

    def delete(self):
        return FakeQuery(self, "delete")


class FakeSupabase:
    def __init__(self):
        self.tables = {}

    def table(self, name):
        return self.tables.setdefault(name, FakeTable())


def test_supabase_store_round_trip_and_expiry(clock):
    client = FakeSupabase()
    store = SupabaseStore(client, "result_cache", clock=clock)

    store.put("now_playing_result", {"success": True}, ttl=120)
    row = client.tables["result_cache"].rows["now_playing_result"]

    assert store.get("now_playing_result") == {"success": True}
    assert row["expires_at"] == (clock() + timedelta(seconds=120)).isoformat()
    clock.advance(120)
    assert store.get("now_playing_result") is None


def test_supabase_store_marker_has_no_expiry(clock):
    client = FakeSupabase()
    store = SupabaseStore(client, "apple_state_cache", clock=clock)

    store.put("last_apple_song", {"songId": "1", "cachedAt": 0})
    assert client.tables["apple_state_cache"].rows["last_apple_song"]["expires_at"] is None
    store.delete("last_apple_song")
    assert store.get("last_apple_song") is None


def test_supabase_store_reads_zulu_timestamps(clock):
    client = FakeSupabase()
    store = SupabaseStore(client, "result_cache", clock=clock)
    client.table("result_cache").rows["k"] = {"key": "k", "value": 1,
                                              "expires_at": isoformat(clock() + timedelta(seconds=5))}
    assert store.get("k") == 1


def test_memory_backend_builds_two_separate_stores():
    result_cache, state_cache = create_stores(Config(store_backend="memory"))
    result_cache.put("k", 1)
    assert state_cache.get("k") is None


def test_zero_ttl_expires_immediately(clock):
    memory = MemoryStore(clock=clock)
    memory.put("k", "v", ttl=0)
    assert memory.get("k") is None

    client = FakeSupabase()
    supabase = SupabaseStore(client, "result_cache", clock=clock)
    supabase.put("k", "v", ttl=0)
    assert client.tables["result_cache"].rows["k"]["expires_at"] == clock().isoformat()
    assert supabase.get("k") is None
