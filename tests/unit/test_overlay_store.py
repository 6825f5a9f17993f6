"""
Unit Tests for Overlay Store and Key/Value Backends

Tests last-write-wins overlays, canonical fallback, preferences and the
three storage backends.
"""

import json

import pytest

from release_tour.config import TourConfig
from release_tour.kv_store import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    SupabaseKeyValueStore,
    build_store,
)
from release_tour.overlay_store import (
    DEFAULT_THEME,
    ENV_VARS_KEY,
    THEME_KEY,
    OverlayStore,
    PreferenceStore,
    overlay_key,
)


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Minimal stand-in for the supabase query builder."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self._op = None
        self._row = None
        self._key = None

    def select(self, columns):
        self._op = "select"
        return self

    def upsert(self, row):
        self._op = "upsert"
        self._row = row
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._key = value
        return self

    def execute(self):
        if self.client.fail:
            raise ConnectionError("database unreachable")
        rows = self.client.tables.setdefault(self.table, {})
        if self._op == "select":
            return FakeResult([{"value": rows[self._key]}] if self._key in rows else [])
        if self._op == "upsert":
            rows[self._row["key"]] = self._row["value"]
            return FakeResult([self._row])
        rows.pop(self._key, None)
        return FakeResult([])


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.fail = False

    def table(self, name):
        return FakeQuery(self, name)


class TestOverlayStore:
    """Test suite for OverlayStore."""

    @pytest.fixture
    def overlays(self):
        return OverlayStore(InMemoryKeyValueStore())

    def test_resolve_without_overlay_returns_canonical(self, overlays):
        assert overlays.resolve("1.24", 1, "canonical") == "canonical"

    def test_last_write_wins(self, overlays):
        overlays.save("1.24", 1, "first")
        overlays.save("1.24", 1, "second")

        assert overlays.resolve("1.24", 1, "canonical") == "second"

    def test_overlays_are_keyed_per_version_and_lesson(self, overlays):
        overlays.save("1.24", 1, "edited")

        assert overlays.resolve("1.23", 1, "canonical") == "canonical"
        assert overlays.resolve("1.24", 2, "canonical") == "canonical"

    def test_empty_overlay_still_wins(self, overlays):
        overlays.save("1.24", 1, "")
        assert overlays.resolve("1.24", 1, "canonical") == ""

    def test_discard_restores_canonical(self, overlays):
        overlays.save("1.24", 1, "edited")
        overlays.discard("1.24", 1)

        assert overlays.load("1.24", 1) is None
        assert overlays.resolve("1.24", 1, "canonical") == "canonical"

    def test_key_format_is_stable(self):
        assert overlay_key("1.24", 3) == "lesson-1.24-3-code"


class TestPreferenceStore:
    """Test suite for PreferenceStore."""

    def test_theme_default_and_update(self):
        store = InMemoryKeyValueStore()
        prefs = PreferenceStore(store)

        assert prefs.get_theme() == DEFAULT_THEME
        prefs.set_theme("dracula")
        assert store.get(THEME_KEY) == "dracula"

    def test_env_vars_cleared_with_empty_value(self):
        store = InMemoryKeyValueStore()
        prefs = PreferenceStore(store)

        prefs.set_env_vars("GOEXPERIMENT=jsonv2")
        assert prefs.get_env_vars() == "GOEXPERIMENT=jsonv2"

        prefs.set_env_vars("")
        assert store.get(ENV_VARS_KEY) is None
        assert prefs.get_env_vars() == ""


class TestJsonFileKeyValueStore:
    """Test suite for the file backend."""

    def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "nested" / "storage.json"
        JsonFileKeyValueStore(str(path)).set("lesson-1.24-1-code", "saved")

        reopened = JsonFileKeyValueStore(str(path))

        assert reopened.get("lesson-1.24-1-code") == "saved"
        assert json.loads(path.read_text(encoding="utf-8")) == {"lesson-1.24-1-code": "saved"}

    def test_delete_persists(self, tmp_path):
        path = tmp_path / "storage.json"
        store = JsonFileKeyValueStore(str(path))
        store.set("a", "1")
        store.delete("a")

        assert JsonFileKeyValueStore(str(path)).get("a") is None

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{not json", encoding="utf-8")

        store = JsonFileKeyValueStore(str(path))

        assert store.get("anything") is None
        store.set("a", "1")
        assert JsonFileKeyValueStore(str(path)).get("a") == "1"


class TestSupabaseKeyValueStore:
    """Test suite for the Supabase backend."""

    def test_round_trip_through_table(self):
        client = FakeSupabase()
        SupabaseKeyValueStore(client).set("k", "v")

        # A fresh store has no in-memory copy and must read the table
        assert SupabaseKeyValueStore(client).get("k") == "v"
        assert client.tables["kv_store"] == {"k": "v"}

    def test_write_failure_keeps_value_in_memory(self):
        client = FakeSupabase()
        store = SupabaseKeyValueStore(client)
        client.fail = True

        store.set("k", "v")

        assert store.get("k") == "v"

    def test_delete_failure_keeps_key_deleted(self):
        client = FakeSupabase()
        overlays = OverlayStore(SupabaseKeyValueStore(client))
        overlays.save("1.24", 1, "edited")

        client.fail = True
        overlays.discard("1.24", 1)
        client.fail = False

        # The table still holds the old row, but the reset must stick
        assert client.tables["kv_store"] == {overlay_key("1.24", 1): "edited"}
        assert overlays.load("1.24", 1) is None
        assert overlays.resolve("1.24", 1, "canonical") == "canonical"

    def test_set_after_delete(self):
        client = FakeSupabase()
        store = SupabaseKeyValueStore(client)
        store.set("k", "v1")
        store.delete("k")
        store.set("k", "v2")

        assert store.get("k") == "v2"
        assert client.tables["kv_store"] == {"k": "v2"}

    def test_read_failure_returns_none(self):
        client = FakeSupabase()
        client.fail = True

        assert SupabaseKeyValueStore(client).get("missing") is None

    def test_delete(self):
        client = FakeSupabase()
        store = SupabaseKeyValueStore(client, table="prefs")
        store.set("k", "v")
        store.delete("k")

        assert store.get("k") is None
        assert client.tables["prefs"] == {}


class TestBuildStore:
    """Test suite for backend selection."""

    def test_memory_is_default(self):
        assert isinstance(build_store(TourConfig()), InMemoryKeyValueStore)

    def test_file_backend(self, tmp_path):
        config = TourConfig(storage="file", storage_path=str(tmp_path / "s.json"))
        assert isinstance(build_store(config), JsonFileKeyValueStore)

    def test_supabase_requires_client(self):
        config = TourConfig(storage="supabase")
        with pytest.raises(ValueError):
            build_store(config)
        assert isinstance(build_store(config, supabase_client=FakeSupabase()), SupabaseKeyValueStore)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
