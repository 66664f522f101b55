"""Tests for the playlist state store."""

import pytest

from tidal_tagsync.core.state import SMART_PLAYLISTS_KEY, PlaylistStateStore

from conftest import MemoryStorage, make_playlist


@pytest.fixture
def store(storage):
    """Create an empty store."""
    return PlaylistStateStore(storage)


class TestLoad:
    """Test loading persisted playlists."""

    def test_load_nothing(self, store):
        """Test loading when nothing is stored."""
        assert store.load() == 0
        assert store.list() == []

    def test_load_drops_invalid_records(self):
        """Test invalid records are dropped, valid ones kept."""
        valid = make_playlist("pl-1").model_dump(mode="json")
        storage = MemoryStorage(
            {
                SMART_PLAYLISTS_KEY: [
                    valid,
                    {"playlist_id": "pl-2"},
                    {"name": "no id"},
                    {
                        "playlist_id": "pl-3",
                        "name": "bad",
                        "criteria": {"energy_min": 9, "energy_max": 1},
                    },
                    "garbage",
                ]
            }
        )
        store = PlaylistStateStore(storage)

        assert store.load() == 1
        assert [p.playlist_id for p in store.list()] == ["pl-1"]

    def test_load_non_list(self):
        """Test a corrupt top-level value is ignored."""
        store = PlaylistStateStore(MemoryStorage({SMART_PLAYLISTS_KEY: {"a": 1}}))

        assert store.load() == 0


class TestMutations:
    """Test store mutations."""

    def test_upsert_creates_and_persists(self, store, storage):
        """Test upsert on a missing record creates it."""
        playlist = make_playlist()

        stored = store.upsert(playlist.playlist_id, lambda current: playlist)

        assert stored == playlist
        assert store.get("pl-1") == playlist
        assert storage.data[SMART_PLAYLISTS_KEY][0]["playlist_id"] == "pl-1"

    def test_upsert_passes_current_value(self, store):
        """Test the mutator sees the value stored right now."""
        store.upsert("pl-1", lambda current: make_playlist(members=["a"]))
        seen = []

        def _mutate(current):
            seen.append(current)
            return current.with_member("b")

        store.upsert("pl-1", _mutate)

        assert seen[0].expected_members == ["a"]
        assert store.get("pl-1").expected_members == ["a", "b"]

    def test_upsert_none_deletes(self, store):
        """Test returning None removes the record."""
        store.upsert("pl-1", lambda current: make_playlist())

        store.upsert("pl-1", lambda current: None)

        assert "pl-1" not in store
        assert len(store) == 0

    def test_upsert_rejects_id_change(self, store):
        """Test the mutator may not change the id."""
        with pytest.raises(ValueError):
            store.upsert("pl-1", lambda current: make_playlist("pl-2"))

    def test_set_expected_members_stamps_sync_time(self, store):
        """Test members are replaced, deduplicated and time stamped."""
        store.upsert("pl-1", lambda current: make_playlist())

        updated = store.set_expected_members("pl-1", ["a", "b", "a"])

        assert updated.expected_members == ["a", "b"]
        assert updated.last_sync_at is not None

    def test_set_expected_members_unknown(self, store):
        """Test setting members of a missing playlist does nothing."""
        assert store.set_expected_members("missing", ["a"]) is None
        assert len(store) == 0

    def test_add_and_remove_expected_member(self, store):
        """Test single member updates."""
        store.upsert("pl-1", lambda current: make_playlist(members=["a"]))

        store.add_expected_member("pl-1", "b")
        store.remove_expected_member("pl-1", "a")

        assert store.get("pl-1").expected_members == ["b"]

    def test_remove(self, store):
        """Test removing playlists."""
        store.upsert("pl-1", lambda current: make_playlist())

        assert store.remove("pl-1") is True
        assert store.remove("pl-1") is False

    def test_replace_all(self, store, storage):
        """Test bulk replacement keeps the given order."""
        store.upsert("pl-1", lambda current: make_playlist())

        store.replace_all([make_playlist("pl-3"), make_playlist("pl-2")])

        assert [p.playlist_id for p in store.list()] == ["pl-3", "pl-2"]
        assert len(storage.data[SMART_PLAYLISTS_KEY]) == 2

    def test_list_active(self, store):
        """Test inactive playlists are filtered out."""
        store.replace_all(
            [make_playlist("pl-1"), make_playlist("pl-2", is_active=False)]
        )

        assert [p.playlist_id for p in store.list_active()] == ["pl-1"]

    def test_failed_save_keeps_memory_state(self, store, storage):
        """Test a failing persistence layer does not block updates."""
        storage.fail_saves = True

        store.upsert("pl-1", lambda current: make_playlist())

        assert store.get("pl-1") is not None
        assert SMART_PLAYLISTS_KEY not in storage.data

    def test_persisted_state_reloads(self, store, storage):
        """Test a fresh store sees what was saved."""
        store.upsert("pl-1", lambda current: make_playlist(members=["a"]))
        store.set_expected_members("pl-1", ["a", "b"])

        reloaded = PlaylistStateStore(storage)
        reloaded.load()

        assert reloaded.get("pl-1").expected_members == ["a", "b"]
        assert reloaded.get("pl-1").last_sync_at is not None
