"""Shared fixtures for tidal-tagsync tests."""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from tidal_tagsync.core.sync import AddResult, NotificationCollector
from tidal_tagsync.models import Criteria, Item, SmartPlaylist, TagKey, is_local_key

HOUSE = TagKey(category_id="genre", subcategory_id="electronic", tag_id="house")
TECHNO = TagKey(category_id="genre", subcategory_id="electronic", tag_id="techno")
PEAK = TagKey(category_id="mood", subcategory_id="set", tag_id="peak")


class MemoryStorage:
    """In-memory key/value storage with the same contract as DatabaseService."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = dict(initial or {})
        self.save_calls = 0
        self.fail_saves = False

    def load(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def save(self, key: str, value: Any) -> bool:
        self.save_calls += 1
        if self.fail_saves:
            return False
        self.data[key] = value
        return True


class FakeRemote:
    """Remote collection API keeping playlists as plain lists.

    ``calls`` records every call in order. Failures are injected per
    ``(method, item_key)`` through ``failures``: an exception instance is
    raised, anything else makes the call report failure. ``list_failures``
    is consumed one entry per ``list_all_members`` call; a non-None entry is
    raised.
    """

    def __init__(
        self,
        collections: Optional[Dict[str, List[str]]] = None,
        tempos: Optional[Dict[str, int]] = None,
    ) -> None:
        self.collections: Dict[str, List[str]] = {
            cid: list(members) for cid, members in (collections or {}).items()
        }
        self.tempos: Dict[str, int] = dict(tempos or {})
        self.calls: List[Tuple[str, ...]] = []
        self.failures: Dict[Tuple[str, str], Any] = {}
        self.list_failures: List[Optional[Exception]] = []
        self.collection_ids: Optional[List[str]] = None
        self.on_call: Optional[Any] = None

    def _record(self, *call: str) -> None:
        self.calls.append(call)
        if self.on_call is not None:
            self.on_call(call)

    def _failure(self, method: str, item_key: str) -> Any:
        failure = self.failures.get((method, item_key))
        if isinstance(failure, Exception):
            raise failure
        return failure

    def calls_of(self, method: str) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[0] == method]

    async def list_all_members(self, collection_id: str) -> List[str]:
        self._record("list", collection_id)
        if self.list_failures:
            failure = self.list_failures.pop(0)
            if failure is not None:
                raise failure
        return list(self.collections.get(collection_id, []))

    async def add_member(self, item_key: str, collection_id: str) -> AddResult:
        self._record("add", item_key, collection_id)
        if self._failure("add", item_key) is not None:
            return AddResult(success=False, was_added=False)
        members = self.collections.setdefault(collection_id, [])
        if is_local_key(item_key) or item_key in members:
            return AddResult(success=True, was_added=False)
        members.append(item_key)
        return AddResult(success=True, was_added=True)

    async def remove_member(self, item_key: str, collection_id: str) -> bool:
        self._record("remove", item_key, collection_id)
        if self._failure("remove", item_key) is not None:
            return False
        members = self.collections.get(collection_id, [])
        self.collections[collection_id] = [key for key in members if key != item_key]
        return True

    async def is_member(self, item_key: str, collection_id: str) -> bool:
        return item_key in self.collections.get(collection_id, [])

    async def list_all_collection_ids(self) -> List[str]:
        self._record("list_ids")
        if self.collection_ids is not None:
            return list(self.collection_ids)
        return list(self.collections)

    async def fetch_tempo(self, item_key: str) -> Optional[int]:
        self._record("tempo", item_key)
        self._failure("tempo", item_key)
        return self.tempos.get(item_key)


def make_item(key: str, **fields: Any) -> Item:
    """Build an item with sensible defaults."""
    return Item(key=key, **fields)


def make_playlist(
    playlist_id: str = "pl-1",
    name: str = "House",
    criteria: Optional[Criteria] = None,
    members: Optional[List[str]] = None,
    is_active: bool = True,
) -> SmartPlaylist:
    """Build a smart playlist."""
    return SmartPlaylist(
        playlist_id=playlist_id,
        name=name,
        criteria=criteria or Criteria(include_tags=[HOUSE]),
        expected_members=members or [],
        is_active=is_active,
    )


@pytest.fixture
def storage():
    """Create empty in-memory storage."""
    return MemoryStorage()


@pytest.fixture
def remote():
    """Create a fake remote with no playlists."""
    return FakeRemote()


@pytest.fixture
def collector():
    """Create a notification collector."""
    return NotificationCollector()
