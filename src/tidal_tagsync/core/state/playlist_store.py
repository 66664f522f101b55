"""Authoritative in-memory store of smart playlists, backed by persistence.

Every mutation reads the current record from the store immediately before
writing it back. Callers never write a record they captured earlier, which is
what keeps overlapping operations from losing each other's updates.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from ...database.service import KeyValueStore
from ...models import SmartPlaylist, utc_now

logger = logging.getLogger(__name__)

SMART_PLAYLISTS_KEY = "smart_playlists"

PlaylistMutator = Callable[[Optional[SmartPlaylist]], Optional[SmartPlaylist]]


class PlaylistStateStore:
    """Single authoritative copy of all smart playlists."""

    def __init__(self, storage: KeyValueStore, key: str = SMART_PLAYLISTS_KEY):
        """Initialize playlist store.

        Args:
            storage: Persistence collaborator with load/save
            key: Storage key the playlists are saved under
        """
        self.storage = storage
        self.key = key
        self._playlists: Dict[str, SmartPlaylist] = {}

    def load(self) -> int:
        """Load playlists from persistence, dropping invalid records.

        Returns:
            Number of playlists loaded
        """
        raw = self.storage.load(self.key)
        self._playlists = {}
        if raw is None:
            logger.debug("No stored smart playlists found")
            return 0
        if not isinstance(raw, list):
            logger.warning("Stored smart playlists are not a list; ignoring")
            return 0

        dropped = 0
        for record in raw:
            playlist = self._parse_record(record)
            if playlist is None:
                dropped += 1
                continue
            self._playlists[playlist.playlist_id] = playlist

        if dropped:
            logger.warning("Dropped %d invalid smart playlist record(s)", dropped)
        logger.info("Loaded %d smart playlist(s)", len(self._playlists))
        return len(self._playlists)

    @staticmethod
    def _parse_record(record: Any) -> Optional[SmartPlaylist]:
        if not isinstance(record, dict):
            return None
        try:
            return SmartPlaylist.model_validate(record)
        except ValidationError as e:
            logger.debug("Invalid smart playlist record: %s", e)
            return None

    def list(self) -> List[SmartPlaylist]:
        """Get all playlists in insertion order."""
        return list(self._playlists.values())

    def list_active(self) -> List[SmartPlaylist]:
        """Get all playlists whose sync is enabled."""
        return [p for p in self._playlists.values() if p.is_active]

    def get(self, playlist_id: str) -> Optional[SmartPlaylist]:
        """Get the current record for a playlist."""
        return self._playlists.get(playlist_id)

    def __contains__(self, playlist_id: object) -> bool:
        """Check whether a playlist is stored."""
        return playlist_id in self._playlists

    def __len__(self) -> int:
        """Number of stored playlists."""
        return len(self._playlists)

    def upsert(
        self, playlist_id: str, mutator: PlaylistMutator
    ) -> Optional[SmartPlaylist]:
        """Read-modify-write a single playlist.

        Args:
            playlist_id: Playlist to update
            mutator: Receives the current record (or None) and returns the new
                record, or None to delete it

        Returns:
            The stored record after the update
        """
        current = self._playlists.get(playlist_id)
        updated = mutator(current)

        if updated is None:
            if current is None:
                return None
            del self._playlists[playlist_id]
        else:
            if updated.playlist_id != playlist_id:
                raise ValueError(
                    f"Mutator changed playlist id {playlist_id} -> "
                    f"{updated.playlist_id}"
                )
            self._playlists[playlist_id] = updated

        self._persist()
        return updated

    def set_expected_members(
        self, playlist_id: str, members: Sequence[str]
    ) -> Optional[SmartPlaylist]:
        """Replace a playlist's expected members and stamp the sync time.

        Returns:
            The updated record, or None if the playlist no longer exists
        """
        unique_members = list(dict.fromkeys(members))

        def _apply(current: Optional[SmartPlaylist]) -> Optional[SmartPlaylist]:
            if current is None:
                return None
            return current.model_copy(
                update={"expected_members": unique_members, "last_sync_at": utc_now()}
            )

        if playlist_id not in self._playlists:
            logger.debug("Playlist %s vanished before members were set", playlist_id)
            return None
        return self.upsert(playlist_id, _apply)

    def add_expected_member(
        self, playlist_id: str, item_key: str
    ) -> Optional[SmartPlaylist]:
        """Add one item to the current expected members."""
        current = self._playlists.get(playlist_id)
        if current is None:
            return None
        return self.set_expected_members(
            playlist_id, current.with_member(item_key).expected_members
        )

    def remove_expected_member(
        self, playlist_id: str, item_key: str
    ) -> Optional[SmartPlaylist]:
        """Drop one item from the current expected members."""
        current = self._playlists.get(playlist_id)
        if current is None:
            return None
        return self.set_expected_members(
            playlist_id, current.without_member(item_key).expected_members
        )

    def remove(self, playlist_id: str) -> bool:
        """Remove a playlist.

        Returns:
            True if the playlist existed
        """
        if playlist_id not in self._playlists:
            return False
        self.upsert(playlist_id, lambda _current: None)
        return True

    def replace_all(self, playlists: Iterable[SmartPlaylist]) -> None:
        """Replace every stored playlist, e.g. after an import."""
        self._playlists = {p.playlist_id: p for p in playlists}
        self._persist()

    def _persist(self) -> None:
        payload = [p.model_dump(mode="json") for p in self._playlists.values()]
        if not self.storage.save(self.key, payload):
            logger.error(
                "Failed to persist %d smart playlist(s); in-memory state kept",
                len(payload),
            )
