"""Remote collection API backed by Tidal user playlists.

tidalapi is synchronous, so every call runs in a worker thread. The sync engine
awaits each call before issuing the next, so calls never overlap.
"""

import asyncio
import logging
from typing import Any, List, Optional

import tidalapi

from ..core.sync.remote import AddResult
from ..models import tidal_track_id, tidal_track_key
from .tidal_service import TidalService

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class TidalCollectionClient:
    """Implements the remote collection API on top of tidalapi."""

    def __init__(self, tidal_service: TidalService, page_size: int = DEFAULT_PAGE_SIZE):
        """Initialize client.

        Args:
            tidal_service: Connected Tidal service
            page_size: Number of tracks fetched per request
        """
        self.tidal_service = tidal_service
        self.page_size = max(1, page_size)

    # Async API

    async def list_all_members(self, collection_id: str) -> List[str]:
        """Get all item keys in a playlist, duplicates kept, in playlist order."""
        return await asyncio.to_thread(self._list_members, collection_id)

    async def add_member(self, item_key: str, collection_id: str) -> AddResult:
        """Add a track unless it is already present or not a Tidal track."""
        return await asyncio.to_thread(self._add_member, item_key, collection_id)

    async def remove_member(self, item_key: str, collection_id: str) -> bool:
        """Remove every occurrence of a track from a playlist."""
        return await asyncio.to_thread(self._remove_member, item_key, collection_id)

    async def is_member(self, item_key: str, collection_id: str) -> bool:
        """Check whether a track is in a playlist."""
        members = await self.list_all_members(collection_id)
        return item_key in members

    async def list_all_collection_ids(self) -> List[str]:
        """Get the ids of all playlists owned by the user."""
        playlists = await asyncio.to_thread(self.tidal_service.list_user_playlists)
        return [playlist_id for playlist_id, _name in playlists]

    async def fetch_tempo(self, item_key: str) -> Optional[int]:
        """Get the BPM Tidal reports for a track, if any."""
        return await asyncio.to_thread(self._fetch_tempo, item_key)

    # Blocking helpers, run in worker threads

    def _user_playlist(self, collection_id: str) -> tidalapi.UserPlaylist:
        session = self.tidal_service.require_session()
        return tidalapi.UserPlaylist(session, collection_id)

    def _list_members(self, collection_id: str) -> List[str]:
        playlist = self._user_playlist(collection_id)
        keys: List[str] = []
        offset = 0
        while True:
            page = playlist.tracks(limit=self.page_size, offset=offset)
            keys.extend(tidal_track_key(track.id) for track in page)
            if len(page) < self.page_size:
                break
            offset += self.page_size
        logger.debug("Playlist %s has %d track(s)", collection_id, len(keys))
        return keys

    def _add_member(self, item_key: str, collection_id: str) -> AddResult:
        track_id = tidal_track_id(item_key)
        if track_id is None:
            logger.debug("Not adding %s: not a Tidal track", item_key)
            return AddResult(success=True, was_added=False)

        if item_key in self._list_members(collection_id):
            logger.debug("%s already in playlist %s", item_key, collection_id)
            return AddResult(success=True, was_added=False)

        playlist = self._user_playlist(collection_id)
        playlist.add([track_id])
        logger.debug("Added %s to playlist %s", item_key, collection_id)
        return AddResult(success=True, was_added=True)

    def _remove_member(self, item_key: str, collection_id: str) -> bool:
        if tidal_track_id(item_key) is None:
            return False

        indices = [
            index
            for index, key in enumerate(self._list_members(collection_id))
            if key == item_key
        ]
        # Highest index first so earlier positions stay valid
        for index in sorted(indices, reverse=True):
            # Fresh instance per call: each delete needs the current etag
            self._user_playlist(collection_id).remove_by_index(index)

        if indices:
            logger.debug(
                "Removed %d occurrence(s) of %s from playlist %s",
                len(indices),
                item_key,
                collection_id,
            )
        return True

    def _fetch_tempo(self, item_key: str) -> Optional[int]:
        track_id = tidal_track_id(item_key)
        if track_id is None:
            return None
        session = self.tidal_service.require_session()
        track: Any = session.track(track_id)
        bpm = getattr(track, "bpm", None)
        if not bpm:
            return None
        return int(round(float(bpm)))
