"""Persisted smart playlist state."""

from .playlist_store import SMART_PLAYLISTS_KEY, PlaylistMutator, PlaylistStateStore

__all__ = ["PlaylistMutator", "PlaylistStateStore", "SMART_PLAYLISTS_KEY"]
