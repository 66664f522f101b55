"""CLI command modules."""

from .app import TagSyncApp
from .playlists import playlists
from .preview import preview_command
from .sync import sync_command
from .tag import tag

__all__ = [
    "TagSyncApp",
    "playlists",
    "preview_command",
    "sync_command",
    "tag",
]
