"""Models for the smart playlist sync engine."""

from .models import (
    LOCAL_KEY_PREFIX,
    BatchTagUpdate,
    Criteria,
    Item,
    MatchMode,
    SmartPlaylist,
    TagKey,
    is_local_key,
    tidal_track_id,
    tidal_track_key,
    utc_now,
)

__all__ = [
    "LOCAL_KEY_PREFIX",
    "BatchTagUpdate",
    "Criteria",
    "Item",
    "MatchMode",
    "SmartPlaylist",
    "TagKey",
    "is_local_key",
    "tidal_track_id",
    "tidal_track_key",
    "utc_now",
]
