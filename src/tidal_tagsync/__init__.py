"""tidal-tagsync.

Keeps Tidal playlists in sync with smart criteria over locally kept tags,
ratings, energy levels and tempo.
"""

__version__ = "0.3.0"
__author__ = "Anton"
__email__ = ""

from .config import Config
from .core.catalog import ItemCatalog
from .core.sync import SmartPlaylistEngine
from .models import Criteria, Item, SmartPlaylist, TagKey

__all__ = [
    "Config",
    "Criteria",
    "Item",
    "ItemCatalog",
    "SmartPlaylist",
    "SmartPlaylistEngine",
    "TagKey",
]
