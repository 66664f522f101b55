"""Services for Tidal access."""

from .tidal_collection_client import TidalCollectionClient
from .tidal_service import TidalConnectionError, TidalService

__all__ = [
    "TidalCollectionClient",
    "TidalConnectionError",
    "TidalService",
]
