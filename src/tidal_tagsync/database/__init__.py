"""Database package providing the persistence collaborator."""

from .models import Base, KeyValueEntry
from .service import DatabaseService, KeyValueStore

__all__ = [
    "Base",
    "KeyValueEntry",
    "DatabaseService",
    "KeyValueStore",
]
