"""Database service providing JSON key/value persistence on SQLite."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .models import Base, KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Persistence contract used by the playlist store and item catalog."""

    def load(self, key: str) -> Optional[Any]:
        """Load the JSON value stored under key."""
        ...

    def save(self, key: str, value: Any) -> bool:
        """Store a JSON value under key; never raises."""
        ...


class DatabaseService:
    """Service for database operations and transaction management."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """Initialize database service.

        Args:
            db_path: Path to SQLite database file.
                    If None, uses default ~/.tidal-tagsync/state.db
        """
        if db_path is None:
            db_path = Path.home() / ".tidal-tagsync" / "state.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        db_url = f"sqlite:///{self.db_path}"
        self.engine = create_engine(db_url, echo=False)

        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

        logger.info("Database initialized at: %s", self.db_path)

        self.init_db()

    def init_db(self) -> None:
        """Create tables that do not exist yet."""
        Base.metadata.create_all(bind=self.engine)
        logger.debug("Database schema ready")

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            SQLAlchemy Session object

        Note:
            Caller is responsible for closing the session
        """
        return self.SessionLocal()

    def load(self, key: str) -> Optional[Any]:
        """Load the JSON value stored under key.

        Args:
            key: Storage key

        Returns:
            Decoded JSON value, or None if missing, unreadable or corrupt
        """
        try:
            with self.get_session() as session:
                entry = session.get(KeyValueEntry, key)
                raw = entry.value if entry is not None else None
        except SQLAlchemyError as e:
            logger.error("Failed to load '%s' from database: %s", key, e)
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored value for '%s' is not valid JSON; ignoring", key)
            return None

    def save(self, key: str, value: Any) -> bool:
        """Store a JSON value under key.

        Args:
            key: Storage key
            value: JSON-serializable value

        Returns:
            True if the value was written, False on any failure
        """
        try:
            payload = json.dumps(value, sort_keys=True)
        except (TypeError, ValueError) as e:
            logger.error("Value for '%s' is not JSON serializable: %s", key, e)
            return False

        try:
            with self.get_session() as session:
                entry = session.get(KeyValueEntry, key)
                # SQLite stores naive timestamps; keep them in UTC
                now = datetime.now(timezone.utc).replace(tzinfo=None)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=payload, updated_at=now))
                else:
                    entry.value = payload
                    entry.updated_at = now
                session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error("Failed to save '%s' to database: %s", key, e)
            return False

    def close(self) -> None:
        """Dispose the engine and its connection pool."""
        self.engine.dispose()
        logger.debug("Database connections closed")
