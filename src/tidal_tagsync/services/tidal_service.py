"""Tidal session management and playlist administration."""

import json
import logging
import time
from pathlib import Path
from typing import Any, List, Optional, Tuple

import tidalapi
from tidalapi.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

LOGIN_TIMEOUT_SECONDS = 120


class TidalConnectionError(Exception):
    """Raised when Tidal cannot be reached or the session is not usable."""

    pass


class TidalService:
    """Owns the authenticated tidalapi session."""

    def __init__(self, token_file: Path) -> None:
        """Initialize Tidal service.

        Args:
            token_file: Path to the JSON file the OAuth session is kept in
        """
        self.token_file = token_file
        self.session: Optional[tidalapi.Session] = None
        self._authenticated = False

    @property
    def is_authenticated(self) -> bool:
        """Whether a logged-in session is available."""
        return self._authenticated and self.session is not None

    def connect(self, interactive: bool = True) -> None:
        """Authenticate, reusing the stored session when it is still valid.

        Args:
            interactive: Start a device login when no valid session exists

        Raises:
            TidalConnectionError: If no authenticated session could be set up
        """
        try:
            self._load_existing_session()
            if not self._authenticated:
                if not interactive:
                    raise TidalConnectionError("No valid stored Tidal session")
                self._login()
        except TidalConnectionError:
            raise
        except Exception as e:
            logger.error("Failed to connect to Tidal: %s", e)
            raise TidalConnectionError(f"Cannot connect to Tidal API: {e}") from e

    def require_session(self) -> tidalapi.Session:
        """Get the authenticated session.

        Raises:
            TidalConnectionError: If connect() has not succeeded
        """
        if not self.is_authenticated:
            raise TidalConnectionError("Not authenticated with Tidal")
        assert self.session is not None
        return self.session

    def _load_existing_session(self) -> None:
        if not self.token_file.exists():
            logger.info("No stored Tidal session at %s", self.token_file)
            return

        try:
            with open(self.token_file, "r") as file:
                data = json.load(file)

            session = tidalapi.Session()
            session.load_oauth_session(
                data["token_type"], data["access_token"], data["refresh_token"]
            )
            if session.check_login():
                self.session = session
                self._authenticated = True
                logger.info("Authenticated with stored Tidal session")
            else:
                logger.warning("Stored Tidal session is no longer valid")
                self._remove_invalid_token()
        except (AuthenticationError, KeyError, json.JSONDecodeError) as e:
            logger.warning("Failed to load stored Tidal session: %s", e)
            self._remove_invalid_token()

    def _login(self) -> None:
        logger.info("Starting Tidal device login")
        session = tidalapi.Session()
        print("Open the link below to log in to Tidal:")
        session.login_oauth_simple()

        deadline = time.monotonic() + LOGIN_TIMEOUT_SECONDS
        while time.monotonic() < deadline:
            if session.check_login():
                self.session = session
                self._authenticated = True
                logger.info("Authenticated with new Tidal session")
                self._save_session()
                return
            time.sleep(1)

        raise TidalConnectionError(
            f"Login not completed within {LOGIN_TIMEOUT_SECONDS} seconds"
        )

    def _save_session(self) -> None:
        if self.session is None:
            raise TidalConnectionError("No active session to save")

        data = {
            "token_type": self.session.token_type,
            "access_token": self.session.access_token,
            "refresh_token": self.session.refresh_token,
        }
        try:
            self.token_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.token_file, "w") as file:
                json.dump(data, file, indent=2)
            logger.info("Tidal session saved to %s", self.token_file)
        except OSError as e:
            logger.error("Failed to save Tidal session: %s", e)

    def _remove_invalid_token(self) -> None:
        try:
            self.token_file.unlink(missing_ok=True)
            logger.info("Removed invalid token file")
        except OSError as e:
            logger.error("Failed to remove invalid token file: %s", e)

    def list_user_playlists(self) -> List[Tuple[str, str]]:
        """Get ``(id, name)`` of every playlist the user owns.

        Raises:
            TidalConnectionError: If not authenticated or the API call fails
        """
        session = self.require_session()
        try:
            playlists = session.user.playlists()
        except Exception as e:
            logger.error("Failed to list playlists: %s", e)
            raise TidalConnectionError(f"Cannot list playlists: {e}") from e
        return [(str(p.id), p.name) for p in playlists]

    def create_playlist(self, name: str, description: str = "") -> str:
        """Create an empty user playlist.

        Returns:
            Id of the new playlist

        Raises:
            TidalConnectionError: If not authenticated or the API call fails
        """
        session = self.require_session()
        try:
            playlist: Any = session.user.create_playlist(name, description)
        except Exception as e:
            logger.error("Failed to create playlist '%s': %s", name, e)
            raise TidalConnectionError(f"Cannot create playlist: {e}") from e
        logger.info("Created Tidal playlist '%s' (%s)", name, playlist.id)
        return str(playlist.id)
