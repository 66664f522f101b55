"""Configuration management for the tidal-tagsync application."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from config directory or project root
config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if config_env.exists():
    load_dotenv(config_env)
else:
    load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Tidal API settings
        self.tidal_token_file = Path(
            os.getenv(
                "TIDAL_TAGSYNC_TIDAL_TOKEN_FILE",
                str(Path.home() / ".tidal-tagsync" / "tidal_session.json"),
            )
        )
        self.page_size = int(os.getenv("TIDAL_TAGSYNC_PAGE_SIZE", "100"))

        # Sync settings
        self.settle_delay = float(os.getenv("TIDAL_TAGSYNC_SETTLE_DELAY", "1.0"))
        self.verify_after_changes = _env_bool(
            "TIDAL_TAGSYNC_VERIFY_AFTER_CHANGES", False
        )

        # Database settings
        default_db_path = str(Path.home() / ".tidal-tagsync" / "state.db")
        self.database_path = Path(
            os.getenv("TIDAL_TAGSYNC_DATABASE_PATH", default_db_path)
        )

        # Logging
        self.log_level = os.getenv("TIDAL_TAGSYNC_LOG_LEVEL", "INFO").upper()

        # Ensure directories exist
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Ensure required directories exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self.tidal_token_file.parent.mkdir(parents=True, exist_ok=True)


def get_config() -> Config:
    """Get application configuration."""
    return Config()
