"""Application wiring shared by all CLI commands."""

import logging
from typing import Any, Optional

import click

from ...config import Config, get_config
from ...core.catalog import ItemCatalog
from ...core.sync import NotificationCollector, SmartPlaylistEngine, log_notifier
from ...database import DatabaseService
from ...services import TidalCollectionClient, TidalConnectionError, TidalService

logger = logging.getLogger(__name__)


class TagSyncApp:
    """Builds the engine and its collaborators for one CLI invocation."""

    def __init__(
        self,
        config: Optional[Config] = None,
        config_override: Optional[dict[str, Any]] = None,
    ) -> None:
        """Initialize application.

        Args:
            config: Configuration; read from the environment when omitted
            config_override: Optional configuration overrides
        """
        self.config: Config = config or get_config()
        if config_override:
            for key, value in config_override.items():
                setattr(self.config, key, value)

        self.db_service = DatabaseService(db_path=self.config.database_path)
        self.tidal_service = TidalService(self.config.tidal_token_file)
        self.client = TidalCollectionClient(
            self.tidal_service, page_size=self.config.page_size
        )
        self.notifications = NotificationCollector(forward=log_notifier)

        self.catalog = ItemCatalog(self.db_service, remote=self.client)
        self.engine = SmartPlaylistEngine(
            self.db_service,
            self.client,
            self.catalog.items,
            notifier=self.notifications,
            settle_delay=self.config.settle_delay,
            verify_after_changes=self.config.verify_after_changes,
        )
        self.catalog.change_listener = self.engine.on_item_changed
        self.catalog.batch_listener = self.engine.on_items_changed_batch

        self.catalog.load()
        self.engine.load()

    def connect(self, interactive: bool = True) -> None:
        """Connect to Tidal, aborting the command on failure."""
        try:
            self.tidal_service.connect(interactive=interactive)
        except TidalConnectionError as e:
            logger.error("Tidal connection failed: %s", e)
            raise click.ClickException(str(e)) from e

    def close(self) -> None:
        """Release the database connection pool."""
        self.db_service.close()
