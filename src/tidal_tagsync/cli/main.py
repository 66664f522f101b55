"""Command-line interface for tidal-tagsync.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..config import get_config
from ..utils.logging_config import setup_logging
from .commands import TagSyncApp, playlists, preview_command, sync_command, tag


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level (default: TIDAL_TAGSYNC_LOG_LEVEL or INFO)",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.pass_context
def cli(ctx: Any, log_level: Optional[str], log_file: Optional[str]) -> None:
    """Tidal smart playlists driven by your own tags, ratings and energy."""
    config = get_config()
    setup_logging(
        log_level=log_level or config.log_level,
        log_file=Path(log_file) if log_file else None,
    )
    app = TagSyncApp(config)
    ctx.obj = app
    ctx.call_on_close(app.close)


cli.add_command(playlists)
cli.add_command(sync_command)
cli.add_command(preview_command)
cli.add_command(tag)


if __name__ == "__main__":
    cli()
