"""Full reconciliation command."""

import asyncio
import logging
from typing import List, Optional

import click

from ...core.sync import NotificationKind, ReconcileResult
from ..display import console, display_notifications, display_reconcile_results
from .app import TagSyncApp

logger = logging.getLogger(__name__)


async def _reconcile(app: TagSyncApp, playlist_id: Optional[str]) -> List[ReconcileResult]:
    if playlist_id:
        operations = [app.engine.reconcile(playlist_id)]
    else:
        operations = app.engine.reconcile_all()
    results = [await operation.wait() for operation in operations]
    # A failed operation resolves to None; the queue already logged it
    return [result for result in results if result is not None]


@click.command("sync")
@click.option(
    "--playlist",
    "-p",
    "playlist_id",
    help="Only reconcile this smart playlist (Tidal playlist id)",
)
@click.pass_obj
def sync_command(app: TagSyncApp, playlist_id: Optional[str]) -> None:
    """Bring Tidal playlists in line with their criteria.

    Removes duplicate tracks, drops tracks that no longer match and adds the
    ones that are missing.

    Examples:
        tidal-tagsync sync
        tidal-tagsync sync --playlist 1a2b3c4d-...
    """
    if playlist_id and app.engine.get_playlist(playlist_id) is None:
        raise click.ClickException(f"Unknown smart playlist '{playlist_id}'")

    app.connect()
    console.print("\n[bold cyan]🔄 Syncing smart playlists...[/bold cyan]")
    results = asyncio.run(_reconcile(app, playlist_id))
    display_reconcile_results(results)

    problems = app.notifications.of_kind(
        NotificationKind.MANUAL_ACTION
    ) + app.notifications.of_kind(NotificationKind.DATA_LOSS)
    if problems:
        console.print()
        display_notifications(problems)

    if any(result.aborted for result in results):
        raise click.ClickException("One or more playlists could not be synced")
