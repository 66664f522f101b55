"""Smart playlist management commands."""

import asyncio
import logging
from typing import Any, List, Optional, Tuple

import click

from ...core.sync import ReconcileResult
from ...models import Criteria
from ...services import TidalConnectionError
from ..display import (
    console,
    display_notifications,
    display_playlists,
    display_reconcile_results,
)
from .app import TagSyncApp
from .criteria_options import build_criteria, criteria_options

logger = logging.getLogger(__name__)


def _require_playlist(app: TagSyncApp, playlist_id: str) -> None:
    if app.engine.get_playlist(playlist_id) is None:
        raise click.ClickException(f"Unknown smart playlist '{playlist_id}'")


@click.group("playlists")
def playlists() -> None:
    """Create and manage smart playlists."""
    pass


@playlists.command(name="list")
@click.pass_obj
def list_playlists(app: TagSyncApp) -> None:
    """List all smart playlists."""
    display_playlists(app.engine.playlists())


async def _create(
    app: TagSyncApp, name: str, criteria: Criteria, is_active: bool
) -> Tuple[str, Optional[ReconcileResult]]:
    playlist_id = await asyncio.to_thread(
        app.tidal_service.create_playlist, name, criteria.describe()
    )
    app.engine.create_playlist(playlist_id, name, criteria, is_active=is_active)
    reconcile_op = app.engine.reconcile(playlist_id) if is_active else None
    await app.engine.join()
    result = await reconcile_op.wait() if reconcile_op is not None else None
    return playlist_id, result


@playlists.command(name="create")
@click.argument("name")
@criteria_options
@click.option("--inactive", is_flag=True, help="Create without syncing it yet")
@click.pass_obj
def create_playlist(
    app: TagSyncApp, name: str, inactive: bool, **criteria_values: Any
) -> None:
    """Create a Tidal playlist kept in sync with a criteria.

    Examples:
        tidal-tagsync playlists create "Peak House" -i genre:house:deep -r 4 -r 5
        tidal-tagsync playlists create "Warmup" --energy-max 4 --tempo-max 122
    """
    criteria = build_criteria(**criteria_values)
    app.connect()

    console.print(f"\n[bold cyan]Creating smart playlist '{name}'...[/bold cyan]")
    try:
        playlist_id, result = asyncio.run(_create(app, name, criteria, not inactive))
    except TidalConnectionError as e:
        console.print(f"\n[red]✗ Create failed: {e}[/red]")
        raise click.ClickException(str(e)) from e

    console.print(f"[green]✓ Created {name} ({playlist_id})[/green]")
    if result is not None:
        display_reconcile_results([result])
    display_notifications(app.notifications.notifications)


def _admin_command(app: TagSyncApp, operation_name: str, playlist_id: str) -> Any:
    _require_playlist(app, playlist_id)

    async def _run() -> Any:
        operation = getattr(app.engine, operation_name)(playlist_id)
        result = await operation.wait()
        await app.engine.join()
        return result

    return asyncio.run(_run())


@playlists.command(name="activate")
@click.argument("playlist_id")
@click.pass_obj
def activate_playlist(app: TagSyncApp, playlist_id: str) -> None:
    """Enable syncing of a playlist and reconcile it right away."""
    app.connect()
    updated = _admin_command(app, "activate", playlist_id)
    if updated is None:
        raise click.ClickException(f"Could not activate '{playlist_id}'")
    console.print(f"[green]✓ Activated {updated.name}[/green]")
    display_notifications(app.notifications.notifications)


@playlists.command(name="deactivate")
@click.argument("playlist_id")
@click.pass_obj
def deactivate_playlist(app: TagSyncApp, playlist_id: str) -> None:
    """Stop syncing a playlist; its Tidal content is left as is."""
    updated = _admin_command(app, "deactivate", playlist_id)
    if updated is None:
        raise click.ClickException(f"Could not deactivate '{playlist_id}'")
    console.print(f"[yellow]Deactivated {updated.name}[/yellow]")


@playlists.command(name="remove")
@click.argument("playlist_id")
@click.confirmation_option(prompt="Forget this smart playlist? The Tidal playlist is kept.")
@click.pass_obj
def remove_playlist(app: TagSyncApp, playlist_id: str) -> None:
    """Forget a smart playlist; the Tidal playlist itself is kept."""
    if _admin_command(app, "remove_playlist", playlist_id):
        console.print(f"[green]✓ Removed smart playlist {playlist_id}[/green]")


@playlists.command(name="cleanup")
@click.pass_obj
def cleanup_playlists(app: TagSyncApp) -> None:
    """Forget smart playlists whose Tidal playlist was deleted."""
    app.connect()

    async def _run() -> List[str]:
        removed: List[str] = await app.engine.cleanup_deleted_playlists().wait()
        return removed or []

    removed = asyncio.run(_run())
    if not removed:
        console.print("[dim]Nothing to clean up.[/dim]")
        return
    console.print(f"[green]✓ Removed {len(removed)} smart playlist(s):[/green]")
    for playlist_id in removed:
        console.print(f"  • {playlist_id}")
