"""Display formatters and UI helpers for CLI."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from ...core.sync import (
    IncrementalResult,
    Notification,
    NotificationLevel,
    ReconcileResult,
)
from ...models import Item, SmartPlaylist

console = Console()
logger = logging.getLogger(__name__)

_LEVEL_STYLES = {
    NotificationLevel.INFO: "green",
    NotificationLevel.WARNING: "yellow",
    NotificationLevel.ERROR: "red",
}


def _format_time(value: Optional[datetime]) -> str:
    if value is None:
        return "[dim]never[/dim]"
    return f"{value:%Y-%m-%d %H:%M}"


def display_playlists(playlists: Sequence[SmartPlaylist]) -> None:
    """Display all smart playlists.

    Args:
        playlists: Playlists to list
    """
    if not playlists:
        console.print("[dim]No smart playlists yet.[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Playlist ID", style="dim")
    table.add_column("Active", justify="center")
    table.add_column("Tracks", style="green", justify="right")
    table.add_column("Last Sync")
    table.add_column("Criteria")

    for playlist in playlists:
        table.add_row(
            playlist.name,
            playlist.playlist_id,
            "✓" if playlist.is_active else "[dim]-[/dim]",
            str(playlist.member_count),
            _format_time(playlist.last_sync_at),
            playlist.criteria.describe(),
        )
    console.print(table)


def display_reconcile_results(results: Iterable[ReconcileResult]) -> None:
    """Display the outcome of one or more reconciliations."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Playlist", style="cyan")
    table.add_column("Added", style="green", justify="right")
    table.add_column("Removed", style="green", justify="right")
    table.add_column("Duplicates", justify="right")
    table.add_column("Manual", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Status")

    rows = 0
    for result in results:
        rows += 1
        if result.skipped:
            status = "[dim]skipped[/dim]"
        elif result.aborted:
            phase = result.aborted_at.value if result.aborted_at else "?"
            status = f"[red]aborted ({phase})[/red]"
        elif result.lost_items:
            status = f"[red]{len(result.lost_items)} lost[/red]"
        elif result.in_sync:
            status = "[dim]in sync[/dim]"
        else:
            status = "[green]synced[/green]"

        table.add_row(
            result.playlist_name or result.playlist_id,
            str(result.added),
            str(result.removed),
            str(result.duplicates_removed),
            str(result.manual_action),
            f"[red]{result.failed}[/red]" if result.failed else "0",
            status,
        )

    if rows == 0:
        console.print("[dim]No active smart playlists to sync.[/dim]")
        return
    console.print(table)


def display_incremental_result(result: Optional[IncrementalResult]) -> None:
    """Display a one-line summary of an incremental sync."""
    if result is None:
        console.print("[red]✗ Playlist update failed, see log[/red]")
        return
    if result.playlists_checked == 0:
        return
    console.print(
        f"[dim]Smart playlists: +{result.added} -{result.removed}"
        f"{f', {result.failed} failed' if result.failed else ''}[/dim]"
    )


def display_preview(keys: List[str], total: int) -> None:
    """Display the items a criteria would match."""
    console.print(
        f"\n[bold]{len(keys)}[/bold] of {total} tagged item(s) match\n"
    )
    for key in keys[:50]:
        console.print(f"  • {key}")
    if len(keys) > 50:
        console.print(f"  ... and {len(keys) - 50} more")


def display_item(item_key: str, item: Optional[Item]) -> None:
    """Display the tag data of one item."""
    if item is None:
        console.print(f"[dim]{item_key} has no tag data[/dim]")
        return

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Item", item.key)
    table.add_row("Rating", "★" * item.rating if item.rating else "-")
    table.add_row("Energy", str(item.energy) if item.energy else "-")
    table.add_row("Tempo", f"{item.tempo} BPM" if item.tempo else "-")
    table.add_row("Tags", ", ".join(str(t) for t in item.tags) or "-")
    table.add_row("Modified", _format_time(item.modified_at))
    console.print(table)


def display_items(items: Sequence[Item]) -> None:
    """Display all tagged items."""
    if not items:
        console.print("[dim]No tagged items yet.[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Item", style="cyan")
    table.add_column("Rating", justify="right")
    table.add_column("Energy", justify="right")
    table.add_column("BPM", justify="right")
    table.add_column("Tags")
    for item in items:
        table.add_row(
            item.key,
            str(item.rating or "-"),
            str(item.energy or "-"),
            str(item.tempo or "-"),
            ", ".join(str(t) for t in item.tags),
        )
    console.print(table)


def display_notifications(notifications: Sequence[Notification]) -> None:
    """Print collected notifications in the order they were raised."""
    for notification in notifications:
        style = _LEVEL_STYLES.get(notification.level, "white")
        console.print(f"[{style}]• {notification.message}[/{style}]")
