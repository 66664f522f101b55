"""Tagging commands: rate, energy, tempo and tags of single items."""

import asyncio
import logging
from typing import Callable, Dict, Optional, Tuple

import click

from ...models import (
    LOCAL_KEY_PREFIX,
    BatchTagUpdate,
    Item,
    TagKey,
    tidal_track_id,
    tidal_track_key,
)
from ..display import display_item, display_items, display_notifications
from .app import TagSyncApp

logger = logging.getLogger(__name__)


def _item_key(value: str) -> str:
    """Accept a bare Tidal track id as shorthand for its item key.

    Raises:
        click.BadParameter: If the key is neither a Tidal track nor a local file
    """
    value = value.strip()
    if value.isdigit():
        return tidal_track_key(value)
    if tidal_track_id(value) is None and not value.startswith(LOCAL_KEY_PREFIX):
        raise click.BadParameter(
            f"Unknown item '{value}', expected a Tidal track id, "
            f"tidal:track:<id> or {LOCAL_KEY_PREFIX}<path>"
        )
    return value


def _parse_tag(value: str) -> TagKey:
    try:
        return TagKey.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


async def _apply(app: TagSyncApp, change: Callable[[], Optional[Item]]) -> Optional[Item]:
    # The change listener queues playlist updates, so run inside the loop
    updated = change()
    await app.catalog.update_pending_tempos()
    await app.engine.join()
    return updated


def _run_change(app: TagSyncApp, item_key: str, change: Callable[[], Optional[Item]]) -> None:
    app.connect()
    try:
        asyncio.run(_apply(app, change))
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    display_item(item_key, app.catalog.get(item_key))
    display_notifications(app.notifications.notifications)


@click.group("tag")
def tag() -> None:
    """Rate and tag tracks; smart playlists follow automatically."""
    pass


@tag.command(name="rate")
@click.argument("item")
@click.argument("rating", type=click.IntRange(0, 5))
@click.pass_obj
def rate(app: TagSyncApp, item: str, rating: int) -> None:
    """Set the star rating of a track (0 clears it)."""
    item_key = _item_key(item)
    _run_change(app, item_key, lambda: app.catalog.set_rating(item_key, rating))


@tag.command(name="energy")
@click.argument("item")
@click.argument("energy", type=click.IntRange(0, 10))
@click.pass_obj
def energy(app: TagSyncApp, item: str, energy: int) -> None:
    """Set the energy level of a track (0 clears it)."""
    item_key = _item_key(item)
    _run_change(app, item_key, lambda: app.catalog.set_energy(item_key, energy))


@tag.command(name="tempo")
@click.argument("item")
@click.argument("bpm", type=click.IntRange(min=1), required=False)
@click.pass_obj
def tempo(app: TagSyncApp, item: str, bpm: Optional[int]) -> None:
    """Set the tempo of a tagged track, or look it up on Tidal."""
    item_key = _item_key(item)
    if app.catalog.get(item_key) is None:
        raise click.ClickException("Tag the track first, then set its tempo")

    if bpm is None:
        app.connect()

        async def _lookup() -> Optional[int]:
            found = await app.catalog.update_tempo(item_key)
            await app.engine.join()
            return found

        if asyncio.run(_lookup()) is None:
            click.echo(f"No tempo known for {item_key}")
        display_item(item_key, app.catalog.get(item_key))
        display_notifications(app.notifications.notifications)
        return

    _run_change(app, item_key, lambda: app.catalog.set_tempo(item_key, bpm))


@tag.command(name="toggle")
@click.argument("item")
@click.argument("tag_key")
@click.pass_obj
def toggle(app: TagSyncApp, item: str, tag_key: str) -> None:
    """Apply a tag (category:subcategory:tag), or remove it if present."""
    item_key = _item_key(item)
    parsed = _parse_tag(tag_key)
    _run_change(app, item_key, lambda: app.catalog.toggle_tag(item_key, parsed))


@tag.command(name="batch")
@click.argument("items", nargs=-1, required=True)
@click.option("--add", "-a", "to_add", multiple=True, help="Tag to apply")
@click.option("--remove", "-d", "to_remove", multiple=True, help="Tag to remove")
@click.option("--rating", type=click.IntRange(0, 5), help="Rating for all (0 clears)")
@click.option("--energy", type=click.IntRange(0, 10), help="Energy for all (0 clears)")
@click.pass_obj
def batch(
    app: TagSyncApp,
    items: Tuple[str, ...],
    to_add: Tuple[str, ...],
    to_remove: Tuple[str, ...],
    rating: Optional[int],
    energy: Optional[int],
) -> None:
    """Apply the same tag changes to many tracks in one playlist update."""
    add_tags = tuple(_parse_tag(t) for t in to_add)
    remove_tags = tuple(_parse_tag(t) for t in to_remove)
    updates = [
        BatchTagUpdate(
            item_key=_item_key(item),
            to_add=add_tags,
            to_remove=remove_tags,
            new_rating=rating,
            new_energy=energy,
        )
        for item in items
    ]

    app.connect()

    async def _run() -> Dict[str, Optional[Item]]:
        results = app.catalog.apply_batch_updates(updates)
        await app.catalog.update_pending_tempos()
        await app.engine.join()
        return results

    results = asyncio.run(_run())
    display_items([item for item in results.values() if item is not None])
    cleared = [key for key, item in results.items() if item is None]
    if cleared:
        click.echo(f"Cleared {len(cleared)} item(s): {', '.join(cleared)}")
    display_notifications(app.notifications.notifications)


@tag.command(name="show")
@click.argument("item", required=False)
@click.pass_obj
def show(app: TagSyncApp, item: Optional[str]) -> None:
    """Show the tag data of one track, or of every tagged track."""
    if item is None:
        display_items(app.catalog.items())
        return
    item_key = _item_key(item)
    display_item(item_key, app.catalog.get(item_key))
