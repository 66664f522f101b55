"""Preview which tagged items a criteria matches."""

from typing import Any

import click

from ..display import display_preview
from .app import TagSyncApp
from .criteria_options import build_criteria, criteria_options


@click.command("preview")
@criteria_options
@click.pass_obj
def preview_command(app: TagSyncApp, **criteria_values: Any) -> None:
    """Show the tagged items a criteria would put in a playlist.

    Examples:
        tidal-tagsync preview -i genre:house:deep --tempo-min 124 --tempo-max 128
    """
    criteria = build_criteria(**criteria_values)
    display_preview(app.engine.preview(criteria), len(app.catalog))
