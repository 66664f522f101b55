"""CLI display and formatting utilities."""

from .formatters import (
    console,
    display_incremental_result,
    display_item,
    display_items,
    display_notifications,
    display_playlists,
    display_preview,
    display_reconcile_results,
)

__all__ = [
    "console",
    "display_incremental_result",
    "display_item",
    "display_items",
    "display_notifications",
    "display_playlists",
    "display_preview",
    "display_reconcile_results",
]
