"""Command-line interface for tidal-tagsync."""
