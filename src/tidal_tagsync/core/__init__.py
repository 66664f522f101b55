"""Core business logic for tidal-tagsync.

This package contains the engine organized by concern:
- sync: criteria evaluation, operation queue, incremental sync and reconciliation
- state: the persisted smart playlist store
- catalog: locally tagged items and the tagging operations
"""

__all__: list[str] = []
