"""Synchronization module.

Handles criteria evaluation, serialized execution, incremental sync and full
reconciliation of smart playlists.
"""

from .dispatcher import IncrementalResult, IncrementalSyncDispatcher
from .engine import SmartPlaylistEngine
from .evaluator import matches, matching_keys
from .notifications import (
    Notification,
    NotificationCollector,
    NotificationKind,
    NotificationLevel,
    Notifier,
    log_notifier,
)
from .operation_queue import OperationKind, OperationQueue, SyncOperation
from .reconciliation import (
    ReconcileAborted,
    ReconcilePhase,
    ReconcileResult,
    ReconciliationEngine,
)
from .remote import AddResult, RemoteCollectionApi, remove_and_settle

__all__ = [
    # Evaluation
    "matches",
    "matching_keys",
    # Engine
    "SmartPlaylistEngine",
    # Incremental sync
    "IncrementalResult",
    "IncrementalSyncDispatcher",
    # Notifications
    "Notification",
    "NotificationCollector",
    "NotificationKind",
    "NotificationLevel",
    "Notifier",
    "log_notifier",
    # Queue
    "OperationKind",
    "OperationQueue",
    "SyncOperation",
    # Reconciliation
    "ReconcileAborted",
    "ReconcilePhase",
    "ReconcileResult",
    "ReconciliationEngine",
    # Remote contract
    "AddResult",
    "RemoteCollectionApi",
    "remove_and_settle",
]
