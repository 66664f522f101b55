"""Smart playlist engine: the single entry point used by the CLI.

One engine is built per process. It owns the playlist store, the operation
queue, the incremental dispatcher and the reconciliation engine, and routes
every store mutation through the queue.
"""

import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from ...database.service import KeyValueStore
from ...models import Criteria, Item, SmartPlaylist
from ..state.playlist_store import SMART_PLAYLISTS_KEY, PlaylistStateStore
from .dispatcher import IncrementalSyncDispatcher
from .evaluator import matches, matching_keys
from .notifications import (
    Notification,
    NotificationKind,
    NotificationLevel,
    Notifier,
    log_notifier,
)
from .operation_queue import OperationKind, OperationQueue, SyncOperation
from .reconciliation import ItemsProvider, ReconciliationEngine
from .remote import RemoteCollectionApi

logger = logging.getLogger(__name__)


class SmartPlaylistEngine:
    """Keeps remote playlists in line with their smart criteria."""

    def __init__(
        self,
        storage: KeyValueStore,
        remote: RemoteCollectionApi,
        items_provider: ItemsProvider,
        notifier: Notifier = log_notifier,
        settle_delay: float = 1.0,
        verify_after_changes: bool = False,
        storage_key: str = SMART_PLAYLISTS_KEY,
    ):
        """Initialize engine.

        Args:
            storage: Persistence collaborator for the playlist store
            remote: Remote collection API
            items_provider: Returns the current catalog items in catalog order
            notifier: Receives user-facing notifications
            settle_delay: Seconds to wait after each successful remote removal
            verify_after_changes: Re-fetch membership after incremental changes
            storage_key: Key the playlists are persisted under
        """
        self.remote = remote
        self.items_provider = items_provider
        self.notifier = notifier
        self.store = PlaylistStateStore(storage, key=storage_key)
        self.queue = OperationQueue()
        self.dispatcher = IncrementalSyncDispatcher(
            self.store,
            self.queue,
            remote,
            notifier=notifier,
            settle_delay=settle_delay,
            verify_after_changes=verify_after_changes,
        )
        self.reconciler = ReconciliationEngine(
            self.store,
            remote,
            items_provider,
            notifier=notifier,
            settle_delay=settle_delay,
        )

    def load(self) -> int:
        """Load persisted playlists.

        Returns:
            Number of playlists loaded
        """
        return self.store.load()

    # Read side

    def playlists(self) -> List[SmartPlaylist]:
        """Get all smart playlists."""
        return self.store.list()

    def get_playlist(self, playlist_id: str) -> Optional[SmartPlaylist]:
        """Get one smart playlist by its remote id."""
        return self.store.get(playlist_id)

    @staticmethod
    def evaluate(item: Item, criteria: Criteria) -> bool:
        """Evaluate one item against a criteria expression."""
        return matches(item, criteria)

    def preview(self, criteria: Criteria) -> List[str]:
        """Get the keys of all catalog items matching the criteria."""
        return matching_keys(self.items_provider(), criteria)

    # Item changes

    def on_item_changed(self, item_key: str, item: Optional[Item]) -> SyncOperation:
        """Queue an incremental sync for one changed or deleted item."""
        return self.dispatcher.on_item_changed(item_key, item)

    def on_items_changed_batch(
        self, changes: Mapping[str, Optional[Item]]
    ) -> SyncOperation:
        """Queue one incremental sync for many changed items."""
        return self.dispatcher.on_items_changed_batch(changes)

    # Reconciliation

    def reconcile(self, playlist_id: str) -> SyncOperation:
        """Queue a full reconciliation of one playlist."""
        operation = SyncOperation(
            kind=OperationKind.FULL_RECONCILE,
            execute=lambda: self.reconciler.reconcile(playlist_id),
            description=f"reconcile {playlist_id}",
        )
        return self.queue.enqueue(operation)

    def reconcile_all(self) -> List[SyncOperation]:
        """Queue a reconciliation for every active playlist.

        Returns:
            One operation per playlist, run one after another
        """
        return [self.reconcile(p.playlist_id) for p in self.store.list_active()]

    # Playlist administration

    def create_playlist(
        self,
        playlist_id: str,
        name: str,
        criteria: Criteria,
        members: Sequence[str] = (),
        is_active: bool = True,
    ) -> SyncOperation:
        """Queue registration of a new smart playlist.

        The remote collection must already exist; ``members`` are the items
        it was created with.

        Returns:
            Operation resolving to the stored playlist
        """
        playlist = SmartPlaylist(
            playlist_id=playlist_id,
            name=name,
            criteria=criteria,
            is_active=is_active,
            expected_members=list(members),
        )

        def _create(current: Optional[SmartPlaylist]) -> Optional[SmartPlaylist]:
            if current is not None:
                logger.warning(
                    "Smart playlist %s already exists; keeping '%s'",
                    playlist_id,
                    current.name,
                )
                return current
            return playlist

        return self._admin(
            f"create {playlist_id}", lambda: self.store.upsert(playlist_id, _create)
        )

    def set_playlists(self, playlists: Iterable[SmartPlaylist]) -> SyncOperation:
        """Queue a bulk replace of all smart playlists, e.g. after an import."""
        captured = list(playlists)

        def _replace() -> int:
            self.store.replace_all(captured)
            logger.info("Replaced smart playlists with %d record(s)", len(captured))
            return len(captured)

        return self._admin("replace playlists", _replace)

    def activate(self, playlist_id: str) -> SyncOperation:
        """Queue activation of a playlist followed by a full reconciliation.

        Returns:
            The activation operation; the reconciliation is queued behind it
        """

        def _activate() -> Optional[SmartPlaylist]:
            updated = self._set_active(playlist_id, True)
            if updated is not None:
                self.reconcile(playlist_id)
            return updated

        return self._admin(f"activate {playlist_id}", _activate)

    def deactivate(self, playlist_id: str) -> SyncOperation:
        """Queue deactivation of a playlist; its remote content is kept."""
        return self._admin(
            f"deactivate {playlist_id}",
            lambda: self._set_active(playlist_id, False),
        )

    def remove_playlist(self, playlist_id: str) -> SyncOperation:
        """Queue removal of a smart playlist; the remote collection is kept."""
        return self._admin(
            f"remove {playlist_id}", lambda: self.store.remove(playlist_id)
        )

    def cleanup_deleted_playlists(self) -> SyncOperation:
        """Queue removal of playlists whose remote collection no longer exists.

        Returns:
            Operation resolving to the list of removed playlist ids
        """
        operation = SyncOperation(
            kind=OperationKind.PLAYLIST_ADMIN,
            execute=self._cleanup_deleted,
            description="cleanup deleted playlists",
        )
        return self.queue.enqueue(operation)

    async def join(self) -> None:
        """Wait until all queued work has run."""
        await self.queue.join()

    def _admin(self, description: str, action: Callable[[], Any]) -> SyncOperation:
        async def _execute() -> Any:
            return action()

        return self.queue.enqueue(
            SyncOperation(
                kind=OperationKind.PLAYLIST_ADMIN,
                execute=_execute,
                description=description,
            )
        )

    def _set_active(self, playlist_id: str, is_active: bool) -> Optional[SmartPlaylist]:
        def _apply(current: Optional[SmartPlaylist]) -> Optional[SmartPlaylist]:
            if current is None:
                return None
            return current.model_copy(update={"is_active": is_active})

        if playlist_id not in self.store:
            logger.warning("Unknown smart playlist %s", playlist_id)
            return None
        updated = self.store.upsert(playlist_id, _apply)
        logger.info(
            "Smart playlist %s %s",
            playlist_id,
            "activated" if is_active else "deactivated",
        )
        return updated

    async def _cleanup_deleted(self) -> List[str]:
        try:
            existing = await self.remote.list_all_collection_ids()
        except Exception as e:
            logger.error("Could not list remote playlists, nothing removed: %s", e)
            return []

        if not existing:
            # Treated as a failed listing
            logger.warning("Remote returned no playlists, nothing removed")
            return []

        existing_ids = set(existing)
        removed = [
            p.playlist_id
            for p in self.store.list()
            if p.playlist_id not in existing_ids
        ]
        for playlist_id in removed:
            self.store.remove(playlist_id)

        if removed:
            self.notifier(
                Notification(
                    kind=NotificationKind.CLEANUP,
                    level=NotificationLevel.INFO,
                    message=(
                        f"Removed {len(removed)} smart playlist(s) whose "
                        "playlist was deleted"
                    ),
                )
            )
        return removed

