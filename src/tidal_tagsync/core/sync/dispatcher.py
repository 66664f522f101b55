"""Incremental sync of single item changes into active smart playlists.

Changes are captured at enqueue time, but which playlists are affected and what
they currently contain is only read once the operation runs inside the queue.
"""

import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Callable, Dict, List, Mapping, Optional

from ...models import Criteria, Item, is_local_key
from ..state.playlist_store import PlaylistStateStore
from .evaluator import matches
from .notifications import (
    Notification,
    NotificationKind,
    NotificationLevel,
    Notifier,
    log_notifier,
)
from .operation_queue import OperationKind, OperationQueue, SyncOperation
from .remote import RemoteCollectionApi, remove_and_settle

logger = logging.getLogger(__name__)

Evaluator = Callable[[Item, Criteria], bool]


@dataclass
class IncrementalResult:
    """Counts for one incremental sync operation."""

    operation_id: str = ""
    playlists_checked: int = 0
    added: int = 0
    removed: int = 0
    manual_action: int = 0
    failed: int = 0
    unchanged: int = 0
    errors: List[str] = dataclass_field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Record a failure."""
        self.failed += 1
        self.errors.append(error)

    def get_summary(self) -> Dict[str, int]:
        """Get summary statistics."""
        return {
            "playlists_checked": self.playlists_checked,
            "added": self.added,
            "removed": self.removed,
            "manual_action": self.manual_action,
            "failed": self.failed,
            "unchanged": self.unchanged,
        }


class IncrementalSyncDispatcher:
    """Turns item changes into queued add/remove calls per active playlist."""

    def __init__(
        self,
        store: PlaylistStateStore,
        queue: OperationQueue,
        remote: RemoteCollectionApi,
        notifier: Notifier = log_notifier,
        evaluator: Evaluator = matches,
        settle_delay: float = 1.0,
        verify_after_changes: bool = False,
    ):
        """Initialize dispatcher.

        Args:
            store: Playlist state store
            queue: Operation queue the work is submitted to
            remote: Remote collection API
            notifier: Receives user-facing notifications
            evaluator: Criteria evaluator
            settle_delay: Seconds to wait after each successful removal
            verify_after_changes: Re-fetch remote membership after a playlist
                changed and overwrite the expected members with it
        """
        self.store = store
        self.queue = queue
        self.remote = remote
        self.notifier = notifier
        self.evaluator = evaluator
        self.settle_delay = settle_delay
        self.verify_after_changes = verify_after_changes

    def on_item_changed(self, item_key: str, item: Optional[Item]) -> SyncOperation:
        """Queue an incremental sync for one changed or deleted item.

        Args:
            item_key: Key of the changed item
            item: New item data, or None if the item was deleted

        Returns:
            The queued operation
        """
        changes = {item_key: item}
        operation = SyncOperation(
            kind=OperationKind.SINGLE_ITEM,
            execute=lambda: self._apply_changes(operation.id, changes),
            description=f"sync {item_key}",
        )
        return self.queue.enqueue(operation)

    def on_items_changed_batch(
        self, changes: Mapping[str, Optional[Item]]
    ) -> SyncOperation:
        """Queue a single incremental sync covering many item changes.

        Args:
            changes: Item key to new item data, None marking deletions

        Returns:
            The queued operation
        """
        captured = dict(changes)
        operation = SyncOperation(
            kind=OperationKind.BATCH,
            execute=lambda: self._apply_changes(operation.id, captured),
            description=f"sync {len(captured)} items",
        )
        return self.queue.enqueue(operation)

    async def _apply_changes(
        self, operation_id: str, changes: Mapping[str, Optional[Item]]
    ) -> IncrementalResult:
        result = IncrementalResult(operation_id=operation_id)
        playlist_ids = [p.playlist_id for p in self.store.list_active()]
        if not playlist_ids or not changes:
            return result

        for playlist_id in playlist_ids:
            playlist = self.store.get(playlist_id)
            if playlist is None or not playlist.is_active:
                continue
            result.playlists_checked += 1

            changed = False
            for item_key, item in changes.items():
                changed = (
                    await self._apply_to_playlist(playlist_id, item_key, item, result)
                    or changed
                )

            if changed and self.verify_after_changes:
                await self._verify(playlist_id)

        logger.debug("[%s] Incremental sync: %s", operation_id, result.get_summary())
        return result

    async def _apply_to_playlist(
        self,
        playlist_id: str,
        item_key: str,
        item: Optional[Item],
        result: IncrementalResult,
    ) -> bool:
        """Bring one playlist in line for one item.

        Returns:
            True if the expected members changed
        """
        # Read right before acting: earlier items in this operation, or earlier
        # operations, may have changed the playlist.
        playlist = self.store.get(playlist_id)
        if playlist is None or not playlist.is_active:
            return False
        is_member = playlist.has_member(item_key)

        if item is None:
            if not is_member:
                result.unchanged += 1
                return False
            return await self._remove(playlist_id, playlist.name, item_key, result)

        should_be_member = self.evaluator(item, playlist.criteria)
        if should_be_member and not is_member:
            if is_local_key(item_key):
                result.manual_action += 1
                self.notifier(
                    Notification(
                        kind=NotificationKind.MANUAL_ACTION,
                        level=NotificationLevel.WARNING,
                        message=(
                            f'Local item matches "{playlist.name}" criteria '
                            "but must be added manually"
                        ),
                        playlist_id=playlist_id,
                        item_key=item_key,
                    )
                )
                return False
            return await self._add(playlist_id, playlist.name, item_key, result)

        if not should_be_member and is_member:
            return await self._remove(playlist_id, playlist.name, item_key, result)

        result.unchanged += 1
        return False

    async def _add(
        self,
        playlist_id: str,
        playlist_name: str,
        item_key: str,
        result: IncrementalResult,
    ) -> bool:
        try:
            outcome = await self.remote.add_member(item_key, playlist_id)
        except Exception as e:
            logger.error("Failed to add %s to %s: %s", item_key, playlist_name, e)
            result.add_error(f"add {item_key} -> {playlist_id}: {e}")
            return False

        if not outcome.success:
            logger.warning("Remote rejected adding %s to %s", item_key, playlist_name)
            result.add_error(f"add {item_key} -> {playlist_id}: rejected")
            return False

        self.store.add_expected_member(playlist_id, item_key)
        if not outcome.was_added:
            logger.debug("%s was already in %s", item_key, playlist_name)
            result.unchanged += 1
        else:
            result.added += 1
            self.notifier(
                Notification(
                    kind=NotificationKind.ITEM_ADDED,
                    level=NotificationLevel.INFO,
                    message=f'Added track to smart playlist "{playlist_name}"',
                    playlist_id=playlist_id,
                    item_key=item_key,
                )
            )
        return True

    async def _remove(
        self,
        playlist_id: str,
        playlist_name: str,
        item_key: str,
        result: IncrementalResult,
    ) -> bool:
        try:
            removed = await remove_and_settle(
                self.remote, item_key, playlist_id, self.settle_delay
            )
        except Exception as e:
            logger.error("Failed to remove %s from %s: %s", item_key, playlist_name, e)
            result.add_error(f"remove {item_key} -> {playlist_id}: {e}")
            return False

        if not removed:
            logger.warning(
                "Remote rejected removing %s from %s", item_key, playlist_name
            )
            result.add_error(f"remove {item_key} -> {playlist_id}: rejected")
            return False

        self.store.remove_expected_member(playlist_id, item_key)
        result.removed += 1
        self.notifier(
            Notification(
                kind=NotificationKind.ITEM_REMOVED,
                level=NotificationLevel.INFO,
                message=f'Track removed from smart playlist "{playlist_name}"',
                playlist_id=playlist_id,
                item_key=item_key,
            )
        )
        return True

    async def _verify(self, playlist_id: str) -> None:
        """Overwrite expected members with what the remote actually holds."""
        try:
            actual = await self.remote.list_all_members(playlist_id)
        except Exception as e:
            logger.error("Verification fetch failed for %s: %s", playlist_id, e)
            return
        self.store.set_expected_members(playlist_id, actual)
