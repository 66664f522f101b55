"""Full reconciliation of one smart playlist against its remote collection.

Local criteria wins: whatever the remote holds is brought in line with the
items that currently match. Reconciliation runs in fixed phases:

1. FETCH the remote membership
2. DEDUPLICATE keys that appear more than once remotely
3. REFETCH the membership, now treated as authoritative
4. DESIRED set from the local catalog
5. DIFF desired against actual
6. REMOVE what should not be there
7. ADD what is missing
8. COMMIT the desired set as the expected members
9. NOTIFY with a single summary
"""

import logging
from collections import Counter
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ...models import Criteria, Item, SmartPlaylist
from ..state.playlist_store import PlaylistStateStore
from .evaluator import matches
from .notifications import (
    Notification,
    NotificationKind,
    NotificationLevel,
    Notifier,
    log_notifier,
)
from .remote import RemoteCollectionApi, remove_and_settle

logger = logging.getLogger(__name__)

ItemsProvider = Callable[[], Iterable[Item]]
Evaluator = Callable[[Item, Criteria], bool]


class ReconcilePhase(str, Enum):
    """Ordered reconciliation phases."""

    FETCH = "fetch"
    DEDUPLICATE = "deduplicate"
    REFETCH = "refetch"
    DESIRED = "desired"
    DIFF = "diff"
    REMOVE = "remove"
    ADD = "add"
    COMMIT = "commit"
    NOTIFY = "notify"

    @classmethod
    def ordered(cls) -> List["ReconcilePhase"]:
        """Return phases in execution order."""
        return [
            cls.FETCH,
            cls.DEDUPLICATE,
            cls.REFETCH,
            cls.DESIRED,
            cls.DIFF,
            cls.REMOVE,
            cls.ADD,
            cls.COMMIT,
            cls.NOTIFY,
        ]


class ReconcileAborted(Exception):
    """Raised inside a run when a phase cannot continue safely."""

    def __init__(self, phase: ReconcilePhase, reason: str):
        """Initialize with the failing phase."""
        super().__init__(f"{phase.value}: {reason}")
        self.phase = phase
        self.reason = reason


@dataclass
class ReconcileResult:
    """Result of reconciling one playlist."""

    playlist_id: str
    playlist_name: str = ""
    added: int = 0
    removed: int = 0
    duplicates_removed: int = 0
    manual_action: int = 0
    failed: int = 0
    lost_items: List[str] = dataclass_field(default_factory=list)
    skipped: bool = False
    aborted: bool = False
    aborted_at: Optional[ReconcilePhase] = None
    completed_phases: List[ReconcilePhase] = dataclass_field(default_factory=list)
    errors: List[str] = dataclass_field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Record a failed remote call."""
        self.failed += 1
        self.errors.append(error)

    @property
    def in_sync(self) -> bool:
        """Whether nothing had to be changed remotely."""
        return self.added == 0 and self.removed == 0 and self.duplicates_removed == 0

    def summary_message(self) -> str:
        """Get the consolidated change summary shown to the user."""
        if self.in_sync:
            return f'"{self.playlist_name}" already in sync'
        parts = []
        if self.added:
            parts.append(f"+{self.added} tracks")
        if self.removed:
            parts.append(f"-{self.removed} tracks")
        if self.duplicates_removed:
            parts.append(f"-{self.duplicates_removed} duplicates")
        return f'Synced "{self.playlist_name}": {", ".join(parts)}'

    def get_summary(self) -> Dict[str, Any]:
        """Get summary statistics."""
        summary: Dict[str, Any] = {
            "playlist_id": self.playlist_id,
            "added": self.added,
            "removed": self.removed,
            "duplicates_removed": self.duplicates_removed,
            "manual_action": self.manual_action,
            "failed": self.failed,
            "lost_items": len(self.lost_items),
        }
        if self.skipped:
            summary["skipped"] = True
        if self.aborted:
            summary["aborted_at"] = self.aborted_at.value if self.aborted_at else None
        return summary


class ReconciliationEngine:
    """Brings a remote collection in line with a playlist's criteria."""

    def __init__(
        self,
        store: PlaylistStateStore,
        remote: RemoteCollectionApi,
        items_provider: ItemsProvider,
        notifier: Notifier = log_notifier,
        evaluator: Evaluator = matches,
        settle_delay: float = 1.0,
    ):
        """Initialize reconciliation engine.

        Args:
            store: Playlist state store
            remote: Remote collection API
            items_provider: Returns the current catalog items in catalog order
            notifier: Receives user-facing notifications
            evaluator: Criteria evaluator
            settle_delay: Seconds to wait after each successful removal
        """
        self.store = store
        self.remote = remote
        self.items_provider = items_provider
        self.notifier = notifier
        self.evaluator = evaluator
        self.settle_delay = settle_delay

    async def reconcile(self, playlist_id: str) -> ReconcileResult:
        """Reconcile one playlist.

        Must run inside the operation queue: it reads and writes the store and
        issues remote calls that may not interleave with other operations.

        Args:
            playlist_id: Playlist to reconcile

        Returns:
            ReconcileResult with counts for every phase
        """
        result = ReconcileResult(playlist_id=playlist_id)
        playlist = self.store.get(playlist_id)
        if playlist is None:
            logger.info("Skipping reconcile of unknown playlist %s", playlist_id)
            result.skipped = True
            return result
        result.playlist_name = playlist.name
        if not playlist.is_active:
            logger.info("Skipping reconcile of inactive playlist '%s'", playlist.name)
            result.skipped = True
            return result

        logger.info("Reconciling smart playlist '%s'", playlist.name)
        try:
            await self._run_phases(playlist, result)
        except ReconcileAborted as e:
            result.aborted = True
            result.aborted_at = e.phase
            result.errors.append(str(e))
            logger.error(
                "Reconcile of '%s' aborted during %s: %s",
                playlist.name,
                e.phase.value,
                e.reason,
            )
            self.notifier(
                Notification(
                    kind=NotificationKind.SYNC_FAILED,
                    level=NotificationLevel.ERROR,
                    message=f'Failed to sync "{playlist.name}": {e.reason}',
                    playlist_id=playlist_id,
                )
            )
            return result

        logger.info("Reconcile of '%s' complete: %s", playlist.name, result.get_summary())
        return result

    async def _run_phases(
        self, playlist: SmartPlaylist, result: ReconcileResult
    ) -> None:
        playlist_id = playlist.playlist_id

        # 1. FETCH
        initial = await self._fetch(playlist_id, ReconcilePhase.FETCH)
        result.completed_phases.append(ReconcilePhase.FETCH)

        # 2. DEDUPLICATE
        await self._deduplicate(playlist, initial, result)
        result.completed_phases.append(ReconcilePhase.DEDUPLICATE)

        # 3. REFETCH
        actual = await self._fetch(playlist_id, ReconcilePhase.REFETCH)
        result.completed_phases.append(ReconcilePhase.REFETCH)

        # 4. DESIRED, from the criteria as stored now
        current = self.store.get(playlist_id) or playlist
        desired = self._desired_members(current.criteria, result)
        result.completed_phases.append(ReconcilePhase.DESIRED)

        # 5. DIFF
        to_add, to_remove = self.diff(desired, actual)
        logger.debug(
            "Diff for '%s': %d to add, %d to remove",
            playlist.name,
            len(to_add),
            len(to_remove),
        )
        result.completed_phases.append(ReconcilePhase.DIFF)

        # 6. REMOVE
        for item_key in to_remove:
            await self._remove(playlist_id, item_key, result)
        result.completed_phases.append(ReconcilePhase.REMOVE)

        # 7. ADD
        for item_key in to_add:
            await self._add(playlist_id, item_key, result)
        result.completed_phases.append(ReconcilePhase.ADD)

        # 8. COMMIT, even when individual calls failed
        self.store.set_expected_members(playlist_id, desired)
        result.completed_phases.append(ReconcilePhase.COMMIT)

        # 9. NOTIFY
        self._notify(result)
        result.completed_phases.append(ReconcilePhase.NOTIFY)

    async def _fetch(self, playlist_id: str, phase: ReconcilePhase) -> List[str]:
        try:
            return await self.remote.list_all_members(playlist_id)
        except Exception as e:
            raise ReconcileAborted(phase, f"could not fetch members ({e})") from e

    async def _deduplicate(
        self, playlist: SmartPlaylist, members: List[str], result: ReconcileResult
    ) -> None:
        counts = Counter(members)
        duplicates = [(key, n) for key, n in counts.items() if n > 1]
        if not duplicates:
            return

        logger.info(
            "Found %d duplicated item(s) in '%s'", len(duplicates), playlist.name
        )
        for item_key, occurrences in duplicates:
            try:
                removed = await remove_and_settle(
                    self.remote, item_key, playlist.playlist_id, self.settle_delay
                )
            except Exception as e:
                result.add_error(f"dedup remove {item_key}: {e}")
                logger.error("Failed to remove duplicates of %s: %s", item_key, e)
                continue
            if not removed:
                result.add_error(f"dedup remove {item_key}: rejected")
                logger.warning("Remote rejected removing duplicates of %s", item_key)
                continue

            if await self._readd(playlist.playlist_id, item_key):
                result.duplicates_removed += occurrences - 1
                continue

            result.failed += 1
            result.lost_items.append(item_key)
            logger.error(
                "Item %s was removed from '%s' but could not be re-added",
                item_key,
                playlist.name,
            )
            self.notifier(
                Notification(
                    kind=NotificationKind.DATA_LOSS,
                    level=NotificationLevel.ERROR,
                    message=(
                        f'Track was removed from "{playlist.name}" while fixing '
                        "duplicates and could not be re-added"
                    ),
                    playlist_id=playlist.playlist_id,
                    item_key=item_key,
                )
            )

    async def _readd(self, playlist_id: str, item_key: str) -> bool:
        try:
            outcome = await self.remote.add_member(item_key, playlist_id)
        except Exception as e:
            logger.error("Re-add of %s failed: %s", item_key, e)
            return False
        return outcome.success

    def _desired_members(self, criteria: Criteria, result: ReconcileResult) -> List[str]:
        desired: List[str] = []
        local_matches = 0
        for item in self.items_provider():
            if not self.evaluator(item, criteria):
                continue
            if item.is_local:
                local_matches += 1
                continue
            desired.append(item.key)

        result.manual_action = local_matches
        if local_matches:
            self.notifier(
                Notification(
                    kind=NotificationKind.MANUAL_ACTION,
                    level=NotificationLevel.WARNING,
                    message=(
                        f'{local_matches} local item(s) match "{result.playlist_name}" '
                        "criteria but must be added manually"
                    ),
                    playlist_id=result.playlist_id,
                )
            )
        return list(dict.fromkeys(desired))

    @staticmethod
    def diff(
        desired: List[str], actual: List[str]
    ) -> Tuple[List[str], List[str]]:
        """Compute what to add and what to remove.

        Args:
            desired: Keys that should be members, in catalog order
            actual: Keys currently in the remote collection

        Returns:
            Tuple of (to_add, to_remove), each duplicate free and ordered
        """
        desired_set = set(desired)
        actual_set = set(actual)
        to_add = [key for key in dict.fromkeys(desired) if key not in actual_set]
        to_remove = [key for key in dict.fromkeys(actual) if key not in desired_set]
        return to_add, to_remove

    async def _remove(
        self, playlist_id: str, item_key: str, result: ReconcileResult
    ) -> None:
        try:
            removed = await remove_and_settle(
                self.remote, item_key, playlist_id, self.settle_delay
            )
        except Exception as e:
            result.add_error(f"remove {item_key}: {e}")
            logger.error("Failed to remove %s: %s", item_key, e)
            return
        if removed:
            result.removed += 1
        else:
            result.add_error(f"remove {item_key}: rejected")

    async def _add(
        self, playlist_id: str, item_key: str, result: ReconcileResult
    ) -> None:
        try:
            outcome = await self.remote.add_member(item_key, playlist_id)
        except Exception as e:
            result.add_error(f"add {item_key}: {e}")
            logger.error("Failed to add %s: %s", item_key, e)
            return
        if outcome.success:
            if outcome.was_added:
                result.added += 1
            else:
                logger.debug("%s was already present", item_key)
        else:
            result.add_error(f"add {item_key}: rejected")

    def _notify(self, result: ReconcileResult) -> None:
        if result.in_sync:
            kind = NotificationKind.IN_SYNC
        else:
            kind = NotificationKind.SYNC_SUMMARY
        level = NotificationLevel.WARNING if result.failed else NotificationLevel.INFO
        self.notifier(
            Notification(
                kind=kind,
                level=level,
                message=result.summary_message(),
                playlist_id=result.playlist_id,
            )
        )
