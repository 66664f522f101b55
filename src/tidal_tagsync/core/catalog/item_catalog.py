"""Local catalog of tagged items and the tagging operations on it.

Each mutation persists the catalog, then reports the change to the listeners
so smart playlists can follow. An item that ends up with no rating, no energy
and no tags is dropped and reported as deleted.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from pydantic import ValidationError

from ...database.service import KeyValueStore
from ...models import BatchTagUpdate, Item, TagKey, is_local_key, utc_now
from ..sync.remote import RemoteCollectionApi

logger = logging.getLogger(__name__)

ITEMS_KEY = "items"
RATING_RANGE = (1, 5)
ENERGY_RANGE = (1, 10)

ChangeListener = Callable[[str, Optional[Item]], Any]
BatchListener = Callable[[Dict[str, Optional[Item]]], Any]


def _check_range(name: str, value: Optional[int], bounds: "tuple[int, int]") -> None:
    if value is None or value == 0:
        return
    low, high = bounds
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


class ItemCatalog:
    """Holds the locally tagged items."""

    def __init__(
        self,
        storage: KeyValueStore,
        remote: Optional[RemoteCollectionApi] = None,
        key: str = ITEMS_KEY,
    ):
        """Initialize catalog.

        Args:
            storage: Persistence collaborator with load/save
            remote: Used for tempo lookups; optional
            key: Storage key the items are saved under
        """
        self.storage = storage
        self.remote = remote
        self.key = key
        self.change_listener: Optional[ChangeListener] = None
        self.batch_listener: Optional[BatchListener] = None
        self._items: Dict[str, Item] = {}
        # Items that got their first data and still need a tempo lookup
        self._tempo_pending: Set[str] = set()

    def load(self) -> int:
        """Load items from persistence, dropping invalid records.

        Returns:
            Number of items loaded
        """
        raw = self.storage.load(self.key)
        self._items = {}
        if not isinstance(raw, list):
            if raw is not None:
                logger.warning("Stored items are not a list; ignoring")
            return 0

        for record in raw:
            try:
                item = Item.model_validate(record)
            except ValidationError as e:
                logger.warning("Dropping invalid item record: %s", e)
                continue
            if item.is_empty:
                continue
            self._items[item.key] = item

        logger.info("Loaded %d tagged item(s)", len(self._items))
        return len(self._items)

    def get(self, item_key: str) -> Optional[Item]:
        """Get one item."""
        return self._items.get(item_key)

    def items(self) -> List[Item]:
        """Get all items in catalog order."""
        return list(self._items.values())

    def __len__(self) -> int:
        """Number of tagged items."""
        return len(self._items)

    @property
    def pending_tempo_lookups(self) -> List[str]:
        """Keys waiting for a tempo lookup."""
        return sorted(self._tempo_pending)

    # Single-item operations

    def set_rating(self, item_key: str, rating: Optional[int]) -> Optional[Item]:
        """Set or clear (None or 0) the rating of an item.

        Returns:
            The updated item, or None if it became empty and was removed
        """
        _check_range("Rating", rating, RATING_RANGE)
        return self._update(item_key, rating=rating)

    def set_energy(self, item_key: str, energy: Optional[int]) -> Optional[Item]:
        """Set or clear (None or 0) the energy of an item."""
        _check_range("Energy", energy, ENERGY_RANGE)
        return self._update(item_key, energy=energy)

    def set_tempo(self, item_key: str, tempo: Optional[int]) -> Optional[Item]:
        """Set or clear the tempo of an already tagged item.

        Tempo alone does not keep an item, so untagged items are left alone.
        """
        current = self._items.get(item_key)
        if current is None:
            logger.warning("Not setting tempo of %s: tag the item first", item_key)
            return None
        if tempo is not None and tempo <= 0:
            raise ValueError(f"Tempo must be positive, got {tempo}")
        return self._update(item_key, tempo=tempo)

    def toggle_tag(self, item_key: str, tag: TagKey) -> Optional[Item]:
        """Apply a tag, or remove it if it is already applied."""
        current = self._items.get(item_key)
        tags = list(current.tags) if current else []
        if tag in tags:
            tags.remove(tag)
        else:
            tags.append(tag)
        return self._update(item_key, tags=tags)

    def _update(self, item_key: str, **changes: Any) -> Optional[Item]:
        current = self._items.get(item_key)
        updated = self._apply(item_key, current, changes)
        self._store(item_key, current, updated)
        self._persist()
        if self.change_listener is not None:
            self.change_listener(item_key, updated)
        return updated

    # Batch operations

    def apply_batch_updates(
        self, updates: Iterable[BatchTagUpdate]
    ) -> Dict[str, Optional[Item]]:
        """Apply tag, rating and energy changes to many items at once.

        ``new_rating``/``new_energy`` of None leave the value unchanged; 0
        clears it. The batch listener is called once with every result.

        Returns:
            Item key to updated item, None for items that were removed
        """
        results: Dict[str, Optional[Item]] = {}
        for update in updates:
            _check_range("Rating", update.new_rating, RATING_RANGE)
            _check_range("Energy", update.new_energy, ENERGY_RANGE)

            current = self._items.get(update.item_key)
            tags = [t for t in (current.tags if current else []) if t not in update.to_remove]
            for tag in update.to_add:
                if tag not in tags:
                    tags.append(tag)

            changes: Dict[str, Any] = {"tags": tags}
            if update.new_rating is not None:
                changes["rating"] = update.new_rating
            if update.new_energy is not None:
                changes["energy"] = update.new_energy

            updated = self._apply(update.item_key, current, changes)
            self._store(update.item_key, current, updated)
            results[update.item_key] = updated

        if not results:
            return results

        self._persist()
        logger.info("Applied batch update to %d item(s)", len(results))
        if self.batch_listener is not None:
            self.batch_listener(dict(results))
        return results

    # Tempo

    async def update_tempo(self, item_key: str) -> Optional[int]:
        """Fetch an item's tempo from the remote catalog and store it.

        Only items that are already tagged and not local-only are looked up.

        Returns:
            The tempo stored, or None if none was found
        """
        self._tempo_pending.discard(item_key)
        if self.remote is None or is_local_key(item_key):
            return None
        if item_key not in self._items:
            logger.warning("Not fetching tempo of %s: tag the item first", item_key)
            return None

        try:
            tempo = await self.remote.fetch_tempo(item_key)
        except Exception as e:
            logger.error("Error fetching tempo for %s: %s", item_key, e)
            return None

        if tempo is None:
            logger.debug("No tempo known for %s", item_key)
            return None
        # The item may have been cleared while the lookup ran
        if item_key not in self._items:
            return None
        self.set_tempo(item_key, tempo)
        return tempo

    async def update_pending_tempos(self) -> int:
        """Run the tempo lookups queued for newly tagged items.

        Returns:
            Number of items that got a tempo
        """
        found = 0
        for item_key in self.pending_tempo_lookups:
            if await self.update_tempo(item_key) is not None:
                found += 1
        return found

    # Internals

    @staticmethod
    def _apply(
        item_key: str, current: Optional[Item], changes: Dict[str, Any]
    ) -> Optional[Item]:
        now = utc_now()
        if current is None:
            data: Dict[str, Any] = {"key": item_key, "created_at": now}
        else:
            data = current.model_dump()
        data.update(changes)
        data["modified_at"] = now
        # Validate so that a 0 rating or energy becomes None
        updated = Item.model_validate(data)
        return None if updated.is_empty else updated

    def _store(
        self, item_key: str, current: Optional[Item], updated: Optional[Item]
    ) -> None:
        if updated is None:
            self._items.pop(item_key, None)
            self._tempo_pending.discard(item_key)
            if current is not None:
                logger.debug("Removed empty item %s", item_key)
            return

        self._items[item_key] = updated
        if current is None and updated.tempo is None and not updated.is_local:
            self._tempo_pending.add(item_key)

    def _persist(self) -> None:
        payload = [item.model_dump(mode="json") for item in self._items.values()]
        if not self.storage.save(self.key, payload):
            logger.error("Failed to persist %d item(s); in-memory state kept", len(payload))
