"""Contract for the remote collection API consumed by the sync engine."""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddResult:
    """Outcome of adding an item to a remote collection."""

    success: bool
    was_added: bool


class RemoteCollectionApi(Protocol):
    """Asynchronous access to remote collections (playlists).

    Every call may raise on transport errors; callers catch per call.
    """

    async def list_all_members(self, collection_id: str) -> List[str]:
        """Get all item keys in the collection, pages flattened, duplicates kept."""
        ...

    async def add_member(self, item_key: str, collection_id: str) -> AddResult:
        """Add an item; no-op with ``was_added=False`` when already present."""
        ...

    async def remove_member(self, item_key: str, collection_id: str) -> bool:
        """Remove every occurrence of an item from the collection."""
        ...

    async def is_member(self, item_key: str, collection_id: str) -> bool:
        """Check whether the item is in the collection."""
        ...

    async def list_all_collection_ids(self) -> List[str]:
        """Get the ids of all collections owned by the user."""
        ...

    async def fetch_tempo(self, item_key: str) -> Optional[int]:
        """Get the tempo of an item from the remote catalog, if known."""
        ...


async def remove_and_settle(
    remote: RemoteCollectionApi,
    item_key: str,
    collection_id: str,
    settle_delay: float,
) -> bool:
    """Remove an item and wait for the remote side to settle.

    The wait only happens after a successful removal, so that the next read
    of the collection observes it.

    Returns:
        Whether the remote reported success
    """
    removed = await remote.remove_member(item_key, collection_id)
    if removed and settle_delay > 0:
        logger.debug("Settling %.2fs after removing %s", settle_delay, item_key)
        await asyncio.sleep(settle_delay)
    return bool(removed)
