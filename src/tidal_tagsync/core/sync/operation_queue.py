"""Serializer that runs sync operations one at a time in submission order.

The remote collection API has no batching or transactions, and two concurrent
add/remove calls against the same playlist leave it in an undefined state.
Operations are therefore executed strictly sequentially on the event loop.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    """Kinds of queued work."""

    SINGLE_ITEM = "single"
    BATCH = "batch"
    FULL_RECONCILE = "reconcile"
    PLAYLIST_ADMIN = "admin"


@dataclass
class SyncOperation:
    """A queued unit of work, consumed exactly once."""

    kind: OperationKind
    execute: Callable[[], Awaitable[Any]]
    description: str = ""
    id: str = ""
    done: Optional["asyncio.Future[Any]"] = dataclass_field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Assign a correlation id when none was given."""
        if not self.id:
            self.id = f"{self.kind.value}-{uuid4().hex[:12]}"

    async def wait(self) -> Any:
        """Wait for the operation to finish and return its result.

        Returns:
            The value returned by ``execute``, or None if it failed
        """
        if self.done is None:
            raise RuntimeError(f"Operation {self.id} was never enqueued")
        return await self.done


class OperationQueue:
    """FIFO queue drained by a single task on the running event loop."""

    def __init__(self) -> None:
        """Initialize an empty queue."""
        self._pending: Deque[SyncOperation] = deque()
        self._drain_task: Optional["asyncio.Task[None]"] = None
        self.completed = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        """Number of operations waiting to run."""
        return len(self._pending)

    @property
    def is_draining(self) -> bool:
        """Whether a drain task is currently running."""
        return self._drain_task is not None and not self._drain_task.done()

    def enqueue(self, operation: SyncOperation) -> SyncOperation:
        """Append an operation and make sure a drain task is running.

        Must be called from within the running event loop.

        Args:
            operation: Operation to run

        Returns:
            The same operation, whose ``done`` future resolves when it has run
        """
        loop = asyncio.get_running_loop()
        if operation.done is not None:
            raise ValueError(f"Operation {operation.id} was already enqueued")
        operation.done = loop.create_future()
        self._pending.append(operation)
        logger.debug(
            "Enqueued %s (%s), %d pending",
            operation.id,
            operation.description or operation.kind.value,
            len(self._pending),
        )

        if not self.is_draining:
            self._drain_task = loop.create_task(self._drain())
        return operation

    async def join(self) -> None:
        """Wait until every enqueued operation has run."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.shield(self._drain_task)

    async def _drain(self) -> None:
        try:
            # Re-check after every operation so that enqueues made while
            # draining join this same run.
            while self._pending:
                operation = self._pending.popleft()
                await self._run(operation)
        finally:
            self._drain_task = None

    async def _run(self, operation: SyncOperation) -> None:
        start_time = time.monotonic()
        result: Any = None
        try:
            result = await operation.execute()
            self.completed += 1
            logger.debug(
                "Finished %s in %.0fms",
                operation.id,
                (time.monotonic() - start_time) * 1000,
            )
        except Exception:
            self.failed += 1
            logger.exception(
                "FAILED operation %s after %.0fms",
                operation.id,
                (time.monotonic() - start_time) * 1000,
            )
        finally:
            if operation.done is not None and not operation.done.done():
                operation.done.set_result(result)
