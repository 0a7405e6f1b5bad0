"""
Single-writer persistence queue.

Every snapshot submitted for persistence goes through one asyncio queue
drained by one worker task, so the file on disk follows the order in which
snapshots were committed in memory.
"""

import asyncio
import copy
import logging
from typing import Any, Dict, Optional, Tuple

from ...core.interfaces.lifecycle import IComponent
from ...core.interfaces.storage import IConfigStore

logger = logging.getLogger(__name__)

_WriteRequest = Tuple[int, Dict[str, Any], "asyncio.Future[bool]"]


class PersistenceWriter(IComponent):
    """
    Serializes snapshot writes to a config store.

    ``submit`` never blocks and never raises on I/O failure; callers that
    need durability await the returned future.
    """

    def __init__(self, store: IConfigStore) -> None:
        self._store = store
        self._queue: Optional[asyncio.Queue[_WriteRequest]] = None
        self._worker: Optional[asyncio.Task[None]] = None
        self._running = False
        self._generation = 0

        self._metrics: Dict[str, int] = {
            'writes_submitted': 0,
            'writes_completed': 0,
            'writes_failed': 0,
        }

    @property
    def name(self) -> str:
        """Get component name."""
        return "PersistenceWriter"

    @property
    def version(self) -> str:
        """Get component version."""
        return "1.0.0"

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        """Number of writes queued or in progress."""
        if self._queue is None:
            return 0
        return self._metrics['writes_submitted'] - (
            self._metrics['writes_completed'] + self._metrics['writes_failed'])

    async def start(self) -> None:
        """Start the writer task."""
        if self._running:
            return

        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._worker_process())
        self._running = True
        logger.debug(f"Persistence writer started for {self._store.path}")

    async def stop(self) -> None:
        """Finish queued writes, then stop the writer task."""
        if not self._running:
            return

        await self.drain()
        self._running = False

        if self._worker:
            self._worker.cancel()
            await asyncio.gather(self._worker, return_exceptions=True)
            self._worker = None

        logger.debug("Persistence writer stopped")

    async def check_health(self) -> Dict[str, Any]:
        """Check writer health."""
        return {
            'healthy': self._metrics['writes_failed'] == 0,
            'status': 'running' if self._running else 'stopped',
            'details': {
                'path': str(self._store.path),
                'pending': self.pending,
                **self._metrics
            }
        }

    def submit(self, snapshot: Dict[str, Any]) -> "asyncio.Future[bool]":
        """
        Queue a snapshot for writing.

        Returns:
            Future resolving to True once the store holds this snapshot (or a
            newer one), False if the write failed.

        Raises:
            RuntimeError: If the writer is not running
        """
        if not self._running or self._queue is None:
            raise RuntimeError("Persistence writer is not running")

        self._generation += 1
        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((self._generation, copy.deepcopy(snapshot), future))
        self._metrics['writes_submitted'] += 1
        return future

    async def drain(self) -> None:
        """Wait until every queued write has completed."""
        if self._queue is not None and self._running:
            await self._queue.join()

    async def _worker_process(self) -> None:
        """Write queued snapshots one at a time."""
        assert self._queue is not None

        while True:
            generation, snapshot, future = await self._queue.get()
            try:
                ok = await self._store.save_async(snapshot, generation)
            except Exception as e:
                # The store contract is not to raise; keep the writer alive anyway
                logger.error(f"Unexpected error persisting generation {generation}: {e}")
                ok = False

            if ok:
                self._metrics['writes_completed'] += 1
            else:
                self._metrics['writes_failed'] += 1

            if not future.done():
                future.set_result(ok)
            self._queue.task_done()
