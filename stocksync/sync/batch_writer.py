"""
Batched Persistence Writer

Queues document writes and commits them in batches of at most
`max_operations`. A full batch is committed before the next write is
queued, so batches commit strictly one after another; `flush()` commits the
final partial batch.

There is no atomicity across batches: when batch N fails, batches 1..N-1
stay applied and the run stops.
"""

from typing import Any, Dict, List

import structlog

from stocksync.exceptions import BatchCommitError

MAX_BATCH_OPERATIONS = 500


class BatchWriter:
    """
    Bounded-size write batching over a document store.

    Example:
        writer = BatchWriter(store)
        await writer.set("articles", doc_id, document)
        await writer.update("products", product_id, {"totalStock": 8})
        await writer.flush()
    """

    def __init__(self, store, max_operations: int = MAX_BATCH_OPERATIONS, logger=None):
        if not 1 <= max_operations <= MAX_BATCH_OPERATIONS:
            raise ValueError(f"max_operations must be between 1 and {MAX_BATCH_OPERATIONS}")
        self.store = store
        self.max_operations = max_operations
        self.log = logger or structlog.get_logger(__name__)
        self.batch_sizes: List[int] = []
        self._batch = store.batch()

    @property
    def committed_batches(self) -> int:
        return len(self.batch_sizes)

    @property
    def committed_operations(self) -> int:
        return sum(self.batch_sizes)

    @property
    def pending(self) -> int:
        return len(self._batch)

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self._batch.set(collection, doc_id, data, merge=merge)
        await self._commit_if_full()

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self._batch.update(collection, doc_id, fields)
        await self._commit_if_full()

    async def flush(self) -> int:
        """Commit the partial batch, if any; returns total committed operations"""
        if len(self._batch):
            await self._commit()
        return self.committed_operations

    async def _commit_if_full(self) -> None:
        if len(self._batch) >= self.max_operations:
            await self._commit()

    async def _commit(self) -> None:
        batch_number = self.committed_batches + 1
        size = len(self._batch)

        try:
            await self._batch.commit()
        except Exception as e:
            self.log.error(
                "Batch commit failed",
                batch=batch_number,
                operations=size,
                committed_batches=self.committed_batches,
                error=str(e),
            )
            raise BatchCommitError(
                f"Batch {batch_number} ({size} operations) failed: {e}",
                batch_number=batch_number,
                committed_batches=self.committed_batches,
            ) from e

        self.batch_sizes.append(size)
        self._batch = self.store.batch()
        self.log.info("Batch committed", batch=batch_number, operations=size)
