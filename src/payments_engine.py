import logging
import threading
from typing import Iterable, List, Optional

from models import AccountSnapshot, ProcessingStats, Transaction
from message_queue import InMemoryQueue
from ledger import Ledger
from csv_io import read_transactions

logger = logging.getLogger(__name__)


class _Shard:
    """One ledger fed by one queue and drained by one consumer thread."""

    def __init__(self, index: int, queue_size: int):
        self.index = index
        self.queue = InMemoryQueue(maxsize=queue_size)
        self.ledger = Ledger()
        self.error: Optional[BaseException] = None
        self.thread = threading.Thread(target=self._consume_transactions, name=f"shard-{index}")

    def _consume_transactions(self) -> None:
        """Consumer loop: pull from queue and apply to this shard's ledger."""
        while True:
            transaction = self.queue.consume_message()
            if transaction is None:
                if self.queue.is_drained():
                    break
                continue

            # Keep draining after a failure so the publisher never blocks on a full queue.
            if self.error is not None:
                continue

            try:
                self.ledger.apply(transaction)
            except Exception as e:
                logger.exception(f"Shard {self.index} failed on {transaction}")
                self.error = e


class PaymentsEngine:
    """
    Orchestrates transaction processing across client-partitioned shards.

    Every client id maps to exactly one shard, and every shard consumes its queue
    in FIFO order, so the records of a client are applied in arrival order. Shards
    share no state; their snapshots are merged once all input is consumed.
    """

    def __init__(self, num_shards: int = 4, queue_size: int = InMemoryQueue.DEFAULT_MAXSIZE):
        if num_shards < 1:
            raise ValueError(f"num_shards must be at least 1, got {num_shards}")
        self._num_shards = num_shards
        self._queue_size = queue_size
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        """Merged counters of the last run."""
        return self._stats

    def process_file(self, filepath: str) -> List[AccountSnapshot]:
        """Process CSV file and return final account states ordered by client id."""
        return self.process_transactions(read_transactions(filepath))

    def process_transactions(self, transactions: Iterable[Transaction]) -> List[AccountSnapshot]:
        """Route transactions to shards, wait for them to finish and merge the results."""
        shards = [_Shard(index, self._queue_size) for index in range(self._num_shards)]

        logger.info(f"Starting processing with {self._num_shards} shard(s)")
        for shard in shards:
            shard.thread.start()

        try:
            for transaction in transactions:
                shards[transaction.client_id % self._num_shards].queue.publish_message(transaction)
        finally:
            for shard in shards:
                shard.queue.shutdown()
            for shard in shards:
                shard.thread.join()

        failed = [shard for shard in shards if shard.error is not None]
        if failed:
            raise RuntimeError(f"Shard {failed[0].index} stopped processing") from failed[0].error

        self._stats = ProcessingStats()
        snapshots: List[AccountSnapshot] = []
        for shard in shards:
            self._stats.merge(shard.ledger.stats)
            snapshots.extend(shard.ledger.snapshot())

        logger.info(f"Processing complete: {self._stats}")
        return sorted(snapshots, key=lambda snapshot: snapshot.client_id)
