import threading
from queue import Queue, Empty
from typing import Optional

from models import Transaction


class InMemoryQueue:
    """
    Thread-safe bounded FIFO feeding a single shard.
    All synchronization is internal - callers never need to lock.
    publish_message blocks while the queue is full, which keeps memory bounded
    no matter how large the input is.
    """

    DEFAULT_TIMEOUT = 0.1
    DEFAULT_MAXSIZE = 1000

    def __init__(self, maxsize: int = DEFAULT_MAXSIZE):
        self._main_queue: Queue[Transaction] = Queue(maxsize=maxsize)
        self._shutdown_event = threading.Event()

    def publish_message(self, message: Transaction) -> None:
        """Add message to the queue, waiting for a free slot. Thread-safe."""
        if self._shutdown_event.is_set():
            raise RuntimeError("Cannot publish to a queue that has been shut down")
        self._main_queue.put(message)

    def consume_message(self) -> Optional[Transaction]:
        """
        Get next message from the queue.
        Returns None if queue is empty after timeout.
        Thread-safe.
        """
        try:
            return self._main_queue.get(timeout=self.DEFAULT_TIMEOUT)
        except Empty:
            return None

    def is_empty(self) -> bool:
        """Check if the queue is empty."""
        return self._main_queue.empty()

    def size(self) -> int:
        """Return approximate queue size."""
        return self._main_queue.qsize()

    def shutdown(self) -> None:
        """Signal no more messages will be published."""
        self._shutdown_event.set()

    def is_shutdown(self) -> bool:
        """Check if shutdown has been signaled."""
        return self._shutdown_event.is_set()

    def is_drained(self) -> bool:
        """True once shutdown was signaled and every message has been consumed."""
        return self.is_shutdown() and self.is_empty()
