from typing import Dict, Optional

from models import DisputableEntry


class DuplicateTransactionError(KeyError):
    """Raised when a transaction id is added to the index a second time."""


class DisputeIndex:
    """
    Stores posted deposits and withdrawals by transaction id for dispute lookups.
    Entries are never removed: a resolved or charged back entry stays so that a
    second dispute on the same id can be rejected.
    """

    def __init__(self):
        self._entries: Dict[int, DisputableEntry] = {}

    def add(self, transaction_id: int, entry: DisputableEntry) -> None:
        """Insert an entry. Raises DuplicateTransactionError if the id is taken."""
        if transaction_id in self._entries:
            raise DuplicateTransactionError(transaction_id)
        self._entries[transaction_id] = entry

    def get(self, transaction_id: int) -> Optional[DisputableEntry]:
        """Retrieve an entry by transaction id. The entry is mutable in place."""
        return self._entries.get(transaction_id)

    def __contains__(self, transaction_id: int) -> bool:
        return transaction_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
