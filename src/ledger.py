import logging
from decimal import Inexact, localcontext
from typing import Dict, List, Optional

from models import (
    LEDGER_CONTEXT,
    LEDGER_PRECISION,
    AccountSnapshot,
    ClientAccount,
    DisputableEntry,
    DisputeStatus,
    ProcessingResult,
    ProcessingStats,
    Transaction,
    TransactionType,
)
from dispute_index import DisputeIndex

logger = logging.getLogger(__name__)


class Ledger:
    """
    Applies transactions, in arrival order, to the accounts of the clients it owns.

    A Ledger holds no shared state: one instance per shard, created at the start
    of a run and read back through snapshot() at the end. Accounts are created on
    the first accepted mutation, so records that are rejected never leave an empty
    account behind.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._disputes = DisputeIndex()
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """
        Apply a single transaction.

        Returns:
            SUCCESS: Balances or dispute state changed
            INVALID_INPUT: Malformed record (missing or non-positive amount, duplicate tx id,
                or a balance that would no longer be exact)
            IGNORED: Valid record rejected by account rules (locked account, insufficient
                funds, dispute on unknown/foreign/already handled transaction)
        """
        result = self._apply(transaction)
        self._stats.record(result)
        return result

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def snapshot(self) -> List[AccountSnapshot]:
        """Final account states, ordered by ascending client id."""
        return [AccountSnapshot.from_account(self._accounts[client_id]) for client_id in sorted(self._accounts)]

    def _apply(self, transaction: Transaction) -> ProcessingResult:
        account = self._accounts.get(transaction.client_id)
        if account is not None and account.locked:
            logger.debug(f"{transaction}: account {transaction.client_id} is locked")
            return ProcessingResult.IGNORED

        if transaction.transaction_type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL):
            if not self._is_well_formed(transaction):
                return ProcessingResult.INVALID_INPUT

        try:
            with localcontext(LEDGER_CONTEXT):
                return self._dispatch(account, transaction)
        except Inexact:
            logger.warning(f"{transaction}: balance would exceed {LEDGER_PRECISION} exact digits, skipping")
            return ProcessingResult.INVALID_INPUT

    def _dispatch(self, account: Optional[ClientAccount], transaction: Transaction) -> ProcessingResult:
        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(transaction)
            case _:
                raise ValueError(f"Unhandled transaction type: {transaction.transaction_type!r}")

    def _is_well_formed(self, transaction: Transaction) -> bool:
        kind = transaction.transaction_type.value.capitalize()
        amount = transaction.amount
        if amount is None or not amount.is_finite() or amount <= 0:
            logger.warning(f"{kind} tx {transaction.transaction_id}: invalid amount {amount}")
            return False

        if transaction.transaction_id in self._disputes:
            logger.warning(f"{kind} tx {transaction.transaction_id}: duplicate transaction id, skipping")
            return False

        return True

    def _lookup_entry(self, transaction: Transaction, expected: DisputeStatus) -> Optional[DisputableEntry]:
        """Return the referenced entry if it belongs to the client and is in the expected state."""
        kind = transaction.transaction_type.value.capitalize()
        entry = self._disputes.get(transaction.transaction_id)

        if entry is None:
            logger.debug(f"{kind} for tx {transaction.transaction_id}: transaction not found")
            return None

        if entry.client_id != transaction.client_id:
            logger.debug(f"{kind} for tx {transaction.transaction_id}: client mismatch (owner {entry.client_id}, got {transaction.client_id})")
            return None

        if entry.status != expected:
            logger.debug(f"{kind} for tx {transaction.transaction_id}: transaction is {entry.status.value}")
            return None

        return entry

    def _handle_deposit(self, account: Optional[ClientAccount], transaction: Transaction) -> ProcessingResult:
        if account is None:
            account = ClientAccount(client_id=transaction.client_id)
        account.credit(transaction.amount)
        self._accounts[transaction.client_id] = account
        self._disputes.add(
            transaction.transaction_id,
            DisputableEntry(transaction.client_id, TransactionType.DEPOSIT, transaction.amount),
        )
        return ProcessingResult.SUCCESS

    def _handle_withdrawal(self, account: Optional[ClientAccount], transaction: Transaction) -> ProcessingResult:
        if account is None or account.available < transaction.amount:
            logger.debug(f"Withdrawal tx {transaction.transaction_id}: insufficient funds")
            return ProcessingResult.IGNORED

        account.debit(transaction.amount)
        self._disputes.add(
            transaction.transaction_id,
            DisputableEntry(transaction.client_id, TransactionType.WITHDRAWAL, transaction.amount),
        )
        return ProcessingResult.SUCCESS

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        entry = self._lookup_entry(transaction, DisputeStatus.POSTED)
        if entry is None:
            return ProcessingResult.IGNORED

        account = self._accounts[transaction.client_id]
        if entry.transaction_type == TransactionType.DEPOSIT:
            account.hold(entry.amount)
        else:
            # The withdrawn funds are claimed back and held until the dispute settles.
            account.add_held(entry.amount)
        entry.status = DisputeStatus.DISPUTED
        return ProcessingResult.SUCCESS

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        entry = self._lookup_entry(transaction, DisputeStatus.DISPUTED)
        if entry is None:
            return ProcessingResult.IGNORED

        account = self._accounts[transaction.client_id]
        if entry.transaction_type == TransactionType.DEPOSIT:
            account.release_hold(entry.amount)
        else:
            # The withdrawal stands; the claim is dropped.
            account.remove_held(entry.amount)
        entry.status = DisputeStatus.RESOLVED
        return ProcessingResult.SUCCESS

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        entry = self._lookup_entry(transaction, DisputeStatus.DISPUTED)
        if entry is None:
            return ProcessingResult.IGNORED

        account = self._accounts[transaction.client_id]
        if entry.transaction_type == TransactionType.DEPOSIT:
            account.remove_held(entry.amount)
        else:
            # The withdrawal is reversed and the funds return to the client.
            account.release_hold(entry.amount)
        account.locked = True
        entry.status = DisputeStatus.CHARGED_BACK
        logger.info(f"Chargeback for tx {transaction.transaction_id}: account {account.client_id} locked")
        return ProcessingResult.SUCCESS
