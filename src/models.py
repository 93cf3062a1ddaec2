from dataclasses import dataclass
from decimal import Context, Decimal, Inexact, InvalidOperation, Overflow
from enum import Enum
from typing import Optional

LEDGER_PRECISION = 28

# Balance arithmetic is exact: an operation that would round raises Inexact instead.
LEDGER_CONTEXT = Context(prec=LEDGER_PRECISION, traps=[Inexact, Overflow, InvalidOperation])


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class ProcessingResult(Enum):
    SUCCESS = "success"
    INVALID_INPUT = "invalid_input"
    IGNORED = "ignored"


class DisputeStatus(Enum):
    POSTED = "posted"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class ClientAccount:
    """
    Balances of one client. Every change goes through _update, so a change that
    cannot be represented exactly under the active decimal context (LEDGER_CONTEXT
    inside the Ledger) raises before anything is assigned.
    """

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def _update(self, available: Decimal, held: Decimal) -> None:
        # total is derived, but it must be exact too
        available + held
        self.available, self.held = available, held

    def credit(self, amount: Decimal) -> None:
        self._update(self.available + amount, self.held)

    def debit(self, amount: Decimal) -> None:
        self._update(self.available - amount, self.held)

    def hold(self, amount: Decimal) -> None:
        self._update(self.available - amount, self.held + amount)

    def release_hold(self, amount: Decimal) -> None:
        self._update(self.available + amount, self.held - amount)

    def add_held(self, amount: Decimal) -> None:
        self._update(self.available, self.held + amount)

    def remove_held(self, amount: Decimal) -> None:
        self._update(self.available, self.held - amount)


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool

    @classmethod
    def from_account(cls, account: ClientAccount) -> "AccountSnapshot":
        return cls(
            client_id=account.client_id,
            available=account.available,
            held=account.held,
            total=account.total,
            locked=account.locked,
        )


@dataclass
class DisputableEntry:
    """A posted deposit or withdrawal that a later dispute may refer to."""

    client_id: int
    transaction_type: TransactionType
    amount: Decimal
    status: DisputeStatus = DisputeStatus.POSTED


class ProcessingStats:
    """Per-outcome counters. Each shard owns one; totals are merged at the end."""

    def __init__(self):
        self.processed = 0
        self.invalid = 0
        self.ignored = 0

    def record(self, result: ProcessingResult) -> None:
        if result == ProcessingResult.SUCCESS:
            self.processed += 1
        elif result == ProcessingResult.INVALID_INPUT:
            self.invalid += 1
        else:
            self.ignored += 1

    def merge(self, other: "ProcessingStats") -> None:
        self.processed += other.processed
        self.invalid += other.invalid
        self.ignored += other.ignored

    @property
    def total(self) -> int:
        return self.processed + self.invalid + self.ignored

    def __repr__(self) -> str:
        return f"ProcessingStats(processed={self.processed}, invalid={self.invalid}, ignored={self.ignored})"
