import csv
import logging
from decimal import Decimal, InvalidOperation, localcontext
from typing import Dict, Iterable, Iterator, Optional, TextIO

from models import AccountSnapshot, Transaction, TransactionType

logger = logging.getLogger(__name__)

AMOUNT_PLACES = 4
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_PLACES)
MAX_AMOUNT_DIGITS = 20
MAX_CLIENT_ID = 65535
MAX_TRANSACTION_ID = 4294967295

OUTPUT_FIELDS = ["client", "available", "held", "total", "locked"]


def read_transactions(filepath: str) -> Iterator[Transaction]:
    """Yield transactions from a CSV file one row at a time, skipping rows that fail to parse."""
    with open(filepath, "r", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            transaction = parse_csv_row(row)
            if transaction:
                yield transaction


def parse_csv_row(row: Dict[str, Optional[str]]) -> Optional[Transaction]:
    """Parse CSV row into Transaction."""
    try:
        normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

        transaction_type = TransactionType(normalized["type"].lower())
        client_id = _parse_id(normalized["client"], MAX_CLIENT_ID, "client")
        transaction_id = _parse_id(normalized["tx"], MAX_TRANSACTION_ID, "tx")

        amount = None
        amount_str = normalized.get("amount", "")
        if amount_str:
            amount = _parse_amount(amount_str)

        return Transaction(
            transaction_type=transaction_type,
            client_id=client_id,
            transaction_id=transaction_id,
            amount=amount,
        )
    except (KeyError, ValueError, InvalidOperation) as e:
        logger.warning(f"Failed to parse row {row}: {e!r}")
        return None


def _parse_id(value: str, upper: int, field: str) -> int:
    parsed = int(value)
    if not 0 <= parsed <= upper:
        raise ValueError(f"{field} id {parsed} out of range 0..{upper}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    amount = Decimal(value)
    if not amount.is_finite():
        raise ValueError(f"amount {value} is not a finite number")
    if amount.as_tuple().exponent < -AMOUNT_PLACES:
        raise ValueError(f"amount {value} has more than {AMOUNT_PLACES} decimal places")
    if amount.adjusted() >= MAX_AMOUNT_DIGITS:
        raise ValueError(f"amount {value} has more than {MAX_AMOUNT_DIGITS} integer digits")
    return amount


def format_decimal(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places, whatever its magnitude."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 1 + AMOUNT_PLACES)
        return f"{value.quantize(AMOUNT_QUANTUM):f}"


def write_accounts(snapshots: Iterable[AccountSnapshot], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    for snapshot in snapshots:
        writer.writerow([
            snapshot.client_id,
            format_decimal(snapshot.available),
            format_decimal(snapshot.held),
            format_decimal(snapshot.total),
            str(snapshot.locked).lower(),
        ])
