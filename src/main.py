import os
import sys
import logging

from payments_engine import PaymentsEngine
from csv_io import write_accounts

logger = logging.getLogger(__name__)

USAGE = "Usage: python main.py <input.csv> [num_shards]"


def configure_logging() -> None:
    logging.basicConfig(
        level=os.environ.get("PAYMENTS_LOG_LEVEL", "WARNING").upper(),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) not in (1, 2):
        print(USAGE, file=sys.stderr)
        return 1

    filepath = argv[0]
    if not os.path.isfile(filepath):
        print(f"Input file not found: {filepath}", file=sys.stderr)
        return 1

    try:
        num_shards = int(argv[1]) if len(argv) == 2 else 4
        engine = PaymentsEngine(num_shards=num_shards)
    except ValueError as e:
        print(f"Invalid num_shards: {e}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 1

    try:
        accounts = engine.process_file(filepath)
    except RuntimeError as e:
        logger.error(f"Processing of {filepath} failed: {e}")
        return 2

    write_accounts(accounts, sys.stdout)

    stats = engine.stats
    print(
        f"Processed: {stats.processed}, "
        f"Invalid: {stats.invalid}, "
        f"Ignored: {stats.ignored}",
        file=sys.stderr,
    )
    return 0


def run() -> None:
    configure_logging()
    sys.exit(main())


if __name__ == "__main__":
    run()
