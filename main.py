import argparse
import io
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from config import get_settings, get_settings_for_environment
from csv_io import TransactionCsvReader, write_accounts
from logging_config import configure_logging
from repositories import get_ledger_repository
from services import get_transaction_processor

logger = structlog.get_logger()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Apply a CSV of client transactions and print the final account balances as CSV."
    )
    parser.add_argument("transactions", type=Path, help="Path to the transactions CSV file")
    parser.add_argument(
        "--env",
        choices=["development", "production", "testing"],
        help="Use the settings preset for this environment"
    )
    parser.add_argument("--log-level", help="Override the configured log level")
    args = parser.parse_args(argv)

    settings = get_settings_for_environment(args.env) if args.env else get_settings()
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level})
    configure_logging(settings)

    ledger_repo = get_ledger_repository()
    processor = get_transaction_processor(ledger_repo, settings)

    logger.info(
        "Processing transaction file",
        app=settings.app_name,
        version=settings.app_version,
        path=str(args.transactions)
    )

    try:
        with args.transactions.open(newline="", encoding="utf-8") as handle:
            reader = TransactionCsvReader(handle)
            summary = processor.process_all(reader)
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Could not read transaction file", path=str(args.transactions), error=str(e))
        return 1

    summary.records_malformed = reader.malformed_count

    # Nothing reaches stdout until the whole summary is rendered
    rendered = io.StringIO()
    write_accounts(ledger_repo.list_accounts(), rendered)
    try:
        sys.stdout.write(rendered.getvalue())
        sys.stdout.flush()
    except OSError as e:
        logger.error("Could not write account summary", error=str(e))
        return 1

    logger.info("Account summary written", **summary.model_dump())
    return 0


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
