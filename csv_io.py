import csv
from typing import IO, Iterable, Iterator

import structlog
from pydantic import ValidationError

from models import Account, TransactionRequest, format_amount

logger = structlog.get_logger()

OUTPUT_FIELDS = ["client", "available", "held", "total", "locked"]


class TransactionCsvReader:
    """Reads a ``type,client,tx,amount`` file as validated transaction requests.

    Rows that cannot be parsed or fail validation are logged with their line
    number, counted in ``malformed_count`` and skipped, so one bad line never
    costs the summary for the rest of the file.
    """

    def __init__(self, stream: IO[str]):
        self.stream = stream
        self.malformed_count = 0

    def __iter__(self) -> Iterator[TransactionRequest]:
        reader = csv.DictReader(self.stream, skipinitialspace=True)
        if reader.fieldnames is None:
            logger.warning("Transaction file is empty")
            return
        reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]

        rows = iter(reader)
        while True:
            try:
                row = next(rows)
            except StopIteration:
                return
            except csv.Error as e:
                # The csv module drops the rest of the offending line and resumes on the next one
                self.malformed_count += 1
                logger.warning(
                    "Unparseable transaction line skipped",
                    line=reader.reader.line_num,
                    error=str(e)
                )
                continue

            fields = {key: value for key, value in row.items() if key is not None}
            try:
                yield TransactionRequest.model_validate(fields)
            except ValidationError as e:
                self.malformed_count += 1
                logger.warning(
                    "Malformed transaction record skipped",
                    line=reader.line_num,
                    errors=[error["msg"] for error in e.errors()],
                    row=fields
                )


def write_accounts(accounts: Iterable[Account], stream: IO[str]) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    for account in accounts:
        writer.writerow([
            account.client_id,
            format_amount(account.available),
            format_amount(account.held),
            format_amount(account.total),
            "true" if account.locked else "false",
        ])
