from typing import Iterable, Optional
import structlog

from config import Settings, get_settings
from errors import (
    AccountLocked,
    ClientMismatch,
    DuplicateTransaction,
    InsufficientFunds,
    InvalidDisputeState,
    PartnerError,
    TransactionNotFound,
)
from models import (
    AMOUNT_BEARING_TYPES,
    Account,
    DisputeState,
    ProcessingSummary,
    TransactionOutcome,
    TransactionRecord,
    TransactionRequest,
    TransactionType,
    format_amount,
)
from repositories import LedgerRepository

# Configure structured logging
logger = structlog.get_logger()


class TransactionProcessor:
    """Applies transaction records to the ledger strictly in the order given.

    Records that are inconsistent with the ledger (duplicate ids, unknown or
    foreign deposits, insufficient funds, locked accounts, out-of-order
    dispute steps) are partner errors: they are logged and skipped, and no
    balance changes. A skipped deposit or withdrawal still uses up its id.

    ``require_available_for_dispute`` controls whether a dispute is rejected
    when the client's available funds no longer cover the disputed deposit.
    Turning it off lets a dispute drive ``available`` negative.
    """

    def __init__(self, ledger_repo: LedgerRepository, require_available_for_dispute: bool = True):
        self.ledger_repo = ledger_repo
        self.require_available_for_dispute = require_available_for_dispute

    def process_transaction(self, request: TransactionRequest) -> TransactionOutcome:
        """Apply one record, or skip it if it is a partner error."""

        logger.debug(
            "Processing transaction",
            tx=request.tx,
            client=request.client,
            type=request.type.value,
            amount=str(request.amount) if request.amount is not None else None
        )

        carries_amount = request.type.value in AMOUNT_BEARING_TYPES

        # Only deposits and withdrawals open accounts; the other kinds refer to an existing one
        if carries_amount:
            account = self.ledger_repo.get_or_create_account(request.client)
        else:
            account = self.ledger_repo.get_account(request.client)

        try:
            # A deposit or withdrawal uses up its id even when it is skipped below
            if carries_amount and not self.ledger_repo.mark_transaction_id_used(request.tx, request.client):
                raise DuplicateTransaction(f"Transaction {request.tx} was already processed")

            if account is None:
                self._raise_for_unknown_client(request)

            if account.locked:
                raise AccountLocked(f"Account {account.client_id} is locked")

            if request.type == TransactionType.deposit:
                self._process_deposit(request, account)
            elif request.type == TransactionType.withdrawal:
                self._process_withdrawal(request, account)
            elif request.type == TransactionType.dispute:
                self._process_dispute(request, account)
            elif request.type == TransactionType.resolve:
                self._process_resolve(request, account)
            elif request.type == TransactionType.chargeback:
                self._process_chargeback(request, account)
            else:
                raise ValueError(f"Unsupported transaction type: {request.type!r}")

        except PartnerError as e:
            logger.warning(
                "Transaction skipped",
                reason=e.code,
                detail=e.detail,
                tx=request.tx,
                client=request.client,
                type=request.type.value
            )
            return TransactionOutcome(
                tx=request.tx,
                client=request.client,
                type=request.type,
                status="skipped",
                reason=e.code
            )

        logger.debug(
            "Transaction applied",
            tx=request.tx,
            client=request.client,
            type=request.type.value,
            available=format_amount(account.available),
            held=format_amount(account.held),
            locked=account.locked
        )

        return TransactionOutcome(
            tx=request.tx,
            client=request.client,
            type=request.type,
            status="applied"
        )

    def process_all(self, requests: Iterable[TransactionRequest]) -> ProcessingSummary:
        """Apply a whole stream of records and count what happened to them."""
        summary = ProcessingSummary()

        for request in requests:
            outcome = self.process_transaction(request)
            if outcome.status == "applied":
                summary.transactions_applied += 1
            else:
                summary.transactions_skipped += 1

        summary.accounts_count = self.ledger_repo.get_accounts_count()

        logger.info(
            "Transaction stream processed",
            accounts_count=summary.accounts_count,
            transactions_applied=summary.transactions_applied,
            transactions_skipped=summary.transactions_skipped
        )

        return summary

    def _process_deposit(self, request: TransactionRequest, account: Account) -> None:
        """Process deposit transaction."""
        amount = request.amount_units

        if not self.ledger_repo.record_deposit(request.tx, account.client_id, amount):
            raise DuplicateTransaction(f"Deposit {request.tx} was already recorded")

        account.available += amount

    def _process_withdrawal(self, request: TransactionRequest, account: Account) -> None:
        """Process withdrawal transaction."""
        amount = request.amount_units

        if account.available < amount:
            raise InsufficientFunds(
                f"Available {format_amount(account.available)} "
                f"is less than withdrawal {format_amount(amount)}"
            )

        account.available -= amount

    def _process_dispute(self, request: TransactionRequest, account: Account) -> None:
        """Move a clean deposit's amount from available to held."""
        deposit = self._referenced_deposit(request, DisputeState.clean)

        if self.require_available_for_dispute and account.available < deposit.amount:
            raise InsufficientFunds(
                f"Available {format_amount(account.available)} "
                f"is less than disputed {format_amount(deposit.amount)}"
            )

        account.available -= deposit.amount
        account.held += deposit.amount
        self.ledger_repo.mark_dispute_state(deposit.tx_id, DisputeState.disputed)

    def _process_resolve(self, request: TransactionRequest, account: Account) -> None:
        """Release a disputed deposit's amount back to available."""
        deposit = self._referenced_deposit(request, DisputeState.disputed)

        account.held -= deposit.amount
        account.available += deposit.amount
        self.ledger_repo.mark_dispute_state(deposit.tx_id, DisputeState.resolved)

    def _process_chargeback(self, request: TransactionRequest, account: Account) -> None:
        """Withdraw a disputed deposit's held amount and lock the account for good."""
        deposit = self._referenced_deposit(request, DisputeState.disputed)

        account.held -= deposit.amount
        account.locked = True
        self.ledger_repo.mark_dispute_state(deposit.tx_id, DisputeState.charged_back)

    def _raise_for_unknown_client(self, request: TransactionRequest) -> None:
        # Every stored deposit belongs to a client with an account, so any deposit found here is foreign
        deposit = self.ledger_repo.get_deposit(request.tx)
        if deposit is None:
            raise TransactionNotFound(f"No deposit with transaction id {request.tx}")
        raise ClientMismatch(
            f"Deposit {request.tx} belongs to client {deposit.client_id}, not {request.client}"
        )

    def _referenced_deposit(self, request: TransactionRequest, expected_state: DisputeState) -> TransactionRecord:
        deposit = self.ledger_repo.get_deposit(request.tx)

        if deposit is None:
            raise TransactionNotFound(f"No deposit with transaction id {request.tx}")

        if deposit.client_id != request.client:
            raise ClientMismatch(
                f"Deposit {request.tx} belongs to client {deposit.client_id}, not {request.client}"
            )

        if deposit.dispute_state != expected_state:
            raise InvalidDisputeState(
                f"Deposit {request.tx} is {deposit.dispute_state.value}, expected {expected_state.value}"
            )

        return deposit


# Factory function for dependency injection
def get_transaction_processor(
    ledger_repo: LedgerRepository,
    settings: Optional[Settings] = None
) -> TransactionProcessor:
    settings = settings or get_settings()
    return TransactionProcessor(
        ledger_repo,
        require_available_for_dispute=settings.dispute_requires_available_funds
    )
