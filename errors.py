class PartnerError(Exception):
    """A transaction the upstream partner got wrong. The record is skipped."""

    code = "partner_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class AccountLocked(PartnerError):
    code = "account_locked"


class DuplicateTransaction(PartnerError):
    code = "duplicate_transaction"


class InsufficientFunds(PartnerError):
    code = "insufficient_funds"


class TransactionNotFound(PartnerError):
    code = "transaction_not_found"


class ClientMismatch(PartnerError):
    code = "client_mismatch"


class InvalidDisputeState(PartnerError):
    code = "invalid_dispute_state"
